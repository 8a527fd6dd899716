from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from repo_migrator.agents.llm_client import LLMResponse
from repo_migrator.config import EngineSettings
from repo_migrator.models import AnalysisResult, FileNode, FileType, SemanticFileMapping
from repo_migrator.utils import build_tree_from_paths, flatten_files


def _make_file(path: str, content: str | None = None) -> FileNode:
    return FileNode(path=path, name=path.rsplit("/", 1)[-1], type=FileType.FILE, content=content)


def _make_tree(contents: dict[str, str]) -> list[FileNode]:
    """FileNode forest for ``contents`` with every file's content filled in."""
    nodes = build_tree_from_paths(contents)
    for node in flatten_files(nodes):
        if node.is_file:
            node.content = contents[node.path]
    return nodes


LEGACY_FILES = {
    "README.md": "# Legacy shop\nA jQuery storefront.",
    "package.json": '{"name": "legacy-shop"}',
    "src/app.js": (
        "import { formatPrice } from './utils';\n"
        "import Header from './components/Header';\n"
        "render(Header, formatPrice(10));\n"
    ),
    "src/utils.js": "import { CURRENCY } from './constants';\nexport const formatPrice = (v) => CURRENCY + v;\n",
    "src/constants.js": "export const CURRENCY = '$';\n",
    "src/components/Header.js": "export default function Header() { return '<h1>Shop</h1>'; }\n",
    "src/logo.png": "binary",
}


@pytest.fixture
def settings():
    return EngineSettings(
        anthropic_api_key="test-anthropic-key",
        openai_api_key="",
        max_retries=0,
        retry_base_delay=0.0,
    )


@pytest.fixture
def legacy_repo(tmp_path) -> Path:
    root = tmp_path / "legacy"
    for relative, content in LEGACY_FILES.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    (root / "node_modules" / "left-pad").mkdir(parents=True)
    (root / "node_modules" / "left-pad" / "index.js").write_text("module.exports = 1;\n")
    return root


@pytest.fixture
def sample_analysis():
    return AnalysisResult(
        summary="jQuery storefront with a shared price formatter.",
        detected_framework="jQuery",
        recommended_target="Next.js",
        migration_notes=["Replace DOM string rendering with JSX."],
        semantic_file_mappings=[
            SemanticFileMapping(
                source_path="src/app.js",
                target_path="app/page.tsx",
                confidence=0.9,
            ),
        ],
    )


@pytest.fixture
def fake_llm():
    """LLMClient double: async request/stream, no image support."""
    llm = MagicMock()
    llm.request = AsyncMock(return_value=LLMResponse(text="{}", provider="anthropic"))
    llm.stream = AsyncMock(return_value="export const generated = true;\n")
    llm.validate_api_key = AsyncMock(return_value=True)
    llm.has_image_support = MagicMock(return_value=False)
    return llm


@pytest.fixture
def mock_anthropic_client():
    """AsyncAnthropic double returning a single text block."""
    client = MagicMock()
    block = MagicMock()
    block.type = "text"
    block.text = '{"ok": true}'
    response = MagicMock()
    response.content = [block]
    client.messages.create = AsyncMock(return_value=response)
    return client


@pytest.fixture
def mock_openai_client():
    """AsyncOpenAI double returning a single chat completion."""
    client = MagicMock()
    message = MagicMock()
    message.content = '{"ok": "openai"}'
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


@pytest.fixture
def make_file():
    return _make_file


@pytest.fixture
def make_tree():
    return _make_tree
