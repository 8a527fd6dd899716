"""Tests for the analyst, architect, generator and verifier agents."""

import json

import pytest

from repo_migrator.agents import (
    FileGenerator,
    GenerationError,
    InlineData,
    LLMResponse,
    ProjectArchitect,
    RepositoryAnalyst,
    RepositoryVerifier,
    ResponseParseError,
)
from repo_migrator.agents.analyst import FALLBACK_SUMMARY
from repo_migrator.agents.architect import FALLBACK_SCAFFOLD, normalize_scaffold_paths
from repo_migrator.agents.file_generator import strip_markdown_fences
from repo_migrator.agents.json_payload import parse_json_payload, strip_code_fence
from repo_migrator.models import Complexity, GeneratedFile, MigrationConfig
from repo_migrator.rag import TRUNCATION_MARKER
from repo_migrator.resilience import OperationCancelledError


def _reply(fake_llm, text):
    fake_llm.request.return_value = LLMResponse(text=text, provider="anthropic")


class TestJsonPayload:
    def test_bare_object(self):
        assert parse_json_payload('{"a": 1}') == {"a": 1}

    def test_fenced_payload(self):
        assert parse_json_payload('```json\n{"a": [1, 2]}\n```') == {"a": [1, 2]}

    def test_payload_inside_prose(self):
        assert parse_json_payload('Here you go: {"a": 1} hope it helps') == {"a": 1}

    def test_array_inside_prose(self):
        assert parse_json_payload('Files: ["a.ts", "b.ts"].') == ["a.ts", "b.ts"]

    @pytest.mark.parametrize("text", [None, "", "   ", "no json here"])
    def test_unparsable(self, text):
        with pytest.raises(ResponseParseError):
            parse_json_payload(text)

    def test_strip_code_fence_leaves_plain_text(self):
        assert strip_code_fence("plain") == "plain"


class TestRepositoryAnalyst:
    @pytest.mark.asyncio
    async def test_parses_camel_case_payload(self, fake_llm, settings):
        _reply(fake_llm, json.dumps({
            "summary": "A jQuery shop",
            "complexity": "high",
            "detectedFramework": "jQuery",
            "recommendedTarget": "Next.js",
            "architectureDescription": "Pages talk to a REST API",
            "semanticFileMappings": [
                {"sourcePath": "src/app.js", "targetPath": "app/page.tsx", "confidence": 3},
                {"sourcePath": 7, "targetPath": "broken.tsx"},
            ],
            "migrationNotes": ["Use server components"],
        }))
        analyst = RepositoryAnalyst(fake_llm, settings)

        analysis = await analyst.analyze(["src/app.js"], "# Shop", MigrationConfig())

        assert analysis.summary == "A jQuery shop"
        assert analysis.complexity == Complexity.HIGH
        assert analysis.detected_framework == "jQuery"
        assert len(analysis.semantic_file_mappings) == 1
        assert analysis.semantic_file_mappings[0].confidence == 1.0
        assert fake_llm.request.call_args.args[0] == settings.analysis_model

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["not json at all", "[1, 2, 3]"])
    async def test_unusable_response_falls_back(self, fake_llm, settings, text):
        _reply(fake_llm, text)
        config = MigrationConfig(target_stack="Remix")

        analysis = await RepositoryAnalyst(fake_llm, settings).analyze([], "", config)

        assert analysis.summary == FALLBACK_SUMMARY
        assert analysis.complexity == Complexity.MEDIUM
        assert analysis.recommended_target == "Remix"

    @pytest.mark.asyncio
    async def test_diagram_data_url(self, fake_llm, settings):
        fake_llm.request.return_value = LLMResponse(
            inline_data=[InlineData(mime_type="image/png", data="aGk=")], provider="openai"
        )

        diagram = await RepositoryAnalyst(fake_llm, settings).generate_diagram("Pages and a REST API")

        assert diagram == "data:image/png;base64,aGk="
        assert fake_llm.request.call_args.args[0] == settings.image_model

    @pytest.mark.asyncio
    async def test_diagram_without_image(self, fake_llm, settings):
        assert await RepositoryAnalyst(fake_llm, settings).generate_diagram("x") is None

    @pytest.mark.asyncio
    async def test_diagram_failure_is_swallowed(self, fake_llm, settings):
        fake_llm.request.side_effect = RuntimeError("no image model")

        assert await RepositoryAnalyst(fake_llm, settings).generate_diagram("x") is None

    @pytest.mark.asyncio
    async def test_diagram_cancellation_propagates(self, fake_llm, settings):
        fake_llm.request.side_effect = OperationCancelledError()

        with pytest.raises(OperationCancelledError):
            await RepositoryAnalyst(fake_llm, settings).generate_diagram("x")


class TestProjectArchitect:
    def test_normalize_scaffold_paths(self):
        raw = ["./app/page.tsx", "/lib/db.ts", "app/", "", "  ", "app/page.tsx", 42, "README.md"]
        assert normalize_scaffold_paths(raw) == ["app/page.tsx", "lib/db.ts", "README.md"]

    @pytest.mark.asyncio
    async def test_list_payload(self, fake_llm, settings):
        _reply(fake_llm, '["package.json", "./app/page.tsx"]')

        paths = await ProjectArchitect(fake_llm, settings).design_structure("summary", MigrationConfig(), True)

        assert paths == ["package.json", "app/page.tsx"]

    @pytest.mark.asyncio
    async def test_object_payload(self, fake_llm, settings):
        _reply(fake_llm, '{"files": ["package.json", "lib/utils.ts"]}')

        paths = await ProjectArchitect(fake_llm, settings).design_structure("summary", MigrationConfig(), False)

        assert paths == ["package.json", "lib/utils.ts"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["garbage", "[]", '{"files": []}'])
    async def test_fallback_scaffold(self, fake_llm, settings, text):
        _reply(fake_llm, text)

        paths = await ProjectArchitect(fake_llm, settings).design_structure("summary", MigrationConfig(), True)

        assert paths == FALLBACK_SCAFFOLD


class TestFileGenerator:
    def test_strip_markdown_fences(self):
        assert strip_markdown_fences("```tsx\nexport const a = 1;\n```") == "export const a = 1;"
        assert strip_markdown_fences("export const a = 1;") == "export const a = 1;"

    @pytest.mark.asyncio
    async def test_returns_unfenced_content(self, fake_llm, settings):
        fake_llm.stream.return_value = "```ts\nexport const b = 2;\n```\n"
        chunks = []

        code = await FileGenerator(fake_llm, settings).generate(
            "lib/b.ts", "source", "related", MigrationConfig(), on_chunk=chunks.append
        )

        assert code == "export const b = 2;"
        assert fake_llm.stream.call_args.kwargs["on_chunk"] == chunks.append
        assert fake_llm.stream.call_args.args[0] == settings.generation_model

    @pytest.mark.asyncio
    async def test_source_context_is_capped(self, fake_llm, settings):
        await FileGenerator(fake_llm, settings).generate("a.ts", "z" * 60_000, "", MigrationConfig())

        prompt = fake_llm.stream.call_args.args[1]
        assert TRUNCATION_MARKER in prompt
        assert "z" * 50_001 not in prompt

    @pytest.mark.asyncio
    async def test_empty_content_raises(self, fake_llm, settings):
        fake_llm.stream.return_value = "```\n\n```"

        with pytest.raises(GenerationError, match="a.ts"):
            await FileGenerator(fake_llm, settings).generate("a.ts", "", "", MigrationConfig())


class TestRepositoryVerifier:
    @pytest.mark.asyncio
    async def test_drops_fixes_for_unknown_paths(self, fake_llm, settings):
        _reply(fake_llm, json.dumps({
            "passed": False,
            "issues": ["app/page.tsx imports a missing module", ""],
            "fixedFiles": [
                {"path": "app/page.tsx", "content": "export default function Page() {}"},
                {"path": "ghost.ts", "content": "x"},
                {"path": "bad.ts"},
            ],
        }))
        files = [GeneratedFile(path="app/page.tsx", content="broken")]

        verification = await RepositoryVerifier(fake_llm, settings).verify(files, "context", [], 1)

        assert verification.issues == ["app/page.tsx imports a missing module"]
        assert [fix.path for fix in verification.fixed_files] == ["app/page.tsx"]

    @pytest.mark.asyncio
    async def test_malformed_response_is_a_failed_pass(self, fake_llm, settings):
        _reply(fake_llm, "I could not review the files.")

        verification = await RepositoryVerifier(fake_llm, settings).verify([], "context", ["x"], 2)

        assert verification.passed is False
        assert verification.issues == []
        assert verification.fixed_files == []
