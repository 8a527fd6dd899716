"""File generator agent: streams the content of one target file."""

import re

from repo_migrator.agents.exceptions import GenerationError
from repo_migrator.agents.llm_client import ChunkCallback, LLMClient, RequestConfig
from repo_migrator.agents.prompts import GENERATOR_SYSTEM_INSTRUCTION, build_generation_prompt
from repo_migrator.config import EngineSettings
from repo_migrator.models import MigrationConfig
from repo_migrator.rag import MAX_SOURCE_CONTEXT_CHARS, truncate_text
from repo_migrator.resilience import CancellationToken

_LEADING_FENCE = re.compile(r"^\s*```[\w+-]*[ \t]*\n")
_TRAILING_FENCE = re.compile(r"\n```\s*$")


def strip_markdown_fences(code: str) -> str:
    return _TRAILING_FENCE.sub("", _LEADING_FENCE.sub("", code, count=1), count=1)


class FileGenerator:
    def __init__(self, llm: LLMClient, settings: EngineSettings | None = None) -> None:
        self.llm = llm
        self.settings = settings if settings is not None else EngineSettings()

    async def generate(
        self,
        target_path: str,
        source_context: str,
        related_context: str,
        config: MigrationConfig,
        on_chunk: ChunkCallback | None = None,
        token: CancellationToken | None = None,
    ) -> str:
        """Generate ``target_path``, reporting partial content as it streams.

        Args:
            target_path: Path of the file to generate.
            source_context: Shared legacy context; capped before sending.
            related_context: Per-file context block.
            config: User configuration.
            on_chunk: Receives the accumulated content after each chunk.
            token: Cancellation token for the run.

        Returns:
            Generated content with any surrounding markdown fence removed.

        Raises:
            GenerationError: If the service returned no content.
        """
        prompt = build_generation_prompt(
            target_path,
            truncate_text(source_context, MAX_SOURCE_CONTEXT_CHARS),
            related_context,
            config,
        )
        content = await self.llm.stream(
            self.settings.generation_model,
            prompt,
            RequestConfig(
                system_instruction=GENERATOR_SYSTEM_INSTRUCTION,
                thinking_budget=self.settings.generation_thinking_budget,
            ),
            on_chunk=on_chunk,
            token=token,
        )
        code = strip_markdown_fences(content)
        if not code.strip():
            raise GenerationError(f"Empty content generated for {target_path}")
        return code
