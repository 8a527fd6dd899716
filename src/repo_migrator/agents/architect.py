"""Project architect agent: plans the flat list of target file paths."""

import logging

from repo_migrator.agents.exceptions import ResponseParseError
from repo_migrator.agents.json_payload import parse_json_payload
from repo_migrator.agents.llm_client import JSON_MIME_TYPE, LLMClient, RequestConfig
from repo_migrator.agents.prompts import ARCHITECT_SYSTEM_INSTRUCTION, build_scaffold_prompt
from repo_migrator.config import EngineSettings
from repo_migrator.models import MigrationConfig
from repo_migrator.resilience import CancellationToken

logger = logging.getLogger(__name__)

FALLBACK_SCAFFOLD = ["package.json", "app/layout.tsx", "app/page.tsx", "README.md"]


def normalize_scaffold_paths(raw_paths: list) -> list[str]:
    """Clean model-produced paths.

    Strips leading ``./`` and ``/``, drops blanks, directory-like entries
    (trailing slash) and duplicates, keeping first-seen order.
    """
    seen: set[str] = set()
    paths: list[str] = []
    for raw in raw_paths:
        if not isinstance(raw, str):
            continue
        path = raw.strip()
        while path.startswith("./"):
            path = path[2:]
        path = path.lstrip("/")
        if not path or path.endswith("/") or path in seen:
            continue
        seen.add(path)
        paths.append(path)
    return paths


class ProjectArchitect:
    """Runs the remote project-structure call."""

    def __init__(self, llm: LLMClient, settings: EngineSettings | None = None) -> None:
        self.llm = llm
        self.settings = settings if settings is not None else EngineSettings()

    async def design_structure(
        self,
        analysis_summary: str,
        config: MigrationConfig,
        include_tests: bool,
        token: CancellationToken | None = None,
    ) -> list[str]:
        """Ask for the target project's file list.

        Returns:
            Normalized target paths, or FALLBACK_SCAFFOLD when the response
            is unparsable or empty.
        """
        response = await self.llm.request(
            self.settings.scaffold_model,
            build_scaffold_prompt(analysis_summary, config, include_tests),
            RequestConfig(
                system_instruction=ARCHITECT_SYSTEM_INSTRUCTION,
                response_mime_type=JSON_MIME_TYPE,
                thinking_budget=self.settings.scaffold_thinking_budget,
            ),
            token=token,
        )
        try:
            payload = parse_json_payload(response.text)
        except ResponseParseError as exc:
            logger.warning("Falling back to minimal scaffold: %s", exc)
            return list(FALLBACK_SCAFFOLD)

        if isinstance(payload, dict):
            payload = payload.get("files") or payload.get("paths") or []
        paths = normalize_scaffold_paths(payload if isinstance(payload, list) else [])
        if not paths:
            logger.warning("Scaffold response contained no paths; using minimal scaffold")
            return list(FALLBACK_SCAFFOLD)
        return paths
