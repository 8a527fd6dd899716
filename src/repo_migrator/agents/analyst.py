"""Repository analyst agent: framework detection, mapping hints and diagram."""

import logging

from pydantic import ValidationError

from repo_migrator.agents.exceptions import ResponseParseError
from repo_migrator.agents.json_payload import parse_json_payload
from repo_migrator.agents.llm_client import (
    JSON_MIME_TYPE,
    ImageConfig,
    LLMClient,
    RequestConfig,
)
from repo_migrator.agents.prompts import (
    ANALYST_SYSTEM_INSTRUCTION,
    build_diagram_prompt,
    build_repo_analysis_prompt,
)
from repo_migrator.config import EngineSettings
from repo_migrator.models import AnalysisResult, Complexity, MigrationConfig
from repo_migrator.resilience import CancellationToken, is_abort_error

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "Could not analyze repository structure automatically."


def fallback_analysis(target_stack: str) -> AnalysisResult:
    """Conservative analysis used when the service response is unusable."""
    return AnalysisResult(
        summary=FALLBACK_SUMMARY,
        complexity=Complexity.MEDIUM,
        risks=["Repository analysis response could not be parsed"],
        detected_framework="Unknown",
        recommended_target=target_stack,
    )


class RepositoryAnalyst:
    """Runs the one-per-run repository analysis call."""

    def __init__(self, llm: LLMClient, settings: EngineSettings | None = None) -> None:
        self.llm = llm
        self.settings = settings if settings is not None else EngineSettings()

    async def analyze(
        self,
        file_list: list[str],
        readme: str,
        config: MigrationConfig | None = None,
        token: CancellationToken | None = None,
    ) -> AnalysisResult:
        """Analyze the repository file list and README.

        Args:
            file_list: Scoped, possibly truncated, repository file paths.
            readme: README text or a placeholder.
            config: User configuration; supplies the target stack.
            token: Cancellation token for the run.

        Returns:
            AnalysisResult. An unparsable response yields the fallback
            analysis instead of an exception.
        """
        config = config or MigrationConfig()
        prompt = build_repo_analysis_prompt(file_list, readme, config.target_stack)
        response = await self.llm.request(
            self.settings.analysis_model,
            prompt,
            RequestConfig(
                system_instruction=ANALYST_SYSTEM_INSTRUCTION,
                response_mime_type=JSON_MIME_TYPE,
                thinking_budget=self.settings.analysis_thinking_budget,
            ),
            token=token,
        )
        try:
            payload = parse_json_payload(response.text)
            if not isinstance(payload, dict):
                raise ResponseParseError("Analysis response is not a JSON object")
            return AnalysisResult.model_validate(payload)
        except (ResponseParseError, ValidationError) as exc:
            logger.warning("Falling back to default analysis: %s", exc)
            return fallback_analysis(config.target_stack)

    async def generate_diagram(
        self,
        description: str,
        token: CancellationToken | None = None,
    ) -> str | None:
        """Render the legacy architecture as an image data URL.

        Returns:
            ``data:<mime>;base64,<data>`` or None when no image came back
            or the image call failed.
        """
        try:
            response = await self.llm.request(
                self.settings.image_model,
                build_diagram_prompt(description),
                RequestConfig(image_config=ImageConfig(aspect_ratio="16:9", image_size="1K")),
                token=token,
            )
        except Exception as exc:
            if is_abort_error(exc):
                raise
            logger.warning("Diagram generation failed: %s", exc)
            return None

        for inline in response.inline_data:
            return f"data:{inline.mime_type};base64,{inline.data}"
        return None
