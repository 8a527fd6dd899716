"""Repository verifier agent: remote cross-file review with proposed fixes."""

import logging

from pydantic import ValidationError

from repo_migrator.agents.exceptions import ResponseParseError
from repo_migrator.agents.json_payload import parse_json_payload
from repo_migrator.agents.llm_client import JSON_MIME_TYPE, LLMClient, RequestConfig
from repo_migrator.agents.prompts import VERIFIER_SYSTEM_INSTRUCTION, build_verification_prompt
from repo_migrator.config import EngineSettings
from repo_migrator.models import GeneratedFile, RemoteVerification
from repo_migrator.resilience import CancellationToken

logger = logging.getLogger(__name__)

MAX_VERIFICATION_RESPONSE_TOKENS = 32_000


class RepositoryVerifier:
    def __init__(self, llm: LLMClient, settings: EngineSettings | None = None) -> None:
        self.llm = llm
        self.settings = settings if settings is not None else EngineSettings()

    async def verify(
        self,
        files: list[GeneratedFile],
        analysis_context: str,
        static_issues: list[str],
        pass_number: int,
        token: CancellationToken | None = None,
    ) -> RemoteVerification:
        """Run one remote verification call over the current snapshot.

        Fixes for paths outside ``files`` are discarded.

        Returns:
            RemoteVerification. An unparsable response yields no issues and
            no fixes, so the static check alone decides the pass.
        """
        response = await self.llm.request(
            self.settings.verification_model,
            build_verification_prompt(files, analysis_context, static_issues, pass_number),
            RequestConfig(
                system_instruction=VERIFIER_SYSTEM_INSTRUCTION,
                response_mime_type=JSON_MIME_TYPE,
                thinking_budget=self.settings.verification_thinking_budget,
                max_tokens=MAX_VERIFICATION_RESPONSE_TOKENS,
            ),
            token=token,
        )
        try:
            payload = parse_json_payload(response.text)
            if not isinstance(payload, dict):
                raise ResponseParseError("Verification response is not a JSON object")
            verification = RemoteVerification.model_validate(payload)
        except (ResponseParseError, ValidationError) as exc:
            logger.warning("Ignoring malformed verification response (pass %d): %s", pass_number, exc)
            return RemoteVerification(passed=False)

        known_paths = {file.path for file in files}
        accepted = [fix for fix in verification.fixed_files if fix.path in known_paths]
        if len(accepted) != len(verification.fixed_files):
            logger.info(
                "Dropped %d fix(es) for unknown paths",
                len(verification.fixed_files) - len(accepted),
            )
        verification.fixed_files = accepted
        return verification
