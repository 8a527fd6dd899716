"""Session host owning at most one active migration run."""

import asyncio
import logging
from typing import Callable

from repo_migrator.agents import (
    ConsistencyAuditor,
    FileGenerator,
    LLMClient,
    ProjectArchitect,
    RepositoryAnalyst,
    RepositoryVerifier,
)
from repo_migrator.config import EngineSettings
from repo_migrator.models import (
    AgentStatus,
    AnalysisResult,
    FileNode,
    GenerationProgress,
    LogEntry,
    LogSeverity,
    MigrationConfig,
    MigrationReport,
    RepoScopeInfo,
    VerificationResult,
)
from repo_migrator.orchestrator.events import FileEvents, ForwardingFileEvents, TreeFileEvents
from repo_migrator.orchestrator.exceptions import OrchestratorError, RunInProgressError
from repo_migrator.orchestrator.graph import build_graph, now_ms
from repo_migrator.orchestrator.logs import MigrationLog
from repo_migrator.orchestrator.phases import (
    DiagramGate,
    GenerationOutcome,
    ScaffoldPhaseResult,
    run_regenerate_file_phase,
)
from repo_migrator.orchestrator.state import MigrationState, make_initial_state
from repo_migrator.providers import RepositoryProvider
from repo_migrator.resilience import CancellationToken, OperationCancelledError

logger = logging.getLogger(__name__)


class _SessionEvents(ForwardingFileEvents):
    def __init__(self, session: "MigrationSession", listener: FileEvents | None) -> None:
        super().__init__(listener)
        self._session = session

    def on_progress(self, progress: GenerationProgress) -> None:
        self._session.progress = progress
        super().on_progress(progress)


class MigrationSession:
    """Runs the migration pipeline and keeps the latest run's outputs.

    Only one run (full migration or single-file regeneration) may be
    active at a time. A cancelled run ends idle; a fatal error ends in
    ``AgentStatus.ERROR`` with ``error_message`` set.
    """

    def __init__(
        self,
        provider: RepositoryProvider,
        llm: LLMClient,
        settings: EngineSettings | None = None,
        *,
        auditor: ConsistencyAuditor | None = None,
        events: FileEvents | None = None,
        log_listener: Callable[[LogEntry], None] | None = None,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.settings = settings if settings is not None else EngineSettings()
        self.provider = provider
        self.llm = llm
        self.analyst = RepositoryAnalyst(llm, self.settings)
        self.architect = ProjectArchitect(llm, self.settings)
        self.generator = FileGenerator(llm, self.settings)
        self.verifier = RepositoryVerifier(llm, self.settings)
        self.auditor = auditor or ConsistencyAuditor()
        self.log = MigrationLog(listener=log_listener)
        self.events = _SessionEvents(self, events)
        self.clock = clock

        self.status = AgentStatus.IDLE
        self.error_message: str | None = None
        self.progress = GenerationProgress()
        self.config = MigrationConfig()
        self.source_files: list[FileNode] = []
        self.generated_files: list[FileNode] = []
        self.analysis: AnalysisResult | None = None
        self.diagram: str | None = None
        self.repo_scope: RepoScopeInfo | None = None
        self.scaffold: ScaffoldPhaseResult | None = None
        self.generation: GenerationOutcome | None = None
        self.verification: VerificationResult | None = None
        self.report: MigrationReport | None = None
        self._token: CancellationToken | None = None

    @property
    def is_running(self) -> bool:
        return self._token is not None

    def cancel(self, reason: str | None = None) -> bool:
        """Cancel the active run. Returns False when nothing is running."""
        if self._token is None:
            return False
        self._token.cancel(reason)
        return True

    def _set_status(self, status: AgentStatus) -> None:
        self.status = status

    def _begin(self) -> CancellationToken:
        if self._token is not None:
            raise RunInProgressError("A migration run is already in progress")
        self._token = CancellationToken()
        return self._token

    def _mark_cancelled(self) -> None:
        self.status = AgentStatus.IDLE
        self.log("Migration cancelled.", LogSeverity.WARNING, "system")

    def _mark_failed(self, message: str) -> None:
        self.status = AgentStatus.ERROR
        self.error_message = message
        self.log(f"Critical failure: {message}", LogSeverity.ERROR, AgentStatus.ERROR)

    def _reset(self, config: MigrationConfig) -> None:
        self.log.clear()
        self.error_message = None
        self.progress = GenerationProgress()
        self.config = config
        self.source_files = []
        self.generated_files = []
        self.analysis = None
        self.diagram = None
        self.repo_scope = None
        self.scaffold = None
        self.generation = None
        self.verification = None
        self.report = None

    def _absorb(self, state: MigrationState) -> None:
        self.source_files = state["source_files"]
        self.generated_files = state["generated_files"]
        self.analysis = state["analysis"]
        self.diagram = state["diagram"]
        self.repo_scope = state["repo_scope"]
        self.scaffold = state["scaffold"]
        self.generation = state["generation"]
        self.verification = state["verification"]
        self.report = state["report"]

    async def start(
        self,
        url: str,
        config: MigrationConfig | None = None,
        *,
        include_directories: list[str] | None = None,
        exclude_directories: list[str] | None = None,
        validate_api_key: bool = True,
        ensure_diagram_api_key: DiagramGate | None = None,
    ) -> MigrationState | None:
        """Run the full pipeline against ``url``.

        Args:
            url: Repository reference handed to the provider.
            config: User configuration.
            include_directories: Only migrate files under these directories.
            exclude_directories: Skip files under these directories.
            validate_api_key: Issue a minimal request before analyzing.
            ensure_diagram_api_key: Gate for the optional diagram call.

        Returns:
            Final MigrationState, or None if the run was cancelled.

        Raises:
            RunInProgressError: If another run is active.
        """
        token = self._begin()
        config = config or MigrationConfig()
        self._reset(config)
        try:
            if validate_api_key:
                self.log("Validating API key...", LogSeverity.INFO, "system")
                if not await self.llm.validate_api_key(token=token):
                    self._mark_failed("API key validation failed. Check the configured provider key.")
                    return None

            graph = build_graph(
                self.provider,
                self.analyst,
                self.architect,
                self.generator,
                self.verifier,
                self.auditor,
                events=self.events,
                log=self.log,
                on_status=self._set_status,
                ensure_diagram_api_key=ensure_diagram_api_key,
                clock=self.clock,
                token=token,
            )
            state = make_initial_state(
                url,
                config,
                include_directories=include_directories,
                exclude_directories=exclude_directories,
                start_ms=self.clock(),
            )
            final_state = await graph.ainvoke(state)
            self._absorb(final_state)
            if final_state["errors"]:
                self._mark_failed(final_state["errors"][0])
            else:
                self.status = AgentStatus.COMPLETED
            return final_state
        except OperationCancelledError:
            self._mark_cancelled()
            return None
        except asyncio.CancelledError:
            self._mark_cancelled()
            raise
        except Exception as exc:
            logger.exception("Migration run failed")
            self._mark_failed(str(exc))
            return None
        finally:
            self._token = None

    async def regenerate_file(self, path: str, instructions: str | None = None) -> str | None:
        """Regenerate one scaffolded file from the last run's outputs.

        Returns:
            The new content, or None if cancelled.

        Raises:
            RunInProgressError: If another run is active.
            OrchestratorError: If no scaffolded project is available.
            UnknownTargetFileError: If ``path`` is not a scaffolded file.
            Exception: The generation failure, after marking the file errored.
        """
        if self.analysis is None or not self.generated_files:
            raise OrchestratorError("No scaffolded project available to regenerate from")
        token = self._begin()
        try:
            return await run_regenerate_file_phase(
                path,
                self.generated_files,
                self.analysis,
                self.scaffold,
                self.generator,
                self.config,
                instructions=instructions,
                events=TreeFileEvents(self.generated_files, listener=self.events),
                log=self.log,
                token=token,
            )
        except OperationCancelledError:
            self.log(f"Regeneration of {path} cancelled.", LogSeverity.WARNING, "system")
            return None
        finally:
            self._token = None
