"""Phase orchestration for the repository migrator."""

from repo_migrator.orchestrator.events import FileEvents, ForwardingFileEvents, TreeFileEvents
from repo_migrator.orchestrator.exceptions import (
    GraphBuildError,
    OrchestratorError,
    RunInProgressError,
    ScopeFilterError,
    UnknownTargetFileError,
)
from repo_migrator.orchestrator.graph import build_graph
from repo_migrator.orchestrator.logs import MigrationLog, null_log
from repo_migrator.orchestrator.phases import (
    AnalyzePhaseResult,
    GenerationOutcome,
    ScaffoldPhaseResult,
    run_analyze_phase,
    run_generate_phase,
    run_regenerate_file_phase,
    run_scaffold_phase,
)
from repo_migrator.orchestrator.report import format_duration, generate_report
from repo_migrator.orchestrator.session import MigrationSession
from repo_migrator.orchestrator.state import MigrationState, make_initial_state
from repo_migrator.orchestrator.verification import (
    REPO_VERIFICATION_PASSES,
    run_verification_phase,
)

__all__ = [
    "AnalyzePhaseResult",
    "FileEvents",
    "ForwardingFileEvents",
    "GenerationOutcome",
    "GraphBuildError",
    "MigrationLog",
    "MigrationSession",
    "MigrationState",
    "OrchestratorError",
    "REPO_VERIFICATION_PASSES",
    "RunInProgressError",
    "ScaffoldPhaseResult",
    "ScopeFilterError",
    "TreeFileEvents",
    "UnknownTargetFileError",
    "build_graph",
    "format_duration",
    "generate_report",
    "make_initial_state",
    "null_log",
    "run_analyze_phase",
    "run_generate_phase",
    "run_regenerate_file_phase",
    "run_scaffold_phase",
    "run_verification_phase",
]
