"""State definition for the LangGraph migration pipeline."""

import operator
from typing import Annotated, TypedDict

from repo_migrator.models import (
    AgentStatus,
    AnalysisResult,
    FileNode,
    MigrationConfig,
    MigrationReport,
    RepoScopeInfo,
    VerificationResult,
)
from repo_migrator.orchestrator.phases import GenerationOutcome, ScaffoldPhaseResult


class MigrationState(TypedDict):
    """State for the LangGraph migration pipeline.

    ``errors`` accumulates across nodes; all other fields are overwritten.
    """

    # Input
    url: str
    config: MigrationConfig
    include_directories: list[str]
    exclude_directories: list[str]
    start_ms: float

    # Analyze
    source_files: list[FileNode]
    analysis: AnalysisResult | None
    diagram: str | None
    repo_scope: RepoScopeInfo | None

    # Scaffold
    scaffold: ScaffoldPhaseResult | None
    generated_files: list[FileNode]

    # Generate / verify / report
    generation: GenerationOutcome | None
    verification: VerificationResult | None
    report: MigrationReport | None

    status: AgentStatus

    # Error accumulation
    errors: Annotated[list[str], operator.add]


def make_initial_state(
    url: str,
    config: MigrationConfig | None = None,
    include_directories: list[str] | None = None,
    exclude_directories: list[str] | None = None,
    start_ms: float = 0.0,
) -> MigrationState:
    """Create the initial state for the migration pipeline.

    Args:
        url: Repository reference handed to the provider.
        config: User configuration; defaults apply when omitted.
        include_directories: Only migrate files under these directories.
        exclude_directories: Skip files under these directories.
        start_ms: Run start time in milliseconds, used by the report.

    Returns:
        MigrationState dict with all fields initialised to defaults.
    """
    return {
        "url": url,
        "config": config or MigrationConfig(),
        "include_directories": list(include_directories or []),
        "exclude_directories": list(exclude_directories or []),
        "start_ms": start_ms,
        "source_files": [],
        "analysis": None,
        "diagram": None,
        "repo_scope": None,
        "scaffold": None,
        "generated_files": [],
        "generation": None,
        "verification": None,
        "report": None,
        "status": AgentStatus.IDLE,
        "errors": [],
    }
