"""Exceptions for orchestrator operations."""


class OrchestratorError(Exception):
    """Base exception for all orchestrator operations."""


class ScopeFilterError(OrchestratorError):
    """Raised when include/exclude filters leave no files to migrate."""


class UnknownTargetFileError(OrchestratorError):
    """Raised when regenerating a path that is not part of the scaffold."""


class GraphBuildError(OrchestratorError):
    """Raised when graph construction fails."""


class RunInProgressError(OrchestratorError):
    """Raised when a session is asked to start a second concurrent run."""
