"""Data models for the repository migrator."""

from repo_migrator.models.file_models import FileNode, FileStatus, FileType, GeneratedFile
from repo_migrator.models.report_models import (
    AgentStatus,
    FileFix,
    GenerationProgress,
    LogEntry,
    LogSeverity,
    MigrationReport,
    RemoteVerification,
    VerificationResult,
)
from repo_migrator.models.schemas import (
    AnalysisResult,
    Complexity,
    MigrationConfig,
    RepoScopeInfo,
    SemanticFileMapping,
    SemanticMatch,
)

__all__ = [
    "AgentStatus",
    "AnalysisResult",
    "Complexity",
    "FileFix",
    "FileNode",
    "FileStatus",
    "FileType",
    "GeneratedFile",
    "GenerationProgress",
    "LogEntry",
    "LogSeverity",
    "MigrationConfig",
    "MigrationReport",
    "RemoteVerification",
    "RepoScopeInfo",
    "SemanticFileMapping",
    "SemanticMatch",
    "VerificationResult",
]
