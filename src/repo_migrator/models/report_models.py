"""Run status, logging, verification and report models."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from repo_migrator.models.schemas import CamelPayloadModel


class AgentStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    PLANNING = "planning"
    CONVERTING = "converting"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    ERROR = "error"


class LogSeverity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=False)

    id: str = Field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = Field(default_factory=datetime.now)
    phase: str
    message: str
    severity: LogSeverity = LogSeverity.INFO


class GenerationProgress(BaseModel):
    """Counter for the Generate phase; reset at the start of each phase."""

    model_config = ConfigDict(frozen=False)

    current: int = 0
    total: int = 0
    current_file: str = ""


class FileFix(CamelPayloadModel):
    """A whole-file replacement proposed by the remote verifier."""

    path: str
    content: str


class RemoteVerification(CamelPayloadModel):
    """Verdict returned by one remote verification call."""

    passed: bool = False
    issues: list[str] = Field(default_factory=list)
    fixed_files: list[FileFix] = Field(default_factory=list)

    @field_validator("issues", mode="before")
    @classmethod
    def _string_issues(cls, value):
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None and str(item).strip()]

    @field_validator("fixed_files", mode="before")
    @classmethod
    def _well_formed_fixes(cls, value):
        if not isinstance(value, list):
            return []
        return [
            item for item in value
            if isinstance(item, FileFix)
            or (
                isinstance(item, dict)
                and isinstance(item.get("path"), str)
                and isinstance(item.get("content"), str)
            )
        ]


class VerificationResult(BaseModel):
    """Outcome of the multi-pass verification loop.

    ``issues`` holds what is still wrong after the final pass;
    ``observed_issues`` holds every distinct issue seen in any pass.
    """

    model_config = ConfigDict(frozen=False)

    passed: bool
    issues: list[str] = Field(default_factory=list)
    fixed_files_applied: int = 0
    observed_issues: list[str] = Field(default_factory=list)
    passes: int = 0


class MigrationReport(BaseModel):
    model_config = ConfigDict(frozen=False)

    duration: str
    total_files: int
    files_generated: int
    modernization_score: int
    typescript_coverage: int
    test_coverage: int
    tests_generated: int
    tech_stack_changes: list[str] = Field(default_factory=list)
    key_improvements: list[str] = Field(default_factory=list)
    new_dependencies: int = 0
    generated_at: datetime = Field(default_factory=datetime.now)
