"""Pydantic data models for repository analysis and file mapping."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

CONFIDENCE_MIN = 0.0
CONFIDENCE_MAX = 1.0
DEFAULT_MAPPING_CONFIDENCE = 0.5


def clamp_confidence(value: Any, default: float = DEFAULT_MAPPING_CONFIDENCE) -> float:
    """Coerce a loosely-typed confidence value into [0, 1]."""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    if confidence != confidence:  # NaN
        return default
    return max(CONFIDENCE_MIN, min(CONFIDENCE_MAX, confidence))


class Complexity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class CamelPayloadModel(BaseModel):
    """Base for models parsed from camelCase service payloads."""

    model_config = ConfigDict(
        frozen=False,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SemanticFileMapping(CamelPayloadModel):
    """An explicit source -> target hint produced by the analysis call.

    Both paths may be extension-less or contain ``*`` wildcards.
    """

    source_path: str
    target_path: str
    rationale: str = ""
    confidence: float = DEFAULT_MAPPING_CONFIDENCE

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_confidence(value)


class AnalysisResult(CamelPayloadModel):
    """Repository-level analysis produced once per run."""

    summary: str = ""
    complexity: Complexity = Complexity.MEDIUM
    dependencies: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    detected_framework: str = "Unknown"
    recommended_target: str = ""
    architecture_description: str = ""
    semantic_file_mappings: list[SemanticFileMapping] = Field(default_factory=list)
    migration_notes: list[str] = Field(default_factory=list)

    @field_validator("complexity", mode="before")
    @classmethod
    def _normalize_complexity(cls, value: Any) -> Complexity:
        if isinstance(value, Complexity):
            return value
        if isinstance(value, str):
            for member in Complexity:
                if member.value.lower() == value.strip().lower():
                    return member
        return Complexity.MEDIUM

    @field_validator("dependencies", "patterns", "risks", "migration_notes", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None]

    @field_validator("semantic_file_mappings", mode="before")
    @classmethod
    def _drop_malformed_mappings(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        kept = []
        for item in value:
            if isinstance(item, SemanticFileMapping):
                kept.append(item)
            elif (
                isinstance(item, dict)
                and isinstance(item.get("sourcePath", item.get("source_path")), str)
                and isinstance(item.get("targetPath", item.get("target_path")), str)
            ):
                kept.append(item)
        return kept


class SemanticMatch(BaseModel):
    """Association between a target file and its most relevant legacy sources."""

    model_config = ConfigDict(frozen=False)

    primary_source_path: Optional[str] = None
    source_paths: list[str] = Field(default_factory=list)
    confidence: float = 0.0

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return clamp_confidence(value, default=0.0)

    @model_validator(mode="after")
    def _primary_is_a_source(self) -> "SemanticMatch":
        if self.primary_source_path is not None and self.primary_source_path not in self.source_paths:
            raise ValueError("primary_source_path must be one of source_paths")
        return self


class RepoScopeInfo(BaseModel):
    """How much of the repository survived the include/exclude filters."""

    model_config = ConfigDict(frozen=False)

    total_files: int = 0
    filtered_files: int = 0
    analyzed_files: int = 0
    truncated: bool = False
    available_directories: list[str] = Field(default_factory=list)


class MigrationConfig(BaseModel):
    """User-selected options for the generated project."""

    model_config = ConfigDict(frozen=False)

    ui_framework: str = "tailwind"
    state_management: str = "context"
    testing_library: str = "vitest"
    target_stack: str = "Next.js (App Router) + TypeScript"

    @property
    def include_tests(self) -> bool:
        return self.testing_library.strip().lower() != "none"

    def describe(self) -> str:
        """Render the configuration for inclusion in prompts."""
        return (
            f"- Target stack: {self.target_stack}\n"
            f"- UI framework: {self.ui_framework}\n"
            f"- State management: {self.state_management}\n"
            f"- Testing library: {self.testing_library}"
        )
