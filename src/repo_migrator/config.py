"""Environment-based engine settings."""

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_PROVIDERS = ("auto", "anthropic", "openai")

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_ANTHROPIC_FAST_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_IMAGE_MODEL = "gpt-image-1"


class EngineSettings(BaseSettings):
    """Model identifiers, budgets and retry policy for a migration run.

    Every field can be set with a ``REPO_MIGRATOR_`` prefixed variable;
    API keys also use their conventional unprefixed names.
    """

    model_config = SettingsConfigDict(
        env_prefix="REPO_MIGRATOR_",
        extra="ignore",
        populate_by_name=True,
    )

    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "ANTHROPIC_API_KEY", "REPO_MIGRATOR_ANTHROPIC_API_KEY", "anthropic_api_key"
        ),
    )
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "OPENAI_API_KEY", "REPO_MIGRATOR_OPENAI_API_KEY", "openai_api_key"
        ),
    )

    llm_provider: str = "auto"
    llm_fallback_provider: str | None = None
    allow_llm_fallback: bool = False
    openai_model: str = DEFAULT_OPENAI_MODEL

    analysis_model: str = DEFAULT_ANTHROPIC_MODEL
    scaffold_model: str = DEFAULT_ANTHROPIC_MODEL
    generation_model: str = DEFAULT_ANTHROPIC_FAST_MODEL
    verification_model: str = DEFAULT_ANTHROPIC_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL

    analysis_thinking_budget: int = 2048
    scaffold_thinking_budget: int = 1024
    generation_thinking_budget: int = 2048
    verification_thinking_budget: int = 1024

    max_retries: int = 3
    retry_base_delay: float = 0.5
    retry_max_delay: float = 10.0

    rate_limit_requests: int = 0
    rate_limit_window_seconds: float = 60.0

    log_level: str = "INFO"

    @field_validator("llm_provider", "llm_fallback_provider")
    @classmethod
    def _known_provider(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if not normalized:
            return None
        if normalized not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported provider: {value}")
        return normalized

    @field_validator("max_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        return max(0, value)

    @classmethod
    def from_env(cls, **overrides) -> "EngineSettings":
        """Read settings from the environment; non-None overrides win."""
        return cls(**{key: value for key, value in overrides.items() if value is not None})
