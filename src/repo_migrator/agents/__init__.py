"""Agent components for the repository migrator."""

from repo_migrator.agents.exceptions import (
    AgentError,
    GenerationError,
    LLMProviderError,
    RateLimitExceededError,
    ResponseParseError,
)
from repo_migrator.agents.analyst import RepositoryAnalyst
from repo_migrator.agents.architect import ProjectArchitect
from repo_migrator.agents.consistency_auditor import ConsistencyAuditor
from repo_migrator.agents.file_generator import FileGenerator
from repo_migrator.agents.llm_client import (
    ImageConfig,
    InlineData,
    LLMClient,
    LLMResponse,
    RequestConfig,
)
from repo_migrator.agents.verifier import RepositoryVerifier

__all__ = [
    "AgentError",
    "ConsistencyAuditor",
    "FileGenerator",
    "GenerationError",
    "ImageConfig",
    "InlineData",
    "LLMClient",
    "LLMProviderError",
    "LLMResponse",
    "ProjectArchitect",
    "RateLimitExceededError",
    "RepositoryAnalyst",
    "RepositoryVerifier",
    "RequestConfig",
    "ResponseParseError",
]
