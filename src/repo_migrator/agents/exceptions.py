"""Exceptions for agent operations."""


class AgentError(Exception):
    """Base exception for all agent operations."""


class LLMProviderError(AgentError):
    """Raised when no configured provider can serve a request."""


class ResponseParseError(AgentError):
    """Raised when a structured response cannot be parsed."""


class GenerationError(AgentError):
    """Raised when file generation fails."""


class RateLimitExceededError(AgentError):
    """Raised when the client-side request quota is exhausted.

    Carries status 429 so the retry executor treats it as transient.
    """

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", retry_after: float = 0.0):
        super().__init__(message)
        self.retry_after = retry_after
