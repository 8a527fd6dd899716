"""Exceptions for repository provider operations."""


class RepositoryError(Exception):
    """Base exception for repository structure and content access."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when a repository or file does not exist."""


class RepositoryRateLimitError(RepositoryError):
    """Raised when the hosting service refuses further requests for now."""

    def __init__(self, message: str, reset_at: float | None = None):
        super().__init__(message)
        self.reset_at = reset_at


class InvalidRepositoryError(RepositoryError):
    """Raised when a repository reference or path is malformed or unsafe."""
