"""Repository providers for the legacy source tree."""

from repo_migrator.providers.exceptions import (
    InvalidRepositoryError,
    RepositoryError,
    RepositoryNotFoundError,
    RepositoryRateLimitError,
)
from repo_migrator.providers.repository import LocalRepositoryProvider, RepositoryProvider

__all__ = [
    "InvalidRepositoryError",
    "LocalRepositoryProvider",
    "RepositoryError",
    "RepositoryNotFoundError",
    "RepositoryProvider",
    "RepositoryRateLimitError",
]
