"""Repository structure/content providers."""

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from repo_migrator.models import FileNode, FileType
from repo_migrator.providers.exceptions import (
    InvalidRepositoryError,
    RepositoryError,
    RepositoryNotFoundError,
)
from repo_migrator.resilience import CancellationToken, abort_if_signaled

logger = logging.getLogger(__name__)

SKIP_DIRECTORIES = frozenset({
    ".git",
    ".hg",
    ".svn",
    ".next",
    ".nuxt",
    ".cache",
    ".venv",
    "__pycache__",
    "node_modules",
    "bower_components",
    "vendor",
    "dist",
    "build",
    "coverage",
})
MAX_FILE_BYTES = 1_000_000


class RepositoryProvider(Protocol):
    """Source of the legacy repository tree and file contents.

    Implementations raise RepositoryNotFoundError for unknown repositories or
    paths and RepositoryRateLimitError when a hosting service throttles them.
    """

    async def fetch_structure(
        self,
        url: str,
        token: CancellationToken | None = None,
    ) -> list[FileNode]: ...

    async def fetch_file_content(
        self,
        url: str,
        path: str,
        token: CancellationToken | None = None,
    ) -> str: ...


class LocalRepositoryProvider:
    """Reads a repository from a local directory; ``url`` is the directory."""

    def __init__(self, skip_directories: frozenset[str] = SKIP_DIRECTORIES) -> None:
        self.skip_directories = skip_directories

    def _root(self, url: str) -> Path:
        root = Path(url).expanduser().resolve()
        if not root.exists():
            raise RepositoryNotFoundError(f"Repository directory not found: {url}")
        if not root.is_dir():
            raise InvalidRepositoryError(f"Repository path is not a directory: {url}")
        return root

    def _walk(self, directory: Path, root: Path) -> list[FileNode]:
        nodes: list[FileNode] = []
        entries = sorted(directory.iterdir(), key=lambda entry: (entry.is_file(), entry.name))
        for entry in entries:
            if entry.is_symlink():
                continue
            relative = entry.relative_to(root).as_posix()
            if entry.is_dir():
                if entry.name in self.skip_directories:
                    continue
                children = self._walk(entry, root)
                if children:
                    nodes.append(
                        FileNode(path=relative, name=entry.name, type=FileType.DIRECTORY, children=children)
                    )
            elif entry.is_file():
                nodes.append(FileNode(path=relative, name=entry.name, type=FileType.FILE))
        return nodes

    async def fetch_structure(
        self,
        url: str,
        token: CancellationToken | None = None,
    ) -> list[FileNode]:
        """Build the FileNode tree for the directory at ``url``.

        Raises:
            RepositoryNotFoundError: If the directory does not exist.
            InvalidRepositoryError: If ``url`` is not a directory.
        """
        abort_if_signaled(token)
        root = self._root(url)
        return await asyncio.to_thread(self._walk, root, root)

    async def fetch_file_content(
        self,
        url: str,
        path: str,
        token: CancellationToken | None = None,
    ) -> str:
        """Read one file as UTF-8 text (undecodable bytes are replaced).

        Raises:
            RepositoryNotFoundError: If the file does not exist.
            InvalidRepositoryError: If ``path`` escapes the repository root.
            RepositoryError: If the file is too large or unreadable.
        """
        abort_if_signaled(token)
        root = self._root(url)
        target = (root / path).resolve()
        if not target.is_relative_to(root):
            raise InvalidRepositoryError(f"Path escapes repository root: {path}")
        if not target.is_file():
            raise RepositoryNotFoundError(f"File not found: {path}")
        size = target.stat().st_size
        if size > MAX_FILE_BYTES:
            raise RepositoryError(f"File too large ({size} bytes): {path}")
        try:
            return await asyncio.to_thread(target.read_text, encoding="utf-8", errors="replace")
        except OSError as exc:
            raise RepositoryError(f"Failed to read {path}: {exc}") from exc
