"""Tests for the local-directory repository provider."""

import pytest

from repo_migrator.providers import (
    InvalidRepositoryError,
    LocalRepositoryProvider,
    RepositoryError,
    RepositoryNotFoundError,
)
from repo_migrator.providers import repository as repository_module
from repo_migrator.resilience import CancellationToken, OperationCancelledError
from repo_migrator.utils import file_paths


@pytest.fixture
def provider():
    return LocalRepositoryProvider()


class TestFetchStructure:
    @pytest.mark.asyncio
    async def test_tree_lists_files_and_skips_vendor_directories(self, provider, legacy_repo):
        tree = await provider.fetch_structure(str(legacy_repo))

        paths = file_paths(tree)
        assert "src/app.js" in paths
        assert "src/components/Header.js" in paths
        assert not any(path.startswith("node_modules") for path in paths)

    @pytest.mark.asyncio
    async def test_directories_come_first(self, provider, legacy_repo):
        tree = await provider.fetch_structure(str(legacy_repo))

        assert [node.path for node in tree] == ["src", "README.md", "package.json"]
        assert tree[0].children[0].path == "src/components"

    @pytest.mark.asyncio
    async def test_missing_directory(self, provider, tmp_path):
        with pytest.raises(RepositoryNotFoundError):
            await provider.fetch_structure(str(tmp_path / "nope"))

    @pytest.mark.asyncio
    async def test_file_is_not_a_repository(self, provider, legacy_repo):
        with pytest.raises(InvalidRepositoryError):
            await provider.fetch_structure(str(legacy_repo / "README.md"))

    @pytest.mark.asyncio
    async def test_cancelled_token(self, provider, legacy_repo):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            await provider.fetch_structure(str(legacy_repo), token)


class TestFetchFileContent:
    @pytest.mark.asyncio
    async def test_reads_text(self, provider, legacy_repo):
        content = await provider.fetch_file_content(str(legacy_repo), "src/constants.js")

        assert content == "export const CURRENCY = '$';\n"

    @pytest.mark.asyncio
    async def test_path_traversal_is_rejected(self, provider, legacy_repo):
        with pytest.raises(InvalidRepositoryError):
            await provider.fetch_file_content(str(legacy_repo), "../outside.txt")

    @pytest.mark.asyncio
    async def test_missing_file(self, provider, legacy_repo):
        with pytest.raises(RepositoryNotFoundError):
            await provider.fetch_file_content(str(legacy_repo), "src/ghost.js")

    @pytest.mark.asyncio
    async def test_oversized_file(self, provider, legacy_repo, monkeypatch):
        monkeypatch.setattr(repository_module, "MAX_FILE_BYTES", 4)

        with pytest.raises(RepositoryError, match="too large"):
            await provider.fetch_file_content(str(legacy_repo), "src/constants.js")
