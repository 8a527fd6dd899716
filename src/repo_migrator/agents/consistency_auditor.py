"""Consistency Auditor: static cross-file checks over generated files."""

from collections.abc import Iterable

from repo_migrator.graph import analyze_imports
from repo_migrator.models import GeneratedFile

KNOWN_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".json")
INDEX_FILES = ("index.ts", "index.tsx", "index.js", "index.jsx", "index.mjs", "index.cjs")


def has_generated_path_for_import(import_path: str, generated_paths: set[str]) -> bool:
    """True if ``import_path`` names a generated file.

    Matches the exact path, the path plus a known extension, or an index
    file inside a directory of that name.
    """
    if import_path in generated_paths:
        return True
    if any(f"{import_path}{extension}" in generated_paths for extension in KNOWN_EXTENSIONS):
        return True
    return any(f"{import_path}/{index_file}" in generated_paths for index_file in INDEX_FILES)


class ConsistencyAuditor:
    """Flags empty files and relative imports that resolve to no generated file."""

    def collect_issues(self, files: Iterable[GeneratedFile]) -> list[str]:
        """Return distinct issue strings in first-seen order."""
        snapshot = list(files)
        generated_paths = {file.path for file in snapshot}
        issues: dict[str, None] = {}

        for file in snapshot:
            if not file.content:
                issues[f"{file.path} has no generated content."] = None
                continue
            for import_path in analyze_imports(file.content, file.path):
                if not has_generated_path_for_import(import_path, generated_paths):
                    issues[f"{file.path} imports missing dependency {import_path}."] = None

        return list(issues)
