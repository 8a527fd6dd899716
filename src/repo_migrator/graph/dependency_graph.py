"""Regex-based import scanning and the legacy file dependency graph.

The graph maps every file with content to the repo-relative paths it
imports. Import targets are kept as written after resolution, so they may
lack an extension or point at a directory; use ``resolve_graph_key`` to
turn one into a canonical graph key.
"""

import re
from collections import deque
from collections.abc import Iterable

from repo_migrator.models import FileNode

DependencyGraph = dict[str, list[str]]

DEFAULT_RELATED_LIMIT = 5

_IMPORT_PATTERN = re.compile(
    r"""(?:import\s+(?:type\s+)?[\w*\s{},$]*?\s*from\s+['"]([^'"]+)['"])"""
    r"""|(?:export\s+(?:type\s+)?[\w*\s{},$]*?\s*from\s+['"]([^'"]+)['"])"""
    r"""|(?:import\s+['"]([^'"]+)['"])"""
    r"""|(?:(?:require|import)\s*\(\s*['"]([^'"]+)['"]\s*\))"""
)

_INDEX_SUFFIX = "/index."


def is_relative_import(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../")


def resolve_import_path(importer_path: str, specifier: str) -> str:
    """Resolve a relative specifier against the importing file's directory.

    >>> resolve_import_path("src/pages/Home.js", "../components/Header")
    'src/components/Header'
    """
    segments = importer_path.split("/")[:-1]
    for part in specifier.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if segments:
                segments.pop()
            continue
        segments.append(part)
    return "/".join(segments)


def analyze_imports(content: str, file_path: str) -> list[str]:
    """Return resolved relative imports of ``content`` in source order.

    Bare package specifiers (``react``, ``@scope/pkg``) are ignored.
    """
    imports: list[str] = []
    for match in _IMPORT_PATTERN.finditer(content):
        specifier = next((group for group in match.groups() if group), None)
        if specifier and is_relative_import(specifier):
            imports.append(resolve_import_path(file_path, specifier))
    return imports


def build_dependency_graph(files: Iterable[FileNode]) -> DependencyGraph:
    """Build the import graph for every file node with non-empty content.

    Args:
        files: FileNode forest; directories are walked recursively.

    Returns:
        Mapping of file path to its resolved relative imports.
    """
    graph: DependencyGraph = {}

    def visit(node: FileNode) -> None:
        if node.is_file and node.content:
            graph[node.path] = analyze_imports(node.content, node.path)
        for child in node.children or []:
            visit(child)

    for node in files:
        visit(node)
    return graph


def resolve_graph_key(dependency: str, graph: DependencyGraph) -> str | None:
    """Match an import target to a graph key.

    Tries the exact key, then the key with an extension appended, then an
    index file inside a directory of that name.
    """
    if dependency in graph:
        return dependency
    with_extension = dependency + "."
    index_prefix = dependency + _INDEX_SUFFIX
    for key in graph:
        if key.startswith(with_extension):
            return key
    for key in graph:
        if key.startswith(index_prefix):
            return key
    return None


def get_related_files(
    start_path: str,
    graph: DependencyGraph,
    limit: int = DEFAULT_RELATED_LIMIT,
) -> list[str]:
    """Breadth-first walk of the import graph from ``start_path``.

    Args:
        start_path: Graph key to start from; never part of the result.
        graph: Dependency graph to walk.
        limit: Maximum number of distinct related paths to return.

    Returns:
        Related graph keys in discovery order.
    """
    related: list[str] = []
    seen: set[str] = {start_path}
    queue: deque[str] = deque([start_path])

    while queue and len(related) < limit:
        current = queue.popleft()
        for dependency in graph.get(current, []):
            if len(related) >= limit:
                break
            key = resolve_graph_key(dependency, graph)
            if key is None or key in seen:
                continue
            seen.add(key)
            related.append(key)
            queue.append(key)

    return related
