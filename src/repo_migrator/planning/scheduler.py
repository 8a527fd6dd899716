"""Dependency-aware generation order for target files.

A derived graph over target paths is built from the legacy import graph:
target A depends on target B when a source matched to A imports (directly
or within a bounded horizon) a source matched to B. Kahn's algorithm then
orders the targets, breaking ties by priority tier and path.
"""

import heapq
import re
from collections.abc import Mapping, Sequence

from repo_migrator.graph import DependencyGraph, get_related_files, resolve_graph_key
from repo_migrator.models import FileNode, SemanticMatch

TRANSITIVE_DEPENDENCY_HORIZON = 6

PRIORITY_ROOT_CONFIG = 0
PRIORITY_SHARED = 1
PRIORITY_COMPONENT = 2
PRIORITY_API = 3
PRIORITY_PAGE = 4
PRIORITY_DEFAULT = 5
PRIORITY_TEST = 6

_TEST_FILE = re.compile(r"(\.test\.|\.spec\.|__tests__)", re.IGNORECASE)
_ROOT_CONFIG = re.compile(
    r"^(package\.json|tsconfig\.json|next\.config\.(js|mjs|ts)|postcss\.config\.(js|cjs|mjs)"
    r"|tailwind\.config\.(js|cjs|ts)|eslint\.config\.(js|cjs|mjs))$",
    re.IGNORECASE,
)
_SHARED = re.compile(r"^(src/)?(lib|types|utils|hooks|context|store)/", re.IGNORECASE)
_COMPONENT = re.compile(r"^(src/)?components/", re.IGNORECASE)
_API = re.compile(r"^(src/)?(app/api|pages/api|api)/", re.IGNORECASE)
_PAGE = re.compile(r"^(src/)?(app|pages)/", re.IGNORECASE)


def get_generation_priority(path: str) -> int:
    """Tie-break tier for ``path``; lower tiers are generated first.

    The first matching tier wins, so a test file under ``components/``
    stays with the components. Test files elsewhere go last.
    """
    if _ROOT_CONFIG.match(path):
        return PRIORITY_ROOT_CONFIG
    if _SHARED.match(path):
        return PRIORITY_SHARED
    if _COMPONENT.match(path):
        return PRIORITY_COMPONENT
    if _API.match(path):
        return PRIORITY_API
    if _PAGE.match(path):
        return PRIORITY_PAGE
    if _TEST_FILE.search(path):
        return PRIORITY_TEST
    return PRIORITY_DEFAULT


def _sort_key(path: str) -> tuple[int, str]:
    return get_generation_priority(path), path


def build_target_dependency_map(
    target_paths: Sequence[str],
    matches: Mapping[str, SemanticMatch],
    graph: DependencyGraph,
) -> dict[str, set[str]]:
    """Derive target -> prerequisite-targets edges from the legacy graph.

    Args:
        target_paths: Targets to schedule; edges to other paths are dropped.
        matches: SemanticMatch per target.
        graph: Legacy dependency graph.

    Returns:
        Mapping of every target path to the targets it must follow.
    """
    known = set(target_paths)
    source_to_targets: dict[str, set[str]] = {}
    for target_path, match in matches.items():
        for source_path in match.source_paths:
            source_to_targets.setdefault(source_path, set()).add(target_path)

    dependencies: dict[str, set[str]] = {path: set() for path in target_paths}
    for target_path, match in matches.items():
        if target_path not in known:
            continue
        source_dependencies: set[str] = set()
        for source_path in match.source_paths:
            for dependency in graph.get(source_path, []):
                key = resolve_graph_key(dependency, graph)
                if key is not None:
                    source_dependencies.add(key)
            source_dependencies.update(
                get_related_files(source_path, graph, TRANSITIVE_DEPENDENCY_HORIZON)
            )

        for source_dependency in source_dependencies:
            for dependency_target in source_to_targets.get(source_dependency, ()):
                if dependency_target != target_path and dependency_target in known:
                    dependencies[target_path].add(dependency_target)

    return dependencies


def order_target_paths(
    target_paths: Sequence[str],
    dependencies: Mapping[str, set[str]],
) -> list[str]:
    """Kahn's algorithm with a (priority, path) ordered ready queue.

    Paths left over because of cycles are appended in the same order.
    """
    unique_paths = list(dict.fromkeys(target_paths))
    indegree = {path: len(dependencies.get(path, ())) for path in unique_paths}
    dependents: dict[str, list[str]] = {path: [] for path in unique_paths}
    for path in unique_paths:
        for prerequisite in dependencies.get(path, ()):
            dependents.setdefault(prerequisite, []).append(path)

    ready = [_sort_key(path) for path in unique_paths if indegree[path] == 0]
    heapq.heapify(ready)

    ordered: list[str] = []
    while ready:
        _, current = heapq.heappop(ready)
        ordered.append(current)
        for dependent in dependents.get(current, []):
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                heapq.heappush(ready, _sort_key(dependent))

    placed = set(ordered)
    ordered.extend(sorted((p for p in unique_paths if p not in placed), key=_sort_key))
    return ordered


def order_target_files(
    files: Sequence[FileNode],
    matches: Mapping[str, SemanticMatch],
    graph: DependencyGraph,
) -> list[FileNode]:
    """Order target file nodes for sequential generation.

    Args:
        files: Flat list of target file nodes.
        matches: SemanticMatch per target path.
        graph: Legacy dependency graph.

    Returns:
        The same nodes, each exactly once, in generation order.
    """
    by_path = {file.path: file for file in files}
    paths = list(by_path)
    dependencies = build_target_dependency_map(paths, matches, graph)
    return [by_path[path] for path in order_target_paths(paths, dependencies)]
