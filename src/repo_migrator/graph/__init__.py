"""Legacy source dependency graph."""

from repo_migrator.graph.dependency_graph import (
    DependencyGraph,
    analyze_imports,
    build_dependency_graph,
    get_related_files,
    is_relative_import,
    resolve_graph_key,
    resolve_import_path,
)

__all__ = [
    "DependencyGraph",
    "analyze_imports",
    "build_dependency_graph",
    "get_related_files",
    "is_relative_import",
    "resolve_graph_key",
    "resolve_import_path",
]
