"""Utility helpers for the repository migrator."""

from repo_migrator.utils.tree import (
    apply_directory_scope,
    build_tree_from_paths,
    extract_available_directories,
    file_paths,
    find_node,
    flatten_files,
    is_image_file,
    normalize_directory_list,
    path_in_directory,
    prune_tree_to_scoped_files,
)

__all__ = [
    "apply_directory_scope",
    "build_tree_from_paths",
    "extract_available_directories",
    "file_paths",
    "find_node",
    "flatten_files",
    "is_image_file",
    "normalize_directory_list",
    "path_in_directory",
    "prune_tree_to_scoped_files",
]
