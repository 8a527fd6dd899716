"""Helpers for flat path lists and FileNode trees."""

import re
from collections.abc import Iterable

from repo_migrator.models import FileNode, FileStatus, FileType

_IMAGE_EXTENSIONS = re.compile(r"\.(png|jpg|jpeg|gif|ico|svg|webp|bmp)$", re.IGNORECASE)


def flatten_files(nodes: Iterable[FileNode]) -> list[FileNode]:
    """Pre-order flatten of a FileNode forest (directories included)."""
    result: list[FileNode] = []
    for node in nodes:
        result.append(node)
        if node.children:
            result.extend(flatten_files(node.children))
    return result


def file_paths(nodes: Iterable[FileNode]) -> list[str]:
    return [node.path for node in flatten_files(nodes) if node.is_file]


def build_tree_from_paths(paths: Iterable[str]) -> list[FileNode]:
    """Materialize a FileNode forest from flat file paths.

    Paths are sorted first; intermediate directories are created once and
    every node starts in the pending state.

    Args:
        paths: Slash-delimited, root-relative file paths.

    Returns:
        Root-level nodes in sorted order.
    """
    roots: list[FileNode] = []
    by_path: dict[str, FileNode] = {}

    for path in sorted(paths):
        parts = path.split("/")
        current = ""
        for index, part in enumerate(parts):
            is_file = index == len(parts) - 1
            parent_path = current
            current = f"{current}/{part}" if current else part
            if current in by_path:
                continue
            node = FileNode(
                path=current,
                name=part,
                type=FileType.FILE if is_file else FileType.DIRECTORY,
                status=FileStatus.PENDING,
                children=None if is_file else [],
            )
            by_path[current] = node
            if index == 0:
                roots.append(node)
            else:
                parent = by_path.get(parent_path)
                if parent is not None and parent.children is not None:
                    parent.children.append(node)

    return roots


def normalize_directory_list(directories: Iterable[str]) -> list[str]:
    """Trim, strip surrounding slashes, drop empties, dedupe and sort."""
    cleaned = {directory.strip().strip("/") for directory in directories}
    return sorted(directory for directory in cleaned if directory)


def path_in_directory(path: str, directory: str) -> bool:
    return path == directory or path.startswith(f"{directory}/")


def apply_directory_scope(
    paths: Iterable[str],
    include_directories: Iterable[str] = (),
    exclude_directories: Iterable[str] = (),
) -> list[str]:
    """Filter file paths by include and exclude directory lists.

    An empty include list keeps every path. Excludes win over includes.
    """
    includes = normalize_directory_list(include_directories)
    excludes = normalize_directory_list(exclude_directories)

    scoped = list(paths)
    if includes:
        scoped = [p for p in scoped if any(path_in_directory(p, d) for d in includes)]
    if excludes:
        scoped = [p for p in scoped if not any(path_in_directory(p, d) for d in excludes)]
    return scoped


def extract_available_directories(paths: Iterable[str]) -> list[str]:
    """Sorted top-level directories that contain at least one file."""
    return sorted({path.split("/")[0] for path in paths if "/" in path})


def prune_tree_to_scoped_files(nodes: Iterable[FileNode], scoped_paths: set[str]) -> list[FileNode]:
    """Copy of ``nodes`` keeping only scoped files and non-empty directories."""
    pruned: list[FileNode] = []
    for node in nodes:
        if node.is_file:
            if node.path in scoped_paths:
                pruned.append(node)
            continue
        children = prune_tree_to_scoped_files(node.children or [], scoped_paths)
        if children:
            pruned.append(node.model_copy(update={"children": children}))
    return pruned


def find_node(nodes: Iterable[FileNode], path: str) -> FileNode | None:
    for node in flatten_files(nodes):
        if node.path == path:
            return node
    return None


def is_image_file(filename: str) -> bool:
    return bool(_IMAGE_EXTENSIONS.search(filename))
