"""Generation scheduling for target files."""

from repo_migrator.planning.scheduler import (
    build_target_dependency_map,
    get_generation_priority,
    order_target_files,
    order_target_paths,
)

__all__ = [
    "build_target_dependency_map",
    "get_generation_priority",
    "order_target_files",
    "order_target_paths",
]
