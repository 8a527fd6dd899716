"""Prompt context assembly from legacy sources."""

from repo_migrator.rag.context_assembler import (
    MAX_RELATED_CONTEXT_CHARS,
    MAX_RELATED_CONTEXT_FILES,
    MAX_SOURCE_CONTEXT_CHARS,
    TRUNCATION_MARKER,
    build_related_context,
    build_source_context,
    collect_generated_dependencies,
    format_instructions,
    select_related_paths,
    truncate_text,
)

__all__ = [
    "MAX_RELATED_CONTEXT_CHARS",
    "MAX_RELATED_CONTEXT_FILES",
    "MAX_SOURCE_CONTEXT_CHARS",
    "TRUNCATION_MARKER",
    "build_related_context",
    "build_source_context",
    "collect_generated_dependencies",
    "format_instructions",
    "select_related_paths",
    "truncate_text",
]
