"""Bounded prompt context for a single target file.

The related-context block lists the primary matched source first, then
its graph neighbours, then the remaining matched sources with a few
neighbours each. Already generated target dependencies follow, and caller
instructions come last, outside the size ceiling.
"""

from collections.abc import Iterable, Mapping

from repo_migrator.graph import DependencyGraph, get_related_files
from repo_migrator.models import SemanticMatch

MAX_SOURCE_CONTEXT_CHARS = 50_000
MAX_RELATED_CONTEXT_CHARS = 24_000
MAX_RELATED_FILE_CHARS = 6_000
MAX_RELATED_CONTEXT_FILES = 8
SECONDARY_RELATED_LIMIT = 3
TRUNCATION_MARKER = "\n...[truncated]"

INSTRUCTIONS_HEADER = "--- USER REGENERATION INSTRUCTIONS ---"
INSTRUCTIONS_FOOTER = "Prioritize these instructions while generating this file."


def truncate_text(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` characters, marker included."""
    if len(text) <= limit:
        return text
    return text[:max(limit - len(TRUNCATION_MARKER), 0)] + TRUNCATION_MARKER


def build_source_context(
    file_contents: Mapping[str, str],
    limit: int = MAX_SOURCE_CONTEXT_CHARS,
) -> str:
    """Concatenate labeled legacy files into the shared source context."""
    context = "".join(
        f"\n\n--- FILE: {path} ---\n{content}" for path, content in file_contents.items()
    )
    return truncate_text(context, limit)


def select_related_paths(
    match: SemanticMatch | None,
    graph: DependencyGraph,
    file_contents: Mapping[str, str],
    limit: int = MAX_RELATED_CONTEXT_FILES,
) -> list[str]:
    """Pick the legacy files for a target's related-context block.

    Only paths with content are kept; the primary source, when present
    with content, is always first.
    """
    if match is None:
        return []

    ordered: list[str] = []
    seen: set[str] = set()

    def push(path: str) -> None:
        if path and path not in seen and file_contents.get(path):
            seen.add(path)
            ordered.append(path)

    if match.primary_source_path:
        push(match.primary_source_path)
        for path in get_related_files(match.primary_source_path, graph, limit):
            push(path)

    for source_path in match.source_paths:
        push(source_path)
        for path in get_related_files(source_path, graph, SECONDARY_RELATED_LIMIT):
            push(path)

    return ordered[:limit]


def format_instructions(instructions: str | None) -> str:
    trimmed = (instructions or "").strip()
    if not trimmed:
        return ""
    return f"\n\n{INSTRUCTIONS_HEADER}\n{trimmed}\n{INSTRUCTIONS_FOOTER}"


def build_related_context(
    match: SemanticMatch | None,
    graph: DependencyGraph,
    file_contents: Mapping[str, str],
    generated_dependencies: Mapping[str, str] | None = None,
    instructions: str | None = None,
) -> str:
    """Assemble the related-context block for one target file.

    Args:
        match: The target's SemanticMatch; None or an empty match yields
            no source sections.
        graph: Legacy dependency graph.
        file_contents: Legacy file contents keyed by path.
        generated_dependencies: Finalized contents of target files this
            target depends on.
        instructions: Free-form caller instructions, appended last.

    Returns:
        The context block; empty when there is nothing to include.
    """
    sections: list[str] = []
    primary = match.primary_source_path if match else None
    for path in select_related_paths(match, graph, file_contents):
        label = "PRIMARY" if path == primary else "RELATED"
        body = truncate_text(file_contents[path], MAX_RELATED_FILE_CHARS)
        sections.append(f"\n\n--- {label} SOURCE FILE: {path} ---\n{body}")

    for path, content in (generated_dependencies or {}).items():
        if not content:
            continue
        body = truncate_text(content, MAX_RELATED_FILE_CHARS)
        sections.append(f"\n\n--- GENERATED DEPENDENCY: {path} ---\n{body}")

    block = truncate_text("\n".join(sections), MAX_RELATED_CONTEXT_CHARS)
    return block + format_instructions(instructions)


def collect_generated_dependencies(
    dependency_paths: Iterable[str],
    generated_contents: Mapping[str, str],
) -> dict[str, str]:
    """Finalized contents of the given target paths, in sorted path order."""
    return {
        path: generated_contents[path]
        for path in sorted(dependency_paths)
        if generated_contents.get(path)
    }
