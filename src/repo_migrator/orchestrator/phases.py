"""Analyze, scaffold, generate and regenerate phases.

Each phase is an async step that consumes the previous phase's output,
reports through a ``log(message, severity, phase)`` callable and observes
the run's cancellation token. Cancellation is never swallowed.
"""

import logging
from typing import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field

from repo_migrator.agents import FileGenerator, ProjectArchitect, RepositoryAnalyst
from repo_migrator.graph import DependencyGraph, build_dependency_graph
from repo_migrator.mapping import build_semantic_matches
from repo_migrator.models import (
    AgentStatus,
    AnalysisResult,
    FileNode,
    FileType,
    GenerationProgress,
    LogSeverity,
    MigrationConfig,
    RepoScopeInfo,
)
from repo_migrator.orchestrator.events import FileEvents
from repo_migrator.orchestrator.exceptions import ScopeFilterError, UnknownTargetFileError
from repo_migrator.orchestrator.logs import LogFn, null_log
from repo_migrator.planning import build_target_dependency_map, order_target_paths
from repo_migrator.providers import RepositoryProvider
from repo_migrator.rag import (
    build_related_context,
    build_source_context,
    collect_generated_dependencies,
)
from repo_migrator.resilience import CancellationToken, abort_if_signaled, is_abort_error
from repo_migrator.utils import (
    apply_directory_scope,
    build_tree_from_paths,
    extract_available_directories,
    file_paths,
    flatten_files,
    is_image_file,
    prune_tree_to_scoped_files,
)

logger = logging.getLogger(__name__)

MAX_ANALYSIS_PATHS = 500
MAX_CONTEXT_FILES = 50
README_CANDIDATES = ("README.md", "readme.md")
README_PLACEHOLDER = "No README found in repository."
_CONTEXT_EXCLUDED_SUFFIXES = (".md", ".json", ".lock")

DiagramGate = Callable[[], Awaitable[bool]]


class AnalyzePhaseResult(BaseModel):
    model_config = ConfigDict(frozen=False)

    files: list[FileNode] = Field(default_factory=list)
    analysis: AnalysisResult
    diagram: str | None = None
    repo_scope: RepoScopeInfo


class ScaffoldPhaseResult(BaseModel):
    model_config = ConfigDict(frozen=False)

    source_context: str = ""
    file_contents: dict[str, str] = Field(default_factory=dict)
    files_read: list[str] = Field(default_factory=list)
    graph: DependencyGraph = Field(default_factory=dict)
    generated_file_paths: list[str] = Field(default_factory=list)
    generated_files: list[FileNode] = Field(default_factory=list)


class GenerationOutcome(BaseModel):
    model_config = ConfigDict(frozen=False)

    order: list[str] = Field(default_factory=list)
    generated: dict[str, str] = Field(default_factory=dict)
    failed: list[str] = Field(default_factory=list)
    mapped_count: int = 0


async def _fetch_readme(
    url: str,
    provider: RepositoryProvider,
    log: LogFn,
    token: CancellationToken | None,
) -> str:
    for candidate in README_CANDIDATES:
        try:
            return await provider.fetch_file_content(url, candidate, token=token)
        except Exception as exc:
            if is_abort_error(exc):
                raise
            logger.debug("README lookup for %s failed: %s", candidate, exc)
    log(
        "README.md not found, proceeding with file structure analysis only.",
        LogSeverity.WARNING,
        AgentStatus.ANALYZING,
    )
    return README_PLACEHOLDER


async def run_analyze_phase(
    url: str,
    provider: RepositoryProvider,
    analyst: RepositoryAnalyst,
    *,
    include_directories: list[str] | None = None,
    exclude_directories: list[str] | None = None,
    config: MigrationConfig | None = None,
    ensure_diagram_api_key: DiagramGate | None = None,
    log: LogFn = null_log,
    token: CancellationToken | None = None,
) -> AnalyzePhaseResult:
    """Fetch the repository, scope it and run the analysis call.

    Args:
        url: Repository reference understood by ``provider``.
        provider: Repository structure/content provider.
        analyst: Analysis agent.
        include_directories: Only keep files under these directories.
        exclude_directories: Drop files under these directories.
        config: User configuration.
        ensure_diagram_api_key: Gate for the optional diagram call.
            Defaults to the analyst client's image support.
        log: Structured run log.
        token: Cancellation token for the run.

    Returns:
        AnalyzePhaseResult with the scoped tree, analysis, diagram and scope.

    Raises:
        ScopeFilterError: If the filters leave no files.
        OperationCancelledError: If the run is cancelled.
    """
    include_directories = include_directories or []
    exclude_directories = exclude_directories or []
    config = config or MigrationConfig()

    abort_if_signaled(token)
    log(f"Cloning repository structure from {url}...", LogSeverity.INFO, AgentStatus.ANALYZING)
    files = await provider.fetch_structure(url, token=token)

    all_paths = file_paths(files)
    available_directories = extract_available_directories(all_paths)
    scoped_paths = apply_directory_scope(all_paths, include_directories, exclude_directories)
    if not scoped_paths:
        raise ScopeFilterError(
            "No files matched the selected include/exclude directories. "
            "Adjust the filters and retry."
        )
    scoped_files = prune_tree_to_scoped_files(files, set(scoped_paths))
    log(
        f"File index built: {len(all_paths)} source files detected.",
        LogSeverity.SUCCESS,
        AgentStatus.ANALYZING,
    )

    log("Reading README and package configuration...", LogSeverity.INFO, AgentStatus.ANALYZING)
    readme = await _fetch_readme(url, provider, log, token)

    truncated = len(scoped_paths) > MAX_ANALYSIS_PATHS
    if truncated:
        log(
            f"Large repository scope: analyzing first {MAX_ANALYSIS_PATHS} of "
            f"{len(scoped_paths)} files. Refine include/exclude directories to target "
            "a smaller subset.",
            LogSeverity.WARNING,
            AgentStatus.ANALYZING,
        )
    if include_directories or exclude_directories:
        log(
            f"Scope filters applied. Include: {len(include_directories)}, "
            f"Exclude: {len(exclude_directories)}.",
            LogSeverity.INFO,
            AgentStatus.ANALYZING,
        )

    limited_paths = scoped_paths[:MAX_ANALYSIS_PATHS]
    repo_scope = RepoScopeInfo(
        total_files=len(all_paths),
        filtered_files=len(scoped_paths),
        analyzed_files=len(limited_paths),
        truncated=truncated,
        available_directories=available_directories,
    )

    log("Running repository analysis...", LogSeverity.INFO, AgentStatus.ANALYZING)
    analysis = await analyst.analyze(limited_paths, readme, config, token=token)
    log(
        f"Detected: {analysis.detected_framework}. Target locked: {config.target_stack}.",
        LogSeverity.SUCCESS,
        AgentStatus.PLANNING,
    )
    if analysis.semantic_file_mappings:
        log(
            f"Semantic mapping plan created ({len(analysis.semantic_file_mappings)} mappings).",
            LogSeverity.SUCCESS,
            AgentStatus.PLANNING,
        )

    diagram = None
    if analysis.architecture_description:
        log("Generating legacy architecture diagram...", LogSeverity.INFO, AgentStatus.PLANNING)
        if ensure_diagram_api_key is not None:
            can_generate = await ensure_diagram_api_key()
        else:
            can_generate = analyst.llm.has_image_support()
        abort_if_signaled(token)
        if can_generate:
            diagram = await analyst.generate_diagram(analysis.architecture_description, token=token)
            if diagram:
                log("Legacy architecture diagram rendered.", LogSeverity.SUCCESS, AgentStatus.PLANNING)
            else:
                log("Diagram generation failed (Quota/Permission).", LogSeverity.ERROR, AgentStatus.PLANNING)
        else:
            log("Skipping diagram: image-capable API key required.", LogSeverity.WARNING, AgentStatus.PLANNING)

    return AnalyzePhaseResult(
        files=scoped_files,
        analysis=analysis,
        diagram=diagram,
        repo_scope=repo_scope,
    )


def select_context_files(source_files: list[FileNode], limit: int = MAX_CONTEXT_FILES) -> list[FileNode]:
    """Legacy files worth reading for context: no docs, manifests, locks or images."""
    candidates = [
        node for node in flatten_files(source_files)
        if node.is_file
        and not node.name.endswith(_CONTEXT_EXCLUDED_SUFFIXES)
        and not is_image_file(node.name)
    ]
    return candidates[:limit]


async def run_scaffold_phase(
    url: str,
    provider: RepositoryProvider,
    architect: ProjectArchitect,
    source_files: list[FileNode],
    analysis: AnalysisResult,
    config: MigrationConfig,
    *,
    log: LogFn = null_log,
    token: CancellationToken | None = None,
) -> ScaffoldPhaseResult:
    """Read legacy context, build the dependency graph and plan the target tree.

    A single unreadable file is skipped; cancellation always propagates.
    """
    abort_if_signaled(token)
    log(
        f"Ingesting key legacy source files for context (Max {MAX_CONTEXT_FILES})...",
        LogSeverity.INFO,
        AgentStatus.CONVERTING,
    )

    files_to_read = select_context_files(source_files)
    file_contents: dict[str, str] = {}
    for node in files_to_read:
        abort_if_signaled(token)
        try:
            file_contents[node.path] = await provider.fetch_file_content(url, node.path, token=token)
        except Exception as exc:
            if is_abort_error(exc):
                raise
            logger.warning("Failed to read %s: %s", node.path, exc)

    source_context = build_source_context(file_contents)
    log(
        f"Smart Context loaded: {len(source_context)} chars from {len(file_contents)} files.",
        LogSeverity.SUCCESS,
        AgentStatus.CONVERTING,
    )

    log("Building Dependency Graph...", LogSeverity.INFO, AgentStatus.CONVERTING)
    graph = build_dependency_graph(
        FileNode(path=path, name=path.rsplit("/", 1)[-1], type=FileType.FILE, content=content)
        for path, content in file_contents.items()
    )
    log(
        f"Dependency Graph built with {len(graph)} nodes.",
        LogSeverity.SUCCESS,
        AgentStatus.CONVERTING,
    )

    tests_label = "with tests" if config.include_tests else "no tests"
    log(
        f"Designing {config.target_stack} project structure "
        f"({config.ui_framework}, {config.state_management}, {tests_label})...",
        LogSeverity.INFO,
        AgentStatus.CONVERTING,
    )
    generated_paths = await architect.design_structure(
        analysis.summary, config, config.include_tests, token=token
    )
    generated_files = build_tree_from_paths(generated_paths)
    log(
        f"Project scaffolded: {len(generated_paths)} files created.",
        LogSeverity.SUCCESS,
        AgentStatus.CONVERTING,
    )

    return ScaffoldPhaseResult(
        source_context=source_context,
        file_contents=file_contents,
        files_read=[node.path for node in files_to_read if node.path in file_contents],
        graph=graph,
        generated_file_paths=generated_paths,
        generated_files=generated_files,
    )


async def run_generate_phase(
    generated_files: list[FileNode],
    analysis: AnalysisResult,
    scaffold: ScaffoldPhaseResult,
    generator: FileGenerator,
    config: MigrationConfig,
    *,
    events: FileEvents | None = None,
    log: LogFn = null_log,
    token: CancellationToken | None = None,
) -> GenerationOutcome:
    """Generate every target file in dependency-aware order, one at a time.

    A failing file is marked and logged; the remaining files still run.

    Args:
        generated_files: Target FileNode tree from the scaffold phase.
        analysis: Analysis with explicit mapping hints.
        scaffold: Legacy contents, source context and dependency graph.
        generator: File generation agent.
        config: User configuration.
        events: Per-file and progress hooks.
        log: Structured run log.
        token: Cancellation token for the run.

    Returns:
        GenerationOutcome with the order used, generated contents and failures.

    Raises:
        OperationCancelledError: If the run is cancelled.
    """
    events = events or FileEvents()
    target_paths = file_paths(generated_files)

    matches = build_semantic_matches(
        target_paths, scaffold.files_read, analysis.semantic_file_mappings
    )
    mapped_count = sum(1 for match in matches.values() if match.primary_source_path)
    log(
        f"Semantic context mapping resolved for {mapped_count}/{len(target_paths)} generated files.",
        LogSeverity.INFO,
        AgentStatus.CONVERTING,
    )

    dependency_map = build_target_dependency_map(target_paths, matches, scaffold.graph)
    order = order_target_paths(target_paths, dependency_map)
    log(
        "Generation order optimized using dependency-aware planning.",
        LogSeverity.INFO,
        AgentStatus.CONVERTING,
    )

    outcome = GenerationOutcome(order=order, mapped_count=mapped_count)
    progress = GenerationProgress(current=0, total=len(order))
    events.on_progress(progress.model_copy())

    for path in order:
        abort_if_signaled(token)
        progress.current_file = path
        events.on_file_start(path)
        log(f"Generating {path}...", LogSeverity.INFO, AgentStatus.CONVERTING)
        try:
            related_context = build_related_context(
                matches.get(path),
                scaffold.graph,
                scaffold.file_contents,
                generated_dependencies=collect_generated_dependencies(
                    dependency_map.get(path, ()), outcome.generated
                ),
            )
            content = await generator.generate(
                path,
                scaffold.source_context,
                related_context,
                config,
                on_chunk=lambda chunk, target=path: events.on_file_chunk(target, chunk),
                token=token,
            )
            outcome.generated[path] = content
            events.on_file_generated(path, content)
        except Exception as exc:
            if is_abort_error(exc):
                raise
            logger.warning("Generation of %s failed: %s", path, exc)
            outcome.failed.append(path)
            events.on_file_error(path, exc)
            log(f"Failed to generate {path}", LogSeverity.ERROR, AgentStatus.CONVERTING)
        progress.current += 1
        events.on_progress(progress.model_copy())

    return outcome


async def run_regenerate_file_phase(
    target_path: str,
    generated_files: list[FileNode],
    analysis: AnalysisResult,
    scaffold: ScaffoldPhaseResult | None,
    generator: FileGenerator,
    config: MigrationConfig,
    *,
    instructions: str | None = None,
    events: FileEvents | None = None,
    log: LogFn = null_log,
    token: CancellationToken | None = None,
) -> str:
    """Regenerate one scaffolded target file with optional instructions.

    Raises:
        UnknownTargetFileError: If ``target_path`` is not a scaffolded file.
        OperationCancelledError: If the run is cancelled.
        Exception: The generation failure, after marking the file as errored.
    """
    events = events or FileEvents()
    scaffold = scaffold or ScaffoldPhaseResult()
    target_nodes = {node.path: node for node in flatten_files(generated_files) if node.is_file}
    if target_path not in target_nodes:
        raise UnknownTargetFileError(f"Cannot regenerate unknown target file: {target_path}")

    target_paths = list(target_nodes)
    matches = build_semantic_matches(
        target_paths, scaffold.files_read, analysis.semantic_file_mappings
    )
    dependency_map = build_target_dependency_map(target_paths, matches, scaffold.graph)
    current_contents = {
        path: node.content for path, node in target_nodes.items() if node.content and path != target_path
    }
    related_context = build_related_context(
        matches.get(target_path),
        scaffold.graph,
        scaffold.file_contents,
        generated_dependencies=collect_generated_dependencies(
            dependency_map.get(target_path, ()), current_contents
        ),
        instructions=instructions,
    )

    has_instructions = bool(instructions and instructions.strip())
    abort_if_signaled(token)
    events.on_file_start(target_path)
    log(
        f"Regenerating {target_path}{' with custom instructions' if has_instructions else ''}...",
        LogSeverity.INFO,
        AgentStatus.CONVERTING,
    )
    try:
        content = await generator.generate(
            target_path,
            scaffold.source_context,
            related_context,
            config,
            on_chunk=lambda chunk: events.on_file_chunk(target_path, chunk),
            token=token,
        )
    except Exception as exc:
        if is_abort_error(exc):
            raise
        events.on_file_error(target_path, exc)
        log(f"Failed to regenerate {target_path}", LogSeverity.ERROR, AgentStatus.CONVERTING)
        raise

    events.on_file_generated(target_path, content)
    return content
