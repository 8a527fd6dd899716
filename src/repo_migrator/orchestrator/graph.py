"""LangGraph orchestrator graph for the migration pipeline.

Wires the analyze, scaffold, generate, verify and report phases into a
StateGraph. A node that fails records the error and routes the run to END;
cancellation is re-raised so the caller can mark the run idle.
"""

import time
from typing import Awaitable, Callable

from langgraph.graph import END, START, StateGraph

from repo_migrator.agents import (
    ConsistencyAuditor,
    FileGenerator,
    ProjectArchitect,
    RepositoryAnalyst,
    RepositoryVerifier,
)
from repo_migrator.models import AgentStatus, LogSeverity
from repo_migrator.orchestrator.events import FileEvents, TreeFileEvents
from repo_migrator.orchestrator.exceptions import GraphBuildError
from repo_migrator.orchestrator.logs import LogFn, null_log
from repo_migrator.orchestrator.phases import (
    DiagramGate,
    run_analyze_phase,
    run_generate_phase,
    run_scaffold_phase,
)
from repo_migrator.orchestrator.report import generate_report
from repo_migrator.orchestrator.state import MigrationState
from repo_migrator.orchestrator.verification import run_verification_phase
from repo_migrator.providers import RepositoryProvider
from repo_migrator.resilience import CancellationToken, is_abort_error

StatusCallback = Callable[[AgentStatus], None]
NodeFn = Callable[[MigrationState], Awaitable[dict]]


def now_ms() -> float:
    return time.time() * 1000


def _failure(node_name: str, exc: Exception, log: LogFn) -> dict:
    log(f"{node_name} failed: {exc}", LogSeverity.ERROR, AgentStatus.ERROR)
    return {"errors": [f"{node_name} error: {exc}"], "status": AgentStatus.ERROR}


def _notify(on_status: StatusCallback | None, status: AgentStatus) -> None:
    if on_status is not None:
        on_status(status)


def make_analyze_node(
    provider: RepositoryProvider,
    analyst: RepositoryAnalyst,
    *,
    ensure_diagram_api_key: DiagramGate | None = None,
    log: LogFn = null_log,
    on_status: StatusCallback | None = None,
    token: CancellationToken | None = None,
) -> NodeFn:
    """Factory: returns a node closure that fetches and analyzes the repository.

    On error: returns {"errors": [str], "status": ERROR}
    """

    async def analyze_node(state: MigrationState) -> dict:
        _notify(on_status, AgentStatus.ANALYZING)
        try:
            result = await run_analyze_phase(
                state["url"],
                provider,
                analyst,
                include_directories=state["include_directories"],
                exclude_directories=state["exclude_directories"],
                config=state["config"],
                ensure_diagram_api_key=ensure_diagram_api_key,
                log=log,
                token=token,
            )
        except Exception as exc:
            if is_abort_error(exc):
                raise
            return _failure("analyze_node", exc, log)
        return {
            "source_files": result.files,
            "analysis": result.analysis,
            "diagram": result.diagram,
            "repo_scope": result.repo_scope,
            "status": AgentStatus.PLANNING,
        }

    return analyze_node


def make_scaffold_node(
    provider: RepositoryProvider,
    architect: ProjectArchitect,
    *,
    log: LogFn = null_log,
    on_status: StatusCallback | None = None,
    token: CancellationToken | None = None,
) -> NodeFn:
    """Factory: returns a node closure that reads legacy context and plans the target tree.

    On error: returns {"errors": [str], "status": ERROR}
    """

    async def scaffold_node(state: MigrationState) -> dict:
        _notify(on_status, AgentStatus.CONVERTING)
        try:
            result = await run_scaffold_phase(
                state["url"],
                provider,
                architect,
                state["source_files"],
                state["analysis"],
                state["config"],
                log=log,
                token=token,
            )
        except Exception as exc:
            if is_abort_error(exc):
                raise
            return _failure("scaffold_node", exc, log)
        return {
            "scaffold": result,
            "generated_files": result.generated_files,
            "status": AgentStatus.CONVERTING,
        }

    return scaffold_node


def make_generate_node(
    generator: FileGenerator,
    *,
    events: FileEvents | None = None,
    log: LogFn = null_log,
    on_status: StatusCallback | None = None,
    token: CancellationToken | None = None,
) -> NodeFn:
    """Factory: returns a node closure that generates every target file.

    Per-file failures are recorded on the tree and do not fail the node.

    On error: returns {"errors": [str], "status": ERROR}
    """

    async def generate_node(state: MigrationState) -> dict:
        _notify(on_status, AgentStatus.CONVERTING)
        tree_events = TreeFileEvents(state["generated_files"], listener=events)
        try:
            outcome = await run_generate_phase(
                state["generated_files"],
                state["analysis"],
                state["scaffold"],
                generator,
                state["config"],
                events=tree_events,
                log=log,
                token=token,
            )
        except Exception as exc:
            if is_abort_error(exc):
                raise
            return _failure("generate_node", exc, log)
        return {
            "generation": outcome,
            "generated_files": tree_events.nodes,
            "status": AgentStatus.VERIFYING,
        }

    return generate_node


def make_verify_node(
    verifier: RepositoryVerifier,
    auditor: ConsistencyAuditor | None = None,
    *,
    events: FileEvents | None = None,
    log: LogFn = null_log,
    on_status: StatusCallback | None = None,
    token: CancellationToken | None = None,
) -> NodeFn:
    """Factory: returns a node closure that runs the verification loop.

    A failing verification is a result, not an error.

    On error: returns {"errors": [str], "status": ERROR}
    """

    async def verify_node(state: MigrationState) -> dict:
        _notify(on_status, AgentStatus.VERIFYING)
        tree_events = TreeFileEvents(state["generated_files"], listener=events)
        try:
            verification = await run_verification_phase(
                state["generated_files"],
                state["analysis"],
                verifier,
                auditor=auditor,
                on_file_fixed=tree_events.on_file_fixed,
                log=log,
                token=token,
            )
        except Exception as exc:
            if is_abort_error(exc):
                raise
            return _failure("verify_node", exc, log)
        return {"verification": verification, "generated_files": tree_events.nodes}

    return verify_node


def make_report_node(
    *,
    clock: Callable[[], float] = now_ms,
    log: LogFn = null_log,
    on_status: StatusCallback | None = None,
) -> NodeFn:
    """Factory: returns a node closure that builds the migration report."""

    async def report_node(state: MigrationState) -> dict:
        try:
            report = generate_report(
                state["source_files"],
                state["generated_files"],
                state["start_ms"],
                clock(),
                state["analysis"],
                state["config"],
            )
        except Exception as exc:
            return _failure("report_node", exc, log)
        log("Migration sequence complete.", LogSeverity.SUCCESS, AgentStatus.COMPLETED)
        _notify(on_status, AgentStatus.COMPLETED)
        return {"report": report, "status": AgentStatus.COMPLETED}

    return report_node


def continue_or_end(state: MigrationState) -> str:
    """Route to the next phase unless an error has been recorded."""
    return "end" if state["errors"] else "continue"


def build_graph(
    provider: RepositoryProvider,
    analyst: RepositoryAnalyst,
    architect: ProjectArchitect,
    generator: FileGenerator,
    verifier: RepositoryVerifier,
    auditor: ConsistencyAuditor | None = None,
    *,
    events: FileEvents | None = None,
    log: LogFn = null_log,
    on_status: StatusCallback | None = None,
    ensure_diagram_api_key: DiagramGate | None = None,
    clock: Callable[[], float] = now_ms,
    token: CancellationToken | None = None,
):
    """Build and compile the migration StateGraph.

    Edge topology:
      START -> analyze_node -> scaffold_node -> generate_node -> verify_node -> report_node -> END
      every node except report_node -> conditional(continue_or_end) -> {next node, END}

    Args:
        provider: Repository structure/content provider.
        analyst: Analysis agent.
        architect: Scaffold agent.
        generator: File generation agent.
        verifier: Remote verification agent.
        auditor: Static consistency checker.
        events: Per-file and progress listener.
        log: Structured run log.
        on_status: Called when the run enters a new AgentStatus.
        ensure_diagram_api_key: Gate for the optional diagram call.
        clock: Millisecond clock used for the report's end time.
        token: Cancellation token for the run.

    Returns:
        CompiledStateGraph ready to ``ainvoke``.

    Raises:
        GraphBuildError: If graph construction fails.
    """
    try:
        graph = StateGraph(MigrationState)

        graph.add_node(
            "analyze_node",
            make_analyze_node(
                provider,
                analyst,
                ensure_diagram_api_key=ensure_diagram_api_key,
                log=log,
                on_status=on_status,
                token=token,
            ),
        )
        graph.add_node(
            "scaffold_node",
            make_scaffold_node(provider, architect, log=log, on_status=on_status, token=token),
        )
        graph.add_node(
            "generate_node",
            make_generate_node(generator, events=events, log=log, on_status=on_status, token=token),
        )
        graph.add_node(
            "verify_node",
            make_verify_node(
                verifier, auditor, events=events, log=log, on_status=on_status, token=token
            ),
        )
        graph.add_node("report_node", make_report_node(clock=clock, log=log, on_status=on_status))

        graph.add_edge(START, "analyze_node")
        for source, target in (
            ("analyze_node", "scaffold_node"),
            ("scaffold_node", "generate_node"),
            ("generate_node", "verify_node"),
            ("verify_node", "report_node"),
        ):
            graph.add_conditional_edges(
                source,
                continue_or_end,
                {"continue": target, "end": END},
            )
        graph.add_edge("report_node", END)

        return graph.compile()

    except Exception as exc:
        raise GraphBuildError(f"Failed to build migration graph: {exc}") from exc
