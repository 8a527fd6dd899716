"""Multi-pass cross-file verification of the generated project."""

import logging
from typing import Callable

from repo_migrator.agents import ConsistencyAuditor, RepositoryVerifier
from repo_migrator.models import (
    AgentStatus,
    AnalysisResult,
    FileNode,
    GeneratedFile,
    LogSeverity,
    VerificationResult,
)
from repo_migrator.orchestrator.logs import LogFn, null_log
from repo_migrator.resilience import CancellationToken, abort_if_signaled
from repo_migrator.utils import flatten_files

logger = logging.getLogger(__name__)

REPO_VERIFICATION_PASSES = 2

FixCallback = Callable[[str, str], None]


def build_analysis_context(analysis: AnalysisResult) -> str:
    return f"{analysis.summary}\n" + "\n".join(analysis.migration_notes)


def _snapshot(contents: dict[str, str]) -> list[GeneratedFile]:
    return [GeneratedFile(path=path, content=content) for path, content in contents.items()]


async def run_verification_phase(
    generated_files: list[FileNode],
    analysis: AnalysisResult,
    verifier: RepositoryVerifier,
    *,
    auditor: ConsistencyAuditor | None = None,
    on_file_fixed: FixCallback | None = None,
    log: LogFn = null_log,
    token: CancellationToken | None = None,
    passes: int = REPO_VERIFICATION_PASSES,
) -> VerificationResult:
    """Run the fixed number of verification passes over the generated files.

    Every pass runs even when the previous one was clean. The verdict is
    taken from the post-fix static check plus whatever the last remote
    pass reported without fixing.

    Args:
        generated_files: Target FileNode tree with generated content.
        analysis: Analysis result supplying summary and migration notes.
        verifier: Remote verification agent.
        auditor: Static checker; a default ConsistencyAuditor if omitted.
        on_file_fixed: Called with (path, content) for every applied fix.
        log: Structured run log.
        token: Cancellation token for the run.
        passes: Number of passes to run.

    Returns:
        VerificationResult for the final snapshot.

    Raises:
        OperationCancelledError: If the run is cancelled.
    """
    auditor = auditor or ConsistencyAuditor()
    contents = {
        node.path: node.content or ""
        for node in flatten_files(generated_files)
        if node.is_file
    }
    analysis_context = build_analysis_context(analysis)

    observed: dict[str, None] = {}
    fixed_files_applied = 0
    unresolved_remote_issues: list[str] = []

    for pass_number in range(1, passes + 1):
        abort_if_signaled(token)
        log(
            f"Running cross-file verification pass {pass_number}/{passes}...",
            LogSeverity.INFO,
            AgentStatus.VERIFYING,
        )

        snapshot = _snapshot(contents)
        static_issues = auditor.collect_issues(snapshot)
        observed.update(dict.fromkeys(static_issues))
        if static_issues:
            log(
                f"Static consistency checks found {len(static_issues)} issue(s).",
                LogSeverity.WARNING,
                AgentStatus.VERIFYING,
            )

        verification = await verifier.verify(
            snapshot, analysis_context, static_issues, pass_number, token=token
        )
        observed.update(dict.fromkeys(verification.issues))
        unresolved_remote_issues = [] if verification.fixed_files else list(verification.issues)

        if verification.fixed_files:
            for fix in verification.fixed_files:
                contents[fix.path] = fix.content
                if on_file_fixed is not None:
                    on_file_fixed(fix.path, fix.content)
                fixed_files_applied += 1
            log(
                f"Applied {len(verification.fixed_files)} auto-fix(es) from verification pass {pass_number}.",
                LogSeverity.SUCCESS,
                AgentStatus.VERIFYING,
            )
        else:
            log(
                f"Verification pass {pass_number} produced no auto-fixes.",
                LogSeverity.INFO,
                AgentStatus.VERIFYING,
            )

    final_static_issues = auditor.collect_issues(_snapshot(contents))
    issues = list(dict.fromkeys([*final_static_issues, *unresolved_remote_issues]))
    passed = not issues

    if passed:
        log(
            "Repository verification passed. Cross-file consistency checks are clean.",
            LogSeverity.SUCCESS,
            AgentStatus.VERIFYING,
        )
    else:
        log(
            f"Repository verification completed with {len(issues)} issue(s).",
            LogSeverity.WARNING,
            AgentStatus.VERIFYING,
        )
        log(
            f"Verification observed {len(observed)} total issue signal(s) across passes.",
            LogSeverity.INFO,
            AgentStatus.VERIFYING,
        )
    logger.info(
        "Verification finished: passed=%s issues=%d fixes=%d", passed, len(issues), fixed_files_applied
    )

    return VerificationResult(
        passed=passed,
        issues=issues,
        fixed_files_applied=fixed_files_applied,
        observed_issues=list(observed),
        passes=passes,
    )
