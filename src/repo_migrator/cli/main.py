"""CLI entry point for the repository migrator."""
import argparse
import asyncio
import base64
import json
import sys
import traceback
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from repo_migrator.agents.exceptions import AgentError
from repo_migrator.config import SUPPORTED_PROVIDERS, EngineSettings
from repo_migrator.logging_config import setup_logging
from repo_migrator.models import AgentStatus, FileNode, MigrationConfig
from repo_migrator.orchestrator.exceptions import OrchestratorError
from repo_migrator.utils import flatten_files

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_AGENT_ERROR = 2
EXIT_ORCHESTRATOR_ERROR = 3
EXIT_VERIFICATION_FAILED = 4
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

REPORT_FILENAME = "migration-report.json"
DIAGRAM_FILENAME = "legacy-architecture.png"
_DIAGRAM_PREFIX = "data:image/png;base64,"

UI_FRAMEWORKS = ("tailwind", "css-modules", "styled-components")
STATE_MANAGEMENT = ("context", "zustand", "redux")
TESTING_LIBRARIES = ("vitest", "jest", "none")

# Safe keys allowed in config output (no secrets)
_SAFE_CONFIG_KEYS = frozenset({
    "source_dir", "output_dir", "include", "exclude", "ui_framework",
    "state_management", "testing_library", "llm_provider",
    "llm_fallback_provider", "allow_llm_fallback", "max_retries",
    "skip_diagram", "verbose", "dry_run", "output_json",
})


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="repo-migrator",
        description="Migrate a legacy JS/TS repository into a new project structure",
    )
    parser.add_argument("source_dir", type=str, help="Path to the legacy repository root")
    parser.add_argument("output_dir", type=str, help="Directory to write the generated project into")
    parser.add_argument(
        "--include",
        action="append",
        default=[],
        metavar="DIR",
        help="Only migrate files under this directory (repeatable)",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="DIR",
        help="Skip files under this directory (repeatable)",
    )
    parser.add_argument(
        "--ui-framework",
        type=str,
        default="tailwind",
        choices=UI_FRAMEWORKS,
        help="Styling approach for generated components (default: tailwind)",
    )
    parser.add_argument(
        "--state-management",
        type=str,
        default="context",
        choices=STATE_MANAGEMENT,
        help="State management library (default: context)",
    )
    parser.add_argument(
        "--testing-library",
        type=str,
        default="vitest",
        choices=TESTING_LIBRARIES,
        help="Test framework for generated tests, or none (default: vitest)",
    )
    parser.add_argument(
        "--llm-provider",
        type=str,
        default=None,
        choices=SUPPORTED_PROVIDERS,
        help="LLM provider: auto (default), anthropic, or openai",
    )
    parser.add_argument(
        "--llm-fallback-provider",
        type=str,
        default=None,
        choices=("anthropic", "openai"),
        help="Optional explicit fallback provider when the primary provider fails",
    )
    parser.add_argument(
        "--allow-llm-fallback",
        action="store_true",
        help="Allow fallback to the alternate provider when the primary provider fails",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Retry attempts per remote call (default: from settings, 3)",
    )
    parser.add_argument(
        "--skip-diagram", action="store_true", help="Do not render the legacy architecture diagram"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and exit without running"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output results as JSON"
    )
    return parser


def validate_source_dir(raw_path: str) -> str:
    """Validate and resolve the legacy repository path.

    Raises:
        SystemExit: If path is not a valid directory.
    """
    resolved = Path(raw_path).resolve()
    if not resolved.is_dir():
        print(f"Error: '{raw_path}' is not a valid directory.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    return str(resolved)


def build_settings(args: argparse.Namespace) -> EngineSettings:
    return EngineSettings.from_env(
        llm_provider=args.llm_provider,
        llm_fallback_provider=args.llm_fallback_provider,
        allow_llm_fallback=True if args.allow_llm_fallback else None,
        max_retries=args.max_retries,
    )


def create_session(settings: EngineSettings):
    """Create a MigrationSession backed by the local filesystem provider.

    Agent and SDK imports are deferred to keep --help and --dry-run fast.
    """
    from repo_migrator.agents import LLMClient
    from repo_migrator.orchestrator.session import MigrationSession
    from repo_migrator.providers import LocalRepositoryProvider
    from repo_migrator.resilience import RateLimiter

    rate_limiter = None
    if settings.rate_limit_requests > 0:
        rate_limiter = RateLimiter(
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    llm = LLMClient(settings, rate_limiter=rate_limiter, client_key="cli")
    return MigrationSession(LocalRepositoryProvider(), llm, settings)


async def _diagram_disabled() -> bool:
    return False


def _safe_output_path(output_dir: Path, relative_path: str) -> Path | None:
    target = (output_dir / relative_path).resolve()
    if not target.is_relative_to(output_dir):
        return None
    return target


def write_generated_files(output_dir: Path, generated_files: list[FileNode]) -> list[str]:
    """Write every generated file with content under ``output_dir``.

    Paths escaping ``output_dir`` are skipped.

    Returns:
        Relative paths that were written.
    """
    output_dir = output_dir.resolve()
    written: list[str] = []
    for node in flatten_files(generated_files):
        if not node.is_file or not node.content:
            continue
        target = _safe_output_path(output_dir, node.path)
        if target is None:
            print(f"Skipping unsafe output path: {node.path}", file=sys.stderr)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(node.content, encoding="utf-8")
        written.append(node.path)
    return written


def write_diagram(output_dir: Path, diagram: str | None) -> str | None:
    if not diagram or not diagram.startswith(_DIAGRAM_PREFIX):
        return None
    target = output_dir / DIAGRAM_FILENAME
    target.write_bytes(base64.b64decode(diagram[len(_DIAGRAM_PREFIX):]))
    return DIAGRAM_FILENAME


def format_result_json(result: dict) -> str:
    """Serialize result dict to JSON string.

    Calls .model_dump() on Pydantic model values. Falls back to str()
    for non-serializable types (datetime, Path, etc.) via default=str.
    """

    def _serialize(obj):
        if obj is None:
            return None
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        return obj

    prepared = {k: _serialize(v) for k, v in result.items()}
    return json.dumps(prepared, indent=2, default=str)


def build_result(session, written: list[str]) -> dict:
    failed = session.generation.failed if session.generation is not None else []
    return {
        "status": session.status.value,
        "error_message": session.error_message,
        "analysis": session.analysis,
        "repo_scope": session.repo_scope,
        "verification": session.verification,
        "report": session.report,
        "files_written": written,
        "failed_files": failed,
    }


def print_result_human(result: dict) -> None:
    """Print results in human-readable format."""
    print(f"\n{'='*60}")
    print("Repository Migration Results")
    print(f"{'='*60}")

    analysis = result.get("analysis")
    if analysis is not None:
        print(f"\nDetected framework: {analysis.detected_framework}")
        print(f"Complexity: {analysis.complexity.value}")

    report = result.get("report")
    if report is not None:
        print(f"\nDuration: {report.duration}")
        print(f"Files: {report.files_generated} generated from {report.total_files} source files")
        print(f"TypeScript coverage: {report.typescript_coverage}%")
        print(f"Tests generated: {report.tests_generated}")
        print(f"Modernization score: {report.modernization_score}")

    print(f"\nFiles written: {len(result.get('files_written', []))}")
    failed = result.get("failed_files", [])
    if failed:
        print(f"\nFailed files ({len(failed)}):")
        for path in failed:
            print(f"  - {path}")

    verification = result.get("verification")
    if verification is not None:
        verdict = "passed" if verification.passed else "failed"
        print(f"\nVerification {verdict}, {verification.fixed_files_applied} fix(es) applied")
        for issue in verification.issues:
            print(f"  - {issue}")

    if result.get("error_message"):
        print(f"\nError: {result['error_message']}")

    print(f"\n{'='*60}")


def determine_exit_code(result: dict) -> int:
    """Determine the exit code from the result dict."""
    if result.get("status") == AgentStatus.ERROR.value:
        return EXIT_ORCHESTRATOR_ERROR
    verification = result.get("verification")
    if verification is not None and not verification.passed:
        return EXIT_VERIFICATION_FAILED
    return EXIT_SUCCESS


def print_config_human(config: dict) -> None:
    """Print configuration in human-readable format.

    Only prints keys in the safe allowlist to prevent secret leakage.
    """
    print("\nConfiguration:")
    print(f"{'='*40}")
    for key, value in config.items():
        if key in _SAFE_CONFIG_KEYS:
            print(f"  {key}: {value}")
    print(f"{'='*40}")


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        source_dir = validate_source_dir(args.source_dir)
    except SystemExit as exc:
        return exc.code

    try:
        settings = build_settings(args)
    except ValidationError as exc:
        return _handle_error("Invalid settings", exc, args.verbose, EXIT_INVALID_INPUT)

    setup_logging("DEBUG" if args.verbose else settings.log_level)

    migration_config = MigrationConfig(
        ui_framework=args.ui_framework,
        state_management=args.state_management,
        testing_library=args.testing_library,
    )
    config = {
        "source_dir": source_dir,
        "output_dir": str(Path(args.output_dir).resolve()),
        "include": args.include,
        "exclude": args.exclude,
        "ui_framework": migration_config.ui_framework,
        "state_management": migration_config.state_management,
        "testing_library": migration_config.testing_library,
        "llm_provider": settings.llm_provider,
        "llm_fallback_provider": settings.llm_fallback_provider,
        "allow_llm_fallback": settings.allow_llm_fallback,
        "max_retries": settings.max_retries,
        "skip_diagram": args.skip_diagram,
        "verbose": args.verbose,
        "dry_run": args.dry_run,
        "output_json": args.output_json,
    }

    if args.dry_run:
        if args.output_json:
            print(json.dumps(config, indent=2))
        else:
            print_config_human(config)
        return EXIT_SUCCESS

    session = None
    try:
        session = create_session(settings)
        asyncio.run(
            session.start(
                source_dir,
                migration_config,
                include_directories=args.include,
                exclude_directories=args.exclude,
                ensure_diagram_api_key=_diagram_disabled if args.skip_diagram else None,
            )
        )

        if session.status == AgentStatus.IDLE:
            print("\nMigration cancelled.", file=sys.stderr)
            return EXIT_KEYBOARD_INTERRUPT

        output_dir = Path(config["output_dir"])
        written: list[str] = []
        if session.generated_files:
            output_dir.mkdir(parents=True, exist_ok=True)
            written = write_generated_files(output_dir, session.generated_files)
            diagram_file = write_diagram(output_dir, session.diagram)
            if diagram_file and args.verbose:
                print(f"Diagram written: {output_dir / diagram_file}")

        result = build_result(session, written)
        if session.report is not None:
            (output_dir / REPORT_FILENAME).write_text(format_result_json(result), encoding="utf-8")

        if args.output_json:
            print(format_result_json(result))
        else:
            print_result_human(result)

        return determine_exit_code(result)

    except AgentError as exc:
        return _handle_error("Agent error", exc, args.verbose, EXIT_AGENT_ERROR)

    except OrchestratorError as exc:
        return _handle_error("Orchestrator error", exc, args.verbose, EXIT_ORCHESTRATOR_ERROR)

    except KeyboardInterrupt:
        if session is not None:
            session.cancel("interrupted")
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)


def run() -> None:
    load_dotenv()
    sys.exit(main())
