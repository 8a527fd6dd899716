"""End-of-run migration report."""

import json
import logging
import math

from repo_migrator.models import AnalysisResult, FileNode, MigrationConfig, MigrationReport
from repo_migrator.utils import flatten_files

logger = logging.getLogger(__name__)

TYPESCRIPT_EXTENSIONS = (".ts", ".tsx")
TEST_MARKERS = (".test.", ".spec.", "__tests__")
TEST_COVERAGE_WEIGHT = 80
TYPESCRIPT_SCORE_WEIGHT = 0.4
TEST_SCORE_BONUS = 20
BASE_SCORE = 40


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_duration(duration_ms: float) -> str:
    """Render a duration as ``"Ns"`` or ``"Mm Ns"``.

    Partial seconds round up and anything shorter reports one second.
    """
    seconds = max(math.ceil(duration_ms / 1000), 1)
    if seconds >= 60:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds}s"


def is_test_path(path: str) -> bool:
    return any(marker in path for marker in TEST_MARKERS)


def count_new_dependencies(target_files: list[FileNode]) -> int:
    """Count dependencies declared by the generated root package.json."""
    for node in flatten_files(target_files):
        if node.path != "package.json" or not node.content:
            continue
        try:
            manifest = json.loads(node.content)
        except json.JSONDecodeError:
            logger.warning("Generated package.json is not valid JSON")
            return 0
        if not isinstance(manifest, dict):
            return 0
        total = 0
        for section in ("dependencies", "devDependencies"):
            declared = manifest.get(section)
            if isinstance(declared, dict):
                total += len(declared)
        return total
    return 0


def generate_report(
    source_files: list[FileNode],
    target_files: list[FileNode],
    start_ms: float,
    end_ms: float,
    analysis: AnalysisResult,
    config: MigrationConfig | None = None,
) -> MigrationReport:
    """Summarize a finished run.

    Args:
        source_files: Legacy FileNode tree.
        target_files: Generated FileNode tree.
        start_ms: Run start, in milliseconds.
        end_ms: Run end, in milliseconds.
        analysis: Analysis result for the detected framework.
        config: Configuration the run used.

    Returns:
        MigrationReport with coverage figures and a modernization score.
    """
    config = config or MigrationConfig()
    source_paths = [node.path for node in flatten_files(source_files) if node.is_file]
    target_paths = [node.path for node in flatten_files(target_files) if node.is_file]

    files_generated = len(target_paths)
    ts_files = sum(1 for path in target_paths if path.endswith(TYPESCRIPT_EXTENSIONS))
    test_files = sum(1 for path in target_paths if is_test_path(path))

    typescript_coverage = _round_half_up(ts_files / max(files_generated, 1) * 100)
    test_coverage = (
        _round_half_up(test_files / max(files_generated - test_files, 1) * TEST_COVERAGE_WEIGHT)
        if test_files
        else 0
    )
    score = BASE_SCORE + typescript_coverage * TYPESCRIPT_SCORE_WEIGHT
    if test_coverage > 0:
        score += TEST_SCORE_BONUS
    modernization_score = min(_round_half_up(score), 100)

    tech_stack_changes = [
        f"{analysis.detected_framework} -> {config.target_stack}",
        f"CSS / SCSS -> {config.ui_framework}",
        "JavaScript -> TypeScript",
    ]
    key_improvements = [
        "Server-side rendering for the initial load",
        f"State management consolidated on {config.state_management}",
        "Strict type safety across components",
    ]
    if test_files:
        key_improvements.append(f"Added {test_files} unit test suite(s) with {config.testing_library}")

    return MigrationReport(
        duration=format_duration(end_ms - start_ms),
        total_files=len(source_paths),
        files_generated=files_generated,
        modernization_score=modernization_score,
        typescript_coverage=typescript_coverage,
        test_coverage=test_coverage,
        tests_generated=test_files,
        tech_stack_changes=tech_stack_changes,
        key_improvements=key_improvements,
        new_dependencies=count_new_dependencies(target_files),
    )
