"""Map each target file to the legacy source files most relevant to it.

Explicit mappings from the analysis call are applied first. Targets that
still lack a primary source fall back to path-token similarity.
"""

import re
from collections.abc import Iterable, Sequence

from repo_migrator.models import SemanticFileMapping, SemanticMatch
from repo_migrator.models.schemas import clamp_confidence

SIMILARITY_THRESHOLD = 0.18
BASENAME_BONUS = 0.35
API_DIRECTORY_BONUS = 0.05

_EXTENSION = re.compile(r"\.[^./]+$")
_TOKEN_SEPARATORS = re.compile(r"[/_.\-]+")
_API_SEGMENT = "api"


def strip_extension(path: str) -> str:
    return _EXTENSION.sub("", path)


def path_basename(path: str) -> str:
    stripped = strip_extension(path)
    return stripped.split("/")[-1] or stripped


def tokenize_path(path: str) -> set[str]:
    lowered = strip_extension(path).lower()
    return {token.strip() for token in _TOKEN_SEPARATORS.split(lowered) if token.strip()}


def jaccard_similarity(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def _under_api_directory(path: str) -> bool:
    return _API_SEGMENT in path.lower().split("/")[:-1]


def score_path_similarity(target_path: str, source_path: str) -> float:
    """Heuristic relevance of ``source_path`` to ``target_path``.

    Jaccard similarity of path tokens, plus a bonus for identical
    extension-less basenames and a smaller one when both paths agree on
    living under an ``api`` directory.
    """
    score = jaccard_similarity(tokenize_path(target_path), tokenize_path(source_path))
    if path_basename(target_path) == path_basename(source_path):
        score += BASENAME_BONUS
    if _under_api_directory(target_path) == _under_api_directory(source_path):
        score += API_DIRECTORY_BONUS
    return score


def resolve_path_candidates(pattern: str, candidates: Sequence[str]) -> list[str]:
    """Resolve a mapping path pattern against actual candidate paths.

    A ``*`` compiles to ``.*`` with the rest escaped, matched against the
    whole candidate. Other patterns match by exact path, path suffix,
    extension-less path or suffix, or extension-less basename.

    Args:
        pattern: Path from a mapping hint; a leading ``./`` is ignored.
        candidates: Paths that actually exist.

    Returns:
        Matching candidates in their original order.
    """
    normalized = pattern.strip()
    if normalized.startswith("./"):
        normalized = normalized[2:].strip()
    if not normalized:
        return []
    if normalized in candidates:
        return [normalized]

    if "*" in normalized:
        wildcard = re.compile(".*".join(re.escape(part) for part in normalized.split("*")))
        return [candidate for candidate in candidates if wildcard.fullmatch(candidate)]

    normalized_no_ext = strip_extension(normalized)
    normalized_base = path_basename(normalized)
    resolved: list[str] = []
    for candidate in candidates:
        candidate_no_ext = strip_extension(candidate)
        if (
            candidate == normalized
            or candidate.endswith(f"/{normalized}")
            or candidate_no_ext == normalized_no_ext
            or candidate_no_ext.endswith(f"/{normalized_no_ext}")
            or path_basename(candidate) == normalized_base
        ):
            resolved.append(candidate)
    return resolved


def upsert_semantic_match(
    matches: dict[str, SemanticMatch],
    target_path: str,
    source_paths: Sequence[str],
    confidence: float,
) -> None:
    """Merge ``source_paths`` into the match for ``target_path``.

    Sources are unioned in insertion order. The first new source becomes
    primary when ``confidence`` is not lower than the stored confidence.
    """
    confidence = clamp_confidence(confidence, default=0.0)
    existing = matches.get(target_path) or SemanticMatch()
    merged = list(dict.fromkeys([*existing.source_paths, *source_paths]))
    primary = existing.primary_source_path
    if confidence >= existing.confidence and source_paths:
        primary = source_paths[0]
    matches[target_path] = SemanticMatch(
        primary_source_path=primary,
        source_paths=merged,
        confidence=max(existing.confidence, confidence),
    )


def build_semantic_matches(
    target_paths: Sequence[str],
    source_paths: Sequence[str],
    mappings: Iterable[SemanticFileMapping] = (),
) -> dict[str, SemanticMatch]:
    """Produce exactly one SemanticMatch per target path.

    Args:
        target_paths: Paths of the files to be generated.
        source_paths: Legacy paths whose content is available.
        mappings: Explicit hints from repository analysis.

    Returns:
        Mapping of target path to its match. Targets with no explicit hint
        and no candidate scoring at least SIMILARITY_THRESHOLD have empty
        ``source_paths``.
    """
    matches: dict[str, SemanticMatch] = {path: SemanticMatch() for path in target_paths}

    for mapping in mappings:
        resolved_sources = resolve_path_candidates(mapping.source_path, source_paths)
        resolved_targets = resolve_path_candidates(mapping.target_path, target_paths)
        if not resolved_sources or not resolved_targets:
            continue
        for target_path in resolved_targets:
            upsert_semantic_match(matches, target_path, resolved_sources, mapping.confidence)

    for target_path in target_paths:
        if matches[target_path].primary_source_path:
            continue
        best_path = ""
        best_score = 0.0
        for source_path in source_paths:
            score = score_path_similarity(target_path, source_path)
            if score > best_score:
                best_score = score
                best_path = source_path
        if best_path and best_score >= SIMILARITY_THRESHOLD:
            upsert_semantic_match(matches, target_path, [best_path], best_score)

    return matches
