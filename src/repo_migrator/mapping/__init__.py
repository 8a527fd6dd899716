"""Target-to-source semantic file mapping."""

from repo_migrator.mapping.semantic_mapper import (
    SIMILARITY_THRESHOLD,
    build_semantic_matches,
    resolve_path_candidates,
    score_path_similarity,
    tokenize_path,
    upsert_semantic_match,
)

__all__ = [
    "SIMILARITY_THRESHOLD",
    "build_semantic_matches",
    "resolve_path_candidates",
    "score_path_similarity",
    "tokenize_path",
    "upsert_semantic_match",
]
