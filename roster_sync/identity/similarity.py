"""Similarity primitives used to score names against identities.

Pure functions with no I/O: cosine similarity for embedding vectors and
Levenshtein edit distance (via RapidFuzz) for alias checks.
"""

import math
from collections.abc import Sequence

from rapidfuzz.distance import Levenshtein


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector (same length as a)

    Returns:
        dot(a, b) / (|a| * |b|), in [-1, 1]

    Raises:
        ValueError: If lengths differ or either vector has zero norm
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")

    dot = math.fsum(x * y for x, y in zip(a, b))
    squared_a = math.fsum(x * x for x in a)
    squared_b = math.fsum(y * y for y in b)
    if squared_a == 0.0 or squared_b == 0.0:
        raise ValueError("Cosine similarity is undefined for zero vectors")

    # sqrt(s * s) == s exactly, so identical vectors score exactly 1.0
    return max(-1.0, min(1.0, dot / math.sqrt(squared_a * squared_b)))


def edit_distance(s1: str, s2: str) -> int:
    """Levenshtein distance between two strings, ignoring case.

    Args:
        s1: First string
        s2: Second string

    Returns:
        Minimum number of single-character insertions, deletions and
        substitutions turning casefold(s1) into casefold(s2)
    """
    return Levenshtein.distance(s1, s2, processor=str.casefold)


def normalize_name(name: str) -> str:
    """Normalize a name for cache lookups (casefold, collapse whitespace)."""
    return " ".join(name.casefold().split())
