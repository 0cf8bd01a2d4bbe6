"""Identity resolution module for matching roster names to venue identities.

This module provides:
- Similarity primitives (cosine similarity, Levenshtein edit distance)
- EmbeddingCache: per-batch name embeddings with bounded concurrency
- IdentityResolver: hybrid embedding + alias scoring with deterministic ties
- Schemas for identities and match results
"""

from roster_sync.identity.embedding_cache import EmbeddingCache, EmbeddingProvider
from roster_sync.identity.resolver import IdentityResolver
from roster_sync.identity.schemas import Identity, MatchResult, ResolutionBatch
from roster_sync.identity.similarity import (
    cosine_similarity,
    edit_distance,
    normalize_name,
)

__all__ = [
    "EmbeddingCache",
    "EmbeddingProvider",
    "Identity",
    "IdentityResolver",
    "MatchResult",
    "ResolutionBatch",
    "cosine_similarity",
    "edit_distance",
    "normalize_name",
]
