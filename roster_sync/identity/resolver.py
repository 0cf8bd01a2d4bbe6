"""IdentityResolver maps roster names to venue identities.

Scoring per candidate identity:
1. Cosine similarity between the name embedding and the identity's
   stored embedding.
2. Alias override: if the name is within a small edit distance of the
   display name or any alias, the score is floored at the alias
   confidence (0.9 by default).
3. The best score strictly above the threshold wins; exact ties go to
   the lexicographically smallest identity id so results never depend
   on catalogue order.
"""

from collections.abc import Sequence

import structlog

from roster_sync.errors import MalformedExternalOutputError
from roster_sync.extraction.schemas import CanonicalShift
from roster_sync.identity.embedding_cache import EmbeddingCache
from roster_sync.identity.schemas import Identity, MatchResult, ResolutionBatch
from roster_sync.identity.similarity import cosine_similarity, edit_distance

logger = structlog.get_logger()


class IdentityResolver:
    """Resolves shift employee names against an identity snapshot.

    Holds no state beyond its tuning parameters; every call is a pure
    function of (identities, shifts, embeddings).
    """

    def __init__(
        self,
        threshold: float = 0.83,
        alias_max_edit_distance: int = 2,
        alias_confidence_floor: float = 0.9,
    ):
        """Initialize resolver.

        Args:
            threshold: A final score must exceed this to match
            alias_max_edit_distance: Max edit distance for the alias override
            alias_confidence_floor: Score floor applied on alias match
        """
        self._threshold = threshold
        self._alias_distance = alias_max_edit_distance
        self._alias_floor = alias_confidence_floor

    def alias_match(self, name: str, identity: Identity) -> bool:
        """Check if name is within the alias edit distance of the identity."""
        return any(
            edit_distance(name, candidate) <= self._alias_distance
            for candidate in identity.searchable_names
        )

    def score(
        self,
        name: str,
        name_embedding: Sequence[float],
        identity: Identity,
    ) -> float | None:
        """Compute the final match score of a name against one identity.

        Args:
            name: Employee name as written on the roster
            name_embedding: Embedding of that name
            identity: Candidate identity

        Returns:
            Final score, or None if the identity has no embedding and
            therefore cannot be scored

        Raises:
            MalformedExternalOutputError: If embedding dimensions differ
        """
        if identity.embedding is None:
            return None

        if len(identity.embedding) != len(name_embedding):
            raise MalformedExternalOutputError(
                f"Embedding dimension mismatch for identity {identity.id}: "
                f"{len(identity.embedding)} != {len(name_embedding)}"
            )

        try:
            similarity = cosine_similarity(name_embedding, identity.embedding)
        except ValueError:
            # Zero vector on either side carries no signal
            similarity = 0.0

        if self.alias_match(name, identity):
            return max(similarity, self._alias_floor)
        return similarity

    def resolve(
        self,
        shift: CanonicalShift,
        candidates: Sequence[Identity],
        name_embedding: Sequence[float],
    ) -> MatchResult:
        """Resolve a single shift's employee name.

        Args:
            shift: Shift to attribute
            candidates: Identities of the venue
            name_embedding: Embedding of shift.employee_name

        Returns:
            MatchResult; unmatched results have identity_id=None and
            confidence 0.0
        """
        scored: list[tuple[float, str]] = []
        for identity in candidates:
            final = self.score(shift.employee_name, name_embedding, identity)
            if final is not None and final > self._threshold:
                scored.append((final, identity.id))

        if not scored:
            return MatchResult(shift=shift, identity_id=None, confidence=0.0)

        best_score, best_id = min(scored, key=lambda pair: (-pair[0], pair[1]))
        return MatchResult(
            shift=shift,
            identity_id=best_id,
            confidence=max(0.0, min(best_score, 1.0)),
        )

    async def resolve_all(
        self,
        shifts: Sequence[CanonicalShift],
        candidates: Sequence[Identity],
        embeddings: EmbeddingCache,
    ) -> ResolutionBatch:
        """Resolve every shift of a roster.

        Fetches embeddings for all distinct names first; any provider
        failure aborts the whole batch.

        Args:
            shifts: Canonical shifts in roster order
            candidates: Identities of the venue
            embeddings: Batch-scoped embedding cache

        Returns:
            ResolutionBatch with one result per shift, in input order
        """
        snapshot = tuple(candidates)
        await embeddings.fetch_all(shift.employee_name for shift in shifts)

        results = [
            self.resolve(shift, snapshot, embeddings.get(shift.employee_name))
            for shift in shifts
        ]
        batch = ResolutionBatch(results=results)

        logger.info(
            "names resolved",
            shifts=len(results),
            matched=batch.matched_count,
            unmatched=batch.unmatched_count,
            candidates=len(snapshot),
        )
        return batch
