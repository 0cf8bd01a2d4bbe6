"""Identity resolution schemas.

Defines the identity records names are resolved against and the
per-shift match results.
"""

from pydantic import BaseModel, ConfigDict, Field

from roster_sync.extraction.schemas import CanonicalShift


class Identity(BaseModel):
    """Employee identity known to a venue.

    Aliases and embedding are maintained outside this system and are
    read-only during resolution.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable identity id (user id)")
    display_name: str = Field(description="Canonical display name")
    aliases: frozenset[str] = Field(
        default_factory=frozenset,
        description="Known nicknames and spelling variations",
    )
    embedding: tuple[float, ...] | None = Field(
        default=None,
        description="Name embedding from the configured embedding model",
    )

    @property
    def searchable_names(self) -> list[str]:
        """Display name followed by aliases in stable order."""
        return [self.display_name, *sorted(self.aliases)]


class MatchResult(BaseModel):
    """Result of resolving one shift's employee name.

    identity_id is None exactly when no identity cleared the threshold.
    That is the normal "unmatched" outcome, not an error.
    """

    shift: CanonicalShift = Field(description="Shift whose name was resolved")
    identity_id: str | None = Field(default=None, description="Matched identity")
    confidence: float = Field(ge=0.0, le=1.0, description="Final match score")

    @property
    def is_matched(self) -> bool:
        """Check if the shift was attributed to an identity."""
        return self.identity_id is not None


class ResolutionBatch(BaseModel):
    """Match results for every shift in one ingested roster."""

    results: list[MatchResult] = Field(default_factory=list)

    @property
    def matched(self) -> list[MatchResult]:
        return [r for r in self.results if r.is_matched]

    @property
    def unmatched(self) -> list[MatchResult]:
        return [r for r in self.results if not r.is_matched]

    @property
    def matched_count(self) -> int:
        return len(self.matched)

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched)

    @property
    def unmatched_names(self) -> list[str]:
        """Distinct unmatched names in first-seen order, for operator review."""
        return list(dict.fromkeys(r.shift.employee_name for r in self.unmatched))
