"""Roster versions and the differ that compares them."""

from roster_sync.roster.differ import diff_versions
from roster_sync.roster.schemas import (
    ChangeType,
    DiffResult,
    ResolvedShift,
    RosterVersion,
    ShiftChange,
)

__all__ = [
    "ChangeType",
    "DiffResult",
    "ResolvedShift",
    "RosterVersion",
    "ShiftChange",
    "diff_versions",
]
