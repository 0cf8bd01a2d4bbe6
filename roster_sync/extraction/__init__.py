"""Roster extraction: image -> raw table -> canonical shifts."""

from roster_sync.extraction.prompts import (
    SHIFT_NORMALIZATION_PROMPT,
    TABLE_EXTRACTION_PROMPT,
)
from roster_sync.extraction.schemas import (
    CanonicalShift,
    ExtractedShift,
    ExtractedShifts,
    RawTable,
    parse_time_of_day,
)
from roster_sync.extraction.shift_normalizer import ShiftNormalizer
from roster_sync.extraction.table_extractor import TableExtractor
from roster_sync.extraction.week import parse_week_hint, week_start

__all__ = [
    "SHIFT_NORMALIZATION_PROMPT",
    "TABLE_EXTRACTION_PROMPT",
    "CanonicalShift",
    "ExtractedShift",
    "ExtractedShifts",
    "RawTable",
    "ShiftNormalizer",
    "TableExtractor",
    "parse_time_of_day",
    "parse_week_hint",
    "week_start",
]
