"""Converts a raw roster table into canonical shifts."""

import datetime as dt
import json

import structlog
from pydantic import ValidationError

from roster_sync.errors import MalformedExternalOutputError
from roster_sync.extraction.prompts import SHIFT_NORMALIZATION_PROMPT
from roster_sync.extraction.schemas import CanonicalShift, ExtractedShifts, RawTable
from roster_sync.services.llm_client import LLMClient

logger = structlog.get_logger()


class ShiftNormalizer:
    """Normalizes noisy roster cells to CanonicalShift records via LLM.

    The model emits ExtractedShifts; each item is then validated into a
    CanonicalShift. A single invalid item rejects the whole table, since
    a partially understood roster must never be stored.
    """

    def __init__(self, llm_client: LLMClient):
        """Initialize with LLM client.

        Args:
            llm_client: Client for structured extraction
        """
        self._llm_client = llm_client

    async def normalize(
        self,
        table: RawTable,
        week_anchor: dt.date | None = None,
    ) -> list[CanonicalShift]:
        """Normalize a raw table into canonical shifts.

        Args:
            table: Raw cells from the table extractor
            week_anchor: Monday of the roster week, used to resolve
                relative day labels

        Returns:
            List of CanonicalShift in table order

        Raises:
            LLMClientError: If the model request fails
            MalformedExternalOutputError: If any emitted shift is invalid
        """
        prompt = SHIFT_NORMALIZATION_PROMPT.format(
            raw_table=json.dumps(table.model_dump(), indent=2),
            week_anchor=week_anchor.isoformat() if week_anchor else "Current week",
        )
        result = await self._llm_client.extract(prompt, ExtractedShifts)

        shifts = []
        for index, item in enumerate(result.items):
            try:
                shifts.append(CanonicalShift.from_extracted(item))
            except ValidationError as e:
                raise MalformedExternalOutputError(
                    f"Shift {index} ({item.employee_name!r}) is invalid: "
                    f"{e.errors()[0]['msg']}"
                ) from e

        logger.info("shifts normalized", count=len(shifts))
        return shifts
