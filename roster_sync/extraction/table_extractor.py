"""Reads the raw cell table out of a roster image using LLM vision."""

import structlog

from roster_sync.errors import MalformedExternalOutputError
from roster_sync.extraction.prompts import TABLE_EXTRACTION_PROMPT
from roster_sync.extraction.schemas import RawTable
from roster_sync.services.llm_client import LLMClient

logger = structlog.get_logger()


class TableExtractor:
    """Turns an image or document into a RawTable.

    No interpretation happens here: names, times and day labels are
    returned exactly as printed.
    """

    def __init__(self, llm_client: LLMClient):
        """Initialize with LLM client.

        Args:
            llm_client: Client for vision requests
        """
        self._llm_client = llm_client

    async def extract(self, image: bytes, media_type: str) -> RawTable:
        """Extract the roster table from an image.

        Args:
            image: Raw file bytes
            media_type: MIME type of the file

        Returns:
            RawTable with columns and rows

        Raises:
            LLMClientError: If the model request fails
            MalformedExternalOutputError: If the table has no columns or
                rows reference unknown columns
        """
        table = await self._llm_client.extract_from_image(
            TABLE_EXTRACTION_PROMPT, image, media_type, RawTable
        )

        if not table.columns:
            raise MalformedExternalOutputError("Extracted table has no columns")

        known = set(table.columns)
        for index, row in enumerate(table.rows):
            unknown = set(row) - known
            if unknown:
                raise MalformedExternalOutputError(
                    f"Row {index} references unknown columns: {sorted(unknown)}"
                )

        logger.info(
            "roster table extracted",
            columns=len(table.columns),
            rows=len(table.rows),
        )
        return table
