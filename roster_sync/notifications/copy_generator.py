"""LLM-generated push copy for shift change notifications."""

import json

import structlog

from roster_sync.errors import MalformedExternalOutputError
from roster_sync.notifications.prompts import NOTIFICATION_COPY_PROMPT
from roster_sync.notifications.schemas import NotificationCopy, ShiftSummary
from roster_sync.services.llm_client import LLMClient

logger = structlog.get_logger()


class NotificationCopyGenerator:
    """Writes a title/body pair summarising one user's shift changes.

    Unusable model output (empty, over-long, wrong shape) falls back to
    fixed copy. A failed request is raised so the sweeper can retry the
    user on the next run.
    """

    def __init__(self, llm_client: LLMClient, timezone: str = "Australia/Sydney"):
        """Initialize generator.

        Args:
            llm_client: Client for structured generation
            timezone: Venue timezone given to the model as context
        """
        self._llm_client = llm_client
        self._timezone = timezone

    async def generate(
        self,
        user_name: str,
        old_shifts: list[ShiftSummary],
        new_shifts: list[ShiftSummary],
    ) -> NotificationCopy:
        """Generate notification copy.

        Args:
            user_name: Employee display name
            old_shifts: Shifts as they were
            new_shifts: Shifts as they are now

        Returns:
            NotificationCopy within the title/body length limits

        Raises:
            LLMClientError: If the model request fails
        """
        prompt = NOTIFICATION_COPY_PROMPT.format(
            user_name=user_name,
            old_shifts=json.dumps([s.model_dump() for s in old_shifts]),
            new_shifts=json.dumps([s.model_dump() for s in new_shifts]),
            timezone=self._timezone,
        )
        try:
            return await self._llm_client.extract(prompt, NotificationCopy)
        except MalformedExternalOutputError as e:
            logger.warning("notification copy unusable, using fallback", error=str(e))
            return NotificationCopy.fallback()
