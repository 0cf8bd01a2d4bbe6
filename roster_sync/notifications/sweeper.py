"""NotificationSweeper turns pending shift changes into notifications.

Each sweep claims change records before acting on them, so concurrent
sweeps never notify a user twice for the same change. A user whose
notification fails has this sweep's claims released and is retried by
the next sweep.
"""

import datetime as dt
import uuid
from collections.abc import Sequence

import structlog

from roster_sync.notifications.batching import build_batches, summarize_shift
from roster_sync.notifications.channels import DeliveryChannel, DeliveryError
from roster_sync.notifications.copy_generator import NotificationCopyGenerator
from roster_sync.notifications.schemas import (
    NotificationCopy,
    NotificationPayload,
    SweepResult,
)
from roster_sync.repositories.change_repo import ShiftChangeRepository
from roster_sync.repositories.identity_repo import IdentityRepository, Recipient
from roster_sync.repositories.notification_log_repo import NotificationLogRepository
from roster_sync.repositories.roster_repo import RosterRepository
from roster_sync.roster.schemas import ShiftChange

logger = structlog.get_logger()


class NotificationSweeper:
    """Claims, batches and dispatches pending change records."""

    def __init__(
        self,
        change_repo: ShiftChangeRepository,
        roster_repo: RosterRepository,
        identity_repo: IdentityRepository,
        copy_generator: NotificationCopyGenerator,
        channels: Sequence[DeliveryChannel],
        log_repo: NotificationLogRepository,
        window: dt.timedelta = dt.timedelta(minutes=10),
    ):
        """Initialize sweeper.

        Args:
            change_repo: Pending change records and claims
            roster_repo: Shift lookups for change summaries
            identity_repo: Recipient preferences and device tokens
            copy_generator: Writes notification title/body
            channels: Available delivery channels, keyed by their name
            log_repo: Notification audit log
            window: Only changes created this recently are considered
        """
        self._changes = change_repo
        self._rosters = roster_repo
        self._identities = identity_repo
        self._copy = copy_generator
        self._channels = {channel.name: channel for channel in channels}
        self._log = log_repo
        self._window = window

    async def sweep(self, now: dt.datetime | None = None) -> SweepResult:
        """Run one notification sweep.

        Args:
            now: Sweep time. Defaults to the current UTC time.

        Returns:
            SweepResult with counts, failed users and sent payloads
        """
        now = now or dt.datetime.now(dt.UTC)
        pending = await self._changes.list_pending(now - self._window)
        batches = build_batches(pending, self._window, now)

        result = SweepResult()
        for user_id, changes in batches.items():
            token = uuid.uuid4().hex
            claimed = [
                change
                for change in changes
                if await self._changes.claim(change.id, token, now)
            ]
            if not claimed:
                continue
            result.claimed += len(claimed)

            try:
                payload = await self._notify_user(user_id, claimed)
            except Exception as e:
                logger.error(
                    "user notification failed, releasing claims",
                    user_id=user_id,
                    changes=len(claimed),
                    error=str(e),
                )
                await self._changes.release([c.id for c in claimed], token)
                result.failed_users.append(user_id)
                continue

            result.processed += len(claimed)
            if payload is None:
                result.skipped_no_channel += len(claimed)
            else:
                result.payloads.append(payload)

        logger.info(
            "notification sweep complete",
            pending=len(pending),
            users=len(batches),
            claimed=result.claimed,
            processed=result.processed,
            failed_users=len(result.failed_users),
        )
        return result

    async def _notify_user(
        self,
        user_id: str,
        changes: list[ShiftChange],
    ) -> NotificationPayload | None:
        """Build and dispatch one user's notification.

        Once any channel has delivered, nothing that follows may fail the
        user, since a released claim would be notified again.

        Returns:
            The dispatched payload, or None when the user cannot be reached
            on any enabled channel (their changes stay claimed)

        Raises:
            DeliveryError: If every reachable channel failed
        """
        recipient = await self._identities.get_recipient(user_id)
        channels = self._channels_for(recipient)
        if recipient is None or not channels:
            logger.info(
                "no enabled notification channel, skipping",
                user_id=user_id,
                known_user=recipient is not None,
                changes=len(changes),
            )
            if recipient is not None:
                fallback = NotificationCopy.fallback()
                await self._log.record(
                    user_id=user_id,
                    title=fallback.title,
                    body=fallback.body,
                    sent_via=[],
                    delivery_status="skipped",
                )
            return None

        shift_ids = [
            shift_id
            for change in changes
            for shift_id in (change.old_shift_id, change.new_shift_id)
            if shift_id
        ]
        shifts = await self._rosters.get_shifts(shift_ids)
        old_shifts = [
            summarize_shift(shifts[c.old_shift_id])
            for c in changes
            if c.old_shift_id in shifts
        ]
        new_shifts = [
            summarize_shift(shifts[c.new_shift_id])
            for c in changes
            if c.new_shift_id in shifts
        ]

        copy = await self._copy.generate(recipient.display_name, old_shifts, new_shifts)

        delivered: list[str] = []
        errors: list[str] = []
        for channel in channels:
            try:
                reached = await channel.send(recipient, copy.title, copy.body)
            except DeliveryError as e:
                errors.append(f"{channel.name}: {e}")
                continue
            if reached:
                delivered.append(channel.name)

        if not delivered:
            if errors:
                raise DeliveryError("; ".join(errors))
            logger.info(
                "recipient unreachable on enabled channels, skipping",
                user_id=user_id,
                channels=[channel.name for channel in channels],
            )
            await self._log.record(
                user_id=user_id,
                title=copy.title,
                body=copy.body,
                sent_via=[],
                delivery_status="skipped",
            )
            return None

        if errors:
            logger.warning(
                "notification partially delivered",
                user_id=user_id,
                delivered=delivered,
                errors=errors,
            )

        try:
            await self._log.record(
                user_id=user_id,
                title=copy.title,
                body=copy.body,
                sent_via=delivered,
                delivery_status="sent",
            )
        except Exception as e:
            logger.error(
                "notification delivered but not logged",
                user_id=user_id,
                channels=delivered,
                error=str(e),
            )

        return NotificationPayload(
            user_id=user_id,
            user_name=recipient.display_name,
            old_shifts=old_shifts,
            new_shifts=new_shifts,
            title=copy.title,
            body=copy.body,
            change_ids=[c.id for c in changes],
            channels=delivered,
        )

    def _channels_for(self, recipient: Recipient | None) -> list[DeliveryChannel]:
        if recipient is None:
            return []
        return [
            self._channels[name]
            for name in recipient.enabled_channels
            if name in self._channels
        ]
