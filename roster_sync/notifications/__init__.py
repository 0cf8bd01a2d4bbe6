"""Shift change notifications: batching, copy, delivery and sweeping."""

from roster_sync.notifications.batching import build_batches, summarize_shift
from roster_sync.notifications.channels import (
    DeliveryChannel,
    DeliveryError,
    EmailChannel,
    PushChannel,
)
from roster_sync.notifications.copy_generator import NotificationCopyGenerator
from roster_sync.notifications.schemas import (
    NotificationCopy,
    NotificationPayload,
    ShiftSummary,
    SweepResult,
)
from roster_sync.notifications.sweeper import NotificationSweeper

__all__ = [
    "DeliveryChannel",
    "DeliveryError",
    "EmailChannel",
    "NotificationCopy",
    "NotificationCopyGenerator",
    "NotificationPayload",
    "NotificationSweeper",
    "PushChannel",
    "ShiftSummary",
    "SweepResult",
    "build_batches",
    "summarize_shift",
]
