"""Repository layer for data persistence.

Provides repository classes for persisting domain data to the database.
Repositories encapsulate data access logic and provide a clean interface
for the service layer.
"""

from roster_sync.repositories.change_repo import ShiftChangeRepository
from roster_sync.repositories.identity_repo import IdentityRepository, Recipient
from roster_sync.repositories.notification_log_repo import NotificationLogRepository
from roster_sync.repositories.roster_repo import RosterRepository

__all__ = [
    "IdentityRepository",
    "NotificationLogRepository",
    "Recipient",
    "RosterRepository",
    "ShiftChangeRepository",
]
