"""Repository for shift change records and their notification claims.

notified_at is the only field notification workers contend over. It is
only ever written through conditional updates: a claim succeeds iff the
record was still unclaimed, and a release only clears claims made with
the releasing worker's own token.
"""

import datetime as dt

from roster_sync.db.turso import TursoClient
from roster_sync.roster.schemas import ChangeType, ShiftChange

_CHANGE_COLUMNS = """
    id, user_id, change_type, old_shift_id, new_shift_id, venue_id,
    roster_version_id, created_at, notified_at
"""


def _change_from_row(row) -> ShiftChange:
    return ShiftChange(
        id=row[0],
        user_id=row[1],
        change_type=ChangeType(row[2]),
        old_shift_id=row[3],
        new_shift_id=row[4],
        venue_id=row[5],
        roster_version_id=row[6],
        created_at=dt.datetime.fromisoformat(row[7]),
        notified_at=dt.datetime.fromisoformat(row[8]) if row[8] else None,
    )


class ShiftChangeRepository:
    """Reads pending change records and claims them for notification.

    Uses the shift_changes table created by RosterRepository.initialize().
    """

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def list_pending(self, since: dt.datetime) -> list[ShiftChange]:
        """Get unclaimed changes created at or after ``since``.

        Args:
            since: Start of the notification window (timezone-aware UTC)

        Returns:
            Pending changes ordered by creation time
        """
        result = await self._db.execute(
            f"""
            SELECT {_CHANGE_COLUMNS}
            FROM shift_changes
            WHERE notified_at IS NULL AND created_at >= ?
            ORDER BY created_at, id
            """,
            [since.isoformat()],
        )
        return [_change_from_row(row) for row in result.rows]

    async def get(self, change_id: str) -> ShiftChange | None:
        """Get a change record by id."""
        result = await self._db.execute(
            f"SELECT {_CHANGE_COLUMNS} FROM shift_changes WHERE id = ?",
            [change_id],
        )
        return _change_from_row(result.rows[0]) if result.rows else None

    async def claim(self, change_id: str, token: str, claimed_at: dt.datetime) -> bool:
        """Claim a change record for notification.

        Args:
            change_id: Change to claim
            token: Identifies the claiming sweep (used by release)
            claimed_at: Value written to notified_at

        Returns:
            True if this call claimed the record, False if another worker
            already had it
        """
        result = await self._db.execute(
            """
            UPDATE shift_changes
            SET notified_at = ?, claim_token = ?
            WHERE id = ? AND notified_at IS NULL
            """,
            [claimed_at.isoformat(), token, change_id],
        )
        return result.rows_affected == 1

    async def release(self, change_ids: list[str], token: str) -> int:
        """Return claimed records to the pending pool.

        Only records still holding ``token`` are released.

        Args:
            change_ids: Changes to release
            token: Token used when claiming

        Returns:
            Number of records released
        """
        if not change_ids:
            return 0
        placeholders = ", ".join("?" for _ in change_ids)
        result = await self._db.execute(
            f"""
            UPDATE shift_changes
            SET notified_at = NULL, claim_token = NULL
            WHERE claim_token = ? AND id IN ({placeholders})
            """,
            [token, *change_ids],
        )
        return result.rows_affected
