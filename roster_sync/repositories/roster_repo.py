"""Repository for roster versions, their shifts and shift changes.

Version allocation is a compare-and-swap: the caller reads the latest
version N, computes the new version against it and commits N + 1. The
UNIQUE(venue_id, week_start_date, version_number) constraint rejects the
loser of a race, and the whole commit (version row, shifts, changes)
runs as one atomic batch so a rejected commit leaves nothing behind.
"""

import datetime as dt
import logging

from roster_sync.db.turso import BatchStatement, TursoClient
from roster_sync.errors import DatabaseError, VersionConflictError
from roster_sync.roster.schemas import ResolvedShift, RosterVersion, ShiftChange

logger = logging.getLogger(__name__)

_SHIFT_COLUMNS = """
    id, roster_version_id, identity_id, employee_name, role, shift_date,
    start_time, end_time, break_minutes, notes, confidence
"""


def _is_unique_violation(error: DatabaseError) -> bool:
    cause = error.__cause__ or error
    message = str(cause).upper()
    return "UNIQUE" in message or "CONSTRAINT" in str(getattr(cause, "code", ""))


def _shift_from_row(row) -> ResolvedShift:
    return ResolvedShift(
        id=row[0],
        roster_version_id=row[1],
        identity_id=row[2],
        employee_name=row[3],
        role=row[4],
        date=dt.date.fromisoformat(row[5]),
        start_time=dt.time.fromisoformat(row[6]),
        end_time=dt.time.fromisoformat(row[7]),
        break_minutes=row[8],
        notes=row[9],
        confidence=row[10],
    )


class RosterRepository:
    """Persists roster versions and the change records derived from them."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create roster tables if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS roster_versions (
                id TEXT PRIMARY KEY,
                venue_id TEXT NOT NULL,
                week_start_date TEXT NOT NULL,
                version_number INTEGER NOT NULL,
                source_file_url TEXT,
                source_fingerprint TEXT,
                uploaded_by TEXT,
                created_at TEXT NOT NULL,
                UNIQUE(venue_id, week_start_date, version_number)
            )
            """,
                """
            CREATE TABLE IF NOT EXISTS shifts (
                id TEXT PRIMARY KEY,
                roster_version_id TEXT NOT NULL REFERENCES roster_versions(id),
                identity_id TEXT,
                employee_name TEXT NOT NULL,
                role TEXT,
                shift_date TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT NOT NULL,
                break_minutes INTEGER NOT NULL DEFAULT 0,
                notes TEXT,
                confidence REAL NOT NULL DEFAULT 0,
                position INTEGER NOT NULL
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_shifts_version
            ON shifts(roster_version_id, position)
            """,
                """
            CREATE TABLE IF NOT EXISTS shift_changes (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                change_type TEXT NOT NULL,
                old_shift_id TEXT,
                new_shift_id TEXT,
                venue_id TEXT NOT NULL,
                roster_version_id TEXT,
                created_at TEXT NOT NULL,
                notified_at TEXT,
                claim_token TEXT
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_shift_changes_pending
            ON shift_changes(notified_at, created_at)
            """,
            ]
        )

    async def get_latest_version(
        self,
        venue_id: str,
        week_start_date: dt.date,
    ) -> RosterVersion | None:
        """Get the current (highest numbered) version of a venue's week.

        Args:
            venue_id: Venue identifier
            week_start_date: Monday of the roster week

        Returns:
            RosterVersion with shifts, or None if the week has no roster yet
        """
        result = await self._db.execute(
            """
            SELECT id FROM roster_versions
            WHERE venue_id = ? AND week_start_date = ?
            ORDER BY version_number DESC
            LIMIT 1
            """,
            [venue_id, week_start_date.isoformat()],
        )
        if not result.rows:
            return None
        return await self.get_version(result.rows[0][0])

    async def get_version(self, version_id: str) -> RosterVersion | None:
        """Load a roster version and its shifts in roster order."""
        result = await self._db.execute(
            """
            SELECT id, venue_id, week_start_date, version_number,
                   source_file_url, source_fingerprint, uploaded_by, created_at
            FROM roster_versions WHERE id = ?
            """,
            [version_id],
        )
        if not result.rows:
            return None
        row = result.rows[0]

        shifts = await self._db.execute(
            f"""
            SELECT {_SHIFT_COLUMNS}
            FROM shifts WHERE roster_version_id = ?
            ORDER BY position
            """,
            [version_id],
        )
        return RosterVersion(
            id=row[0],
            venue_id=row[1],
            week_start_date=dt.date.fromisoformat(row[2]),
            version_number=row[3],
            source_file_url=row[4],
            source_fingerprint=row[5],
            uploaded_by=row[6],
            created_at=dt.datetime.fromisoformat(row[7]),
            shifts=[_shift_from_row(s) for s in shifts.rows],
        )

    async def list_versions(
        self,
        venue_id: str,
        week_start_date: dt.date,
    ) -> list[dict]:
        """List all versions of a venue's week, oldest first.

        Returns:
            List of dictionaries with id, version_number, shift_count,
            uploaded_by and created_at fields
        """
        result = await self._db.execute(
            """
            SELECT v.id, v.version_number, COUNT(s.id), v.uploaded_by, v.created_at
            FROM roster_versions v
            LEFT JOIN shifts s ON s.roster_version_id = v.id
            WHERE v.venue_id = ? AND v.week_start_date = ?
            GROUP BY v.id
            ORDER BY v.version_number
            """,
            [venue_id, week_start_date.isoformat()],
        )
        return [
            {
                "id": row[0],
                "version_number": row[1],
                "shift_count": row[2],
                "uploaded_by": row[3],
                "created_at": row[4],
            }
            for row in result.rows
        ]

    async def commit_version(
        self,
        version: RosterVersion,
        changes: list[ShiftChange],
    ) -> None:
        """Atomically store a new version with its shifts and changes.

        Args:
            version: Version to store; version_number must be latest + 1
            changes: Change records computed against the previous version

        Raises:
            VersionConflictError: If the version number was taken by a
                concurrent ingestion. Nothing is written in that case.
            DatabaseError: If the commit failed for any other reason
        """
        statements: list[BatchStatement] = [
            (
                """
                INSERT INTO roster_versions
                    (id, venue_id, week_start_date, version_number,
                     source_file_url, source_fingerprint, uploaded_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    version.id,
                    version.venue_id,
                    version.week_start_date.isoformat(),
                    version.version_number,
                    version.source_file_url,
                    version.source_fingerprint,
                    version.uploaded_by,
                    version.created_at.isoformat(),
                ],
            )
        ]
        for position, shift in enumerate(version.shifts):
            statements.append(
                (
                    f"""
                    INSERT INTO shifts ({_SHIFT_COLUMNS}, position)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        shift.id,
                        version.id,
                        shift.identity_id,
                        shift.employee_name,
                        shift.role,
                        shift.date.isoformat(),
                        shift.start_time.strftime("%H:%M"),
                        shift.end_time.strftime("%H:%M"),
                        shift.break_minutes,
                        shift.notes,
                        shift.confidence,
                        position,
                    ],
                )
            )
        for change in changes:
            statements.append(
                (
                    """
                    INSERT INTO shift_changes
                        (id, user_id, change_type, old_shift_id, new_shift_id,
                         venue_id, roster_version_id, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        change.id,
                        change.user_id,
                        change.change_type.value,
                        change.old_shift_id,
                        change.new_shift_id,
                        change.venue_id,
                        change.roster_version_id,
                        change.created_at.isoformat(),
                    ],
                )
            )

        try:
            await self._db.execute_batch(statements)
        except DatabaseError as e:
            if _is_unique_violation(e):
                raise VersionConflictError(
                    f"Version {version.version_number} of {version.venue_id}/"
                    f"{version.week_start_date} already exists"
                ) from e
            raise

        logger.info(
            f"Committed roster {version.venue_id}/{version.week_start_date} "
            f"v{version.version_number} ({len(version.shifts)} shifts, "
            f"{len(changes)} changes)"
        )

    async def get_shifts(self, shift_ids: list[str]) -> dict[str, ResolvedShift]:
        """Load shifts by id.

        Args:
            shift_ids: Shift identifiers

        Returns:
            Mapping of id -> ResolvedShift; unknown ids are absent
        """
        if not shift_ids:
            return {}
        placeholders = ", ".join("?" for _ in shift_ids)
        result = await self._db.execute(
            f"SELECT {_SHIFT_COLUMNS} FROM shifts WHERE id IN ({placeholders})",
            list(shift_ids),
        )
        return {row[0]: _shift_from_row(row) for row in result.rows}
