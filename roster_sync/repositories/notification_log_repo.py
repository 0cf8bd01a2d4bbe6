"""Repository for the notification audit log."""

import datetime as dt

from roster_sync.db.turso import TursoClient


class NotificationLogRepository:
    """Append-only log of notifications sent to users."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create notification_log table if not exists."""
        await self._db.execute(
            """
            CREATE TABLE IF NOT EXISTS notification_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                notification_type TEXT NOT NULL,
                title TEXT NOT NULL,
                body TEXT NOT NULL,
                sent_via TEXT NOT NULL,
                delivery_status TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )

    async def record(
        self,
        user_id: str,
        title: str,
        body: str,
        sent_via: list[str],
        delivery_status: str,
        notification_type: str = "shift_change",
    ) -> None:
        """Record one notification attempt.

        Args:
            user_id: Recipient
            title: Notification title
            body: Notification body
            sent_via: Channel names used (empty when skipped)
            delivery_status: "sent" or "skipped"
            notification_type: Kind of notification
        """
        await self._db.execute(
            """
            INSERT INTO notification_log
                (user_id, notification_type, title, body, sent_via,
                 delivery_status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                user_id,
                notification_type,
                title,
                body,
                ",".join(sent_via),
                delivery_status,
                dt.datetime.now(dt.UTC).isoformat(),
            ],
        )

    async def list_for_user(self, user_id: str) -> list[dict]:
        """Get logged notifications for a user, oldest first."""
        result = await self._db.execute(
            """
            SELECT title, body, sent_via, delivery_status, created_at
            FROM notification_log WHERE user_id = ?
            ORDER BY id
            """,
            [user_id],
        )
        return [
            {
                "title": row[0],
                "body": row[1],
                "sent_via": row[2].split(",") if row[2] else [],
                "delivery_status": row[3],
                "created_at": row[4],
            }
            for row in result.rows
        ]
