"""Repository for venue identities and notification recipients.

Identities (users) carry their display name, aliases and name embedding.
The same rows hold notification preferences, and device tokens live in a
side table, so one repository serves both the resolver's catalogue and
the notification sweeper's recipient lookups.
"""

import json

from pydantic import BaseModel, Field

from roster_sync.db.turso import TursoClient
from roster_sync.identity.schemas import Identity


class Recipient(BaseModel):
    """Notification target for one user."""

    user_id: str
    display_name: str
    email: str | None = None
    push_enabled: bool = False
    email_enabled: bool = False
    device_tokens: list[tuple[str, str]] = Field(
        default_factory=list, description="[(platform, token), ...]"
    )

    @property
    def enabled_channels(self) -> list[str]:
        """Channel names the user opted into."""
        channels = []
        if self.push_enabled:
            channels.append("push")
        if self.email_enabled:
            channels.append("email")
        return channels


class IdentityRepository:
    """Repository for identities, venue membership and device tokens."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create identity tables if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                display_name TEXT NOT NULL,
                email TEXT,
                aliases TEXT NOT NULL DEFAULT '[]',
                name_embedding TEXT,
                push_enabled INTEGER NOT NULL DEFAULT 0,
                email_enabled INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """,
                """
            CREATE TABLE IF NOT EXISTS venue_members (
                venue_id TEXT NOT NULL,
                user_id TEXT NOT NULL REFERENCES users(id),
                PRIMARY KEY (venue_id, user_id)
            )
            """,
                """
            CREATE TABLE IF NOT EXISTS device_tokens (
                user_id TEXT NOT NULL REFERENCES users(id),
                platform TEXT NOT NULL,
                token TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(user_id, token)
            )
            """,
            ]
        )

    async def upsert_identity(
        self,
        identity: Identity,
        email: str | None = None,
        push_enabled: bool = False,
        email_enabled: bool = False,
    ) -> None:
        """Insert or replace a user record.

        Args:
            identity: Identity with display name, aliases and embedding
            email: Optional email address
            push_enabled: Whether push notifications are wanted
            email_enabled: Whether email notifications are wanted
        """
        await self._db.execute(
            """
            INSERT INTO users
                (id, display_name, email, aliases, name_embedding,
                 push_enabled, email_enabled)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                display_name = excluded.display_name,
                email = excluded.email,
                aliases = excluded.aliases,
                name_embedding = excluded.name_embedding,
                push_enabled = excluded.push_enabled,
                email_enabled = excluded.email_enabled
            """,
            [
                identity.id,
                identity.display_name,
                email,
                json.dumps(sorted(identity.aliases)),
                json.dumps(list(identity.embedding)) if identity.embedding else None,
                int(push_enabled),
                int(email_enabled),
            ],
        )

    async def add_member(self, venue_id: str, user_id: str) -> None:
        """Add a user to a venue (no-op if already a member)."""
        await self._db.execute(
            """
            INSERT INTO venue_members (venue_id, user_id) VALUES (?, ?)
            ON CONFLICT(venue_id, user_id) DO NOTHING
            """,
            [venue_id, user_id],
        )

    async def add_device_token(self, user_id: str, platform: str, token: str) -> None:
        """Register a push device token for a user."""
        await self._db.execute(
            """
            INSERT INTO device_tokens (user_id, platform, token) VALUES (?, ?, ?)
            ON CONFLICT(user_id, token) DO UPDATE SET platform = excluded.platform
            """,
            [user_id, platform, token],
        )

    async def list_for_venue(self, venue_id: str) -> list[Identity]:
        """Get the identity catalogue for a venue.

        Args:
            venue_id: Venue identifier

        Returns:
            Identities of all venue members, ordered by id
        """
        result = await self._db.execute(
            """
            SELECT u.id, u.display_name, u.aliases, u.name_embedding
            FROM venue_members m
            JOIN users u ON u.id = m.user_id
            WHERE m.venue_id = ?
            ORDER BY u.id
            """,
            [venue_id],
        )
        return [
            Identity(
                id=row[0],
                display_name=row[1],
                aliases=frozenset(json.loads(row[2] or "[]")),
                embedding=tuple(json.loads(row[3])) if row[3] else None,
            )
            for row in result.rows
        ]

    async def get_recipient(self, user_id: str) -> Recipient | None:
        """Get notification details for a user.

        Args:
            user_id: User identifier

        Returns:
            Recipient or None if the user does not exist
        """
        result = await self._db.execute(
            """
            SELECT id, display_name, email, push_enabled, email_enabled
            FROM users WHERE id = ?
            """,
            [user_id],
        )
        if not result.rows:
            return None
        row = result.rows[0]

        tokens = await self._db.execute(
            """
            SELECT platform, token FROM device_tokens
            WHERE user_id = ? ORDER BY created_at, token
            """,
            [user_id],
        )
        return Recipient(
            user_id=row[0],
            display_name=row[1],
            email=row[2],
            push_enabled=bool(row[3]),
            email_enabled=bool(row[4]),
            device_tokens=[(t[0], t[1]) for t in tokens.rows],
        )
