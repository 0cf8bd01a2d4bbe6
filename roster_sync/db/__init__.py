"""Database access layer."""

from roster_sync.db.turso import TursoClient

__all__ = ["TursoClient"]
