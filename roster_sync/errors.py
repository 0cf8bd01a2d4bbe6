"""Error taxonomy shared by ingestion and notification code.

Every error raised across a collaborator boundary derives from
RosterSyncError. The ``retryable`` flag tells callers whether repeating
the whole operation can succeed without operator action.
"""


class RosterSyncError(Exception):
    """Base class for roster sync failures."""

    retryable: bool = False


class UpstreamServiceError(RosterSyncError):
    """An external service was unreachable or returned an error."""

    retryable = True


class EmbeddingServiceError(UpstreamServiceError):
    """The embedding provider failed to return a usable vector."""


class FileDownloadError(UpstreamServiceError):
    """The roster source file could not be downloaded."""


class MalformedExternalOutputError(RosterSyncError):
    """An external collaborator returned output that violates its schema."""

    retryable = False


class VersionConflictError(RosterSyncError):
    """Another ingestion claimed the next roster version first."""

    retryable = True


class DatabaseError(UpstreamServiceError):
    """The database rejected a statement or could not be reached."""
