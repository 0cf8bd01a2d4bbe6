"""RosterIngestionService orchestrates one roster upload end to end.

Pipeline (in order):
1. Download the file and fingerprint it
2. Extract the raw cell table (vision model)
3. Normalize cells into canonical shifts
4. Resolve employee names against the venue's identities
5. Allocate the next version, diff against the previous one and commit
   everything atomically, retrying allocation on version races

Any failure before the commit leaves the database untouched.
"""

import datetime as dt

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from roster_sync.errors import (
    MalformedExternalOutputError,
    RosterSyncError,
    VersionConflictError,
)
from roster_sync.extraction.shift_normalizer import ShiftNormalizer
from roster_sync.extraction.table_extractor import TableExtractor
from roster_sync.extraction.week import week_start
from roster_sync.identity.embedding_cache import EmbeddingCache, EmbeddingProvider
from roster_sync.identity.resolver import IdentityResolver
from roster_sync.identity.schemas import ResolutionBatch
from roster_sync.ingestion.schemas import IngestionResult, IngestionStats, IngestRequest
from roster_sync.repositories.identity_repo import IdentityRepository
from roster_sync.repositories.roster_repo import RosterRepository
from roster_sync.roster.differ import diff_versions
from roster_sync.roster.schemas import DiffResult, ResolvedShift, RosterVersion
from roster_sync.services.file_fetcher import FileFetcher

logger = structlog.get_logger()


class RosterIngestionService:
    """Turns an uploaded roster file into a stored, diffed roster version."""

    def __init__(
        self,
        fetcher: FileFetcher,
        table_extractor: TableExtractor,
        normalizer: ShiftNormalizer,
        identity_repo: IdentityRepository,
        roster_repo: RosterRepository,
        embedding_provider: EmbeddingProvider,
        resolver: IdentityResolver,
        embedding_concurrency: int = 4,
        version_allocation_attempts: int = 5,
        allocation_backoff_seconds: float = 0.05,
    ):
        """Initialize ingestion service with its collaborators.

        Args:
            fetcher: Downloads roster files
            table_extractor: Image -> raw table
            normalizer: Raw table -> canonical shifts
            identity_repo: Venue identity catalogue
            roster_repo: Roster version persistence
            embedding_provider: Name embedding source
            resolver: Identity resolver
            embedding_concurrency: Worker-pool size for embedding calls
            version_allocation_attempts: Attempts before a version race
                is reported as a failure
            allocation_backoff_seconds: Base jittered delay between attempts
        """
        self._fetcher = fetcher
        self._extractor = table_extractor
        self._normalizer = normalizer
        self._identities = identity_repo
        self._rosters = roster_repo
        self._embedding_provider = embedding_provider
        self._resolver = resolver
        self._embedding_concurrency = embedding_concurrency
        self._allocation_attempts = version_allocation_attempts
        self._allocation_backoff = allocation_backoff_seconds

    async def ingest(self, request: IngestRequest) -> IngestionResult:
        """Ingest one roster upload.

        Args:
            request: Venue, file location and optional week hint

        Returns:
            IngestionResult. Failures are reported with success=False and
            a retryable flag instead of raising.
        """
        log = logger.bind(venue_id=request.venue_id, file_url=request.file_url)
        log.info("ingesting roster")

        try:
            fetched = await self._fetcher.fetch(request.file_url)
            week_anchor = week_start(request.week_hint) if request.week_hint else None

            table = await self._extractor.extract(fetched.content, fetched.media_type)
            shifts = await self._normalizer.normalize(table, week_anchor)
            if not shifts:
                raise MalformedExternalOutputError("No shifts found in roster")

            week = week_anchor or week_start(shifts[0].date)
            identities = await self._identities.list_for_venue(request.venue_id)
            embeddings = EmbeddingCache(
                self._embedding_provider, concurrency=self._embedding_concurrency
            )
            batch = await self._resolver.resolve_all(shifts, identities, embeddings)

            version, diff = await self._store(
                request, week, fetched.fingerprint, batch
            )
        except RosterSyncError as e:
            log.error(
                "roster ingestion failed",
                error=str(e),
                error_kind=type(e).__name__,
                retryable=e.retryable,
            )
            return IngestionResult(success=False, error=str(e), retryable=e.retryable)

        counts = (
            diff.summary() if diff is not None else {"unchanged": len(version.shifts)}
        )
        stats = IngestionStats(
            **counts,
            matched_count=batch.matched_count,
            unmatched_count=batch.unmatched_count,
        )

        log.info(
            "roster ingested",
            roster_id=version.id,
            version=version.version_number,
            duplicate=diff is None,
            **stats.model_dump(),
        )
        return IngestionResult(
            success=True,
            roster_id=version.id,
            version=version.version_number,
            week_start_date=version.week_start_date,
            stats=stats,
            unmatched_names=batch.unmatched_names,
            duplicate=diff is None,
        )

    async def _store(
        self,
        request: IngestRequest,
        week: dt.date,
        fingerprint: str,
        batch: ResolutionBatch,
    ) -> tuple[RosterVersion, DiffResult | None]:
        """Allocate the next version and commit it, retrying lost races.

        Returns:
            (version, diff). diff is None when the file is already the
            current version, in which case nothing new is written.

        Raises:
            VersionConflictError: If every allocation attempt lost a race
        """

        def log_race(retry_state: RetryCallState) -> None:
            logger.warning(
                "roster version race lost, retrying",
                venue_id=request.venue_id,
                week_start_date=week.isoformat(),
                attempt=retry_state.attempt_number,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._allocation_attempts),
            wait=wait_random_exponential(multiplier=self._allocation_backoff, max=2),
            retry=retry_if_exception_type(VersionConflictError),
            before_sleep=log_race,
            reraise=True,
        )
        return await retrying(
            self._commit_next_version, request, week, fingerprint, batch
        )

    async def _commit_next_version(
        self,
        request: IngestRequest,
        week: dt.date,
        fingerprint: str,
        batch: ResolutionBatch,
    ) -> tuple[RosterVersion, DiffResult | None]:
        previous = await self._rosters.get_latest_version(request.venue_id, week)
        if previous is not None and previous.source_fingerprint == fingerprint:
            return previous, None

        version = self._build_version(request, week, fingerprint, batch, previous)
        diff = diff_versions(previous, version)
        await self._rosters.commit_version(version, diff.changes)
        return version, diff

    @staticmethod
    def _build_version(
        request: IngestRequest,
        week: dt.date,
        fingerprint: str,
        batch: ResolutionBatch,
        previous: RosterVersion | None,
    ) -> RosterVersion:
        version = RosterVersion(
            venue_id=request.venue_id,
            week_start_date=week,
            version_number=previous.version_number + 1 if previous else 1,
            source_file_url=request.file_url,
            source_fingerprint=fingerprint,
            uploaded_by=request.uploaded_by,
        )
        version.shifts = [
            ResolvedShift(
                roster_version_id=version.id,
                identity_id=result.identity_id,
                employee_name=result.shift.employee_name,
                role=result.shift.role,
                date=result.shift.date,
                start_time=result.shift.start_time,
                end_time=result.shift.end_time,
                break_minutes=result.shift.break_minutes or 0,
                notes=result.shift.notes,
                confidence=result.confidence,
            )
            for result in batch.results
        ]
        return version
