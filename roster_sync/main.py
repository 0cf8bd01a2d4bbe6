"""FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from roster_sync.api.router import api_router
from roster_sync.config import settings
from roster_sync.db.turso import TursoClient
from roster_sync.extraction.shift_normalizer import ShiftNormalizer
from roster_sync.extraction.table_extractor import TableExtractor
from roster_sync.identity.resolver import IdentityResolver
from roster_sync.ingestion.service import RosterIngestionService
from roster_sync.notifications.channels import EmailChannel, PushChannel
from roster_sync.notifications.copy_generator import NotificationCopyGenerator
from roster_sync.notifications.sweeper import NotificationSweeper
from roster_sync.repositories.change_repo import ShiftChangeRepository
from roster_sync.repositories.identity_repo import IdentityRepository
from roster_sync.repositories.notification_log_repo import NotificationLogRepository
from roster_sync.repositories.roster_repo import RosterRepository
from roster_sync.services.embedding_client import EmbeddingClient
from roster_sync.services.file_fetcher import FileFetcher
from roster_sync.services.llm_client import LLMClient

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def _initialize_repositories(app: FastAPI, db: TursoClient) -> None:
    """Create schemas and register repositories in app state."""
    identity_repo = IdentityRepository(db)
    await identity_repo.initialize()
    roster_repo = RosterRepository(db)
    await roster_repo.initialize()
    log_repo = NotificationLogRepository(db)
    await log_repo.initialize()

    app.state.identity_repo = identity_repo
    app.state.roster_repo = roster_repo
    app.state.change_repo = ShiftChangeRepository(db)
    app.state.notification_log_repo = log_repo
    logger.info("Repositories initialized")


def _initialize_ingestion_service(
    app: FastAPI,
    fetcher: FileFetcher,
    embedding_client: EmbeddingClient,
) -> None:
    """Initialize RosterIngestionService with its collaborators."""
    llm_client = LLMClient()
    resolver = IdentityResolver(
        threshold=settings.vector_sim_threshold,
        alias_max_edit_distance=settings.alias_max_edit_distance,
        alias_confidence_floor=settings.alias_confidence_floor,
    )
    app.state.ingestion_service = RosterIngestionService(
        fetcher=fetcher,
        table_extractor=TableExtractor(llm_client),
        normalizer=ShiftNormalizer(llm_client),
        identity_repo=app.state.identity_repo,
        roster_repo=app.state.roster_repo,
        embedding_provider=embedding_client,
        resolver=resolver,
        embedding_concurrency=settings.embedding_concurrency,
        version_allocation_attempts=settings.version_allocation_attempts,
    )
    logger.info(
        f"Ingestion service initialized (threshold={settings.vector_sim_threshold})"
    )


def _initialize_notification_sweeper(
    app: FastAPI, push: PushChannel, email: EmailChannel
) -> None:
    """Initialize NotificationSweeper with copy generation and delivery."""
    copy_generator = NotificationCopyGenerator(
        LLMClient(model=settings.anthropic_copy_model, max_tokens=512),
        timezone=settings.notification_timezone,
    )
    app.state.notification_sweeper = NotificationSweeper(
        change_repo=app.state.change_repo,
        roster_repo=app.state.roster_repo,
        identity_repo=app.state.identity_repo,
        copy_generator=copy_generator,
        channels=[push, email],
        log_repo=app.state.notification_log_repo,
        window=timedelta(minutes=settings.notification_window_minutes),
    )
    logger.info("Notification sweeper initialized")


def _get_notification_scheduler_context(sweeper: NotificationSweeper):
    """Get notification scheduler lifespan context manager.

    Returns a no-op context if scheduler is disabled via environment.
    """
    from roster_sync.notifications.scheduler import notification_scheduler_lifespan

    # Allow disabling scheduler for tests
    if os.environ.get("DISABLE_NOTIFICATION_SCHEDULER"):

        @asynccontextmanager
        async def noop_context():
            yield

        return noop_context()

    return notification_scheduler_lifespan(sweeper)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management.

    Startup:
    - Initialize database connection and schemas
    - Initialize ingestion service and notification sweeper
    - Start the notification scheduler

    Shutdown:
    - Stop the scheduler, close HTTP clients and the database connection
    """
    logger.info("Starting Roster Sync...")

    db = TursoClient()
    await db.connect()
    app.state.db = db
    logger.info(f"Database connected: {db.url}")

    await _initialize_repositories(app, db)

    fetcher = FileFetcher()
    embedding_client = EmbeddingClient()
    push = PushChannel()
    email = EmailChannel()
    _initialize_ingestion_service(app, fetcher, embedding_client)
    _initialize_notification_sweeper(app, push, email)

    async with AsyncExitStack() as stack:
        stack.push_async_callback(push.aclose)
        stack.push_async_callback(email.aclose)
        stack.push_async_callback(embedding_client.aclose)
        stack.push_async_callback(fetcher.aclose)
        await stack.enter_async_context(
            _get_notification_scheduler_context(app.state.notification_sweeper)
        )
        yield

    logger.info("Shutting down Roster Sync...")
    await db.close()
    logger.info("Database connection closed")


app = FastAPI(
    title=settings.app_name,
    description="Roster ingestion and shift change notifications",
    version=settings.app_version,
    lifespan=lifespan,
)

app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "roster_sync.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
