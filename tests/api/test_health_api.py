"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from roster_sync.api.health import router
from roster_sync.notifications.scheduler import reset_scheduler


@pytest.fixture
def app() -> FastAPI:
    """App with only the health router."""
    reset_scheduler()
    app = FastAPI()
    app.include_router(router)
    return app


def wire(app: FastAPI, db_healthy: bool = True) -> None:
    db = MagicMock()
    db.is_healthy = AsyncMock(return_value=db_healthy)
    app.state.db = db
    app.state.ingestion_service = MagicMock()
    app.state.notification_sweeper = MagicMock()


def test_health_check(app):
    """Health endpoint reports version and environment."""
    response = TestClient(app).get("/health/")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "0.1.0"
    assert "environment" in data


def test_liveness(app):
    """Liveness probe always answers alive."""
    response = TestClient(app).get("/health/live")

    assert response.json() == {"status": "alive"}


class TestReadiness:
    """Tests for GET /health/ready."""

    def test_ready_when_everything_is_wired(self, app):
        """Ready when the database is healthy and both services exist."""
        wire(app)

        data = TestClient(app).get("/health/ready").json()

        assert data["status"] == "ready"
        assert data["checks"]["database"] == "ok"

    def test_stopped_scheduler_does_not_block_readiness(self, app):
        """Manual sweeps still work, so a stopped scheduler is only reported."""
        wire(app)

        data = TestClient(app).get("/health/ready").json()

        assert data["checks"]["notification_scheduler"] == "stopped"
        assert data["status"] == "ready"

    def test_unhealthy_database(self, app):
        """Not ready when the database check fails."""
        wire(app, db_healthy=False)

        data = TestClient(app).get("/health/ready").json()

        assert data["status"] == "not_ready"
        assert data["checks"]["database"] == "failed"

    def test_nothing_wired(self, app):
        """Not ready before the lifespan has wired anything."""
        data = TestClient(app).get("/health/ready").json()

        assert data["status"] == "not_ready"
        assert data["checks"]["database"] == "not_configured"
        assert data["checks"]["ingestion_service"] == "not_configured"
        assert data["checks"]["notification_sweeper"] == "not_configured"
