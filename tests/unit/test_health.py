"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)

HEALTHY_DB = {
    "healthy": True,
    "service": "database_pool",
    "pool_stats": {"pool_size": 3, "pool_available": 3},
}


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_readyz_endpoint_all_services_healthy():
    """Test readiness endpoint when all services are healthy."""
    with (
        patch("app.routes.health.fast_redis.ping", AsyncMock(return_value=True)),
        patch("app.routes.health.task_queue.depth", AsyncMock(return_value={"queued": 2, "processing": 0})),
        patch("app.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["redis"]["ok"] is True
    assert data["checks"]["redis"]["task_queue"] == {"queued": 2, "processing": 0}
    assert data["checks"]["database"]["ok"] is True


def test_readyz_endpoint_redis_unhealthy():
    """Test readiness endpoint when Redis is down."""
    with (
        patch("app.routes.health.fast_redis.ping", AsyncMock(return_value=False)),
        patch("app.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
    ):
        response = client.get("/readyz")

    # Should still return 200, but overall_ok should be False
    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["redis"]["ok"] is False
    assert "task_queue" not in data["checks"]["redis"]


def test_readyz_endpoint_postgres_unhealthy():
    """Test readiness endpoint when Postgres is down."""
    unhealthy = {"healthy": False, "error": "Pool not initialized"}
    with (
        patch("app.routes.health.fast_redis.ping", AsyncMock(return_value=True)),
        patch("app.routes.health.task_queue.depth", AsyncMock(return_value={"queued": 0, "processing": 0})),
        patch("app.routes.health.db_health_check", AsyncMock(return_value=unhealthy)),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["ok"] is False
    assert data["checks"]["database"]["error"] == "Pool not initialized"


def test_readyz_includes_latency_metrics():
    """Test that readiness checks include latency metrics."""
    with (
        patch("app.routes.health.fast_redis.ping", AsyncMock(side_effect=ConnectionError("down"))),
        patch("app.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
    ):
        response = client.get("/readyz")

    checks = response.json()["checks"]
    assert isinstance(checks["redis"]["latency_ms"], (int, float))
    assert isinstance(checks["database"]["latency_ms"], (int, float))
    assert checks["redis"]["error"].startswith("ConnectionError")
