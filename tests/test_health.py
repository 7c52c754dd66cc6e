"""Tests for the liveness and readiness endpoints."""

from unittest.mock import MagicMock

import redis
from fastapi.testclient import TestClient

from app.adapters.blob.local import LocalBlobStore
from app.adapters.rate_limit.redis_store import RedisRateLimiter
from app.core.app_factory import create_app


def test_liveness(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_with_in_memory_collaborators(client: TestClient) -> None:
    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "checks": {"rateLimiter": "ok", "blobStore": "ok"}}


def test_readiness_reports_unreachable_redis(repository, tmp_path) -> None:
    redis_client = MagicMock()
    redis_client.ping.side_effect = redis.ConnectionError("down")
    app = create_app(
        repository=repository,
        rate_limiter=RedisRateLimiter(redis_client),
        blob_store=LocalBlobStore(tmp_path / "uploads", public_base_url="/uploads"),
    )

    response = TestClient(app).get("/health/ready")

    assert response.status_code == 503
    assert response.json() == {"status": "unavailable", "checks": {"rateLimiter": "unavailable", "blobStore": "ok"}}


def test_readiness_reports_missing_upload_dir(repository, tmp_path) -> None:
    store = LocalBlobStore(tmp_path / "uploads", public_base_url="/uploads")
    app = create_app(repository=repository, blob_store=store)
    (tmp_path / "uploads").rmdir()

    response = TestClient(app).get("/health/ready")

    assert response.status_code == 503
    assert response.json()["checks"]["blobStore"] == "unavailable"
