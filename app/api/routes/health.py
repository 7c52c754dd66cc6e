"""Liveness and readiness checks for load balancers and orchestrators.

``/health`` only says the process answers. ``/health/ready`` also checks the
collaborators a request depends on and answers 503 while any of them is down.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.adapters.blob.base import AbstractBlobStore
from app.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_check() -> dict:
    return {"status": "ok"}


@router.get("/ready")
def readiness_check(request: Request) -> JSONResponse:
    """Report each collaborator as ``ok`` or ``unavailable``.

    Returns:
        JSONResponse: 200 when every check passes, otherwise 503; the body
            lists the outcome of each check.
    """

    limiter: AbstractRateLimiter = request.app.state.rate_limiter
    blob_store: AbstractBlobStore = request.app.state.blob_store
    checks = {
        "rateLimiter": limiter.ping(),
        "blobStore": blob_store.ping(),
    }

    ready = all(checks.values())
    if not ready:
        logger.warning("health.not_ready", extra={"failed": sorted(k for k, ok in checks.items() if not ok)})

    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "unavailable",
            "checks": {name: "ok" if ok else "unavailable" for name, ok in checks.items()},
        },
    )
