"""HTTP middleware for request correlation, IP screening and response hardening.

Three middleware functions, registered by the app factory (the last one added
runs first)::

    app.middleware("http")(ip_screening_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

``request_id_middleware``:
- Accepts incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars for access throughout the request lifecycle
- Injects request_id and the request duration into response headers
- Clears context after request completion to prevent context leaks

``security_headers_middleware`` adds the browser hardening headers to every
response and the no-store / nosniff set to ``/api`` responses.

``ip_screening_middleware`` rejects ``/api`` requests from blocked IPs and
scripted clients and enforces the global per-IP budget before any route runs.
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import Request, Response, status

from app.adapters.rate_limit.ip_blocklist import IpBlocklist
from app.core.api_response import SECURITY_HEADERS, error_response, forbidden_response, rate_limit_response
from app.core.client_id import resolve_client_id
from app.core.config import settings
from app.core.logging import clear_request_id, fingerprint, set_request_id
from app.core.rate_limit import RATE_LIMITS, get_rate_limiter

logger = logging.getLogger(__name__)

API_PATH_PREFIX = "/api/"

# Swagger UI and ReDoc load their assets from a CDN
DOCS_PATH_PREFIXES = ("/docs", "/redoc")

CSP_DIRECTIVES: dict[str, list[str]] = {
    "default-src": ["'self'"],
    "script-src": ["'self'", "'unsafe-inline'", "'unsafe-eval'", "https://accounts.google.com"],
    "style-src": ["'self'", "'unsafe-inline'", "https://fonts.googleapis.com"],
    "img-src": ["'self'", "data:", "blob:", "https:", "*.googleusercontent.com"],
    "font-src": ["'self'", "https://fonts.gstatic.com"],
    "connect-src": ["'self'", "https://accounts.google.com"],
    "frame-src": ["'self'", "https://accounts.google.com"],
    "frame-ancestors": ["'none'"],
    "form-action": ["'self'"],
    "base-uri": ["'self'"],
    "object-src": ["'none'"],
    "upgrade-insecure-requests": [],
}


def build_content_security_policy(directives: dict[str, list[str]] = CSP_DIRECTIVES) -> str:
    """Render CSP directives as a header value.

    Examples:
        >>> build_content_security_policy({"default-src": ["'self'"], "upgrade-insecure-requests": []})
        "default-src 'self'; upgrade-insecure-requests"
    """
    return "; ".join(
        f"{name} {' '.join(values)}" if values else name for name, values in directives.items()
    )


HARDENING_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=(), usb=()",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
}
CONTENT_SECURITY_POLICY = build_content_security_policy()

BLOCKED_USER_AGENTS = re.compile(
    r"curl|wget|python-requests|scrapy|httpclient|java/|libwww|lwp-trivial"
    r"|nikto|sqlmap|nmap|masscan|zgrab",
    re.IGNORECASE,
)
MIN_USER_AGENT_LENGTH = 10

BLOCKED_IP_MESSAGE = "IP temporarily blocked due to suspicious activity"
AUTOMATED_AGENT_MESSAGE = "Automated requests not allowed"
INVALID_AGENT_MESSAGE = "Invalid request"


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides the configured request id header (``X-Request-ID``
    by default), that value is used; otherwise a new UUID is generated. The id
    is stored in contextvars for log correlation while the request runs and
    echoed back on the response together with the total duration.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "request_method": request.method,
                "request_path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def security_headers_middleware(request: Request, call_next) -> Response:
    """Apply the hardening headers everywhere and the no-store set to ``/api``.

    Error responses built by ``app.core.api_response`` already carry the
    no-store set; this covers successful bodies returned through
    ``response_model``. Headers set by a handler take precedence.
    """

    response: Response = await call_next(request)
    path = request.url.path

    for name, value in HARDENING_HEADERS.items():
        response.headers.setdefault(name, value)
    if not path.startswith(DOCS_PATH_PREFIXES):
        response.headers.setdefault("Content-Security-Policy", CONTENT_SECURITY_POLICY)

    if path.startswith(API_PATH_PREFIX):
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
    return response


def _screen_user_agent(user_agent: str | None) -> str | None:
    """Return the rejection message for a suspicious User-Agent, if any."""
    if not user_agent or len(user_agent) < MIN_USER_AGENT_LENGTH:
        return INVALID_AGENT_MESSAGE
    if BLOCKED_USER_AGENTS.search(user_agent):
        return AUTOMATED_AGENT_MESSAGE
    return None


async def ip_screening_middleware(request: Request, call_next) -> Response:
    """Screen ``/api`` requests per client IP before routing.

    In order:
    - IPs on the blocklist get 403 with ``Retry-After``.
    - Scripted or missing User-Agents get 403 and count as a violation.
    - The global per-IP budget (``RATE_LIMITS["ip"]``) is enforced; exhausting
      it returns the usual 429 and counts as a violation.

    Enough violations put the IP on the blocklist. Other paths (health,
    uploads, docs) are not screened.
    """

    cfg = settings.rate_limit
    if not cfg.ip_screening or not request.url.path.startswith(API_PATH_PREFIX):
        return await call_next(request)

    blocklist: IpBlocklist = request.app.state.ip_blocklist
    ip = resolve_client_id(request.headers)

    blocked_until = blocklist.blocked_until(ip)
    if blocked_until is not None:
        retry_after = max(1, -(-(blocked_until - blocklist.now_ms()) // 1000))
        logger.info(
            "ip_screening.rejected_blocked",
            extra={"client_hash": fingerprint(ip), "retry_after_s": retry_after},
        )
        return error_response(
            BLOCKED_IP_MESSAGE,
            status.HTTP_403_FORBIDDEN,
            headers={"Retry-After": str(retry_after)},
        )

    if cfg.block_automated_agents:
        rejection = _screen_user_agent(request.headers.get("user-agent"))
        if rejection is not None:
            blocklist.record_violation(ip, reason="user_agent")
            return forbidden_response(rejection)

    if cfg.enabled:
        limiter = get_rate_limiter(request)
        result = limiter.check(f"ip:{ip}", RATE_LIMITS["ip"])
        if not result.success:
            blocklist.record_violation(ip, reason="ip_budget")
            return rate_limit_response(result, limiter.now_ms(), include_headers=cfg.include_headers)

    return await call_next(request)
