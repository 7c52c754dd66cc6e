"""Client identity resolution from proxy headers."""

from __future__ import annotations

from typing import Callable, Mapping

FALLBACK_CLIENT_ID = "anonymous"

CDN_CLIENT_IP_HEADER = "cf-connecting-ip"
REAL_IP_HEADER = "x-real-ip"
FORWARDED_FOR_HEADER = "x-forwarded-for"


def _header_getter(headers: Mapping[str, str]) -> Callable[[str], str | None]:
    # Starlette ``Headers.get`` is case-insensitive and returns the first of
    # repeated lines; only plain dicts need their keys folded.
    if isinstance(headers, dict):
        return {key.lower(): value for key, value in headers.items()}.get
    return headers.get


def resolve_client_id(headers: Mapping[str, str]) -> str:
    """Derive a caller identity from request headers.

    Precedence: the CDN client-IP header, then the real-IP header set by the
    reverse proxy, then the first hop of ``X-Forwarded-For``. Callers that
    cannot be identified share the fallback identity.

    Examples:
        >>> resolve_client_id({"x-forwarded-for": "1.2.3.4, 5.6.6.7"})
        '1.2.3.4'
        >>> resolve_client_id({})
        'anonymous'
    """
    get = _header_getter(headers)

    cdn_ip = (get(CDN_CLIENT_IP_HEADER) or "").strip()
    if cdn_ip:
        return cdn_ip

    real_ip = (get(REAL_IP_HEADER) or "").strip()
    if real_ip:
        return real_ip

    forwarded = get(FORWARDED_FOR_HEADER) or ""
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop

    return FALLBACK_CLIENT_ID
