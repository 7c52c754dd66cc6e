"""Structured logging for the API: JSON lines, request correlation, scrubbing.

Log calls pass structured fields through ``extra``. Before a record leaves the
process those fields are scrubbed by a ``RedactionPolicy``:

- secrets (session tokens, cookies, auth headers) and rich-text page content
  are replaced with ``[REDACTED]``
- client addresses and emails are replaced by a short fingerprint, so the
  same client can still be followed across lines
- very long strings are cut

The request id set by the request id middleware is attached to every record
logged while the request runs.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from app.core.config import LogSettings, settings

REDACTED = "[REDACTED]"
TRUNCATED_SUFFIX = "...[truncated]"

# Set on records already scrubbed by SensitiveDataFilter
_SCRUBBED_FLAG = "_scrubbed"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Keys whose values never reach a log line
SENSITIVE_KEYS_DEFAULT: set[str] = {
    "authorization",
    "token",
    "session_token",
    "sessiontoken",
    "access_token",
    "secret",
    "password",
    "cookie",
    "set-cookie",
    "redis_url",
    "content",
    "body",
    "x-forwarded-for",
    "x-real-ip",
    "cf-connecting-ip",
}

# Keys logged as fingerprints instead of raw values
HASHED_KEYS_DEFAULT: set[str] = {"client_id", "ip", "email"}

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

# Third-party loggers that would otherwise print each line twice
_DETACHED_LOGGERS = ("uvicorn", "uvicorn.access")


def set_request_id(request_id: str | None) -> None:
    """Bind ``request_id`` to the current context."""
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def fingerprint(value: str) -> str:
    """Short SHA-256 digest of a secret or personal identifier.

    Lets logs correlate events for the same client or session without
    recording the raw value.
    """

    return hashlib.sha256(value.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class RedactionPolicy:
    """Decides how each structured field is written to the log.

    Attributes:
        redact: Keys (case-insensitive) whose values are dropped.
        hashed: Keys whose values are replaced by ``fingerprint``.
        max_string_length: Longer strings are cut and marked.
    """

    redact: frozenset[str] = field(default_factory=lambda: frozenset(SENSITIVE_KEYS_DEFAULT))
    hashed: frozenset[str] = field(default_factory=lambda: frozenset(HASHED_KEYS_DEFAULT))
    max_string_length: int = 2000

    @classmethod
    def from_keys(cls, sensitive_keys: Iterable[str] | None) -> "RedactionPolicy":
        if sensitive_keys is None:
            return cls()
        return cls(redact=frozenset(key.lower() for key in sensitive_keys))

    def scrub_field(self, key: str, value: Any) -> Any:
        lowered = key.lower()
        if lowered in self.redact:
            return REDACTED
        if lowered in self.hashed and isinstance(value, str):
            return fingerprint(value)
        return self.scrub(value)

    def scrub(self, value: Any) -> Any:
        """Scrub nested mappings and sequences, cutting long strings."""

        if isinstance(value, Mapping):
            return {k: self.scrub_field(str(k), v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self.scrub(item) for item in value)
        if isinstance(value, str) and len(value) > self.max_string_length:
            return value[: self.max_string_length] + TRUNCATED_SUFFIX
        return value

    def extras(self, record: LogRecord) -> dict[str, Any]:
        """Scrubbed copy of the fields a record received through ``extra``."""

        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if getattr(record, _SCRUBBED_FLAG, False):
            return fields
        return {key: self.scrub_field(key, value) for key, value in fields.items()}


class RequestIdFilter(logging.Filter):
    """Attach the context request id to records logged without one."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Scrub ``extra`` fields in place so every formatter sees safe values."""

    def __init__(
        self,
        sensitive_keys: Iterable[str] | None = None,
        *,
        policy: RedactionPolicy | None = None,
    ) -> None:
        super().__init__()
        self.policy = policy or RedactionPolicy.from_keys(sensitive_keys)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in self.policy.extras(record).items():
            setattr(record, key, value)
        setattr(record, _SCRUBBED_FLAG, True)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record; Khmer text is kept readable by default."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        policy: RedactionPolicy | None = None,
        ensure_ascii: bool = False,
    ) -> None:
        super().__init__()
        self.policy = policy or RedactionPolicy.from_keys(sensitive_keys)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(self.policy.extras(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    path = Path(log_settings.file_path or "logs/khmer-note-api.log")
    path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(path, encoding="utf-8")
    return RotatingFileHandler(
        path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install the single root handler used by the application.

    Args:
        log_settings: Logging settings; the global ``settings.log`` if omitted.
    """

    cfg = log_settings or settings.log
    policy = RedactionPolicy()

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter(policy=policy))
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter(policy=policy))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    for name in _DETACHED_LOGGERS:
        logging.getLogger(name).propagate = False
