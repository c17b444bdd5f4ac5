"""
JSON logging for the identity service.

Every line is one JSON object on stdout. Structured payloads passed to the
``*_with_data`` helpers are scrubbed of credentials before formatting.
"""

import logging
import sys
from datetime import datetime, timezone
import json
from typing import Any


# Any key containing one of these fragments is masked, at any depth.
SENSITIVE_KEY_FRAGMENTS = ("password", "token", "secret", "hash")
MASK = "***"


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(fragment in lowered for fragment in SENSITIVE_KEY_FRAGMENTS)


def redact(value: Any) -> Any:
    """Return ``value`` with sensitive keys masked in nested dicts and lists."""
    if isinstance(value, dict):
        return {
            k: MASK if isinstance(k, str) and _is_sensitive(k) else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, tagged with the emitting service."""

    def __init__(self, service_name: str = "identity-service"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": self.service_name,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        data = getattr(record, "extra_data", None)
        if data:
            entry["data"] = redact(data)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class StructuredLogger(logging.Logger):
    """Logger with ``*_with_data`` helpers that attach a structured payload."""

    def _log_with_data(self, level: int, msg: str, data: dict[str, Any] | None, **kwargs):
        if not self.isEnabledFor(level):
            return
        if data:
            kwargs["extra"] = {**kwargs.get("extra", {}), "extra_data": data}
        # Point the record at the caller, not at this helper.
        kwargs.setdefault("stacklevel", 3)
        self._log(level, msg, (), **kwargs)

    def debug_with_data(self, msg: str, data: dict[str, Any] | None = None, **kwargs):
        self._log_with_data(logging.DEBUG, msg, data, **kwargs)

    def info_with_data(self, msg: str, data: dict[str, Any] | None = None, **kwargs):
        self._log_with_data(logging.INFO, msg, data, **kwargs)

    def warning_with_data(self, msg: str, data: dict[str, Any] | None = None, **kwargs):
        self._log_with_data(logging.WARNING, msg, data, **kwargs)

    def error_with_data(self, msg: str, data: dict[str, Any] | None = None, **kwargs):
        self._log_with_data(logging.ERROR, msg, data, **kwargs)


# Must run before any module calls get_logger().
logging.setLoggerClass(StructuredLogger)


def setup_logging(debug: bool = False, service_name: str = "identity-service") -> None:
    """Route the root logger to stdout as JSON."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(service_name))
    root_logger.addHandler(handler)

    # SQL echo and SMTP chatter stay at warning even in debug
    for noisy in ("sqlalchemy.engine", "aiosmtplib", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    return logging.getLogger(name)  # type: ignore[return-value]
