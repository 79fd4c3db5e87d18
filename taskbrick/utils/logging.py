"""
Logging Configuration

Human-readable lines in development, one JSON object per line in
production. Every record carries the id of the request being served and
its tenant, taken from a per-request context set by the app middleware.
"""
import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional
import json
from datetime import datetime

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_tenant_id: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)


def bind_request_context(request_id: Optional[str] = None, tenant_id: Optional[str] = None) -> None:
    """Attach request/tenant ids to log records emitted by the current request."""
    if request_id is not None:
        _request_id.set(request_id)
    if tenant_id is not None:
        _tenant_id.set(tenant_id)


class RequestContextFilter(logging.Filter):
    """Copy the bound request context onto each record (explicit extras win)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = _request_id.get() or "-"
        if getattr(record, "tenant_id", None) is None:
            record.tenant_id = _tenant_id.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Known extras (tenant, user, request, security event fields) are copied
    to top-level keys when present on the record.
    """

    EXTRA_FIELDS = (
        "tenant_id", "user_id", "request_id", "event_type",
        "security_event", "path", "method", "status_code", "duration_ms",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value not in (None, "-"):
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure the root logger once at startup.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: emit JSON lines (production) instead of plain text
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)-7s [%(request_id)s tenant=%(tenant_id)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

    root_logger.addHandler(handler)

    # Library chatter
    for name, level in (
        ("uvicorn.access", logging.WARNING),
        ("sqlalchemy.engine", logging.WARNING),
        ("passlib", logging.ERROR),
        ("multipart", logging.WARNING),
    ):
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_security_event(event_type: str, details: Dict[str, Any], logger: logging.Logger) -> None:
    """
    Log a security-relevant event at WARNING with a stable shape.

    Event types in use:
    - failed_login: bad password, inactive account, foreign tenant
    - tenant_isolation_violation: token or membership doesn't match the tenant
    - refresh_token_rejected: expired, forged or revoked refresh token
    - password_reset: reset requested or completed
    - rate_limit_exceeded: tenant/IP bucket exhausted
    """
    summary = ", ".join(f"{k}={v}" for k, v in sorted(details.items()))
    logger.warning(
        f"SECURITY EVENT: {event_type} ({summary})",
        extra={"security_event": True, "event_type": event_type, **details},
    )
