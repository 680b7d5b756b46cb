"""
Centralized structured logging.

Provides:
- get_logger(): structlog logger bound to a module name
- setup_logging(): one-time configuration from LoggingSettings
- redact_sensitive_fields(): processor that keeps secrets out of log output

Production renders JSON and development a colored console format, unless
LOG_FORMAT names one explicitly.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor

from config import LoggingSettings

# Keys that are always redacted
REDACTED_FIELDS = {
    "password",
    "password_hash",
    "new_password",
    "token",
    "api_key",
    "authorization",
    "cookie",
    "refresh_token",
    "access_token",
    "pending_token",
    "secret",
    "key",
    "code",
    "otp_code",
}

# Substrings that mark a key as sensitive
_SENSITIVE_MARKERS = ("password", "token", "secret", "key")

_RESERVED_KEYS = {"level", "event", "timestamp", "logger"}


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("two_factor_code_issued", user_id="123")
    """
    return structlog.get_logger(name)


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format UTC timestamp to event dict."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _RESERVED_KEYS:
            continue
        lowered = key.lower()
        if lowered in REDACTED_FIELDS or any(m in lowered for m in _SENSITIVE_MARKERS):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(log_format: str) -> None:
    """Configure structlog processors for the given output format."""
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            pad_event=15,
            sort_keys=False,
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging(log_level: str) -> None:
    """Route stdlib logging to stdout and quiet noisy third-party loggers."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def resolve_log_format(settings: LoggingSettings, env: str) -> str:
    """Explicit LOG_FORMAT wins; otherwise JSON in production, console elsewhere."""
    if settings.log_format:
        return settings.log_format
    return "json" if env == "production" else "console"


def setup_logging(settings: LoggingSettings, env: str = "development") -> None:
    """
    Initialize logging for the application.

    Called once from the app factory, before any other component starts.
    """
    log_format = resolve_log_format(settings, env)
    configure_stdlib_logging(settings.log_level)
    configure_structlog(log_format)

    get_logger(__name__).info(
        "logging_initialized",
        env=env,
        log_level=settings.log_level,
        log_format=log_format,
    )
