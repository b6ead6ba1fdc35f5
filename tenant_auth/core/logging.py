"""Logging configuration.

Configures stdlib logging (used by core modules via logging.getLogger)
and structlog (used by the application layer) from Settings. Secrets
must never reach a log sink, so both pipelines share one redaction rule.
"""

import logging
from typing import Any

import structlog

from tenant_auth.core.config import Settings

_MASK = "******"

# Request body and query fields masked before an error is logged.
# state carries a signed link-state token; code is a provider grant.
_SENSITIVE_BODY_FIELDS = frozenset(
    {
        "password",
        "current_password",
        "new_password",
        "access_token",
        "refresh_token",
        "token",
        "state",
        "code",
    }
)

# Substrings that mark a structlog event key as sensitive
_SENSITIVE_KEY_PARTS = ("password", "secret", "token", "authorization", "hash")


def sanitize_payload(data: Any) -> Any:
    """Mask password and token fields in a request payload.

    Only top-level keys of a mapping are inspected; other values are
    returned unchanged.

    Args:
        data: Parsed request body (or None).

    Returns:
        Shallow copy with sensitive values replaced by a mask.
    """
    if not isinstance(data, dict):
        return data
    return {
        key: _MASK if key in _SENSITIVE_BODY_FIELDS and value else value
        for key, value in data.items()
    }


def _redact_sensitive_keys(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Processor that masks values stored under sensitive keys."""
    for key in list(event_dict):
        if key == "event":
            continue
        if any(part in key.lower() for part in _SENSITIVE_KEY_PARTS):
            event_dict[key] = _MASK
    return event_dict


def configure_logging(settings: Settings) -> None:
    """Configure stdlib logging and structlog for the process.

    Args:
        settings: Application settings (log_level, log_json, environment).
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_sensitive_keys,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.log_json or not settings.is_development:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
