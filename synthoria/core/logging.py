"""
Logging configuration for the Synthoria API.
"""

import logging.config
import re
import sys

import structlog

_BEARER_RE = re.compile(r"(?i)bearer\s+[A-Za-z0-9\-._~+/]+=*")
_API_KEY_RE = re.compile(r"\bsk-[A-Za-z0-9\-_]{8,}")
_SECRET_KEYS = {"authorization", "api_key", "token", "secret", "password"}


def _redact(value: str) -> str:
    value = _BEARER_RE.sub("Bearer [REDACTED]", value)
    return _API_KEY_RE.sub("[REDACTED]", value)


def secret_scrubbing_processor(logger, method_name, event_dict):
    """
    Structlog processor that keeps credentials out of the logs.

    Redacts bearer tokens and provider API keys embedded in strings, and
    blanks out values stored under well-known secret field names.
    """
    for key, value in list(event_dict.items()):
        if key.lower() in _SECRET_KEYS and value:
            event_dict[key] = "[REDACTED]"
        elif isinstance(value, str):
            event_dict[key] = _redact(value)

    return event_dict


def setup_logging(level: str = "INFO", log_format: str = "json") -> None:
    """
    Setup structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_format: "json" for machine-readable output, "console" for development
    """

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stdout,
        format="%(message)s",
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        secret_scrubbing_processor,
    ]

    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
