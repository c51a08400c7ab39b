"""Structured logging configuration."""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog

from src.features.client.redact import REDACTED_VALUE


# Event keys whose values must never be rendered
_SENSITIVE_EVENT_KEYS = frozenset(
    {"authorization", "token", "access_token", "password", "cookie"}
)


def redact_sensitive_keys(
    _logger: Any,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor replacing credential-bearing values.

    Args:
        _logger: Wrapped logger (unused).
        _method_name: Log method name (unused).
        event_dict: Event being rendered.

    Returns:
        The event with sensitive values redacted.
    """
    for key in event_dict:
        if key.lower() in _SENSITIVE_EVENT_KEYS:
            event_dict[key] = REDACTED_VALUE
    return event_dict


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the application.

    Sets up structlog with JSON output format and standard processors
    for timestamps, log levels, context binding, and credential redaction.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: True).
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_sensitive_keys,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    # Route standard library logging (httpx, httpcore) to the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=max(level, logging.WARNING),
    )


def bind_client_context(client_id: str) -> None:
    """Bind a client identifier to all subsequent log messages.

    Args:
        client_id: Identifier of the client instance or CLI invocation.
    """
    structlog.contextvars.bind_contextvars(client_id=client_id)


def clear_client_context() -> None:
    """Clear the client identifier from log messages."""
    structlog.contextvars.unbind_contextvars("client_id")
