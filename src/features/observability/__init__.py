"""Observability module for logging."""

from src.features.observability.logging import (
    bind_client_context,
    clear_client_context,
    configure_logging,
)


__all__ = [
    "bind_client_context",
    "clear_client_context",
    "configure_logging",
]
