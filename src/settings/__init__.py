"""Application settings loading."""

from .app import ClientSettings, get_settings


__all__ = ["ClientSettings", "get_settings"]
