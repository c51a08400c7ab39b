"""Session lifecycle (login, logout, registration) on top of the request client."""

from src.features.session.models import LoginResponse
from src.features.session.service import SessionService


__all__ = ["LoginResponse", "SessionService"]
