"""Credential stores for the request client.

A store owns the single active credential of one client instance. Reads
never block and never fail; an empty store means "attach no authorization".
"""

import json
from pathlib import Path
from typing import Protocol, runtime_checkable

import httpx
import structlog

from src.features.client.constants import (
    COMPONENT_CLIENT,
    COOKIE_STORAGE_KEY,
    TOKEN_STORAGE_KEY,
)
from src.features.client.models import Credential, CredentialMode


logger = structlog.get_logger()


@runtime_checkable
class CredentialStore(Protocol):
    """Protocol for credential stores.

    Implementations have no network side effects. ``clear`` is idempotent.
    """

    @property
    def mode(self) -> CredentialMode:
        """Credential transport mode served by this store."""
        ...

    def get(self) -> Credential | None:
        """Return the active credential, or None."""
        ...

    def set(self, credential: Credential) -> None:
        """Replace the active credential."""
        ...

    def clear(self) -> None:
        """Remove the active credential."""
        ...


class MemoryCredentialStore:
    """In-process bearer token store."""

    def __init__(self, credential: Credential | None = None) -> None:
        self._credential = credential

    @property
    def mode(self) -> CredentialMode:
        """Header mode."""
        return CredentialMode.HEADER

    def get(self) -> Credential | None:
        """Return the active credential, or None."""
        return self._credential

    def set(self, credential: Credential) -> None:
        """Replace the active credential."""
        self._credential = credential

    def clear(self) -> None:
        """Remove the active credential."""
        self._credential = None


class FileCredentialStore:
    """Bearer token store persisted to a JSON file.

    The file holds ``{"authToken": "<token>"}``. It is read once on
    construction, written on ``set``, and removed on ``clear``.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the token file.
        """
        self._path = path
        self._log = logger.bind(
            component=COMPONENT_CLIENT,
            subcomponent="credentials",
            path=str(path),
        )
        self._credential = self._load()

    @property
    def mode(self) -> CredentialMode:
        """Header mode."""
        return CredentialMode.HEADER

    @property
    def path(self) -> Path:
        """Location of the token file."""
        return self._path

    def _load(self) -> Credential | None:
        """Read the persisted token, ignoring unreadable files."""
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self._log.warning("token_file_unreadable", error=str(exc))
            return None

        token = data.get(TOKEN_STORAGE_KEY) if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            return None
        return Credential.bearer(token)

    def get(self) -> Credential | None:
        """Return the active credential, or None."""
        return self._credential

    def set(self, credential: Credential) -> None:
        """Replace the active credential and persist it.

        A file that cannot be written is logged; the credential stays
        active in memory for this process.
        """
        self._credential = credential
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps({TOKEN_STORAGE_KEY: credential.token}),
                encoding="utf-8",
            )
            self._path.chmod(0o600)
        except OSError as exc:
            self._log.warning("token_file_unwritable", error=str(exc))

    def clear(self) -> None:
        """Remove the active credential and its file."""
        self._credential = None
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            self._log.warning("token_file_unwritable", error=str(exc))


class CookieCredentialStore:
    """Store for HTTP-only cookie sessions.

    The server owns the cookie value; the client only tracks presence. A
    credential is active after ``set`` or while ``session_cookie_name`` is
    present in the cookie jar.

    With a ``path``, the jar is saved as JSON on ``set`` and ``save`` and
    loaded back on construction, so a session outlives the process.
    """

    def __init__(
        self,
        cookies: httpx.Cookies,
        session_cookie_name: str | None = None,
        path: Path | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            cookies: Cookie jar shared with the transport.
            session_cookie_name: Name of the session cookie, if known.
            path: Optional file the jar is persisted to.
        """
        self._cookies = cookies
        self._session_cookie_name = session_cookie_name
        self._path = path
        self._log = logger.bind(
            component=COMPONENT_CLIENT,
            subcomponent="credentials",
            path=str(path) if path is not None else None,
        )
        self._active = self._load()

    @property
    def mode(self) -> CredentialMode:
        """Cookie mode."""
        return CredentialMode.COOKIE

    @property
    def path(self) -> Path | None:
        """Location of the cookie file, if persisted."""
        return self._path

    def _has_session_cookie(self) -> bool:
        if self._session_cookie_name is None:
            return False
        return any(cookie.name == self._session_cookie_name for cookie in self._cookies.jar)

    def _load(self) -> bool:
        """Restore persisted cookies into the jar.

        Returns:
            Whether the persisted session was active.
        """
        if self._path is None or not self._path.exists():
            return False
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self._log.warning("cookie_file_unreadable", error=str(exc))
            return False
        if not isinstance(data, dict):
            return False

        for entry in data.get(COOKIE_STORAGE_KEY) or []:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            self._cookies.set(
                str(entry["name"]),
                str(entry.get("value", "")),
                domain=str(entry.get("domain", "")),
                path=str(entry.get("path", "/")),
            )
        return bool(data.get("active"))

    def get(self) -> Credential | None:
        """Return the cookie credential if a session is present."""
        if self._active or self._has_session_cookie():
            return Credential.cookie()
        return None

    def set(self, credential: Credential) -> None:  # noqa: ARG002
        """Mark the cookie session as active and persist the jar."""
        self._active = True
        self.save()

    def save(self) -> None:
        """Persist the jar while a session is present.

        Does nothing without a ``path`` or an active session.
        """
        if self._path is None or self.get() is None:
            return
        payload = {
            "active": self._active,
            COOKIE_STORAGE_KEY: [
                {
                    "name": cookie.name,
                    "value": cookie.value,
                    "domain": cookie.domain,
                    "path": cookie.path,
                }
                for cookie in self._cookies.jar
            ],
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload), encoding="utf-8")
            self._path.chmod(0o600)
        except OSError as exc:
            self._log.warning("cookie_file_unwritable", error=str(exc))

    def clear(self) -> None:
        """Forget the session, drop all cookies, and remove the file."""
        self._active = False
        self._cookies.clear()
        if self._path is None:
            return
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            self._log.warning("cookie_file_unwritable", error=str(exc))
