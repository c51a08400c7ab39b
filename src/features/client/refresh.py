"""Single-flight session refresh.

When many in-flight requests are rejected with 401 at about the same time,
only one refresh call is made. Every rejected request waits on the same
refresh ticket and replays once it resolves.
"""

import asyncio
import json
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

import httpx
import structlog

from src.features.client.constants import (
    BEARER_PREFIX,
    COMPONENT_CLIENT,
    DEFAULT_REFRESH_PATH,
    HEADER_AUTHORIZATION,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    TOKEN_RESPONSE_FIELDS,
)
from src.features.client.credentials import CredentialStore
from src.features.client.errors import RefreshError, SessionExpiredError
from src.features.client.metrics import ClientMetrics
from src.features.client.models import Credential, CredentialMode
from src.features.client.state_machine import RefreshState, RefreshStateMachine


logger = structlog.get_logger()

SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."


@runtime_checkable
class TokenRefresher(Protocol):
    """Protocol for the call that obtains a new credential."""

    async def refresh(self, current: Credential | None) -> Credential:
        """Obtain a new credential.

        Args:
            current: Credential active when the refresh started.

        Returns:
            The new credential.

        Raises:
            RefreshError: If the refresh call fails.
        """
        ...


def extract_token(payload: object) -> str | None:
    """Find the bearer token in a login or refresh response body.

    Args:
        payload: Parsed JSON response body.

    Returns:
        The token, or None if the body carries none.
    """
    if not isinstance(payload, dict):
        return None
    for field_name in TOKEN_RESPONSE_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, str) and value:
            return value
    return None


class EndpointTokenRefresher:
    """Refreshes the session by POSTing to the refresh endpoint.

    Header mode sends the current bearer token and expects a new one in
    the response body. Cookie mode relies on the cookie jar and only
    needs a 2xx; the server rotates the cookie itself.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        mode: CredentialMode,
        refresh_path: str = DEFAULT_REFRESH_PATH,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the refresher.

        Args:
            http_client: Transport shared with the request pipeline.
            mode: Credential transport mode of the client.
            refresh_path: Refresh endpoint path.
            headers: Default headers sent with the refresh call.
        """
        self._http = http_client
        self._mode = mode
        self._refresh_path = refresh_path
        self._headers = dict(headers or {})

    async def refresh(self, current: Credential | None) -> Credential:
        """Call the refresh endpoint.

        Args:
            current: Credential active when the refresh started.

        Returns:
            The new credential.

        Raises:
            RefreshError: On network failure, non-2xx status, or a
                header-mode response without a token.
        """
        headers = dict(self._headers)
        if self._mode == CredentialMode.HEADER:
            if current is None or not current.token:
                msg = "No token available for refresh"
                raise RefreshError(msg)
            headers[HEADER_AUTHORIZATION] = f"{BEARER_PREFIX}{current.token}"

        try:
            response = await self._http.post(self._refresh_path, headers=headers)
        except httpx.HTTPError as exc:
            msg = f"Network error during token refresh: {exc}"
            raise RefreshError(msg) from exc

        if not HTTP_STATUS_OK_MIN <= response.status_code < HTTP_STATUS_OK_MAX:
            msg = f"Token refresh failed with status {response.status_code}"
            raise RefreshError(msg, status_code=response.status_code)

        if self._mode == CredentialMode.COOKIE:
            return Credential.cookie()

        try:
            payload = json.loads(response.content) if response.content else None
        except ValueError as exc:
            msg = "Malformed token refresh response"
            raise RefreshError(msg, status_code=response.status_code) from exc

        token = extract_token(payload)
        if token is None:
            msg = "No token returned during refresh"
            raise RefreshError(msg, status_code=response.status_code)
        return Credential.bearer(token)


class RefreshCoordinator:
    """Coordinates credential refresh across concurrent requests.

    At most one refresh ticket exists at a time. The ticket is an
    ``asyncio.Task`` that waiters await through ``asyncio.shield``, so a
    caller abandoning its request never cancels a refresh that other
    requests depend on.

    The generation counter increments each time a refresh cycle ends. A
    request that observed an older generation when it was sent was
    rejected for a credential that has since been replaced, so it replays
    without starting another refresh.
    """

    def __init__(
        self,
        store: CredentialStore,
        refresher: TokenRefresher,
        metrics: ClientMetrics | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Credential store the coordinator writes on refresh.
            refresher: Performs the actual refresh call.
            metrics: Metrics sink for refresh calls.
        """
        self._store = store
        self._refresher = refresher
        self._metrics = metrics or ClientMetrics()
        self._state_machine = RefreshStateMachine()
        self._ticket: asyncio.Task[Credential] | None = None
        self._generation = 0
        self._log = logger.bind(component=COMPONENT_CLIENT, subcomponent="refresh")

    @property
    def state(self) -> RefreshState:
        """Get the coordinator state."""
        return self._state_machine.state

    @property
    def generation(self) -> int:
        """Number of refresh cycles completed so far."""
        return self._generation

    @property
    def in_flight(self) -> bool:
        """Whether a refresh ticket currently exists."""
        return self._ticket is not None

    async def refresh(self, observed_generation: int) -> Credential:
        """Obtain a fresh credential for a request rejected with 401.

        Args:
            observed_generation: ``generation`` read before the rejected
                request was sent.

        Returns:
            The credential to replay the request with.

        Raises:
            SessionExpiredError: If the refresh failed or no credential
                is left to replay with.
        """
        if observed_generation != self._generation:
            credential = self._store.get()
            if credential is None:
                raise SessionExpiredError(SESSION_EXPIRED_MESSAGE)
            self._log.debug("refresh_already_completed", generation=self._generation)
            return credential

        ticket = self._ticket
        if ticket is None:
            ticket = self._start()
        else:
            self._log.debug("refresh_joined", generation=self._generation)

        return await asyncio.shield(ticket)

    def _start(self) -> "asyncio.Task[Credential]":
        """Create the refresh ticket."""
        self._state_machine.to_refreshing()
        ticket = asyncio.get_running_loop().create_task(self._run())
        ticket.add_done_callback(_consume_ticket_result)
        self._ticket = ticket
        self._log.info("refresh_started", generation=self._generation)
        return ticket

    async def _run(self) -> Credential:
        """Perform the refresh call and resolve the ticket.

        Any failure, including an unexpected error from the refresher or
        the store, ends the session for every waiter.
        """
        try:
            credential = await self._refresher.refresh(self._store.get())
            self._store.set(credential)
        except RefreshError as exc:
            raise self._expire(exc, exc.status_code) from exc
        except Exception as exc:  # noqa: BLE001
            raise self._expire(exc, None) from exc
        else:
            self._metrics.record_refresh(succeeded=True)
            self._log.info("refresh_succeeded", mode=credential.mode.value)
            return credential
        finally:
            self._generation += 1
            self._ticket = None
            self._state_machine.to_idle()

    def _expire(self, error: Exception, status_code: int | None) -> SessionExpiredError:
        """Clear the session after a failed refresh.

        Args:
            error: Cause of the failure.
            status_code: HTTP status of the refresh response, if any.

        Returns:
            The error every waiter receives.
        """
        self._store.clear()
        self._metrics.record_refresh(succeeded=False)
        self._log.warning(
            "refresh_failed",
            error=str(error),
            error_type=type(error).__name__,
            status_code=status_code,
        )
        return SessionExpiredError(SESSION_EXPIRED_MESSAGE, status_code=status_code)


def _consume_ticket_result(ticket: "asyncio.Task[Credential]") -> None:
    # Mark the failure as retrieved when every waiter has gone away.
    if not ticket.cancelled():
        ticket.exception()
