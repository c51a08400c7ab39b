"""Authenticated request pipeline.

Every page-level call goes through ``ApiClient.send``: attach the
credential, send, classify, then apply the rate-limit and refresh policies
until a success or a terminal failure is produced.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any

import httpx
import structlog

from src.features.client.classifier import classify_response, classify_transport_error
from src.features.client.config import ClientConfig
from src.features.client.constants import (
    BEARER_PREFIX,
    COMPONENT_CLIENT,
    HEADER_ACCEPT,
    HEADER_AUTHORIZATION,
    HEADER_USER_AGENT,
    HTTP_STATUS_FORBIDDEN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    HTTP_STATUS_UNAUTHORIZED,
)
from src.features.client.credentials import CredentialStore
from src.features.client.errors import FailureKind, SessionExpiredError
from src.features.client.metrics import ClientMetrics
from src.features.client.models import (
    ApiFailure,
    ClassifiedResponse,
    CredentialMode,
    Forbidden,
    Ok,
    OkEmpty,
    RateLimited,
    RequestOutcome,
    RequestSpec,
    Unauthorized,
)
from src.features.client.redact import redact_headers, redact_url
from src.features.client.refresh import (
    SESSION_EXPIRED_MESSAGE,
    EndpointTokenRefresher,
    RefreshCoordinator,
    TokenRefresher,
)


logger = structlog.get_logger()

SleepFn = Callable[[float], Awaitable[None]]
FailureHandler = Callable[[ApiFailure], None]


class ApiClient:
    """Authenticated HTTP client with rate-limit retries and session refresh.

    Provides:
    - Credential attachment (bearer header or cookie jar, fixed per client)
    - Response classification into tagged variants
    - Bounded Retry-After/exponential backoff on 429
    - Single-flight refresh and one replay on 401
    - Credential clearing on 403
    - Typed failures returned as values from ``send``
    """

    def __init__(
        self,
        config: ClientConfig,
        store: CredentialStore,
        *,
        http_client: httpx.AsyncClient | None = None,
        refresher: TokenRefresher | None = None,
        metrics: ClientMetrics | None = None,
        sleep: SleepFn = asyncio.sleep,
        redirect_handler: FailureHandler | None = None,
        failure_notifier: FailureHandler | None = None,
        close_transport: bool | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration.
            store: Credential store; its mode must match the config.
            http_client: Transport to use. Created (and owned) if omitted.
            refresher: Refresh call implementation. Defaults to POSTing
                to ``config.refresh_path``.
            metrics: Metrics sink. A fresh one is created if omitted.
            sleep: Coroutine used for backoff waits.
            redirect_handler: Called with the failure on SESSION_EXPIRED
                and NOT_AUTHORIZED, to route to re-authentication.
            failure_notifier: Called with every other terminal failure.
            close_transport: Whether ``aclose`` closes the transport.
                Defaults to True only when the transport was created here.

        Raises:
            ValueError: If the store mode differs from the configured mode.
        """
        if store.mode != config.credential_mode:
            msg = (
                f"Credential store mode '{store.mode.value}' does not match "
                f"configured mode '{config.credential_mode.value}'"
            )
            raise ValueError(msg)

        self._config = config
        self._store = store
        self._owns_http_client = (
            http_client is None if close_transport is None else close_transport
        )
        self._http = http_client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            follow_redirects=True,
        )
        self._metrics = metrics or ClientMetrics()
        self._retry_policy = config.retry_policy
        self._sleep = sleep
        self._redirect_handler = redirect_handler
        self._failure_notifier = failure_notifier
        self._coordinator = RefreshCoordinator(
            store,
            refresher
            or EndpointTokenRefresher(
                self._http,
                mode=config.credential_mode,
                refresh_path=config.refresh_path,
                headers=self._base_headers(),
            ),
            metrics=self._metrics,
        )
        self._log = logger.bind(
            component=COMPONENT_CLIENT,
            subcomponent="pipeline",
            credential_mode=config.credential_mode.value,
        )

    @property
    def config(self) -> ClientConfig:
        """Get the client configuration."""
        return self._config

    @property
    def store(self) -> CredentialStore:
        """Get the credential store."""
        return self._store

    @property
    def metrics(self) -> ClientMetrics:
        """Get the client metrics."""
        return self._metrics

    @property
    def coordinator(self) -> RefreshCoordinator:
        """Get the refresh coordinator."""
        return self._coordinator

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get the underlying transport."""
        return self._http

    async def send(self, spec: RequestSpec) -> RequestOutcome:
        """Send a request through the pipeline.

        Never raises for request failures; those are returned as
        ``RequestOutcome.failure``.

        Args:
            spec: Description of the call.

        Returns:
            Success with the parsed body, or a typed failure.
        """
        start_time_ns = time.perf_counter_ns()
        log = self._log.bind(
            method=spec.method.upper(),
            path=redact_url(spec.path),
            authenticated=spec.authenticated,
        )

        attempts = 0
        rate_limit_retries = 0
        refreshed = False

        while True:
            generation = self._coordinator.generation
            classified = await self._round_trip(spec, log, attempts)
            attempts += 1

            if isinstance(classified, Ok | OkEmpty):
                duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
                log.info(
                    "request_complete",
                    status_code=classified.status_code,
                    attempts=attempts,
                    rate_limit_retries=rate_limit_retries,
                    refreshed=refreshed,
                    duration_ms=round(duration_ms, 2),
                )
                return RequestOutcome(
                    status_code=classified.status_code,
                    body=classified.body if isinstance(classified, Ok) else None,
                    empty=isinstance(classified, OkEmpty),
                    attempts=attempts,
                    rate_limit_retries=rate_limit_retries,
                    refreshed=refreshed,
                )

            if isinstance(classified, RateLimited):
                decision = self._retry_policy.should_retry(rate_limit_retries, classified)
                if decision.retry:
                    self._metrics.record_rate_limit_retry()
                    log.info(
                        "rate_limited_retry",
                        retry=rate_limit_retries + 1,
                        max_retries=self._retry_policy.max_retries,
                        retry_after=classified.retry_after,
                        delay_seconds=decision.delay_seconds,
                    )
                    await self._sleep(decision.delay_seconds)
                    rate_limit_retries += 1
                    continue
                failure = ApiFailure(
                    kind=FailureKind.RATE_LIMIT_EXHAUSTED,
                    message=(
                        "Rate limited, retries exhausted "
                        f"after {rate_limit_retries} retries"
                    ),
                    status_code=HTTP_STATUS_TOO_MANY_REQUESTS,
                )

            elif isinstance(classified, Unauthorized) and spec.authenticated:
                if refreshed:
                    # The replay was rejected too; do not refresh again.
                    self._store.clear()
                    failure = ApiFailure(
                        kind=FailureKind.SESSION_EXPIRED,
                        message=SESSION_EXPIRED_MESSAGE,
                        status_code=HTTP_STATUS_UNAUTHORIZED,
                    )
                else:
                    try:
                        await self._coordinator.refresh(generation)
                    except SessionExpiredError as exc:
                        failure = ApiFailure(
                            kind=FailureKind.SESSION_EXPIRED,
                            message=exc.message,
                            status_code=HTTP_STATUS_UNAUTHORIZED,
                        )
                    else:
                        refreshed = True
                        log.info("request_replay_after_refresh", attempts=attempts)
                        continue

            elif isinstance(classified, Forbidden) and spec.authenticated:
                self._store.clear()
                failure = ApiFailure(
                    kind=FailureKind.NOT_AUTHORIZED,
                    message=classified.message,
                    status_code=HTTP_STATUS_FORBIDDEN,
                )

            elif isinstance(classified, Unauthorized | Forbidden):
                # Unauthenticated calls (e.g. login) never touch the session.
                failure = ApiFailure(
                    kind=FailureKind.REMOTE_ERROR,
                    message=classified.message,
                    status_code=classified.status_code,
                )

            else:
                failure = ApiFailure(
                    kind=classified.reason,
                    message=classified.message,
                    status_code=classified.status_code,
                )

            return self._fail(
                failure,
                log,
                attempts=attempts,
                rate_limit_retries=rate_limit_retries,
                refreshed=refreshed,
            )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str | int | float | bool] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        authenticated: bool = True,
    ) -> Any:
        """Send a request and return its body.

        Args:
            method: HTTP method.
            path: Path relative to the base URL, or an absolute URL.
            params: Query parameters.
            json_body: JSON-serializable request body.
            headers: Extra request headers.
            authenticated: Attach the credential and allow refresh.

        Returns:
            Parsed body, or None for empty responses.

        Raises:
            ApiClientError: The typed error for a terminal failure.
        """
        spec = RequestSpec(
            method=method,
            path=path,
            params=params or {},
            headers=headers or {},
            json_body=json_body,
            authenticated=authenticated,
        )
        outcome = await self.send(spec)
        return outcome.unwrap()

    async def get(self, path: str, **kwargs: Any) -> Any:
        """Send a GET request and return its body."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        """Send a POST request and return its body."""
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        """Send a PUT request and return its body."""
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        """Send a PATCH request and return its body."""
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        """Send a DELETE request and return its body."""
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _base_headers(self) -> dict[str, str]:
        """Headers sent with every call, before per-request headers."""
        headers: dict[str, str] = {
            HEADER_ACCEPT: "application/json",
            HEADER_USER_AGENT: self._config.user_agent,
        }
        headers.update(self._config.default_headers)
        return headers

    def _build_headers(self, spec: RequestSpec) -> dict[str, str]:
        """Build request headers, attaching the current credential.

        Args:
            spec: Description of the call.

        Returns:
            Complete headers dictionary.
        """
        headers = self._base_headers()
        headers.update(spec.headers)

        if spec.authenticated and self._config.credential_mode == CredentialMode.HEADER:
            credential = self._store.get()
            if credential is not None and credential.token:
                headers[HEADER_AUTHORIZATION] = f"{BEARER_PREFIX}{credential.token}"

        return headers

    async def _round_trip(
        self,
        spec: RequestSpec,
        log: structlog.stdlib.BoundLogger,
        attempt: int,
    ) -> ClassifiedResponse:
        """Send the request once and classify the result.

        Args:
            spec: Description of the call.
            log: Bound logger.
            attempt: Number of attempts already made.

        Returns:
            The classified response.
        """
        headers = self._build_headers(spec)
        log.debug("request_attempt", attempt=attempt, headers=redact_headers(headers))

        try:
            response = await self._http.request(
                spec.method.upper(),
                spec.path,
                params=spec.params or None,
                headers=headers,
                json=spec.json_body if spec.content is None else None,
                content=spec.content,
            )
        except httpx.HTTPError as exc:
            self._metrics.record_network_failure()
            return classify_transport_error(exc)

        self._metrics.record_response(response.status_code)
        return classify_response(response)

    def _fail(
        self,
        failure: ApiFailure,
        log: structlog.stdlib.BoundLogger,
        *,
        attempts: int,
        rate_limit_retries: int,
        refreshed: bool,
    ) -> RequestOutcome:
        """Record a terminal failure and notify collaborators."""
        self._metrics.record_failure(failure.kind)
        log.warning(
            "request_failed",
            failure_kind=failure.kind.value,
            status_code=failure.status_code,
            message=failure.message,
            attempts=attempts,
        )

        if failure.kind.requires_reauthentication:
            if self._redirect_handler is not None:
                self._redirect_handler(failure)
        elif self._failure_notifier is not None:
            self._failure_notifier(failure)

        return RequestOutcome(
            status_code=failure.status_code,
            failure=failure,
            attempts=attempts,
            rate_limit_retries=rate_limit_retries,
            refreshed=refreshed,
        )
