"""Data models for the request client."""

import random
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.features.client.errors import ApiClientError, FailureKind, error_for_kind


class CredentialMode(str, Enum):
    """How the credential travels with each request.

    - HEADER: ``Authorization: Bearer <token>`` attached by the client
    - COOKIE: HTTP-only cookie set by the server, carried by the cookie jar
    """

    HEADER = "header"
    COOKIE = "cookie"


class Credential(BaseModel):
    """Proof of authentication held by a credential store.

    In cookie mode the token is not visible to the client and is ``None``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Never rendered in repr.
    token: str | None = Field(
        default=None, repr=False, description="Opaque bearer token"
    )
    mode: CredentialMode = CredentialMode.HEADER

    @classmethod
    def bearer(cls, token: str) -> "Credential":
        """Create a header-mode credential."""
        return cls(token=token, mode=CredentialMode.HEADER)

    @classmethod
    def cookie(cls) -> "Credential":
        """Create a cookie-mode credential (presence only)."""
        return cls(token=None, mode=CredentialMode.COOKIE)


class RequestSpec(BaseModel):
    """Description of an outgoing call.

    ``path`` is resolved against the client base URL unless absolute.
    ``authenticated`` selects whether the credential is attached and
    whether a 401 may trigger a session refresh.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: Annotated[str, Field(min_length=1)] = "GET"
    path: Annotated[str, Field(min_length=1)]
    params: dict[str, str | int | float | bool] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    json_body: Any = None
    content: bytes | None = None
    authenticated: bool = True


class ResponseKind(str, Enum):
    """Tag of a classified transport round trip."""

    OK = "OK"
    OK_EMPTY = "OK_EMPTY"
    RATE_LIMITED = "RATE_LIMITED"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    ERROR = "ERROR"


class Ok(BaseModel):
    """2xx response with a parsed body."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ResponseKind.OK] = ResponseKind.OK
    status_code: int
    body: Any = None


class OkEmpty(BaseModel):
    """204, or 2xx without content."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ResponseKind.OK_EMPTY] = ResponseKind.OK_EMPTY
    status_code: int


class RateLimited(BaseModel):
    """429 response; ``retry_after`` is the server hint in seconds."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ResponseKind.RATE_LIMITED] = ResponseKind.RATE_LIMITED
    status_code: int = 429
    retry_after: float | None = None


class Unauthorized(BaseModel):
    """401 response."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ResponseKind.UNAUTHORIZED] = ResponseKind.UNAUTHORIZED
    status_code: int = 401
    message: str = "Unauthorized"


class Forbidden(BaseModel):
    """403 response."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ResponseKind.FORBIDDEN] = ResponseKind.FORBIDDEN
    status_code: int = 403
    message: str = "Forbidden"


class ErrorResponse(BaseModel):
    """Any other failure, including transport and parse failures."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ResponseKind.ERROR] = ResponseKind.ERROR
    status_code: int | None = None
    message: Annotated[str, Field(min_length=1)]
    reason: FailureKind = FailureKind.REMOTE_ERROR


ClassifiedResponse = Annotated[
    Ok | OkEmpty | RateLimited | Unauthorized | Forbidden | ErrorResponse,
    Field(discriminator="kind"),
]


class ApiFailure(BaseModel):
    """Terminal, typed failure of a request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: FailureKind
    message: Annotated[str, Field(min_length=1)]
    status_code: int | None = None

    def to_exception(self) -> ApiClientError:
        """Build the exception matching this failure."""
        return error_for_kind(self.kind)(self.message, status_code=self.status_code)


class RequestOutcome(BaseModel):
    """Final result of ``ApiClient.send``.

    Either a success (``body`` or ``empty``) or a ``failure``. The
    bookkeeping fields describe how the pipeline got there.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int | None = None
    body: Any = None
    empty: bool = False
    failure: ApiFailure | None = None
    attempts: int = Field(default=1, ge=1)
    rate_limit_retries: int = Field(default=0, ge=0)
    refreshed: bool = False

    @property
    def is_success(self) -> bool:
        """Check if the request produced a success result."""
        return self.failure is None

    def unwrap(self) -> Any:
        """Return the body, or raise the typed error for the failure.

        Returns:
            Parsed body, or ``None`` for empty responses.

        Raises:
            ApiClientError: The subclass matching ``failure.kind``.
        """
        if self.failure is not None:
            raise self.failure.to_exception()
        return self.body


class RetryDecision(BaseModel):
    """Whether to resend a rate-limited request, and after how long."""

    model_config = ConfigDict(frozen=True)

    retry: bool
    delay_seconds: float = Field(default=0.0, ge=0.0)


class RetryPolicy(BaseModel):
    """Configuration for rate-limit retry behavior.

    The Retry-After hint wins when present and is used as sent unless
    ``max_retry_after_seconds`` caps it. Otherwise uses exponential
    backoff: delay = base_delay_ms * (exponential_base ^ attempt)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=10)] = 3
    base_delay_ms: Annotated[int, Field(ge=0, le=60000)] = 1000
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 30000
    exponential_base: Annotated[float, Field(ge=1.0, le=5.0)] = 2.0
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    max_retry_after_seconds: float | None = Field(default=None, ge=0.0)

    def should_retry(self, attempt: int, classification: object) -> RetryDecision:
        """Decide whether a classified response should be resent.

        Args:
            attempt: Number of rate-limit retries already made (0-indexed).
            classification: The classified response of the last attempt.

        Returns:
            RetryDecision with the delay to wait before resending.
        """
        if not isinstance(classification, RateLimited):
            return RetryDecision(retry=False)
        if attempt >= self.max_retries:
            return RetryDecision(retry=False)

        if classification.retry_after is not None:
            delay = classification.retry_after
            if self.max_retry_after_seconds is not None:
                delay = min(delay, self.max_retry_after_seconds)
            return RetryDecision(retry=True, delay_seconds=delay)

        return RetryDecision(retry=True, delay_seconds=self.get_delay_ms(attempt) / 1000.0)

    def get_delay_ms(self, attempt: int) -> int:
        """Calculate delay before the next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        delay = self.base_delay_ms * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay_ms)

        jitter = delay * self.jitter_factor * random.random()  # noqa: S311
        return int(delay + jitter)
