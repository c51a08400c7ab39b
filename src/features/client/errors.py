"""Error taxonomy for the request client.

Every terminal failure the pipeline produces maps to exactly one
``FailureKind`` and one exception type. ``ApiClient.send`` reports failures
as values; ``RequestOutcome.unwrap`` and ``ApiClient.request`` raise them.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Classification of terminal request failures.

    - NETWORK_FAILURE: No response was obtained from the transport
    - RATE_LIMIT_EXHAUSTED: Still rate limited after all retries
    - SESSION_EXPIRED: Refresh failed or the replay was still unauthorized
    - NOT_AUTHORIZED: Server answered 403 Forbidden
    - PARSE_FAILURE: Success response with a malformed body
    - REMOTE_ERROR: Well-formed non-2xx response
    """

    NETWORK_FAILURE = "NETWORK_FAILURE"
    RATE_LIMIT_EXHAUSTED = "RATE_LIMIT_EXHAUSTED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    PARSE_FAILURE = "PARSE_FAILURE"
    REMOTE_ERROR = "REMOTE_ERROR"

    @property
    def requires_reauthentication(self) -> bool:
        """Whether the caller is expected to route to re-authentication."""
        return self in {FailureKind.SESSION_EXPIRED, FailureKind.NOT_AUTHORIZED}


class ApiClientError(Exception):
    """Base exception for terminal request failures."""

    failure_kind: FailureKind = FailureKind.REMOTE_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code, if a response was received.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "failure_kind": self.failure_kind.value,
            "message": self.message,
            "status_code": self.status_code,
        }


class NetworkFailureError(ApiClientError):
    """No response was obtained (DNS, connection, timeout)."""

    failure_kind = FailureKind.NETWORK_FAILURE


class RateLimitExhaustedError(ApiClientError):
    """Rate limited and the retry budget is spent."""

    failure_kind = FailureKind.RATE_LIMIT_EXHAUSTED


class SessionExpiredError(ApiClientError):
    """The session could not be refreshed."""

    failure_kind = FailureKind.SESSION_EXPIRED


class NotAuthorizedError(ApiClientError):
    """The credential is valid but lacks permission."""

    failure_kind = FailureKind.NOT_AUTHORIZED


class ParseFailureError(ApiClientError):
    """A success response carried a body that could not be parsed."""

    failure_kind = FailureKind.PARSE_FAILURE


class RemoteError(ApiClientError):
    """The server answered with a non-2xx status."""

    failure_kind = FailureKind.REMOTE_ERROR


_ERRORS_BY_KIND: dict[FailureKind, type[ApiClientError]] = {
    FailureKind.NETWORK_FAILURE: NetworkFailureError,
    FailureKind.RATE_LIMIT_EXHAUSTED: RateLimitExhaustedError,
    FailureKind.SESSION_EXPIRED: SessionExpiredError,
    FailureKind.NOT_AUTHORIZED: NotAuthorizedError,
    FailureKind.PARSE_FAILURE: ParseFailureError,
    FailureKind.REMOTE_ERROR: RemoteError,
}


def error_for_kind(kind: FailureKind) -> type[ApiClientError]:
    """Get the exception type raised for a failure kind."""
    return _ERRORS_BY_KIND[kind]


class RefreshError(Exception):
    """Raised by a token refresher when the refresh call fails.

    Attributes:
        status_code: HTTP status code of the refresh response, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
