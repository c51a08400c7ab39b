"""Response classification for the request client.

Normalizes each transport round trip into exactly one classified response.
"""

import json
import math
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import httpx

from src.features.client.constants import (
    ERROR_MESSAGE_FIELD,
    HEADER_CONTENT_TYPE,
    HEADER_RETRY_AFTER,
    HTTP_STATUS_FORBIDDEN,
    HTTP_STATUS_NO_CONTENT,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    HTTP_STATUS_UNAUTHORIZED,
)
from src.features.client.errors import FailureKind
from src.features.client.models import (
    ClassifiedResponse,
    ErrorResponse,
    Forbidden,
    Ok,
    OkEmpty,
    RateLimited,
    Unauthorized,
)


def classify_response(response: httpx.Response) -> ClassifiedResponse:
    """Classify a raw transport response.

    Args:
        response: Response with its body already read.

    Returns:
        The classified response.
    """
    status_code = response.status_code

    if HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX:
        return _classify_success(response)

    if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
        return RateLimited(
            status_code=status_code,
            retry_after=parse_retry_after(response.headers.get(HEADER_RETRY_AFTER)),
        )

    message = extract_error_message(response)

    if status_code == HTTP_STATUS_UNAUTHORIZED:
        return Unauthorized(status_code=status_code, message=message)

    if status_code == HTTP_STATUS_FORBIDDEN:
        return Forbidden(status_code=status_code, message=message)

    return ErrorResponse(
        status_code=status_code,
        message=message,
        reason=FailureKind.REMOTE_ERROR,
    )


def classify_transport_error(error: httpx.HTTPError) -> ErrorResponse:
    """Classify a failure where no response was obtained.

    Args:
        error: Exception raised by the transport.

    Returns:
        ErrorResponse with a network-failure reason.
    """
    if isinstance(error, httpx.TimeoutException):
        message = f"Request timed out: {error}"
    elif isinstance(error, httpx.ConnectError):
        message = f"Connection failed: {error}"
    else:
        message = f"Network error: {error}"
    return ErrorResponse(
        status_code=None,
        message=message.rstrip(": ") or "Network error",
        reason=FailureKind.NETWORK_FAILURE,
    )


def _classify_success(response: httpx.Response) -> ClassifiedResponse:
    """Classify a 2xx response by its content."""
    status_code = response.status_code
    if status_code == HTTP_STATUS_NO_CONTENT or not response.content:
        return OkEmpty(status_code=status_code)

    media_type = _media_type(response)

    if media_type is None or _is_json_media_type(media_type):
        try:
            body = json.loads(response.content)
        except ValueError as exc:
            return ErrorResponse(
                status_code=status_code,
                message=f"Malformed JSON response body: {exc}",
                reason=FailureKind.PARSE_FAILURE,
            )
        return Ok(status_code=status_code, body=body)

    if media_type.startswith("text/"):
        try:
            return Ok(status_code=status_code, body=response.text)
        except UnicodeDecodeError as exc:
            return ErrorResponse(
                status_code=status_code,
                message=f"Undecodable text response body: {exc}",
                reason=FailureKind.PARSE_FAILURE,
            )

    return Ok(status_code=status_code, body=response.content)


def _media_type(response: httpx.Response) -> str | None:
    """Get the lowercase media type without parameters."""
    value = response.headers.get(HEADER_CONTENT_TYPE)
    if not value:
        return None
    media_type = value.split(";", 1)[0].strip().lower()
    return media_type or None


def _is_json_media_type(media_type: str) -> bool:
    return media_type == "application/json" or media_type.endswith("+json")


def extract_error_message(response: httpx.Response) -> str:
    """Extract a human-readable message from an error response.

    Uses the ``message`` field of a JSON body when present, else the
    status reason phrase.

    Args:
        response: Error response.

    Returns:
        Non-empty error message.
    """
    try:
        data = json.loads(response.content) if response.content else None
    except ValueError:
        data = None

    if isinstance(data, dict):
        message = data.get(ERROR_MESSAGE_FIELD)
        if isinstance(message, str) and message.strip():
            return message.strip()

    return response.reason_phrase or f"HTTP error {response.status_code}"


def parse_retry_after(value: str | None) -> float | None:
    """Parse Retry-After header value.

    Args:
        value: Header value (seconds or HTTP date).

    Returns:
        Seconds to wait, or None if absent or not parseable.
    """
    if not value:
        return None
    value = value.strip()

    # Try parsing as delta-seconds
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds) or seconds < 0:
            return None
        return seconds

    # Try parsing as HTTP date
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    delta = (dt - datetime.now(UTC)).total_seconds()
    return max(0.0, delta)
