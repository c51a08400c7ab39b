"""Unit tests for response classification."""

from datetime import UTC, datetime, timedelta
from email.utils import format_datetime

import httpx
import pytest

from src.features.client.classifier import (
    classify_response,
    classify_transport_error,
    extract_error_message,
    parse_retry_after,
)
from src.features.client.errors import FailureKind
from src.features.client.models import (
    ErrorResponse,
    Forbidden,
    Ok,
    OkEmpty,
    RateLimited,
    ResponseKind,
    Unauthorized,
)


class TestSuccessClassification:
    """Tests for 2xx responses."""

    def test_json_body_is_parsed(self) -> None:
        """JSON bodies become Ok with the parsed value."""
        result = classify_response(httpx.Response(200, json={"id": 1}))

        assert isinstance(result, Ok)
        assert result.kind == ResponseKind.OK
        assert result.body == {"id": 1}

    def test_vendor_json_type_is_parsed(self) -> None:
        """Media types ending in +json are parsed as JSON."""
        response = httpx.Response(
            200,
            content=b'{"a": [1, 2]}',
            headers={"Content-Type": "application/problem+json; charset=utf-8"},
        )

        result = classify_response(response)

        assert isinstance(result, Ok)
        assert result.body == {"a": [1, 2]}

    def test_missing_content_type_is_parsed_as_json(self) -> None:
        """Bodies without a declared type are treated as JSON."""
        result = classify_response(httpx.Response(200, content=b"[1, 2, 3]"))

        assert isinstance(result, Ok)
        assert result.body == [1, 2, 3]

    def test_text_body_is_returned_as_string(self) -> None:
        """text/* bodies are returned as decoded strings."""
        response = httpx.Response(200, text="hello")

        result = classify_response(response)

        assert isinstance(result, Ok)
        assert result.body == "hello"

    def test_binary_body_is_returned_as_bytes(self) -> None:
        """Other media types are returned as raw bytes."""
        response = httpx.Response(
            200,
            content=b"\x00\x01",
            headers={"Content-Type": "application/octet-stream"},
        )

        result = classify_response(response)

        assert isinstance(result, Ok)
        assert result.body == b"\x00\x01"

    def test_malformed_json_is_parse_failure(self) -> None:
        """A malformed JSON body is reported, not swallowed."""
        response = httpx.Response(
            200,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        result = classify_response(response)

        assert isinstance(result, ErrorResponse)
        assert result.reason == FailureKind.PARSE_FAILURE
        assert result.status_code == 200

    def test_204_is_empty_without_parsing(self) -> None:
        """204 yields OkEmpty even if a bogus JSON body is present."""
        response = httpx.Response(
            204,
            content=b"{bogus",
            headers={"Content-Type": "application/json"},
        )

        result = classify_response(response)

        assert isinstance(result, OkEmpty)
        assert result.status_code == 204

    def test_empty_200_is_empty(self) -> None:
        """2xx without content yields OkEmpty."""
        response = httpx.Response(200, headers={"Content-Type": "application/json"})

        assert isinstance(classify_response(response), OkEmpty)


class TestFailureClassification:
    """Tests for non-2xx responses."""

    def test_429_with_retry_after(self) -> None:
        """429 carries the Retry-After hint."""
        response = httpx.Response(429, headers={"Retry-After": "2"})

        result = classify_response(response)

        assert isinstance(result, RateLimited)
        assert result.retry_after == 2.0

    def test_429_without_retry_after(self) -> None:
        """429 without a hint carries None."""
        result = classify_response(httpx.Response(429))

        assert isinstance(result, RateLimited)
        assert result.retry_after is None

    def test_401_is_unauthorized(self) -> None:
        """401 is classified as Unauthorized."""
        result = classify_response(httpx.Response(401, json={"message": "Bad token"}))

        assert isinstance(result, Unauthorized)
        assert result.message == "Bad token"

    def test_403_is_forbidden(self) -> None:
        """403 is classified as Forbidden."""
        assert isinstance(classify_response(httpx.Response(403)), Forbidden)

    def test_error_message_from_body(self) -> None:
        """The message field of a JSON error body is used."""
        response = httpx.Response(404, json={"message": "Alert not found"})

        result = classify_response(response)

        assert isinstance(result, ErrorResponse)
        assert result.status_code == 404
        assert result.message == "Alert not found"
        assert result.reason == FailureKind.REMOTE_ERROR

    @pytest.mark.parametrize(
        "body",
        [b"", b"<html>oops</html>", b'{"error": "x"}', b'{"message": ""}', b"[1]"],
    )
    def test_error_message_falls_back_to_status_text(self, body: bytes) -> None:
        """Without a usable message field, the reason phrase is used."""
        response = httpx.Response(500, content=body)

        assert extract_error_message(response) == "Internal Server Error"

    def test_unknown_status_without_phrase(self) -> None:
        """Statuses without a reason phrase get a generic message."""
        response = httpx.Response(599)

        assert extract_error_message(response) == "HTTP error 599"


class TestTransportErrors:
    """Tests for failures with no response."""

    def test_connect_error(self) -> None:
        """Connection failures are network failures."""
        result = classify_transport_error(httpx.ConnectError("Connection refused"))

        assert result.reason == FailureKind.NETWORK_FAILURE
        assert result.status_code is None
        assert "Connection failed" in result.message

    def test_timeout(self) -> None:
        """Timeouts are network failures."""
        result = classify_transport_error(httpx.ReadTimeout("timed out"))

        assert result.reason == FailureKind.NETWORK_FAILURE
        assert "timed out" in result.message

    def test_empty_error_text(self) -> None:
        """An exception without text still yields a message."""
        result = classify_transport_error(httpx.ConnectError(""))

        assert result.message == "Connection failed"


class TestParseRetryAfter:
    """Tests for Retry-After parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("2", 2.0), (" 10 ", 10.0), ("0", 0.0), ("1.5", 1.5)],
    )
    def test_delta_seconds(self, value: str, expected: float) -> None:
        """Numeric values are seconds."""
        assert parse_retry_after(value) == expected

    @pytest.mark.parametrize("value", [None, "", "soon", "-3", "nan", "inf"])
    def test_invalid_values(self, value: str | None) -> None:
        """Absent or invalid values yield None."""
        assert parse_retry_after(value) is None

    def test_http_date(self) -> None:
        """HTTP dates are converted to a delay from now."""
        future = datetime.now(UTC) + timedelta(seconds=30)

        result = parse_retry_after(format_datetime(future, usegmt=True))

        assert result is not None
        assert 25 <= result <= 30

    def test_past_http_date_is_zero(self) -> None:
        """Dates in the past mean no wait."""
        past = datetime.now(UTC) - timedelta(hours=1)

        assert parse_retry_after(format_datetime(past, usegmt=True)) == 0.0
