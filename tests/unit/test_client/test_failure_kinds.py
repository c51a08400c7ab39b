"""Unit tests for the failure taxonomy and outcome model."""

import pytest

from src.features.client.errors import (
    ApiClientError,
    FailureKind,
    NetworkFailureError,
    NotAuthorizedError,
    ParseFailureError,
    RateLimitExhaustedError,
    RemoteError,
    SessionExpiredError,
    error_for_kind,
)
from src.features.client.metrics import ClientMetrics
from src.features.client.models import ApiFailure, RequestOutcome


class TestFailureKind:
    """Tests for FailureKind."""

    @pytest.mark.parametrize(
        ("kind", "error_type"),
        [
            (FailureKind.NETWORK_FAILURE, NetworkFailureError),
            (FailureKind.RATE_LIMIT_EXHAUSTED, RateLimitExhaustedError),
            (FailureKind.SESSION_EXPIRED, SessionExpiredError),
            (FailureKind.NOT_AUTHORIZED, NotAuthorizedError),
            (FailureKind.PARSE_FAILURE, ParseFailureError),
            (FailureKind.REMOTE_ERROR, RemoteError),
        ],
    )
    def test_each_kind_has_an_error(
        self, kind: FailureKind, error_type: type[ApiClientError]
    ) -> None:
        """Test the kind to exception mapping."""
        assert error_for_kind(kind) is error_type
        assert error_type.failure_kind == kind

    def test_reauthentication_kinds(self) -> None:
        """Test which kinds route to re-authentication."""
        reauth = {kind for kind in FailureKind if kind.requires_reauthentication}

        assert reauth == {FailureKind.SESSION_EXPIRED, FailureKind.NOT_AUTHORIZED}

    def test_error_to_dict(self) -> None:
        """Test error serialization."""
        error = RemoteError("Alert not found", status_code=404)

        assert error.to_dict() == {
            "failure_kind": "REMOTE_ERROR",
            "message": "Alert not found",
            "status_code": 404,
        }


class TestRequestOutcome:
    """Tests for RequestOutcome."""

    def test_success_unwrap(self) -> None:
        """Test that a success unwraps to its body."""
        outcome = RequestOutcome(status_code=200, body={"id": 1})

        assert outcome.is_success is True
        assert outcome.unwrap() == {"id": 1}

    def test_failure_unwrap_raises(self) -> None:
        """Test that a failure unwraps to its typed error."""
        outcome = RequestOutcome(
            status_code=403,
            failure=ApiFailure(
                kind=FailureKind.NOT_AUTHORIZED,
                message="Forbidden",
                status_code=403,
            ),
        )

        assert outcome.is_success is False
        with pytest.raises(NotAuthorizedError) as exc_info:
            outcome.unwrap()
        assert exc_info.value.status_code == 403


class TestClientMetrics:
    """Tests for ClientMetrics."""

    def test_counts(self) -> None:
        """Test that counters accumulate."""
        metrics = ClientMetrics()

        metrics.record_response(200)
        metrics.record_response(401)
        metrics.record_response(200)
        metrics.record_network_failure()
        metrics.record_rate_limit_retry()
        metrics.record_refresh(succeeded=True)
        metrics.record_refresh(succeeded=False)
        metrics.record_failure(FailureKind.SESSION_EXPIRED)

        assert metrics.round_trips_total == 4
        assert metrics.to_dict() == {
            "http_requests_total": {200: 2, 401: 1},
            "network_failures_total": 1,
            "rate_limit_retries_total": 1,
            "refresh_calls_total": 2,
            "refresh_failures_total": 1,
            "failures_total": {"SESSION_EXPIRED": 1},
        }

    def test_instances_are_independent(self) -> None:
        """Test that metrics are not shared between instances."""
        first = ClientMetrics()
        first.record_response(200)

        assert ClientMetrics().round_trips_total == 0
