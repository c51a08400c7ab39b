"""Unit tests for rate-limit retry decisions."""

import pytest

from src.features.client.errors import FailureKind
from src.features.client.models import (
    ErrorResponse,
    Ok,
    RateLimited,
    RetryPolicy,
    Unauthorized,
)


class TestRetryPolicyDefaults:
    """Tests for RetryPolicy defaults."""

    def test_default_values(self) -> None:
        """Test default retry policy values."""
        policy = RetryPolicy()

        assert policy.max_retries == 3
        assert policy.base_delay_ms == 1000
        assert policy.max_delay_ms == 30000
        assert policy.exponential_base == 2.0
        assert policy.jitter_factor == 0.0
        assert policy.max_retry_after_seconds is None

    def test_rejects_negative_retries(self) -> None:
        """Test that a negative retry budget is rejected."""
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)


class TestShouldRetry:
    """Tests for retry decision logic."""

    @pytest.fixture
    def policy(self) -> RetryPolicy:
        """Create a standard retry policy."""
        return RetryPolicy(max_retries=3)

    def test_retry_after_hint_wins(self, policy: RetryPolicy) -> None:
        """Test that the server hint is used as the delay."""
        decision = policy.should_retry(0, RateLimited(retry_after=2.0))

        assert decision.retry is True
        assert decision.delay_seconds == 2.0

    def test_long_retry_after_used_as_sent(self, policy: RetryPolicy) -> None:
        """Test that a long hint is honored without a configured cap."""
        decision = policy.should_retry(0, RateLimited(retry_after=120.0))

        assert decision.retry is True
        assert decision.delay_seconds == 120.0

    def test_retry_after_cap_is_opt_in(self) -> None:
        """Test that a configured cap shortens very long hints."""
        policy = RetryPolicy(max_retry_after_seconds=60)

        decision = policy.should_retry(0, RateLimited(retry_after=3600.0))

        assert decision.retry is True
        assert decision.delay_seconds == 60.0

    def test_zero_retry_after(self, policy: RetryPolicy) -> None:
        """Test that a zero hint retries immediately."""
        decision = policy.should_retry(0, RateLimited(retry_after=0.0))

        assert decision.retry is True
        assert decision.delay_seconds == 0.0

    def test_backoff_without_hint(self, policy: RetryPolicy) -> None:
        """Test exponential backoff starting at one base delay."""
        delays = [
            policy.should_retry(attempt, RateLimited()).delay_seconds
            for attempt in range(3)
        ]

        assert delays == [1.0, 2.0, 4.0]

    def test_budget_exhausted(self, policy: RetryPolicy) -> None:
        """Test that no retry is allowed once the budget is spent."""
        assert policy.should_retry(2, RateLimited()).retry is True
        assert policy.should_retry(3, RateLimited()).retry is False

    def test_zero_budget(self) -> None:
        """Test that a zero budget never retries."""
        policy = RetryPolicy(max_retries=0)

        assert policy.should_retry(0, RateLimited(retry_after=1.0)).retry is False

    @pytest.mark.parametrize(
        "classification",
        [
            Ok(status_code=200, body={}),
            Unauthorized(),
            ErrorResponse(
                status_code=503,
                message="Service Unavailable",
                reason=FailureKind.REMOTE_ERROR,
            ),
            ErrorResponse(message="Connection failed", reason=FailureKind.NETWORK_FAILURE),
        ],
    )
    def test_only_rate_limits_are_retried(
        self, policy: RetryPolicy, classification: object
    ) -> None:
        """Test that other classifications are never retried."""
        assert policy.should_retry(0, classification).retry is False


class TestGetDelay:
    """Tests for delay calculation."""

    def test_delay_is_capped(self) -> None:
        """Test that computed delays respect max_delay_ms."""
        policy = RetryPolicy(base_delay_ms=1000, max_delay_ms=5000)

        assert policy.get_delay_ms(10) == 5000

    def test_jitter_stays_in_range(self) -> None:
        """Test that jitter only adds up to the configured fraction."""
        policy = RetryPolicy(base_delay_ms=1000, jitter_factor=0.5)

        for _ in range(20):
            delay = policy.get_delay_ms(0)
            assert 1000 <= delay <= 1500
