"""Metrics collection for the request client."""

from dataclasses import dataclass, field

from src.features.client.errors import FailureKind


@dataclass
class ClientMetrics:
    """Metrics for one client instance.

    Tracks transport round trips, rate-limit retries, refresh calls, and
    terminal failures. Owned by the client rather than shared globally.
    """

    http_requests_total: dict[int, int] = field(default_factory=dict)
    network_failures_total: int = 0
    rate_limit_retries_total: int = 0
    refresh_calls_total: int = 0
    refresh_failures_total: int = 0
    failures_total: dict[str, int] = field(default_factory=dict)

    def record_response(self, status_code: int) -> None:
        """Record a completed transport round trip.

        Args:
            status_code: HTTP status code.
        """
        self.http_requests_total[status_code] = (
            self.http_requests_total.get(status_code, 0) + 1
        )

    def record_network_failure(self) -> None:
        """Record a round trip that produced no response."""
        self.network_failures_total += 1

    def record_rate_limit_retry(self) -> None:
        """Record a rate-limit retry."""
        self.rate_limit_retries_total += 1

    def record_refresh(self, *, succeeded: bool) -> None:
        """Record a refresh call.

        Args:
            succeeded: Whether the refresh produced a new credential.
        """
        self.refresh_calls_total += 1
        if not succeeded:
            self.refresh_failures_total += 1

    def record_failure(self, kind: FailureKind) -> None:
        """Record a terminal request failure.

        Args:
            kind: Classification of the failure.
        """
        key = kind.value
        self.failures_total[key] = self.failures_total.get(key, 0) + 1

    @property
    def round_trips_total(self) -> int:
        """Total transport attempts, with or without a response."""
        return sum(self.http_requests_total.values()) + self.network_failures_total

    def to_dict(self) -> dict[str, int | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "http_requests_total": dict(self.http_requests_total),
            "network_failures_total": self.network_failures_total,
            "rate_limit_retries_total": self.rate_limit_retries_total,
            "refresh_calls_total": self.refresh_calls_total,
            "refresh_failures_total": self.refresh_failures_total,
            "failures_total": dict(self.failures_total),
        }
