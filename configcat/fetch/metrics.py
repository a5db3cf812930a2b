"""Metrics collection for config fetches."""

from collections import Counter
from threading import Lock

from configcat.fetch.models import FetchErrorClass


class FetchMetrics:
    """Collects metrics for config fetch operations.

    Provides thread-safe counters for:
    - config_requests_total{status_code}
    - config_not_modified_total
    - config_fetch_failures_total{error_class}
    - config_fetch_duration_ms_total

    Shared by every client in the process.
    """

    _instance: "FetchMetrics | None" = None
    _lock = Lock()

    def __init__(self) -> None:
        """Initialize the metrics collector."""
        self._requests: Counter[int] = Counter()
        self._failures: Counter[str] = Counter()
        self._not_modified = 0
        self._duration_ms_total = 0.0
        self._fetch_count = 0
        self._lock = Lock()

    @classmethod
    def get_instance(cls) -> "FetchMetrics":
        """Get the singleton metrics instance.

        Returns:
            The shared FetchMetrics instance.
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        with cls._lock:
            cls._instance = None

    def record_request(self, status_code: int) -> None:
        """Record a completed HTTP request.

        Args:
            status_code: HTTP status code.
        """
        with self._lock:
            self._requests[status_code] += 1

    def record_not_modified(self) -> None:
        """Record a 304 response."""
        with self._lock:
            self._not_modified += 1

    def record_failure(self, error_class: FetchErrorClass) -> None:
        """Record a fetch failure.

        Args:
            error_class: Classification of the failure.
        """
        with self._lock:
            self._failures[error_class.value] += 1

    def record_duration(self, duration_ms: float) -> None:
        """Record fetch duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        with self._lock:
            self._duration_ms_total += duration_ms
            self._fetch_count += 1

    @property
    def avg_duration_ms(self) -> float:
        """Average fetch duration in milliseconds."""
        with self._lock:
            if self._fetch_count == 0:
                return 0.0
            return self._duration_ms_total / self._fetch_count

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "config_requests_total": dict(self._requests),
                "config_not_modified_total": self._not_modified,
                "config_fetch_failures_total": dict(self._failures),
                "config_fetch_duration_ms_total": self._duration_ms_total,
                "config_fetch_count": self._fetch_count,
            }
