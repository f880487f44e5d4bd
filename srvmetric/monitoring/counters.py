"""
Rolling request counters.

Completed units of work increment monotonic totals; the sampler reads
per-interval activity by differencing against a baseline that it rolls
forward on every tick.
"""

import threading
from typing import NamedTuple


class CounterDelta(NamedTuple):
    """Per-interval request activity."""

    requests: int
    requests_elapsed: float  # seconds
    apdex_tolerated: int


class RequestCounters:
    """
    Request totals shared between the request path and the sampler.

    Thread safety:
    - record_completion() may be called from any number of threads or tasks
    - take_delta() is atomic with respect to record_completion(), so each
      completion lands in exactly one delta

    A single lock guards the triple update, which keeps
    apdex_tolerated <= requests at every observation point.
    """

    def __init__(self, satisfied_threshold: float = 0.1):
        """
        Args:
            satisfied_threshold: Seconds; completions slower than this count
                as "tolerated" for the apdex score
        """
        if satisfied_threshold < 0:
            raise ValueError(
                f"satisfied_threshold must be >= 0, got {satisfied_threshold}"
            )
        self.satisfied_threshold = satisfied_threshold

        self._lock = threading.Lock()

        # Absolute totals (monotonic)
        self._requests = 0
        self._requests_elapsed = 0.0
        self._apdex_tolerated = 0

        # Totals at the previous take_delta()
        self._last_requests = 0
        self._last_requests_elapsed = 0.0
        self._last_apdex_tolerated = 0

    def record_completion(self, elapsed: float) -> None:
        """
        Count one completed unit of work.

        Args:
            elapsed: Duration in seconds; negative values are clamped to 0
        """
        if elapsed < 0:
            elapsed = 0.0
        tolerated = elapsed > self.satisfied_threshold

        with self._lock:
            self._requests += 1
            self._requests_elapsed += elapsed
            if tolerated:
                self._apdex_tolerated += 1

    def take_delta(self) -> CounterDelta:
        """
        Return activity since the previous call and roll the baseline forward.

        The first call diffs against zero.
        """
        with self._lock:
            delta = CounterDelta(
                requests=self._requests - self._last_requests,
                requests_elapsed=self._requests_elapsed - self._last_requests_elapsed,
                apdex_tolerated=self._apdex_tolerated - self._last_apdex_tolerated,
            )
            self._last_requests = self._requests
            self._last_requests_elapsed = self._requests_elapsed
            self._last_apdex_tolerated = self._apdex_tolerated

        return delta

    def totals(self) -> CounterDelta:
        """Absolute totals since construction (inspection only)."""
        with self._lock:
            return CounterDelta(
                self._requests, self._requests_elapsed, self._apdex_tolerated
            )
