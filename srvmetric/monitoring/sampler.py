"""
Periodic sampler: turns counter and resource deltas into MetricRecords.

Each tick diffs the current resource snapshot and request totals against the
previous tick, builds one MetricRecord and hands it to the sink on a
background writer thread. The baseline rolls forward whether or not the
write succeeds.
"""

import logging
import os
import socket
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from enum import Enum
from typing import Callable, Optional, Set

from setproctitle import setproctitle

from srvmetric.core.exceptions import SamplerStateError
from srvmetric.models.record import MetricRecord, ResourceSnapshot
from .apdex import apdex_score
from .counters import RequestCounters
from .resources import ResourceProbe
from .scheduler import Scheduler, ThreadScheduler
from .sink import MetricSink

logger = logging.getLogger(__name__)

# Lower bound for the measured interval, avoids division by zero
MIN_ELAPSED = 1e-6


def format_process_title(record: MetricRecord) -> str:
    """
    Process title summarizing a record, e.g. "srvmetric: api [12] 4.2/QPS 97%".

    QPS and apdex show "-" for an interval without traffic.
    """
    qps = f"{record.qps:.1f}" if record.qps else "-"
    apdex = f"{round(record.apdex * 100)}" if record.apdex else "-"
    return f"srvmetric: {record.name} [{record.active_handles}] {qps}/QPS {apdex}%"


class SamplerState(Enum):
    """Sampler lifecycle. STOPPED is terminal."""

    NEW = "new"
    RUNNING = "running"
    STOPPED = "stopped"


class Sampler:
    """
    Owns the request counters and the recurring sampling tick.

    Architecture:
    - One Scheduler drives tick(); ticks never overlap
    - tick() is pure in-memory work apart from the sink hand-off
    - A single-worker executor performs sink writes in submission order,
      so a slow or failing write never delays the next tick

    Clocks are injectable: `clock` must be monotonic and measures interval
    length, `wall_clock` provides record timestamps. With `process_title`
    each tick also rewrites the process title (see format_process_title).
    """

    def __init__(
        self,
        sink: MetricSink,
        interval: float = 10.0,
        counters: Optional[RequestCounters] = None,
        probe: Optional[ResourceProbe] = None,
        scheduler: Optional[Scheduler] = None,
        name: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        process_title: bool = False,
    ):
        if interval <= 0:
            raise ValueError(f"Sampling interval must be > 0, got {interval}")

        self.sink = sink
        self.interval = interval
        self.counters = counters if counters is not None else RequestCounters()
        self.probe = probe if probe is not None else ResourceProbe()
        self.scheduler = scheduler if scheduler is not None else ThreadScheduler()

        self.host = socket.gethostname()
        self.pid = os.getpid()
        self.name = name or self.host
        self.instance = f"{self.host}-{self.pid}"

        self.process_title = process_title
        self._clock = clock
        self._wall_clock = wall_clock

        self._state = SamplerState.NEW
        self._state_lock = threading.Lock()
        self._tick_lock = threading.Lock()

        # Rolling baseline, only advanced by tick()
        self._last_snapshot: Optional[ResourceSnapshot] = None
        self._last_tick = 0.0
        self._last_record: Optional[MetricRecord] = None

        self._writer: Optional[ThreadPoolExecutor] = None
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()

    @property
    def state(self) -> SamplerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SamplerState.RUNNING

    @property
    def last_record(self) -> Optional[MetricRecord]:
        """Most recent record produced by tick()."""
        return self._last_record

    @property
    def pending_writes(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def start(self) -> None:
        """
        Capture the baseline and schedule the recurring tick.

        Raises:
            SamplerStateError: If already running or already stopped
        """
        with self._state_lock:
            if self._state is not SamplerState.NEW:
                raise SamplerStateError(
                    f"Sampler cannot start from state '{self._state.value}'"
                )

            self._last_snapshot = self.probe.snapshot()
            self._last_tick = self._clock()
            self._writer = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="metric-sink"
            )
            self._state = SamplerState.RUNNING

        self.scheduler.start(self.tick, self.interval)
        logger.info(
            f"Metric sampler started: name={self.name}, interval={self.interval}s"
        )

    def stop(self) -> None:
        """
        Cancel the schedule. Pending writes may still complete; see drain().

        Safe to call more than once.
        """
        with self._state_lock:
            if self._state is not SamplerState.RUNNING:
                return
            self._state = SamplerState.STOPPED

        self.scheduler.stop()
        if self._writer is not None:
            # Already-submitted writes still run
            self._writer.shutdown(wait=False)

        logger.info("Metric sampler stopped")

    def drain(self, timeout: float = 2.0) -> bool:
        """
        Wait for outstanding sink writes.

        Args:
            timeout: Maximum seconds to wait

        Returns:
            True if every pending write finished in time
        """
        with self._pending_lock:
            pending = list(self._pending)

        if not pending:
            return True

        _, not_done = wait_futures(pending, timeout=timeout)
        if not_done:
            logger.warning(
                f"{len(not_done)} metric write(s) still pending after {timeout}s"
            )
            return False
        return True

    def tick(self) -> Optional[MetricRecord]:
        """
        Run one sampling step.

        Returns:
            The emitted MetricRecord, or None if the sampler is not running
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.error("Overlapping sampler tick detected, serializing")
            self._tick_lock.acquire()

        try:
            if self._state is not SamplerState.RUNNING:
                logger.debug("Tick ignored, sampler not running")
                return None

            record = self._sample()
        finally:
            self._tick_lock.release()

        logger.debug(f"Metric record: {record.to_dict()}")
        if self.process_title:
            setproctitle(format_process_title(record))
        self._submit(record)
        return record

    def _sample(self) -> MetricRecord:
        now = self._clock()
        elapsed = max(now - self._last_tick, MIN_ELAPSED)

        snapshot = self.probe.snapshot()
        cpu_delta = max(0.0, snapshot.cpu_total - self._last_snapshot.cpu_total)
        event_delay = max(0.0, elapsed - self.interval)

        delta = self.counters.take_delta()

        request_fields = {}
        if delta.requests > 0:
            request_fields = {
                "requests": delta.requests,
                "requests_elapsed": delta.requests_elapsed * 1000,
                "qps": delta.requests / elapsed,
                "apdex": apdex_score(delta.requests, delta.apdex_tolerated),
            }

        record = MetricRecord(
            name=self.name,
            instance=self.instance,
            host=self.host,
            pid=self.pid,
            timestamp=int(round(self._wall_clock())),
            cpu_percentage=cpu_delta / elapsed,
            event_delay=event_delay * 1000,
            mem_rss=snapshot.mem_rss,
            mem_vms=snapshot.mem_vms,
            load_percentage=snapshot.load_percentage,
            active_handles=snapshot.active_handles,
            **request_fields,
        )

        self._last_snapshot = snapshot
        self._last_tick = now
        self._last_record = record
        return record

    def _submit(self, record: MetricRecord) -> None:
        try:
            future = self._writer.submit(self._write, record)
        except RuntimeError as e:
            # Writer already shut down by a concurrent stop()
            logger.warning(f"Metric record dropped, writer unavailable: {e}")
            return

        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._write_done)

    def _write(self, record: MetricRecord) -> None:
        try:
            self.sink.append(record)
        except Exception as e:
            logger.warning(f"Metric sink {type(self.sink).__name__} failed: {e}")

    def _write_done(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)
