"""
Recurring task schedulers for the sampler tick.

- ThreadScheduler: background daemon thread with fixed-rate deadlines
- LoopScheduler: asyncio call_later chain, so tick lateness reflects
  event loop starvation

Both run the callback single-flight: the next tick is never started while
the previous one is still running.
"""

import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[], None]


class Scheduler(ABC):
    """Start/stop contract for a recurring callback."""

    @abstractmethod
    def start(self, callback: TickCallback, interval: float) -> None:
        """Begin invoking callback every interval seconds."""

    @abstractmethod
    def stop(self) -> None:
        """Cancel future invocations. Safe to call more than once."""

    @property
    @abstractmethod
    def is_running(self) -> bool:
        ...


class ThreadScheduler(Scheduler):
    """
    Runs the callback from a daemon thread.

    Deadlines are start + n * interval. If a callback overruns one or more
    deadlines, the missed ones are skipped rather than fired back to back.
    """

    def __init__(self, name: str = "metric-sampler", join_timeout: float = 2.0):
        self._name = name
        self._join_timeout = join_timeout
        self._thread: Optional[threading.Thread] = None
        self._shutdown_event = threading.Event()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, callback: TickCallback, interval: float) -> None:
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        self._shutdown_event.clear()
        self._thread = threading.Thread(
            target=self._run, args=(callback, interval), daemon=True, name=self._name
        )
        self._thread.start()

    def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        self._shutdown_event.set()

        if (
            self._thread
            and self._thread.is_alive()
            and self._thread is not threading.current_thread()
        ):
            self._thread.join(timeout=self._join_timeout)

    def _run(self, callback: TickCallback, interval: float) -> None:
        logger.debug("Scheduler thread started")
        next_deadline = time.monotonic() + interval

        while self._running:
            wait = next_deadline - time.monotonic()
            if self._shutdown_event.wait(timeout=max(0.0, wait)):
                break

            try:
                callback()
            except Exception as e:
                logger.error(f"Error in scheduled tick: {e}", exc_info=True)

            next_deadline += interval
            now = time.monotonic()
            if next_deadline <= now:
                skipped = int((now - next_deadline) // interval) + 1
                next_deadline += skipped * interval
                logger.debug(f"Tick overran, skipped {skipped} deadline(s)")

        logger.debug("Scheduler thread stopped")


class LoopScheduler(Scheduler):
    """
    Runs the callback on an asyncio event loop via call_later.

    start() and stop() must be called from the loop's thread.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._callback: Optional[TickCallback] = None
        self._interval = 0.0
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, callback: TickCallback, interval: float) -> None:
        if self._running:
            logger.warning("Scheduler already running")
            return

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self._callback = callback
        self._interval = interval
        self._running = True
        self._handle = self._loop.call_later(interval, self._fire)

    def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        if not self._running:
            return

        try:
            self._callback()
        except Exception as e:
            logger.error(f"Error in scheduled tick: {e}", exc_info=True)

        if self._running:
            self._handle = self._loop.call_later(self._interval, self._fire)
