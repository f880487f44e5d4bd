"""
Per-request instrumentation hooks.

Every hook records exactly one completion per unit of work, on every exit
path (normal return, exception, cancellation). Bookkeeping failures are
logged and never propagate into the instrumented code.
"""

import logging
import time
from functools import wraps
from typing import Callable, Optional, TypeVar

from .counters import RequestCounters

T = TypeVar("T")
logger = logging.getLogger(__name__)


def _record(counters: RequestCounters, elapsed: float) -> None:
    try:
        counters.record_completion(elapsed)
    except Exception as e:
        logger.error(f"Failed to record request completion: {e}", exc_info=True)


class measure_request:
    """
    Context manager for measuring one unit of work.

    Usage:
        with measure_request(counters):
            response = handle(request)

    Works in sync and async code alike; the context manager itself never
    awaits.
    """

    __slots__ = ("counters", "start", "elapsed")

    def __init__(self, counters: RequestCounters, start: Optional[float] = None):
        """
        Args:
            counters: Counters to record into
            start: time.perf_counter() value the unit started at, if it
                started before entering the context
        """
        self.counters = counters
        self.start = start
        self.elapsed: Optional[float] = None

    def __enter__(self):
        if self.start is None:
            self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self.start
        _record(self.counters, self.elapsed)
        return False  # Don't suppress exceptions


def instrument_async(counters: RequestCounters):
    """
    Decorator recording each call of an async handler as one request.

    Usage:
        @instrument_async(counters)
        async def handle(request):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _record(counters, time.perf_counter() - start)

        return wrapper

    return decorator


def instrument_sync(counters: RequestCounters):
    """
    Decorator recording each call of a sync handler as one request.

    Usage:
        @instrument_sync(counters)
        def handle(request):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _record(counters, time.perf_counter() - start)

        return wrapper

    return decorator
