"""
Lifecycle controller binding the sampler to host install/shutdown.

Usage:
    extension = MetricExtension()
    measure = extension.on_install({"log_dir": "/var/log/app"})

    with measure():
        handle(request)

    extension.on_shutdown()
"""

import asyncio
import contextlib
import logging
import os
import time
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from srvmetric.core.exceptions import ConfigurationError
from srvmetric.monitoring.counters import RequestCounters
from srvmetric.monitoring.instrument import measure_request
from srvmetric.monitoring.resources import ResourceProbe
from srvmetric.monitoring.sampler import Sampler
from srvmetric.monitoring.scheduler import Scheduler
from srvmetric.monitoring.sink import DailyFileSink, MemorySink, MetricSink
from srvmetric.utils.config import MetricConfig, load_config
from srvmetric.utils.logger import log_execution_time

T = TypeVar("T")
logger = logging.getLogger(__name__)

ConfigInput = Union[MetricConfig, Dict[str, Any], None]


class MetricExtension:
    """
    Attachable metric extension for a host application.

    Owns one RequestCounters / Sampler / MetricSink triple. Several
    extensions can coexist in one process, each with its own counters.

    Lifecycle:
    - on_install(): validate config, prepare the sink, start sampling
    - measure() / instrument_*(): per-request hooks for the host pipeline
    - on_shutdown(): stop sampling, drain pending writes, close the sink
    """

    def __init__(
        self,
        config: ConfigInput = None,
        sink: Optional[MetricSink] = None,
        probe: Optional[ResourceProbe] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self._config_input = config
        self._sink_override = sink
        self._probe = probe
        self._scheduler = scheduler
        self._clock = clock
        self._wall_clock = wall_clock

        self.config: Optional[MetricConfig] = None
        self.sink: Optional[MetricSink] = None
        self.sampler: Optional[Sampler] = None
        self._installed = False

    @property
    def is_installed(self) -> bool:
        return self._installed

    @property
    def counters(self) -> Optional[RequestCounters]:
        return self.sampler.counters if self.sampler else None

    def on_install(self, config: ConfigInput = None) -> Callable[..., Any]:
        """
        Start sampling and return the per-request hook.

        Args:
            config: MetricConfig, dict of option overrides, or None to use
                the constructor config (falling back to environment/defaults)

        Returns:
            The measure() hook

        Raises:
            ConfigurationError: Invalid options or unusable log directory
        """
        if self._installed:
            logger.warning("Metric extension already installed")
            return self.measure

        self.config = self._resolve_config(
            config if config is not None else self._config_input
        )
        logger.debug(f"option: {self.config}")

        self.sink = self._build_sink(self.config)
        self.sampler = Sampler(
            sink=self.sink,
            interval=self.config.log_interval,
            counters=RequestCounters(self.config.apdex_satisfied_seconds),
            probe=self._probe,
            scheduler=self._scheduler,
            name=self.config.name,
            clock=self._clock,
            wall_clock=self._wall_clock,
            process_title=self.config.enable_process_title,
        )
        self.sampler.start()
        self._installed = True
        return self.measure

    def on_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Stop sampling, wait (bounded) for pending writes and close the sink.

        Safe to call multiple times.

        Returns:
            True if every pending write completed before the timeout
        """
        if not self._installed:
            return True

        self.sampler.stop()
        return self._finish_shutdown(timeout)

    async def on_shutdown_async(self, timeout: Optional[float] = None) -> bool:
        """
        on_shutdown() for asyncio hosts.

        The schedule is cancelled on the loop thread; draining runs in a
        worker thread so the loop is not blocked.
        """
        if not self._installed:
            return True

        self.sampler.stop()
        return await asyncio.to_thread(self._finish_shutdown, timeout)

    def measure(self, start: Optional[float] = None):
        """
        Context manager recording one unit of work.

        Before install (or after shutdown) the unit runs unmeasured.
        """
        if not self._installed:
            return contextlib.nullcontext()
        return measure_request(self.sampler.counters, start)

    def instrument_async(self, func: Callable[..., T]) -> Callable[..., T]:
        """Decorator form of measure() for async handlers."""

        @wraps(func)
        async def wrapper(*args, **kwargs):
            with self.measure():
                return await func(*args, **kwargs)

        return wrapper

    def instrument_sync(self, func: Callable[..., T]) -> Callable[..., T]:
        """Decorator form of measure() for sync handlers."""

        @wraps(func)
        def wrapper(*args, **kwargs):
            with self.measure():
                return func(*args, **kwargs)

        return wrapper

    def _finish_shutdown(self, timeout: Optional[float]) -> bool:
        if timeout is None:
            timeout = self.config.shutdown_timeout

        with log_execution_time("Metric sink drain"):
            drained = self.sampler.drain(timeout)
            try:
                self.sink.close()
            except OSError as e:
                logger.warning(f"Error closing metric sink: {e}")

        self._installed = False
        logger.info("Metric extension shut down")
        return drained

    def _resolve_config(self, config: ConfigInput) -> MetricConfig:
        if isinstance(config, MetricConfig):
            # Re-validate through the schema
            return load_config(vars(config), environ={})
        return load_config(config)

    def _build_sink(self, config: MetricConfig) -> MetricSink:
        if self._sink_override is not None:
            return self._sink_override

        if not config.persistence_enabled:
            logger.info("Metric persistence disabled, keeping records in memory")
            return MemorySink()

        log_dir = Path(config.log_dir)
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Metric log directory {log_dir} cannot be created: {e}"
            ) from e

        if not os.access(log_dir, os.W_OK):
            raise ConfigurationError(f"Metric log directory {log_dir} is not writable")

        return DailyFileSink(
            log_dir,
            prefix=config.file_prefix,
            max_bytes=config.max_bytes,
            backup_count=config.backup_count,
        )
