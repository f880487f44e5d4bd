"""
Request counters, resource sampling and metric record sinks.

This package provides the sampling & aggregation engine behind
MetricExtension.

Usage:
    from srvmetric.monitoring import (
        DailyFileSink, RequestCounters, Sampler, measure_request
    )

    counters = RequestCounters(satisfied_threshold=0.1)
    sampler = Sampler(DailyFileSink("/var/log/app"), interval=10, counters=counters)
    sampler.start()  # Start background sampling

    # Instrument code
    with measure_request(counters):
        handle(request)

    # Shutdown
    sampler.stop()
    sampler.drain(timeout=2.0)
"""

from .apdex import apdex_score
from .counters import CounterDelta, RequestCounters
from .instrument import instrument_async, instrument_sync, measure_request
from .resources import ResourceProbe
from .sampler import Sampler, SamplerState, format_process_title
from .scheduler import LoopScheduler, Scheduler, ThreadScheduler
from .sink import DailyFileSink, LoggerSink, MemorySink, MetricSink

__all__ = [
    "apdex_score",
    "CounterDelta",
    "RequestCounters",
    "measure_request",
    "instrument_async",
    "instrument_sync",
    "ResourceProbe",
    "Sampler",
    "SamplerState",
    "format_process_title",
    "Scheduler",
    "ThreadScheduler",
    "LoopScheduler",
    "MetricSink",
    "DailyFileSink",
    "LoggerSink",
    "MemorySink",
]
