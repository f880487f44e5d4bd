"""
Shared fakes for sampler tests: virtual clock, scripted resource probe and
a scheduler that only fires when told to.
"""

import pytest

from srvmetric.models.record import MetricRecord, ResourceSnapshot
from srvmetric.monitoring.scheduler import Scheduler


class FakeClock:
    """Callable clock that only moves when advanced."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProbe:
    """Resource probe returning whatever snapshot the test configures."""

    def __init__(self):
        self.cpu_user = 1.0
        self.cpu_system = 0.5
        self.mem_rss = 50 * 1024 * 1024
        self.mem_vms = 200 * 1024 * 1024
        self.load_average = 2.0
        self.cpu_count = 4
        self.active_handles = 12
        self.calls = 0

    def snapshot(self) -> ResourceSnapshot:
        self.calls += 1
        return ResourceSnapshot(
            cpu_user=self.cpu_user,
            cpu_system=self.cpu_system,
            mem_rss=self.mem_rss,
            mem_vms=self.mem_vms,
            load_average=self.load_average,
            cpu_count=self.cpu_count,
            active_handles=self.active_handles,
        )


class ManualScheduler(Scheduler):
    """Scheduler whose ticks are fired explicitly by the test."""

    def __init__(self):
        self.callback = None
        self.interval = None
        self._running = False
        self.start_calls = 0
        self.stop_calls = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, callback, interval):
        self.callback = callback
        self.interval = interval
        self._running = True
        self.start_calls += 1

    def stop(self):
        self._running = False
        self.stop_calls += 1

    def fire(self):
        return self.callback()


def make_record(**overrides) -> MetricRecord:
    """MetricRecord with plausible defaults."""
    fields = dict(
        name="api",
        instance="web-1-4242",
        host="web-1",
        pid=4242,
        timestamp=1760860800,
        cpu_percentage=0.12,
        event_delay=0.0,
        mem_rss=52428800,
        mem_vms=209715200,
        load_percentage=0.5,
        active_handles=12,
    )
    fields.update(overrides)
    return MetricRecord(**fields)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_wall_clock():
    return FakeClock(start=1760860800.0)


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture(autouse=True)
def clean_metric_env(monkeypatch):
    """Keep host SRVMETRIC_* variables out of config resolution."""
    for key in ("SRVMETRIC_NAME", "SRVMETRIC_LOG_DIR", "SRVMETRIC_LOG_INTERVAL", "SRVMETRIC_APDEX_SATISFIED"):
        monkeypatch.delenv(key, raising=False)
