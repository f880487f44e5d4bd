"""
Immutable measurement data structures.

- ResourceSnapshot: cumulative process/OS counters captured at one instant
- MetricRecord: aggregated figures for one sampling interval
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class ResourceSnapshot:
    """
    Point-in-time process and OS counters.

    CPU times are cumulative since process start, so two snapshots must be
    differenced to get per-interval usage. Never persisted on its own.
    """

    cpu_user: float  # seconds
    cpu_system: float  # seconds
    mem_rss: int  # bytes
    mem_vms: int  # bytes
    load_average: float  # 1-minute OS load average
    cpu_count: int
    active_handles: int  # open file descriptors / handles

    @property
    def cpu_total(self) -> float:
        """User plus system CPU seconds."""
        return self.cpu_user + self.cpu_system

    @property
    def load_percentage(self) -> float:
        """Load average normalized by core count."""
        return self.load_average / max(self.cpu_count, 1)


@dataclass(frozen=True, slots=True)
class MetricRecord:
    """
    Aggregated metrics for a single sampling interval.

    Request fields are None when the interval saw no completed requests;
    to_dict() omits them entirely so "no traffic" stays distinguishable
    from "perfect but empty traffic".
    """

    name: str
    instance: str
    host: str
    pid: int
    timestamp: int  # Unix timestamp in seconds

    cpu_percentage: float  # fraction of one core
    event_delay: float  # milliseconds the tick fired late
    mem_rss: int
    mem_vms: int
    load_percentage: float
    active_handles: int

    requests: Optional[int] = None
    requests_elapsed: Optional[float] = None  # milliseconds
    qps: Optional[float] = None
    apdex: Optional[float] = None

    REQUEST_FIELDS = ("requests", "requests_elapsed", "qps", "apdex")

    @property
    def has_traffic(self) -> bool:
        return self.requests is not None

    def to_dict(self) -> Dict[str, Any]:
        """Flat mapping for JSON serialization, request fields only with traffic."""
        data: Dict[str, Any] = {
            "name": self.name,
            "instance": self.instance,
            "host": self.host,
            "pid": self.pid,
            "timestamp": self.timestamp,
            "cpu_percentage": self.cpu_percentage,
            "event_delay": self.event_delay,
            "mem_rss": self.mem_rss,
            "mem_vms": self.mem_vms,
            "load_percentage": self.load_percentage,
            "active_handles": self.active_handles,
        }
        if self.has_traffic:
            for key in self.REQUEST_FIELDS:
                data[key] = getattr(self, key)
        return data
