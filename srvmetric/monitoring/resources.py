"""
Process and OS resource queries backed by psutil.
"""

import logging
import os
from typing import Optional

import psutil

from srvmetric.models.record import ResourceSnapshot

logger = logging.getLogger(__name__)


class ResourceProbe:
    """
    Stateless source of ResourceSnapshot readings for one process.

    Individual counters that the platform refuses to report fall back to 0
    instead of failing the whole snapshot.
    """

    def __init__(self, pid: Optional[int] = None):
        self.pid = pid if pid is not None else os.getpid()
        self._process = psutil.Process(self.pid)
        self._cpu_count = psutil.cpu_count() or 1

    @property
    def cpu_count(self) -> int:
        return self._cpu_count

    def snapshot(self) -> ResourceSnapshot:
        """Read current CPU, memory, load and handle counters."""
        with self._process.oneshot():
            cpu_times = self._process.cpu_times()
            mem_info = self._process.memory_info()
            handles = self._get_active_handles()

        return ResourceSnapshot(
            cpu_user=cpu_times.user,
            cpu_system=cpu_times.system,
            mem_rss=mem_info.rss,
            mem_vms=mem_info.vms,
            load_average=self._get_load_average(),
            cpu_count=self._cpu_count,
            active_handles=handles,
        )

    def _get_active_handles(self) -> int:
        try:
            if hasattr(self._process, "num_handles"):
                return self._process.num_handles()
            return self._process.num_fds()
        except (psutil.AccessDenied, AttributeError):
            return 0

    def _get_load_average(self) -> float:
        try:
            return psutil.getloadavg()[0]
        except (OSError, AttributeError) as e:
            logger.debug(f"Load average unavailable: {e}")
            return 0.0
