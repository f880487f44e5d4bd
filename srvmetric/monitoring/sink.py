"""
Append targets for metric records.

Records are written in JSON Lines format (one JSON object per line) so the
output can be consumed with jq, grep, or a log shipper.

Example log line:
    {"name": "api", "instance": "web-1-4242", "timestamp": 1760860800,
     "cpu_percentage": 0.12, "event_delay": 0, "mem_rss": 52428800, ...,
     "requests": 10, "requests_elapsed": 700.0, "qps": 1.0, "apdex": 0.9}

Sinks never raise on write failure: the record is dropped and a warning is
logged, because a gap in the log is acceptable and a crashed host is not.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Deque, List, Optional, Union

from srvmetric.models.record import MetricRecord

logger = logging.getLogger(__name__)

RECORD_LOGGER_NAME = "srvmetric.records"


class MetricSink(ABC):
    """Capability interface: append(record) and close()."""

    @abstractmethod
    def append(self, record: MetricRecord) -> None:
        """Persist one record. Must not raise on I/O failure."""

    def close(self) -> None:
        """Flush and release resources. Default: nothing to do."""


def serialize_record(record: MetricRecord) -> str:
    """Single-line JSON form of a record."""
    return json.dumps(record.to_dict(), separators=(",", ":"))


class _RecordFileHandler(RotatingFileHandler):
    """RotatingFileHandler that lets write errors reach the caller."""

    def handleError(self, record: logging.LogRecord) -> None:
        # Called from emit()'s except block
        raise


class DailyFileSink(MetricSink):
    """
    Appends records to one file per host-local calendar day.

    File path: {log_dir}/{prefix}-metric.{YYYY-MM-DD}.log, where the date is
    taken from the record's own timestamp, not the wall clock at write time.

    Lines go through a dedicated non-propagating logger with a '%(message)s'
    RotatingFileHandler, swapped whenever the record date changes. With
    max_bytes > 0 a day file is rolled over to .1, .2, ... keeping
    backup_count backups.
    """

    def __init__(
        self,
        log_dir: Union[str, Path],
        prefix: str = "srvmetric",
        max_bytes: int = 0,
        backup_count: int = 5,
    ):
        self.log_dir = Path(log_dir)
        self.prefix = prefix
        self.max_bytes = max_bytes
        self.backup_count = backup_count

        self._lock = threading.Lock()
        self._dir_ready = False
        self._handler: Optional[RotatingFileHandler] = None
        self._handler_path: Optional[Path] = None

        # Unique logger per sink instance
        self._logger = logging.getLogger(f"srvmetric.file_sink_{id(self)}")
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False

    def path_for(self, timestamp: float) -> Path:
        """Target file for a record taken at the given unix timestamp."""
        ymd = datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d")
        return self.log_dir / f"{self.prefix}-metric.{ymd}.log"

    def append(self, record: MetricRecord) -> None:
        path = self.path_for(record.timestamp)

        with self._lock:
            try:
                self._ensure_dir()
                self._use_file(path)
                self._logger.info(serialize_record(record))
            except OSError as e:
                logger.warning(f"Metric record dropped, write to {path} failed: {e}")
                self._close_handler()
                return

        logger.debug(f"Metric record written: {path}")

    def close(self) -> None:
        with self._lock:
            self._close_handler()

    def _ensure_dir(self) -> None:
        if self._dir_ready:
            return
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._dir_ready = True

    def _use_file(self, path: Path) -> None:
        if self._handler is not None and self._handler_path == path:
            return

        # Day changed (or first write): switch files
        self._close_handler()
        handler = _RecordFileHandler(
            path,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        self._logger.addHandler(handler)
        self._handler = handler
        self._handler_path = path

    def _close_handler(self) -> None:
        if self._handler is None:
            return
        self._logger.removeHandler(self._handler)
        try:
            self._handler.close()
        except OSError as e:
            logger.warning(f"Error closing metric log {self._handler_path}: {e}")
        finally:
            self._handler = None
            self._handler_path = None


class LoggerSink(MetricSink):
    """
    Emits each record as a JSON message on a dedicated stdlib logger.

    Pair with MetricLogger(record_log=True) to route these messages into a
    separate, time-rotated file.
    """

    def __init__(self, logger_name: str = RECORD_LOGGER_NAME):
        self._logger = logging.getLogger(logger_name)

    def append(self, record: MetricRecord) -> None:
        self._logger.info(serialize_record(record))


class MemorySink(MetricSink):
    """Keeps the most recent records in memory; used when persistence is disabled."""

    def __init__(self, maxlen: int = 1000):
        self._records: Deque[MetricRecord] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def append(self, record: MetricRecord) -> None:
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> List[MetricRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
