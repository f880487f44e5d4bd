"""
Logging configuration with multi-handler setup and a dedicated metric record log
"""

import logging
import sys
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Generator, Optional

from srvmetric.monitoring.sink import RECORD_LOGGER_NAME

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s'


class RecordLogFilter(logging.Filter):
    """
    Filter to isolate metric records from diagnostic logging

    Only allows log records emitted by LoggerSink (logger name
    'srvmetric.records') through to the record-specific handler.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Args:
            record: Log record to evaluate

        Returns:
            True if the record comes from the metric record logger
        """
        return record.name == RECORD_LOGGER_NAME


class MetricLogger:
    """
    Host-side logging setup for the metric sampler

    Features:
    - Console handler for diagnostics
    - Optional size-rotated diagnostic file
    - Optional JSON record file fed by LoggerSink (daily rotation)
    """

    def __init__(self, config: dict):
        """
        Initialize logging infrastructure

        Args:
            config: Configuration dictionary with keys:
                - log_level: str (DEBUG, INFO, WARNING, ERROR)
                - log_dir: str (directory for log files, optional)
                - record_log: bool (write LoggerSink output to records.log)

        Raises:
            OSError: If log directory creation fails
        """
        self.log_level = config.get('log_level', 'INFO')
        self.record_log = config.get('record_log', False)

        log_dir = config.get('log_dir')
        self.log_dir: Optional[Path] = Path(log_dir) if log_dir else None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._setup_logging()

    def _setup_logging(self) -> None:
        """
        Configure root logger with all handlers

        Sets up:
        1. Console handler (INFO+)
        2. Rotating file handler (DEBUG+), only with log_dir
        3. Record handler (INFO, raw JSON lines, midnight rotation), only
           with log_dir and record_log
        """
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.log_level.upper()))

        # Clear existing handlers to avoid duplicates
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console_handler)

        if self.log_dir is None:
            return

        # File Handler - All levels, rotating (10MB max, 5 backups)
        file_handler = RotatingFileHandler(
            self.log_dir / 'srvmetric.log',
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)

        if self.record_log:
            # Record Log - LoggerSink output only (daily rotation, 30-day retention)
            record_handler = TimedRotatingFileHandler(
                self.log_dir / 'records.log',
                when='midnight',
                backupCount=30
            )
            record_handler.setLevel(logging.INFO)
            record_handler.setFormatter(logging.Formatter('%(message)s'))
            record_handler.addFilter(RecordLogFilter())
            root_logger.addHandler(record_handler)


@contextmanager
def log_execution_time(operation: str) -> Generator[None, None, None]:
    """
    Context manager for measuring and logging execution time

    Args:
        operation: Human-readable operation description

    Usage:
        with log_execution_time('metric shutdown'):
            extension.on_shutdown()

    Logs at DEBUG level: "{operation} completed in {elapsed:.3f}s"
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        logging.getLogger(__name__).debug(f"{operation} completed in {elapsed:.3f}s")
