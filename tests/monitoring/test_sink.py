"""
Unit tests for metric sinks (DailyFileSink, LoggerSink, MemorySink)
"""

import json
import logging
from datetime import datetime

import pytest

from srvmetric.monitoring.sink import (
    RECORD_LOGGER_NAME,
    DailyFileSink,
    LoggerSink,
    MemorySink,
    serialize_record,
)


def local_ts(year, month, day, hour=12, minute=0):
    """Unix timestamp for a host-local wall time."""
    return int(datetime(year, month, day, hour, minute).timestamp())


def read_lines(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestSerializeRecord:
    """Test suite for serialize_record()"""

    def test_single_line_json(self, record_factory):
        line = serialize_record(record_factory())

        assert "\n" not in line
        assert json.loads(line)["instance"] == "web-1-4242"

    def test_request_fields_only_with_traffic(self, record_factory):
        quiet = json.loads(serialize_record(record_factory()))
        busy = json.loads(
            serialize_record(
                record_factory(requests=10, requests_elapsed=700.0, qps=1.0, apdex=0.9)
            )
        )

        assert "requests" not in quiet and "apdex" not in quiet
        assert busy["requests"] == 10
        assert busy["apdex"] == 0.9


class TestDailyFileSink:
    """Test suite for DailyFileSink"""

    def test_file_name_template(self, tmp_path):
        sink = DailyFileSink(tmp_path, prefix="api")

        path = sink.path_for(local_ts(2026, 10, 19))

        assert path == tmp_path / "api-metric.2026-10-19.log"

    def test_same_day_appends_to_same_file(self, tmp_path, record_factory):
        sink = DailyFileSink(tmp_path)

        sink.append(record_factory(timestamp=local_ts(2026, 10, 19, 0, 5)))
        sink.append(record_factory(timestamp=local_ts(2026, 10, 19, 23, 55)))
        sink.close()

        files = sorted(tmp_path.iterdir())
        assert [f.name for f in files] == ["srvmetric-metric.2026-10-19.log"]
        assert len(read_lines(files[0])) == 2

    def test_different_days_rotate(self, tmp_path, record_factory):
        sink = DailyFileSink(tmp_path)

        sink.append(record_factory(timestamp=local_ts(2026, 10, 19, 23, 59)))
        sink.append(record_factory(timestamp=local_ts(2026, 10, 20, 0, 1)))
        sink.append(record_factory(timestamp=local_ts(2026, 10, 20, 0, 2)))
        sink.close()

        day1 = tmp_path / "srvmetric-metric.2026-10-19.log"
        day2 = tmp_path / "srvmetric-metric.2026-10-20.log"
        assert len(read_lines(day1)) == 1
        assert len(read_lines(day2)) == 2

    def test_directory_created_lazily(self, tmp_path, record_factory):
        log_dir = tmp_path / "nested" / "metrics"
        sink = DailyFileSink(log_dir)

        assert not log_dir.exists()
        sink.append(record_factory())
        sink.close()

        assert log_dir.is_dir()

    def test_appends_to_existing_file(self, tmp_path, record_factory):
        record = record_factory(timestamp=local_ts(2026, 10, 19))
        first = DailyFileSink(tmp_path)
        first.append(record)
        first.close()

        second = DailyFileSink(tmp_path)
        second.append(record)
        second.close()

        assert len(read_lines(first.path_for(record.timestamp))) == 2

    def test_written_fields(self, tmp_path, record_factory):
        sink = DailyFileSink(tmp_path)
        record = record_factory(requests=4, requests_elapsed=120.0, qps=0.4, apdex=1.0)

        sink.append(record)
        sink.close()

        [line] = read_lines(sink.path_for(record.timestamp))
        assert line == record.to_dict()

    def test_write_failure_logged_not_raised(self, tmp_path, record_factory, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        sink = DailyFileSink(blocker / "metrics")

        with caplog.at_level(logging.WARNING):
            sink.append(record_factory())

        assert "Metric record dropped" in caplog.text

    def test_recovers_after_failure(self, tmp_path, record_factory):
        blocker = tmp_path / "metrics"
        blocker.write_text("not a directory")
        sink = DailyFileSink(blocker)
        sink.append(record_factory())

        blocker.unlink()
        sink.append(record_factory())
        sink.close()

        assert len(read_lines(sink.path_for(record_factory().timestamp))) == 1

    def test_size_rollover(self, tmp_path, record_factory):
        line_size = len(serialize_record(record_factory())) + 1
        # Rolls over once the next line would reach max_bytes
        sink = DailyFileSink(tmp_path, max_bytes=line_size * 2 + 1, backup_count=2)
        record = record_factory()
        path = sink.path_for(record.timestamp)

        for _ in range(5):
            sink.append(record)
        sink.close()

        assert len(read_lines(path)) == 1
        assert len(read_lines(path.with_name(path.name + ".1"))) == 2
        assert len(read_lines(path.with_name(path.name + ".2"))) == 2
        assert not path.with_name(path.name + ".3").exists()

    def test_close_idempotent(self, tmp_path, record_factory):
        sink = DailyFileSink(tmp_path)
        sink.append(record_factory())

        sink.close()
        sink.close()

    def test_no_rollover_without_max_bytes(self, tmp_path, record_factory):
        sink = DailyFileSink(tmp_path, max_bytes=0)
        record = record_factory()

        for _ in range(20):
            sink.append(record)
        sink.close()

        assert len(read_lines(sink.path_for(record.timestamp))) == 20
        assert len(list(tmp_path.iterdir())) == 1

    def test_unopenable_day_file_logged_not_raised(self, tmp_path, record_factory, caplog):
        record = record_factory()
        sink = DailyFileSink(tmp_path)
        sink.path_for(record.timestamp).mkdir()

        with caplog.at_level(logging.WARNING):
            sink.append(record)
        sink.close()

        assert "Metric record dropped" in caplog.text

    def test_lines_not_propagated_to_root_logger(self, tmp_path, record_factory, caplog):
        sink = DailyFileSink(tmp_path)

        with caplog.at_level(logging.INFO):
            sink.append(record_factory())
        sink.close()

        assert serialize_record(record_factory()) not in caplog.text


class TestLoggerSink:
    """Test suite for LoggerSink"""

    def test_emits_json_on_record_logger(self, record_factory, caplog):
        sink = LoggerSink()
        record = record_factory(requests=1, requests_elapsed=5.0, qps=0.1, apdex=1.0)

        with caplog.at_level(logging.INFO, logger=RECORD_LOGGER_NAME):
            sink.append(record)

        [log_record] = [r for r in caplog.records if r.name == RECORD_LOGGER_NAME]
        assert json.loads(log_record.getMessage()) == record.to_dict()


class TestMemorySink:
    """Test suite for MemorySink"""

    def test_keeps_records(self, record_factory):
        sink = MemorySink()
        record = record_factory()

        sink.append(record)

        assert sink.records == [record]

    def test_bounded(self, record_factory):
        sink = MemorySink(maxlen=2)
        for ts in (1, 2, 3):
            sink.append(record_factory(timestamp=ts))

        assert [r.timestamp for r in sink.records] == [2, 3]

    def test_clear(self, record_factory):
        sink = MemorySink()
        sink.append(record_factory())

        sink.clear()

        assert sink.records == []
