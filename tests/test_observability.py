from __future__ import annotations

import json
import logging
import threading

from polyshell.util.logging import normalize_level
from polyshell.util.observability import EventLogger, MetricsCollector


def test_metrics_collector_snapshot() -> None:
    metrics = MetricsCollector()
    metrics.increment("commands.completed", 2)
    metrics.record_duration("command", 1.5)
    metrics.record_duration("command", 0.5)

    snapshot = metrics.snapshot()

    assert snapshot["counters"]["commands.completed"] == 2
    assert snapshot["durations"]["command"] == {
        "count": 2.0,
        "total_s": 2.0,
        "avg_s": 1.0,
        "max_s": 1.5,
    }


def test_metrics_collector_is_thread_safe() -> None:
    metrics = MetricsCollector()

    def work() -> None:
        for _ in range(1000):
            metrics.increment("commands.completed")

    threads = [threading.Thread(target=work) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert metrics.snapshot()["counters"]["commands.completed"] == 4000


def test_event_logger_emits_json(caplog) -> None:
    logger = EventLogger("test.events", context={"host": "linux"})
    caplog.set_level(logging.INFO, logger="test.events")

    logger.log("command.finished", {"exit_code": 0})

    assert caplog.records
    payload = json.loads(caplog.records[-1].message)
    assert payload["event_type"] == "command.finished"
    assert payload["payload"]["exit_code"] == 0
    assert payload["context"] == {"host": "linux"}


def test_event_logger_skips_disabled_levels(caplog) -> None:
    logger = EventLogger("test.quiet")
    caplog.set_level(logging.INFO, logger="test.quiet")

    logger.log("command.started", {"command": ["true"]}, level="DEBUG")

    assert not [record for record in caplog.records if record.name == "test.quiet"]


def test_normalize_level_falls_back_to_info() -> None:
    assert normalize_level(" debug ") == logging.DEBUG
    assert normalize_level("verbose") == logging.INFO
