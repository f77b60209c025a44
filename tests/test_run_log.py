"""
运行日志测试
"""
import pytest

from scenario_engine.core.run_log import RunLog
from scenario_engine.integrations.event_bus import LOG_APPENDED, LOG_CLEARED


class TestRunLog:
    """运行日志测试类"""

    def test_newest_entry_first(self, run_log):
        run_log.append("first")
        run_log.append("second")
        assert run_log[0].message == "second"
        assert run_log.latest.message == "second"
        assert run_log.messages() == ["second", "first"]

    def test_capacity_is_bounded(self, run_log):
        """长度不超过 100，最新条目始终在索引 0"""
        for i in range(250):
            entry = run_log.append(f"message {i}")
            assert len(run_log) <= 100
            assert run_log[0] is entry

        assert len(run_log) == 100
        assert run_log[0].message == "message 249"
        assert run_log[-1].message == "message 150"

    def test_custom_capacity(self):
        log = RunLog(capacity=3)
        for i in range(5):
            log.append(str(i))
        assert log.messages() == ["4", "3", "2"]

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            RunLog(capacity=0)

    def test_clear(self, run_log):
        run_log.append("x")
        run_log.clear()
        assert len(run_log) == 0
        assert run_log.latest is None
        assert run_log.entries == []

    def test_entries_are_timestamped(self, run_log):
        entry = run_log.append("x")
        assert entry.timestamp is not None

    def test_publishes_events(self, event_bus):
        log = RunLog(event_bus=event_bus)
        topics = []
        event_bus.subscribe(LOG_APPENDED, lambda e: topics.append((e.topic, e.payload.message)))
        event_bus.subscribe(LOG_CLEARED, lambda e: topics.append((e.topic, None)))

        log.append("hello")
        log.clear()

        assert topics == [(LOG_APPENDED, "hello"), (LOG_CLEARED, None)]
