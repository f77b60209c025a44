"""
运行日志 - 有界、最新在前的事件缓冲
"""
from collections import deque
from typing import Iterator, List, Optional

from ..models.scenario import LogEntry
from ..integrations.event_bus import EventBus, LOG_APPENDED, LOG_CLEARED


DEFAULT_CAPACITY = 100


class RunLog:
    """运行日志，只在进程生命周期内保存"""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, event_bus: EventBus = None):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.event_bus = event_bus
        # 左端为最新，超出容量时从右端淘汰最旧的条目
        self._entries: deque = deque(maxlen=capacity)

    def append(self, message: str) -> LogEntry:
        """在最前面插入一条日志"""
        entry = LogEntry(message=message)
        self._entries.appendleft(entry)
        if self.event_bus:
            self.event_bus.publish(LOG_APPENDED, entry)
        return entry

    def clear(self):
        """清空日志"""
        self._entries.clear()
        if self.event_bus:
            self.event_bus.publish(LOG_CLEARED)

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    @property
    def latest(self) -> Optional[LogEntry]:
        return self._entries[0] if self._entries else None

    def messages(self) -> List[str]:
        return [entry.message for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> LogEntry:
        return self._entries[index]

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(list(self._entries))
