"""
事件总线 - 场景状态变更通知
"""
import asyncio
import inspect
from typing import Dict, Any, List, Callable
from dataclasses import dataclass, field
from datetime import datetime
import logging


logger = logging.getLogger(__name__)


# 主题
SCENARIO_CREATED = "scenario.created"
SCENARIO_DELETED = "scenario.deleted"
SCENARIO_ACTIVATED = "scenario.activated"
NODE_ADDED = "node.added"
NODE_REMOVED = "node.removed"
NODE_STATE_CHANGED = "node.state_changed"
CONNECTION_ADDED = "connection.added"
CONNECTION_REMOVED = "connection.removed"
RUN_STARTED = "run.started"
RUN_FINISHED = "run.finished"
LOG_APPENDED = "log.appended"
LOG_CLEARED = "log.cleared"

# 通配主题，订阅后接收全部事件
ALL_TOPICS = "*"


@dataclass
class Event:
    """事件对象"""
    topic: str
    payload: Any
    timestamp: datetime = field(default_factory=datetime.utcnow)


class EventBus:
    """
    同步事件总线

    状态变更发生在发起调用的同一执行上下文中，发布时依次通知订阅者。
    协程订阅者在有运行中的事件循环时以任务形式调度，否则被跳过并记录警告。
    单个订阅者抛出的异常只记录日志，不影响其他订阅者和发布方。
    """

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = {}
        self._pending: set = set()

    def publish(self, topic: str, payload: Any = None):
        """发布事件"""
        event = Event(topic=topic, payload=payload)

        subscribers = list(self.subscribers.get(topic, []))
        subscribers.extend(self.subscribers.get(ALL_TOPICS, []))

        for subscriber in subscribers:
            self._notify_subscriber(subscriber, event)

        logger.debug(f"Published event to topic '{topic}' with {len(subscribers)} subscribers")

    def subscribe(self, topic: str, handler: Callable) -> Callable[[], None]:
        """订阅事件，返回取消订阅函数"""
        self.subscribers.setdefault(topic, []).append(handler)
        logger.debug(f"Subscribed to topic '{topic}'")

        def unsubscribe():
            self.unsubscribe(topic, handler)

        return unsubscribe

    def unsubscribe(self, topic: str, handler: Callable):
        """取消订阅"""
        handlers = self.subscribers.get(topic)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self.subscribers[topic]
            logger.debug(f"Unsubscribed from topic '{topic}'")

    def _notify_subscriber(self, subscriber: Callable, event: Event):
        """通知订阅者"""
        try:
            if inspect.iscoroutinefunction(subscriber):
                self._schedule(subscriber, event)
            else:
                subscriber(event)
        except Exception as e:
            logger.error(f"Error notifying subscriber for topic '{event.topic}': {e}", exc_info=True)

    def _schedule(self, subscriber: Callable, event: Event):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"No running event loop; skipped async subscriber for topic '{event.topic}'"
            )
            return

        task = loop.create_task(subscriber(event))
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task):
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async subscriber failed: {task.exception()}")

    async def drain(self):
        """等待所有已调度的协程订阅者完成"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
