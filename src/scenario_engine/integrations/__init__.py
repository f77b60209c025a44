"""External system integrations"""

from .event_bus import EventBus, Event
from .execution_service import ExecutionServiceClient

__all__ = [
    "EventBus",
    "Event",
    "ExecutionServiceClient"
]
