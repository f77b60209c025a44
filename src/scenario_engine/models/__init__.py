"""Scenario, node and wire models"""

from .node_types import NodeType, NodeCategory
from .config import (
    NodeConfig, BasicConfig, ScheduleConfig, WebhookConfig, EmailConfig,
    LineConfig, TelegramConfig, HttpConfig, CodeConfig, TransformConfig,
    FilterConfig, DelayConfig, DatabaseConfig, BroadcastConfig, AIConfig,
    GoogleSheetsConfig, to_wire, from_wire
)
from .catalog import NodeTypeCatalog, NodeDisplay, catalog
from .scenario import Scenario, Node, Connection, Position, LogEntry
from .execution import (
    DispatchState, NodeDTO, ConnectionDTO, ScenarioExecuteRequest,
    NodeExecuteRequest, NodeResultDTO, ScenarioExecuteResponse
)

__all__ = [
    "NodeType",
    "NodeCategory",
    "NodeConfig",
    "BasicConfig",
    "ScheduleConfig",
    "WebhookConfig",
    "EmailConfig",
    "LineConfig",
    "TelegramConfig",
    "HttpConfig",
    "CodeConfig",
    "TransformConfig",
    "FilterConfig",
    "DelayConfig",
    "DatabaseConfig",
    "BroadcastConfig",
    "AIConfig",
    "GoogleSheetsConfig",
    "to_wire",
    "from_wire",
    "NodeTypeCatalog",
    "NodeDisplay",
    "catalog",
    "Scenario",
    "Node",
    "Connection",
    "Position",
    "LogEntry",
    "DispatchState",
    "NodeDTO",
    "ConnectionDTO",
    "ScenarioExecuteRequest",
    "NodeExecuteRequest",
    "NodeResultDTO",
    "ScenarioExecuteResponse"
]
