"""
Scenario Engine - 自动化场景的工作流图与执行调度引擎
"""

__version__ = "0.1.0"

from .config import EngineSettings, load_settings, configure_logging
from .core.registry import ScenarioRegistry
from .core.graph import WorkflowGraph
from .core.dispatcher import ExecutionDispatcher
from .core.run_log import RunLog
from .core.references import VariableReferenceParser
from .core.parser import ScenarioParser
from .models.catalog import NodeTypeCatalog, catalog
from .models.node_types import NodeType, NodeCategory
from .models.scenario import Scenario, Node, Connection, Position, LogEntry
from .integrations.event_bus import EventBus
from .integrations.execution_service import ExecutionServiceClient

__all__ = [
    "EngineSettings",
    "load_settings",
    "configure_logging",
    "ScenarioRegistry",
    "WorkflowGraph",
    "ExecutionDispatcher",
    "RunLog",
    "VariableReferenceParser",
    "ScenarioParser",
    "NodeTypeCatalog",
    "catalog",
    "NodeType",
    "NodeCategory",
    "Scenario",
    "Node",
    "Connection",
    "Position",
    "LogEntry",
    "EventBus",
    "ExecutionServiceClient"
]
