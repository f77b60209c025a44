"""Core scenario engine components"""

from .graph import WorkflowGraph
from .references import VariableReferenceParser
from .dispatcher import ExecutionDispatcher
from .run_log import RunLog
from .registry import ScenarioRegistry
from .parser import ScenarioParser
from .validation import (
    reject_self_loops, reject_duplicates, reject_cycles, validate_scenario
)

__all__ = [
    "WorkflowGraph",
    "VariableReferenceParser",
    "ExecutionDispatcher",
    "RunLog",
    "ScenarioRegistry",
    "ScenarioParser",
    "reject_self_loops",
    "reject_duplicates",
    "reject_cycles",
    "validate_scenario"
]
