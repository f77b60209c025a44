"""
场景定义模型
"""
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import uuid4
from datetime import datetime

from .config import NodeConfig
from .node_types import NodeType


def _new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class Position:
    """画布坐标"""
    x: float = 0.0
    y: float = 0.0

    def offset(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)


@dataclass
class Node:
    """场景节点"""
    type: NodeType
    name: str
    config: NodeConfig
    position: Position = field(default_factory=Position)
    id: str = field(default_factory=_new_id)
    # 运行状态（不参与序列化）
    has_error: bool = False
    last_output: str = ""


@dataclass(frozen=True)
class Connection:
    """有向连接"""
    source_node_id: str
    target_node_id: str
    label: str = ""
    id: str = field(default_factory=_new_id)

    def touches(self, node_id: str) -> bool:
        return self.source_node_id == node_id or self.target_node_id == node_id


@dataclass
class Scenario:
    """自动化场景"""
    name: str
    id: str = field(default_factory=_new_id)
    nodes: List[Node] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    run_count: int = 0
    last_run_at: Optional[datetime] = None
    is_running: bool = False

    def get_node(self, node_id: str) -> Optional[Node]:
        """根据ID获取节点"""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def find_nodes_by_name(self, name: str) -> List[Node]:
        """按显示名称查找节点（区分大小写）"""
        return [node for node in self.nodes if node.name == name]

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        for connection in self.connections:
            if connection.id == connection_id:
                return connection
        return None

    def get_downstream_nodes(self, node_id: str) -> List[Node]:
        """获取节点的下游节点"""
        downstream = []
        for connection in self.connections:
            if connection.source_node_id == node_id:
                target = self.get_node(connection.target_node_id)
                if target:
                    downstream.append(target)
        return downstream


@dataclass(frozen=True)
class LogEntry:
    """运行日志条目"""
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=_new_id)
