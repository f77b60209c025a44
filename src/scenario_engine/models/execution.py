"""
执行模型与执行服务线上协议（JSON，snake_case 键）
"""
import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .config import to_wire
from .scenario import Connection, Node, Scenario


class DispatchState(Enum):
    """调度状态"""
    IDLE = "idle"
    DISPATCHING = "dispatching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# 合法状态转换
DISPATCH_TRANSITIONS = {
    DispatchState.IDLE: {DispatchState.DISPATCHING},
    DispatchState.DISPATCHING: {DispatchState.SUCCEEDED, DispatchState.FAILED},
    DispatchState.SUCCEEDED: {DispatchState.DISPATCHING},
    DispatchState.FAILED: {DispatchState.DISPATCHING},
}


class NodeDTO(BaseModel):
    """节点（线上格式）"""
    id: str = Field(..., description="节点ID")
    node_type: str = Field(..., description="节点类型原始标识")
    name: str = Field(..., description="节点名称")
    config: Dict[str, Any] = Field(default_factory=dict, description="扁平配置记录")

    @classmethod
    def from_node(cls, node: Node) -> "NodeDTO":
        return cls(
            id=node.id,
            node_type=node.type.value,
            name=node.name,
            config=to_wire(node.type, node.config),
        )


class ConnectionDTO(BaseModel):
    """连接（线上格式）"""
    id: str
    source_node_id: str
    target_node_id: str

    @classmethod
    def from_connection(cls, connection: Connection) -> "ConnectionDTO":
        return cls(
            id=connection.id,
            source_node_id=connection.source_node_id,
            target_node_id=connection.target_node_id,
        )


class ScenarioExecuteRequest(BaseModel):
    """POST /api/scenario/execute 请求"""
    id: str
    name: str
    nodes: List[NodeDTO] = Field(default_factory=list)
    connections: List[ConnectionDTO] = Field(default_factory=list)

    @classmethod
    def from_scenario(cls, scenario: Scenario) -> "ScenarioExecuteRequest":
        return cls(
            id=scenario.id,
            name=scenario.name,
            nodes=[NodeDTO.from_node(node) for node in scenario.nodes],
            connections=[ConnectionDTO.from_connection(c) for c in scenario.connections],
        )


class NodeExecuteRequest(BaseModel):
    """POST /api/scenario/node/execute 请求"""
    node: NodeDTO
    input: Optional[Any] = None


class NodeResultDTO(BaseModel):
    """单个节点的执行结果"""
    node_id: str
    success: bool
    output: Optional[Any] = None
    error: Optional[str] = None


class ScenarioExecuteResponse(BaseModel):
    """POST /api/scenario/execute 成功响应"""
    success: bool
    logs: List[str]
    node_results: List[NodeResultDTO]


def render_output(output: Any) -> str:
    """将节点输出渲染为便于阅读的字符串"""
    try:
        return json.dumps(output, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(output)
