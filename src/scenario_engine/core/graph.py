"""
工作流图 - 场景中节点与连接的增删改
"""
import copy
import logging
from typing import Iterable, List, Optional, Union

from ..exceptions import NodeNotFoundError
from ..integrations.event_bus import (
    EventBus, NODE_ADDED, NODE_REMOVED, CONNECTION_ADDED, CONNECTION_REMOVED
)
from ..models.catalog import NodeTypeCatalog, catalog as default_catalog
from ..models.node_types import NodeType
from ..models.scenario import Connection, Node, Position, Scenario
from .validation import ConnectionValidator


logger = logging.getLogger(__name__)

DUPLICATE_OFFSET = 50.0
DUPLICATE_SUFFIX = " Copy"


class WorkflowGraph:
    """
    场景的可变图视图

    Args:
        scenario: 被操作的场景
        event_bus: 可选的事件总线，变更后发布通知
        validators: 连接校验器列表，默认为空（不限制自环、重复和环）
        catalog: 节点类型目录
    """

    def __init__(
        self,
        scenario: Scenario,
        event_bus: EventBus = None,
        validators: Iterable[ConnectionValidator] = None,
        catalog: NodeTypeCatalog = None
    ):
        self.scenario = scenario
        self.event_bus = event_bus
        self.validators: List[ConnectionValidator] = list(validators or [])
        self.catalog = catalog or default_catalog

    @property
    def nodes(self) -> List[Node]:
        return self.scenario.nodes

    @property
    def connections(self) -> List[Connection]:
        return self.scenario.connections

    def add_node(self, node_type: Union[NodeType, str], position: Position = None) -> Node:
        """添加节点，配置取该类型的默认值"""
        resolved = self.catalog.resolve(node_type)
        node = Node(
            type=resolved,
            name=resolved.value,
            config=self.catalog.default_config(resolved),
            position=position or Position(),
        )
        self.scenario.nodes.append(node)

        logger.debug(f"Added node {node.id} ({resolved.value}) to scenario {self.scenario.id}")
        self._publish(NODE_ADDED, node)
        return node

    def remove_node(self, node_id: str) -> Optional[Node]:
        """删除节点及其所有连接；节点不存在时不做任何操作"""
        node = self.scenario.get_node(node_id)
        if node is None:
            return None

        self.scenario.nodes = [n for n in self.scenario.nodes if n.id != node_id]

        removed = [c for c in self.scenario.connections if c.touches(node_id)]
        self.scenario.connections = [c for c in self.scenario.connections if not c.touches(node_id)]

        logger.debug(
            f"Removed node {node_id} and {len(removed)} connection(s) from scenario {self.scenario.id}"
        )
        for connection in removed:
            self._publish(CONNECTION_REMOVED, connection)
        self._publish(NODE_REMOVED, node)
        return node

    def connect(self, source_id: str, target_id: str, label: str = "") -> Connection:
        """添加连接，两端节点必须存在于本场景"""
        for node_id in (source_id, target_id):
            if self.scenario.get_node(node_id) is None:
                raise NodeNotFoundError(node_id, f"not in scenario '{self.scenario.name}'")

        for validator in self.validators:
            validator(self.scenario, source_id, target_id)

        connection = Connection(source_node_id=source_id, target_node_id=target_id, label=label)
        self.scenario.connections.append(connection)

        self._publish(CONNECTION_ADDED, connection)
        return connection

    def disconnect(self, connection_id: str) -> Optional[Connection]:
        """删除连接；不存在时不做任何操作"""
        connection = self.scenario.get_connection(connection_id)
        if connection is None:
            return None

        self.scenario.connections = [c for c in self.scenario.connections if c.id != connection_id]
        self._publish(CONNECTION_REMOVED, connection)
        return connection

    def duplicate_node(self, node_id: str) -> Node:
        """复制节点（配置按值复制，不复制连接）"""
        original = self.scenario.get_node(node_id)
        if original is None:
            raise NodeNotFoundError(node_id)

        node = Node(
            type=original.type,
            name=f"{original.name}{DUPLICATE_SUFFIX}",
            config=copy.deepcopy(original.config),
            position=original.position.offset(DUPLICATE_OFFSET, DUPLICATE_OFFSET),
        )
        self.scenario.nodes.append(node)

        self._publish(NODE_ADDED, node)
        return node

    def _publish(self, topic: str, payload):
        if self.event_bus:
            self.event_bus.publish(topic, {"scenario_id": self.scenario.id, "item": payload})
