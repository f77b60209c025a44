"""
场景注册表

持有全部场景、当前活动场景以及全局运行/日志状态，并组合图操作与执行调度。
由调用方显式构造并传入，不是全局单例。
"""
import logging
from typing import Iterable, List, Optional, Union

from ..config import EngineSettings
from ..exceptions import NoActiveScenarioError
from ..integrations.event_bus import (
    EventBus, SCENARIO_CREATED, SCENARIO_DELETED, SCENARIO_ACTIVATED
)
from ..integrations.execution_service import ExecutionServiceClient
from ..models.catalog import NodeTypeCatalog, catalog as default_catalog
from ..models.execution import NodeResultDTO, ScenarioExecuteResponse
from ..models.node_types import NodeType
from ..models.scenario import Connection, Node, Position, Scenario
from .dispatcher import ExecutionDispatcher
from .graph import WorkflowGraph
from .run_log import RunLog
from .validation import ConnectionValidator


logger = logging.getLogger(__name__)

DEFAULT_SCENARIO_NAME = "My First Scenario"


class ScenarioRegistry:
    """场景注册表"""

    def __init__(
        self,
        settings: EngineSettings = None,
        client: ExecutionServiceClient = None,
        event_bus: EventBus = None,
        run_log: RunLog = None,
        dispatcher: ExecutionDispatcher = None,
        validators: Iterable[ConnectionValidator] = None,
        catalog: NodeTypeCatalog = None,
        default_scenario_name: str = DEFAULT_SCENARIO_NAME
    ):
        self.settings = settings or EngineSettings()
        self.event_bus = event_bus or EventBus()
        if dispatcher is not None:
            run_log = run_log or dispatcher.run_log
        self.run_log = run_log or RunLog(self.settings.log_capacity, self.event_bus)
        self.dispatcher = dispatcher or ExecutionDispatcher(
            client=client,
            run_log=self.run_log,
            event_bus=self.event_bus,
            settings=self.settings
        )
        self.validators: List[ConnectionValidator] = list(validators or [])
        self.catalog = catalog or default_catalog

        self.scenarios: List[Scenario] = []
        self.active_scenario: Optional[Scenario] = None

        # 初始化时创建一个默认场景
        self.active_scenario = self.create(default_scenario_name)

    @property
    def is_running(self) -> bool:
        return self.dispatcher.is_running

    @property
    def logs(self) -> RunLog:
        return self.run_log

    # 场景管理

    def create(self, name: str) -> Scenario:
        """创建场景（不会自动设为活动场景）"""
        scenario = Scenario(name=name)
        self.scenarios.append(scenario)
        logger.info(f"Created scenario: {scenario.id} ({name})")
        self.event_bus.publish(SCENARIO_CREATED, scenario)
        return scenario

    def delete(self, scenario: Union[Scenario, str]):
        """删除场景；若删除的是活动场景，则回退到剩余的第一个场景（或无）"""
        scenario_id = scenario if isinstance(scenario, str) else scenario.id
        target = self.get(scenario_id)
        if target is None:
            return

        self.scenarios = [s for s in self.scenarios if s.id != scenario_id]
        logger.info(f"Deleted scenario: {scenario_id}")
        self.event_bus.publish(SCENARIO_DELETED, target)

        if self.active_scenario is not None and self.active_scenario.id == scenario_id:
            self.active_scenario = self.scenarios[0] if self.scenarios else None
            self.event_bus.publish(SCENARIO_ACTIVATED, self.active_scenario)

    def get(self, scenario_id: str) -> Optional[Scenario]:
        for scenario in self.scenarios:
            if scenario.id == scenario_id:
                return scenario
        return None

    def activate(self, scenario: Union[Scenario, str]) -> Scenario:
        """设置活动场景"""
        scenario_id = scenario if isinstance(scenario, str) else scenario.id
        target = self.get(scenario_id)
        if target is None:
            raise NoActiveScenarioError(f"Scenario not registered: {scenario_id}")

        self.active_scenario = target
        self.event_bus.publish(SCENARIO_ACTIVATED, target)
        return target

    def graph(self, scenario: Scenario = None) -> WorkflowGraph:
        """获取场景的图视图，默认是活动场景"""
        scenario = scenario or self._require_active()
        return WorkflowGraph(
            scenario,
            event_bus=self.event_bus,
            validators=self.validators,
            catalog=self.catalog
        )

    def _require_active(self) -> Scenario:
        if self.active_scenario is None:
            raise NoActiveScenarioError("No active scenario")
        return self.active_scenario

    # 活动场景上的图操作

    def add_node(self, node_type: Union[NodeType, str], position: Position = None) -> Node:
        return self.graph().add_node(node_type, position)

    def remove_node(self, node_id: str) -> Optional[Node]:
        return self.graph().remove_node(node_id)

    def connect(self, source_id: str, target_id: str, label: str = "") -> Connection:
        return self.graph().connect(source_id, target_id, label)

    def disconnect(self, connection_id: str) -> Optional[Connection]:
        return self.graph().disconnect(connection_id)

    def duplicate_node(self, node_id: str) -> Node:
        return self.graph().duplicate_node(node_id)

    # 执行

    async def run(self, scenario: Scenario = None) -> Optional[ScenarioExecuteResponse]:
        """运行场景，默认是活动场景"""
        return await self.dispatcher.run_scenario(scenario or self._require_active())

    async def test_node(self, node: Node, scenario: Scenario = None) -> Optional[NodeResultDTO]:
        return await self.dispatcher.test_node(node, scenario or self.active_scenario)

    # 日志

    def add_log(self, message: str):
        self.run_log.append(message)

    def clear_logs(self):
        self.run_log.clear()

    async def aclose(self):
        """关闭执行服务客户端"""
        await self.dispatcher.client.aclose()
