"""
执行调度器

将场景（或单个节点）序列化后发送给执行服务，并把响应写回节点状态与运行日志。

状态机：IDLE -> DISPATCHING -> (SUCCEEDED | FAILED)，没有取消状态。
重叠的运行共享 DISPATCHING 状态，最后一个完成的运行决定终态。
执行服务错误（传输、非 200、解码）只写入运行日志，不会抛给调用方，也不会自动重试；
无论运行如何结束，is_running 都会被复位。
"""
import logging
from datetime import datetime
from typing import Dict, Optional

from ..config import EngineSettings
from ..exceptions import ExecutionServiceError, StateTransitionError
from ..integrations.event_bus import EventBus, NODE_STATE_CHANGED, RUN_STARTED, RUN_FINISHED
from ..integrations.execution_service import ExecutionServiceClient
from ..models.execution import (
    DISPATCH_TRANSITIONS, DispatchState, NodeDTO, NodeExecuteRequest, NodeResultDTO,
    ScenarioExecuteRequest, ScenarioExecuteResponse, render_output
)
from ..models.scenario import Node, Scenario
from .run_log import RunLog
from .validation import validate_scenario


logger = logging.getLogger(__name__)


class ExecutionDispatcher:
    """
    执行调度器

    注意：run_scenario 与 test_node 之间没有互斥。测试节点不会设置 is_running，
    因此可以与整场运行同时进行；如需禁止，设置 allow_test_during_run=False。
    同一场景再次调用 run_scenario 会发出第二个并发请求，不做限制；
    is_running 在所有进行中的运行都结束后才变为 False。
    """

    def __init__(
        self,
        client: ExecutionServiceClient = None,
        run_log: RunLog = None,
        event_bus: EventBus = None,
        settings: EngineSettings = None
    ):
        self.settings = settings or EngineSettings()
        self.client = client or ExecutionServiceClient(
            base_url=self.settings.service_url,
            timeout=self.settings.request_timeout
        )
        self.event_bus = event_bus
        self.run_log = run_log or RunLog(self.settings.log_capacity, event_bus)
        self.state = DispatchState.IDLE
        # 场景ID -> 进行中的运行数
        self._in_flight: Dict[str, int] = {}

    @property
    def is_running(self) -> bool:
        return bool(self._in_flight)

    def _transition(self, target: DispatchState):
        if target not in DISPATCH_TRANSITIONS[self.state]:
            raise StateTransitionError(self.state.value, target.value)
        self.state = target

    def _begin_run(self, scenario: Scenario):
        if self._in_flight:
            logger.warning(f"Scenario run requested while another run is in flight: {scenario.id}")
        else:
            self._transition(DispatchState.DISPATCHING)

        self._in_flight[scenario.id] = self._in_flight.get(scenario.id, 0) + 1
        scenario.is_running = True
        self._publish(RUN_STARTED, {"scenario_id": scenario.id, "state": self.state.value})

    def _finish_run(self, scenario: Scenario, outcome: DispatchState):
        remaining = self._in_flight.get(scenario.id, 1) - 1
        if remaining > 0:
            self._in_flight[scenario.id] = remaining
        else:
            self._in_flight.pop(scenario.id, None)
            scenario.is_running = False

        if not self._in_flight:
            self._transition(outcome)
        self._publish(RUN_FINISHED, {"scenario_id": scenario.id, "state": self.state.value})

    async def run_scenario(self, scenario: Scenario) -> Optional[ScenarioExecuteResponse]:
        """
        执行整个场景

        Returns:
            执行服务的响应；请求失败时返回 None（错误已写入运行日志）
        """
        self._begin_run(scenario)
        outcome = DispatchState.FAILED
        try:
            self.run_log.append(f"Starting scenario: {scenario.name}...")

            if self.settings.validate_before_run:
                for problem in validate_scenario(scenario):
                    self.run_log.append(f"Warning: {problem}")

            request = ScenarioExecuteRequest.from_scenario(scenario)
            logger.info(
                f"Dispatching scenario {scenario.id} with {len(request.nodes)} node(s) "
                f"and {len(request.connections)} connection(s)"
            )

            try:
                response = await self.client.execute_scenario(request)
            except ExecutionServiceError as e:
                logger.error(f"Scenario dispatch failed: {scenario.id}: {e}")
                self.run_log.append(_error_message("Backend execution failed", e))
                return None

            for line in response.logs:
                self.run_log.append(line)

            for result in response.node_results:
                node = scenario.get_node(result.node_id)
                if node is None:
                    logger.warning(f"Result for unknown node {result.node_id} ignored")
                    continue
                self._apply_result(scenario, node, result)

            scenario.run_count += 1
            scenario.last_run_at = datetime.now()

            if response.success:
                self.run_log.append("Scenario completed successfully")
                outcome = DispatchState.SUCCEEDED
            else:
                self.run_log.append("Scenario failed")
            return response
        finally:
            self._finish_run(scenario, outcome)

    async def test_node(self, node: Node, scenario: Scenario = None) -> Optional[NodeResultDTO]:
        """
        单独测试一个节点（输入为空）

        只更新该节点的 has_error / last_output，不涉及场景级 is_running。
        """
        if self.is_running and not self.settings.allow_test_during_run:
            self.run_log.append(f"Cannot test node while a scenario is running: {node.name}")
            return None

        self.run_log.append(f"Testing node: {node.name}...")
        request = NodeExecuteRequest(node=NodeDTO.from_node(node), input=None)

        try:
            result = await self.client.execute_node(request)
        except ExecutionServiceError as e:
            logger.error(f"Node test failed: {node.id}: {e}")
            self.run_log.append(_error_message("Test failed", e))
            return None

        output = self._apply_result(scenario, node, result)
        if output is not None:
            self.run_log.append(output)

        if result.success:
            self.run_log.append("Test passed")
        else:
            self.run_log.append(f"Test failed: {result.error or ''}")
        return result

    def _apply_result(self, scenario: Optional[Scenario], node: Node, result: NodeResultDTO) -> Optional[str]:
        """把单个节点的结果写回节点状态，返回渲染后的输出"""
        node.has_error = not result.success
        rendered = None
        if result.output is not None:
            rendered = render_output(result.output)
            node.last_output = rendered

        self._publish(NODE_STATE_CHANGED, {
            "scenario_id": scenario.id if scenario else None,
            "item": node,
        })
        return rendered

    def _publish(self, topic: str, payload):
        if self.event_bus:
            self.event_bus.publish(topic, payload)


def _error_message(prefix: str, error: ExecutionServiceError) -> str:
    # 非 200 响应的消息即原始响应体
    return f"{prefix}: {error}"
