"""
执行调度器测试
"""
import asyncio

import httpx
import pytest

from scenario_engine.config import EngineSettings
from scenario_engine.core.dispatcher import ExecutionDispatcher
from scenario_engine.exceptions import StateTransitionError
from scenario_engine.integrations.event_bus import NODE_STATE_CHANGED, RUN_FINISHED, RUN_STARTED
from scenario_engine.integrations.execution_service import (
    NODE_EXECUTE_PATH as NODE_PATH, SCENARIO_EXECUTE_PATH as SCENARIO_PATH, ExecutionServiceClient
)
from scenario_engine.models.config import EmailConfig
from scenario_engine.models.execution import DispatchState
from scenario_engine.models.node_types import NodeType
from scenario_engine.models.scenario import Scenario


SERVICE_URL = "http://execution.test"


def snapshot(scenario):
    return [(n.id, n.has_error, n.last_output) for n in scenario.nodes]


class HeldScenarioService:
    """模拟执行服务：第一个场景请求在 release 之前保持挂起"""

    def __init__(self, scenario_body=None, node_body=None):
        self.scenario_body = scenario_body or {"success": True, "logs": [], "node_results": []}
        self.node_body = node_body or {"node_id": "unknown", "success": True}
        self.requests = []
        self.arrived = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == SCENARIO_PATH:
            if not self.arrived.is_set():
                self.arrived.set()
                await self.release.wait()
            return httpx.Response(200, json=self.scenario_body)
        return httpx.Response(200, json=self.node_body)

    def paths(self):
        return [request.url.path for request in self.requests]


def held_dispatcher(service: HeldScenarioService, run_log, **settings) -> ExecutionDispatcher:
    return ExecutionDispatcher(
        client=ExecutionServiceClient(base_url=SERVICE_URL, transport=httpx.MockTransport(service)),
        run_log=run_log,
        settings=EngineSettings(service_url=SERVICE_URL, **settings)
    )


class TestRunScenario:
    """整场运行测试类"""

    @pytest.mark.asyncio
    async def test_successful_run_updates_nodes(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        """A -> B，服务返回 200"""
        graph, a, b = trigger_http_graph
        service = fake_service(body={
            "success": True,
            "logs": ["ok"],
            "node_results": [{"node_id": b.id, "success": True, "output": {"status": 200}}]
        })
        dispatcher = make_dispatcher(service)

        response = await dispatcher.run_scenario(graph.scenario)

        assert response.success is True
        assert b.has_error is False
        assert '"status"' in b.last_output
        # 未出现在结果中的节点保持不变
        assert a.has_error is False
        assert a.last_output == ""

        assert run_log[0].message == "Scenario completed successfully"
        assert "ok" in run_log.messages()
        assert run_log.messages()[-1] == "Starting scenario: Test Scenario..."

        assert dispatcher.is_running is False
        assert graph.scenario.is_running is False
        assert dispatcher.state is DispatchState.SUCCEEDED
        assert graph.scenario.run_count == 1
        assert graph.scenario.last_run_at is not None

    @pytest.mark.asyncio
    async def test_request_payload(self, trigger_http_graph, fake_service, make_dispatcher):
        """请求使用 snake_case 键和原始类型标识"""
        graph, a, b = trigger_http_graph
        service = fake_service(body={"success": True, "logs": [], "node_results": []})

        await make_dispatcher(service).run_scenario(graph.scenario)

        request = service.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/scenario/execute"

        payload = service.last_payload
        assert payload["id"] == graph.scenario.id
        assert payload["name"] == "Test Scenario"
        assert [n["node_type"] for n in payload["nodes"]] == ["Trigger", "HTTP"]
        assert payload["nodes"][1]["config"]["http_url"] == "https://api.example.com"
        assert payload["nodes"][1]["config"]["smtp_port"] == 587
        assert payload["connections"] == [{
            "id": graph.connections[0].id,
            "source_node_id": a.id,
            "target_node_id": b.id,
        }]

    @pytest.mark.asyncio
    async def test_http_500_leaves_nodes_untouched(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        """非 200 响应：不修改任何节点，日志记录响应体"""
        graph, a, b = trigger_http_graph
        b.last_output = "previous"
        before = snapshot(graph.scenario)
        service = fake_service(status_code=500, body="internal error")
        dispatcher = make_dispatcher(service)

        response = await dispatcher.run_scenario(graph.scenario)

        assert response is None
        assert snapshot(graph.scenario) == before
        assert "internal error" in run_log[0].message
        assert dispatcher.is_running is False
        assert graph.scenario.is_running is False
        assert dispatcher.state is DispatchState.FAILED
        assert graph.scenario.run_count == 0

    @pytest.mark.asyncio
    async def test_transport_error(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        graph, a, b = trigger_http_graph
        before = snapshot(graph.scenario)
        service = fake_service(error=httpx.ConnectError("connection refused"))
        dispatcher = make_dispatcher(service)

        assert await dispatcher.run_scenario(graph.scenario) is None

        assert snapshot(graph.scenario) == before
        assert run_log[0].message.startswith("Backend execution failed:")
        assert "connection refused" in run_log[0].message
        assert dispatcher.is_running is False

    @pytest.mark.asyncio
    async def test_decode_error(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        """响应结构不符时不应用任何结果"""
        graph, a, b = trigger_http_graph
        before = snapshot(graph.scenario)
        service = fake_service(body={
            "success": True,
            "node_results": [{"node_id": b.id, "success": False, "output": "x"}]
        })
        dispatcher = make_dispatcher(service)

        assert await dispatcher.run_scenario(graph.scenario) is None

        assert snapshot(graph.scenario) == before
        assert run_log[0].message.startswith("Backend execution failed:")
        assert dispatcher.state is DispatchState.FAILED

    @pytest.mark.asyncio
    async def test_invalid_json_is_decode_error(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        graph, a, b = trigger_http_graph
        service = fake_service(body="<html>not json</html>")

        assert await make_dispatcher(service).run_scenario(graph.scenario) is None
        assert run_log[0].message.startswith("Backend execution failed:")

    @pytest.mark.asyncio
    async def test_node_failure_does_not_halt(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        """节点级失败只标记节点，整体结果取决于顶层 success"""
        graph, a, b = trigger_http_graph
        service = fake_service(body={
            "success": True,
            "logs": [],
            "node_results": [
                {"node_id": a.id, "success": True, "output": {"triggered": True}},
                {"node_id": b.id, "success": False, "output": None, "error": "timeout"}
            ]
        })
        dispatcher = make_dispatcher(service)

        await dispatcher.run_scenario(graph.scenario)

        assert a.has_error is False
        assert b.has_error is True
        assert b.last_output == ""
        assert run_log[0].message == "Scenario completed successfully"

    @pytest.mark.asyncio
    async def test_failed_run_summary(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        graph, a, b = trigger_http_graph
        service = fake_service(body={"success": False, "logs": ["boom"], "node_results": []})
        dispatcher = make_dispatcher(service)

        await dispatcher.run_scenario(graph.scenario)

        assert run_log.messages()[:2] == ["Scenario failed", "boom"]
        assert dispatcher.state is DispatchState.FAILED
        assert graph.scenario.run_count == 1

    @pytest.mark.asyncio
    async def test_unknown_node_results_are_ignored(self, trigger_http_graph, fake_service, make_dispatcher):
        graph, a, b = trigger_http_graph
        before = snapshot(graph.scenario)
        service = fake_service(body={
            "success": True,
            "logs": [],
            "node_results": [{"node_id": "ghost", "success": False, "output": 1}]
        })

        await make_dispatcher(service).run_scenario(graph.scenario)

        assert snapshot(graph.scenario) == before

    @pytest.mark.asyncio
    async def test_validation_warnings_are_logged(self, graph, fake_service, make_dispatcher, run_log):
        """运行前的配置问题只记录警告，不阻止运行"""
        email = graph.add_node(NodeType.EMAIL)
        email.config.body = "{{$result.Nobody}}"
        service = fake_service(body={"success": True, "logs": [], "node_results": []})

        await make_dispatcher(service).run_scenario(graph.scenario)

        warnings = [m for m in run_log.messages() if m.startswith("Warning:")]
        assert any("Email 'to' is required" in m for m in warnings)
        assert any("Nobody" in m for m in warnings)
        assert len(service.requests) == 1

    @pytest.mark.asyncio
    async def test_validation_can_be_disabled(self, graph, fake_service, make_dispatcher, run_log):
        graph.add_node(NodeType.EMAIL)
        service = fake_service(body={"success": True, "logs": [], "node_results": []})

        await make_dispatcher(service, validate_before_run=False).run_scenario(graph.scenario)

        assert not any(m.startswith("Warning:") for m in run_log.messages())

    @pytest.mark.asyncio
    async def test_run_publishes_events(self, trigger_http_graph, fake_service, make_dispatcher, event_bus):
        graph, a, b = trigger_http_graph
        topics = []
        for topic in (RUN_STARTED, RUN_FINISHED, NODE_STATE_CHANGED):
            event_bus.subscribe(topic, lambda e: topics.append(e.topic))
        service = fake_service(body={
            "success": True,
            "logs": [],
            "node_results": [{"node_id": b.id, "success": True}]
        })

        await make_dispatcher(service).run_scenario(graph.scenario)

        assert topics == [RUN_STARTED, NODE_STATE_CHANGED, RUN_FINISHED]


class TestTestNode:
    """单节点测试"""

    @pytest.mark.asyncio
    async def test_node_success(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        graph, a, b = trigger_http_graph
        service = fake_service(body={"node_id": b.id, "success": True, "output": {"status": 200}})
        dispatcher = make_dispatcher(service)

        result = await dispatcher.test_node(b)

        assert result.success is True
        assert service.requests[0].url.path == "/api/scenario/node/execute"
        payload = service.last_payload
        assert payload["input"] is None
        assert payload["node"]["id"] == b.id
        assert payload["node"]["node_type"] == "HTTP"

        assert b.has_error is False
        assert '"status": 200' in b.last_output
        assert a.last_output == ""
        assert run_log.messages()[0] == "Test passed"
        assert run_log.messages()[-1] == "Testing node: B..."
        # 不触碰场景级运行标志
        assert dispatcher.is_running is False
        assert dispatcher.state is DispatchState.IDLE

    @pytest.mark.asyncio
    async def test_node_failure(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        graph, a, b = trigger_http_graph
        service = fake_service(body={"node_id": b.id, "success": False, "error": "HTTP URL is required"})

        await make_dispatcher(service).test_node(b)

        assert b.has_error is True
        assert run_log[0].message == "Test failed: HTTP URL is required"

    @pytest.mark.asyncio
    async def test_node_http_error(self, trigger_http_graph, fake_service, make_dispatcher, run_log):
        graph, a, b = trigger_http_graph
        service = fake_service(status_code=400, body="bad request")

        assert await make_dispatcher(service).test_node(b) is None

        assert b.has_error is False
        assert run_log[0].message == "Test failed: bad request"

    @pytest.mark.asyncio
    async def test_node_during_run_is_allowed_by_default(self, trigger_http_graph, run_log):
        graph, a, b = trigger_http_graph
        service = HeldScenarioService(node_body={"node_id": b.id, "success": True})
        dispatcher = held_dispatcher(service, run_log)

        run = asyncio.create_task(dispatcher.run_scenario(graph.scenario))
        await service.arrived.wait()
        assert dispatcher.is_running is True

        assert await dispatcher.test_node(b) is not None

        service.release.set()
        await run
        assert service.paths() == [SCENARIO_PATH, NODE_PATH]

    @pytest.mark.asyncio
    async def test_node_during_run_can_be_refused(self, trigger_http_graph, run_log):
        graph, a, b = trigger_http_graph
        service = HeldScenarioService(node_body={"node_id": b.id, "success": True})
        dispatcher = held_dispatcher(service, run_log, allow_test_during_run=False)

        run = asyncio.create_task(dispatcher.run_scenario(graph.scenario))
        await service.arrived.wait()

        assert await dispatcher.test_node(b) is None
        assert run_log[0].message.startswith("Cannot test node while a scenario is running")
        assert service.paths() == [SCENARIO_PATH]

        service.release.set()
        await run

        # 运行结束后可以再次测试
        assert await dispatcher.test_node(b) is not None
        assert service.paths() == [SCENARIO_PATH, NODE_PATH]


class TestRunBookkeeping:
    """运行标志与状态在任何结束方式下都会复位"""

    @pytest.mark.asyncio
    async def test_invalid_service_url(self, trigger_http_graph, run_log):
        """无法构造 HTTP 请求时按传输错误处理"""
        graph, a, b = trigger_http_graph
        before = snapshot(graph.scenario)
        dispatcher = ExecutionDispatcher(
            run_log=run_log,
            settings=EngineSettings(service_url="http://[::1")
        )

        assert await dispatcher.run_scenario(graph.scenario) is None

        assert run_log[0].message.startswith("Backend execution failed:")
        assert snapshot(graph.scenario) == before
        assert dispatcher.is_running is False
        assert graph.scenario.is_running is False
        assert dispatcher.state is DispatchState.FAILED

        # 下一次运行不会被视为与上一次重叠
        assert await dispatcher.run_scenario(graph.scenario) is None
        assert dispatcher.is_running is False
        assert dispatcher.state is DispatchState.FAILED

    @pytest.mark.asyncio
    async def test_request_build_error_resets_flags(self, trigger_http_graph, fake_service, make_dispatcher):
        """配置变体与节点类型不符时异常上抛，但运行标志仍被复位"""
        graph, a, b = trigger_http_graph
        b.config = EmailConfig()
        service = fake_service(body={"success": True, "logs": [], "node_results": []})
        dispatcher = make_dispatcher(service)

        with pytest.raises(ValueError):
            await dispatcher.run_scenario(graph.scenario)

        assert service.requests == []
        assert dispatcher.is_running is False
        assert graph.scenario.is_running is False
        assert dispatcher.state is DispatchState.FAILED

    @pytest.mark.asyncio
    async def test_states_reported_in_events(self, trigger_http_graph, fake_service, make_dispatcher, event_bus):
        graph, a, b = trigger_http_graph
        states = []
        for topic in (RUN_STARTED, RUN_FINISHED):
            event_bus.subscribe(topic, lambda e: states.append(e.payload["state"]))
        dispatcher = make_dispatcher(fake_service(body={"success": True, "logs": [], "node_results": []}))

        await dispatcher.run_scenario(graph.scenario)
        await dispatcher.run_scenario(graph.scenario)

        assert states == ["dispatching", "succeeded", "dispatching", "succeeded"]

    def test_terminal_state_requires_dispatching(self, fake_service, make_dispatcher):
        dispatcher = make_dispatcher(fake_service())
        with pytest.raises(StateTransitionError):
            dispatcher._transition(DispatchState.SUCCEEDED)
        assert dispatcher.state is DispatchState.IDLE


class TestConcurrency:
    """并发行为（未加互斥）"""

    @pytest.mark.asyncio
    async def test_concurrent_runs_issue_separate_requests(self, trigger_http_graph, fake_service, make_dispatcher):
        graph, a, b = trigger_http_graph
        service = fake_service(body={"success": True, "logs": [], "node_results": []})
        dispatcher = make_dispatcher(service)

        await asyncio.gather(
            dispatcher.run_scenario(graph.scenario),
            dispatcher.run_scenario(graph.scenario),
        )

        assert len(service.requests) == 2
        assert dispatcher.is_running is False
        assert graph.scenario.run_count == 2

    @pytest.mark.asyncio
    async def test_overlapping_runs_stay_running_until_last_finishes(self, trigger_http_graph, run_log):
        """第一个请求挂起时第二个运行先完成，整体仍处于运行中"""
        graph, a, b = trigger_http_graph
        service = HeldScenarioService(node_body={"node_id": b.id, "success": True})
        dispatcher = held_dispatcher(service, run_log, allow_test_during_run=False)

        first = asyncio.create_task(dispatcher.run_scenario(graph.scenario))
        await service.arrived.wait()

        second = await dispatcher.run_scenario(graph.scenario)
        assert second.success is True
        assert not first.done()

        assert dispatcher.is_running is True
        assert graph.scenario.is_running is True
        assert dispatcher.state is DispatchState.DISPATCHING

        # 仍有运行在进行中，单节点测试应被拒绝
        assert await dispatcher.test_node(b) is None
        assert service.paths() == [SCENARIO_PATH, SCENARIO_PATH]

        service.release.set()
        await first

        assert dispatcher.is_running is False
        assert graph.scenario.is_running is False
        assert dispatcher.state is DispatchState.SUCCEEDED
        assert graph.scenario.run_count == 2

    @pytest.mark.asyncio
    async def test_runs_of_different_scenarios(self, trigger_http_graph, run_log):
        graph, a, b = trigger_http_graph
        other = Scenario(name="Other")
        service = HeldScenarioService()
        dispatcher = held_dispatcher(service, run_log)

        first = asyncio.create_task(dispatcher.run_scenario(graph.scenario))
        await service.arrived.wait()
        await dispatcher.run_scenario(other)

        assert other.is_running is False
        assert graph.scenario.is_running is True
        assert dispatcher.is_running is True

        service.release.set()
        await first
        assert dispatcher.is_running is False
