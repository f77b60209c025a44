"""
Pytest 配置和公共 fixtures
"""
import json

import httpx
import pytest

from scenario_engine.config import EngineSettings
from scenario_engine.core.dispatcher import ExecutionDispatcher
from scenario_engine.core.graph import WorkflowGraph
from scenario_engine.core.run_log import RunLog
from scenario_engine.integrations.event_bus import EventBus
from scenario_engine.integrations.execution_service import ExecutionServiceClient
from scenario_engine.models.node_types import NodeType
from scenario_engine.models.scenario import Position, Scenario


SERVICE_URL = "http://execution.test"


class FakeExecutionService:
    """模拟执行服务，记录收到的请求"""

    def __init__(self, status_code: int = 200, body=None, error: Exception = None):
        self.status_code = status_code
        self.body = body
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=self.body or "")

    @property
    def last_payload(self) -> dict:
        return json.loads(self.requests[-1].content)

    def client(self) -> ExecutionServiceClient:
        return ExecutionServiceClient(base_url=SERVICE_URL, transport=httpx.MockTransport(self))


@pytest.fixture
def event_bus() -> EventBus:
    """创建事件总线"""
    return EventBus()


@pytest.fixture
def run_log() -> RunLog:
    return RunLog()


@pytest.fixture
def scenario() -> Scenario:
    return Scenario(name="Test Scenario")


@pytest.fixture
def graph(scenario, event_bus) -> WorkflowGraph:
    return WorkflowGraph(scenario, event_bus=event_bus)


@pytest.fixture
def trigger_http_graph(graph):
    """A（触发器）-> B（HTTP）"""
    a = graph.add_node(NodeType.TRIGGER, Position(0, 0))
    b = graph.add_node(NodeType.HTTP, Position(200, 0))
    a.name = "A"
    b.name = "B"
    graph.connect(a.id, b.id)
    return graph, a, b


@pytest.fixture
def make_dispatcher(run_log, event_bus):
    """根据模拟服务创建调度器"""
    def factory(service: FakeExecutionService, **settings) -> ExecutionDispatcher:
        return ExecutionDispatcher(
            client=service.client(),
            run_log=run_log,
            event_bus=event_bus,
            settings=EngineSettings(service_url=SERVICE_URL, **settings)
        )
    return factory


@pytest.fixture
def sample_scenario_definition() -> dict:
    """示例场景定义"""
    return {
        "scenario": {
            "name": "Daily Report",
            "nodes": [
                {
                    "id": "start",
                    "type": "Schedule",
                    "config": {"schedule_interval": 3600}
                },
                {
                    "id": "fetch",
                    "type": "HTTP",
                    "name": "Fetch",
                    "position": {"x": 200, "y": 0},
                    "config": {"http_url": "https://api.example.com/report", "http_method": "POST"}
                },
                {
                    "id": "notify",
                    "type": "Telegram",
                    "name": "Notify",
                    "config": {
                        "telegram_bot_token": "token",
                        "telegram_chat_id": "42",
                        "telegram_message": "Report: {{$result.Fetch.data}}"
                    }
                }
            ],
            "connections": [
                {"source": "start", "target": "fetch"},
                {"source": "fetch", "target": "notify", "label": "on success"}
            ]
        }
    }


@pytest.fixture
def fake_service():
    """模拟执行服务工厂"""
    return FakeExecutionService
