"""
执行服务客户端

执行服务负责真正执行各类节点的副作用，这里只负责请求的发送与响应的解码。
"""
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ..exceptions import ServiceDecodeError, ServiceProtocolError, ServiceTransportError
from ..models.execution import (
    NodeExecuteRequest, NodeResultDTO, ScenarioExecuteRequest, ScenarioExecuteResponse
)


logger = logging.getLogger(__name__)

SCENARIO_EXECUTE_PATH = "/api/scenario/execute"
NODE_EXECUTE_PATH = "/api/scenario/node/execute"


class ExecutionServiceClient:
    """
    执行服务 HTTP 客户端

    Args:
        base_url: 执行服务地址
        timeout: 请求超时（秒），由 httpx 负责执行
        transport: 可选的 httpx 传输层（测试时可替换为 MockTransport）

    不做任何自动重试。
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def aclose(self):
        """关闭 HTTP 客户端"""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def __aenter__(self) -> "ExecutionServiceClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def execute_scenario(self, request: ScenarioExecuteRequest) -> ScenarioExecuteResponse:
        """执行整个场景"""
        body = await self._post(SCENARIO_EXECUTE_PATH, request.model_dump(mode="json"))
        return self._decode(ScenarioExecuteResponse, body)

    async def execute_node(self, request: NodeExecuteRequest) -> NodeResultDTO:
        """单独执行一个节点"""
        body = await self._post(NODE_EXECUTE_PATH, request.model_dump(mode="json"))
        return self._decode(NodeResultDTO, body)

    async def _post(self, path: str, payload: dict) -> str:
        logger.debug(f"POST {self.base_url}{path}")

        try:
            client = await self._ensure_client()
            response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise ServiceTransportError(str(e) or type(e).__name__, e)
        except httpx.InvalidURL as e:
            raise ServiceTransportError(f"Invalid service URL '{self.base_url}': {e}", e)
        except Exception as e:
            # 传输层的其他异常（如非法端口时底层抛出的 ExceptionGroup）
            logger.error(f"Unexpected transport failure for {path}: {e!r}")
            raise ServiceTransportError(str(e) or type(e).__name__, e)

        if response.status_code != 200:
            logger.warning(f"Execution service returned HTTP {response.status_code} for {path}")
            raise ServiceProtocolError(response.status_code, response.text)

        return response.text

    @staticmethod
    def _decode(model, body: str):
        try:
            return model.model_validate_json(body)
        except ValidationError as e:
            raise ServiceDecodeError(
                f"Unexpected response shape: {e.error_count()} validation error(s): "
                f"{e.errors()[0]['msg']}",
                body,
            )
