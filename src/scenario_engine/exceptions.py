"""
场景引擎异常定义
"""
from typing import Optional


class ScenarioEngineError(Exception):
    """场景引擎基础异常"""
    pass


class ConfigurationError(ScenarioEngineError):
    """配置异常"""
    pass


class UnknownNodeTypeError(ScenarioEngineError):
    """未知节点类型"""
    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__(f"Unknown node type: '{node_type}'")


class NodeNotFoundError(ScenarioEngineError):
    """节点不存在"""
    def __init__(self, node_id: str, message: str = None):
        self.node_id = node_id
        msg = f"Node '{node_id}' not found"
        if message:
            msg += f": {message}"
        super().__init__(msg)


class ConnectionValidationError(ScenarioEngineError):
    """连接校验异常"""
    def __init__(self, source_id: str, target_id: str, message: str):
        self.source_id = source_id
        self.target_id = target_id
        super().__init__(
            f"Connection '{source_id}' -> '{target_id}' rejected: {message}"
        )


class NoActiveScenarioError(ScenarioEngineError):
    """没有活动场景"""
    pass


class StateTransitionError(ScenarioEngineError):
    """状态转换异常"""
    def __init__(self, current_state: str, target_state: str, message: str = None):
        self.current_state = current_state
        self.target_state = target_state
        msg = f"Invalid state transition from '{current_state}' to '{target_state}'"
        if message:
            msg += f": {message}"
        super().__init__(msg)


class VariableReferenceError(ScenarioEngineError):
    """变量引用语法错误"""
    def __init__(self, token: str, message: str):
        self.token = token
        super().__init__(f"Malformed variable reference '{token}': {message}")


class ScenarioParseError(ScenarioEngineError):
    """场景定义解析异常"""
    pass


class ExecutionServiceError(ScenarioEngineError):
    """执行服务调用异常"""
    pass


class ServiceTransportError(ExecutionServiceError):
    """传输层错误（连接失败、DNS、超时）"""
    def __init__(self, message: str, cause: Exception = None):
        self.cause = cause
        super().__init__(message)


class ServiceProtocolError(ExecutionServiceError):
    """非 200 响应"""
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(body)


class ServiceDecodeError(ExecutionServiceError):
    """响应体解码失败"""
    def __init__(self, message: str, body: Optional[str] = None):
        self.body = body
        super().__init__(message)
