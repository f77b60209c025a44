"""
场景校验

连接校验器是可插拔的：默认不做任何限制（允许自环、重复连接和环），
需要时可以在 WorkflowGraph 中挂载 reject_self_loops / reject_duplicates / reject_cycles。
"""
from collections import defaultdict, deque
from typing import Callable, List

from ..exceptions import ConnectionValidationError
from ..models.config import EmailConfig, HttpConfig, LineConfig, TelegramConfig
from ..models.scenario import Scenario
from .references import VariableReferenceParser


# 校验器签名：(scenario, source_id, target_id) -> None，拒绝时抛出 ConnectionValidationError
ConnectionValidator = Callable[[Scenario, str, str], None]


def reject_self_loops(scenario: Scenario, source_id: str, target_id: str):
    """拒绝自环"""
    if source_id == target_id:
        raise ConnectionValidationError(source_id, target_id, "self-loop")


def reject_duplicates(scenario: Scenario, source_id: str, target_id: str):
    """拒绝重复连接"""
    for connection in scenario.connections:
        if connection.source_node_id == source_id and connection.target_node_id == target_id:
            raise ConnectionValidationError(source_id, target_id, "duplicate connection")


def reject_cycles(scenario: Scenario, source_id: str, target_id: str):
    """拒绝会形成环的连接"""
    if has_cycle(scenario, extra_edge=(source_id, target_id)):
        raise ConnectionValidationError(source_id, target_id, "would create a cycle")


def has_cycle(scenario: Scenario, extra_edge=None) -> bool:
    """检测是否存在环（拓扑排序）"""
    adj = defaultdict(list)
    in_degree = {node.id: 0 for node in scenario.nodes}

    edges = [(c.source_node_id, c.target_node_id) for c in scenario.connections]
    if extra_edge:
        edges.append(extra_edge)

    for source, target in edges:
        in_degree.setdefault(source, 0)
        in_degree.setdefault(target, 0)
        adj[source].append(target)
        in_degree[target] += 1

    queue = deque([node_id for node_id, degree in in_degree.items() if degree == 0])
    visited = 0

    while queue:
        node_id = queue.popleft()
        visited += 1

        for neighbor in adj[node_id]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    return visited != len(in_degree)


def _require(errors: List[str], node_name: str, value: str, message: str):
    if not value:
        errors.append(f"Node '{node_name}': {message}")


def validate_node_configs(scenario: Scenario) -> List[str]:
    """检查各节点的必填配置"""
    errors = []

    for node in scenario.nodes:
        config = node.config

        if isinstance(config, EmailConfig):
            _require(errors, node.name, config.to, "Email 'to' is required")
        elif isinstance(config, LineConfig):
            if config.message_type == "notify":
                _require(errors, node.name, config.notify_token, "LINE Notify token is required")
            elif config.message_type in ("push", "broadcast", "group"):
                _require(errors, node.name, config.channel_token, "LINE channel token is required")
        elif isinstance(config, TelegramConfig):
            _require(errors, node.name, config.bot_token, "Telegram bot token is required")
            _require(errors, node.name, config.chat_id, "Telegram chat ID is required")
        elif isinstance(config, HttpConfig):
            _require(errors, node.name, config.url, "HTTP URL is required")

    return errors


def validate_scenario(scenario: Scenario, parser: VariableReferenceParser = None) -> List[str]:
    """
    校验场景，返回问题描述列表

    包括必填配置缺失和变量引用问题（格式错误、引用不存在或重名的节点）。
    """
    parser = parser or VariableReferenceParser()
    errors = validate_node_configs(scenario)

    for node in scenario.nodes:
        for issue in parser.scan_node(scenario, node):
            errors.append(f"Node '{node.name}': {issue.field} reference {issue.token}: {issue.message}")

    return errors
