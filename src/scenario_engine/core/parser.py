"""
场景定义解析器
"""
import yaml
import json
from typing import Dict, Any, Union
from pathlib import Path

from ..exceptions import ScenarioParseError, ScenarioEngineError
from ..models.catalog import NodeTypeCatalog, catalog as default_catalog
from ..models.config import from_wire, to_wire
from ..models.scenario import Node, Position, Scenario
from .graph import WorkflowGraph


class ScenarioParser:
    """
    场景定义解析器

    定义格式（YAML 或 JSON）::

        scenario:
          name: Daily report
          nodes:
            - id: start
              type: Schedule
              config: {schedule_interval: 3600}
            - id: fetch
              type: HTTP
              name: Fetch
              position: {x: 200, y: 0}
          connections:
            - {source: start, target: fetch}

    节点配置使用执行服务的扁平键，只读取与节点类型相关的字段。
    连接通过 WorkflowGraph 添加，因此会经过相同的端点检查和校验器。
    """

    def __init__(self, catalog: NodeTypeCatalog = None, validators=None):
        self.catalog = catalog or default_catalog
        self.validators = validators
        self.parsers = {
            'yaml': self._parse_yaml,
            'yml': self._parse_yaml,
            'json': self._parse_json
        }

    def parse(self, source: Union[str, Path, Dict[str, Any]]) -> Scenario:
        """
        解析场景定义

        Args:
            source: 场景定义来源，可以是文件路径、字符串或字典

        Returns:
            Scenario: 解析后的场景
        """
        if isinstance(source, dict):
            return self.parse_dict(source)

        if isinstance(source, Path):
            return self.parse_file(source)

        if isinstance(source, str):
            path = Path(source)
            if "\n" not in source and path.suffix.lower().lstrip('.') in self.parsers and path.is_file():
                return self.parse_file(path)
            return self.parse_string(source)

        raise ScenarioParseError(f"Unsupported source type: {type(source)}")

    def parse_file(self, file_path: Path) -> Scenario:
        """解析场景文件"""
        suffix = file_path.suffix.lower().lstrip('.')
        if suffix not in self.parsers:
            raise ScenarioParseError(f"Unsupported file format: {suffix}")

        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()

        return self.parse_dict(self.parsers[suffix](content))

    def parse_string(self, content: str) -> Scenario:
        """解析场景字符串（YAML 是 JSON 的超集）"""
        return self.parse_dict(self._parse_yaml(content))

    def _parse_yaml(self, content: str) -> Dict[str, Any]:
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ScenarioParseError(f"Failed to parse YAML: {e}")

    def _parse_json(self, content: str) -> Dict[str, Any]:
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ScenarioParseError(f"Failed to parse JSON: {e}")

    def parse_dict(self, data: Dict[str, Any]) -> Scenario:
        """解析字典格式的场景定义"""
        if not isinstance(data, dict):
            raise ScenarioParseError("Scenario definition must be a mapping")
        if 'scenario' in data:
            data = data['scenario']

        if not data.get('name'):
            raise ScenarioParseError("Scenario name is required")

        scenario = Scenario(name=data['name'])
        if data.get('id'):
            scenario.id = str(data['id'])

        for node_data in data.get('nodes') or []:
            node = self._parse_node(node_data)
            if scenario.get_node(node.id):
                raise ScenarioParseError(f"Duplicate node id: {node.id}")
            scenario.nodes.append(node)

        graph = WorkflowGraph(scenario, validators=self.validators, catalog=self.catalog)
        for conn_data in data.get('connections') or []:
            try:
                graph.connect(
                    str(conn_data['source']),
                    str(conn_data['target']),
                    conn_data.get('label', '')
                )
            except KeyError as e:
                raise ScenarioParseError(f"Connection missing field: {e}")
            except ScenarioEngineError as e:
                raise ScenarioParseError(f"Invalid connection: {e}")

        return scenario

    def _parse_node(self, data: Dict[str, Any]) -> Node:
        if 'type' not in data:
            raise ScenarioParseError(f"Node missing 'type': {data}")

        try:
            node_type = self.catalog.resolve(data['type'])
        except ScenarioEngineError as e:
            raise ScenarioParseError(str(e))

        position = data.get('position') or {}
        node = Node(
            type=node_type,
            name=data.get('name') or node_type.value,
            config=self.catalog.default_config(node_type),
            position=Position(float(position.get('x', 0)), float(position.get('y', 0))),
        )
        if data.get('id'):
            node.id = str(data['id'])

        if data.get('config'):
            # 在默认值之上覆盖给出的字段
            record = to_wire(node_type, node.config)
            record.update(data['config'])
            node.config = from_wire(node_type, record)

        return node

    def dump(self, scenario: Scenario) -> Dict[str, Any]:
        """导出为定义字典"""
        return {
            "scenario": {
                "id": scenario.id,
                "name": scenario.name,
                "nodes": [
                    {
                        "id": node.id,
                        "type": node.type.value,
                        "name": node.name,
                        "position": {"x": node.position.x, "y": node.position.y},
                        "config": to_wire(node.type, node.config),
                    }
                    for node in scenario.nodes
                ],
                "connections": [
                    {
                        "source": c.source_node_id,
                        "target": c.target_node_id,
                        "label": c.label,
                    }
                    for c in scenario.connections
                ],
            }
        }
