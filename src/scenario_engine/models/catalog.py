"""
节点类型目录

静态配置数据：每种节点类型的分类、图标、颜色标签以及默认配置。运行期间不会被修改。
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Union

from .config import NodeConfig, config_class_for
from .node_types import NodeCategory, NodeType
from ..exceptions import UnknownNodeTypeError


@dataclass(frozen=True)
class NodeDisplay:
    """节点显示元数据"""
    icon: str
    color: str


@dataclass(frozen=True)
class CatalogEntry:
    """目录条目"""
    node_type: NodeType
    category: NodeCategory
    display: NodeDisplay
    defaults: Mapping[str, Any]


def _entry(node_type: NodeType, category: NodeCategory, icon: str, color: str, **defaults) -> CatalogEntry:
    return CatalogEntry(
        node_type=node_type,
        category=category,
        display=NodeDisplay(icon=icon, color=color),
        defaults=MappingProxyType(defaults),
    )


_AI_ICON = "brain.head.profile"

_ENTRIES = (
    # 触发器
    _entry(NodeType.TRIGGER, NodeCategory.TRIGGERS, "play.circle.fill", "green"),
    _entry(NodeType.SCHEDULE, NodeCategory.TRIGGERS, "clock.fill", "green"),
    _entry(NodeType.WEBHOOK, NodeCategory.TRIGGERS, "antenna.radiowaves.left.and.right", "green"),

    # 消息
    _entry(NodeType.EMAIL, NodeCategory.MESSAGING, "envelope.fill", "blue",
           subject="Notification", body="This is an automated message."),
    _entry(NodeType.LINE, NodeCategory.MESSAGING, "message.fill", "green",
           message="Hello from CodeTunner!"),
    _entry(NodeType.TELEGRAM, NodeCategory.MESSAGING, "paperplane.fill", "blue"),
    _entry(NodeType.SLACK, NodeCategory.MESSAGING, "number.square.fill", "purple"),
    _entry(NodeType.DISCORD, NodeCategory.MESSAGING, "bubble.left.and.bubble.right.fill", "indigo"),
    _entry(NodeType.SMS, NodeCategory.MESSAGING, "phone.fill", "teal"),
    _entry(NodeType.WHATSAPP, NodeCategory.MESSAGING, "phone.circle.fill", "green"),
    _entry(NodeType.BROADCAST, NodeCategory.MESSAGING, "megaphone.fill", "red"),

    # 集成
    _entry(NodeType.HTTP, NodeCategory.INTEGRATIONS, "globe", "orange",
           url="https://api.example.com"),
    _entry(NodeType.OPENAI, NodeCategory.INTEGRATIONS, _AI_ICON, "green", provider="chatgpt"),
    _entry(NodeType.GEMINI, NodeCategory.INTEGRATIONS, _AI_ICON, "blue", provider="gemini"),
    _entry(NodeType.CLAUDE, NodeCategory.INTEGRATIONS, _AI_ICON, "orange", provider="claude"),
    _entry(NodeType.DEEPSEEK, NodeCategory.INTEGRATIONS, _AI_ICON, "blue", provider="deepseek"),
    _entry(NodeType.GLM, NodeCategory.INTEGRATIONS, _AI_ICON, "purple", provider="glm"),
    _entry(NodeType.PERPLEXITY, NodeCategory.INTEGRATIONS, _AI_ICON, "teal", provider="perplexity"),
    _entry(NodeType.NOTION, NodeCategory.INTEGRATIONS, "doc.text.fill", "primary"),
    _entry(NodeType.GOOGLE_SHEETS, NodeCategory.INTEGRATIONS, "tablecells.fill", "green"),
    _entry(NodeType.AWS_S3, NodeCategory.INTEGRATIONS, "server.rack", "cyan"),
    _entry(NodeType.FIREBASE, NodeCategory.INTEGRATIONS, "flame.fill", "cyan"),
    _entry(NodeType.AIRTABLE, NodeCategory.INTEGRATIONS, "square.stack.3d.up.fill", "yellow"),
    _entry(NodeType.STRIPE, NodeCategory.INTEGRATIONS, "creditcard.fill", "indigo"),
    _entry(NodeType.CONTAINER, NodeCategory.INTEGRATIONS, "shippingbox.fill", "orange"),

    # 逻辑
    _entry(NodeType.TRANSFORM, NodeCategory.LOGIC, "gearshape.2.fill", "purple"),
    _entry(NodeType.FILTER, NodeCategory.LOGIC, "slider.horizontal.3", "purple"),
    _entry(NodeType.CODE, NodeCategory.LOGIC, "chevron.left.forwardslash.chevron.right", "pink",
           language="python", content="# Your code here\nprint('Hello from Scenario!')"),
    _entry(NodeType.VARIABLE, NodeCategory.LOGIC, "x.squareroot", "purple"),

    # 数据
    _entry(NodeType.DATABASE, NodeCategory.DATA, "cylinder.fill", "cyan"),

    # 流程控制
    _entry(NodeType.DELAY, NodeCategory.FLOW, "timer", "gray"),
    _entry(NodeType.IF_CONDITION, NodeCategory.FLOW, "arrow.triangle.branch", "gray"),
    _entry(NodeType.LOOP, NodeCategory.FLOW, "repeat", "gray"),
    _entry(NodeType.MERGE, NodeCategory.FLOW, "arrow.triangle.merge", "gray"),
)

CATEGORY_ICONS: Mapping[NodeCategory, str] = MappingProxyType({
    NodeCategory.TRIGGERS: "bolt.fill",
    NodeCategory.MESSAGING: "bubble.left.and.bubble.right.fill",
    NodeCategory.INTEGRATIONS: "link",
    NodeCategory.LOGIC: "gearshape.fill",
    NodeCategory.DATA: "cylinder.fill",
    NodeCategory.FLOW: "arrow.triangle.branch",
})


class NodeTypeCatalog:
    """节点类型目录"""

    def __init__(self, entries=_ENTRIES):
        self._entries: Mapping[NodeType, CatalogEntry] = MappingProxyType(
            {entry.node_type: entry for entry in entries}
        )

    def __contains__(self, node_type) -> bool:
        try:
            return self.resolve(node_type) in self._entries
        except UnknownNodeTypeError:
            return False

    def __iter__(self):
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, node_type: Union[NodeType, str]) -> NodeType:
        """将原始标识解析为节点类型"""
        if isinstance(node_type, NodeType):
            resolved = node_type
        else:
            try:
                resolved = NodeType(node_type)
            except ValueError:
                raise UnknownNodeTypeError(str(node_type))

        if resolved not in self._entries:
            raise UnknownNodeTypeError(resolved.value)
        return resolved

    def entry(self, node_type: Union[NodeType, str]) -> CatalogEntry:
        return self._entries[self.resolve(node_type)]

    def default_config(self, node_type: Union[NodeType, str]) -> NodeConfig:
        """返回该类型的默认配置（每次调用都是新实例）"""
        entry = self.entry(node_type)
        config_class = config_class_for(entry.node_type)
        return config_class(**dict(entry.defaults))

    def category(self, node_type: Union[NodeType, str]) -> NodeCategory:
        return self.entry(node_type).category

    def display_metadata(self, node_type: Union[NodeType, str]) -> NodeDisplay:
        return self.entry(node_type).display

    def by_category(self) -> Dict[NodeCategory, List[NodeType]]:
        """按分类分组，保持分类与类型的声明顺序"""
        grouped: Dict[NodeCategory, List[NodeType]] = {category: [] for category in NodeCategory}
        for node_type in NodeType:
            entry = self._entries.get(node_type)
            if entry:
                grouped[entry.category].append(node_type)
        return {category: types for category, types in grouped.items() if types}


# 默认目录
catalog = NodeTypeCatalog()
