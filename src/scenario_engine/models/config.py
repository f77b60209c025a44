"""
节点配置模型

每种节点类型对应一个配置变体，只包含该类型需要的字段。
执行服务仍使用包含全部字段的扁平记录，`to_wire` / `from_wire` 负责两者之间的转换。
"""
import copy
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, Iterator, Tuple, Type

from .node_types import NodeType


def wire(key: str, default: Any = None, default_factory=None):
    """声明一个映射到扁平记录键的配置字段"""
    if default_factory is not None:
        return field(default_factory=default_factory, metadata={"wire": key})
    return field(default=default, metadata={"wire": key})


# 扁平记录的完整字段及默认值（顺序即线上顺序）
WIRE_DEFAULTS: Dict[str, Any] = {
    "type": "",
    "enabled": True,
    # Email
    "email_to": "",
    "email_subject": "",
    "email_body": "",
    "email_attachment_path": "",
    "smtp_host": "",
    "smtp_port": 587,
    "smtp_user": "",
    "smtp_password": "",
    "email_use_ssl": True,
    # LINE
    "line_message_type": "push",
    "line_channel_token": "",
    "line_notify_token": "",
    "line_user_id": "",
    "line_group_id": "",
    "line_message": "",
    "line_image_url": "",
    "line_sticker_package_id": "",
    "line_sticker_id": "",
    # Telegram
    "telegram_bot_token": "",
    "telegram_chat_id": "",
    "telegram_message": "",
    "telegram_image_url": "",
    "telegram_parse_mode": "HTML",
    # HTTP
    "http_url": "",
    "http_method": "GET",
    "http_headers": {},
    "http_body": "",
    "http_timeout": 30,
    # Code
    "code_language": "python",
    "code_content": "",
    # Schedule / Webhook
    "schedule_interval": 60,
    "schedule_cron": "",
    "webhook_path": "/webhook",
    # Transform / Filter / Delay
    "transform_expression": "",
    "filter_condition": "",
    "delay_seconds": 5,
    # Database
    "db_type": "sqlite",
    "db_connection": "",
    "db_query": "",
    # Broadcast
    "broadcast_message": "",
    # AI
    "ai_provider": "chatgpt",
    "ai_api_key": "",
    "ai_model": "gpt-4",
    "ai_prompt": "",
    "ai_system_prompt": "",
    "ai_temperature": 0.7,
    "ai_max_tokens": 1024,
    "gemini_api_key": "",
    "openai_api_key": "",
    "deepseek_api_key": "",
    "glm_api_key": "",
    "perplexity_api_key": "",
    "claude_api_key": "",
    # Google Sheets
    "sheets_spreadsheet_id": "",
    "sheets_range": "",
    "sheets_action": "read",
    "sheets_service_account_json": "",
}

# AI 节点类型对应的提供方专用密钥字段
PROVIDER_KEY_FIELDS: Dict[NodeType, str] = {
    NodeType.OPENAI: "openai_api_key",
    NodeType.GEMINI: "gemini_api_key",
    NodeType.CLAUDE: "claude_api_key",
    NodeType.DEEPSEEK: "deepseek_api_key",
    NodeType.GLM: "glm_api_key",
    NodeType.PERPLEXITY: "perplexity_api_key",
}


@dataclass
class NodeConfig:
    """节点配置基类"""
    node_types: ClassVar[Tuple[NodeType, ...]] = ()

    enabled: bool = wire("enabled", True)


@dataclass
class BasicConfig(NodeConfig):
    """无专用字段的节点"""
    node_types: ClassVar[Tuple[NodeType, ...]] = (
        NodeType.TRIGGER,
        NodeType.SLACK,
        NodeType.DISCORD,
        NodeType.SMS,
        NodeType.WHATSAPP,
        NodeType.NOTION,
        NodeType.AWS_S3,
        NodeType.FIREBASE,
        NodeType.AIRTABLE,
        NodeType.STRIPE,
        NodeType.CONTAINER,
        NodeType.IF_CONDITION,
        NodeType.LOOP,
        NodeType.MERGE,
        NodeType.VARIABLE,
    )


@dataclass
class ScheduleConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.SCHEDULE,)

    interval: int = wire("schedule_interval", 60)
    cron: str = wire("schedule_cron", "")


@dataclass
class WebhookConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.WEBHOOK,)

    path: str = wire("webhook_path", "/webhook")


@dataclass
class EmailConfig(NodeConfig):
    """SMTP 邮件配置"""
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.EMAIL,)

    to: str = wire("email_to", "")
    subject: str = wire("email_subject", "")
    body: str = wire("email_body", "")
    attachment_path: str = wire("email_attachment_path", "")
    smtp_host: str = wire("smtp_host", "")
    smtp_port: int = wire("smtp_port", 587)
    smtp_user: str = wire("smtp_user", "")
    smtp_password: str = wire("smtp_password", "")
    use_ssl: bool = wire("email_use_ssl", True)


@dataclass
class LineConfig(NodeConfig):
    """LINE Messaging API 配置"""
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.LINE,)

    message_type: str = wire("line_message_type", "push")  # push, broadcast, notify, group
    channel_token: str = wire("line_channel_token", "")
    notify_token: str = wire("line_notify_token", "")
    user_id: str = wire("line_user_id", "")
    group_id: str = wire("line_group_id", "")
    message: str = wire("line_message", "")
    image_url: str = wire("line_image_url", "")
    sticker_package_id: str = wire("line_sticker_package_id", "")
    sticker_id: str = wire("line_sticker_id", "")


@dataclass
class TelegramConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.TELEGRAM,)

    bot_token: str = wire("telegram_bot_token", "")
    chat_id: str = wire("telegram_chat_id", "")
    message: str = wire("telegram_message", "")
    image_url: str = wire("telegram_image_url", "")
    parse_mode: str = wire("telegram_parse_mode", "HTML")  # HTML, Markdown


@dataclass
class HttpConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.HTTP,)

    url: str = wire("http_url", "")
    method: str = wire("http_method", "GET")
    headers: Dict[str, str] = wire("http_headers", default_factory=dict)
    body: str = wire("http_body", "")
    timeout: int = wire("http_timeout", 30)


@dataclass
class CodeConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.CODE,)

    language: str = wire("code_language", "python")
    content: str = wire("code_content", "")


@dataclass
class TransformConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.TRANSFORM,)

    expression: str = wire("transform_expression", "")


@dataclass
class FilterConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.FILTER,)

    condition: str = wire("filter_condition", "")


@dataclass
class DelayConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.DELAY,)

    seconds: int = wire("delay_seconds", 5)


@dataclass
class DatabaseConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.DATABASE,)

    db_type: str = wire("db_type", "sqlite")
    connection: str = wire("db_connection", "")
    query: str = wire("db_query", "")


@dataclass
class BroadcastConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.BROADCAST,)

    message: str = wire("broadcast_message", "")


@dataclass
class AIConfig(NodeConfig):
    """
    生成式 AI 节点配置

    provider_api_key 没有固定的线上键，序列化时写入节点类型对应的
    提供方专用字段（见 PROVIDER_KEY_FIELDS）。
    """
    node_types: ClassVar[Tuple[NodeType, ...]] = tuple(PROVIDER_KEY_FIELDS)

    provider: str = wire("ai_provider", "chatgpt")
    api_key: str = wire("ai_api_key", "")
    model: str = wire("ai_model", "gpt-4")
    prompt: str = wire("ai_prompt", "")
    system_prompt: str = wire("ai_system_prompt", "")
    temperature: float = wire("ai_temperature", 0.7)
    max_tokens: int = wire("ai_max_tokens", 1024)
    provider_api_key: str = ""


@dataclass
class GoogleSheetsConfig(NodeConfig):
    node_types: ClassVar[Tuple[NodeType, ...]] = (NodeType.GOOGLE_SHEETS,)

    spreadsheet_id: str = wire("sheets_spreadsheet_id", "")
    range: str = wire("sheets_range", "")
    action: str = wire("sheets_action", "read")  # read, append, update, clear
    service_account_json: str = wire("sheets_service_account_json", "")


CONFIG_CLASSES: Dict[NodeType, Type[NodeConfig]] = {
    node_type: config_class
    for config_class in (
        BasicConfig, ScheduleConfig, WebhookConfig, EmailConfig, LineConfig,
        TelegramConfig, HttpConfig, CodeConfig, TransformConfig, FilterConfig,
        DelayConfig, DatabaseConfig, BroadcastConfig, AIConfig, GoogleSheetsConfig,
    )
    for node_type in config_class.node_types
}


def config_class_for(node_type: NodeType) -> Type[NodeConfig]:
    """获取节点类型对应的配置变体"""
    return CONFIG_CLASSES[node_type]


def _check_variant(node_type: NodeType, config: NodeConfig):
    expected = config_class_for(node_type)
    if type(config) is not expected:
        raise ValueError(
            f"{type(config).__name__} is not a valid config for node type "
            f"'{node_type.value}' (expected {expected.__name__})"
        )


def to_wire(node_type: NodeType, config: NodeConfig) -> Dict[str, Any]:
    """转换为执行服务使用的扁平配置记录"""
    _check_variant(node_type, config)

    record = copy.deepcopy(WIRE_DEFAULTS)
    record["type"] = node_type.value

    for f in fields(config):
        key = f.metadata.get("wire")
        if key:
            record[key] = copy.deepcopy(getattr(config, f.name))

    if isinstance(config, AIConfig):
        record[PROVIDER_KEY_FIELDS[node_type]] = config.provider_api_key

    return record


def from_wire(node_type: NodeType, record: Dict[str, Any]) -> NodeConfig:
    """从扁平配置记录中读取该类型相关的字段，忽略其余字段"""
    config_class = config_class_for(node_type)
    kwargs = {}

    for f in fields(config_class):
        key = f.metadata.get("wire")
        if key and record.get(key) is not None:
            kwargs[f.name] = copy.deepcopy(record[key])

    if config_class is AIConfig:
        provider_key = record.get(PROVIDER_KEY_FIELDS[node_type])
        if provider_key is not None:
            kwargs["provider_api_key"] = provider_key

    return config_class(**kwargs)


def iter_text_fields(config: NodeConfig) -> Iterator[Tuple[str, str]]:
    """遍历配置中的字符串字段（包括 HTTP 头的值）"""
    for f in fields(config):
        value = getattr(config, f.name)
        if isinstance(value, str):
            yield f.name, value
        elif isinstance(value, dict):
            for key, item in value.items():
                if isinstance(item, str):
                    yield f"{f.name}.{key}", item
