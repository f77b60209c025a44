"""
节点类型与分类枚举
"""
from enum import Enum


class NodeCategory(Enum):
    """节点分类"""
    TRIGGERS = "Triggers"
    MESSAGING = "Messaging"
    INTEGRATIONS = "Integrations"
    LOGIC = "Logic"
    DATA = "Data"
    FLOW = "Flow Control"


class NodeType(Enum):
    """节点类型，值为执行服务按名称匹配的原始标识"""
    # 触发器
    TRIGGER = "Trigger"
    SCHEDULE = "Schedule"
    WEBHOOK = "Webhook"

    # 消息
    EMAIL = "Email"
    LINE = "LINE"
    TELEGRAM = "Telegram"
    SLACK = "Slack"
    DISCORD = "Discord"
    SMS = "SMS"
    WHATSAPP = "WhatsApp"

    # HTTP 与数据
    HTTP = "HTTP"
    TRANSFORM = "Transform"
    CODE = "Code"
    BROADCAST = "Broadcast"
    DATABASE = "Database"
    FILTER = "Filter"
    DELAY = "Delay"

    # AI 提供方
    OPENAI = "ChatGPT"
    GEMINI = "Gemini"
    CLAUDE = "Claude"
    DEEPSEEK = "DeepSeek"
    GLM = "GLM-4"
    PERPLEXITY = "Perplexity"

    # 集成
    NOTION = "Notion"
    GOOGLE_SHEETS = "Google Sheets"
    AWS_S3 = "AWS S3"
    FIREBASE = "Firebase"
    AIRTABLE = "Airtable"
    STRIPE = "Stripe"
    CONTAINER = "Container"

    # 流程控制
    IF_CONDITION = "IF"
    LOOP = "Loop"
    MERGE = "Merge"
    VARIABLE = "Variable"


AI_TYPES = frozenset({
    NodeType.OPENAI,
    NodeType.GEMINI,
    NodeType.CLAUDE,
    NodeType.DEEPSEEK,
    NodeType.GLM,
    NodeType.PERPLEXITY,
})

TRIGGER_TYPES = frozenset({NodeType.TRIGGER, NodeType.SCHEDULE, NodeType.WEBHOOK})
