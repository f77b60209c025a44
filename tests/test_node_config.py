"""
节点配置与扁平线上记录的转换测试
"""
import pytest

from scenario_engine.models.config import (
    AIConfig, EmailConfig, HttpConfig, WIRE_DEFAULTS, from_wire, iter_text_fields, to_wire
)
from scenario_engine.models.node_types import NodeType


class TestWireAdapter:
    """扁平配置适配测试类"""

    def test_to_wire_contains_every_field(self):
        record = to_wire(NodeType.HTTP, HttpConfig(url="https://x.test", method="POST"))
        assert list(record) == list(WIRE_DEFAULTS)
        assert record["type"] == "HTTP"
        assert record["http_url"] == "https://x.test"
        assert record["http_method"] == "POST"
        # 其他类型的字段保持默认值
        assert record["smtp_port"] == 587
        assert record["email_to"] == ""
        assert record["ai_model"] == "gpt-4"

    def test_to_wire_does_not_share_mutable_defaults(self):
        record = to_wire(NodeType.HTTP, HttpConfig())
        record["http_headers"]["X"] = "1"
        assert WIRE_DEFAULTS["http_headers"] == {}

    def test_to_wire_rejects_mismatched_variant(self):
        with pytest.raises(ValueError):
            to_wire(NodeType.EMAIL, HttpConfig())

    def test_from_wire_reads_only_relevant_fields(self):
        record = dict(WIRE_DEFAULTS, email_to="ops@example.com", http_url="https://ignored.test")
        config = from_wire(NodeType.EMAIL, record)
        assert isinstance(config, EmailConfig)
        assert config.to == "ops@example.com"
        assert not hasattr(config, "url")

    def test_from_wire_skips_null_values(self):
        config = from_wire(NodeType.HTTP, {"http_url": None, "http_timeout": 10})
        assert config.url == ""
        assert config.timeout == 10

    def test_ai_provider_key_maps_to_type_specific_field(self):
        config = AIConfig(provider="claude", provider_api_key="sk-claude")
        record = to_wire(NodeType.CLAUDE, config)
        assert record["claude_api_key"] == "sk-claude"
        assert record["openai_api_key"] == ""

        restored = from_wire(NodeType.CLAUDE, record)
        assert restored == config

    def test_iter_text_fields_includes_headers(self):
        config = HttpConfig(url="{{$result.A.url}}", headers={"Authorization": "Bearer {{$result.Auth.token}}"})
        fields = dict(iter_text_fields(config))
        assert fields["url"] == "{{$result.A.url}}"
        assert fields["headers.Authorization"] == "Bearer {{$result.Auth.token}}"
