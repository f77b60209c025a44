"""
引擎配置
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class EngineSettings:
    """场景引擎配置"""
    service_url: str = "http://localhost:3000"
    request_timeout: float = 30.0
    log_capacity: int = 100
    # 是否允许在场景运行期间单独测试节点（两者之间没有互斥）
    allow_test_during_run: bool = True
    # 运行前将配置与变量引用问题以警告写入运行日志，不阻止运行
    validate_before_run: bool = True
    log_level: str = "INFO"

    def __post_init__(self):
        if self.log_capacity <= 0:
            raise ConfigurationError("log_capacity must be positive")
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """从环境变量读取配置"""
        return cls(
            service_url=os.getenv("SCENARIO_SERVICE_URL", cls.service_url),
            request_timeout=_get_float("SCENARIO_REQUEST_TIMEOUT", cls.request_timeout),
            log_capacity=_get_int("SCENARIO_LOG_CAPACITY", cls.log_capacity),
            allow_test_during_run=_get_bool("SCENARIO_ALLOW_TEST_DURING_RUN", cls.allow_test_during_run),
            validate_before_run=_get_bool("SCENARIO_VALIDATE_BEFORE_RUN", cls.validate_before_run),
            log_level=os.getenv("SCENARIO_LOG_LEVEL", cls.log_level).upper(),
        )


def load_settings(env_file: Optional[str] = None) -> EngineSettings:
    """加载 .env 文件后读取配置"""
    load_dotenv(env_file)
    return EngineSettings.from_env()


def configure_logging(level: str = "INFO"):
    """配置日志"""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'")


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{value}'")


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
