"""
配置测试
"""
import logging
import os

import pytest

from scenario_engine.config import EngineSettings, configure_logging, load_settings
from scenario_engine.exceptions import ConfigurationError


ENV_VARS = [
    "SCENARIO_SERVICE_URL",
    "SCENARIO_REQUEST_TIMEOUT",
    "SCENARIO_LOG_CAPACITY",
    "SCENARIO_ALLOW_TEST_DURING_RUN",
    "SCENARIO_VALIDATE_BEFORE_RUN",
    "SCENARIO_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestEngineSettings:
    """配置测试类"""

    def test_defaults(self):
        settings = EngineSettings.from_env()
        assert settings.service_url == "http://localhost:3000"
        assert settings.request_timeout == 30.0
        assert settings.log_capacity == 100
        assert settings.allow_test_during_run is True
        assert settings.validate_before_run is True
        assert settings.log_level == "INFO"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SCENARIO_SERVICE_URL", "http://backend:8080")
        monkeypatch.setenv("SCENARIO_REQUEST_TIMEOUT", "5.5")
        monkeypatch.setenv("SCENARIO_LOG_CAPACITY", "10")
        monkeypatch.setenv("SCENARIO_ALLOW_TEST_DURING_RUN", "false")
        monkeypatch.setenv("SCENARIO_VALIDATE_BEFORE_RUN", "0")
        monkeypatch.setenv("SCENARIO_LOG_LEVEL", "debug")

        settings = EngineSettings.from_env()

        assert settings.service_url == "http://backend:8080"
        assert settings.request_timeout == 5.5
        assert settings.log_capacity == 10
        assert settings.allow_test_during_run is False
        assert settings.validate_before_run is False
        assert settings.log_level == "DEBUG"

    def test_invalid_integer(self, monkeypatch):
        monkeypatch.setenv("SCENARIO_LOG_CAPACITY", "many")
        with pytest.raises(ConfigurationError):
            EngineSettings.from_env()

    def test_invalid_values(self):
        with pytest.raises(ConfigurationError):
            EngineSettings(log_capacity=0)
        with pytest.raises(ConfigurationError):
            EngineSettings(request_timeout=-1)

    def test_load_settings_from_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SCENARIO_SERVICE_URL=http://from-file:3000\n", encoding="utf-8")

        try:
            settings = load_settings(str(env_file))
        finally:
            os.environ.pop("SCENARIO_SERVICE_URL", None)

        assert settings.service_url == "http://from-file:3000"

    def test_configure_logging(self):
        configure_logging("warning")
        assert logging.getLogger("scenario_engine").getEffectiveLevel() <= logging.WARNING
