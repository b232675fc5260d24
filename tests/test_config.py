"""Tests for configuration."""

import logging

import pytest
from pydantic import ValidationError

from sitepulse import constants
from sitepulse.browser_config import NavigatorConfig
from sitepulse.config import AlertThresholds, Config, default_thresholds, settings
from sitepulse.logging_config import get_logger, setup_logging


class TestConfig:
    """Test cases for Config."""

    def test_defaults(self):
        config = Config()

        assert config.max_pages == 20
        assert config.max_depth == 3
        assert config.navigation_timeout_ms == 30000
        assert config.wait_until == "networkidle"
        assert config.settle_ms == 500

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SITEPULSE_MAX_PAGES", "12")
        monkeypatch.setenv("SITEPULSE_MAX_DEPTH", "1")
        monkeypatch.setenv("SITEPULSE_HEADLESS", "false")
        monkeypatch.setenv("SITEPULSE_SIMULATE_INTERACTIONS", "0")
        monkeypatch.setenv("SITEPULSE_BROWSER", "firefox")

        config = Config.from_env()

        assert config.max_pages == 12
        assert config.max_depth == 1
        assert config.headless is False
        assert config.simulate_interactions is False
        assert config.browser_type == "firefox"

    def test_from_env_defaults(self, monkeypatch):
        for name in ("SITEPULSE_MAX_PAGES", "SITEPULSE_SETTLE_MS", "SITEPULSE_HEADLESS"):
            monkeypatch.delenv(name, raising=False)

        config = Config.from_env()

        assert config.max_pages == constants.DEFAULT_MAX_PAGES
        assert config.settle_ms == constants.DEFAULT_SETTLE_MS
        assert config.headless is True


class TestAlertThresholds:
    """Thresholds are fixed values."""

    def test_values(self):
        assert default_thresholds.lcp_critical == 4000
        assert default_thresholds.error_rate_warning == 0.05
        assert default_thresholds.payload_size_critical == 5 * 1024 * 1024

    def test_read_only(self):
        with pytest.raises(AttributeError):
            default_thresholds.lcp_critical = 1

    def test_to_dict(self):
        data = AlertThresholds().to_dict()
        assert data["score_warning"] == 0.7
        assert len(data) == 20


class TestNavigatorConfig:
    """Test cases for NavigatorConfig validation."""

    def test_from_config(self):
        nav_config = NavigatorConfig.from_config(
            Config(headless=False, navigation_timeout_ms=15000, wait_until="load"),
            user_agent="sitepulse-test",
        )

        assert nav_config.headless is False
        assert nav_config.timeout == 15000
        assert nav_config.wait_until == "load"
        assert nav_config.user_agent == "sitepulse-test"

    def test_rejects_invalid_values(self):
        with pytest.raises(ValidationError):
            NavigatorConfig(browser_type="netscape")
        with pytest.raises(ValidationError):
            NavigatorConfig(timeout=10)

    def test_user_agent_falls_back_to_environment(self, monkeypatch):
        monkeypatch.setattr(settings, "USER_AGENT", "sitepulse-env")

        assert NavigatorConfig.from_config(Config()).user_agent == "sitepulse-env"
        assert NavigatorConfig.from_config(Config(), user_agent="explicit").user_agent == "explicit"


class TestLogging:
    """Test cases for logging setup."""

    def test_setup_logging(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"

        setup_logging(level="DEBUG", log_file=str(log_file))
        get_logger("sitepulse.test").debug("hello")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("playwright").level == logging.WARNING
        assert "hello" in log_file.read_text()

    def test_level_defaults_to_environment(self, monkeypatch):
        monkeypatch.setattr(settings, "LOG_LEVEL", "warning")
        monkeypatch.setattr(settings, "LOG_FILE", None)

        setup_logging()

        assert logging.getLogger().level == logging.WARNING
