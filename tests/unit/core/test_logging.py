"""
Unit Tests for Centralized Logging.

Tests the logging configuration, handler wiring, and source handling.
"""

import logging
from logging.handlers import RotatingFileHandler
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture(autouse=True)
def _reset_logging_config():
    """Reset the cached logging config and root handlers around each test."""
    from modules.core import logging as logging_module

    root_logger = logging.getLogger()
    saved_handlers = root_logger.handlers[:]
    saved_level = root_logger.level
    logging_module._logging_config = None
    yield
    logging_module._logging_config = None
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        if handler not in saved_handlers:
            handler.close()
    for handler in saved_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(saved_level)


@pytest.fixture
def logging_config() -> dict:
    """A logging configuration shaped like logging.yaml."""
    return {
        "level": "INFO",
        "format": "json",
        "handlers": {
            "console": {"enabled": True},
            "file": {
                "enabled": False,
                "path": "logs/client.jsonl",
                "max_bytes": 10485760,
                "backup_count": 5,
            },
        },
    }


class TestValidSources:
    """Tests for VALID_SOURCES constant."""

    def test_valid_sources_contains_expected_values(self):
        """Should contain all recognized log source values."""
        from modules.core.logging import VALID_SOURCES

        assert VALID_SOURCES == frozenset({"cli", "client", "query", "internal", "unknown"})

    def test_valid_sources_is_frozenset(self):
        from modules.core.logging import VALID_SOURCES

        assert isinstance(VALID_SOURCES, frozenset)


class TestLoggingConfigLoading:
    """Tests for logging configuration loading from YAML."""

    def test_reads_yaml_file(self, logging_config):
        """Should load configuration through load_yaml_config."""
        from modules.core import logging as logging_module

        with patch("modules.core.logging.load_yaml_config", return_value=logging_config) as mock_load:
            config = logging_module._load_logging_config()

        mock_load.assert_called_once_with("logging.yaml")
        assert config["level"] == "INFO"
        assert config["handlers"]["file"]["path"] == "logs/client.jsonl"

    def test_raises_if_file_missing(self):
        """Should raise FileNotFoundError if logging.yaml doesn't exist."""
        from modules.core import logging as logging_module

        with patch(
            "modules.core.logging.load_yaml_config",
            side_effect=FileNotFoundError("Configuration file not found: logging.yaml"),
        ):
            with pytest.raises(FileNotFoundError, match="logging.yaml"):
                logging_module._load_logging_config()

    def test_config_is_cached(self, logging_config):
        """Should load the YAML only once."""
        from modules.core import logging as logging_module

        with patch("modules.core.logging.load_yaml_config", return_value=logging_config) as mock_load:
            first = logging_module._load_logging_config()
            second = logging_module._load_logging_config()

        assert first is second
        mock_load.assert_called_once()

    def test_shipped_logging_yaml_loads(self):
        """The repository's logging.yaml should parse."""
        from modules.core import logging as logging_module

        config = logging_module._load_logging_config()
        assert config["level"] == "WARNING"
        assert config["handlers"]["file"]["enabled"] is False


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_configures_root_level(self, logging_config):
        from modules.core.logging import setup_logging

        with patch("modules.core.logging._load_logging_config", return_value=logging_config):
            setup_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_config(self, logging_config):
        from modules.core.logging import setup_logging

        with patch("modules.core.logging._load_logging_config", return_value=logging_config):
            setup_logging()

        assert logging.getLogger().level == logging.INFO

    def test_console_handler_writes_to_stderr(self, logging_config):
        """Console logs go to stderr so stdout stays machine readable."""
        import sys

        from modules.core.logging import setup_logging

        with patch("modules.core.logging._load_logging_config", return_value=logging_config):
            setup_logging(format_type="console")

        stream_handlers = [
            h for h in logging.getLogger().handlers
            if type(h) is logging.StreamHandler
        ]
        assert len(stream_handlers) == 1
        assert stream_handlers[0].stream is sys.stderr

    def test_console_can_be_disabled(self, logging_config):
        from modules.core.logging import setup_logging

        with patch("modules.core.logging._load_logging_config", return_value=logging_config):
            setup_logging(enable_console=False)

        assert logging.getLogger().handlers == []

    def test_file_logging_enabled(self, tmp_path, logging_config):
        """Should create a single RotatingFileHandler for the JSONL file."""
        from modules.core.logging import setup_logging

        log_file = tmp_path / "logs" / "client.jsonl"

        with patch("modules.core.logging._load_logging_config", return_value=logging_config), \
             patch("modules.core.logging._resolve_log_path", return_value=log_file):
            setup_logging(enable_console=False, enable_file_logging=True)

        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 10485760
        assert file_handlers[0].backupCount == 5
        assert log_file.parent.exists()

    def test_repeated_setup_replaces_handlers(self, logging_config):
        """Calling setup twice should not duplicate handlers."""
        from modules.core.logging import setup_logging

        with patch("modules.core.logging._load_logging_config", return_value=logging_config):
            setup_logging()
            setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_quiets_http_libraries(self, logging_config):
        from modules.core.logging import setup_logging

        with patch("modules.core.logging._load_logging_config", return_value=logging_config):
            setup_logging(level="DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING


class TestResolveLogPath:
    """Tests for _resolve_log_path."""

    def test_relative_to_project_root(self):
        from modules.core.config import find_project_root
        from modules.core.logging import _resolve_log_path

        assert _resolve_log_path("logs/client.jsonl") == find_project_root() / "logs" / "client.jsonl"


class TestLogWithSource:
    """Tests for log_with_source helper."""

    def test_passes_source(self):
        from modules.core.logging import log_with_source

        logger = MagicMock()
        log_with_source(logger, "client", "debug", "API request", path="/api/query")

        logger.debug.assert_called_once_with("API request", source="client", path="/api/query")

    def test_invalid_level_raises(self):
        from modules.core.logging import log_with_source

        logger = MagicMock(spec=["info"])
        with pytest.raises(AttributeError):
            log_with_source(logger, "client", "verbose", "message")


class TestGetLogger:
    """Tests for get_logger."""

    def test_returns_usable_logger(self):
        from modules.core.logging import get_logger

        logger = get_logger("modules.query.crdb")
        assert hasattr(logger, "info")
        assert hasattr(logger, "warning")
