"""
Unit Tests for Configuration Management.

Black box tests against the public interface of config.py.
Tests run against the real project files (YAML configs).
Failure scenarios use tmp_path to create controlled filesystems.
"""

import pytest

from modules.core.config import (
    AppConfig,
    Settings,
    find_project_root,
    get_app_config,
    get_service_endpoint,
    get_settings,
    load_yaml_config,
    validate_project_root,
)
from modules.core.config_schema import ApplicationSchema, DefaultsSchema, LoggingSchema, ServiceSchema


@pytest.fixture(autouse=True)
def _clear_config_cache():
    """Clear lru_cache between tests so each test gets a fresh load."""
    get_settings.cache_clear()
    get_app_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_app_config.cache_clear()


def _write_project(tmp_path, application: str, logging_yaml: str | None = None) -> None:
    """Lay out a minimal project tree under tmp_path."""
    (tmp_path / ".project_root").touch()
    settings_dir = tmp_path / "config" / "settings"
    settings_dir.mkdir(parents=True)
    (settings_dir / "application.yaml").write_text(application)
    (settings_dir / "logging.yaml").write_text(logging_yaml or (
        "level: INFO\n"
        "format: json\n"
        "handlers:\n"
        "  console: {enabled: true}\n"
        "  file: {enabled: false, path: logs/client.jsonl, max_bytes: 1, backup_count: 1}\n"
    ))


APPLICATION_YAML = """
name: Test
version: "9.9.9"
description: test
environment: test
service:
  endpoint: "https://coroner.example.com:4097/"
  timeout: 5
defaults:
  universe: acme
"""


# =============================================================================
# find_project_root
# =============================================================================


class TestFindProjectRoot:
    """Tests for .project_root marker discovery."""

    def test_finds_root_from_project_directory(self):
        root = find_project_root()
        assert root.is_dir()
        assert (root / ".project_root").exists()

    def test_finds_root_from_subdirectory(self, monkeypatch):
        root = find_project_root()
        monkeypatch.chdir(root / "modules")
        assert find_project_root() == root

    def test_config_directory_exists_at_root(self):
        root = find_project_root()
        assert (root / "config" / "settings").is_dir()

    def test_raises_when_no_marker_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(RuntimeError, match="Project root not found"):
            find_project_root()


class TestValidateProjectRoot:
    """Tests for the SystemExit wrapper around find_project_root."""

    def test_returns_path_when_marker_exists(self):
        root = validate_project_root()
        assert (root / ".project_root").exists()

    def test_exits_when_marker_missing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit):
            validate_project_root()


# =============================================================================
# load_yaml_config
# =============================================================================


class TestLoadYamlConfig:
    """Tests for YAML file loading from config/settings/."""

    def test_loads_application_yaml_as_dict(self):
        data = load_yaml_config("application.yaml")
        assert isinstance(data, dict)
        assert "service" in data
        assert "defaults" in data

    def test_loads_all_config_files(self):
        for filename in ["application.yaml", "logging.yaml"]:
            data = load_yaml_config(filename)
            assert isinstance(data, dict), f"{filename} did not return a dict"
            assert len(data) > 0, f"{filename} returned empty dict"

    def test_raises_for_nonexistent_file(self):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_yaml_config("does_not_exist.yaml")

    def test_returns_empty_dict_for_empty_yaml(self, tmp_path, monkeypatch):
        """An empty YAML file should return {} rather than None."""
        (tmp_path / ".project_root").touch()
        settings_dir = tmp_path / "config" / "settings"
        settings_dir.mkdir(parents=True)
        (settings_dir / "empty.yaml").write_text("")
        monkeypatch.chdir(tmp_path)

        assert load_yaml_config("empty.yaml") == {}


# =============================================================================
# Settings (secrets from .env)
# =============================================================================


class TestSettings:
    """Tests for secret loading from config/.env and the environment."""

    def test_token_defaults_to_empty(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CORONER_TOKEN", raising=False)
        _write_project(tmp_path, APPLICATION_YAML)
        monkeypatch.chdir(tmp_path)

        assert get_settings().coroner_token == ""

    def test_token_from_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CORONER_TOKEN", raising=False)
        _write_project(tmp_path, APPLICATION_YAML)
        (tmp_path / "config" / ".env").write_text("CORONER_TOKEN=file-token\n")
        monkeypatch.chdir(tmp_path)

        assert get_settings().coroner_token == "file-token"

    def test_environment_overrides_env_file(self, tmp_path, monkeypatch):
        _write_project(tmp_path, APPLICATION_YAML)
        (tmp_path / "config" / ".env").write_text("CORONER_TOKEN=file-token\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CORONER_TOKEN", "env-token")

        assert get_settings().coroner_token == "env-token"

    def test_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_unknown_keys_are_ignored(self, monkeypatch):
        monkeypatch.setenv("UNRELATED_SECRET", "x")
        assert isinstance(Settings(), Settings)


# =============================================================================
# AppConfig (validated YAML)
# =============================================================================


class TestAppConfig:
    """Tests for schema-validated application configuration."""

    def test_shipped_configuration_validates(self):
        config = get_app_config()

        assert isinstance(config, AppConfig)
        assert isinstance(config.application, ApplicationSchema)
        assert isinstance(config.application.service, ServiceSchema)
        assert isinstance(config.application.defaults, DefaultsSchema)
        assert isinstance(config.logging, LoggingSchema)

    def test_shipped_defaults(self):
        defaults = get_app_config().application.defaults
        assert defaults.table == "objects"
        assert defaults.age == "1M"
        assert defaults.universe is None

    def test_app_config_is_cached(self):
        assert get_app_config() is get_app_config()

    def test_optional_fields_have_defaults(self, tmp_path, monkeypatch):
        _write_project(tmp_path, APPLICATION_YAML)
        monkeypatch.chdir(tmp_path)

        application = get_app_config().application
        assert application.service.insecure is False
        assert application.defaults.table == "objects"
        assert application.defaults.universe == "acme"

    def test_unknown_key_is_rejected(self, tmp_path, monkeypatch):
        _write_project(tmp_path, APPLICATION_YAML + "surprise: true\n")
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ValueError, match="Invalid configuration in application.yaml"):
            get_app_config()

    def test_missing_section_is_rejected(self, tmp_path, monkeypatch):
        _write_project(tmp_path, "name: Test\nversion: '1'\ndescription: d\nenvironment: e\n")
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ValueError, match="application.yaml"):
            get_app_config()


class TestGetServiceEndpoint:
    """Tests for get_service_endpoint."""

    def test_shipped_endpoint(self):
        endpoint, timeout, insecure = get_service_endpoint()
        assert endpoint == "https://localhost:4097"
        assert timeout == 30.0
        assert insecure is False

    def test_trailing_slash_is_stripped(self, tmp_path, monkeypatch):
        _write_project(tmp_path, APPLICATION_YAML)
        monkeypatch.chdir(tmp_path)

        endpoint, timeout, _ = get_service_endpoint()
        assert endpoint == "https://coroner.example.com:4097"
        assert timeout == 5.0
