"""
Unit tests for configuration loading.
"""

import json
import warnings

import pytest
from click.testing import CliRunner
from pydantic import ValidationError

from mcp_http_bridge.config.settings import (
    Config,
    ServerConfig,
    TransportConfig,
    create_default_config,
    load_config,
)
from mcp_http_bridge.main import cli

ENV_VARS = [
    "MCP_BRIDGE_CONFIG_PATH",
    "MCP_BRIDGE_LOG_LEVEL",
    "MCP_BRIDGE_HOST",
    "MCP_BRIDGE_PORT",
    "MCP_BRIDGE_PATH_PREFIX",
    "MCP_BRIDGE_TIMEOUT_MS",
    "MCP_BRIDGE_MAX_BODY_SIZE",
    "MCP_BRIDGE_CORS_ORIGINS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfigModels:
    """Test defaults and validators."""

    def test_defaults(self):
        config = Config()

        assert config.transport.path_prefix == "/mcp"
        assert config.transport.max_body_size == 1048576
        assert config.transport.timeout_ms == 30000
        assert config.transport.timeout_seconds == 30.0
        assert config.transport.cors.enabled
        assert config.transport.cors.origins == ["*"]
        assert not config.transport.cors.credentials

    def test_log_level_is_normalized(self):
        assert ServerConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            ServerConfig(log_level="LOUD")

    def test_relative_path_prefix(self):
        with pytest.raises(ValidationError):
            TransportConfig(path_prefix="mcp")

    @pytest.mark.parametrize("field", ["max_body_size", "timeout_ms"])
    def test_non_positive_limits(self, field):
        with pytest.raises(ValidationError):
            TransportConfig(**{field: 0})

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            Config(unknown=True)

    def test_models_emit_no_deprecation_warnings(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            config = Config(server={"log_level": "debug"}, transport={"path_prefix": "/rpc"})
            dumped = config.model_dump()

        assert dumped["server"]["log_level"] == "DEBUG"
        assert dumped["transport"]["path_prefix"] == "/rpc"


class TestLoadConfig:
    """Test file and environment loading."""

    def test_no_file_gives_defaults(self):
        assert load_config() == Config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.json")

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "transport": {
                        "path_prefix": "/rpc",
                        "cors": {"origins": ["https://a.com"], "credentials": True},
                    }
                }
            )
        )

        config = load_config(path)

        assert config.transport.path_prefix == "/rpc"
        assert config.transport.cors.origins == ["https://a.com"]
        assert config.transport.cors.credentials
        assert config.transport.timeout_ms == 30000

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"name": "from-env-path"}))
        monkeypatch.setenv("MCP_BRIDGE_CONFIG_PATH", str(path))

        assert load_config().name == "from-env-path"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"transport": {"timeout_ms": 1000, "path_prefix": "/rpc"}}))
        monkeypatch.setenv("MCP_BRIDGE_TIMEOUT_MS", "250")
        monkeypatch.setenv("MCP_BRIDGE_PORT", "9000")
        monkeypatch.setenv("MCP_BRIDGE_CORS_ORIGINS", "https://a.com, https://b.com,")

        config = load_config(path)

        assert config.transport.timeout_ms == 250
        assert config.transport.path_prefix == "/rpc"
        assert config.server.port == 9000
        assert config.transport.cors.origins == ["https://a.com", "https://b.com"]

    def test_invalid_env_value(self, monkeypatch):
        monkeypatch.setenv("MCP_BRIDGE_MAX_BODY_SIZE", "-1")

        with pytest.raises(ValidationError):
            load_config()

    def test_create_default_config(self, tmp_path):
        path = tmp_path / "nested" / "config.json"

        create_default_config(path)

        assert load_config(path) == Config()


class TestInitCommand:
    """Test the init CLI command."""

    def test_writes_config(self, tmp_path):
        path = tmp_path / "config.json"

        result = CliRunner().invoke(cli, ["init", "--config", str(path)])

        assert result.exit_code == 0
        assert "Created configuration file" in result.output
        assert json.loads(path.read_text())["transport"]["path_prefix"] == "/mcp"

    def test_keeps_existing_file_when_declined(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{}")

        result = CliRunner().invoke(cli, ["init", "--config", str(path)], input="n\n")

        assert result.exit_code == 0
        assert path.read_text() == "{}"
