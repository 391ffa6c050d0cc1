"""
Configuration management for the MCP HTTP bridge.

Handles loading, validation, and management of bridge configuration
from files and environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PATH_PREFIX = "/mcp"
DEFAULT_MAX_BODY_SIZE = 1024 * 1024
DEFAULT_TIMEOUT_MS = 30000


class ServerConfig(BaseModel):
    """Configuration for the HTTP listener and process behavior."""

    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8787, description="Bind port")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper


class CorsConfig(BaseModel):
    """Cross-origin access policy."""

    enabled: bool = Field(default=True, description="Emit CORS headers and answer preflight")
    origins: List[str] = Field(default=["*"], description="Allowed origins, '*' for any")
    credentials: bool = Field(default=False, description="Send Allow-Credentials header")
    allowed_methods: List[str] = Field(
        default=["POST", "OPTIONS"], description="Access-Control-Allow-Methods values"
    )
    allowed_headers: List[str] = Field(
        default=["Content-Type", "Authorization"],
        description="Access-Control-Allow-Headers values",
    )


class TransportConfig(BaseModel):
    """Configuration for the request/response transport."""

    path_prefix: str = Field(default=DEFAULT_PATH_PREFIX, description="Path prefix for MCP requests")
    max_body_size: int = Field(
        default=DEFAULT_MAX_BODY_SIZE, description="Maximum request body size in bytes"
    )
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, description="Exchange timeout in milliseconds")
    cors: CorsConfig = Field(default_factory=CorsConfig)

    @field_validator("path_prefix")
    @classmethod
    def validate_path_prefix(cls, v: str) -> str:
        """Path prefix must be absolute."""
        if not v.startswith("/"):
            raise ValueError(f"Invalid path prefix: {v}. Must start with '/'")
        return v

    @field_validator("max_body_size", "timeout_ms")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Sizes and timeouts must be positive."""
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v

    @property
    def timeout_seconds(self) -> float:
        """Exchange timeout in seconds."""
        return self.timeout_ms / 1000.0


class HealthConfig(BaseModel):
    """Configuration for the plain text health endpoint."""

    enabled: bool = Field(default=True, description="Serve the health endpoint")
    path: str = Field(default="/health", description="Health endpoint path")
    message: str = Field(default="OK", description="Response body")
    status: int = Field(default=200, description="Response status code")


class OAuthConfig(BaseModel):
    """OAuth discovery metadata served under /.well-known/."""

    enabled: bool = Field(default=False, description="Serve OAuth discovery endpoints")
    authorization_server: Optional[Dict[str, Any]] = Field(
        default=None, description="Authorization server metadata document"
    )
    protected_resource: Optional[Dict[str, Any]] = Field(
        default=None, description="Protected resource metadata document"
    )


class Config(BaseModel):
    """Main configuration object."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="0.1.0", description="Configuration version")
    name: str = Field(default="mcp-http-bridge", description="Server name reported to clients")
    server: ServerConfig = Field(default_factory=ServerConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    oauth: OAuthConfig = Field(default_factory=OAuthConfig)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment variables.

    Args:
        config_path: Path to configuration file. If None, looks for
                    MCP_BRIDGE_CONFIG_PATH environment variable.

    Returns:
        Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file specified but not found
        ValueError: If configuration is invalid
    """
    if config_path is None:
        env_path = os.getenv("MCP_BRIDGE_CONFIG_PATH")
        if env_path:
            config_path = Path(env_path)

    config_data: Dict[str, Any] = {}
    if config_path and config_path.exists():
        with open(config_path, "r") as f:
            config_data = json.load(f)
    elif config_path:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    env_overrides = _env_overrides()
    if env_overrides:
        config_data = _deep_merge(config_data, env_overrides)

    return Config(**config_data)


def _env_overrides() -> Dict[str, Any]:
    """Collect configuration overrides from MCP_BRIDGE_* variables."""
    overrides: Dict[str, Any] = {}

    log_level = os.getenv("MCP_BRIDGE_LOG_LEVEL")
    if log_level:
        overrides.setdefault("server", {})["log_level"] = log_level

    host = os.getenv("MCP_BRIDGE_HOST")
    if host:
        overrides.setdefault("server", {})["host"] = host

    port = os.getenv("MCP_BRIDGE_PORT")
    if port:
        overrides.setdefault("server", {})["port"] = int(port)

    path_prefix = os.getenv("MCP_BRIDGE_PATH_PREFIX")
    if path_prefix:
        overrides.setdefault("transport", {})["path_prefix"] = path_prefix

    timeout_ms = os.getenv("MCP_BRIDGE_TIMEOUT_MS")
    if timeout_ms:
        overrides.setdefault("transport", {})["timeout_ms"] = int(timeout_ms)

    max_body_size = os.getenv("MCP_BRIDGE_MAX_BODY_SIZE")
    if max_body_size:
        overrides.setdefault("transport", {})["max_body_size"] = int(max_body_size)

    origins = os.getenv("MCP_BRIDGE_CORS_ORIGINS")
    if origins:
        overrides.setdefault("transport", {}).setdefault("cors", {})["origins"] = [
            origin.strip() for origin in origins.split(",") if origin.strip()
        ]

    return overrides


def create_default_config(config_path: Path) -> None:
    """
    Create a default configuration file.

    Args:
        config_path: Path where to create the configuration file
    """
    default_config = {
        "version": "0.1.0",
        "name": "mcp-http-bridge",
        "server": {
            "log_level": "INFO",
            "host": "127.0.0.1",
            "port": 8787,
        },
        "transport": {
            "path_prefix": DEFAULT_PATH_PREFIX,
            "max_body_size": DEFAULT_MAX_BODY_SIZE,
            "timeout_ms": DEFAULT_TIMEOUT_MS,
            "cors": {
                "enabled": True,
                "origins": ["*"],
                "credentials": False,
                "allowed_methods": ["POST", "OPTIONS"],
                "allowed_headers": ["Content-Type", "Authorization"],
            },
        },
        "health": {
            "enabled": True,
            "path": "/health",
            "message": "OK",
            "status": 200,
        },
        "oauth": {
            "enabled": False,
            "authorization_server": None,
            "protected_resource": None,
        },
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(default_config, f, indent=2)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result
