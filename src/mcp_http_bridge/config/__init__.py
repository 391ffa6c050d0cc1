"""Configuration management."""

from .settings import (
    Config,
    CorsConfig,
    HealthConfig,
    OAuthConfig,
    ServerConfig,
    TransportConfig,
    create_default_config,
    load_config,
)

__all__ = [
    "Config",
    "CorsConfig",
    "HealthConfig",
    "OAuthConfig",
    "ServerConfig",
    "TransportConfig",
    "load_config",
    "create_default_config",
]
