"""
Main entry point for the MCP HTTP bridge.

This module provides the command-line interface for the bridge,
handling startup and configuration.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import structlog

from .config.settings import load_config
from .server import BridgeServer
from .utils.logging import setup_logging


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level",
)
@click.option("--host", help="Bind address (overrides configuration)")
@click.option("--port", type=int, help="Bind port (overrides configuration)")
def main(
    config: Optional[Path] = None,
    log_level: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    """
    MCP HTTP bridge - serves MCP over stateless HTTP request/response.
    """
    logger = structlog.get_logger()
    try:
        config_data = load_config(config_path=config)

        if log_level:
            config_data.server.log_level = log_level.upper()
        if host:
            config_data.server.host = host
        if port:
            config_data.server.port = port

        setup_logging(config_data.server.log_level)
        logger = structlog.get_logger()

        logger.info(
            "Starting MCP HTTP bridge",
            version=config_data.version,
            config_file=str(config) if config else "default",
            log_level=config_data.server.log_level,
        )

        server = BridgeServer(config_data)
        asyncio.run(server.run())

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except Exception as e:
        logger.error("Server startup failed", error=str(e), exc_info=True)
        sys.exit(1)


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    help="Path to save configuration file",
)
def init_config(config: Optional[Path] = None) -> None:
    """Initialize a configuration file with default settings."""
    from .config.settings import create_default_config

    config_path = config or Path("config.json")

    if config_path.exists():
        click.echo(f"Configuration file already exists: {config_path}")
        if not click.confirm("Overwrite?"):
            return

    try:
        create_default_config(config_path)
        click.echo(f"Created configuration file: {config_path}")
        click.echo("\nNext steps:")
        click.echo(f"1. Edit {config_path} to set CORS origins and limits")
        click.echo(f"2. Run: mcp-http-bridge serve --config {config_path}")
    except Exception as e:
        click.echo(f"Failed to create configuration file: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(package_name="mcp-http-bridge")
def cli() -> None:
    """MCP HTTP bridge CLI."""
    pass


cli.add_command(main, name="serve")
cli.add_command(init_config, name="init")


if __name__ == "__main__":
    cli()
