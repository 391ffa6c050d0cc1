"""
Main MCP HTTP bridge server implementation.

Coordinates the bridge, the bundled MCP engine and the aiohttp
listener to serve MCP over plain HTTP request/response.
"""

import asyncio
import signal
import sys
from typing import Any, Dict, Mapping, Optional

import structlog
from aiohttp import web

from .config.settings import Config
from .protocol.handlers import MCPHandler, ToolExecutor
from .protocol.schemas import ServerInfo, Tool
from .transport.bridge import MCPHttpBridge
from .transport.http import create_app

logger = structlog.get_logger(__name__)


class BridgeServer:
    """
    MCP server reachable over stateless HTTP.

    Wires the bundled MCP engine into the bridge's handler registry and
    serves the bridge with aiohttp. Additional handlers can subscribe
    through ``bridge.subscribe``.
    """

    def __init__(
        self,
        config: Config,
        env: Optional[Mapping[str, Any]] = None,
        scheduler: Any = None,
    ):
        """
        Initialize the server.

        Args:
            config: Server configuration
            env: Environment mapping passed to handlers with every message
            scheduler: Timer source for exchange deadlines
        """
        self.config = config
        self.env = dict(env or {})
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._runner: Optional[web.AppRunner] = None

        self.bridge = MCPHttpBridge(config.transport, scheduler=scheduler)
        self.mcp_handler = MCPHandler(
            server_info=ServerInfo(
                name=config.name,
                version=config.version,
            )
        )
        self.mcp_handler.attach(self.bridge.registry)

    def add_tool(self, tool: Tool, executor: ToolExecutor) -> None:
        """Expose a tool through the bundled MCP engine."""
        self.mcp_handler.register_tool(tool, executor)

    def create_app(self) -> web.Application:
        """Build the aiohttp application for this server."""
        return create_app(
            self.bridge,
            health=self.config.health,
            oauth=self.config.oauth,
            env=self.env,
        )

    async def start(self) -> None:
        """Start listening for HTTP requests."""
        if self._running:
            return

        logger.info("Starting MCP HTTP bridge")

        try:
            self._runner = web.AppRunner(self.create_app())
            await self._runner.setup()
            site = web.TCPSite(self._runner, self.config.server.host, self.config.server.port)
            await site.start()

            self._running = True

            logger.info(
                "Server started successfully",
                host=self.config.server.host,
                port=self.config.server.port,
                path_prefix=self.config.transport.path_prefix,
                tools_registered=len(self.mcp_handler.tools),
                handlers=len(self.bridge.registry),
                cors_enabled=self.config.transport.cors.enabled,
            )

        except Exception as e:
            logger.error("Failed to start server", error=str(e), exc_info=True)
            await self._cleanup()
            raise

    async def stop(self) -> None:
        """Stop the server."""
        if not self._running:
            return

        logger.info("Stopping MCP HTTP bridge")

        self._running = False
        self._shutdown_event.set()
        await self._cleanup()

        logger.info("Server stopped")

    async def _cleanup(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    async def run(self) -> None:
        """Run the server until a shutdown signal arrives."""
        try:
            await self.start()
            self._setup_signal_handlers()

            try:
                await self._shutdown_event.wait()
            except asyncio.CancelledError:
                logger.info("Server operation cancelled")

        except Exception as e:
            logger.error("Server error", error=str(e), exc_info=True)
            raise
        finally:
            await self.stop()
            self.mcp_handler.detach()
            self.bridge.close()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()

            def signal_handler(signum: int) -> None:
                logger.info(f"Received signal {signum}, initiating shutdown")
                self._shutdown_event.set()

            for signum in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(signum, signal_handler, signum)

    @property
    def running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def info(self) -> Dict[str, Any]:
        """Server information."""
        return {
            "name": self.config.name,
            "version": self.config.version,
            "transport": "http",
            "path_prefix": self.config.transport.path_prefix,
            "tools": [tool.name for tool in self.mcp_handler.tools],
            "handlers": len(self.bridge.registry),
        }
