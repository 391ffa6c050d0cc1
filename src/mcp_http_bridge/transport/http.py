"""
aiohttp front end for the MCP HTTP bridge.

Adapts aiohttp requests to IncomingRequest values, and serves the health
and OAuth discovery endpoints next to the bridge's catch-all route.
"""

from typing import Any, Mapping, Optional

import structlog
from aiohttp import web

from ..config.settings import HealthConfig, OAuthConfig
from .bridge import MCPHttpBridge
from .messages import IncomingRequest, OutgoingResponse
from .validation import BodyTooLargeError

logger = structlog.get_logger(__name__)

BRIDGE_KEY = web.AppKey("bridge", MCPHttpBridge)
ENV_KEY = web.AppKey("env", dict)

OAUTH_AUTHORIZATION_SERVER_PATH = "/.well-known/oauth-authorization-server"
OAUTH_PROTECTED_RESOURCE_PATH = "/.well-known/oauth-protected-resource"


def to_incoming_request(request: web.Request) -> IncomingRequest:
    """Wrap an aiohttp request without reading its body."""

    async def read_body() -> bytes:
        try:
            return await request.read()
        except web.HTTPRequestEntityTooLarge as e:
            raise BodyTooLargeError(e.text or "Payload Too Large") from e

    return IncomingRequest(
        method=request.method,
        path=request.path,
        headers={name: value for name, value in request.headers.items()},
        body_reader=read_body,
    )


def to_web_response(response: OutgoingResponse) -> web.Response:
    return web.Response(
        status=response.status,
        headers=response.headers,
        body=response.body or None,
    )


async def handle_mcp(request: web.Request) -> web.Response:
    """Catch-all route: every request not claimed by another route."""
    bridge = request.app[BRIDGE_KEY]
    outgoing = await bridge.handle_request(to_incoming_request(request), env=request.app[ENV_KEY])
    return to_web_response(outgoing)


def _health_handler(config: HealthConfig):
    async def health(request: web.Request) -> web.Response:
        return web.Response(
            status=config.status,
            text=config.message,
            content_type="text/plain",
        )

    return health


def _metadata_handler(document: Optional[Mapping[str, Any]], missing_message: str):
    async def metadata(request: web.Request) -> web.Response:
        if not document:
            return web.Response(status=404, text=missing_message, content_type="text/plain")
        return web.json_response(dict(document))

    return metadata


def create_app(
    bridge: MCPHttpBridge,
    health: Optional[HealthConfig] = None,
    oauth: Optional[OAuthConfig] = None,
    env: Optional[Mapping[str, Any]] = None,
) -> web.Application:
    """
    Build the aiohttp application serving the bridge.

    Args:
        bridge: Bridge handling MCP requests
        health: Health endpoint configuration (disabled if None)
        oauth: OAuth discovery configuration (disabled if None)
        env: Environment mapping passed to handlers with every message

    Returns:
        Configured aiohttp application
    """
    # aiohttp enforces the real body size while reading; the bridge
    # separately rejects oversized declared lengths up front.
    app = web.Application(client_max_size=bridge.config.max_body_size)
    app[BRIDGE_KEY] = bridge
    app[ENV_KEY] = dict(env or {})

    if health and health.enabled:
        app.router.add_get(health.path, _health_handler(health))

    if oauth and oauth.enabled:
        app.router.add_get(
            OAUTH_AUTHORIZATION_SERVER_PATH,
            _metadata_handler(
                oauth.authorization_server, "OAuth authorization server not configured"
            ),
        )
        app.router.add_get(
            OAUTH_PROTECTED_RESOURCE_PATH,
            _metadata_handler(oauth.protected_resource, "OAuth protected resource not configured"),
        )

    app.router.add_route("*", "/{tail:.*}", handle_mcp)

    logger.debug(
        "Created HTTP application",
        path_prefix=bridge.config.path_prefix,
        health=bool(health and health.enabled),
        oauth=bool(oauth and oauth.enabled),
    )
    return app

