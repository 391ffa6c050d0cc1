"""
Tests for the aiohttp front end.
"""

import pytest
from aiohttp import test_utils

from mcp_http_bridge.config.settings import Config, HealthConfig, OAuthConfig, TransportConfig
from mcp_http_bridge.protocol.schemas import Tool, ToolParameter, ToolSchema
from mcp_http_bridge.server import BridgeServer
from mcp_http_bridge.transport.bridge import MCPHttpBridge
from mcp_http_bridge.transport.http import (
    OAUTH_AUTHORIZATION_SERVER_PATH,
    OAUTH_PROTECTED_RESOURCE_PATH,
    create_app,
)


def serve(app):
    return test_utils.TestClient(test_utils.TestServer(app))


@pytest.fixture
def echo_tool():
    return Tool(
        name="echo",
        description="Echo a message",
        inputSchema=ToolSchema(
            properties={"message": ToolParameter(type="string")},
            required=["message"],
        ),
    )


class TestBridgeServerHttp:
    """Serve the bundled engine over a real socket."""

    @pytest.mark.asyncio
    async def test_tools_call_end_to_end(self, test_config, echo_tool):
        async def echo(arguments):
            return arguments["message"]

        server = BridgeServer(test_config)
        server.add_tool(echo_tool, echo)

        async with serve(server.create_app()) as client:
            resp = await client.post(
                "/mcp",
                json={
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "tools/call",
                    "params": {"name": "echo", "arguments": {"message": "hi"}},
                },
            )

            assert resp.status == 200
            assert resp.headers["Access-Control-Allow-Origin"] == "*"
            body = await resp.json()

        assert body == {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {"content": [{"type": "text", "text": "hi"}], "isError": False},
        }

    @pytest.mark.asyncio
    async def test_tools_list(self, test_config, echo_tool):
        server = BridgeServer(test_config)
        server.add_tool(echo_tool, lambda arguments: None)

        async with serve(server.create_app()) as client:
            resp = await client.post("/mcp", json={"jsonrpc": "2.0", "id": "x", "method": "tools/list"})
            body = await resp.json()

        assert [tool["name"] for tool in body["result"]["tools"]] == ["echo"]

    @pytest.mark.asyncio
    async def test_timeout_without_handlers(self, test_config):
        server = BridgeServer(test_config)
        server.mcp_handler.detach()

        async with serve(server.create_app()) as client:
            resp = await client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})

            assert resp.status == 500
            assert await resp.json() == {"error": {"code": -32603, "message": "Request timeout"}}

    def test_info(self, test_config, echo_tool):
        server = BridgeServer(test_config)
        server.add_tool(echo_tool, lambda arguments: None)

        info = server.info

        assert info["name"] == "mcp-http-bridge-test"
        assert info["transport"] == "http"
        assert info["path_prefix"] == "/mcp"
        assert info["tools"] == ["echo"]
        assert info["handlers"] == 1
        assert not server.running


class TestCreateApp:
    """Routing around the bridge's catch-all route."""

    @pytest.fixture
    def bridge(self):
        return MCPHttpBridge(TransportConfig(max_body_size=1000, timeout_ms=1000))

    @pytest.mark.asyncio
    async def test_health(self, bridge):
        app = create_app(bridge, health=HealthConfig())

        async with serve(app) as client:
            resp = await client.get("/health")

            assert resp.status == 200
            assert await resp.text() == "OK"

    @pytest.mark.asyncio
    async def test_custom_health(self, bridge):
        app = create_app(bridge, health=HealthConfig(path="/status", message="ready", status=201))

        async with serve(app) as client:
            resp = await client.get("/status")

            assert resp.status == 201
            assert await resp.text() == "ready"

    @pytest.mark.asyncio
    async def test_health_disabled(self, bridge):
        app = create_app(bridge, health=HealthConfig(enabled=False))

        async with serve(app) as client:
            resp = await client.get("/health")

            assert resp.status == 404
            assert await resp.text() == "Not Found"

    @pytest.mark.asyncio
    async def test_oauth_metadata(self, bridge):
        document = {"issuer": "https://auth.example.com"}
        app = create_app(bridge, oauth=OAuthConfig(enabled=True, authorization_server=document))

        async with serve(app) as client:
            resp = await client.get(OAUTH_AUTHORIZATION_SERVER_PATH)
            assert resp.status == 200
            assert await resp.json() == document

            resp = await client.get(OAUTH_PROTECTED_RESOURCE_PATH)
            assert resp.status == 404
            assert await resp.text() == "OAuth protected resource not configured"

    @pytest.mark.asyncio
    async def test_unknown_path(self, bridge):
        async with serve(create_app(bridge)) as client:
            resp = await client.post("/unrelated", json={})

            assert resp.status == 404

    @pytest.mark.asyncio
    async def test_get_on_prefix(self, bridge):
        async with serve(create_app(bridge)) as client:
            resp = await client.get("/mcp")

            assert resp.status == 405
            assert resp.headers["Allow"] == "POST, OPTIONS"

    @pytest.mark.asyncio
    async def test_preflight(self, bridge):
        async with serve(create_app(bridge)) as client:
            resp = await client.options("/mcp", headers={"Origin": "https://b.com"})

            assert resp.status == 204
            assert resp.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_oversized_body(self, bridge):
        called = []
        bridge.subscribe(lambda message, sink, context: called.append(message))

        async with serve(create_app(bridge)) as client:
            resp = await client.post(
                "/mcp", data=b"x" * 2000, headers={"Content-Type": "application/json"}
            )

            assert resp.status == 413
            assert called == []

    @pytest.mark.asyncio
    async def test_env_reaches_handlers(self, bridge):
        seen = []

        def handler(message, sink, context):
            seen.append(dict(context.env))
            sink.resolve({"ok": True})

        bridge.subscribe(handler)

        async with serve(create_app(bridge, env={"REGION": "eu"})) as client:
            resp = await client.post("/mcp", json={"method": "ping"})

            assert resp.status == 200

        assert seen == [{"REGION": "eu"}]


def test_default_config_serves_health():
    config = Config()

    assert config.health.enabled
    assert config.health.path == "/health"
    assert not config.oauth.enabled
