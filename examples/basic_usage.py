#!/usr/bin/env python3
"""
Basic usage example for the MCP HTTP bridge.

This example drives the bridge in-process, without opening a socket,
to show what an HTTP client would get back for a few requests.
"""

import asyncio
import json
import sys
from pathlib import Path

# Add the src directory to the path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mcp_http_bridge.config.settings import Config
from mcp_http_bridge.protocol.schemas import Tool, ToolParameter, ToolSchema
from mcp_http_bridge.server import BridgeServer
from mcp_http_bridge.transport.messages import IncomingRequest


def post(payload, path="/mcp", origin="https://app.example.com"):
    body = json.dumps(payload).encode("utf-8")
    return IncomingRequest.from_bytes(
        "POST",
        path,
        {
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
            "Origin": origin,
        },
        body,
    )


async def echo(arguments):
    return f"echo: {arguments.get('message', '')}"


async def main():
    """Run a few requests through the bridge."""
    print("🚀 Starting MCP HTTP bridge example")

    config = Config(
        server={"log_level": "DEBUG"},
        transport={"timeout_ms": 2000, "cors": {"origins": ["https://app.example.com"]}},
    )
    server = BridgeServer(config)
    server.add_tool(
        Tool(
            name="echo",
            description="Echo a message back",
            inputSchema=ToolSchema(
                properties={"message": ToolParameter(type="string", description="Text to echo")},
                required=["message"],
            ),
        ),
        echo,
    )
    bridge = server.bridge

    print("\n📋 Test 1: List tools")
    response = await bridge.handle_request(post({"jsonrpc": "2.0", "id": 1, "method": "tools/list"}))
    print(f"Status: {response.status}")
    print(f"Body: {json.dumps(response.json(), indent=2)}")

    print("\n🔧 Test 2: Call echo tool")
    response = await bridge.handle_request(
        post(
            {
                "jsonrpc": "2.0",
                "id": 2,
                "method": "tools/call",
                "params": {"name": "echo", "arguments": {"message": "hello"}},
            }
        )
    )
    print(f"Status: {response.status}")
    print(f"Body: {response.text}")
    print(f"Allow-Origin: {response.header('Access-Control-Allow-Origin')}")

    print("\n❌ Test 3: Unknown path")
    response = await bridge.handle_request(post({}, path="/unrelated"))
    print(f"Status: {response.status} {response.text}")

    print("\n⏱️  Test 4: No handlers subscribed")
    server.mcp_handler.detach()
    response = await bridge.handle_request(post({"jsonrpc": "2.0", "id": 3, "method": "ping"}))
    print(f"Status: {response.status} {response.text}")

    print("\n✅ Example completed")


if __name__ == "__main__":
    asyncio.run(main())
