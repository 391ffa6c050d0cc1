"""
MCP Protocol implementation for the MCP HTTP bridge.

This module provides the bundled MCP engine, its schema definitions and
the error hierarchy shared with the transport.
"""

from .schemas import (
    CallToolParams,
    InitializeParams,
    MCPError,
    MCPInternalError,
    MCPInvalidRequestError,
    MCPMethodNotFoundError,
    MCPRequest,
    MCPResponse,
    MCPValidationError,
    RequestTimeoutError,
    ServerInfo,
    Tool,
    ToolParameter,
    ToolSchema,
)
from .handlers import MCPHandler

__all__ = [
    "MCPHandler",
    "MCPError",
    "MCPInternalError",
    "MCPInvalidRequestError",
    "MCPMethodNotFoundError",
    "MCPValidationError",
    "RequestTimeoutError",
    "MCPRequest",
    "MCPResponse",
    "InitializeParams",
    "CallToolParams",
    "ServerInfo",
    "Tool",
    "ToolParameter",
    "ToolSchema",
]
