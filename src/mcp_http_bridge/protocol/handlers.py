"""
MCP Protocol message handlers.

Implements a small stateless MCP engine: it subscribes to a bridge's
handler registry, answers initialize, ping and tool requests, and
completes each exchange through its completion sink.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog
from pydantic import ValidationError

from ..transport.exchange import CompletionSink, HandlerRegistry
from ..transport.messages import ExchangeContext, ProtocolMessage
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
    ServerInfo,
    Tool,
)

logger = structlog.get_logger(__name__)

SUPPORTED_PROTOCOL_VERSIONS = ["2024-11-05", "2025-03-26", "2025-06-18"]

ToolExecutor = Callable[[Dict[str, Any]], Awaitable[Any]]


class MCPHandler:
    """
    Handler for MCP protocol messages.

    Routes requests to the matching method and returns JSON-RPC
    responses. Sessions are not tracked: over a stateless transport
    every request stands alone, so tools are callable without a prior
    initialize.
    """

    def __init__(self, server_info: Optional[ServerInfo] = None):
        self.server_info = server_info or ServerInfo()
        self._tools: Dict[str, Tool] = {}
        self._tool_executors: Dict[str, ToolExecutor] = {}
        self._registry: Optional[HandlerRegistry] = None

        self._capabilities = {
            "tools": {},
        }

    def register_tool(self, tool: Tool, executor: ToolExecutor) -> None:
        """
        Register a tool with its executor function.

        Args:
            tool: Tool definition
            executor: Async function to execute the tool
        """
        self._tools[tool.name] = tool
        self._tool_executors[tool.name] = executor
        logger.info("Registered tool", tool_name=tool.name)

    def unregister_tool(self, tool_name: str) -> None:
        """Unregister a tool."""
        self._tools.pop(tool_name, None)
        self._tool_executors.pop(tool_name, None)
        logger.info("Unregistered tool", tool_name=tool_name)

    def attach(self, registry: HandlerRegistry) -> None:
        """Subscribe this engine to a bridge's handler registry."""
        if self._registry is not None:
            self.detach()
        registry.subscribe(self.on_message)
        self._registry = registry

    def detach(self) -> None:
        if self._registry is not None:
            self._registry.unsubscribe(self.on_message)
            self._registry = None

    async def on_message(
        self,
        message: ProtocolMessage,
        sink: CompletionSink,
        context: ExchangeContext,
    ) -> None:
        """
        Registry entry point: process one message and complete its exchange.

        Notifications are acknowledged with an empty object since the
        transport owes the client exactly one response.
        """
        payload = message.payload
        request_id = _request_id(payload)

        if not isinstance(payload, dict) or message.method is None:
            sink.resolve(MCPResponse.failure(request_id, MCPInvalidRequestError()).to_wire())
            return

        if message.is_notification:
            logger.info("Received notification", method=message.method)
            sink.resolve({})
            return

        try:
            request = MCPRequest.model_validate(payload)
        except ValidationError as e:
            logger.warning("Invalid request format", error=str(e))
            error = MCPValidationError(f"Invalid request: {e}")
            sink.resolve(MCPResponse.failure(request_id, error).to_wire())
            return

        response = await self.handle_request(request)
        sink.resolve(response.to_wire())

    async def handle_request(self, request: MCPRequest) -> MCPResponse:
        """
        Handle incoming MCP request.

        Args:
            request: Incoming request

        Returns:
            Response to send back to client
        """
        logger.debug(
            "Handling request",
            method=request.method,
            request_id=request.id,
        )

        try:
            if request.method == "initialize":
                result = self._handle_initialize(request)
            elif request.method == "ping":
                result = {}
            elif request.method == "tools/list":
                result = self._handle_list_tools()
            elif request.method == "tools/call":
                result = await self._handle_call_tool(request)
            else:
                raise MCPMethodNotFoundError(request.method)
            return MCPResponse.success(request.id, result)

        except MCPError as e:
            logger.warning(
                "MCP error handling request",
                method=request.method,
                request_id=request.id,
                error_code=e.code,
                error_message=e.message,
            )
            return MCPResponse.failure(request.id, e)

        except Exception as e:
            logger.error(
                "Unexpected error handling request",
                method=request.method,
                request_id=request.id,
                error=str(e),
                exc_info=True,
            )
            return MCPResponse.failure(request.id, MCPInternalError.from_exception(e))

    def _handle_initialize(self, request: MCPRequest) -> Dict[str, Any]:
        try:
            params = InitializeParams.model_validate(request.params or {})
        except ValidationError as e:
            raise MCPValidationError(f"Invalid initialize request: {e}")

        logger.info(
            "Initializing MCP session",
            protocol_version=params.protocolVersion,
            client_name=params.clientInfo.name if params.clientInfo else None,
        )

        if params.protocolVersion not in SUPPORTED_PROTOCOL_VERSIONS:
            # Answer anyway; the client decides whether it can continue.
            logger.warning(
                "Unsupported protocol version",
                requested=params.protocolVersion,
                supported=SUPPORTED_PROTOCOL_VERSIONS,
            )

        return {
            "protocolVersion": params.protocolVersion,
            "serverInfo": self.server_info.model_dump(),
            "capabilities": self._capabilities,
        }

    def _handle_list_tools(self) -> Dict[str, Any]:
        logger.info("Listing tools", tool_count=len(self._tools))
        return {"tools": [tool.to_wire() for tool in self._tools.values()]}

    async def _handle_call_tool(self, request: MCPRequest) -> Dict[str, Any]:
        try:
            params = CallToolParams.model_validate(request.params or {})
        except ValidationError as e:
            raise MCPValidationError(f"Invalid call tool request: {e}")

        executor = self._tool_executors.get(params.name)
        if executor is None:
            raise MCPError(f"Unknown tool: {params.name}", code=-32601)

        logger.info("Calling tool", tool_name=params.name)

        try:
            result = await executor(params.arguments)
        except Exception as e:
            logger.error(
                "Tool execution failed",
                tool_name=params.name,
                error=str(e),
                exc_info=True,
            )
            return _tool_result([_text(f"Tool execution failed: {e}")], is_error=True)

        if isinstance(result, dict) and "content" in result:
            content = result["content"]
            is_error = bool(result.get("isError", False))
        else:
            content = [_text(result if isinstance(result, str) else str(result))]
            is_error = False

        logger.info("Tool execution completed", tool_name=params.name, success=not is_error)
        return _tool_result(content, is_error)

    @property
    def attached(self) -> bool:
        return self._registry is not None

    @property
    def tools(self) -> List[Tool]:
        """Get list of registered tools."""
        return list(self._tools.values())

    def get_tool(self, name: str) -> Optional[Tool]:
        """Get tool by name."""
        return self._tools.get(name)


def _request_id(payload: Any) -> Any:
    if isinstance(payload, dict):
        request_id = payload.get("id")
        if isinstance(request_id, (str, int)) and not isinstance(request_id, bool):
            return request_id
    return None


def _text(text: str) -> Dict[str, str]:
    return {"type": "text", "text": text}


def _tool_result(content: List[Dict[str, Any]], is_error: bool = False) -> Dict[str, Any]:
    return {"content": content, "isError": is_error}
