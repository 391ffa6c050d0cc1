"""
MCP Protocol message schemas and data structures.

Defines the JSON-RPC 2.0 message formats used by the bundled MCP engine,
and the error hierarchy shared by the engine and the HTTP bridge.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

DEFAULT_PROTOCOL_VERSION = "2025-06-18"

RequestId = Union[str, int]


class MCPError(Exception):
    """Base exception for MCP protocol errors."""

    def __init__(
        self,
        message: str,
        code: int = -32000,
        data: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to JSON-RPC error format."""
        error_dict = {
            "code": self.code,
            "message": self.message,
        }
        if self.data is not None:
            error_dict["data"] = self.data
        return error_dict


class MCPInvalidRequestError(MCPError):
    """Payload is not a JSON-RPC request object."""

    def __init__(self) -> None:
        super().__init__("Invalid Request", code=INVALID_REQUEST)


class MCPValidationError(MCPError):
    """Error for invalid request parameters."""

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message, code=INVALID_PARAMS, data=data)


class MCPMethodNotFoundError(MCPError):
    """Error for unknown method calls."""

    def __init__(self, method: str):
        super().__init__(f"Method not found: {method}", code=METHOD_NOT_FOUND)


class MCPInternalError(MCPError):
    """Error for internal server issues."""

    def __init__(self, message: str = "Internal error", data: Optional[Any] = None):
        super().__init__(message, code=INTERNAL_ERROR, data=data)

    @classmethod
    def from_exception(cls, error: BaseException) -> "MCPInternalError":
        """Wrap an arbitrary exception, keeping only its message as detail."""
        if isinstance(error, MCPInternalError):
            return error
        if isinstance(error, MCPError):
            return cls(data=error.message)
        return cls(data=str(error) or type(error).__name__)


class RequestTimeoutError(MCPInternalError):
    """No handler completed the exchange before its deadline."""

    def __init__(self) -> None:
        super().__init__("Request timeout")


# JSON-RPC envelopes
class MCPRequest(BaseModel):
    """A JSON-RPC request addressed to the engine."""

    model_config = ConfigDict(extra="forbid")

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    id: RequestId = Field(description="Request ID")
    method: str = Field(description="Method name")
    params: Optional[Dict[str, Any]] = Field(default=None, description="Method parameters")


class MCPResponse(BaseModel):
    """
    A JSON-RPC response.

    Carries either ``result`` or ``error``; ``to_wire()`` drops the other.
    """

    model_config = ConfigDict(extra="forbid")

    jsonrpc: str = "2.0"
    id: Optional[RequestId] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None

    @classmethod
    def success(cls, request_id: Optional[RequestId], result: Dict[str, Any]) -> "MCPResponse":
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: Optional[RequestId], error: MCPError) -> "MCPResponse":
        return cls(id=request_id, error=error.to_dict())

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the client, with exactly one of result/error."""
        return self.model_dump(exclude={"result"} if self.error is not None else {"error"})


# Method parameters
class ClientInfo(BaseModel):
    """Information about the MCP client."""

    name: str
    version: str


class ServerInfo(BaseModel):
    """Information about the MCP server."""

    name: str = Field(default="mcp-http-bridge", description="Server name")
    version: str = Field(default="0.1.0", description="Server version")


class InitializeParams(BaseModel):
    """``initialize`` parameters; unknown keys are tolerated."""

    protocolVersion: str = DEFAULT_PROTOCOL_VERSION
    clientInfo: Optional[ClientInfo] = None
    capabilities: Dict[str, Any] = Field(default_factory=dict)


class CallToolParams(BaseModel):
    """``tools/call`` parameters."""

    name: str = Field(min_length=1)
    arguments: Dict[str, Any] = Field(default_factory=dict)


# Tool structures
class ToolParameter(BaseModel):
    """Tool parameter definition."""

    type: str = Field(description="Parameter type")
    description: Optional[str] = Field(default=None, description="Parameter description")
    enum: Optional[List[str]] = Field(default=None, description="Allowed values")
    default: Optional[Any] = Field(default=None, description="Default value")


class ToolSchema(BaseModel):
    """Tool input schema definition."""

    type: str = Field(default="object", description="Schema type")
    properties: Dict[str, ToolParameter] = Field(description="Tool parameters")
    required: List[str] = Field(default_factory=list, description="Required parameters")


class Tool(BaseModel):
    """Tool definition as listed by ``tools/list``."""

    name: str = Field(description="Tool name")
    description: str = Field(description="Tool description")
    inputSchema: ToolSchema = Field(description="Tool input schema")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
