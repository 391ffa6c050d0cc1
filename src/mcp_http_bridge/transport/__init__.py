"""
Request/response transport for MCP.

Validates inbound HTTP requests, correlates each one with exactly one
result from the subscribed message handlers, and composes the response.
"""

from .bridge import MCPHttpBridge
from .composer import ResponseComposer
from .cors import CorsDecision, CorsPolicy, decide
from .exchange import (
    CompletionSink,
    ExchangeResult,
    ExchangeState,
    HandlerRegistry,
    MessageExchange,
)
from .messages import ExchangeContext, IncomingRequest, OutgoingResponse, ProtocolMessage
from .validation import (
    BodyTooLargeError,
    Rejection,
    RejectionKind,
    RequestValidator,
    ValidationResult,
)

__all__ = [
    "MCPHttpBridge",
    "ResponseComposer",
    "CorsDecision",
    "CorsPolicy",
    "decide",
    "CompletionSink",
    "ExchangeResult",
    "ExchangeState",
    "HandlerRegistry",
    "MessageExchange",
    "ExchangeContext",
    "IncomingRequest",
    "OutgoingResponse",
    "ProtocolMessage",
    "BodyTooLargeError",
    "Rejection",
    "RejectionKind",
    "RequestValidator",
    "ValidationResult",
]
