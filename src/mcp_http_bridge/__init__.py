"""
MCP HTTP Bridge

Serves a Model Context Protocol engine over stateless HTTP
request/response, correlating each request with exactly one result.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config.settings import Config, load_config
from .server import BridgeServer
from .transport import HandlerRegistry, MCPHttpBridge, MessageExchange

__all__ = [
    "BridgeServer",
    "MCPHttpBridge",
    "HandlerRegistry",
    "MessageExchange",
    "Config",
    "load_config",
    "__version__",
    "__license__",
]
