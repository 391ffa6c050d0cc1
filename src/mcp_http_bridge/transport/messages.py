"""
Value types exchanged between the HTTP transport and the bridge.

Requests and responses are framework-neutral so the bridge can be driven
by aiohttp in production and by plain objects in tests.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

BodyReader = Callable[[], Awaitable[bytes]]

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True)
class IncomingRequest:
    """
    One inbound HTTP request.

    Header names are stored lowercased. The body is not read until
    ``read_body()`` is awaited, so cheap checks can run first.
    """

    method: str
    path: str
    headers: Mapping[str, str]
    body_reader: BodyReader = field(repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(
            self, "headers", {name.lower(): value for name, value in self.headers.items()}
        )

    @classmethod
    def from_bytes(
        cls,
        method: str,
        path: str,
        headers: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
    ) -> "IncomingRequest":
        """Build a request whose body is already in memory."""

        async def read() -> bytes:
            return body

        return cls(method=method, path=path, headers=dict(headers or {}), body_reader=read)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    @property
    def origin(self) -> Optional[str]:
        return self.header("origin")

    @property
    def content_type(self) -> Optional[str]:
        return self.header("content-type")

    @property
    def declared_length(self) -> Optional[str]:
        """Raw Content-Length header as sent by the client."""
        return self.header("content-length")

    async def read_body(self) -> bytes:
        return await self.body_reader()


@dataclass(frozen=True)
class ProtocolMessage:
    """
    Parsed protocol payload.

    The bridge only guarantees the payload deserialized from JSON; its
    contents belong to whichever engine handles it.
    """

    payload: Any

    @property
    def method(self) -> Optional[str]:
        if isinstance(self.payload, dict):
            method = self.payload.get("method")
            return method if isinstance(method, str) else None
        return None

    @property
    def id(self) -> Any:
        if isinstance(self.payload, dict):
            return self.payload.get("id")
        return None

    @property
    def params(self) -> Any:
        if isinstance(self.payload, dict):
            return self.payload.get("params")
        return None

    @property
    def is_notification(self) -> bool:
        """JSON-RPC notifications carry a method but no id."""
        return isinstance(self.payload, dict) and "method" in self.payload and "id" not in self.payload


@dataclass(frozen=True)
class ExchangeContext:
    """Request-scoped data handed to handlers next to the message."""

    request: Optional[IncomingRequest] = None
    env: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class OutgoingResponse:
    """One outbound HTTP response."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.body)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None
