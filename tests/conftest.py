"""
Pytest configuration and fixtures for MCP HTTP bridge tests.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

import pytest

from mcp_http_bridge.config.settings import Config, CorsConfig, ServerConfig, TransportConfig
from mcp_http_bridge.transport.messages import IncomingRequest


@dataclass
class ManualTimer:
    """Timer handle returned by ManualClock.call_later."""

    when: float
    callback: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualClock:
    """Deterministic stand-in for the event loop's call_later."""

    now: float = 0.0
    timers: List[ManualTimer] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [t for t in self.timers if not t.cancelled and t.when <= self.now + 1e-9]
        self.timers = [t for t in self.timers if t not in due and not t.cancelled]
        for timer in sorted(due, key=lambda t: t.when):
            timer.callback(*timer.args)

    @property
    def pending(self) -> int:
        return len([t for t in self.timers if not t.cancelled])


def build_request(
    method: str = "POST",
    path: str = "/mcp",
    payload: Any = None,
    body: Optional[bytes] = None,
    headers: Optional[dict] = None,
    content_type: Optional[str] = "application/json",
) -> IncomingRequest:
    """Build an IncomingRequest with an in-memory body."""
    if body is None:
        body = json.dumps(payload).encode("utf-8") if payload is not None else b""
    request_headers = {}
    if content_type is not None:
        request_headers["Content-Type"] = content_type
    if method == "POST":
        request_headers["Content-Length"] = str(len(body))
    request_headers.update(headers or {})
    return IncomingRequest.from_bytes(method, path, request_headers, body)


@pytest.fixture
def make_request():
    """Factory for in-memory requests."""
    return build_request


@pytest.fixture
def manual_clock():
    """Create a controllable clock for exchange deadlines."""
    return ManualClock()


@pytest.fixture
def transport_config():
    """Create a transport configuration with default limits."""
    return TransportConfig(
        path_prefix="/mcp",
        max_body_size=1048576,
        timeout_ms=50,
        cors=CorsConfig(enabled=True, origins=["*"], credentials=False),
    )


@pytest.fixture
def test_config(transport_config):
    """Create a test configuration."""
    return Config(
        version="0.1.0-test",
        name="mcp-http-bridge-test",
        server=ServerConfig(log_level="DEBUG", host="127.0.0.1", port=0),
        transport=transport_config,
    )
