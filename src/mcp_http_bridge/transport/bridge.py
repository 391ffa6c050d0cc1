"""
HTTP bridge for MCP message handling.

Turns one inbound HTTP request into one protocol message, broadcasts it to
the subscribed handlers and turns the first completion (or the deadline)
into one outbound response.
"""

import time
from typing import Any, Callable, List, Mapping, Optional

import structlog

from ..config.settings import TransportConfig
from ..protocol.schemas import MCPInternalError
from .composer import ResponseComposer
from .cors import CorsPolicy
from .exchange import Handler, HandlerRegistry, MessageExchange
from .messages import ExchangeContext, IncomingRequest, OutgoingResponse
from .validation import RequestValidator

logger = structlog.get_logger(__name__)


class MCPHttpBridge:
    """
    Request/response bridge in front of an asynchronous message engine.

    Owns the handler registry shared by every request. Each request gets
    its own MessageExchange; nothing else is shared between requests.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        registry: Optional[HandlerRegistry] = None,
        scheduler: Any = None,
    ):
        """
        Initialize the bridge.

        Args:
            config: Transport configuration
            registry: Handler registry, a fresh one if not given
            scheduler: Timer source for exchange deadlines (defaults to
                       the running event loop)
        """
        self.config = config or TransportConfig()
        self.registry = registry if registry is not None else HandlerRegistry()
        self.cors = CorsPolicy(self.config.cors)
        self.composer = ResponseComposer()
        self._scheduler = scheduler
        self._close_listeners: List[Callable[[], Any]] = []
        self.validator = RequestValidator(self.config)

    def subscribe(self, handler: Handler) -> Callable[[], bool]:
        """Subscribe a handler; returns a callable that unsubscribes it."""
        return self.registry.subscribe(handler)

    def unsubscribe(self, handler: Handler) -> bool:
        return self.registry.unsubscribe(handler)

    def on_close(self, listener: Callable[[], Any]) -> Callable[[], None]:
        """Register a listener called once by ``close()``; returns a remover."""
        self._close_listeners.append(listener)

        def remove() -> None:
            if listener in self._close_listeners:
                self._close_listeners.remove(listener)

        return remove

    def close(self) -> None:
        """Notify close listeners, then drop every handler and listener."""
        listeners, self._close_listeners = self._close_listeners, []
        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.warning("Close listener failed", error=str(e), exc_info=True)
        self.registry.clear()
        logger.debug("Bridge closed", close_listeners=len(listeners))

    async def handle_request(
        self, request: IncomingRequest, env: Optional[Mapping[str, Any]] = None
    ) -> OutgoingResponse:
        """
        Handle one inbound request.

        Args:
            request: Incoming request
            env: Request-scoped environment passed to handlers untouched

        Returns:
            The single response for this request
        """
        cors = self.cors.decide(request.origin)
        start_time = time.monotonic()

        try:
            if request.method == "OPTIONS" and self.validator.matches_path(request.path):
                logger.debug("Handling CORS preflight", path=request.path, origin=request.origin)
                return self.composer.preflight(cors)

            validation = await self.validator.validate(request)
            if not validation.ok:
                logger.info(
                    "Rejected request",
                    method=request.method,
                    path=request.path,
                    reason=validation.rejection.kind.value,
                )
                return self.composer.compose(validation.rejection, cors)

            exchange = MessageExchange(
                message=validation.message,
                registry=self.registry,
                timeout_seconds=self.config.timeout_seconds,
                context=ExchangeContext(request=request, env=dict(env or {})),
                scheduler=self._scheduler,
            )

            logger.debug(
                "Processing message",
                exchange_id=exchange.exchange_id,
                method=validation.message.method,
                handlers=len(self.registry),
            )
            result = await exchange.run()

            logger.info(
                "Exchange completed",
                exchange_id=exchange.exchange_id,
                method=validation.message.method,
                state=result.state.value,
                success=result.ok,
                duration_ms=round((time.monotonic() - start_time) * 1000, 2),
            )
            return self.composer.compose(result, cors)

        except Exception as e:
            logger.error(
                "Error handling MCP request",
                method=request.method,
                path=request.path,
                error=str(e),
                exc_info=True,
            )
            return self.composer.error(MCPInternalError.from_exception(e), cors)
