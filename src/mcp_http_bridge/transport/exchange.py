"""
Message exchange: one inbound message, exactly one result.

A MessageExchange broadcasts a message to every subscribed handler and
resolves with whichever completion arrives first, or with a timeout
error once its deadline passes. Completions after that are discarded, and
handler tasks still running at the deadline are cancelled.
"""

import asyncio
import inspect
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Union

import structlog

from ..protocol.schemas import MCPError, MCPInternalError, RequestTimeoutError
from .messages import ExchangeContext, ProtocolMessage

logger = structlog.get_logger(__name__)


class ExchangeState(str, Enum):
    """Lifecycle of a MessageExchange."""

    CREATED = "created"
    AWAITING_RESULT = "awaiting_result"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ExchangeResult:
    """The single value written into an exchange's result slot."""

    state: ExchangeState
    value: Any = None
    error: Optional[MCPError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def timed_out(self) -> bool:
        return self.state == ExchangeState.TIMED_OUT


class CompletionSink:
    """
    Handed to each handler alongside the message.

    ``resolve`` and ``reject`` return True for the call that completed the
    exchange and False for every call after it. Neither ever raises.
    """

    def __init__(self, exchange: "MessageExchange"):
        self._exchange = exchange

    @property
    def done(self) -> bool:
        return self._exchange.done

    def resolve(self, value: Any) -> bool:
        return self._exchange._complete(ExchangeResult(ExchangeState.RESOLVED, value=value))

    def reject(self, error: BaseException) -> bool:
        return self._exchange._complete(
            ExchangeResult(ExchangeState.RESOLVED, error=MCPInternalError.from_exception(error))
        )

    def __call__(self, value: Any = None, error: Optional[BaseException] = None) -> bool:
        if error is not None:
            return self.reject(error)
        return self.resolve(value)


Handler = Callable[
    [ProtocolMessage, CompletionSink, ExchangeContext], Union[None, Awaitable[None]]
]


class HandlerRegistry:
    """
    Ordered set of message handlers shared by all exchanges of a bridge.

    Safe to mutate from any thread; broadcasts iterate a snapshot, so
    subscribing or unsubscribing never disturbs an in-flight exchange.
    """

    def __init__(self):
        self._handlers: List[Handler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Handler) -> Callable[[], bool]:
        """
        Add a handler.

        Args:
            handler: Callable receiving (message, sink, context)

        Returns:
            Callable that unsubscribes the handler
        """
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)
                count = len(self._handlers)
            else:
                count = len(self._handlers)
        logger.debug("Subscribed handler", handler=_handler_name(handler), handlers=count)
        return lambda: self.unsubscribe(handler)

    def unsubscribe(self, handler: Handler) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        with self._lock:
            try:
                self._handlers.remove(handler)
            except ValueError:
                return False
        logger.debug("Unsubscribed handler", handler=_handler_name(handler))
        return True

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()

    def snapshot(self) -> Tuple[Handler, ...]:
        with self._lock:
            return tuple(self._handlers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    def __contains__(self, handler: object) -> bool:
        with self._lock:
            return handler in self._handlers


class MessageExchange:
    """
    Correlates one message with exactly one result.

    The result slot is written at most once, by the first sink call or by
    the deadline, whichever comes first. ``scheduler`` must provide
    ``call_later(delay, callback)`` returning a handle with ``cancel()``;
    the running event loop is used when none is given.
    """

    def __init__(
        self,
        message: ProtocolMessage,
        registry: HandlerRegistry,
        timeout_seconds: float,
        context: Optional[ExchangeContext] = None,
        scheduler: Any = None,
    ):
        self.message = message
        self.registry = registry
        self.timeout_seconds = timeout_seconds
        self.context = context or ExchangeContext()
        self.exchange_id = uuid.uuid4().hex

        self._scheduler = scheduler
        self._state = ExchangeState.CREATED
        self._result: Optional[ExchangeResult] = None
        self._lock = threading.Lock()
        self._timer: Any = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._future: Optional[asyncio.Future] = None
        self._tasks: set = set()

    @property
    def state(self) -> ExchangeState:
        return self._state

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> Optional[ExchangeResult]:
        return self._result

    def start(self) -> None:
        """Arm the deadline and broadcast the message to every handler."""
        if self._state != ExchangeState.CREATED:
            raise RuntimeError(f"Exchange already started (state={self._state.value})")

        self._loop = asyncio.get_running_loop()
        self._future = self._loop.create_future()
        scheduler = self._scheduler or self._loop

        self._state = ExchangeState.AWAITING_RESULT
        self._timer = scheduler.call_later(self.timeout_seconds, self._on_deadline)

        handlers = self.registry.snapshot()
        if not handlers:
            logger.warning(
                "No handlers subscribed, exchange will time out",
                exchange_id=self.exchange_id,
                timeout_seconds=self.timeout_seconds,
            )

        sink = CompletionSink(self)
        for handler in handlers:
            self._dispatch(handler, sink)

    async def wait(self) -> ExchangeResult:
        """Wait until the exchange is resolved or timed out."""
        if self._future is None:
            raise RuntimeError("Exchange not started")
        try:
            return await self._future
        finally:
            self._cancel_timer()

    async def run(self) -> ExchangeResult:
        """Start the exchange and wait for its result."""
        self.start()
        return await self.wait()

    def _dispatch(self, handler: Handler, sink: CompletionSink) -> None:
        try:
            outcome = handler(self.message, sink, self.context)
        except Exception as e:
            logger.warning(
                "Handler raised during broadcast",
                exchange_id=self.exchange_id,
                handler=_handler_name(handler),
                error=str(e),
            )
            sink.reject(e)
            return

        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._tasks.add(task)
            task.add_done_callback(lambda t: self._on_handler_task_done(t, handler, sink))

    def _on_handler_task_done(
        self, task: asyncio.Future, handler: Handler, sink: CompletionSink
    ) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(
                "Handler task failed",
                exchange_id=self.exchange_id,
                handler=_handler_name(handler),
                error=str(error),
            )
            sink.reject(error)

    def _on_deadline(self) -> None:
        if self._complete(ExchangeResult(ExchangeState.TIMED_OUT, error=RequestTimeoutError())):
            logger.warning(
                "Exchange timed out",
                exchange_id=self.exchange_id,
                method=self.message.method,
                timeout_seconds=self.timeout_seconds,
                cancelled_tasks=len(self._tasks),
            )
            self._cancel_handler_tasks()

    def _cancel_handler_tasks(self) -> None:
        # Done callbacks remove each task from the set once it unwinds.
        for task in list(self._tasks):
            task.cancel()

    def _complete(self, result: ExchangeResult) -> bool:
        with self._lock:
            if self._result is not None:
                logger.debug(
                    "Discarded completion for finished exchange",
                    exchange_id=self.exchange_id,
                    state=self._state.value,
                )
                return False
            if self._state == ExchangeState.CREATED:
                logger.debug("Discarded completion for unstarted exchange", exchange_id=self.exchange_id)
                return False
            self._result = result
            self._state = result.state

        self._deliver(result)
        return True

    def _deliver(self, result: ExchangeResult) -> None:
        if self._loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._finish(result)
        elif not self._loop.is_closed():
            # Timer handles and futures belong to the loop thread.
            self._loop.call_soon_threadsafe(self._finish, result)

    def _finish(self, result: ExchangeResult) -> None:
        self._cancel_timer()
        if self._future is not None and not self._future.done():
            self._future.set_result(result)

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()


def _handler_name(handler: Any) -> str:
    return getattr(handler, "__qualname__", None) or type(handler).__name__
