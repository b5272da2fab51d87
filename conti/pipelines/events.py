"""
Conti Batch Events

Observer list for batch run events. Any number of handlers may subscribe to
the same event; handlers can be plain callables or coroutine functions.
A failing handler is logged and never interrupts the run.
"""

import asyncio
import inspect
from typing import Any, Callable, Dict, List, Set, Union

from conti.core.constants import BatchEvent
from conti.core.logging_config import get_logger

logger = get_logger("pipelines.events")

EventHandler = Callable[..., Any]
EventName = Union[BatchEvent, str]


def _normalize(event: EventName) -> BatchEvent:
    if isinstance(event, BatchEvent):
        return event
    try:
        return BatchEvent(event)
    except ValueError:
        valid = ", ".join(e.value for e in BatchEvent)
        raise ValueError(f"Unknown batch event '{event}' (expected one of: {valid})")


class BatchEventEmitter:
    """
    Multi-subscriber event channel.

    Usage:
        emitter = BatchEventEmitter()
        emitter.on("shotCompleted", lambda shot_number, image: ...)
        emitter.emit(BatchEvent.SHOT_COMPLETED, 3, image)
        await emitter.drain()  # wait for coroutine handlers
    """

    def __init__(self):
        self._handlers: Dict[BatchEvent, List[EventHandler]] = {}
        self._pending: Set[asyncio.Future] = set()
        self._muted = False

    def on(self, event: EventName, handler: EventHandler) -> EventHandler:
        """Register a handler; returns it so it can be passed to off()."""
        name = _normalize(event)
        self._handlers.setdefault(name, []).append(handler)
        return handler

    def off(self, event: EventName, handler: EventHandler) -> bool:
        """Remove a previously registered handler."""
        handlers = self._handlers.get(_normalize(event), [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def handler_count(self, event: EventName) -> int:
        return len(self._handlers.get(_normalize(event), []))

    @property
    def muted(self) -> bool:
        return self._muted

    def mute(self) -> None:
        """Drop every event emitted from now on until unmute()."""
        self._muted = True

    def unmute(self) -> None:
        self._muted = False

    def emit(self, event: EventName, *args: Any) -> None:
        """Deliver an event to every handler, in registration order."""
        if self._muted:
            return

        name = _normalize(event)
        for handler in list(self._handlers.get(name, [])):
            try:
                result = handler(*args)
            except Exception as e:
                logger.error(f"Handler for '{name.value}' failed: {e}")
                continue

            if inspect.isawaitable(result):
                future = asyncio.ensure_future(result)
                self._pending.add(future)
                future.add_done_callback(self._handler_done(name))

    def _handler_done(self, name: BatchEvent) -> Callable[[asyncio.Future], None]:
        def done(future: asyncio.Future) -> None:
            self._pending.discard(future)
            if future.cancelled():
                return
            error = future.exception()
            if error is not None:
                logger.error(f"Async handler for '{name.value}' failed: {error}")
        return done

    async def drain(self) -> None:
        """Wait until every coroutine handler scheduled so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
