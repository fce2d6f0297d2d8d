"""
Event registry and dispatch for XMLHttpRequest.

Each event has one handler slot (``on<event>``) and an ordered list of
listeners. Dispatch runs inline, except that a subclass may ask for callbacks
to be deferred to the next scheduling turn: on the running asyncio loop when
there is one, otherwise to the end of the outermost operation that is
currently dispatching.
"""

import asyncio
import inspect
import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

EVENT_NAMES = (
    "readystatechange",
    "loadstart",
    "load",
    "abort",
    "error",
    "loadend",
)

EventCallback = Callable[..., object]


def _handler_slot(event: str) -> property:
    def getter(self) -> Optional[EventCallback]:
        return self._handlers[event]

    def setter(self, callback: Optional[EventCallback]) -> None:
        self._handlers[event] = callback

    return property(getter, setter, doc=f"Handler called when '{event}' is dispatched.")


def _same_callback(registered: EventCallback, callback: EventCallback) -> bool:
    """Identity match; bound methods match when they bind the same function to the same object."""
    if registered is callback:
        return True
    if inspect.ismethod(registered) and inspect.ismethod(callback):
        return registered.__self__ is callback.__self__ and registered.__func__ is callback.__func__
    return False


class EventTarget:
    """Listener registry with per-event handler slots."""

    onreadystatechange = _handler_slot("readystatechange")
    onloadstart = _handler_slot("loadstart")
    onload = _handler_slot("load")
    onabort = _handler_slot("abort")
    onerror = _handler_slot("error")
    onloadend = _handler_slot("loadend")

    def __init__(self):
        self._handlers: Dict[str, Optional[EventCallback]] = {name: None for name in EVENT_NAMES}
        self._event_listeners: Dict[str, List[EventCallback]] = {}
        self._deferred: List[EventCallback] = []
        self._batch_depth = 0

    def add_event_listener(self, event: str, callback: EventCallback) -> None:
        """Register a listener. Registering the same callback twice makes it fire twice."""
        self._event_listeners.setdefault(event, []).append(callback)

    def remove_event_listener(self, event: str, callback: EventCallback) -> None:
        """Remove every registration of ``callback`` for ``event``."""
        if event in self._event_listeners:
            self._event_listeners[event] = [
                listener for listener in self._event_listeners[event]
                if not _same_callback(listener, callback)
            ]

    def dispatch_event(self, event: str) -> None:
        """Call the handler slot, then each listener in registration order.

        Callbacks receive this object as their only argument.
        """
        callbacks: List[EventCallback] = []
        handler = self._handlers.get(event)
        if callable(handler):
            callbacks.append(handler)
        callbacks.extend(self._event_listeners.get(event, []))

        if not callbacks:
            return

        with self._dispatch_batch():
            if self._defers_dispatch():
                logger.debug(f"Deferring {len(callbacks)} callback(s) for '{event}'")
                for callback in callbacks:
                    self._schedule(callback)
            else:
                for callback in callbacks:
                    callback(self)

    def _defers_dispatch(self) -> bool:
        """Whether callbacks should run on the next scheduling turn."""
        return False

    def _schedule(self, callback: EventCallback) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deferred.append(callback)
        else:
            loop.call_soon(callback, self)

    @contextmanager
    def _dispatch_batch(self) -> Iterator[None]:
        """Flush callbacks queued without an event loop once the outermost batch exits."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._deferred:
                self._flush_deferred()

    def _flush_deferred(self) -> None:
        # Callbacks queued while flushing run after the ones already queued
        self._batch_depth += 1
        try:
            while self._deferred:
                callback = self._deferred.pop(0)
                try:
                    callback(self)
                except Exception as e:
                    logger.error(f"Error in deferred event callback {callback!r}: {e}", exc_info=True)
        finally:
            self._batch_depth -= 1
