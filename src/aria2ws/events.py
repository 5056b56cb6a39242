"""Ordered event emitter used for lifecycle signals and notifications."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class _OnceWrapper:
    """Listener wrapper that unregisters itself before its first call."""

    def __init__(self, emitter: EventEmitter, event: str, listener: Listener) -> None:
        self.emitter = emitter
        self.event = event
        self.listener = listener

    def __call__(self, *args: Any) -> Any:
        self.emitter.off(self.event, self)
        return self.listener(*args)


class EventEmitter:
    """Ordered multi-map of event name to listeners.

    Listeners for an event run in registration order. ``emit`` iterates over
    a snapshot of the listener list, so listeners may subscribe or unsubscribe
    while an event is being dispatched.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def on(self, event: str, listener: Listener) -> Listener:
        """Register ``listener`` for ``event`` and return it."""
        self._listeners.setdefault(event, []).append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register ``listener`` to run on the next ``event`` only.

        Returns the wrapper, which can be passed to :meth:`off`.
        """
        wrapper = _OnceWrapper(self, event, listener)
        self._listeners.setdefault(event, []).append(wrapper)
        return wrapper

    def off(self, event: str, listener: Listener) -> bool:
        """Unregister a listener (or the ``once`` wrapper of one).

        Returns:
            True if a listener was removed
        """
        listeners = self._listeners.get(event)
        if not listeners:
            return False
        for index, registered in enumerate(listeners):
            if registered == listener or (
                isinstance(registered, _OnceWrapper) and registered.listener == listener
            ):
                del listeners[index]
                if not listeners:
                    del self._listeners[event]
                return True
        return False

    def remove_all(self, event: str | None = None) -> None:
        """Drop every listener for ``event``, or for all events."""
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> int:
        """Invoke every listener of ``event`` with ``args``.

        A listener that raises is logged and does not stop the others.
        Coroutine results are scheduled on the running loop.

        Returns:
            Number of listeners invoked
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                result = listener(*args)
            except Exception:
                logger.exception("Listener for %r failed", event)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._on_task_done)
        return len(listeners)

    def wait_for(self, event: str) -> asyncio.Future[tuple[Any, ...]]:
        """Return a future resolved with the arguments of the next ``event``."""
        future: asyncio.Future[tuple[Any, ...]] = asyncio.get_running_loop().create_future()

        def _resolve(*args: Any) -> None:
            if not future.done():
                future.set_result(args)

        wrapper = self.once(event, _resolve)
        future.add_done_callback(lambda _: self.off(event, wrapper))
        return future

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Async listener failed", exc_info=exc)
