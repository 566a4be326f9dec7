"""In-process notification bus.

Subscribers register a callable per event name and are invoked in
subscription order. Plain callables run inline; coroutine functions are
scheduled as tasks on the running loop so a slow subscriber never holds up
the webhook acknowledgment. Emission is fire-and-forget: a failing
subscriber is logged and does not stop the remaining subscribers.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable

import logfire

from messengerbot.constants import (
    ERROR_EVENT,
    GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS,
    NOTIFICATION_EVENTS,
)

Handler = Callable[[Any], Any]


class EventBus:
    """Named-channel publish/subscribe owned by a single bot instance."""

    def __init__(self, event_names: tuple[str, ...] = NOTIFICATION_EVENTS):
        self._event_names = frozenset(event_names)
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._pending_tasks: set[asyncio.Task] = set()

    def _check_event(self, event: str) -> None:
        if event not in self._event_names:
            raise ValueError(
                f"Unknown event {event!r}; expected one of {sorted(self._event_names)}"
            )

    def on(self, event: str, handler: Handler) -> Handler:
        """Append ``handler`` to the subscribers of ``event``."""
        self._check_event(event)
        self._handlers[event].append(handler)
        return handler

    def off(self, event: str, handler: Handler) -> None:
        """Remove the first registration of ``handler`` for ``event``."""
        self._check_event(event)
        try:
            self._handlers[event].remove(handler)
        except ValueError:
            pass

    def listeners(self, event: str) -> list[Handler]:
        self._check_event(event)
        return list(self._handlers[event])

    @property
    def pending_tasks(self) -> set[asyncio.Task]:
        return set(self._pending_tasks)

    def emit(self, event: str, payload: Any) -> int:
        """Deliver ``payload`` to every subscriber of ``event``.

        Returns:
            Number of subscribers notified.
        """
        self._check_event(event)
        handlers = list(self._handlers[event])

        if not handlers and event == ERROR_EVENT:
            logfire.warn(
                "Error notification has no subscribers",
                error=str(payload),
                error_type=type(payload).__name__,
            )

        for handler in handlers:
            try:
                result = handler(payload)
            except Exception as e:
                logfire.error(
                    "Notification subscriber failed",
                    event=event,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                    error_type=type(e).__name__,
                    _exc_info=e,
                )
                continue

            if inspect.isawaitable(result):
                self._schedule(event, handler, result)

        return len(handlers)

    def _schedule(self, event: str, handler: Handler, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending_tasks.add(task)

        def _on_done(done: asyncio.Task) -> None:
            self._pending_tasks.discard(done)
            if done.cancelled():
                return
            exc = done.exception()
            if exc is not None:
                logfire.error(
                    "Async notification subscriber failed",
                    event=event,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(exc),
                    error_type=type(exc).__name__,
                    _exc_info=exc,
                )

        task.add_done_callback(_on_done)

    async def drain(
        self, timeout: float = GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS
    ) -> tuple[int, int]:
        """Wait for scheduled subscriber tasks, cancelling any still running.

        Returns:
            Tuple of (completed_count, cancelled_count).
        """
        if not self._pending_tasks:
            return 0, 0

        done, pending = await asyncio.wait(
            set(self._pending_tasks),
            timeout=timeout,
            return_when=asyncio.ALL_COMPLETED,
        )

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        return len(done), len(pending)
