"""In-process event bus for SystemEvents.

Endpoints and the LLM client emit; the audit subscriber (registered in
main.py) persists. Delivery is asynchronous through a bounded queue: when
the queue is full the event is dropped with a warning, so a slow audit
write never holds up a recommendation response.

    await emit(SystemEvent(event_type=EventType.RECOMMENDATION_GENERATED, user_id=user.id))
    subscribe(handler, [EventType.LLM_ERROR])  # omit the list to receive everything
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine, Iterable
from typing import Any

from cardsense.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]

QUEUE_MAXSIZE = 1000

# ── Internal state ───────────────────────────────────────────────────

# (handler, accepted types); None accepts every type
_subscriptions: list[tuple[EventHandler, frozenset[EventType] | None]] = []
_queue: asyncio.Queue[SystemEvent] | None = None
_worker_task: asyncio.Task[None] | None = None


# ── Subscriptions ────────────────────────────────────────────────────


def subscribe(handler: EventHandler, event_types: Iterable[EventType] | None = None) -> None:
    """Register an async handler, optionally for a subset of event types."""
    accepted = frozenset(event_types) if event_types is not None else None
    _subscriptions.append((handler, accepted))
    logger.info(
        "Subscribed %s to %s",
        handler.__name__,
        "all events" if accepted is None else sorted(t.value for t in accepted),
    )


def unsubscribe(handler: EventHandler) -> None:
    _subscriptions[:] = [entry for entry in _subscriptions if entry[0] is not handler]


def _handlers_for(event_type: EventType) -> list[EventHandler]:
    return [handler for handler, accepted in _subscriptions if accepted is None or event_type in accepted]


# ── Emitting ─────────────────────────────────────────────────────────


async def emit(event: SystemEvent) -> None:
    """Queue an event for delivery. Never blocks and never raises."""
    queue = _queue if _queue is not None else _start_queue()
    try:
        queue.put_nowait(event)
    except asyncio.QueueFull:
        logger.warning("Event queue full, dropping %s (user=%s)", event.event_type.value, event.user_id)
        return
    logger.debug("Event emitted: %s (user=%s)", event.event_type.value, event.user_id)


def _start_queue() -> asyncio.Queue[SystemEvent]:
    global _queue, _worker_task
    _queue = asyncio.Queue(maxsize=QUEUE_MAXSIZE)
    _worker_task = asyncio.create_task(_drain(_queue))
    return _queue


async def _drain(queue: asyncio.Queue[SystemEvent]) -> None:
    while True:
        event = await queue.get()
        try:
            await _deliver(event)
        finally:
            queue.task_done()


async def _deliver(event: SystemEvent) -> None:
    handlers = _handlers_for(event.event_type)
    if handlers:
        await asyncio.gather(*(_call(handler, event) for handler in handlers))


async def _call(handler: EventHandler, event: SystemEvent) -> None:
    try:
        await handler(event)
    except Exception:
        logger.exception("Handler %s failed for %s", handler.__name__, event.event_type.value)


# ── Lifecycle ────────────────────────────────────────────────────────


async def start_event_system() -> None:
    """Create the queue and its worker unless an early emit already did. Called from the FastAPI lifespan."""
    if _queue is None:
        _start_queue()
    logger.info("Event system started with %d subscribers", len(_subscriptions))


async def stop_event_system() -> None:
    """Deliver everything still queued, then stop the worker."""
    global _queue, _worker_task
    if _queue is not None:
        await _queue.join()
    if _worker_task is not None:
        _worker_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await _worker_task
    _queue = None
    _worker_task = None
    logger.info("Event system stopped")
