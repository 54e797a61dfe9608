"""Tests for the async event bus."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from cardsense import events
from cardsense.events import emit, start_event_system, stop_event_system, subscribe, unsubscribe
from cardsense.schemas.events import EventType, SystemEvent


class TestEventBus:
    @pytest.mark.asyncio()
    async def test_typed_subscriber_only_gets_its_types(self):
        received: list[EventType] = []

        async def on_startup(event: SystemEvent) -> None:
            received.append(event.event_type)

        subscribe(on_startup, [EventType.SYSTEM_STARTUP])
        try:
            await start_event_system()
            await emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP, source_module="test"))
            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="test"))
            await stop_event_system()
        finally:
            unsubscribe(on_startup)

        assert received == [EventType.SYSTEM_STARTUP]

    @pytest.mark.asyncio()
    async def test_failing_handler_does_not_block_others(self):
        received: list[str] = []

        async def broken(event: SystemEvent) -> None:
            raise RuntimeError("boom")

        async def recorder(event: SystemEvent) -> None:
            received.append(event.data["card"])

        subscribe(broken)
        subscribe(recorder)
        try:
            await start_event_system()
            await emit(SystemEvent(
                event_type=EventType.RECOMMENDATION_GENERATED,
                user_id="user-1",
                data={"card": "axis-ace"},
            ))
            await stop_event_system()
        finally:
            unsubscribe(broken)
            unsubscribe(recorder)

        assert received == ["axis-ace"]

    @pytest.mark.asyncio()
    async def test_full_queue_drops_instead_of_blocking(self):
        received: list[EventType] = []

        async def recorder(event: SystemEvent) -> None:
            received.append(event.event_type)

        subscribe(recorder)
        try:
            with patch.object(events, "QUEUE_MAXSIZE", 1):
                await start_event_system()
            await emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP, source_module="test"))
            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="test"))
            await stop_event_system()
        finally:
            unsubscribe(recorder)

        assert received == [EventType.SYSTEM_STARTUP]
