"""Tests for the event bus."""

import pytest

from thermoprint.core.events import Event, EventBus, EventType


class TestEventBus:
    def test_subscribe_and_unsubscribe(self) -> None:
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe(EventType.PRINT_COMPLETE, received.append)

        bus.emit(Event(EventType.PRINT_COMPLETE, data={"sale_id": "1"}))
        unsubscribe()
        bus.emit(Event(EventType.PRINT_COMPLETE, data={"sale_id": "2"}))

        assert [e.data["sale_id"] for e in received] == ["1"]

    def test_failing_handler_does_not_interrupt(self) -> None:
        bus = EventBus()
        received = []

        def broken(event: Event) -> None:
            raise RuntimeError("handler bug")

        bus.subscribe(EventType.PRINT_ERROR, broken)
        bus.subscribe_all(received.append)
        bus.emit(Event(EventType.PRINT_ERROR))

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_async_handlers(self) -> None:
        bus = EventBus()
        received = []

        async def handler(event: Event) -> None:
            received.append(event.type)

        bus.subscribe(EventType.PRINT_START, handler)
        await bus.emit_async(Event(EventType.PRINT_START))

        assert received == [EventType.PRINT_START]

    def test_history(self) -> None:
        bus = EventBus()
        bus.emit(Event(EventType.PRINT_START))
        bus.emit(Event(EventType.PRINT_PROGRESS))
        assert [e.type for e in bus.history()] == [EventType.PRINT_START, EventType.PRINT_PROGRESS]
        assert len(bus.history(EventType.PRINT_START)) == 1
        bus.clear_history()
        assert bus.history() == []
