"""Tests for the event emitter."""

import asyncio
import logging

import pytest

from aisfeed.ais.events import ClientEvent, EventEmitter, SchedulerEvent


class TestEventEmitter:
    """Test listener registration and delivery."""

    def test_listeners_called_in_order(self) -> None:
        emitter = EventEmitter("test")
        calls = []
        emitter.on(ClientEvent.POSITION, lambda value: calls.append(("first", value)))
        emitter.on(ClientEvent.POSITION, lambda value: calls.append(("second", value)))

        notified = emitter.emit(ClientEvent.POSITION, 42)

        assert notified == 2
        assert calls == [("first", 42), ("second", 42)]

    def test_enum_and_string_names_match(self) -> None:
        emitter = EventEmitter("test")
        calls = []
        emitter.on("region_change", calls.append)

        emitter.emit(SchedulerEvent.REGION_CHANGE, "north-sea")

        assert calls == ["north-sea"]

    def test_off(self) -> None:
        emitter = EventEmitter("test")
        listener = emitter.on(ClientEvent.ERROR, lambda error: None)

        assert emitter.listener_count(ClientEvent.ERROR) == 1
        assert emitter.off(ClientEvent.ERROR, listener) is True
        assert emitter.off(ClientEvent.ERROR, listener) is False
        assert emitter.emit(ClientEvent.ERROR, None) == 0

    def test_failing_listener_is_isolated(self, caplog) -> None:
        emitter = EventEmitter("test")
        calls = []

        def broken(value):
            raise RuntimeError("boom")

        emitter.on(ClientEvent.WARNING, broken)
        emitter.on(ClientEvent.WARNING, calls.append)

        with caplog.at_level(logging.ERROR):
            emitter.emit(ClientEvent.WARNING, "payload")

        assert calls == ["payload"]
        assert "Listener for 'warning' failed" in caplog.text

    @pytest.mark.asyncio
    async def test_coroutine_listeners_are_scheduled(self) -> None:
        emitter = EventEmitter("test")
        calls = []

        async def listener(value):
            await asyncio.sleep(0.01)
            calls.append(value)

        emitter.on(SchedulerEvent.REGION_CHANGE, listener)
        emitter.emit(SchedulerEvent.REGION_CHANGE, "baltic")

        assert calls == []
        await emitter.drain()
        assert calls == ["baltic"]

    @pytest.mark.asyncio
    async def test_failing_coroutine_listener_is_logged(self, caplog) -> None:
        emitter = EventEmitter("test")

        async def listener():
            raise RuntimeError("async boom")

        emitter.on(SchedulerEvent.CYCLE_COMPLETE, listener)

        with caplog.at_level(logging.ERROR):
            emitter.emit(SchedulerEvent.CYCLE_COMPLETE)
            await emitter.drain()
            await asyncio.sleep(0)

        assert "async boom" in caplog.text
