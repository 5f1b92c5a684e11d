"""Tests for the chat event bus."""
import pytest

from core.events import ChatEventBus, MESSAGE_SENT


class TestChatEventBus:
    @pytest.mark.asyncio
    async def test_sync_and_async_handlers(self):
        bus = ChatEventBus()
        received = []

        async def async_handler(payload):
            received.append(("async", payload))

        bus.subscribe(MESSAGE_SENT, lambda payload: received.append(("sync", payload)))
        bus.subscribe(MESSAGE_SENT, async_handler)

        delivered = await bus.publish(MESSAGE_SENT, "hello")
        assert delivered == 2
        assert received == [("sync", "hello"), ("async", "hello")]

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = ChatEventBus()
        received = []
        unsubscribe = bus.subscribe("t", received.append)
        unsubscribe()
        unsubscribe()

        assert await bus.publish("t", 1) == 0
        assert received == []

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self):
        bus = ChatEventBus()
        received = []

        def broken(_):
            raise RuntimeError("boom")

        bus.subscribe("t", broken)
        bus.subscribe("t", received.append)

        assert await bus.publish("t", "x") == 1
        assert received == ["x"]

    @pytest.mark.asyncio
    async def test_unknown_topic(self):
        assert await ChatEventBus().publish("nobody-listens") == 0
