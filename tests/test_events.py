# tests/test_events.py
"""Tests for the EventBus."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from agentcycle.events import AgentEvent, EventBus


class TestEventBus:
    """Tests for subscribe/emit/unsubscribe."""

    @pytest.mark.asyncio
    async def test_sync_and_async_subscribers(self):
        bus = EventBus()
        sync_cb = MagicMock()
        async_cb = AsyncMock()
        bus.subscribe(AgentEvent.STATUS_UPDATE, sync_cb)
        bus.subscribe(AgentEvent.STATUS_UPDATE, async_cb)

        delivered = await bus.emit(AgentEvent.STATUS_UPDATE, {"status": "idle"})

        assert delivered == 2
        sync_cb.assert_called_once_with({"status": "idle"})
        async_cb.assert_awaited_once_with({"status": "idle"})

    @pytest.mark.asyncio
    async def test_delivery_in_subscription_order(self):
        bus = EventBus()
        order = []
        bus.subscribe("custom", lambda p: order.append("first"))
        bus.subscribe("custom", lambda p: order.append("second"))

        await bus.emit("custom")

        assert order == ["first", "second"]

    @pytest.mark.asyncio
    async def test_enum_and_string_names_are_interchangeable(self):
        bus = EventBus()
        cb = MagicMock()
        bus.subscribe("goal:completed", cb)

        await bus.emit(AgentEvent.GOAL_COMPLETED, "g1")

        cb.assert_called_once_with("g1")
        assert bus.subscriber_count(AgentEvent.GOAL_COMPLETED) == 1

    @pytest.mark.asyncio
    async def test_other_events_not_delivered(self):
        bus = EventBus()
        cb = MagicMock()
        bus.subscribe(AgentEvent.ERROR, cb)

        assert await bus.emit(AgentEvent.STATUS_CHANGED, {}) == 0
        cb.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_subscriber_is_isolated(self, caplog):
        bus = EventBus()
        after = MagicMock()
        bus.subscribe(AgentEvent.ERROR, MagicMock(side_effect=RuntimeError("boom")))
        bus.subscribe(AgentEvent.ERROR, after)

        with caplog.at_level(logging.ERROR, logger="agentcycle.events"):
            delivered = await bus.emit(AgentEvent.ERROR, {"error": "x"})

        assert delivered == 1
        after.assert_called_once()
        assert "Subscriber for event 'error' failed" in caplog.text

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus()
        cb = MagicMock()
        bus.subscribe(AgentEvent.AGENT_STARTED, cb)

        assert bus.unsubscribe(AgentEvent.AGENT_STARTED, cb) is True
        assert bus.unsubscribe(AgentEvent.AGENT_STARTED, cb) is False
        await bus.emit(AgentEvent.AGENT_STARTED, {})
        cb.assert_not_called()

    def test_stats(self):
        bus = EventBus()
        bus.subscribe(AgentEvent.ERROR, MagicMock())
        bus.subscribe(AgentEvent.ERROR, MagicMock())
        bus.subscribe(AgentEvent.MESSAGE_SENT, MagicMock())

        assert bus.stats() == {"error": 2, "message:sent": 1}

    def test_event_names(self):
        assert AgentEvent.STATUS_UPDATE.value == "status:update"
        assert AgentEvent.AGENT_STOPPED == "agent:stopped"
