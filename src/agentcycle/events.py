# src/agentcycle/events.py
"""
Named event channels for agent notifications.

The agent publishes lifecycle and status notifications to an ``EventBus``
without depending on whether anyone listens.  Subscribers may be plain
functions or coroutines; each subscriber receives each emission of the
event it subscribed to exactly once, in subscription order.  A subscriber
that raises is logged and skipped so it can never break the agent loop.

Example:
    bus = EventBus()
    bus.subscribe(AgentEvent.STATUS_UPDATE, lambda payload: print(payload))
    await bus.emit(AgentEvent.STATUS_UPDATE, {"status": "idle"})
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, Dict, List, Union

logger = logging.getLogger(__name__)


class AgentEvent(str, Enum):
    """Event names published by ``AutonomousAgent``."""

    AGENT_STARTED = "agent:started"
    AGENT_STOPPED = "agent:stopped"
    STATUS_CHANGED = "status:changed"
    STATUS_UPDATE = "status:update"
    MESSAGE_SENT = "message:sent"
    ERROR = "error"
    GOAL_COMPLETED = "goal:completed"


EventName = Union[AgentEvent, str]
Subscriber = Callable[[Any], Any]


def _key(name: EventName) -> str:
    return name.value if isinstance(name, AgentEvent) else name


class EventBus:
    """Publish/subscribe channel keyed by event name."""

    def __init__(self) -> None:
        self._subscribers: DefaultDict[str, List[Subscriber]] = defaultdict(list)

    def subscribe(self, name: EventName, callback: Subscriber) -> None:
        """
        Register *callback* for event *name*.

        Args:
            name: Event name (``AgentEvent`` member or raw string).
            callback: Function or coroutine function taking the payload.
        """
        self._subscribers[_key(name)].append(callback)

    def unsubscribe(self, name: EventName, callback: Subscriber) -> bool:
        """Remove a subscriber. Returns True if it was registered."""
        callbacks = self._subscribers.get(_key(name), [])
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    def subscriber_count(self, name: EventName) -> int:
        return len(self._subscribers.get(_key(name), []))

    async def emit(self, name: EventName, payload: Any = None) -> int:
        """
        Deliver *payload* to every subscriber of *name*.

        Returns:
            Number of subscribers that handled the event without raising.
        """
        key = _key(name)
        delivered = 0
        for callback in list(self._subscribers.get(key, [])):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                logger.exception("Subscriber for event '%s' failed", key)
        return delivered

    def stats(self) -> Dict[str, int]:
        return {name: len(callbacks) for name, callbacks in self._subscribers.items() if callbacks}
