# src/agentcycle/clock.py
"""
Injectable time sources.

Every timestamp, deadline comparison, backoff and rate-limit sleep in the
agent goes through a ``Clock``.  Production code uses ``SystemClock``;
tests use ``VirtualClock`` so that a five second backoff or a one hour
execution budget elapses instantly and deterministically.

Example:
    clock = VirtualClock()
    agent = MyAgent(config, capabilities, guardrails, clock=clock)
    await agent.start()
    await agent.wait_closed()   # budget elapses in virtual time
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol for time sources."""

    def now(self) -> datetime: ...

    async def sleep(self, seconds: float) -> None: ...


def elapsed_ms(clock: Clock, since: datetime) -> float:
    """Milliseconds elapsed on *clock* since *since*."""
    return (clock.now() - since).total_seconds() * 1000.0


class SystemClock:
    """Wall-clock time in UTC with real asyncio sleeps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class VirtualClock:
    """
    Deterministic clock for tests.

    ``sleep()`` advances virtual time by the requested amount and yields
    control to the event loop exactly once, so other tasks still get to run
    between an agent's cycles.  ``sleeps`` records every requested duration
    in seconds, which makes backoff behavior easy to assert on.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        """Move virtual time forward without sleeping."""
        self._now += timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(max(0.0, seconds))
        await asyncio.sleep(0)
