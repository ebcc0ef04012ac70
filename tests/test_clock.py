# tests/test_clock.py
"""Tests for SystemClock and VirtualClock."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from agentcycle.clock import Clock, SystemClock, VirtualClock, elapsed_ms


class TestVirtualClock:
    """Tests for the deterministic test clock."""

    def test_default_start(self):
        assert VirtualClock().now() == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_advance(self):
        start = datetime(2030, 5, 1, tzinfo=timezone.utc)
        clock = VirtualClock(start)
        clock.advance(2.5)
        assert clock.now() == start + timedelta(seconds=2.5)

    @pytest.mark.asyncio
    async def test_sleep_advances_and_records(self):
        clock = VirtualClock()
        start = clock.now()

        await clock.sleep(5)
        await clock.sleep(0.25)

        assert clock.sleeps == [5, 0.25]
        assert elapsed_ms(clock, start) == pytest.approx(5250.0)

    @pytest.mark.asyncio
    async def test_negative_sleep_does_not_rewind(self):
        clock = VirtualClock()
        start = clock.now()
        await clock.sleep(-1)
        assert clock.now() == start

    @pytest.mark.asyncio
    async def test_sleep_yields_to_other_tasks(self):
        clock = VirtualClock()
        ran = []

        async def other():
            ran.append(True)

        task = asyncio.create_task(other())
        await clock.sleep(100)

        assert ran == [True]
        await task

    def test_satisfies_protocol(self):
        assert isinstance(VirtualClock(), Clock)


class TestSystemClock:
    """Tests for the wall clock."""

    def test_now_is_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is timezone.utc

    @pytest.mark.asyncio
    async def test_sleep_zero(self):
        clock = SystemClock()
        start = clock.now()
        await clock.sleep(0)
        assert elapsed_ms(clock, start) >= 0

    def test_satisfies_protocol(self):
        assert isinstance(SystemClock(), Clock)
