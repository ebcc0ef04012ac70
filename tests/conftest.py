# tests/conftest.py
"""
Shared fixtures for agentcycle tests.

Provides a virtual clock, capability presets, goal builders and a scripted
``AutonomousAgent`` subclass whose cycles can be made to fail on demand.
"""

import sys
from pathlib import Path

import pytest

# Add source to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from agentcycle.agent import AutonomousAgent  # noqa: E402
from agentcycle.clock import VirtualClock  # noqa: E402
from agentcycle.config import (  # noqa: E402
    AgentConfig,
    AgentGuardrails,
    AgenticCapabilities,
    PlanningCapabilities,
)
from agentcycle.guardrails import GuardrailMonitor  # noqa: E402
from agentcycle.models import Goal, GoalType, PlanType, ToolResult  # noqa: E402


class ScriptedAgent(AutonomousAgent):
    """
    Agent with a scripted environment.

    ``fail_on`` holds 1-based perception counts on which ``perceive()``
    raises; every other call returns ``perception``.
    """

    def __init__(self, *args, fail_on=(), perception=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on = set(fail_on)
        self.perception = perception if perception is not None else {"hints": []}
        self.perceptions = 0
        self.executed = []
        self.learned = []

    async def perceive(self):
        self.perceptions += 1
        if self.perceptions in self.fail_on:
            raise RuntimeError("sensor offline")
        return self.perception

    async def execute(self, option):
        self.executed.append(option)
        return ToolResult(success=True, data=option.id)

    async def learn(self, result):
        self.learned.append(result)


@pytest.fixture
def virtual_clock():
    """Deterministic clock starting at 2024-01-01 UTC."""
    return VirtualClock()


@pytest.fixture
def sequential_capabilities():
    """Planning capabilities for a sequential-only engine that may adapt and prioritize."""
    return PlanningCapabilities(can_adapt_plans=True, can_prioritize_tasks=True)


@pytest.fixture
def parallel_capabilities():
    """Planning capabilities allowing parallel plans."""
    return PlanningCapabilities(
        can_adapt_plans=True,
        can_prioritize_tasks=True,
        supported_plan_types=[PlanType.SEQUENTIAL, PlanType.PARALLEL],
    )


@pytest.fixture
def complex_goal():
    return Goal.create("research quantum error correction", priority=1.0)


@pytest.fixture
def immediate_goal():
    return Goal.create("ping", type=GoalType.IMMEDIATE)


@pytest.fixture
def make_agent(virtual_clock):
    """
    Factory for ScriptedAgent instances on the virtual clock.

    Memory use is pinned to 10 MB so guardrail outcomes do not depend on
    the test process.
    """

    def _make(config=None, guardrails=None, capabilities=None, memory_mb=10.0, **kwargs):
        agent_config = AgentConfig(**{"name": "tester", **(config or {})})
        rails = AgentGuardrails(**(guardrails or {}))
        return ScriptedAgent(
            agent_config,
            capabilities or AgenticCapabilities(),
            rails,
            clock=virtual_clock,
            guardrail_monitor=GuardrailMonitor(rails, memory_probe=lambda: memory_mb),
            **kwargs,
        )

    return _make
