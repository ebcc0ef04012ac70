# src/agentcycle/guardrails.py
"""
Guardrail checks evaluated before every agent cycle.

Two independent, stateless guards:
    - Memory ceiling: process resident memory (MB) against
      ``guardrails.max_memory_usage``
    - Concurrency ceiling: number of goals in progress against
      ``guardrails.max_concurrent_operations``

Both are soft. A violation makes the agent pause and re-check; it never
aborts the loop, drops goals or touches agent state.

Example:
    monitor = GuardrailMonitor(AgentGuardrails(max_memory_usage=512))
    status = monitor.check(state.current_goals)
    if not status.can_proceed:
        await clock.sleep(5)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import psutil

from .config import AgentGuardrails
from .models import Goal, GoalStatus

logger = logging.getLogger(__name__)

MemoryProbe = Callable[[], float]


def process_memory_mb() -> float:
    """Resident set size of the current process in MB."""
    return psutil.Process().memory_info().rss / (1024 ** 2)


class GuardrailViolation(Enum):
    """Types of guardrail violations."""

    MEMORY_HIGH = "memory_high"
    TOO_MANY_OPERATIONS = "too_many_operations"


@dataclass
class GuardrailStatus:
    """Snapshot of one guardrail evaluation."""

    memory_mb: float
    active_operations: int
    violations: List[GuardrailViolation] = field(default_factory=list)

    @property
    def can_proceed(self) -> bool:
        return not self.violations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "memory_mb": self.memory_mb,
            "active_operations": self.active_operations,
            "violations": [v.value for v in self.violations],
            "can_proceed": self.can_proceed,
        }


class GuardrailMonitor:
    """
    Evaluates guardrails against live memory and concurrency counts.

    Args:
        guardrails: Limits to enforce.
        memory_probe: Callable returning current memory use in MB.
            Defaults to the process RSS read through psutil.
    """

    def __init__(
        self,
        guardrails: AgentGuardrails,
        memory_probe: Optional[MemoryProbe] = None,
    ):
        self.guardrails = guardrails
        self._memory_probe = memory_probe or process_memory_mb

    def check(self, goals: Sequence[Goal]) -> GuardrailStatus:
        memory_mb = self._memory_probe()
        active = sum(1 for g in goals if g.status == GoalStatus.IN_PROGRESS)

        violations: List[GuardrailViolation] = []
        if memory_mb > self.guardrails.max_memory_usage:
            logger.warning(
                "Memory usage exceeds limit (%.1f MB > %.1f MB)",
                memory_mb,
                self.guardrails.max_memory_usage,
            )
            violations.append(GuardrailViolation.MEMORY_HIGH)

        if active > self.guardrails.max_concurrent_operations:
            logger.warning(
                "Too many concurrent operations (%d active, limit %d)",
                active,
                self.guardrails.max_concurrent_operations,
            )
            violations.append(GuardrailViolation.TOO_MANY_OPERATIONS)

        return GuardrailStatus(memory_mb=memory_mb, active_operations=active, violations=violations)
