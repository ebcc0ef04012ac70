# src/agentcycle/models.py
"""
Core data models for the agentcycle library.

Runtime state (goals, plans, agent state, metrics, messages) is represented
with dataclasses that serialize through ``to_dict()``.  Every status field
is a closed ``str``-valued Enum so that comparisons against the wire values
(``"in-progress"``, ``"draft"``, ...) keep working while typos fail loudly.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class _LenientEnum(str, Enum):
    """Enum accepting case-insensitive values with ``_`` or ``-`` separators."""

    @classmethod
    def _missing_(cls, value: object):  # type: ignore[override]
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


# =============================================================================
# Enums
# =============================================================================


class AgentStatus(_LenientEnum):
    """Lifecycle states of the autonomous cycle."""

    IDLE = "idle"
    THINKING = "thinking"
    ACTING = "acting"
    ERROR = "error"
    STOPPED = "stopped"


class GoalType(_LenientEnum):
    """How a goal is decomposed: one step, or a dependency-chained series."""

    IMMEDIATE = "immediate"
    COMPLEX = "complex"


class GoalStatus(_LenientEnum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(_LenientEnum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class PlanStatus(_LenientEnum):
    DRAFT = "draft"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class PlanType(_LenientEnum):
    """Plan shapes a planning engine may be allowed to produce."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    HIERARCHICAL = "hierarchical"


class MemoryType(_LenientEnum):
    EPISODIC = "episodic"
    SEMANTIC = "semantic"
    PROCEDURAL = "procedural"


class MessageType(_LenientEnum):
    REQUEST = "request"
    RESPONSE = "response"
    NOTIFICATION = "notification"
    ERROR = "error"


# =============================================================================
# Goals and plans
# =============================================================================


@dataclass
class Goal:
    """
    An externally supplied unit of intent.

    Attributes:
        id: Unique identifier (auto-generated via ``Goal.create``).
        description: Natural language description. Its first word is used
            to select relevant planning hints.
        type: IMMEDIATE goals become a single step, COMPLEX goals a series.
        priority: Base priority score, higher is more important.
        status: Lifecycle state; only plan-progress updates change it.
        created_at: When the goal was created.
        deadline: Optional deadline; near deadlines raise the goal's score.
        dependencies: IDs of other goals this one depends on.

    Example:
        >>> goal = Goal.create("ping the service", type=GoalType.IMMEDIATE)
        >>> goal.status
        <GoalStatus.PENDING: 'pending'>
    """

    id: str
    description: str
    type: GoalType = GoalType.COMPLEX
    priority: float = 0.0
    status: GoalStatus = GoalStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    deadline: Optional[datetime] = None
    dependencies: List[str] = field(default_factory=list)

    @classmethod
    def create(cls, description: str, **kwargs: Any) -> Goal:
        """Factory method to create a goal with an auto-generated ID."""
        return cls(id=f"goal_{uuid.uuid4().hex[:12]}", description=description, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "type": self.type.value,
            "priority": self.priority,
            "status": self.status.value,
            "created_at": _iso(self.created_at),
            "deadline": _iso(self.deadline),
            "dependencies": list(self.dependencies),
        }


@dataclass
class PlanStep:
    """
    One step of an execution plan.

    ``prerequisites`` only ever reference steps created earlier in the same
    plan. ``required_resources`` is the structured resource requirement;
    when empty, feasibility scoring falls back to parsing ``use <word>``
    out of the action text.
    """

    id: str
    action: str
    description: str
    prerequisites: List[str] = field(default_factory=list)
    estimated_duration: int = 0  # milliseconds
    status: StepStatus = StepStatus.PENDING
    required_resources: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "description": self.description,
            "prerequisites": list(self.prerequisites),
            "estimated_duration": self.estimated_duration,
            "status": self.status.value,
            "required_resources": list(self.required_resources),
        }


@dataclass
class ExecutionPlan:
    """An ordered, dependency-linked set of steps targeting one goal."""

    id: str
    goal: Goal
    steps: List[PlanStep] = field(default_factory=list)
    estimated_total_duration: int = 0  # milliseconds
    status: PlanStatus = PlanStatus.DRAFT
    created_at: datetime = field(default_factory=utcnow)

    def get_step(self, step_id: str) -> Optional[PlanStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "goal": self.goal.to_dict(),
            "steps": [s.to_dict() for s in self.steps],
            "estimated_total_duration": self.estimated_total_duration,
            "status": self.status.value,
            "created_at": _iso(self.created_at),
        }


# =============================================================================
# Agent state
# =============================================================================


@dataclass
class AgentContext:
    """Current environment as seen by the agent."""

    current_task: Optional[str] = None
    environment_state: Dict[str, Any] = field(default_factory=dict)
    collaborating_agents: List[str] = field(default_factory=list)
    available_resources: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class AgentState:
    """
    Complete state of one agent.

    Owned and mutated by the agent's cycle loop; callers only ever receive
    copies through ``AutonomousAgent.get_state()``.
    """

    id: str
    name: str
    specialty: str = ""
    status: AgentStatus = AgentStatus.IDLE
    current_goals: List[Goal] = field(default_factory=list)
    current_context: AgentContext = field(default_factory=AgentContext)
    last_activity: datetime = field(default_factory=utcnow)
    error_count: int = 0

    def active_goals(self) -> List[Goal]:
        """Goals currently in progress."""
        return [g for g in self.current_goals if g.status == GoalStatus.IN_PROGRESS]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "specialty": self.specialty,
            "status": self.status.value,
            "current_goals": [g.to_dict() for g in self.current_goals],
            "available_resources": list(self.current_context.available_resources),
            "last_activity": _iso(self.last_activity),
            "error_count": self.error_count,
        }


@dataclass
class PerformanceMetrics:
    """Per-agent cycle statistics. Durations are in milliseconds."""

    tasks_completed: int = 0
    tasks_attempted: int = 0
    success_rate: float = 0.0
    average_response_time: float = 0.0
    uptime: float = 0.0
    last_error: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasks_completed": self.tasks_completed,
            "tasks_attempted": self.tasks_attempted,
            "success_rate": self.success_rate,
            "average_response_time": self.average_response_time,
            "uptime": self.uptime,
            "last_error": _iso(self.last_error),
        }


# =============================================================================
# Messages, tools, decisions, memory
# =============================================================================


@dataclass
class AgentMessage:
    """A message exchanged between agents."""

    sender: str
    recipient: str
    content: Any
    type: MessageType = MessageType.REQUEST
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utcnow)
    reply_to: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sender": self.sender,
            "recipient": self.recipient,
            "type": self.type.value,
            "content": self.content,
            "timestamp": _iso(self.timestamp),
            "reply_to": self.reply_to,
        }


@dataclass
class ToolResult:
    """Result of executing a tool or a selected option."""

    success: bool
    data: Any = None
    error: Optional[BaseException] = None
    duration: float = 0.0  # milliseconds
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class AgentTool:
    """
    A tool an agent may call.

    Only tools whose name appears in ``guardrails.allowed_tools`` can be
    registered on an agent.
    """

    name: str
    execute: Callable[[Any], Awaitable[Any]]
    description: str = ""
    timeout: Optional[int] = None  # milliseconds


@dataclass
class DecisionOption:
    """A candidate action. Benefit, risk and feasibility are in [0, 1]."""

    id: str
    description: str
    expected_benefit: float
    risk: float
    feasibility: float
    estimated_duration: Optional[int] = None  # milliseconds


@dataclass
class DecisionResult:
    """Outcome of a decision. The scheduler only checks ``selected_option``."""

    selected_option: Optional[DecisionOption]
    confidence: float = 0.0
    reasoning: str = ""
    alternatives: List[DecisionOption] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)
    decision_id: Optional[str] = None


@dataclass
class MemoryEntry:
    """One record in an agent's memory log."""

    type: MemoryType
    content: Any
    importance: float = 0.5
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "importance": self.importance,
            "timestamp": _iso(self.timestamp),
        }
