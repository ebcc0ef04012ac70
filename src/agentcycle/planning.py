# src/agentcycle/planning.py
"""
Hierarchical Planning Engine.

Turns the highest-priority goal plus free-form hints into a validated,
duration-estimated ``ExecutionPlan`` and keeps the store of active plans.

Features:
    - Deadline-aware goal prioritization (stable sort)
    - Single-step plans for immediate goals, dependency-chained step
      series for complex goals
    - Duration estimation (sum for sequential, longest step for parallel)
    - Multiplicative feasibility scoring and textual risk warnings
    - Plan adaptation that keeps completed work verbatim
    - Progress tracking that rolls step status up into plan and goal status

Entry points are ``async`` so the engine can be swapped for one backed by an
external reasoning service, but all computation here is synchronous.

Example:
    engine = PlanningEngine(capabilities.planning)
    result = await engine.create_plan(
        PlanningContext(current_goals=goals, available_resources=["search"]),
        hints=["research the topic", "research prior art"],
    )
    engine.update_plan_progress(result.plan.id, result.plan.steps[0].id, "completed")
"""

from __future__ import annotations

import copy
import logging
import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Set, Union

from .clock import Clock, SystemClock
from .config import PlanningCapabilities
from .exceptions import (
    NoGoalsError,
    PlanNotFoundError,
    PlanningNotSupportedError,
    StepNotFoundError,
)
from .models import (
    ExecutionPlan,
    Goal,
    GoalStatus,
    GoalType,
    PlanStatus,
    PlanStep,
    StepStatus,
)

logger = logging.getLogger(__name__)

IMMEDIATE_STEP_DURATION = 5000  # ms
STEP_DURATION_UNIT = 10000  # ms, step i of a complex goal lasts (i + 1) units
DEFAULT_STEP_COUNT = 3
MIN_RISK_RESOURCES = 3

# Remaining time used for deadlines that are due now or already passed.
MIN_MS_TO_DEADLINE = 0.001

_RESOURCE_PATTERN = re.compile(r"\buse (\w+)", re.IGNORECASE)

_GOAL_STATUS_FOR_PLAN = {
    PlanStatus.COMPLETED: GoalStatus.COMPLETED,
    PlanStatus.FAILED: GoalStatus.FAILED,
    PlanStatus.EXECUTING: GoalStatus.IN_PROGRESS,
}


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class PlanningConstraints:
    """
    Optional caller-imposed limits.

    Attributes:
        max_steps: Step cap; also lowers the generation budget below the
            planning horizon.
        max_duration: Duration cap in milliseconds.
    """

    max_steps: Optional[int] = None
    max_duration: Optional[int] = None


@dataclass
class PlanningContext:
    """Inputs for one planning pass."""

    current_goals: List[Goal] = field(default_factory=list)
    available_resources: List[str] = field(default_factory=list)
    constraints: Optional[PlanningConstraints] = None


@dataclass
class PlanningResult:
    """A plan with its feasibility score (0-1), duration (ms) and risk warnings."""

    plan: ExecutionPlan
    feasibility: float
    estimated_duration: int
    risks: List[str] = field(default_factory=list)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def extract_resources(step: PlanStep) -> Set[str]:
    """
    Resources a step needs.

    The structured ``required_resources`` field wins; otherwise resource
    names are read from ``use <word>`` phrases in the action text.
    """
    if step.required_resources:
        return set(step.required_resources)
    return set(_RESOURCE_PATTERN.findall(step.action))


# =============================================================================
# PlanningEngine
# =============================================================================


class PlanningEngine:
    """
    Creates, adapts and tracks execution plans.

    The engine owns the active-plan store. Plans are only removed by
    ``cleanup()``, which purges completed and failed plans; abandoned
    draft or executing plans stay until callers progress them.

    Args:
        capabilities: What the engine may do (adapt, prioritize, plan shapes).
        clock: Time source for deadline urgency and risk checks.
    """

    def __init__(self, capabilities: PlanningCapabilities, clock: Optional[Clock] = None):
        self.capabilities = capabilities
        self._clock = clock or SystemClock()
        self._active_plans: Dict[str, ExecutionPlan] = {}
        logger.info(
            "Planning engine initialized (max_horizon=%d, supported_types=%s)",
            capabilities.max_planning_horizon,
            [t.value for t in capabilities.supported_plan_types],
        )

    # ----- plan creation ------------------------------------------------------

    async def create_plan(
        self,
        context: PlanningContext,
        hints: Optional[Sequence[str]] = None,
    ) -> PlanningResult:
        """
        Create a plan for the most important goal in *context*.

        Args:
            context: Goals, available resources and optional constraints.
            hints: Free-form thoughts; those mentioning the goal's first
                word become steps of a complex goal.

        Returns:
            PlanningResult for the stored ``draft`` plan.

        Raises:
            PlanningNotSupportedError: If plan creation is disabled.
            NoGoalsError: If the context holds no goals.
        """
        hints = list(hints or [])
        logger.debug(
            "Creating plan (goals=%d, hints=%d)", len(context.current_goals), len(hints)
        )

        if not self.capabilities.can_create_plans:
            raise PlanningNotSupportedError("creation")

        if self.capabilities.can_prioritize_tasks:
            goals = self.prioritize_goals(context.current_goals)
        else:
            goals = list(context.current_goals)

        if not goals:
            raise NoGoalsError()
        target = goals[0]

        steps = self._generate_steps(target, hints, context)
        plan = ExecutionPlan(
            id=str(uuid.uuid4()),
            goal=target,
            steps=steps,
            estimated_total_duration=self.estimate_duration(steps),
            status=PlanStatus.DRAFT,
            created_at=self._clock.now(),
        )

        result = PlanningResult(
            plan=plan,
            feasibility=self.validate_plan(plan, context),
            estimated_duration=plan.estimated_total_duration,
            risks=self.identify_risks(plan, context),
        )
        self._active_plans[plan.id] = plan

        logger.info(
            "Plan %s created for goal %s (%d steps, %d ms, feasibility=%.2f)",
            plan.id,
            target.id,
            len(steps),
            plan.estimated_total_duration,
            result.feasibility,
        )
        return result

    # ----- prioritization -----------------------------------------------------

    def goal_score(self, goal: Goal, now: Optional[datetime] = None) -> float:
        """
        Composite priority score of *goal*.

        ``priority + 2 / ms_until_deadline + (1 if in progress)``. Deadlines
        that are due or overdue count as ``MIN_MS_TO_DEADLINE`` away, so they
        outrank any realistic priority gap.
        """
        now = now or self._clock.now()
        score = float(goal.priority)

        if goal.deadline is not None:
            ms_left = (_as_utc(goal.deadline) - _as_utc(now)).total_seconds() * 1000.0
            score += 2.0 / max(ms_left, MIN_MS_TO_DEADLINE)

        if goal.status == GoalStatus.IN_PROGRESS:
            score += 1.0

        return score

    def prioritize_goals(self, goals: Sequence[Goal]) -> List[Goal]:
        """Goals sorted by descending score; ties keep their input order."""
        now = self._clock.now()
        return sorted(goals, key=lambda g: self.goal_score(g, now), reverse=True)

    # ----- step generation ----------------------------------------------------

    @property
    def chains_steps(self) -> bool:
        """Steps are linearly chained unless parallel plans are supported."""
        return not self.capabilities.supports_parallel

    def _generation_budget(self, context: PlanningContext) -> int:
        horizon = self.capabilities.max_planning_horizon
        if context.constraints is not None and context.constraints.max_steps is not None:
            return min(context.constraints.max_steps, horizon)
        return horizon

    def _generate_steps(
        self,
        goal: Goal,
        hints: Sequence[str],
        context: PlanningContext,
        start_index: int = 0,
    ) -> List[PlanStep]:
        steps: List[PlanStep] = []

        if goal.type == GoalType.IMMEDIATE:
            steps.append(
                PlanStep(
                    id=str(uuid.uuid4()),
                    action=f"Execute: {goal.description}",
                    description=goal.description,
                    estimated_duration=IMMEDIATE_STEP_DURATION,
                )
            )
            return steps

        keyword = goal.description.lower().split(" ")[0]
        relevant = [h for h in hints if keyword in h.lower()]

        budget = self._generation_budget(context) - start_index
        step_count = max(0, min(len(relevant) or DEFAULT_STEP_COUNT, budget))

        for i in range(step_count):
            hint = relevant[i] if i < len(relevant) else None
            steps.append(
                PlanStep(
                    id=str(uuid.uuid4()),
                    action=hint or f"Step {start_index + i + 1}: {goal.description}",
                    description=hint or f"Execute part {i + 1} of {goal.description}",
                    estimated_duration=STEP_DURATION_UNIT * (i + 1),
                )
            )

        if self.chains_steps:
            for previous, step in zip(steps, steps[1:]):
                step.prerequisites = [previous.id]

        return steps

    # ----- estimation and validation -----------------------------------------

    def estimate_duration(self, steps: Sequence[PlanStep]) -> int:
        """
        Total plan duration in milliseconds.

        Parallel-capable engines report the longest single step, which
        understates plans containing more than one dependency chain.
        """
        if not steps:
            return 0
        if self.capabilities.supports_parallel:
            return max(s.estimated_duration for s in steps)
        return sum(s.estimated_duration for s in steps)

    def validate_plan(self, plan: ExecutionPlan, context: PlanningContext) -> float:
        """Feasibility score in [0, 1]; each violated constraint multiplies in a penalty."""
        feasibility = 1.0
        constraints = context.constraints

        if constraints is not None:
            if constraints.max_steps is not None and len(plan.steps) > constraints.max_steps:
                feasibility *= 0.7
            if (
                constraints.max_duration is not None
                and plan.estimated_total_duration > constraints.max_duration
            ):
                feasibility *= 0.8

        required: Set[str] = set()
        for step in plan.steps:
            required |= extract_resources(step)
        missing = required - set(context.available_resources)
        if missing:
            logger.debug("Plan %s needs unavailable resources: %s", plan.id, sorted(missing))
            feasibility *= 0.5

        return max(0.0, min(1.0, feasibility))

    def identify_risks(self, plan: ExecutionPlan, context: PlanningContext) -> List[str]:
        risks: List[str] = []

        if plan.goal.deadline is not None and plan.estimated_total_duration:
            now = _as_utc(self._clock.now())
            time_left = (_as_utc(plan.goal.deadline) - now).total_seconds() * 1000.0
            if plan.estimated_total_duration > time_left:
                risks.append("Plan may not complete before deadline")

        if any(step.prerequisites for step in plan.steps):
            risks.append("Plan has dependencies that could cause delays")

        if len(context.available_resources) < MIN_RISK_RESOURCES:
            risks.append("Limited resources available")

        return risks

    # ----- progress and adaptation -------------------------------------------

    def update_plan_progress(
        self,
        plan_id: str,
        step_id: str,
        status: Union[StepStatus, str],
    ) -> ExecutionPlan:
        """
        Set one step's status and roll it up into the plan and its goal.

        Plan status: all steps completed -> completed; else any failed ->
        failed; else any in progress -> executing; else unchanged.

        Raises:
            PlanNotFoundError: Unknown plan.
            StepNotFoundError: Unknown step in a known plan.
        """
        plan = self._get_plan_or_raise(plan_id)
        step = plan.get_step(step_id)
        if step is None:
            raise StepNotFoundError(plan_id, step_id)

        step.status = StepStatus(status)
        plan.status = self._aggregate_status(plan.steps, plan.status)

        goal_status = _GOAL_STATUS_FOR_PLAN.get(plan.status)
        if goal_status is not None:
            plan.goal.status = goal_status

        logger.debug(
            "Plan progress updated (plan=%s, step=%s, status=%s, plan_status=%s)",
            plan_id,
            step_id,
            step.status.value,
            plan.status.value,
        )
        return plan

    async def adapt_plan(
        self,
        plan_id: str,
        new_context: PlanningContext,
        hints: Optional[Sequence[str]] = None,
    ) -> PlanningResult:
        """
        Re-plan the unfinished part of a plan.

        Completed steps are kept as they are; everything else is generated
        afresh, numbered after the kept steps. The stored plan is replaced
        by a new object carrying the same id.

        The goal follows the adapted plan: in progress when steps were kept,
        pending when the plan is back to draft.

        Raises:
            PlanningNotSupportedError: If adaptation is disabled.
            PlanNotFoundError: Unknown plan.
        """
        if not self.capabilities.can_adapt_plans:
            raise PlanningNotSupportedError("adaptation")

        existing = self._get_plan_or_raise(plan_id)
        logger.info("Adapting plan %s", plan_id)

        completed = [copy.deepcopy(s) for s in existing.steps if s.status == StepStatus.COMPLETED]
        regenerated = self._generate_steps(
            existing.goal, list(hints or []), new_context, start_index=len(completed)
        )
        if self.chains_steps and completed and regenerated:
            regenerated[0].prerequisites = [completed[-1].id]

        steps = completed + regenerated
        default_status = PlanStatus.EXECUTING if completed else PlanStatus.DRAFT
        adapted = replace(
            existing,
            steps=steps,
            estimated_total_duration=self.estimate_duration(steps),
            status=self._aggregate_status(steps, default_status),
        )
        self._active_plans[plan_id] = adapted
        adapted.goal.status = _GOAL_STATUS_FOR_PLAN.get(adapted.status, GoalStatus.PENDING)

        return PlanningResult(
            plan=adapted,
            feasibility=self.validate_plan(adapted, new_context),
            estimated_duration=adapted.estimated_total_duration,
            risks=self.identify_risks(adapted, new_context),
        )

    # ----- store --------------------------------------------------------------

    def get_plan(self, plan_id: str) -> Optional[ExecutionPlan]:
        return self._active_plans.get(plan_id)

    def get_active_plans(self) -> List[ExecutionPlan]:
        return list(self._active_plans.values())

    def cleanup(self) -> int:
        """
        Remove completed and failed plans.

        Returns:
            Number of plans removed.
        """
        finished = [
            plan_id
            for plan_id, plan in self._active_plans.items()
            if plan.status in (PlanStatus.COMPLETED, PlanStatus.FAILED)
        ]
        for plan_id in finished:
            del self._active_plans[plan_id]

        logger.debug("Cleaned up plans (removed=%d)", len(finished))
        return len(finished)

    def _get_plan_or_raise(self, plan_id: str) -> ExecutionPlan:
        plan = self._active_plans.get(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    @staticmethod
    def _aggregate_status(steps: Sequence[PlanStep], current: PlanStatus) -> PlanStatus:
        if steps and all(s.status == StepStatus.COMPLETED for s in steps):
            return PlanStatus.COMPLETED
        if any(s.status == StepStatus.FAILED for s in steps):
            return PlanStatus.FAILED
        if any(s.status == StepStatus.IN_PROGRESS for s in steps):
            return PlanStatus.EXECUTING
        return current
