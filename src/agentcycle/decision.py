# src/agentcycle/decision.py
"""
Decision Engine.

Scores candidate options on weighted benefit, risk, feasibility and speed,
optionally adjusted by the outcomes of similar past decisions, and picks
the best one.  The agent loop only needs ``decide(plan)``; any object with
that coroutine (see ``DecisionMaker``) can be injected instead.

Example:
    engine = DecisionEngine(capabilities.decision_making)
    result = await engine.decide(plan)
    if result.selected_option is not None:
        ...
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .config import DecisionCapabilities
from .exceptions import DecisionError
from .models import (
    DecisionOption,
    DecisionResult,
    ExecutionPlan,
    StepStatus,
)

logger = logging.getLogger(__name__)

NO_ACTION_ID = "no-action"


@runtime_checkable
class DecisionMaker(Protocol):
    """What the agent loop needs from a decision engine."""

    async def decide(self, plan: Optional[ExecutionPlan]) -> DecisionResult: ...


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class DecisionConstraints:
    max_risk: Optional[float] = None
    min_confidence: Optional[float] = None
    time_limit: Optional[int] = None  # ms


@dataclass
class DecisionOutcome:
    """What actually happened after a decision was carried out."""

    decision_id: str
    selected_option: DecisionOption
    actual_benefit: float = 0.0
    actual_duration: float = 0.0
    success: bool = False


@dataclass
class DecisionContext:
    available_options: List[DecisionOption] = field(default_factory=list)
    current_state: Any = None
    constraints: Optional[DecisionConstraints] = None
    historical_outcomes: Optional[List[DecisionOutcome]] = None


@dataclass
class DecisionCriteria:
    benefit_weight: float = 0.4
    risk_weight: float = 0.3
    feasibility_weight: float = 0.2
    speed_weight: float = 0.1


@dataclass
class _Evaluation:
    option: DecisionOption
    score: float
    confidence: float
    reasoning: str


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# =============================================================================
# DecisionEngine
# =============================================================================


class DecisionEngine:
    """
    Weighted multi-criteria decision making with outcome tracking.

    Args:
        capabilities: Autonomy and complexity limits.
    """

    def __init__(self, capabilities: DecisionCapabilities):
        self.capabilities = capabilities
        self.default_criteria = DecisionCriteria()
        self._history: Dict[str, DecisionOutcome] = {}
        self._confidences: List[float] = []
        logger.info(
            "Decision engine initialized (autonomous=%s, max_complexity=%d)",
            capabilities.can_make_autonomous_decisions,
            capabilities.max_decision_complexity,
        )

    async def decide(self, plan: Optional[ExecutionPlan]) -> DecisionResult:
        """
        Decide whether to execute *plan*.

        Returns a result without a selected option when there is no plan or
        when doing nothing scores best.
        """
        if plan is None:
            return DecisionResult(selected_option=None, reasoning="No plan available")

        result = await self.decide_plan_execution(plan, DecisionContext())
        if result.selected_option is not None and result.selected_option.id == NO_ACTION_ID:
            result.selected_option = None
        return result

    async def make_decision(
        self,
        context: DecisionContext,
        criteria: Optional[DecisionCriteria] = None,
    ) -> DecisionResult:
        """
        Pick the best of ``context.available_options``.

        Raises:
            DecisionError: If autonomous decisions are disallowed without a
                confidence threshold, no option survives the constraints, or
                the best option's confidence is below the threshold.
        """
        constraints = context.constraints or DecisionConstraints()
        logger.debug(
            "Making decision (options=%d, constrained=%s)",
            len(context.available_options),
            context.constraints is not None,
        )

        if not self.capabilities.can_make_autonomous_decisions and not constraints.min_confidence:
            raise DecisionError("Autonomous decisions not allowed without confidence threshold")

        viable = self._filter_options(context.available_options, constraints)
        if not viable:
            raise DecisionError("No viable options after applying constraints")

        evaluations = [self._evaluate_option(o, context, criteria) for o in viable]
        best = evaluations[0]
        for evaluation in evaluations[1:]:
            if evaluation.score > best.score:
                best = evaluation

        if constraints.min_confidence and best.confidence < constraints.min_confidence:
            raise DecisionError(
                f"Confidence {best.confidence:.2f} below minimum {constraints.min_confidence:.2f}"
            )

        alternatives = sorted(
            (e for e in evaluations if e.option.id != best.option.id),
            key=lambda e: e.score,
            reverse=True,
        )[:3]

        result = DecisionResult(
            selected_option=best.option,
            confidence=best.confidence,
            reasoning=best.reasoning,
            alternatives=[e.option for e in alternatives],
        )
        result.decision_id = self._record_decision(result)

        logger.info(
            "Decision made (option=%s, confidence=%.2f)", best.option.id, best.confidence
        )
        return result

    async def decide_plan_execution(
        self, plan: ExecutionPlan, context: DecisionContext
    ) -> DecisionResult:
        """Choose between executing *plan*, doing nothing, and any extra options."""
        plan_option = DecisionOption(
            id=plan.id,
            description=f"Execute plan for: {plan.goal.description}",
            expected_benefit=0.7,
            risk=self.assess_plan_risk(plan),
            feasibility=self.assess_plan_feasibility(plan),
            estimated_duration=plan.estimated_total_duration,
        )
        no_action = DecisionOption(
            id=NO_ACTION_ID,
            description="Do not execute plan",
            expected_benefit=0.0,
            risk=0.0,
            feasibility=1.0,
            estimated_duration=0,
        )
        return await self.make_decision(
            DecisionContext(
                available_options=[plan_option, no_action, *context.available_options],
                current_state=context.current_state,
                constraints=context.constraints,
                historical_outcomes=context.historical_outcomes,
            )
        )

    def update_outcome(
        self,
        decision_id: str,
        success: bool,
        actual_benefit: float = 0.0,
        actual_duration: float = 0.0,
    ) -> None:
        """Record what happened after a decision. Unknown ids are logged and ignored."""
        recorded = self._history.get(decision_id)
        if recorded is None:
            logger.warning("Decision %s not found in history", decision_id)
            return

        outcome = DecisionOutcome(
            decision_id=decision_id,
            selected_option=recorded.selected_option,
            actual_benefit=actual_benefit,
            actual_duration=actual_duration,
            success=success,
        )
        self._history[decision_id] = outcome

        if self.capabilities.can_evaluate_risk:
            risk_error = (0.0 if success else 1.0) - outcome.selected_option.risk
            if abs(risk_error) > 0.3:
                logger.info(
                    "Significant risk assessment error (expected=%.2f, error=%.2f)",
                    outcome.selected_option.risk,
                    risk_error,
                )

        logger.debug("Decision outcome updated (decision=%s, success=%s)", decision_id, success)

    def get_history(self) -> List[DecisionOutcome]:
        return list(self._history.values())

    def get_stats(self) -> Dict[str, float]:
        outcomes = list(self._history.values())
        total = len(outcomes)
        successes = sum(1 for o in outcomes if o.success)

        risk_accuracy = 0.0
        if outcomes:
            total_error = sum(
                abs((0.0 if o.success else 1.0) - o.selected_option.risk) for o in outcomes
            )
            risk_accuracy = 1.0 - total_error / total

        return {
            "total_decisions": total,
            "success_rate": successes / total if total else 0.0,
            "average_confidence": (
                sum(self._confidences) / len(self._confidences) if self._confidences else 0.0
            ),
            "risk_accuracy": risk_accuracy,
        }

    # ----- plan assessment ----------------------------------------------------

    @staticmethod
    def assess_plan_risk(plan: ExecutionPlan) -> float:
        risk = min(0.3, len(plan.steps) * 0.05)
        risk += sum(1 for s in plan.steps if s.status == StepStatus.FAILED) * 0.1
        if plan.estimated_total_duration:
            risk += min(0.2, plan.estimated_total_duration / (60 * 60 * 1000))
        return min(1.0, risk)

    @staticmethod
    def assess_plan_feasibility(plan: ExecutionPlan) -> float:
        pending = sum(1 for s in plan.steps if s.status == StepStatus.PENDING)
        feasibility = 1.0 - pending * 0.1
        if plan.steps:
            completed = sum(1 for s in plan.steps if s.status == StepStatus.COMPLETED)
            feasibility = max(feasibility, completed / len(plan.steps))
        return max(0.0, feasibility)

    # ----- internals ----------------------------------------------------------

    @staticmethod
    def _filter_options(
        options: List[DecisionOption], constraints: DecisionConstraints
    ) -> List[DecisionOption]:
        filtered = list(options)
        if constraints.max_risk is not None:
            filtered = [o for o in filtered if o.risk <= constraints.max_risk]
        if constraints.time_limit is not None:
            filtered = [
                o
                for o in filtered
                if not o.estimated_duration or o.estimated_duration <= constraints.time_limit
            ]
        return filtered

    def _evaluate_option(
        self,
        option: DecisionOption,
        context: DecisionContext,
        criteria: Optional[DecisionCriteria],
    ) -> _Evaluation:
        weights = criteria or self.default_criteria
        reasons: List[str] = []

        score = option.expected_benefit * weights.benefit_weight
        reasons.append(f"Benefit: {option.expected_benefit * 100:.0f}%")

        score += (1 - option.risk) * weights.risk_weight
        reasons.append(f"Risk: {option.risk * 100:.0f}%")

        score += option.feasibility * weights.feasibility_weight
        reasons.append(f"Feasibility: {option.feasibility * 100:.0f}%")

        if option.estimated_duration and weights.speed_weight > 0:
            score += (1 / (1 + option.estimated_duration / 60000)) * weights.speed_weight
            reasons.append(f"Duration: {round(option.estimated_duration / 1000)}s")

        if context.historical_outcomes:
            adjustment = self._historical_adjustment(option, context.historical_outcomes)
            score *= adjustment
            if adjustment != 1:
                reasons.append(f"Historical adjustment: {(adjustment - 1) * 100:.0f}%")

        return _Evaluation(
            option=option,
            score=_clamp(score),
            confidence=self._confidence(option, context),
            reasoning="; ".join(reasons),
        )

    def _confidence(self, option: DecisionOption, context: DecisionContext) -> float:
        complexity = (option.risk + (1 - option.feasibility)) / 2
        confidence = 0.5 + (1 - complexity) * 0.3

        if context.historical_outcomes:
            confidence += min(0.2, len(context.historical_outcomes) * 0.02)

        if self.capabilities.max_decision_complexity > 5:
            confidence += 0.1

        return _clamp(confidence)

    @staticmethod
    def _similarity(a: DecisionOption, b: DecisionOption) -> float:
        diff = (
            abs(a.expected_benefit - b.expected_benefit)
            + abs(a.risk - b.risk)
            + abs(a.feasibility - b.feasibility)
        ) / 3
        return 1 - diff

    def _historical_adjustment(
        self, option: DecisionOption, outcomes: List[DecisionOutcome]
    ) -> float:
        similar = [o for o in outcomes if self._similarity(option, o.selected_option) > 0.7]
        if not similar:
            return 1.0

        success_rate = sum(1 for o in similar if o.success) / len(similar)
        if success_rate > 0.8:
            return 1.2
        if success_rate < 0.3:
            return 0.8
        return 1.0

    def _record_decision(self, result: DecisionResult) -> str:
        decision_id = str(uuid.uuid4())
        self._history[decision_id] = DecisionOutcome(
            decision_id=decision_id,
            selected_option=result.selected_option,
        )
        self._confidences.append(result.confidence)
        logger.debug("Decision recorded (decision=%s)", decision_id)
        return decision_id
