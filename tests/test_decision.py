# tests/test_decision.py
"""
Test suite for the Decision Engine.

Tests cover:
    - decide(): plan vs. no-action gating used by the agent loop
    - make_decision(): weighted scoring, constraints, confidence threshold
    - Historical adjustment and outcome tracking
    - Plan risk and feasibility assessment
"""

import pytest

from agentcycle.config import DecisionCapabilities
from agentcycle.decision import (
    NO_ACTION_ID,
    DecisionConstraints,
    DecisionContext,
    DecisionCriteria,
    DecisionEngine,
    DecisionMaker,
    DecisionOutcome,
)
from agentcycle.exceptions import DecisionError
from agentcycle.models import (
    DecisionOption,
    ExecutionPlan,
    Goal,
    PlanStep,
    StepStatus,
)


@pytest.fixture
def engine():
    return DecisionEngine(DecisionCapabilities())


def option(option_id, benefit=0.5, risk=0.5, feasibility=0.5, duration=None):
    return DecisionOption(
        id=option_id,
        description=option_id,
        expected_benefit=benefit,
        risk=risk,
        feasibility=feasibility,
        estimated_duration=duration,
    )


def plan_with(statuses, duration=60000):
    steps = [
        PlanStep(id=f"s{i}", action="a", description="d", status=status)
        for i, status in enumerate(statuses)
    ]
    return ExecutionPlan(
        id="plan-1",
        goal=Goal.create("deploy service"),
        steps=steps,
        estimated_total_duration=duration,
    )


# =============================================================================
# decide()
# =============================================================================


class TestDecide:
    """Tests for the agent-facing decide() entry point."""

    def test_satisfies_protocol(self, engine):
        assert isinstance(engine, DecisionMaker)

    @pytest.mark.asyncio
    async def test_no_plan_selects_nothing(self, engine):
        result = await engine.decide(None)
        assert result.selected_option is None
        assert result.reasoning == "No plan available"

    @pytest.mark.asyncio
    async def test_healthy_plan_is_selected(self, engine):
        plan = plan_with([StepStatus.PENDING] * 3)

        result = await engine.decide(plan)

        assert result.selected_option is not None
        assert result.selected_option.id == plan.id
        assert result.selected_option.estimated_duration == 60000
        assert [a.id for a in result.alternatives] == [NO_ACTION_ID]

    @pytest.mark.asyncio
    async def test_hopeless_plan_maps_to_no_selection(self, engine):
        """When doing nothing scores best the result carries no option."""
        plan = plan_with([StepStatus.FAILED] * 10, duration=0)

        result = await engine.decide(plan)

        assert result.selected_option is None
        assert result.decision_id is not None


# =============================================================================
# make_decision()
# =============================================================================


class TestMakeDecision:
    """Tests for weighted multi-criteria selection."""

    @pytest.mark.asyncio
    async def test_highest_score_wins(self, engine):
        context = DecisionContext(
            available_options=[
                option("weak", benefit=0.2),
                option("strong", benefit=0.9, risk=0.1, feasibility=0.9),
                option("middling", benefit=0.6),
            ]
        )

        result = await engine.make_decision(context)

        assert result.selected_option.id == "strong"
        assert [a.id for a in result.alternatives] == ["middling", "weak"]
        assert "Benefit: 90%" in result.reasoning

    @pytest.mark.asyncio
    async def test_alternatives_capped_at_three(self, engine):
        options = [option(f"o{i}", benefit=i / 10) for i in range(6)]

        result = await engine.make_decision(DecisionContext(available_options=options))

        assert result.selected_option.id == "o5"
        assert [a.id for a in result.alternatives] == ["o4", "o3", "o2"]

    @pytest.mark.asyncio
    async def test_custom_criteria(self, engine):
        context = DecisionContext(
            available_options=[
                option("safe", benefit=0.1, risk=0.0),
                option("bold", benefit=1.0, risk=0.9),
            ]
        )
        risk_only = DecisionCriteria(
            benefit_weight=0.0, risk_weight=1.0, feasibility_weight=0.0, speed_weight=0.0
        )

        result = await engine.make_decision(context, risk_only)

        assert result.selected_option.id == "safe"

    @pytest.mark.asyncio
    async def test_speed_breaks_ties(self, engine):
        context = DecisionContext(
            available_options=[
                option("slow", duration=600000),
                option("fast", duration=6000),
            ]
        )

        result = await engine.make_decision(context)

        assert result.selected_option.id == "fast"

    @pytest.mark.asyncio
    async def test_max_risk_filters(self, engine):
        context = DecisionContext(
            available_options=[option("risky", benefit=1.0, risk=0.9), option("tame", risk=0.2)],
            constraints=DecisionConstraints(max_risk=0.5),
        )

        result = await engine.make_decision(context)

        assert result.selected_option.id == "tame"

    @pytest.mark.asyncio
    async def test_time_limit_keeps_undated_options(self, engine):
        context = DecisionContext(
            available_options=[option("long", duration=120000), option("undated")],
            constraints=DecisionConstraints(time_limit=60000),
        )

        result = await engine.make_decision(context)

        assert result.selected_option.id == "undated"
        assert result.alternatives == []

    @pytest.mark.asyncio
    async def test_no_viable_options(self, engine):
        context = DecisionContext(
            available_options=[option("risky", risk=0.9)],
            constraints=DecisionConstraints(max_risk=0.1),
        )
        with pytest.raises(DecisionError, match="No viable options"):
            await engine.make_decision(context)

    @pytest.mark.asyncio
    async def test_confidence_below_minimum(self, engine):
        context = DecisionContext(
            available_options=[option("only")],
            constraints=DecisionConstraints(min_confidence=0.99),
        )
        with pytest.raises(DecisionError, match="below minimum"):
            await engine.make_decision(context)

    @pytest.mark.asyncio
    async def test_non_autonomous_requires_threshold(self):
        engine = DecisionEngine(DecisionCapabilities(can_make_autonomous_decisions=False))
        context = DecisionContext(available_options=[option("only")])

        with pytest.raises(DecisionError, match="confidence threshold"):
            await engine.make_decision(context)

        context.constraints = DecisionConstraints(min_confidence=0.5)
        result = await engine.make_decision(context)
        assert result.selected_option.id == "only"

    @pytest.mark.asyncio
    async def test_confidence(self, engine):
        result = await engine.make_decision(DecisionContext(available_options=[option("only")]))
        # complexity 0.5 -> 0.5 + 0.5 * 0.3
        assert result.confidence == pytest.approx(0.65)

    @pytest.mark.asyncio
    async def test_complex_capability_raises_confidence(self):
        engine = DecisionEngine(DecisionCapabilities(max_decision_complexity=8))
        result = await engine.make_decision(DecisionContext(available_options=[option("only")]))
        assert result.confidence == pytest.approx(0.75)


# =============================================================================
# History
# =============================================================================


class TestHistory:
    """Tests for historical adjustment and outcome tracking."""

    @pytest.mark.asyncio
    async def test_successful_history_boosts(self, engine):
        past = [
            DecisionOutcome(decision_id=str(i), selected_option=option("past"), success=True)
            for i in range(5)
        ]
        context = DecisionContext(available_options=[option("now")], historical_outcomes=past)

        result = await engine.make_decision(context)

        assert "Historical adjustment: 20%" in result.reasoning
        assert result.confidence == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_failed_history_penalizes(self, engine):
        past = [
            DecisionOutcome(decision_id=str(i), selected_option=option("past"), success=False)
            for i in range(3)
        ]
        context = DecisionContext(available_options=[option("now")], historical_outcomes=past)

        result = await engine.make_decision(context)

        assert "Historical adjustment: -20%" in result.reasoning

    @pytest.mark.asyncio
    async def test_dissimilar_history_ignored(self, engine):
        past = [
            DecisionOutcome(
                decision_id="0",
                selected_option=option("past", benefit=0.0, risk=1.0, feasibility=0.0),
                success=True,
            )
        ]
        context = DecisionContext(
            available_options=[option("now", benefit=1.0, risk=0.0, feasibility=1.0)],
            historical_outcomes=past,
        )

        result = await engine.make_decision(context)

        assert "Historical adjustment" not in result.reasoning

    @pytest.mark.asyncio
    async def test_update_outcome_and_stats(self, engine):
        first = await engine.make_decision(DecisionContext(available_options=[option("a", risk=0.2)]))
        second = await engine.make_decision(DecisionContext(available_options=[option("b", risk=0.6)]))

        engine.update_outcome(first.decision_id, success=True, actual_benefit=0.8)
        engine.update_outcome(second.decision_id, success=False)

        history = {o.decision_id: o for o in engine.get_history()}
        assert history[first.decision_id].success is True
        assert history[first.decision_id].actual_benefit == 0.8

        stats = engine.get_stats()
        assert stats["total_decisions"] == 2
        assert stats["success_rate"] == pytest.approx(0.5)
        # errors: |0 - 0.2| and |1 - 0.6|
        assert stats["risk_accuracy"] == pytest.approx(1 - (0.2 + 0.4) / 2)
        assert stats["average_confidence"] > 0

    def test_update_unknown_decision(self, engine, caplog):
        engine.update_outcome("missing", success=True)
        assert "not found" in caplog.text
        assert engine.get_history() == []

    def test_empty_stats(self, engine):
        assert engine.get_stats() == {
            "total_decisions": 0,
            "success_rate": 0.0,
            "average_confidence": 0.0,
            "risk_accuracy": 0.0,
        }


# =============================================================================
# Plan assessment
# =============================================================================


class TestPlanAssessment:
    """Tests for assess_plan_risk() and assess_plan_feasibility()."""

    def test_risk_grows_with_steps_failures_and_duration(self):
        plan = plan_with([StepStatus.PENDING, StepStatus.FAILED], duration=36 * 60 * 1000)
        # 2 * 0.05 + 1 failure * 0.1 + min(0.2, 0.6)
        assert DecisionEngine.assess_plan_risk(plan) == pytest.approx(0.4)

    def test_risk_capped_at_one(self):
        plan = plan_with([StepStatus.FAILED] * 20)
        assert DecisionEngine.assess_plan_risk(plan) == 1.0

    def test_feasibility_from_pending_and_completed(self):
        plan = plan_with([StepStatus.COMPLETED] * 3 + [StepStatus.PENDING])
        # max(1 - 0.1, 3 / 4)
        assert DecisionEngine.assess_plan_feasibility(plan) == pytest.approx(0.9)

    def test_feasibility_never_negative(self):
        plan = plan_with([StepStatus.PENDING] * 15)
        assert DecisionEngine.assess_plan_feasibility(plan) == 0.0
