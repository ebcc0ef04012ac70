# src/agentcycle/agent.py
"""
Autonomous agent base class and cycle scheduler.

``AutonomousAgent`` drives one agent's perceive -> plan -> decide ->
execute -> learn loop:

    budget check -> guardrails (pause and re-check on failure) -> perceive
    -> merge perception into context -> plan -> decide -> execute + learn
    (only when an option was selected) -> status broadcast every Nth cycle
    -> metrics -> rate-limit sleep -> repeat

Each agent runs exactly one cooperative asyncio loop; cycle N+1 never
starts before cycle N has finished or been caught as an error.  Any
exception raised in a cycle is caught once, at the iteration boundary:
it is counted, written to memory, announced on the ``error`` event, and
followed by a fixed backoff before the loop carries on.  Nothing raised in
a cycle ever reaches the caller of ``start()``.

Subclasses implement ``perceive()``, ``execute()`` and ``learn()``; the
default ``plan()`` and ``decide()`` delegate to the planning and decision
engines.

Example:
    class Pinger(AutonomousAgent):
        async def perceive(self):
            return {"hints": []}

        async def execute(self, option):
            return ToolResult(success=True)

        async def learn(self, result):
            pass

    agent = Pinger(AgentConfig(name="pinger"), AgenticCapabilities(), AgentGuardrails())
    agent.events.subscribe(AgentEvent.STATUS_UPDATE, print)
    await agent.start()
    ...
    await agent.stop()
    await agent.wait_closed()
"""

from __future__ import annotations

import asyncio
import copy
import logging
import threading
import traceback
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, FrozenSet, List, Optional

from .clock import Clock, SystemClock, elapsed_ms
from .config import AgentConfig, AgentGuardrails, AgenticCapabilities
from .decision import DecisionEngine, DecisionMaker
from .events import AgentEvent, EventBus
from .exceptions import (
    CommunicationNotAllowedError,
    InvalidTransitionError,
    ToolNotAllowedError,
    ToolNotFoundError,
)
from .guardrails import GuardrailMonitor
from .logging_config import log_display
from .memory import InMemoryEpisodicStore, MemoryStore
from .models import (
    AgentMessage,
    AgentState,
    AgentStatus,
    AgentTool,
    DecisionOption,
    DecisionResult,
    ExecutionPlan,
    Goal,
    GoalStatus,
    MemoryEntry,
    MemoryType,
    MessageType,
    PerformanceMetrics,
    ToolResult,
)
from .planning import PlanningContext, PlanningEngine

# Legal status changes. Setting the current status again is always a no-op.
STATUS_TRANSITIONS: Dict[AgentStatus, FrozenSet[AgentStatus]] = {
    AgentStatus.IDLE: frozenset({AgentStatus.THINKING, AgentStatus.ERROR, AgentStatus.STOPPED}),
    AgentStatus.THINKING: frozenset(
        {AgentStatus.ACTING, AgentStatus.IDLE, AgentStatus.ERROR, AgentStatus.STOPPED}
    ),
    AgentStatus.ACTING: frozenset({AgentStatus.IDLE, AgentStatus.ERROR, AgentStatus.STOPPED}),
    AgentStatus.ERROR: frozenset({AgentStatus.IDLE, AgentStatus.STOPPED}),
    AgentStatus.STOPPED: frozenset({AgentStatus.IDLE}),
}

ERROR_MEMORY_IMPORTANCE = 0.8
SENT_MESSAGE_IMPORTANCE = 0.5
RECEIVED_MESSAGE_IMPORTANCE = 0.6


class AutonomousAgent(ABC):
    """
    Base class for autonomous agents.

    Args:
        config: Identity and cycle pacing.
        capabilities: What the agent may do.
        guardrails: Soft runtime limits and the tool allow-list.
        clock: Time source; inject ``VirtualClock`` in tests.
        memory: Memory backend; defaults to a bounded in-process log.
        planning_engine: Defaults to a ``PlanningEngine`` built from
            ``capabilities.planning``.
        decision_engine: Anything with ``async decide(plan)``; defaults to
            a ``DecisionEngine`` built from ``capabilities.decision_making``.
        guardrail_monitor: Defaults to a psutil-backed ``GuardrailMonitor``.
        events: Event bus to publish on; one is created if omitted.
    """

    def __init__(
        self,
        config: AgentConfig,
        capabilities: AgenticCapabilities,
        guardrails: AgentGuardrails,
        *,
        clock: Optional[Clock] = None,
        memory: Optional[MemoryStore] = None,
        planning_engine: Optional[PlanningEngine] = None,
        decision_engine: Optional[DecisionMaker] = None,
        guardrail_monitor: Optional[GuardrailMonitor] = None,
        events: Optional[EventBus] = None,
    ):
        self.config = config
        self.capabilities = capabilities
        self.guardrails = guardrails
        self.logger = logging.getLogger(f"{__name__}.{config.name}")

        self._clock = clock or SystemClock()
        self.events = events or EventBus()
        self.memory: MemoryStore = memory or InMemoryEpisodicStore(
            capacity=capabilities.memory.short_term_capacity
        )
        self.planning_engine = planning_engine or PlanningEngine(
            capabilities.planning, clock=self._clock
        )
        self.decision_engine: DecisionMaker = decision_engine or DecisionEngine(
            capabilities.decision_making
        )
        self.guardrail_monitor = guardrail_monitor or GuardrailMonitor(guardrails)
        self.tools: Dict[str, AgentTool] = {}

        self._lock = threading.Lock()
        self._lifecycle_lock = asyncio.Lock()
        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._cycle_count = 0
        self._run_cycles = 0
        self._created_at = self._clock.now()
        self._run_started_at = self._created_at
        self._metrics = PerformanceMetrics()

        now = self._clock.now()
        self.state = AgentState(
            id=f"{config.name.lower()}-{uuid.uuid4()}",
            name=config.name,
            specialty=config.specialty,
            last_activity=now,
        )
        self.state.current_context.timestamp = now

        self.events.subscribe(AgentEvent.GOAL_COMPLETED, self._on_goal_completed)

        self.logger.info(
            "Agent initialized (name=%s, specialty=%s, autonomy_level=%d)",
            config.name,
            config.specialty,
            capabilities.autonomy_level,
        )

    # ----- lifecycle ----------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cycle_count(self) -> int:
        """Cycles completed (successfully or with a caught error) since construction."""
        return self._cycle_count

    async def start(self) -> None:
        """
        Start the autonomous cycle in the background.

        Idempotent: while the agent is running a second call only logs a
        warning. A loop still winding down after ``stop()`` is awaited
        first, so at most one loop exists per agent.
        """
        async with self._lifecycle_lock:
            if self._running:
                self.logger.warning("Agent already running")
                return

            if self._loop_task is not None and not self._loop_task.done():
                await self._loop_task

            self._running = True
            self._run_cycles = 0
            self._run_started_at = self._clock.now()
            if self.state.status == AgentStatus.STOPPED:
                await self._update_status(AgentStatus.IDLE)

            await self.events.emit(AgentEvent.AGENT_STARTED, {"agent_id": self.state.id})
            self._loop_task = asyncio.create_task(
                self._run_autonomous_cycle(), name=f"agent-cycle-{self.state.id}"
            )
            log_display(self.logger, logging.INFO, "Agent started (id=%s)", self.state.id)

    async def stop(self) -> None:
        """
        Ask the loop to stop.

        Cooperative: the phase in flight completes, and the flag is seen at
        the top of the next iteration or during a guardrail pause.
        """
        if not self._running:
            return
        self._running = False
        await self.events.emit(AgentEvent.AGENT_STOPPED, {"agent_id": self.state.id})
        log_display(self.logger, logging.INFO, "Agent stopped (id=%s)", self.state.id)

    async def wait_closed(self) -> None:
        """Wait until the loop task has exited."""
        if self._loop_task is not None:
            await self._loop_task

    async def _run_autonomous_cycle(self) -> None:
        try:
            while self._running:
                if self._budget_exhausted():
                    self.logger.info("Max execution time reached, stopping")
                    await self.stop()
                    break

                if (
                    self.config.max_iterations is not None
                    and self._run_cycles >= self.config.max_iterations
                ):
                    self.logger.info("Max iterations reached, stopping")
                    await self.stop()
                    break

                if not await self._wait_for_guardrails():
                    continue

                await self._run_cycle()
                self._cycle_count += 1
                self._run_cycles += 1
        finally:
            self._running = False
            await self._update_status(AgentStatus.STOPPED)

    async def _run_cycle(self) -> None:
        cycle_start = self._clock.now()
        recorded = False
        try:
            await self._update_status(AgentStatus.THINKING)
            perception = await self.perceive()
            self._update_context(perception)

            plan = await self.plan(perception)
            decision = await self.decide(plan)

            selected = getattr(decision, "selected_option", None)
            if selected is not None:
                await self._update_status(AgentStatus.ACTING)
                result = await self.execute(selected)
                await self.learn(result)

            await self._update_status(AgentStatus.IDLE)
            await self._communicate_status()
            self._update_metrics(elapsed_ms(self._clock, cycle_start))
            recorded = True

            await self._clock.sleep(self.config.cycle_interval / 1000)
        except Exception as error:
            self.logger.error("Cycle error: %s", error, exc_info=True)
            cycle_time = None if recorded else elapsed_ms(self._clock, cycle_start)
            await self._handle_error(error, cycle_time)

    def _budget_exhausted(self) -> bool:
        budget = self.guardrails.max_execution_time
        if budget is None:
            return False
        return elapsed_ms(self._clock, self._run_started_at) > budget

    # ----- guardrails ---------------------------------------------------------

    def check_guardrails(self) -> bool:
        """True if memory use and in-progress goal count are within limits."""
        with self._lock:
            goals = list(self.state.current_goals)
        return self.guardrail_monitor.check(goals).can_proceed

    async def _wait_for_guardrails(self) -> bool:
        """
        Block until guardrails pass.

        Returns False if the agent was stopped or ran out of time while
        paused, so the caller re-evaluates the loop condition.
        """
        while not self.check_guardrails():
            self.logger.warning("Guardrails check failed, pausing cycle")
            await self._clock.sleep(self.config.guardrail_pause / 1000)
            if not self._running or self._budget_exhausted():
                return False
        return True

    # ----- overridable phases -------------------------------------------------

    @abstractmethod
    async def perceive(self) -> Any:
        """Observe the environment. The result is stored as ``environment_state['perception']``."""

    async def plan(self, perception: Any) -> Optional[ExecutionPlan]:
        """
        Plan for the current goals.

        The default asks the planning engine for a plan targeting the top
        goal, using hints taken from *perception*. Returns None when there
        are no goals.
        """
        with self._lock:
            goals = list(self.state.current_goals)
            resources = list(self.state.current_context.available_resources)
        if not goals:
            return None

        context = PlanningContext(current_goals=goals, available_resources=resources)
        result = await self.planning_engine.create_plan(context, self.extract_hints(perception))
        return result.plan

    async def decide(self, plan: Optional[ExecutionPlan]) -> Optional[DecisionResult]:
        """Decide what to do with *plan*; only ``selected_option`` is inspected."""
        return await self.decision_engine.decide(plan)

    @abstractmethod
    async def execute(self, option: DecisionOption) -> ToolResult:
        """Carry out the selected option."""

    @abstractmethod
    async def learn(self, result: ToolResult) -> None:
        """Update internal knowledge from an execution result."""

    def extract_hints(self, perception: Any) -> List[str]:
        """
        Planning hints contained in a perception.

        Accepts a list of strings, or a mapping with a ``hints`` or
        ``thoughts`` list.
        """
        if isinstance(perception, dict):
            perception = perception.get("hints") or perception.get("thoughts") or []
        if isinstance(perception, (list, tuple)):
            return [h for h in perception if isinstance(h, str)]
        return []

    # ----- goals --------------------------------------------------------------

    def add_goal(self, goal: Goal) -> None:
        with self._lock:
            self.state.current_goals.append(goal)
        self.logger.debug("Goal added: %s", goal.id)

    async def complete_goal(self, goal_id: str) -> Optional[Goal]:
        """
        Mark a goal completed, drop it from the agent and emit ``goal:completed``.

        Returns:
            The completed goal, or None if no such goal is held.
        """
        with self._lock:
            goal = next((g for g in self.state.current_goals if g.id == goal_id), None)
            if goal is None:
                self.logger.warning("Cannot complete unknown goal %s", goal_id)
                return None
            goal.status = GoalStatus.COMPLETED
            self.state.current_goals.remove(goal)

        await self.events.emit(AgentEvent.GOAL_COMPLETED, goal)
        return goal

    def _on_goal_completed(self, goal: Goal) -> None:
        with self._lock:
            self._metrics.tasks_completed += 1
        self.logger.info("Goal completed: %s", goal.id)

    # ----- tools --------------------------------------------------------------

    def register_tool(self, tool: AgentTool) -> None:
        """
        Register a tool the agent may call.

        Raises:
            ToolNotAllowedError: If the tool is not in ``guardrails.allowed_tools``.
        """
        if tool.name not in self.guardrails.allowed_tools:
            raise ToolNotAllowedError(tool.name)

        with self._lock:
            self.tools[tool.name] = tool
            resources = self.state.current_context.available_resources
            if tool.name not in resources:
                resources.append(tool.name)
        self.logger.info("Tool registered: %s", tool.name)

    async def call_tool(self, name: str, params: Any = None) -> ToolResult:
        """
        Run a registered tool, enforcing its timeout.

        Tool failures and timeouts are returned as unsuccessful results.

        Raises:
            ToolNotFoundError: If no tool with that name is registered.
        """
        tool = self.tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        started = self._clock.now()
        try:
            if tool.timeout is not None:
                data = await asyncio.wait_for(tool.execute(params), tool.timeout / 1000)
            else:
                data = await tool.execute(params)
        except Exception as e:
            self.logger.warning("Tool %s failed: %s", name, e)
            return ToolResult(
                success=False,
                error=e,
                duration=elapsed_ms(self._clock, started),
                timestamp=self._clock.now(),
            )
        return ToolResult(
            success=True,
            data=data,
            duration=elapsed_ms(self._clock, started),
            timestamp=self._clock.now(),
        )

    # ----- messaging ----------------------------------------------------------

    async def send_message(self, to: str, content: Any) -> AgentMessage:
        """
        Send a request to another agent.

        Raises:
            CommunicationNotAllowedError: If the agent may not start conversations.
        """
        if not self.capabilities.communication.can_initiate_conversation:
            raise CommunicationNotAllowedError()

        message = AgentMessage(
            sender=self.state.id,
            recipient=to,
            content=content,
            type=MessageType.REQUEST,
            timestamp=self._clock.now(),
        )
        await self.events.emit(AgentEvent.MESSAGE_SENT, message)
        await self.memory.store(
            MemoryEntry(
                type=MemoryType.EPISODIC,
                content={"action": "sent_message", "message": message.to_dict()},
                importance=SENT_MESSAGE_IMPORTANCE,
                timestamp=self._clock.now(),
            )
        )
        return message

    async def receive_message(self, message: AgentMessage) -> None:
        """Record an incoming message; the next cycle sees it as ``pending_message``."""
        self.logger.info("Message received from %s", message.sender)
        await self.memory.store(
            MemoryEntry(
                type=MemoryType.EPISODIC,
                content={"action": "received_message", "message": message.to_dict()},
                importance=RECEIVED_MESSAGE_IMPORTANCE,
                timestamp=self._clock.now(),
            )
        )
        with self._lock:
            self.state.current_context.environment_state["pending_message"] = message

    # ----- snapshots ----------------------------------------------------------

    def get_state(self) -> AgentState:
        """
        Copy of the agent state.

        Goals, resources and counters are deep-copied. ``environment_state``
        is copied one level only, its values (perception, pending message)
        are shared with the live state.
        """
        with self._lock:
            context = self.state.current_context
            environment = dict(context.environment_state)
            snapshot = copy.deepcopy(
                replace(self.state, current_context=replace(context, environment_state={}))
            )
        snapshot.current_context.environment_state = environment
        return snapshot

    def get_metrics(self) -> PerformanceMetrics:
        """Copy of the performance metrics with uptime computed now."""
        with self._lock:
            return replace(self._metrics, uptime=elapsed_ms(self._clock, self._created_at))

    # ----- internals ----------------------------------------------------------

    async def _update_status(self, status: AgentStatus) -> None:
        with self._lock:
            current = self.state.status
            if status == current:
                self.state.last_activity = self._clock.now()
                return
            if status not in STATUS_TRANSITIONS[current]:
                raise InvalidTransitionError(current.value, status.value)
            self.state.status = status
            self.state.last_activity = self._clock.now()

        await self.events.emit(
            AgentEvent.STATUS_CHANGED, {"agent_id": self.state.id, "status": status}
        )

    def _update_context(self, perception: Any) -> None:
        with self._lock:
            context = self.state.current_context
            self.state.current_context = replace(
                context,
                environment_state={**context.environment_state, "perception": perception},
                timestamp=self._clock.now(),
            )

    async def _communicate_status(self) -> None:
        if self._cycle_count % self.config.status_update_every != 0:
            return
        with self._lock:
            status = self.state.status
            active_goals = len(self.state.active_goals())
        await self.events.emit(
            AgentEvent.STATUS_UPDATE,
            {
                "agent_id": self.state.id,
                "status": status,
                "metrics": self.get_metrics(),
                "active_goals": active_goals,
            },
        )

    def _update_metrics(self, cycle_time: float) -> None:
        with self._lock:
            m = self._metrics
            m.tasks_attempted += 1
            n = m.tasks_attempted
            m.average_response_time = (m.average_response_time * (n - 1) + cycle_time) / n
            m.success_rate = m.tasks_completed / n if n else 0.0

    async def _handle_error(self, error: Exception, cycle_time: Optional[float]) -> None:
        # cycle_time is None when the cycle was already counted before failing.
        with self._lock:
            self.state.error_count += 1
            self._metrics.last_error = self._clock.now()
        if cycle_time is not None:
            self._update_metrics(cycle_time)

        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        try:
            await self.memory.store(
                MemoryEntry(
                    type=MemoryType.EPISODIC,
                    content={"error": str(error), "stack": stack},
                    importance=ERROR_MEMORY_IMPORTANCE,
                    timestamp=self._clock.now(),
                )
            )
        except Exception:
            self.logger.exception("Failed to store cycle error in memory")

        await self._update_status(AgentStatus.ERROR)
        await self.events.emit(AgentEvent.ERROR, {"agent_id": self.state.id, "error": error})

        await self._clock.sleep(self.config.error_backoff / 1000)
        await self._update_status(AgentStatus.IDLE)
