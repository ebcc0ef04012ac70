# src/agentcycle/__init__.py
"""
agentcycle: autonomous agent cycle scheduler and planning engine.

Provides:
- AutonomousAgent: base class running a guarded
  perceive -> plan -> decide -> execute -> learn loop
- PlanningEngine: goal prioritization, step generation, duration
  estimation, feasibility scoring and plan adaptation
- DecisionEngine: weighted multi-criteria option selection
- EventBus: typed subscriptions to agent lifecycle and status events
- Clock / VirtualClock: injectable time for deterministic tests

Example:
    from agentcycle import AutonomousAgent, AgentConfig, AgentGuardrails, capability_profile

    class Watcher(AutonomousAgent):
        async def perceive(self):
            return {"hints": ["check inbox", "use mail"]}

        async def execute(self, option):
            return await self.call_tool("mail", option.id)

        async def learn(self, result):
            pass

    agent = Watcher(
        AgentConfig(name="watcher"),
        capability_profile("advanced"),
        AgentGuardrails(allowed_tools=["mail"]),
    )
    await agent.start()
"""

from .agent import STATUS_TRANSITIONS, AutonomousAgent
from .clock import Clock, SystemClock, VirtualClock, elapsed_ms
from .config import (
    CAPABILITY_PROFILES,
    AgentConfig,
    AgentGuardrails,
    AgenticCapabilities,
    AgentSettings,
    CommunicationCapabilities,
    DecisionCapabilities,
    LearningCapabilities,
    MemoryCapabilities,
    PlanningCapabilities,
    capability_profile,
    load_agent_settings,
)
from .decision import (
    DecisionConstraints,
    DecisionContext,
    DecisionCriteria,
    DecisionEngine,
    DecisionMaker,
    DecisionOutcome,
)
from .events import AgentEvent, EventBus
from .exceptions import (
    AgentCycleError,
    CommunicationNotAllowedError,
    ConfigError,
    DecisionError,
    InvalidTransitionError,
    NoGoalsError,
    PlanningError,
    PlanningNotSupportedError,
    PlanNotFoundError,
    StepNotFoundError,
    ToolNotAllowedError,
    ToolNotFoundError,
)
from .guardrails import GuardrailMonitor, GuardrailStatus, GuardrailViolation
from .logging_config import configure_logging, log_display
from .memory import InMemoryEpisodicStore, MemoryStore
from .models import (
    AgentContext,
    AgentMessage,
    AgentState,
    AgentStatus,
    AgentTool,
    DecisionOption,
    DecisionResult,
    ExecutionPlan,
    Goal,
    GoalStatus,
    GoalType,
    MemoryEntry,
    MemoryType,
    MessageType,
    PerformanceMetrics,
    PlanStatus,
    PlanStep,
    PlanType,
    StepStatus,
    ToolResult,
)
from .planning import (
    PlanningConstraints,
    PlanningContext,
    PlanningEngine,
    PlanningResult,
    extract_resources,
)

__version__ = "0.1.0"

__all__ = [
    # Agent
    "AutonomousAgent",
    "STATUS_TRANSITIONS",
    # Clock
    "Clock",
    "SystemClock",
    "VirtualClock",
    "elapsed_ms",
    # Config
    "CAPABILITY_PROFILES",
    "AgentConfig",
    "AgentGuardrails",
    "AgenticCapabilities",
    "AgentSettings",
    "CommunicationCapabilities",
    "DecisionCapabilities",
    "LearningCapabilities",
    "MemoryCapabilities",
    "PlanningCapabilities",
    "capability_profile",
    "load_agent_settings",
    # Decision
    "DecisionConstraints",
    "DecisionContext",
    "DecisionCriteria",
    "DecisionEngine",
    "DecisionMaker",
    "DecisionOutcome",
    # Events
    "AgentEvent",
    "EventBus",
    # Exceptions
    "AgentCycleError",
    "CommunicationNotAllowedError",
    "ConfigError",
    "DecisionError",
    "InvalidTransitionError",
    "NoGoalsError",
    "PlanningError",
    "PlanningNotSupportedError",
    "PlanNotFoundError",
    "StepNotFoundError",
    "ToolNotAllowedError",
    "ToolNotFoundError",
    # Guardrails
    "GuardrailMonitor",
    "GuardrailStatus",
    "GuardrailViolation",
    # Logging
    "configure_logging",
    "log_display",
    # Memory
    "InMemoryEpisodicStore",
    "MemoryStore",
    # Models
    "AgentContext",
    "AgentMessage",
    "AgentState",
    "AgentStatus",
    "AgentTool",
    "DecisionOption",
    "DecisionResult",
    "ExecutionPlan",
    "Goal",
    "GoalStatus",
    "GoalType",
    "MemoryEntry",
    "MemoryType",
    "MessageType",
    "PerformanceMetrics",
    "PlanStatus",
    "PlanStep",
    "PlanType",
    "StepStatus",
    "ToolResult",
    # Planning
    "PlanningConstraints",
    "PlanningContext",
    "PlanningEngine",
    "PlanningResult",
    "extract_resources",
]
