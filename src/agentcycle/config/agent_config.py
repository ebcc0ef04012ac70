# src/agentcycle/config/agent_config.py
"""
Agent configuration models.

This module defines Pydantic models for every static, read-only setting an
agent receives at construction. These models are used for:
1. Type-safe configuration loading
2. Validation with sensible defaults
3. Named capability profiles

The configuration hierarchy:
    AgentSettings (root)
    ├── AgentConfig              - Identity and cycle pacing
    ├── AgentGuardrails          - Soft runtime limits and tool allow-list
    └── AgenticCapabilities      - What the agent may do
        ├── PlanningCapabilities
        ├── DecisionCapabilities
        ├── MemoryCapabilities
        ├── CommunicationCapabilities
        └── LearningCapabilities

All durations are milliseconds; memory is in megabytes.

Usage:
    >>> from agentcycle.config import AgentSettings
    >>> settings = AgentSettings()  # All defaults
    >>> settings.agent.cycle_interval
    1000

    >>> settings = load_agent_settings(config_dict={
    ...     "agentcycle": {"capabilities": {"profile": "advanced"}}
    ... })
    >>> settings.capabilities.planning.can_adapt_plans
    True
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..exceptions import ConfigError
from ..models import MemoryType, PlanType

# =============================================================================
# AGENT CONFIGURATION
# =============================================================================


class AgentConfig(BaseModel):
    """
    Identity and pacing of one agent.

    Examples:
        >>> config = AgentConfig(name="Atlas")
        >>> config.error_backoff
        5000
    """

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        description="Configuration identifier",
    )
    name: str = Field(
        default="agent",
        min_length=1,
        description="Agent name; also used in the logger name and state id",
    )
    specialty: str = Field(
        default="",
        description="Free-form description of what the agent specializes in",
    )
    cycle_interval: int = Field(
        default=1000,
        ge=0,
        description="Rate-limit sleep between cycles in milliseconds",
    )
    error_backoff: int = Field(
        default=5000,
        ge=0,
        description="Pause after a failed cycle before returning to idle (ms)",
    )
    guardrail_pause: int = Field(
        default=5000,
        ge=0,
        description="Pause before re-checking failed guardrails (ms)",
    )
    status_update_every: int = Field(
        default=10,
        ge=1,
        description="Emit a status:update event every N cycles",
    )
    max_iterations: int | None = Field(
        default=None,
        ge=1,
        description="Optional cap on cycles per run",
    )
    timeout: int | None = Field(
        default=None,
        ge=0,
        description="Optional per-operation timeout hint for subclasses (ms)",
    )


# =============================================================================
# GUARDRAILS
# =============================================================================


class AgentGuardrails(BaseModel):
    """
    Soft safety limits evaluated before every cycle.

    Memory and concurrency violations pause the agent and re-check; they
    never abort it.  ``max_execution_time`` ends the run gracefully.

    Examples:
        >>> guardrails = AgentGuardrails(allowed_tools=["search"])
        >>> guardrails.max_concurrent_operations
        5
    """

    max_execution_time: int | None = Field(
        default=3_600_000,
        ge=0,
        description="Run time budget in milliseconds, measured from start(); None disables it",
    )
    max_memory_usage: float = Field(
        default=1024.0,
        ge=0.0,
        description="Maximum process memory in MB",
    )
    max_concurrent_operations: int = Field(
        default=5,
        ge=0,
        description="Maximum number of goals simultaneously in progress",
    )
    allowed_tools: list[str] = Field(
        default_factory=list,
        description="Names of tools that may be registered",
    )
    ethical_constraints: list[str] = Field(
        default_factory=list,
        description="Free-form constraints passed through to subclasses",
    )
    error_tolerance: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Acceptable error fraction, informational only",
    )


# =============================================================================
# CAPABILITIES
# =============================================================================


class PlanningCapabilities(BaseModel):
    """What the planning engine is allowed to do."""

    can_create_plans: bool = Field(default=True)
    can_adapt_plans: bool = Field(default=False)
    can_prioritize_tasks: bool = Field(default=False)
    max_planning_horizon: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum number of steps per plan",
    )
    supported_plan_types: list[PlanType] = Field(
        default_factory=lambda: [PlanType.SEQUENTIAL],
        description="Plan shapes the engine may produce",
    )

    @property
    def supports_parallel(self) -> bool:
        return PlanType.PARALLEL in self.supported_plan_types


class DecisionCapabilities(BaseModel):
    """What the decision engine is allowed to do."""

    can_make_autonomous_decisions: bool = Field(default=True)
    requires_approval: bool = Field(default=False)
    decision_types: list[str] = Field(
        default_factory=lambda: ["operational"],
        description="Any of 'tactical', 'strategic', 'operational'",
    )
    max_decision_complexity: int = Field(default=5, ge=1, le=10)
    can_evaluate_risk: bool = Field(default=True)

    @field_validator("decision_types")
    @classmethod
    def validate_decision_types(cls, v: list[str]) -> list[str]:
        """Validate decision type names."""
        valid = {"tactical", "strategic", "operational"}
        invalid = [t for t in v if t not in valid]
        if invalid:
            raise ValueError(f"Invalid decision types: {invalid}. Valid: {sorted(valid)}")
        return v


class MemoryCapabilities(BaseModel):
    """Memory limits handed to the memory collaborator."""

    short_term_capacity: int = Field(default=100, ge=1)
    long_term_capacity: int = Field(default=1000, ge=0)
    can_forget: bool = Field(default=True)
    supported_memory_types: list[MemoryType] = Field(
        default_factory=lambda: [MemoryType.EPISODIC],
    )
    retrieval_methods: list[str] = Field(default_factory=lambda: ["exact", "temporal"])


class CommunicationCapabilities(BaseModel):
    """Inter-agent messaging permissions."""

    can_initiate_conversation: bool = Field(default=True)
    can_broadcast: bool = Field(default=False)
    can_negotiate: bool = Field(default=False)
    supported_protocols: list[str] = Field(default_factory=lambda: ["direct"])
    max_concurrent_conversations: int = Field(default=1, ge=0)


class LearningCapabilities(BaseModel):
    """Learning settings, passed through to ``learn()`` implementations."""

    can_learn_from_experience: bool = Field(default=True)
    can_adapt_behavior: bool = Field(default=False)
    can_transfer_knowledge: bool = Field(default=False)
    learning_rate: float = Field(default=0.1, ge=0.0, le=1.0)
    supported_learning_types: list[str] = Field(default_factory=lambda: ["reinforcement"])


class AgenticCapabilities(BaseModel):
    """
    Complete capability set of one agent.

    Examples:
        >>> caps = AgenticCapabilities()
        >>> caps.planning.supported_plan_types
        [<PlanType.SEQUENTIAL: 'sequential'>]
    """

    planning: PlanningCapabilities = Field(default_factory=PlanningCapabilities)
    decision_making: DecisionCapabilities = Field(default_factory=DecisionCapabilities)
    memory: MemoryCapabilities = Field(default_factory=MemoryCapabilities)
    communication: CommunicationCapabilities = Field(default_factory=CommunicationCapabilities)
    learning: LearningCapabilities = Field(default_factory=LearningCapabilities)

    max_concurrent_tasks: int = Field(default=1, ge=1)
    supported_tools: list[str] = Field(default_factory=list)
    allowed_actions: list[str] = Field(default_factory=list)
    autonomy_level: int = Field(default=3, ge=0, le=10)


# =============================================================================
# CAPABILITY PROFILES
# =============================================================================


CAPABILITY_PROFILES: dict[str, dict[str, Any]] = {
    "basic": {
        "autonomy_level": 3,
        "max_concurrent_tasks": 1,
        "planning": {
            "can_create_plans": True,
            "can_adapt_plans": False,
            "can_prioritize_tasks": False,
            "max_planning_horizon": 5,
            "supported_plan_types": ["sequential"],
        },
    },
    "advanced": {
        "autonomy_level": 7,
        "max_concurrent_tasks": 5,
        "planning": {
            "can_create_plans": True,
            "can_adapt_plans": True,
            "can_prioritize_tasks": True,
            "max_planning_horizon": 20,
            "supported_plan_types": ["sequential", "parallel", "hierarchical"],
        },
    },
    "autonomous": {
        "autonomy_level": 10,
        "max_concurrent_tasks": 10,
        "planning": {
            "can_create_plans": True,
            "can_adapt_plans": True,
            "can_prioritize_tasks": True,
            "max_planning_horizon": 50,
            "supported_plan_types": ["sequential", "parallel", "hierarchical"],
        },
    },
}


def capability_profile(name: str, **overrides: Any) -> AgenticCapabilities:
    """
    Build capabilities from a named profile.

    Args:
        name: One of ``basic``, ``advanced``, ``autonomous``.
        **overrides: Fields replacing the profile's values. Dict values are
            merged into the profile's nested section, so overriding one
            planning field keeps the rest of the profile's planning settings.

    Raises:
        ConfigError: If the profile name is unknown.
    """
    if name not in CAPABILITY_PROFILES:
        raise ConfigError(
            f"Unknown capability profile: {name!r}. Valid: {sorted(CAPABILITY_PROFILES)}"
        )
    return AgenticCapabilities(**_deep_merge(CAPABILITY_PROFILES[name], overrides))


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# =============================================================================
# ROOT SETTINGS
# =============================================================================


class AgentSettings(BaseModel):
    """Root configuration aggregating identity, guardrails and capabilities."""

    agent: AgentConfig = Field(default_factory=AgentConfig)
    guardrails: AgentGuardrails = Field(default_factory=AgentGuardrails)
    capabilities: AgenticCapabilities = Field(default_factory=AgenticCapabilities)
    logging: dict[str, Any] = Field(
        default_factory=dict,
        description="Overrides passed to agentcycle.logging_config.configure_logging",
    )


# =============================================================================
# HELPER: LOAD FROM TOML DICT
# =============================================================================


def load_agent_settings(
    config_dict: dict[str, Any] | None = None,
    config_path: Path | str | None = None,
) -> AgentSettings:
    """
    Load agent settings from a dictionary or TOML file.

    The ``capabilities`` table may name a ``profile``; its remaining keys
    override the profile's values.

    Args:
        config_dict: Pre-parsed configuration dictionary. If provided,
            extracts the ``"agentcycle"`` key if present.
        config_path: Path to a TOML file. If provided, reads and parses
            it, then extracts the ``"agentcycle"`` section.

    Returns:
        Validated AgentSettings with defaults for unspecified settings.

    Raises:
        FileNotFoundError: If config_path does not exist.
        ConfigError: If the profile is unknown.
        pydantic.ValidationError: If validation fails on any value.

    Examples:
        >>> settings = load_agent_settings(config_dict={
        ...     "agentcycle": {"guardrails": {"max_memory_usage": 256}}
        ... })
        >>> settings.guardrails.max_memory_usage
        256.0
    """
    data: dict[str, Any] = {}

    if config_path is not None:
        import tomllib

        path = Path(config_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        data = raw.get("agentcycle", {})

    if config_dict is not None:
        if "agentcycle" in config_dict:
            data = config_dict["agentcycle"]
        else:
            data = config_dict

    data = dict(data)
    capabilities = dict(data.get("capabilities") or {})
    profile = capabilities.pop("profile", None)
    if profile is not None:
        data["capabilities"] = capability_profile(profile, **capabilities)

    return AgentSettings(**data)
