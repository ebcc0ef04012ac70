# src/agentcycle/config/__init__.py
"""
Configuration module for the agentcycle library.

Settings are plain Pydantic models and can be built directly, from a
dictionary, or from the ``[agentcycle]`` table of a TOML file:

    [agentcycle.agent]
    name = "atlas"
    cycle_interval = 2000

    [agentcycle.guardrails]
    max_memory_usage = 512
    allowed_tools = ["search"]

    [agentcycle.capabilities]
    profile = "advanced"
"""

from .agent_config import (
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

__all__ = [
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
]
