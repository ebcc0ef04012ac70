# src/agentcycle/exceptions.py
"""
Custom exceptions for the agentcycle library.

This module defines a hierarchy of custom exception classes so callers can
tell configuration mistakes (raised immediately, never retried) apart from
planning API misuse (raised to the direct caller) and decision failures.
Errors raised inside an agent's cycle body never reach the caller of
``start()``; they are caught at the iteration boundary.
"""

from typing import Optional


class AgentCycleError(Exception):
    """Base class for all agentcycle specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in agentcycle."):
        super().__init__(message)

class ConfigError(AgentCycleError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class ToolNotAllowedError(ConfigError):
    """Raised when registering a tool that the guardrails do not allow."""
    def __init__(self, tool_name: str, message: str = "Tool not allowed by guardrails."):
        self.tool_name = tool_name
        super().__init__(f"{message} Tool: '{tool_name}'")

class CommunicationNotAllowedError(ConfigError):
    """Raised when an agent without the capability tries to start a conversation."""
    def __init__(self, message: str = "Agent cannot initiate conversations."):
        super().__init__(message)

class ToolNotFoundError(AgentCycleError):
    """Raised when calling a tool that was never registered."""
    def __init__(self, tool_name: str, message: str = "Tool not registered."):
        self.tool_name = tool_name
        super().__init__(f"{message} Tool: '{tool_name}'")

class InvalidTransitionError(AgentCycleError):
    """Raised when a status change is not permitted by the agent state machine."""
    def __init__(self, current: str, target: str, message: str = "Invalid status transition."):
        self.current = current
        self.target = target
        super().__init__(f"{message} '{current}' -> '{target}'")

class PlanningError(AgentCycleError):
    """Base class for errors raised by the planning engine."""
    def __init__(self, message: str = "Planning error."):
        super().__init__(message)

class NoGoalsError(PlanningError):
    """Raised when a plan is requested but the context holds no goals."""
    def __init__(self, message: str = "No goals to plan for."):
        super().__init__(message)

class PlanNotFoundError(PlanningError):
    """Raised when a plan ID is not present in the active plan store."""
    def __init__(self, plan_id: str, message: str = "Plan not found."):
        self.plan_id = plan_id
        super().__init__(f"{message} Plan ID: '{plan_id}'")

class StepNotFoundError(PlanningError):
    """Raised when a step ID is not part of the given plan."""
    def __init__(self, plan_id: str, step_id: str, message: str = "Step not found."):
        self.plan_id = plan_id
        self.step_id = step_id
        super().__init__(f"{message} Step ID: '{step_id}', Plan ID: '{plan_id}'")

class PlanningNotSupportedError(PlanningError):
    """Raised when the planning capabilities do not allow an operation."""
    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        super().__init__(message or f"Plan {operation} not supported.")

class DecisionError(AgentCycleError):
    """Raised when the decision engine cannot produce an acceptable decision."""
    def __init__(self, message: str = "Decision error."):
        super().__init__(message)
