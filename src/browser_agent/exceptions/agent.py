"""
Agent orchestration exceptions.
"""

from browser_agent.exceptions.base import BrowserAgentError


class AgentError(BrowserAgentError):
    """Base exception for orchestration errors."""
    pass


class PlanningError(AgentError):
    """
    The planner produced no steps.
    
    Planning failures are not retried indefinitely; an empty plan
    ends the multi-step strategy.
    """
    pass


class StrategyExhaustedError(AgentError):
    """
    An execution strategy reached its attempt or step ceiling.
    
    Attributes:
        strategy: Name of the strategy that gave up ('simple' or 'multi_step')
        limit: The ceiling that was reached
    """
    
    def __init__(self, message: str, strategy: str, limit: int):
        super().__init__(message, {"strategy": strategy, "limit": limit})
        self.strategy = strategy
        self.limit = limit


class TaskCancelledError(AgentError):
    """
    The running task was cancelled.
    
    Distinct from failures so callers can tell "the user stopped this"
    from "this failed".
    """
    
    def __init__(self, message: str = "Task was cancelled", reason: str | None = None):
        super().__init__(message, {"reason": reason} if reason else None)
        self.reason = reason
