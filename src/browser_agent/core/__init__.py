"""
Core module - Agent orchestration.
"""

from browser_agent.core.agent import Agent, AgentResult, AgentState
from browser_agent.core.classifier import TaskClassifier
from browser_agent.core.executor import TurnExecutor, TurnResult
from browser_agent.core.planner import Planner
from browser_agent.core.schemas import ClassificationResult, Plan, PlanStep, ValidationResult
from browser_agent.core.strategies import (
    ExecutionStrategy,
    MultiStepStrategy,
    SimpleTaskStrategy,
    StrategyOutcome,
)
from browser_agent.core.validator import TaskValidator

__all__ = [
    "Agent",
    "AgentResult",
    "AgentState",
    "TaskClassifier",
    "TurnExecutor",
    "TurnResult",
    "Planner",
    "TaskValidator",
    "ClassificationResult",
    "Plan",
    "PlanStep",
    "ValidationResult",
    "ExecutionStrategy",
    "SimpleTaskStrategy",
    "MultiStepStrategy",
    "StrategyOutcome",
]
