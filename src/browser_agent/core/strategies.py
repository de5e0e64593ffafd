"""
Execution Strategies - How a classified task is driven to completion.

SimpleTaskStrategy gives the model a few direct attempts.
MultiStepStrategy plans a short segment, executes it step by step,
validates, and replans with the validator's feedback until the task
completes or the global step ceiling is reached.

Strategies report exhaustion by returning an incomplete outcome; the
Agent records it and decides whether to raise.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from browser_agent.context.store import ContextStore
from browser_agent.core.executor import TurnExecutor
from browser_agent.core.planner import Planner
from browser_agent.core.validator import TaskValidator
from browser_agent.events.emitter import ProgressEmitter
from browser_agent.exceptions import PlanningError
from browser_agent.prompts import (
    MULTI_STEP_EXHAUSTED_MESSAGE,
    SIMPLE_ATTEMPT_INSTRUCTION,
    SIMPLE_EXHAUSTED_MESSAGE,
    VALIDATION_FEEDBACK_MESSAGE,
)
from browser_agent.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


@dataclass
class StrategyOutcome:
    """
    Result of running a strategy.
    
    Attributes:
        completed: Whether the task finished
        steps_executed: Turns taken (attempts or plan steps)
        message: Completion or exhaustion message
        limit: The ceiling the strategy ran under
    """
    completed: bool
    steps_executed: int
    message: str
    limit: int


class ExecutionStrategy(ABC):
    """Base class for execution strategies."""
    
    name: str = ""
    
    @abstractmethod
    async def run(self, task: str, cancel_token: CancellationToken) -> StrategyOutcome:
        """
        Drive the task.
        
        Raises:
            TaskCancelledError: If the run is cancelled
        """
        ...


class SimpleTaskStrategy(ExecutionStrategy):
    """Direct execution without planning."""
    
    name = "simple"
    
    def __init__(self, executor: TurnExecutor, emitter: ProgressEmitter, max_attempts: int = 3):
        self._executor = executor
        self._emitter = emitter
        self._max_attempts = max_attempts
    
    async def run(self, task: str, cancel_token: CancellationToken) -> StrategyOutcome:
        self._emitter.info(f"Executing as a simple task. Max attempts: {self._max_attempts}")
        
        for attempt in range(1, self._max_attempts + 1):
            instruction = SIMPLE_ATTEMPT_INSTRUCTION.format(
                attempt=attempt,
                max_attempts=self._max_attempts,
                task=task,
            )
            self._emitter.executing_step(attempt, "Attempting to complete task directly.")
            
            turn = await self._executor.execute_turn(instruction, cancel_token)
            if turn.completed:
                return StrategyOutcome(
                    completed=True,
                    steps_executed=attempt,
                    message="Simple task completed successfully.",
                    limit=self._max_attempts,
                )
            
            if attempt < self._max_attempts:
                self._emitter.info(f"Attempt {attempt} did not complete the task. Retrying.")
        
        return StrategyOutcome(
            completed=False,
            steps_executed=self._max_attempts,
            message=SIMPLE_EXHAUSTED_MESSAGE.format(max_attempts=self._max_attempts),
            limit=self._max_attempts,
        )


class MultiStepStrategy(ExecutionStrategy):
    """Plan, execute, validate, replan."""
    
    name = "multi_step"
    
    def __init__(
        self,
        executor: TurnExecutor,
        planner: Planner,
        store: ContextStore,
        emitter: ProgressEmitter,
        validator: Optional[TaskValidator] = None,
        max_total_steps: int = 20,
        steps_per_plan: int = 3,
    ):
        self._executor = executor
        self._planner = planner
        self._store = store
        self._emitter = emitter
        self._validator = validator
        self._max_total_steps = max_total_steps
        self._steps_per_plan = steps_per_plan
    
    async def run(self, task: str, cancel_token: CancellationToken) -> StrategyOutcome:
        self._emitter.info("Executing as a multi-step task.")
        total_steps = 0
        feedback: Optional[List[str]] = None
        
        while total_steps < self._max_total_steps:
            plan = await self._planner.plan(
                task,
                max_steps=self._steps_per_plan,
                feedback=feedback,
                cancel_token=cancel_token,
            )
            if plan.is_empty:
                raise PlanningError("Planning failed. Could not generate next steps.")
            self._emitter.info(f"Created new {len(plan.steps)}-step plan.")
            
            for step in plan.steps:
                if total_steps >= self._max_total_steps:
                    break
                total_steps += 1
                self._emitter.executing_step(total_steps, step.action)
                
                turn = await self._executor.execute_turn(step.action, cancel_token)
                if turn.completed:
                    return self._outcome(True, total_steps, "Multi-step task completed successfully.")
            
            feedback = None
            if self._validator is not None:
                verdict = await self._validator.validate(task, cancel_token)
                if verdict.is_complete:
                    return self._outcome(
                        True, total_steps, f"Task validated as complete: {verdict.reasoning}",
                    )
                self._store.add_assistant(VALIDATION_FEEDBACK_MESSAGE.format(
                    reasoning=verdict.reasoning,
                    suggestions=", ".join(verdict.suggestions) or "none",
                ))
                feedback = verdict.suggestions or None
            
            logger.info(f"Plan segment finished without completion ({total_steps}/{self._max_total_steps} steps)")
        
        return self._outcome(
            False, total_steps, MULTI_STEP_EXHAUSTED_MESSAGE.format(max_steps=self._max_total_steps),
        )
    
    def _outcome(self, completed: bool, steps: int, message: str) -> StrategyOutcome:
        return StrategyOutcome(
            completed=completed,
            steps_executed=steps,
            message=message,
            limit=self._max_total_steps,
        )
