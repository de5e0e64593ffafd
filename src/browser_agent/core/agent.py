"""
Agent - Main orchestrator for browser automation tasks.

This module contains the Agent class which turns a natural-language task
into a bounded sequence of tool calls: it classifies the task, then
either executes it directly or runs a plan-execute-validate loop.

Example:
    >>> from browser_agent import Agent
    >>> from browser_agent.llm import OpenAIProvider
    >>> agent = Agent(OpenAIProvider(base_url="https://api.openai.com", model="gpt-4o"))
    >>> result = await agent.execute("Search for Python tutorials on Google")
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, TYPE_CHECKING

from browser_agent.context.store import ContextStore, EntryKind
from browser_agent.core.classifier import TaskClassifier
from browser_agent.core.executor import TurnExecutor
from browser_agent.core.planner import Planner
from browser_agent.core.strategies import (
    ExecutionStrategy,
    MultiStepStrategy,
    SimpleTaskStrategy,
)
from browser_agent.core.validator import TaskValidator
from browser_agent.events.emitter import ProgressEmitter
from browser_agent.exceptions import StrategyExhaustedError, TaskCancelledError
from browser_agent.interfaces.environment import IEnvironment, NullEnvironment
from browser_agent.interfaces.llm import ILLMProvider
from browser_agent.prompts import build_agent_system_prompt
from browser_agent.tools.base import BaseTool
from browser_agent.tools.builtin import DoneTool, RefreshStateTool
from browser_agent.tools.manager import ToolManager
from browser_agent.utils.cancellation import CancellationToken

if TYPE_CHECKING:
    from browser_agent.config.settings import Settings

logger = logging.getLogger(__name__)


class AgentState(str, Enum):
    """Lifecycle of a single execute() call."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    CLASSIFYING = "classifying"
    SIMPLE = "simple"
    MULTI_STEP = "multi_step"
    COMPLETED = "completed"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class AgentResult:
    """
    Result of an agent task execution.
    
    Attributes:
        success: Whether the task completed
        status: 'completed' or 'exhausted'
        task: The original task description
        strategy: Strategy that ran ('simple' or 'multi_step')
        steps_executed: Attempts or plan steps taken
        message: Completion or exhaustion message
        error: Error message if the task did not complete
        duration_seconds: Total execution time
    """
    success: bool
    status: str
    task: str
    strategy: str = ""
    steps_executed: int = 0
    message: str = ""
    error: Optional[str] = None
    duration_seconds: float = 0.0


class Agent:
    """
    Main agent class for executing browser tasks.
    
    The Agent coordinates between:
    - LLM Provider: classification, planning, turns and validation
    - Tool Manager: the tools the model may call
    - Context Store: the token-budgeted conversation
    - Progress Emitter: events for hosts and UIs
    
    Only one execute() runs at a time. Starting a new one cancels the
    current run and waits for it to settle.
    
    Example:
        >>> agent = Agent(llm, tools=[NavigateTool(page)], environment=PageEnvironment(page))
        >>> agent.emitter.subscribe(print)
        >>> result = await agent.execute("Open example.com and read the heading")
        >>> print(f"Success: {result.success}")
    """
    
    def __init__(
        self,
        llm_provider: ILLMProvider,
        settings: Optional["Settings"] = None,
        tools: Optional[Iterable[BaseTool]] = None,
        environment: Optional[IEnvironment] = None,
        emitter: Optional[ProgressEmitter] = None,
        store: Optional[ContextStore] = None,
    ):
        """
        Initialize the Agent.
        
        Args:
            llm_provider: LLM used for every model call
            settings: Configuration settings (loads defaults if None)
            tools: Extra tools; done_tool and refresh_browser_state are always registered
            environment: Source of environment snapshots
            emitter: Progress emitter (a new one if None)
            store: Context store (built from settings if None)
        """
        self._settings = settings
        self._llm = llm_provider
        self._environment = environment or NullEnvironment()
        self._emitter = emitter or ProgressEmitter()
        
        context_settings = self.settings.context
        self._store = store or ContextStore(
            max_tokens=context_settings.max_tokens,
            tokens_per_entry=context_settings.tokens_per_entry,
            chars_per_token=context_settings.chars_per_token,
        )
        
        self._tools = ToolManager([DoneTool(), RefreshStateTool(self._environment)])
        for tool in tools or ():
            self._tools.register(tool)
        
        view = self._store.view()
        self._executor = TurnExecutor(self._llm, self._store, self._tools, self._emitter)
        self._classifier = TaskClassifier(self._llm, self._emitter, self._tools, view)
        self._planner = Planner(self._llm, view, self._emitter, self._environment)
        self._validator = TaskValidator(self._llm, view, self._emitter, self._environment)
        
        self._lock = asyncio.Lock()
        self._token: Optional[CancellationToken] = None
        self._state = AgentState.IDLE
    
    @property
    def settings(self) -> "Settings":
        """Get the current settings, loading defaults if needed."""
        if self._settings is None:
            from browser_agent.config import get_settings
            self._settings = get_settings()
        return self._settings
    
    @property
    def state(self) -> AgentState:
        return self._state
    
    @property
    def is_running(self) -> bool:
        return self._lock.locked()
    
    @property
    def emitter(self) -> ProgressEmitter:
        return self._emitter
    
    @property
    def tools(self) -> ToolManager:
        return self._tools
    
    @property
    def context(self) -> ContextStore:
        return self._store
    
    def cancel(self, reason: str = "Cancelled by user") -> bool:
        """
        Cancel the running task.
        
        Returns:
            True if a run was signalled
        """
        if self._token is None or self._token.is_cancelled:
            return False
        logger.info(f"Cancelling task: {reason}")
        self._token.cancel(reason)
        return True
    
    async def execute(self, task: str) -> AgentResult:
        """
        Execute a natural language task.
        
        Args:
            task: Natural language description of the task
            
        Returns:
            AgentResult; exhaustion resolves with status 'exhausted'
            unless ``raise_on_exhaustion`` is set
            
        Raises:
            TaskCancelledError: If the run was cancelled or superseded
            StrategyExhaustedError: On exhaustion with ``raise_on_exhaustion``
            PlanningError: If the planner returns no steps
            LLMError: If a turn's completion request fails
        """
        token = CancellationToken()
        if self._token is not None:
            self._token.cancel("Superseded by a new task")
        self._token = token
        
        async with self._lock:
            try:
                return await self._run(task, token)
            finally:
                if self._token is token:
                    self._token = None
    
    def _initialize(self, task: str) -> None:
        self._store.remove_by_kind(EntryKind.SYSTEM)
        self._store.add_system(build_agent_system_prompt(self._tools.describe()))
        self._store.add_user(task)
    
    def _build_strategy(self, is_simple: bool) -> ExecutionStrategy:
        agent_settings = self.settings.agent
        if is_simple:
            self._state = AgentState.SIMPLE
            return SimpleTaskStrategy(
                self._executor,
                self._emitter,
                max_attempts=agent_settings.max_simple_attempts,
            )
        self._state = AgentState.MULTI_STEP
        return MultiStepStrategy(
            self._executor,
            self._planner,
            self._store,
            self._emitter,
            validator=self._validator if agent_settings.enable_validation else None,
            max_total_steps=agent_settings.max_total_steps,
            steps_per_plan=agent_settings.steps_per_plan,
        )
    
    async def _run(self, task: str, token: CancellationToken) -> AgentResult:
        start_time = time.time()
        logger.info(f"Running task: {task}")
        
        try:
            token.check()
            self._state = AgentState.INITIALIZING
            self._initialize(task)
            
            self._state = AgentState.CLASSIFYING
            classification = await self._classifier.classify(task, token)
            strategy = self._build_strategy(classification.is_simple_task)
            outcome = await strategy.run(task, token)
        except TaskCancelledError as e:
            self._state = AgentState.CANCELLED
            logger.info(f"Task cancelled: {e.reason or 'no reason given'}")
            self._emitter.cancelled(e.reason)
            raise
        except Exception as e:
            self._state = AgentState.FAILED
            logger.error(f"Task failed: {e}")
            self._emitter.error(str(e), fatal=True)
            raise
        
        duration = time.time() - start_time
        
        if outcome.completed:
            self._state = AgentState.COMPLETED
            logger.info(f"Task completed in {duration:.1f}s ({outcome.steps_executed} step(s))")
            self._emitter.complete(outcome.message)
            return AgentResult(
                success=True,
                status="completed",
                task=task,
                strategy=strategy.name,
                steps_executed=outcome.steps_executed,
                message=outcome.message,
                duration_seconds=duration,
            )
        
        self._state = AgentState.EXHAUSTED
        self._store.add_assistant(outcome.message)
        logger.warning(outcome.message)
        self._emitter.exhausted(outcome.message, strategy.name, outcome.limit)
        
        if self.settings.agent.raise_on_exhaustion:
            raise StrategyExhaustedError(outcome.message, strategy=strategy.name, limit=outcome.limit)
        
        return AgentResult(
            success=False,
            status="exhausted",
            task=task,
            strategy=strategy.name,
            steps_executed=outcome.steps_executed,
            message=outcome.message,
            error=outcome.message,
            duration_seconds=duration,
        )
