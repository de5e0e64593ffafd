"""
Planner - Produce the next few steps toward the goal.

Reads the conversation through a read-only context view plus a fresh
environment snapshot. On failure it returns an empty plan and leaves the
decision to the caller.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from browser_agent.context.store import ContextView
from browser_agent.core.schemas import Plan
from browser_agent.events.emitter import ProgressEmitter
from browser_agent.exceptions import TaskCancelledError
from browser_agent.interfaces.environment import IEnvironment
from browser_agent.interfaces.llm import ILLMProvider, Message
from browser_agent.prompts import (
    PLANNER_FEEDBACK_TEMPLATE,
    PLANNER_SYSTEM_PROMPT,
    PLANNER_TASK_PROMPT,
    format_browser_state,
)

if TYPE_CHECKING:
    from browser_agent.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


async def environment_state(
    environment: Optional[IEnvironment],
    cancel_token: Optional["CancellationToken"] = None,
) -> str:
    """Formatted environment snapshot, or an empty string without one."""
    if environment is None:
        return ""
    snapshot = environment.get_snapshot()
    snapshot_text = await (cancel_token.guard(snapshot) if cancel_token else snapshot)
    return format_browser_state(snapshot_text)


class Planner:
    """
    LLM-backed step planner.
    
    Example:
        >>> planner = Planner(llm, store.view(), emitter, environment)
        >>> plan = await planner.plan("Buy toothpaste", max_steps=3, cancel_token=token)
        >>> [step.action for step in plan.steps]
        ['Navigate to Amazon', 'Search for toothpaste', 'Add a product to the cart']
    """
    
    def __init__(
        self,
        llm: ILLMProvider,
        context: ContextView,
        emitter: ProgressEmitter,
        environment: Optional[IEnvironment] = None,
    ):
        self._llm = llm
        self._context = context
        self._emitter = emitter
        self._environment = environment
    
    async def _build_messages(
        self,
        task: str,
        max_steps: int,
        feedback: Optional[List[str]],
        cancel_token: Optional["CancellationToken"],
    ) -> List[Message]:
        feedback_text = ""
        if feedback:
            feedback_text = PLANNER_FEEDBACK_TEMPLATE.format(
                suggestions="\n".join(f"- {s}" for s in feedback),
            )
        prompt = PLANNER_TASK_PROMPT.format(
            conversation=self._context.transcript(),
            browser_state=await environment_state(self._environment, cancel_token),
            feedback=feedback_text,
            max_steps=max_steps,
            task=task,
        )
        return [Message.system(PLANNER_SYSTEM_PROMPT), Message.user(prompt)]
    
    async def plan(
        self,
        task: str,
        max_steps: int = 3,
        feedback: Optional[List[str]] = None,
        cancel_token: Optional["CancellationToken"] = None,
    ) -> Plan:
        """
        Plan up to ``max_steps`` next steps.
        
        Args:
            task: The user's goal
            max_steps: Upper bound on returned steps
            feedback: Validator suggestions from the previous segment
            cancel_token: Cancellation signal
            
        Returns:
            Plan, empty on failure
            
        Raises:
            TaskCancelledError: If the run is cancelled
        """
        self._emitter.planning_steps(max_steps)
        
        try:
            messages = await self._build_messages(task, max_steps, feedback, cancel_token)
            plan = await self._llm.complete_structured(messages, Plan, cancel_token=cancel_token)
        except TaskCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Planning failed: {e}")
            self._emitter.debug(f"Planning failed: {e}")
            return Plan()
        
        plan = plan.truncated(max_steps)
        for index, step in enumerate(plan.steps, 1):
            self._emitter.step_planned(index, step.action, step.reasoning)
        logger.info(f"Planned {len(plan.steps)} step(s)")
        return plan
