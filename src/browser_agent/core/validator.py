"""
Validator - Judge whether the task has been completed.
"""

import json
import logging
from typing import TYPE_CHECKING, Optional

from browser_agent.context.store import ContextView
from browser_agent.core.planner import environment_state
from browser_agent.core.schemas import ValidationResult
from browser_agent.events.emitter import ProgressEmitter
from browser_agent.exceptions import TaskCancelledError
from browser_agent.interfaces.environment import IEnvironment
from browser_agent.interfaces.llm import ILLMProvider, Message
from browser_agent.prompts import VALIDATOR_SYSTEM_PROMPT, VALIDATOR_TASK_PROMPT

if TYPE_CHECKING:
    from browser_agent.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class TaskValidator:
    """
    LLM-backed completion check.
    
    Failures yield an incomplete verdict so a run is never reported
    successful without evidence.
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
    
    async def validate(
        self,
        task: str,
        cancel_token: Optional["CancellationToken"] = None,
    ) -> ValidationResult:
        """
        Validate task completion.
        
        Raises:
            TaskCancelledError: If the run is cancelled
        """
        try:
            prompt = VALIDATOR_TASK_PROMPT.format(
                task=task,
                conversation=self._context.transcript(),
                browser_state=await environment_state(self._environment, cancel_token),
            )
            result = await self._llm.complete_structured(
                [Message.system(VALIDATOR_SYSTEM_PROMPT), Message.user(prompt)],
                ValidationResult,
                cancel_token=cancel_token,
            )
        except TaskCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Validation failed: {e}")
            result = ValidationResult.fallback(str(e))
        
        self._emitter.debug(f"Validation result: {json.dumps(result.model_dump(), indent=2)}")
        return result
