"""
Classifier - Decide whether a task needs planning.

One structured-output LLM call. Any failure other than cancellation
falls back to "complex", so a task is never routed to the direct
strategy on a guess.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from browser_agent.context.store import ContextView
from browser_agent.core.schemas import ClassificationResult
from browser_agent.events.emitter import ProgressEmitter
from browser_agent.exceptions import TaskCancelledError
from browser_agent.interfaces.llm import ILLMProvider, Message
from browser_agent.prompts import CLASSIFIER_SYSTEM_PROMPT, CLASSIFIER_TASK_PROMPT
from browser_agent.tools.manager import ToolManager

if TYPE_CHECKING:
    from browser_agent.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class TaskClassifier:
    """
    Classify tasks as simple or complex.
    
    Example:
        >>> classifier = TaskClassifier(llm, emitter, tool_manager)
        >>> result = await classifier.classify("Open example.com", token)
        >>> result.is_simple_task
        True
    """
    
    def __init__(
        self,
        llm: ILLMProvider,
        emitter: ProgressEmitter,
        tools: Optional[ToolManager] = None,
        context: Optional[ContextView] = None,
    ):
        self._llm = llm
        self._emitter = emitter
        self._tools = tools
        self._context = context
    
    def _build_messages(self, task: str) -> List[Message]:
        conversation = self._context.transcript() if self._context else ""
        return [
            Message.system(CLASSIFIER_SYSTEM_PROMPT),
            Message.user(CLASSIFIER_TASK_PROMPT.format(
                tool_descriptions=self._tools.describe() if self._tools else "No tools available.",
                conversation=conversation or "(none)",
                task=task,
            )),
        ]
    
    async def classify(
        self,
        task: str,
        cancel_token: Optional["CancellationToken"] = None,
    ) -> ClassificationResult:
        """
        Classify a task.
        
        Raises:
            TaskCancelledError: If the run is cancelled
        """
        self._emitter.analyzing_task()
        
        try:
            result = await self._llm.complete_structured(
                self._build_messages(task),
                ClassificationResult,
                cancel_token=cancel_token,
            )
        except TaskCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Classification failed, treating task as complex: {e}")
            self._emitter.debug(f"Classification failed: {e}")
            result = ClassificationResult.fallback()
        
        logger.info(
            f"Task classified as {'simple' if result.is_simple_task else 'complex'}"
            f"{' (follow-up)' if result.is_followup_task else ''}"
        )
        self._emitter.task_classified(result.is_simple_task, result.is_followup_task)
        return result
