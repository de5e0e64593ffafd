"""
Progress Emitter - Streaming progress events for hosts and UIs.

The agent reports what it is doing (classifying, planning, thinking,
calling tools) through a ProgressEmitter. Sinks are plain callables
subscribed on the emitter. Emission is synchronous, best effort and
never blocks the agent: a sink that raises is logged and skipped.
"""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Kinds of progress events."""
    ANALYZING = "analyzing"
    TASK_CLASSIFIED = "task_classified"
    PLANNING = "planning"
    STEP_PLANNED = "step_planned"
    STEP_STARTED = "step_started"
    THINKING_STARTED = "thinking_started"
    REASONING_CHUNK = "reasoning_chunk"
    THINKING_FINISHED = "thinking_finished"
    TOOL_STARTED = "tool_started"
    TOOL_FINISHED = "tool_finished"
    INFO = "info"
    DEBUG = "debug"
    TASK_COMPLETED = "task_completed"
    TASK_ERRORED = "task_errored"
    TASK_CANCELLED = "task_cancelled"


TERMINAL_EVENTS = frozenset({
    EventType.TASK_COMPLETED,
    EventType.TASK_ERRORED,
    EventType.TASK_CANCELLED,
})


@dataclass
class ProgressEvent:
    """A single progress event."""
    type: EventType
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    
    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "data": self.data,
            "timestamp": self.timestamp,
        }


ProgressSink = Callable[[ProgressEvent], None]


class ProgressEmitter:
    """
    Fan-out of progress events to subscribed sinks.
    
    Example:
        >>> emitter = ProgressEmitter()
        >>> unsubscribe = emitter.subscribe(print)
        >>> emitter.info("Opening page")
        >>> unsubscribe()
    """
    
    def __init__(self):
        self._sinks: List[ProgressSink] = []
        self._segments = itertools.count(1)
        self._segment_id: Optional[int] = None
    
    def subscribe(self, sink: ProgressSink) -> Callable[[], None]:
        """
        Add a sink.
        
        Returns:
            Callable that removes the sink again
        """
        self._sinks.append(sink)
        return lambda: self.unsubscribe(sink)
    
    def unsubscribe(self, sink: ProgressSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)
    
    def emit(self, event_type: EventType, message: str = "", **data: Any) -> ProgressEvent:
        """Build an event and deliver it to every sink."""
        event = ProgressEvent(type=event_type, message=message, data=data)
        for sink in list(self._sinks):
            try:
                sink(event)
            except Exception as e:
                logger.warning(f"Progress sink {sink!r} failed on {event_type.value}: {e}")
        return event
    
    # =========================================================================
    # SEMANTIC HELPERS
    # =========================================================================
    
    def analyzing_task(self) -> None:
        self.emit(EventType.ANALYZING, "Analyzing task complexity...")
    
    def task_classified(self, is_simple: bool, is_followup: bool = False) -> None:
        message = (
            "Task classified as simple - executing directly"
            if is_simple
            else "Task classified as complex - creating execution plan"
        )
        self.emit(EventType.TASK_CLASSIFIED, message, is_simple=is_simple, is_followup=is_followup)
    
    def planning_steps(self, max_steps: int) -> None:
        self.emit(EventType.PLANNING, f"Creating {max_steps}-step execution plan...", max_steps=max_steps)
    
    def step_planned(self, index: int, action: str, reasoning: str = "") -> None:
        self.emit(EventType.STEP_PLANNED, f"{index}. {action}", index=index, action=action, reasoning=reasoning)
    
    def executing_step(self, step_number: int, action: str) -> None:
        self.emit(EventType.STEP_STARTED, f"Step {step_number}: {action}", step=step_number, action=action)
    
    def start_thinking(self) -> int:
        """Open a thinking segment; returns its id."""
        self._segment_id = next(self._segments)
        self.emit(EventType.THINKING_STARTED, segment_id=self._segment_id)
        return self._segment_id
    
    def stream_thought(self, content: str) -> None:
        if self._segment_id is None or not content:
            return
        self.emit(EventType.REASONING_CHUNK, content, segment_id=self._segment_id)
    
    def finish_thinking(self, full_content: str) -> None:
        if self._segment_id is None:
            return
        self.emit(EventType.THINKING_FINISHED, full_content, segment_id=self._segment_id)
        self._segment_id = None
    
    def executing_tool(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None, call_id: str = "") -> None:
        self.emit(
            EventType.TOOL_STARTED,
            f"Executing {tool_name}",
            tool_name=tool_name,
            arguments=arguments or {},
            call_id=call_id,
        )
    
    def tool_result(self, tool_name: str, ok: bool, summary: str = "", call_id: str = "") -> None:
        self.emit(
            EventType.TOOL_FINISHED,
            summary or ("Completed" if ok else "Failed"),
            tool_name=tool_name,
            ok=ok,
            call_id=call_id,
        )
    
    def info(self, message: str) -> None:
        self.emit(EventType.INFO, message)
    
    def debug(self, message: str) -> None:
        self.emit(EventType.DEBUG, message)
    
    def complete(self, message: str = "Task completed successfully") -> None:
        self.emit(EventType.TASK_COMPLETED, message)
    
    def error(self, message: str, fatal: bool = False) -> None:
        self.emit(EventType.TASK_ERRORED, message, fatal=fatal)
    
    def exhausted(self, message: str, strategy: str, limit: int) -> None:
        """Terminal event for a run that hit its attempt or step ceiling."""
        self.emit(EventType.TASK_ERRORED, message, fatal=False, exhausted=True, strategy=strategy, limit=limit)
    
    def cancelled(self, reason: Optional[str] = None) -> None:
        self.emit(EventType.TASK_CANCELLED, reason or "Task was cancelled", reason=reason)


class LoggingSink:
    """Sink that writes events to a logger."""
    
    _LEVELS = {
        EventType.DEBUG: logging.DEBUG,
        EventType.REASONING_CHUNK: logging.DEBUG,
        EventType.THINKING_STARTED: logging.DEBUG,
        EventType.THINKING_FINISHED: logging.DEBUG,
        EventType.TASK_ERRORED: logging.ERROR,
        EventType.TASK_CANCELLED: logging.WARNING,
    }
    
    def __init__(self, target: Optional[logging.Logger] = None):
        self._logger = target or logging.getLogger("browser_agent.progress")
    
    def __call__(self, event: ProgressEvent) -> None:
        level = self._LEVELS.get(event.type, logging.INFO)
        self._logger.log(level, f"[{event.type.value}] {event.message}")


class QueueSink:
    """
    Sink that buffers events on an asyncio queue.
    
    Lets an async consumer (SSE endpoint, websocket, test) drain events
    at its own pace. Events are dropped when a bounded queue is full.
    """
    
    def __init__(self, maxsize: int = 0):
        self.queue: "asyncio.Queue[ProgressEvent]" = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
    
    def __call__(self, event: ProgressEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug(f"Progress queue full, dropped {event.type.value}")
    
    def drain(self) -> List[ProgressEvent]:
        """Take every buffered event."""
        events = []
        while not self.queue.empty():
            events.append(self.queue.get_nowait())
        return events
