"""
Events - Progress event contract and sinks.
"""

from browser_agent.events.emitter import (
    EventType,
    LoggingSink,
    ProgressEmitter,
    ProgressEvent,
    ProgressSink,
    QueueSink,
)

__all__ = [
    "EventType",
    "LoggingSink",
    "ProgressEmitter",
    "ProgressEvent",
    "ProgressSink",
    "QueueSink",
]
