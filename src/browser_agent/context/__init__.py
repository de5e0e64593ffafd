"""
Context - Conversation history with token budgeting.
"""

from browser_agent.context.store import (
    ContextEntry,
    ContextStore,
    ContextView,
    EntryKind,
    estimate_tokens,
)

__all__ = [
    "ContextEntry",
    "ContextStore",
    "ContextView",
    "EntryKind",
    "estimate_tokens",
]
