"""
Context Store - Ordered, token-budgeted conversation history.

The store is the only place the conversation lives. Every LLM call the
agent makes (turns, planning, validation) reads from it; only the agent
writes to it. Entries are kept in insertion order with two exceptions:
the system entry always sits at position 0, and the environment snapshot
entry is replaced rather than accumulated.

Trimming runs synchronously after every append. The oldest non-system
entries go first, an assistant entry always together with the tool
results answering its calls. The newest entry, and the assistant/tool
result group it belongs to, is never evicted. Neither is the system
entry, so the store can stay over budget when those two alone exceed it.
"""

import json
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from browser_agent.interfaces.llm import Message, MessageRole, ToolCall

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8192
TOKENS_PER_ENTRY = 3
CHARS_PER_TOKEN = 4


class EntryKind(str, Enum):
    """Kind of a context entry."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool"
    ENVIRONMENT = "environment"


_ROLE_FOR_KIND = {
    EntryKind.SYSTEM: MessageRole.SYSTEM,
    EntryKind.USER: MessageRole.USER,
    EntryKind.ASSISTANT: MessageRole.ASSISTANT,
    EntryKind.TOOL_RESULT: MessageRole.TOOL,
    EntryKind.ENVIRONMENT: MessageRole.USER,
}


@dataclass(frozen=True)
class ContextEntry:
    """
    One immutable entry in the conversation.
    
    Attributes:
        kind: Entry kind
        content: Text content (may be empty for assistant entries with calls)
        tool_calls: Calls issued by an assistant entry
        tool_call_id: Call answered by a tool result entry
        name: Tool name for tool result entries
    """
    kind: EntryKind
    content: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()
    tool_call_id: Optional[str] = None
    name: Optional[str] = None
    
    @property
    def call_ids(self) -> Tuple[str, ...]:
        return tuple(tc.id for tc in self.tool_calls)
    
    def to_message(self) -> Message:
        """Render the entry as an LLM message."""
        return Message(
            role=_ROLE_FOR_KIND[self.kind],
            content=self.content,
            tool_calls=list(self.tool_calls) or None,
            tool_call_id=self.tool_call_id,
            name=self.name,
        )


def estimate_tokens(
    entry: ContextEntry,
    tokens_per_entry: int = TOKENS_PER_ENTRY,
    chars_per_token: int = CHARS_PER_TOKEN,
) -> int:
    """
    Approximate the token cost of an entry.
    
    Fixed overhead plus one token per ``chars_per_token`` characters of
    content, serialized tool calls and tool call id.
    """
    def chars(text: str) -> int:
        return math.ceil(len(text) / chars_per_token)
    
    total = tokens_per_entry + chars(entry.content)
    if entry.tool_calls:
        total += chars(json.dumps([tc.to_dict() for tc in entry.tool_calls]))
    if entry.tool_call_id:
        total += chars(entry.tool_call_id)
    return total


class ContextStore:
    """
    Token-budgeted conversation store.
    
    Example:
        >>> store = ContextStore(max_tokens=4096)
        >>> store.add_system("You are a browser agent.")
        >>> store.add_user("Open example.com")
        >>> store.token_count() <= 4096
        True
    """
    
    def __init__(
        self,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        tokens_per_entry: int = TOKENS_PER_ENTRY,
        chars_per_token: int = CHARS_PER_TOKEN,
    ):
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        self._max_tokens = max_tokens
        self._tokens_per_entry = tokens_per_entry
        self._chars_per_token = chars_per_token
        self._entries: List[ContextEntry] = []
        self._costs: List[int] = []
    
    @property
    def max_tokens(self) -> int:
        return self._max_tokens
    
    # =========================================================================
    # MUTATION
    # =========================================================================
    
    def append(self, entry: ContextEntry) -> None:
        """
        Add an entry and trim to budget.
        
        A system entry replaces any existing one and goes to position 0.
        
        Raises:
            ValueError: If a tool result answers no known call
        """
        if entry.kind == EntryKind.SYSTEM:
            self._remove_where(lambda e: e.kind == EntryKind.SYSTEM)
            self._entries.insert(0, entry)
            self._costs.insert(0, self._cost(entry))
        else:
            if entry.kind == EntryKind.TOOL_RESULT:
                self._check_correlation(entry)
            self._entries.append(entry)
            self._costs.append(self._cost(entry))
        self._trim()
    
    def add_system(self, content: str) -> None:
        self.append(ContextEntry(EntryKind.SYSTEM, content))
    
    def add_user(self, content: str) -> None:
        self.append(ContextEntry(EntryKind.USER, content))
    
    def add_assistant(self, content: str, tool_calls: Optional[Sequence[ToolCall]] = None) -> None:
        self.append(ContextEntry(EntryKind.ASSISTANT, content, tuple(tool_calls or ())))
    
    def add_tool_result(self, content: str, tool_call_id: str, name: Optional[str] = None) -> None:
        self.append(ContextEntry(
            EntryKind.TOOL_RESULT, content, tool_call_id=tool_call_id, name=name,
        ))
    
    def add_environment(self, content: str) -> None:
        self.append(ContextEntry(EntryKind.ENVIRONMENT, content))
    
    def remove_by_kind(self, kind: EntryKind) -> int:
        """
        Remove every entry of a kind.
        
        Removing assistant entries also removes the tool results that
        answer their calls.
        
        Returns:
            Number of entries removed
        """
        if kind == EntryKind.ASSISTANT:
            orphaned = {cid for e in self._entries if e.kind == kind for cid in e.call_ids}
            return self._remove_where(
                lambda e: e.kind == kind
                or (e.kind == EntryKind.TOOL_RESULT and e.tool_call_id in orphaned)
            )
        return self._remove_where(lambda e: e.kind == kind)
    
    def remove_last(self) -> Optional[ContextEntry]:
        """Remove and return the newest entry."""
        if not self._entries:
            return None
        self._costs.pop()
        return self._entries.pop()
    
    def clear(self) -> None:
        self._entries.clear()
        self._costs.clear()
    
    def fork(self, include_history: bool = True) -> "ContextStore":
        """
        Create an independent store with the same budget.
        
        Args:
            include_history: Copy the current entries into the fork
        """
        forked = ContextStore(self._max_tokens, self._tokens_per_entry, self._chars_per_token)
        if include_history:
            forked._entries = list(self._entries)
            forked._costs = list(self._costs)
        return forked
    
    # =========================================================================
    # READING
    # =========================================================================
    
    def entries(self) -> Tuple[ContextEntry, ...]:
        return tuple(self._entries)
    
    def messages(self) -> List[Message]:
        """Entries rendered as LLM messages, in order."""
        return [entry.to_message() for entry in self._entries]
    
    def token_count(self) -> int:
        return sum(self._costs)
    
    def remaining(self) -> int:
        return max(0, self._max_tokens - self.token_count())
    
    def last(self) -> Optional[ContextEntry]:
        return self._entries[-1] if self._entries else None
    
    def view(self) -> "ContextView":
        """Read-only view for components that must not mutate context."""
        return ContextView(self)
    
    def __len__(self) -> int:
        return len(self._entries)
    
    # =========================================================================
    # INTERNALS
    # =========================================================================
    
    def _cost(self, entry: ContextEntry) -> int:
        return estimate_tokens(entry, self._tokens_per_entry, self._chars_per_token)
    
    def _check_correlation(self, entry: ContextEntry) -> None:
        for earlier in self._entries:
            if entry.tool_call_id in earlier.call_ids:
                return
        raise ValueError(f"Tool result for unknown call id: {entry.tool_call_id!r}")
    
    def _remove_where(self, predicate) -> int:
        keep = [i for i, e in enumerate(self._entries) if not predicate(e)]
        removed = len(self._entries) - len(keep)
        if removed:
            self._entries = [self._entries[i] for i in keep]
            self._costs = [self._costs[i] for i in keep]
        return removed
    
    def _protected_start(self) -> int:
        """Index where the never-evicted tail begins."""
        if not self._entries:
            return 0
        index = len(self._entries) - 1
        while index >= 0:
            entry = self._entries[index]
            if entry.kind == EntryKind.ASSISTANT and entry.tool_calls:
                return index
            if entry.kind not in (EntryKind.TOOL_RESULT, EntryKind.ENVIRONMENT):
                break
            index -= 1
        return len(self._entries) - 1
    
    def _group(self, index: int) -> List[int]:
        entry = self._entries[index]
        if entry.kind != EntryKind.ASSISTANT or not entry.tool_calls:
            return [index]
        ids = set(entry.call_ids)
        return [index] + [
            i for i in range(index + 1, len(self._entries))
            if self._entries[i].kind == EntryKind.TOOL_RESULT
            and self._entries[i].tool_call_id in ids
        ]
    
    def _next_eviction(self) -> List[int]:
        protected = self._protected_start()
        for index in range(protected):
            if self._entries[index].kind == EntryKind.SYSTEM:
                continue
            group = self._group(index)
            if all(i < protected for i in group):
                return group
        return []
    
    def _trim(self) -> None:
        while self.token_count() > self._max_tokens:
            group = self._next_eviction()
            if not group:
                logger.debug(
                    f"Context over budget ({self.token_count()}/{self._max_tokens}) "
                    "with nothing evictable"
                )
                return
            evicted = set(group)
            logger.debug(f"Evicting {len(evicted)} context entr{'y' if len(evicted) == 1 else 'ies'}")
            self._entries = [e for i, e in enumerate(self._entries) if i not in evicted]
            self._costs = [c for i, c in enumerate(self._costs) if i not in evicted]


class ContextView:
    """Read-only access to a ContextStore."""
    
    def __init__(self, store: ContextStore):
        self._store = store
    
    def entries(self) -> Tuple[ContextEntry, ...]:
        return self._store.entries()
    
    def messages(self) -> List[Message]:
        return self._store.messages()
    
    def token_count(self) -> int:
        return self._store.token_count()
    
    def remaining(self) -> int:
        return self._store.remaining()
    
    def last(self) -> Optional[ContextEntry]:
        return self._store.last()
    
    def transcript(self, include_system: bool = False) -> str:
        """Render the conversation as plain text for planning and validation."""
        return render_transcript(self.entries(), include_system=include_system)


def render_transcript(entries: Iterable[ContextEntry], include_system: bool = False) -> str:
    lines = []
    for entry in entries:
        if entry.kind == EntryKind.SYSTEM and not include_system:
            continue
        line = f"{entry.kind.value}: {entry.content}"
        if entry.tool_calls:
            calls = ", ".join(
                f"{tc.name}({json.dumps(tc.arguments)})" for tc in entry.tool_calls
            )
            line = f"{line} [tool calls: {calls}]"
        lines.append(line)
    return "\n".join(lines)
