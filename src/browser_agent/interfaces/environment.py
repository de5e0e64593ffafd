"""
Environment Interface - Source of environment snapshots.

The orchestration core never inspects the browser itself. Whenever it
needs to show the model what the page looks like (planning, validation,
the refresh tool) it asks an IEnvironment for an opaque text summary.
"""

from abc import ABC, abstractmethod


class IEnvironment(ABC):
    """Provider of a textual summary of the current environment state."""

    @abstractmethod
    async def get_snapshot(self) -> str:
        """
        Describe the current environment state.
        
        Returns:
            Text summary (URL, title, interactive elements, ...)
        """
        ...


class NullEnvironment(IEnvironment):
    """Environment used when no browser is attached."""

    async def get_snapshot(self) -> str:
        return "No environment is attached; browser state is unavailable."
