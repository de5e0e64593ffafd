"""
Cancellation - Cooperative cancellation signal for a task run.

One token is created per ``Agent.execute`` call and threaded through
every awaited operation: classification, planning, validation, LLM
streaming and tool dispatch.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from browser_agent.exceptions import TaskCancelledError

T = TypeVar("T")


class CancellationToken:
    """
    Token for checking and requesting cancellation.
    
    Example:
        >>> token = CancellationToken()
        >>> token.check()          # no-op
        >>> token.cancel("user stopped the task")
        >>> token.check()          # raises TaskCancelledError
    """
    
    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Optional[str] = None
        self._event = asyncio.Event()
    
    def cancel(self, reason: Optional[str] = None) -> None:
        """Request cancellation. Repeated calls keep the first reason."""
        if not self._cancelled:
            self._reason = reason
        self._cancelled = True
        self._event.set()
    
    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancelled
    
    @property
    def reason(self) -> Optional[str]:
        return self._reason
    
    def check(self) -> None:
        """
        Raise if cancellation was requested.
        
        Raises:
            TaskCancelledError: If the token was cancelled
        """
        if self._cancelled:
            raise TaskCancelledError(reason=self._reason)
    
    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()
    
    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` but abandon it as soon as the token fires.
        
        The in-flight operation is cancelled and TaskCancelledError is
        raised, so a slow LLM request does not outlive its task.
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise TaskCancelledError(reason=self._reason)
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        
        if work.done():
            return work.result()
        
        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise TaskCancelledError(reason=self._reason)
