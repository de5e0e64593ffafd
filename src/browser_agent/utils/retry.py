"""
Retry utilities for LLM requests.

Exponential backoff between attempts. When the failure carries a
``retry_after`` hint (rate limiting), the hint replaces the computed
delay, capped at ``max_delay_ms``.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.
    
    Attributes:
        max_attempts: Total attempts, including the first
        initial_delay_ms: Delay before the first retry
        max_delay_ms: Upper bound for any single delay
        backoff_multiplier: Growth factor between delays
        retry_on: Exception types worth another attempt
        on_retry: Called with (attempt, error) before each retry
    """
    max_attempts: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000
    backoff_multiplier: float = 2.0
    retry_on: Tuple[Type[Exception], ...] = (Exception,)
    on_retry: Optional[Callable[[int, Exception], None]] = None
    
    def delay_for(self, attempt: int, error: Exception) -> float:
        """Seconds to wait after failed ``attempt`` (1-based)."""
        hint = getattr(error, "retry_after", None)
        if hint is not None:
            delay_ms = hint * 1000
        else:
            delay_ms = self.initial_delay_ms * self.backoff_multiplier ** (attempt - 1)
        return min(delay_ms, self.max_delay_ms) / 1000


def retry(
    max_attempts: int = 3,
    initial_delay_ms: int = 1000,
    max_delay_ms: int = 30000,
    backoff_multiplier: float = 2.0,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator form of :func:`retry_async`.
    
    Example:
        >>> @retry(max_attempts=3, retry_on=(LLMConnectionError,))
        ... async def fetch_completion():
        ...     ...
    """
    config = RetryConfig(
        max_attempts=max_attempts,
        initial_delay_ms=initial_delay_ms,
        max_delay_ms=max_delay_ms,
        backoff_multiplier=backoff_multiplier,
        retry_on=retry_on,
    )
    
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_async(func, config, *args, **kwargs)
        return wrapper
    
    return decorator


async def retry_async(
    func: Callable[..., Any],
    config: RetryConfig,
    *args: Any,
    **kwargs: Any,
) -> Any:
    """
    Await ``func(*args, **kwargs)``, retrying on ``config.retry_on``.
    
    Errors outside ``retry_on`` propagate immediately.
    
    Raises:
        The last error once attempts run out
    """
    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except config.retry_on as e:
            if attempt == config.max_attempts:
                raise
    
            delay = config.delay_for(attempt, e)
            logger.warning(
                f"Attempt {attempt}/{config.max_attempts} failed: {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            if config.on_retry:
                config.on_retry(attempt, e)
            await asyncio.sleep(delay)
    
    raise ValueError("max_attempts must be at least 1")
