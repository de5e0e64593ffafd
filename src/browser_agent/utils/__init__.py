"""
Utilities module - Common utility functions.
"""

from browser_agent.utils.logging import setup_logging
from browser_agent.utils.retry import retry, retry_async, RetryConfig
from browser_agent.utils.cancellation import CancellationToken

__all__ = [
    "setup_logging",
    "retry",
    "retry_async",
    "RetryConfig",
    "CancellationToken",
]
