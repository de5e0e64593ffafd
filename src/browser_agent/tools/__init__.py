"""
Tools - Tool interface, per-agent manager and built-in tools.
"""

from browser_agent.tools.base import BaseTool, NoArgs, ToolResult
from browser_agent.tools.builtin import (
    DONE_TOOL_NAME,
    REFRESH_STATE_TOOL_NAME,
    DoneTool,
    RefreshStateTool,
)
from browser_agent.tools.manager import ToolManager

__all__ = [
    "BaseTool",
    "NoArgs",
    "ToolResult",
    "ToolManager",
    "DoneTool",
    "RefreshStateTool",
    "DONE_TOOL_NAME",
    "REFRESH_STATE_TOOL_NAME",
]
