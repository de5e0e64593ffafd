"""
Built-in tools registered on every agent.

``done_tool`` is the completion sentinel: a successful call marks the
current turn as having finished the task. ``refresh_browser_state``
pulls a fresh environment snapshot; the turn executor swaps it into the
context in place of the previous one.
"""

from typing import Optional

from pydantic import BaseModel, Field

from browser_agent.interfaces.environment import IEnvironment, NullEnvironment
from browser_agent.tools.base import BaseTool, NoArgs, ToolResult

DONE_TOOL_NAME = "done_tool"
REFRESH_STATE_TOOL_NAME = "refresh_browser_state"


class DoneArgs(BaseModel):
    summary: Optional[str] = Field(
        default=None,
        description="Brief summary of what was accomplished",
    )


class DoneTool(BaseTool):
    """Mark the task as complete."""
    
    name = DONE_TOOL_NAME
    description = (
        "Call this when the user's task is FULLY complete. "
        "Optionally include a short summary of what was accomplished."
    )
    args_schema = DoneArgs
    
    async def _run(self, args: DoneArgs) -> ToolResult:
        if args.summary:
            return ToolResult.success_result(f"Task completed: {args.summary}", summary=args.summary)
        return ToolResult.success_result("Task marked as complete")


class RefreshStateTool(BaseTool):
    """Fetch the current environment snapshot."""
    
    name = REFRESH_STATE_TOOL_NAME
    description = (
        "Update the browser state in your context to reflect the current page. "
        "Use after navigation, form submission or clicks, and whenever actions "
        "keep failing. The browser state does NOT update automatically."
    )
    args_schema = NoArgs
    
    def __init__(self, environment: Optional[IEnvironment] = None):
        self._environment = environment or NullEnvironment()
    
    async def _run(self, args: NoArgs) -> ToolResult:
        snapshot = await self._environment.get_snapshot()
        return ToolResult.success_result("Browser state refreshed successfully", snapshot=snapshot)
