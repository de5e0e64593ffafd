"""
Browser Agent - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--model, --api-url, etc.)
    2. Environment variables (BROWSER_AGENT__LLM__MODEL, etc.)
    3. Config file (browser-agent.yaml)

Usage:
    browser-agent run "go to google.com and search for cats"
    browser-agent run "compare laptop prices" --max-steps 10
    browser-agent tools
"""

import asyncio
import logging
import signal
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from browser_agent import __version__
from browser_agent.config import load_config
from browser_agent.config.settings import Settings
from browser_agent.core.agent import Agent, AgentResult
from browser_agent.events.emitter import EventType, ProgressEvent
from browser_agent.exceptions import BrowserAgentError, TaskCancelledError
from browser_agent.llm.openai_provider import OpenAIProvider
from browser_agent.tools.manager import ToolManager
from browser_agent.tools.builtin import DoneTool, RefreshStateTool
from browser_agent.utils.logging import setup_logging

app = typer.Typer(
    name="browser-agent",
    help="LLM-driven browser task agent",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)


class ConsoleSink:
    """Render progress events on a rich console."""
    
    _STYLES = {
        EventType.ANALYZING: "dim",
        EventType.TASK_CLASSIFIED: "cyan",
        EventType.PLANNING: "dim",
        EventType.STEP_PLANNED: "blue",
        EventType.STEP_STARTED: "bold",
        EventType.TOOL_STARTED: "magenta",
        EventType.INFO: "dim",
        EventType.TASK_COMPLETED: "green",
        EventType.TASK_ERRORED: "red",
        EventType.TASK_CANCELLED: "yellow",
    }
    
    def __init__(self, out: Console, show_reasoning: bool = False):
        self._console = out
        self._show_reasoning = show_reasoning
    
    def __call__(self, event: ProgressEvent) -> None:
        if event.type == EventType.REASONING_CHUNK:
            if self._show_reasoning:
                self._console.print(event.message, end="", style="dim italic", markup=False)
            return
        if event.type == EventType.THINKING_FINISHED:
            if self._show_reasoning and event.message:
                self._console.print()
            return
        if event.type in (EventType.THINKING_STARTED, EventType.DEBUG):
            return
        if event.type == EventType.TOOL_FINISHED:
            mark = "[green]✓[/green]" if event.data.get("ok") else "[red]✗[/red]"
            self._console.print(f"  {mark} {event.data.get('tool_name')}: ", end="")
            self._console.print(event.message, markup=False, highlight=False)
            return
        style = self._STYLES.get(event.type, "")
        self._console.print(event.message, style=style, markup=False)


def _resolve_settings(
    config: Optional[str],
    model: Optional[str],
    api_url: Optional[str],
    max_steps: Optional[int],
    no_validation: bool,
) -> Settings:
    overrides: dict = {"llm": {}, "agent": {}}
    if model:
        overrides["llm"]["model"] = model
    if api_url:
        overrides["llm"]["base_url"] = api_url
    if max_steps:
        overrides["agent"]["max_total_steps"] = max_steps
    if no_validation:
        overrides["agent"]["enable_validation"] = False
    return load_config(config, **{k: v for k, v in overrides.items() if v})


def _build_provider(settings: Settings) -> OpenAIProvider:
    llm = settings.llm
    return OpenAIProvider(
        base_url=llm.base_url,
        model=llm.model or "",
        api_key=llm.api_key.get_secret_value() if llm.api_key else None,
        timeout=llm.timeout,
        temperature=llm.temperature,
        max_tokens=llm.max_tokens,
        retry_attempts=llm.retry_attempts,
    )


def _print_result(result: AgentResult) -> None:
    if result.success:
        body = (
            f"[green]✓ Completed[/green]\n"
            f"[dim]Strategy:[/dim] {result.strategy}\n"
            f"[dim]Steps:[/dim] {result.steps_executed}\n"
            f"[dim]Duration:[/dim] {result.duration_seconds:.1f}s"
        )
        border = "green"
    else:
        body = (
            f"[yellow]✗ Exhausted[/yellow]\n"
            f"[dim]Strategy:[/dim] {result.strategy}\n"
            f"[dim]Steps:[/dim] {result.steps_executed}\n"
            f"[dim]Reason:[/dim] {result.error}"
        )
        border = "yellow"
    console.print(Panel.fit(body, title="Result", border_style=border))


@app.command()
def run(
    task: str = typer.Argument(..., help="Natural language task to execute"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="LLM model (default: from config)"),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="LLM API base URL (default: from config)"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config file"),
    max_steps: Optional[int] = typer.Option(None, "--max-steps", help="Global step ceiling for multi-step tasks"),
    no_validation: bool = typer.Option(False, "--no-validation", help="Skip the validator between plan segments"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """
    Execute a natural language task.
    
    Examples:
        browser-agent run "open example.com"
        browser-agent run "find the cheapest flight to Tokyo" --max-steps 10
    """
    try:
        settings = _resolve_settings(config, model, api_url, max_steps, no_validation)
    except BrowserAgentError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    
    verbose = verbose or settings.agent.verbose
    setup_logging(
        level="DEBUG" if verbose or settings.debug else settings.logging.level,
        log_file=settings.logging.file,
        json_format=settings.logging.json_format,
    )
    
    if not settings.llm.model:
        console.print("[red]Error: No model configured.[/red]")
        console.print("Set via CLI: --model gpt-4o")
        console.print("Or env var: BROWSER_AGENT__LLM__MODEL=gpt-4o")
        raise typer.Exit(1)
    
    if not settings.llm.base_url:
        console.print("[red]Error: No API URL configured.[/red]")
        console.print("Set via CLI: --api-url https://api.openai.com")
        console.print("Or env var: BROWSER_AGENT__LLM__BASE_URL=https://api.openai.com")
        raise typer.Exit(1)
    
    console.print(Panel.fit(
        f"[bold blue]Browser Agent[/bold blue]\n"
        f"[dim]Model:[/dim] {settings.llm.model}\n"
        f"[dim]Task:[/dim] {task}",
        border_style="blue",
    ))
    
    exit_code = asyncio.run(_run_async(task, settings, show_reasoning=verbose))
    if exit_code:
        raise typer.Exit(exit_code)


async def _run_async(task: str, settings: Settings, show_reasoning: bool = False) -> int:
    """Run the agent, cancelling it on Ctrl+C. Returns the exit code."""
    llm = _build_provider(settings)
    agent = Agent(llm, settings=settings)
    agent.emitter.subscribe(ConsoleSink(console, show_reasoning=show_reasoning))
    
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, agent.cancel)
    except NotImplementedError:
        logger.debug("Signal handlers unsupported on this platform")
    
    try:
        result = await agent.execute(task)
        _print_result(result)
        return 0 if result.success else 2
    except TaskCancelledError:
        console.print("[yellow]Cancelled[/yellow]")
        return 130
    except BrowserAgentError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        logger.debug("Execution failed", exc_info=True)
        return 1
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass
        await llm.close()


@app.command()
def tools():
    """List the tools registered on every agent."""
    manager = ToolManager([DoneTool(), RefreshStateTool()])
    console.print(manager.describe(), markup=False)


@app.command()
def health(
    api_url: Optional[str] = typer.Option(None, "--api-url", help="LLM API base URL"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="LLM model"),
):
    """Check if the LLM API is available."""
    settings = _resolve_settings(None, model, api_url, None, False)
    url = settings.llm.base_url
    if not url:
        console.print("[red]Error: No API URL configured.[/red]")
        raise typer.Exit(1)
    
    async def check() -> bool:
        llm = _build_provider(settings)
        try:
            return await llm.health_check()
        finally:
            await llm.close()
    
    if asyncio.run(check()):
        console.print(f"[green]✓ LLM API at {url} is healthy[/green]")
    else:
        console.print(f"[red]✗ LLM API at {url} is not responding[/red]")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]Browser Agent[/bold] v{__version__}")


if __name__ == "__main__":
    app()
