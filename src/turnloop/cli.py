"""Command line interface for turnloop."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from turnloop.config import load_settings
from turnloop.errors import ConfigurationError
from turnloop.logging_utils import configure_logging
from turnloop.session import build_registry, initialize, run
from turnloop.types import OutwardMessage

app = typer.Typer(
    name="turnloop",
    help="Run a tool-calling conversation against a language model.",
    add_completion=False,
)


class Renderer:
    """Render outward messages with Rich."""

    def __init__(self, console: Console | None = None, *, show_results: bool = True) -> None:
        self.console = console or Console()
        self._show_results = show_results

    def render(self, message: OutwardMessage) -> None:
        if message.type == "content":
            self.console.print(escape(message.content), end="")
        elif message.type == "thought":
            self.console.print(f"[dim italic]{escape(message.thought.description)}[/dim italic]")
        elif message.type == "tool_call_request":
            self.console.print(f"\n[bold cyan]> {message.request.name}[/bold cyan] [dim]{escape(str(dict(message.request.args)))}[/dim]")
        elif message.type == "tool_result":
            if self._show_results:
                self.console.print(f"[dim]{escape(message.result.result)}[/dim]")
        elif message.type == "error":
            self.error(message.error)
        elif message.type == "info":
            self.console.print(f"[yellow]{escape(message.message)}[/yellow]")
        elif message.type == "finished":
            self.console.print()

    def error(self, text: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {escape(text)}")


@app.command("run")
def run_command(
    prompt: str = typer.Argument(..., help="Prompt to send to the model"),
    workspace: Path = typer.Option(Path("."), "--workspace", "-w", help="Workspace directory"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model in provider:model format"),
    max_turns: Optional[int] = typer.Option(None, "--max-turns", min=1, help="Turn ceiling for this run"),
    quiet_results: bool = typer.Option(False, "--quiet-results", help="Hide tool output"),
) -> None:
    """Send PROMPT and keep running tools until the model stops asking for them."""
    configure_logging(profile="cli")
    renderer = Renderer(show_results=not quiet_results)

    settings = load_settings(workspace)
    updates: dict[str, object] = {}
    if model:
        updates["model"] = model
    if max_turns is not None:
        updates["max_turns"] = max_turns
    if updates:
        settings = settings.model_copy(update=updates)

    try:
        session = initialize(workspace, settings=settings)
    except ConfigurationError as exc:
        renderer.error(str(exc))
        raise typer.Exit(1) from exc

    result = asyncio.run(run(session, prompt, renderer.render))
    if result.status == "failed":
        raise typer.Exit(1)


@app.command("tools")
def tools_command(
    workspace: Path = typer.Option(Path("."), "--workspace", "-w", help="Workspace directory"),
) -> None:
    """List the operations the model may call."""
    resolved = workspace.expanduser().resolve()
    registry = build_registry(load_settings(resolved), resolved)
    for row in registry.compact_rows():
        typer.echo(row)
