"""
Command-Line Interface

CLI commands for persona-kg sessions.

Commands:
    persona-kg tools  - List the agent tools
    persona-kg exec   - Run one tool call against a session state file
    persona-kg state  - Show a session's graph counts and VFS tree
    persona-kg serve  - Run the MCP server

Usage:
    # Create a folder in a fresh session
    persona-kg exec run_terminal_command --args '{"command": "mkdir /notes"}' --state ./session.json

    # Add a node under the persona root
    persona-kg exec upsert_mind_map_node \\
        --args '{"name": "Curiosity", "node_type": "key-trait", "parent_node_id": "Persona_Core"}'

    # Inspect
    persona-kg state --state ./session.json
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from persona_kg.types.vfs import VFSFolder

__all__ = ["main", "app"]

app = typer.Typer(
    name="persona-kg",
    help="Tool-execution engine for a persona agent's knowledge graph and virtual filesystem",
    no_args_is_help=True,
)
console = Console()


def _vfs_tree(folder: VFSFolder, tree: Tree) -> Tree:
    for name in sorted(folder.children, key=lambda n: (not isinstance(folder.children[n], VFSFolder), n)):
        child = folder.children[name]
        if isinstance(child, VFSFolder):
            _vfs_tree(child, tree.add(f"[bold cyan]{name}/[/]"))
        else:
            tree.add(f"{name} [dim]({len(child.content)} chars)[/]")
    return tree


@app.command()
def tools() -> None:
    """List the agent tools."""
    from persona_kg.tools.registry import TOOLS

    table = Table(title="Agent Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Arguments", style="green")
    table.add_column("Queued", justify="center")
    table.add_column("Description", style="dim")

    for spec in TOOLS.values():
        table.add_row(
            spec.name,
            ", ".join(spec.args_model.model_fields) or "-",
            "yes" if spec.uses_queue else "",
            spec.description,
        )

    console.print(table)


@app.command(name="exec")
def exec_tool(
    name: str = typer.Argument(
        ...,
        help="Tool name",
    ),
    args: str = typer.Option(
        "{}",
        "--args", "-a",
        help="Tool arguments as a JSON object",
    ),
    state: Path = typer.Option(
        Path("./session.json"),
        "--state", "-s",
        help="Session state file (created if missing)",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model", "-m",
        help="Override the agent model",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show debug logging",
    ),
) -> None:
    """Run one tool call against a session state file."""
    from dotenv import load_dotenv

    from persona_kg.config import AgentConfig
    from persona_kg.session import Session, build_dispatcher

    load_dotenv()
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    try:
        tool_args = json.loads(args)
    except json.JSONDecodeError as e:
        console.print(f"[red]--args is not valid JSON: {e}[/]")
        raise typer.Exit(code=2)
    if not isinstance(tool_args, dict):
        console.print("[red]--args must be a JSON object[/]")
        raise typer.Exit(code=2)

    config = AgentConfig(llm_model=model) if model else AgentConfig()

    async def _run() -> None:
        session = Session.open(build_dispatcher(config), state)
        result = await session.execute(name, tool_args)

        console.print(Panel(
            Text(result.result) if result.result else "[dim](no output)[/]",
            title=f"{name} ({result.state.value})",
            border_style="red" if result.failed else "green",
        ))
        if result.file_path_handled:
            console.print(f"[dim]File: {result.file_path_handled}[/]")
        if result.commit_message:
            console.print(f"[yellow]Commit requested:[/] {result.commit_message}")
        if result.task_status_update is not None:
            update = result.task_status_update
            console.print(f"[yellow]Task {update.task_id}[/] -> {update.status.value}")
        if result.generated_image is not None:
            console.print(
                f"[yellow]{result.generated_image.type.capitalize()} image[/] "
                f"({result.generated_image.mime_type}, {len(result.generated_image.data)} base64 chars)"
            )
        if result.cost_report is not None:
            breakdown = result.cost_report.breakdown
            console.print(
                f"[dim]Cost: ${breakdown.total_estimated_cost_usd:.6f} "
                f"over {breakdown.total_calls} call(s)[/]"
            )

    asyncio.run(_run())


@app.command()
def state(
    state: Path = typer.Option(
        Path("./session.json"),
        "--state", "-s",
        help="Session state file",
        exists=True,
    ),
) -> None:
    """Show a session's graph counts and VFS tree."""
    from persona_kg.session import SessionState

    session_state = SessionState.load(state)
    graph = session_state.graph

    table = Table(title=f"Session: {state}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Root", graph.root_id)
    table.add_row("Nodes", str(len(graph.nodes)))
    table.add_row("Links", str(len(graph.links)))
    table.add_row("Memory entries", str(len(session_state.memory)))
    table.add_row("Chat messages", str(len(session_state.chat_history)))
    console.print(table)

    console.print(_vfs_tree(session_state.vfs, Tree("[bold]/[/]")))


@app.command()
def serve(
    state: Optional[Path] = typer.Option(
        None,
        "--state", "-s",
        help="Session state file",
    ),
) -> None:
    """Run the MCP server."""
    from persona_kg.mcp.server import run_server

    logging.basicConfig(level=logging.WARNING)
    asyncio.run(run_server(state))


def main() -> None:
    """Entry point for the CLI."""
    app()
