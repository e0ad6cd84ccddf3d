"""
Persona KG MCP Server

Exposes the tool dispatcher over MCP. The server owns one Session: every
tool call runs against the session's current graph and VFS, and returned
snapshots become the new current state.

Tools:
    agent_execute(name, args_json)   run one agent tool
    agent_tools()                    list tool declarations
    agent_state()                    graph summary and VFS tree
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from persona_kg.config import AgentConfig
from persona_kg.session import Session, build_dispatcher
from persona_kg.tools.registry import tool_declarations
from persona_kg.types.results import ToolResult
from persona_kg.vfs import render_tree

# Load .env file for API keys
load_dotenv()

logger = logging.getLogger(__name__)

_session: Session | None = None


def get_session() -> Session:
    """Get the active session."""
    if _session is None:
        raise RuntimeError("Session not initialized. Call init_session() first.")
    return _session


def init_session(state_path: str | Path | None = None, config: AgentConfig | None = None) -> Session:
    """Create the session used by the MCP tools."""
    global _session
    config = config or AgentConfig()
    _session = Session.open(build_dispatcher(config), state_path)
    return _session


def format_result(result: ToolResult) -> str:
    """Render a ToolResult for an MCP client."""
    if result.failed:
        return result.result
    lines = [result.result]
    if result.file_path_handled:
        lines.append(f"[file: {result.file_path_handled}]")
    if result.generated_image is not None:
        lines.append(
            f"[{result.generated_image.type} image: {result.generated_image.mime_type}, "
            f"{len(result.generated_image.data)} base64 chars]"
        )
    if result.commit_message:
        lines.append(f"[commit requested: {result.commit_message}]")
    if result.task_status_update is not None:
        update = result.task_status_update
        lines.append(f"[task {update.task_id} -> {update.status.value}]")
    if result.cost_report is not None:
        lines.append(
            f"[cost: ${result.cost_report.breakdown.total_estimated_cost_usd:.6f} "
            f"over {result.cost_report.breakdown.total_calls} call(s)]"
        )
    return "\n".join(lines)


async def execute_tool_call(name: str, args_json: str = "{}") -> str:
    """Run one tool against the session."""
    try:
        args = json.loads(args_json or "{}")
    except json.JSONDecodeError as e:
        return f"Error: args_json is not valid JSON: {e}"
    if not isinstance(args, dict):
        return "Error: args_json must be a JSON object"

    result = await get_session().execute(name, args)
    return format_result(result)


def state_summary() -> str:
    session = get_session()
    summary = session.summary()
    lines = [f"{key}: {value}" for key, value in summary.items()]
    lines.extend(["", render_tree(session.state.vfs)])
    return "\n".join(lines)


# =============================================================================
# MCP Server
# =============================================================================

def create_server(name: str = "persona-kg") -> FastMCP:
    """Create the MCP server."""
    mcp = FastMCP(name)

    @mcp.tool()
    async def agent_execute(name: str, args_json: str = "{}") -> str:
        """
        Execute one persona agent tool against the current session.

        Use agent_tools to see the available tools and their arguments.

        Examples:
            agent_execute("run_terminal_command", '{"command": "ls /"}')
            agent_execute("upsert_mind_map_node",
                '{"name": "Curiosity", "node_type": "key-trait", "parent_node_id": "Persona_Core"}')

        Args:
            name: Tool name
            args_json: Tool arguments as a JSON object

        Returns:
            The tool's result text
        """
        return await execute_tool_call(name, args_json)

    @mcp.tool()
    async def agent_tools() -> str:
        """List every agent tool with its JSON argument schema."""
        return json.dumps(tool_declarations(), indent=2)

    @mcp.tool()
    async def agent_state() -> str:
        """Summarize the session's knowledge graph and show the VFS tree."""
        return state_summary()

    return mcp


async def run_server(state_path: str | Path | None = None) -> None:
    """Initialize the session and run the MCP server."""
    init_session(state_path)
    mcp = create_server()
    await mcp.run_async()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point for the MCP server."""
    parser = argparse.ArgumentParser(
        description="Persona KG MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example:
    python -m persona_kg.mcp --state ./session.json

Claude Desktop config:
    {
        "mcpServers": {
            "persona-kg": {
                "command": "python",
                "args": ["-m", "persona_kg.mcp", "--state", "./session.json"]
            }
        }
    }
""",
    )
    parser.add_argument(
        "--state", "-s",
        type=Path,
        default=None,
        help="Session state JSON file (created on first change)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper())

    asyncio.run(run_server(args.state))


if __name__ == "__main__":
    main()
