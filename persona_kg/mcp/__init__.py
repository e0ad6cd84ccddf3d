"""
Persona KG MCP Server

Exposes the agent tool dispatcher over MCP, bound to a single session whose
graph and VFS advance with every successful tool call.

Tools:
    - agent_execute: Run one agent tool (name + JSON args)
    - agent_tools: List tool declarations
    - agent_state: Graph counts and VFS tree

Usage:
    # Run the MCP server
    python -m persona_kg.mcp --state ./session.json

    # Or in Claude Desktop config:
    {
        "mcpServers": {
            "persona-kg": {
                "command": "python",
                "args": ["-m", "persona_kg.mcp", "--state", "./session.json"]
            }
        }
    }
"""

from persona_kg.mcp.server import create_server, run_server

__all__ = ["create_server", "run_server"]
