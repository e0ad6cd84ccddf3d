"""
Agent Tools

The closed tool set, its typed arguments, and the dispatcher that runs it.

Modules:
    args: Pydantic argument models per tool
    context: ToolContext handed to every handler
    graph_tools / ai_tools / workspace_tools: Handlers
    terminal: run_terminal_command sub-dispatcher
    registry: TOOLS, tool_declarations()
    dispatcher: ToolDispatcher
"""

from persona_kg.tools.context import QueuedSubAgent, SubAgentInvoker, ToolContext
from persona_kg.tools.dispatcher import ToolDispatcher
from persona_kg.tools.registry import TOOLS, ToolSpec, get_tool, tool_declarations
from persona_kg.tools.terminal import TerminalCommand, parse_terminal_command

__all__ = [
    "ToolDispatcher",
    "ToolContext",
    "ToolSpec",
    "TOOLS",
    "get_tool",
    "tool_declarations",
    "SubAgentInvoker",
    "QueuedSubAgent",
    "TerminalCommand",
    "parse_terminal_command",
]
