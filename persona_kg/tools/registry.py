"""
Tool Registry

The closed set of tools the agent can call. Each entry binds a name to its
argument model and handler; the dispatcher resolves names only through
TOOLS, and tool_declarations() publishes the same set to the model.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from persona_kg.errors import UnknownToolError
from persona_kg.tools import ai_tools, graph_tools, terminal, workspace_tools
from persona_kg.tools.args import (
    CommitArgs,
    CreateLinkArgs,
    DelegateArgs,
    ImagePromptArgs,
    InquiryArgs,
    NodeIdArgs,
    NoArgs,
    QueryArgs,
    TaskStatusArgs,
    TerminalCommandArgs,
    ToolArgs,
    TopicArgs,
    UpsertNodeArgs,
)
from persona_kg.tools.context import ToolContext
from persona_kg.types.results import ToolResult

ToolHandler = Callable[[Any, ToolContext], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolSpec:
    """A registered tool."""

    name: str
    description: str
    args_model: type[ToolArgs]
    handler: ToolHandler
    uses_queue: bool = False


_SPECS = [
    ToolSpec(
        "search_the_web",
        "Search the web for up-to-date information.",
        QueryArgs,
        ai_tools.search_the_web,
        uses_queue=True,
    ),
    ToolSpec(
        "recall_memory",
        "Search the long-term memory archive for information relevant to a query.",
        QueryArgs,
        ai_tools.recall_memory,
        uses_queue=True,
    ),
    ToolSpec(
        "get_node_details",
        "Get the full details of a knowledge graph node by id.",
        NodeIdArgs,
        graph_tools.get_node_details,
    ),
    ToolSpec(
        "upsert_mind_map_node",
        "Update a node by node_id, or create a new node under parent_node_id.",
        UpsertNodeArgs,
        graph_tools.upsert_mind_map_node,
    ),
    ToolSpec(
        "create_mind_map_link",
        "Create a typed link between two existing nodes.",
        CreateLinkArgs,
        graph_tools.create_mind_map_link,
    ),
    ToolSpec(
        "synthesize_knowledge",
        "Synthesize what the knowledge graph knows about a topic.",
        TopicArgs,
        graph_tools.synthesize_knowledge,
        uses_queue=True,
    ),
    ToolSpec(
        "refine_mind_map",
        "Analyze the knowledge graph and merge, update or relink nodes to improve it.",
        NoArgs,
        graph_tools.refine_mind_map,
        uses_queue=True,
    ),
    ToolSpec(
        "transcend",
        "Meditate on a profound inquiry and add the resulting insight to the graph.",
        InquiryArgs,
        graph_tools.transcend,
        uses_queue=True,
    ),
    ToolSpec(
        "run_terminal_command",
        "Run a command in the virtual terminal: ls, cat, write, mkdir, touch, rm, python.",
        TerminalCommandArgs,
        terminal.run_terminal_command,
    ),
    ToolSpec(
        "delegate_to_psychology_sub_agent",
        "Delegate an analysis task to a psychology sub-agent; its report is saved to a file.",
        DelegateArgs,
        ai_tools.delegate_to_psychology_sub_agent,
        uses_queue=True,
    ),
    ToolSpec(
        "generate_image",
        "Generate an image from a text prompt.",
        ImagePromptArgs,
        ai_tools.generate_image,
        uses_queue=True,
    ),
    ToolSpec(
        "edit_image",
        "Edit the most recent image in the conversation.",
        ImagePromptArgs,
        ai_tools.edit_image,
        uses_queue=True,
    ),
    ToolSpec(
        "commit_changes",
        "Stage the current workspace for commit with a message.",
        CommitArgs,
        workspace_tools.commit_changes,
    ),
    ToolSpec(
        "update_task_status",
        "Change the status of a mission task (pending, in-progress, complete).",
        TaskStatusArgs,
        workspace_tools.update_task_status,
    ),
    ToolSpec(
        "save_chat_history",
        "Save the chat transcript as markdown in the virtual file system.",
        NoArgs,
        workspace_tools.save_chat_history,
    ),
]

TOOLS: dict[str, ToolSpec] = {spec.name: spec for spec in _SPECS}


def get_tool(name: str) -> ToolSpec:
    """
    Resolve a tool name.

    Raises:
        UnknownToolError: No tool has this name
    """
    spec = TOOLS.get(name)
    if spec is None:
        raise UnknownToolError(name)
    return spec


def _inline_refs(schema: Any, defs: dict[str, Any]) -> Any:
    """Replace $ref with the referenced definition and drop titles."""
    if isinstance(schema, dict):
        if "$ref" in schema:
            resolved = defs[schema["$ref"].rsplit("/", 1)[-1]]
            extra = {k: v for k, v in schema.items() if k != "$ref"}
            return _inline_refs({**resolved, **extra}, defs)
        if "anyOf" in schema:
            options = [o for o in schema["anyOf"] if o.get("type") != "null"]
            if len(options) == 1:
                merged = {k: v for k, v in schema.items() if k not in ("anyOf", "default")}
                return _inline_refs({**options[0], **merged}, defs)
        return {
            key: _inline_refs(value, defs)
            for key, value in schema.items()
            if key not in ("title", "$defs", "default")
        }
    if isinstance(schema, list):
        return [_inline_refs(item, defs) for item in schema]
    return schema


def parameters_schema(args_model: type[ToolArgs]) -> dict[str, Any]:
    """Flat JSON schema for an argument model (no $defs, no nullable unions)."""
    schema = args_model.model_json_schema()
    parameters = _inline_refs(schema, schema.get("$defs", {}))
    parameters.setdefault("properties", {})
    parameters["type"] = "object"
    return parameters


def tool_declarations() -> list[dict[str, Any]]:
    """Function declarations for every registered tool."""
    return [
        {
            "name": spec.name,
            "description": spec.description,
            "parameters": parameters_schema(spec.args_model),
        }
        for spec in TOOLS.values()
    ]
