"""
Tool Arguments

One pydantic model per tool. Tool-call args arrive as an untyped dict; the
dispatcher validates them against the tool's model before the handler runs,
so handlers only ever see typed, checked fields.

Enum fields accept the spellings agents commonly send ("KNOWLEDGE_CONCEPT",
"IN_PROGRESS") as well as the canonical values.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from persona_kg.errors import ToolArgumentError
from persona_kg.types.graph import LinkType, NodeType
from persona_kg.types.results import MissionTaskStatus


class ToolArgs(BaseModel):
    """Base for tool argument models. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class QueryArgs(ToolArgs):
    query: str = Field(min_length=1, description="The search query or question")


class NodeIdArgs(ToolArgs):
    node_id: str = Field(min_length=1, description="Id of the knowledge graph node")


class UpsertNodeArgs(ToolArgs):
    """Omit node_id to create a node under parent_node_id."""

    node_id: str | None = Field(default=None, description="Existing node id to update")
    name: str | None = Field(default=None, description="Node name")
    content: str | None = Field(default=None, description="Node content")
    node_type: NodeType | None = Field(default=None, description="Node category")
    parent_node_id: str | None = Field(default=None, description="Parent node id")


class CreateLinkArgs(ToolArgs):
    source_node_id: str = Field(min_length=1)
    target_node_id: str = Field(min_length=1)
    link_type: LinkType = Field(description="Relationship type")
    label: str | None = None


class TopicArgs(ToolArgs):
    topic: str = Field(min_length=1, description="Topic to synthesize knowledge about")


class InquiryArgs(ToolArgs):
    inquiry: str = Field(min_length=1, description="A profound question to meditate on")


class NoArgs(ToolArgs):
    pass


class TerminalCommandArgs(ToolArgs):
    command: str = Field(min_length=1, description="Command line, e.g. 'ls /reports'")


class DelegateArgs(ToolArgs):
    agent_name: str = Field(min_length=1, description="Psychology sub-agent to consult")
    task_prompt: str = Field(min_length=1, description="Task for the sub-agent")


class ImagePromptArgs(ToolArgs):
    prompt: str = Field(min_length=1, description="Image description or edit instruction")


class CommitArgs(ToolArgs):
    commit_message: str = Field(min_length=1)


class TaskStatusArgs(ToolArgs):
    task_id: str = Field(min_length=1)
    status: MissionTaskStatus

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("_", "-")
        return value


def validate_args(tool_name: str, model: type[ToolArgs], raw: dict[str, Any] | None) -> ToolArgs:
    """
    Validate raw tool-call args against model.

    Raises:
        ToolArgumentError: Missing or malformed fields, with one line per problem
    """
    try:
        return model.model_validate(raw or {})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'args'}: {err['msg']}"
            for err in e.errors()
        )
        raise ToolArgumentError(f"Invalid arguments for {tool_name}: {problems}") from e


# -----------------------------------------------------------------------------
# Structured outputs
# -----------------------------------------------------------------------------


class RefinementOperation(BaseModel):
    """One step of a refine_mind_map plan."""

    operation: Literal["UPDATE_NODE_CONTENT", "MERGE_NODES", "RELINK_NODE"]
    details: str = ""
    node_id_to_update: str | None = None
    new_content: str | None = None
    nodes_to_merge: list[str] = Field(default_factory=list)
    merged_node_name: str | None = None
    merged_node_content: str | None = None
    node_to_relink: str | None = None
    new_parent_id: str | None = None


class RefinementPlan(BaseModel):
    """Operations proposed to improve the knowledge graph's structure."""

    operations: list[RefinementOperation] = Field(default_factory=list)
