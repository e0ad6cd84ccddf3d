"""
Result Types

Types for tool results, queue records, audit events, and cost telemetry.

Tool Dispatch Models:
    - ToolCall: {name, args} as issued by the agent
    - ToolCallState: Dispatcher state machine
    - ToolResult: Uniform envelope returned for every call

Queue / Audit Models:
    - QueuedRequest: One admission through the RequestQueue
    - AuditEvent: Append-only record of a mutation or tool outcome

Cost Telemetry Models:
    - CostUsageRecord, StageCostBreakdown, CostBreakdown, CostDebugReport
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from persona_kg.types.graph import KnowledgeGraph, utc_now
from persona_kg.types.vfs import VFSFolder

# -----------------------------------------------------------------------------
# Tool Dispatch Models
# -----------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A named tool invocation. Args are untyped at this boundary."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)

    @field_validator("args", mode="before")
    @classmethod
    def _none_args_are_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class ToolCallState(str, Enum):
    """Dispatcher state machine for one tool call."""

    RECEIVED = "received"
    RESOLVED = "resolved"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class MissionTaskStatus(str, Enum):
    """Status values for mission tasks."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"


class TerminalLine(BaseModel):
    """One line shown in the agent terminal."""

    type: Literal["input", "output", "error"] = "output"
    text: str


class GeneratedImage(BaseModel):
    """Side-channel image produced by generate_image / edit_image."""

    data: str
    mime_type: str = "image/png"
    type: Literal["generated", "edited"] = "generated"


class TaskStatusUpdate(BaseModel):
    """Side-channel request to change a mission task's status."""

    task_id: str
    status: MissionTaskStatus


class ToolResult(BaseModel):
    """
    Uniform envelope returned by ToolDispatcher.execute_tool.

    The orchestration layer commits new_graph / new_vfs as the new current
    state and acts on the side-channel fields. A FAILED result never carries
    snapshots.

    Attributes:
        result: Text fed back to the agent
        state: Terminal dispatcher state (SUCCEEDED or FAILED)
        new_graph: Replacement knowledge graph snapshot
        new_vfs: Replacement VFS root snapshot
        terminal_output: Lines for the agent terminal
        generated_image: Image side-channel
        file_path_handled: VFS path the call wrote
        commit_message: Request to commit the workspace
        task_status_update: Request to change a mission task
        cost_report: Per-call cost telemetry (cost_debug mode only)
    """

    result: str
    state: ToolCallState = ToolCallState.SUCCEEDED
    new_graph: KnowledgeGraph | None = None
    new_vfs: VFSFolder | None = None
    terminal_output: list[TerminalLine] = Field(default_factory=list)
    generated_image: GeneratedImage | None = None
    file_path_handled: str | None = None
    commit_message: str | None = None
    task_status_update: TaskStatusUpdate | None = None
    cost_report: CostDebugReport | None = None

    @property
    def failed(self) -> bool:
        """True if the dispatcher converted an error into this result."""
        return self.state == ToolCallState.FAILED


# -----------------------------------------------------------------------------
# Queue / Audit Models
# -----------------------------------------------------------------------------


class RequestStatus(str, Enum):
    """Lifecycle of a queued request: pending -> succeeded | failed."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class QueuedRequest(BaseModel):
    """
    A generative-service call admitted through the RequestQueue.

    Frozen: the queue replaces the pending record with its terminal copy
    exactly once and never touches it again.
    """

    id: str
    agent_label: str
    model: str
    request_summary: dict[str, Any] = Field(default_factory=dict)
    issued_at: str = Field(default_factory=utc_now)
    status: RequestStatus = RequestStatus.PENDING
    completed_at: str | None = None
    error: str | None = None
    result_summary: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_terminal(self) -> bool:
        return self.status != RequestStatus.PENDING


class AuditDomain(str, Enum):
    """Audit event domains."""

    VFS = "VFS"
    GRAPH = "GRAPH"
    AGENT_ACTION = "AGENT_ACTION"


class AuditEvent(BaseModel):
    """Append-only record of a state mutation or tool outcome."""

    timestamp: str = Field(default_factory=utc_now)
    domain: AuditDomain
    action: str
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


# -----------------------------------------------------------------------------
# Cost Telemetry Models
# -----------------------------------------------------------------------------


class CostUsageRecord(BaseModel):
    """Token usage and estimated cost of one provider call."""

    provider: str
    model: str
    operation: str
    stage: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    estimated_cost_usd: float
    latency_ms: int
    estimated: bool
    metadata: dict[str, Any] = Field(default_factory=dict)


class StageCostBreakdown(BaseModel):
    """Aggregate usage for one telemetry stage (agent label)."""

    stage: str
    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    total_latency_ms: int = 0


class CostBreakdown(BaseModel):
    """Aggregate usage across all stages."""

    total_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    total_estimated_cost_usd: float = 0.0
    total_latency_ms: int = 0
    by_stage: list[StageCostBreakdown] = Field(default_factory=list)


class CostDebugReport(BaseModel):
    """Cost report attached to a tool result in cost_debug mode."""

    enabled: bool = False
    pricing_version: str = ""
    breakdown: CostBreakdown = Field(default_factory=CostBreakdown)
    warnings: list[str] = Field(default_factory=list)


ToolResult.model_rebuild()
