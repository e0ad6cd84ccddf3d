"""
Type Definitions

Pydantic models for all data structures.

Snapshot Models (frozen, copy-on-write):
    - KnowledgeGraph, GraphNode, GraphLink - The agent's knowledge graph
    - VFSFolder, VFSFile, VFSNode - The virtual filesystem tree

Service Models:
    - CompletionRequest, CompletionResponse - Generative-service payloads
    - QueuedRequest - RequestQueue provenance record
    - AuditEvent - Append-only audit record

Tool Models:
    - ToolCall, ToolResult, ToolCallState - Dispatcher envelope
    - ChatMessage - Transcript entries read by archival/image tools
"""

from persona_kg.types.chat import ChatImage, ChatMessage
from persona_kg.types.completion import (
    CompletionRequest,
    CompletionResponse,
    Content,
    ContentPart,
    FunctionCall,
    GenerationConfig,
    InlineData,
)
from persona_kg.types.graph import (
    DEFAULT_ROOT_ID,
    GraphLink,
    GraphNode,
    KnowledgeGraph,
    LinkType,
    NodeSource,
    NodeType,
)
from persona_kg.types.results import (
    AuditDomain,
    AuditEvent,
    CostBreakdown,
    CostDebugReport,
    CostUsageRecord,
    GeneratedImage,
    MissionTaskStatus,
    QueuedRequest,
    RequestStatus,
    StageCostBreakdown,
    TaskStatusUpdate,
    TerminalLine,
    ToolCall,
    ToolCallState,
    ToolResult,
)
from persona_kg.types.vfs import DirEntry, EntryType, VFSFile, VFSFolder, VFSNode

__all__ = [
    # Snapshot Models
    "KnowledgeGraph",
    "GraphNode",
    "GraphLink",
    "NodeType",
    "LinkType",
    "NodeSource",
    "DEFAULT_ROOT_ID",
    "VFSFolder",
    "VFSFile",
    "VFSNode",
    "DirEntry",
    "EntryType",
    # Service Models
    "CompletionRequest",
    "CompletionResponse",
    "Content",
    "ContentPart",
    "FunctionCall",
    "GenerationConfig",
    "InlineData",
    "QueuedRequest",
    "RequestStatus",
    "AuditEvent",
    "AuditDomain",
    # Tool Models
    "ToolCall",
    "ToolCallState",
    "ToolResult",
    "TerminalLine",
    "GeneratedImage",
    "TaskStatusUpdate",
    "MissionTaskStatus",
    "ChatMessage",
    "ChatImage",
    # Cost Telemetry
    "CostUsageRecord",
    "StageCostBreakdown",
    "CostBreakdown",
    "CostDebugReport",
]
