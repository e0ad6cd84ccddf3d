"""
persona-kg - Tool-Execution Engine for a Persona Agent

Lets an autonomous agent act on a knowledge graph and a virtual filesystem
through named tool calls. Every call is resolved, executed against
immutable snapshots, and audited; every generative-service request goes
through a single FIFO request queue.

Example:
    >>> from persona_kg import AgentConfig, RequestQueue, ToolDispatcher, ToolCall
    >>> from persona_kg.providers import create_llm_provider
    >>> config = AgentConfig()
    >>> queue = RequestQueue(create_llm_provider(config))
    >>> dispatcher = ToolDispatcher(queue=queue, config=config)
    >>> result = await dispatcher.execute_tool(
    ...     ToolCall(name="run_terminal_command", args={"command": "mkdir /notes"}),
    ...     graph=graph,
    ...     vfs=vfs,
    ... )
    >>> vfs = result.new_vfs or vfs

Main Classes:
    ToolDispatcher: Runs tool calls
    RequestQueue: Single admission point to the generative service
    AgentConfig: Configuration management
    Session: Minimal orchestration layer (current snapshots + dispatcher)
"""

__version__ = "0.1.0"

# Public API - lazy imports to avoid loading optional dependencies
def __getattr__(name: str):
    """Lazy import public API components."""

    if name == "ToolDispatcher":
        from persona_kg.tools.dispatcher import ToolDispatcher
        return ToolDispatcher

    if name == "RequestQueue":
        from persona_kg.queue import RequestQueue
        return RequestQueue

    if name == "AgentConfig":
        from persona_kg.config.settings import AgentConfig
        return AgentConfig

    if name in ("Session", "SessionState"):
        from persona_kg import session
        return getattr(session, name)

    if name in ("AuditLog", "get_audit_log"):
        from persona_kg import audit
        return getattr(audit, name)

    # Types
    if name in (
        "KnowledgeGraph", "GraphNode", "GraphLink", "NodeType", "LinkType",
        "VFSFolder", "VFSFile", "ToolCall", "ToolResult", "ChatMessage",
        "CompletionRequest", "CompletionResponse",
    ):
        from persona_kg import types
        return getattr(types, name)

    raise AttributeError(f"module 'persona_kg' has no attribute {name!r}")


__all__ = [
    # Main classes
    "ToolDispatcher",
    "RequestQueue",
    "AgentConfig",
    "Session",
    "SessionState",
    "AuditLog",
    "get_audit_log",

    # Types
    "KnowledgeGraph",
    "GraphNode",
    "GraphLink",
    "NodeType",
    "LinkType",
    "VFSFolder",
    "VFSFile",
    "ToolCall",
    "ToolResult",
    "ChatMessage",
    "CompletionRequest",
    "CompletionResponse",

    # Version
    "__version__",
]
