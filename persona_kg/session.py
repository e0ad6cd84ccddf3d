"""
Agent Session

Holds the "current" graph, VFS, memory archive and chat transcript for one
agent and commits the snapshots each tool result returns. This is the
minimal orchestration layer used by the MCP server and the CLI; a JSON
state file lets a session survive restarts.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from persona_kg.config import AgentConfig
from persona_kg.errors import UninitializedServiceError
from persona_kg.queue import RequestQueue
from persona_kg.tools.dispatcher import ToolDispatcher
from persona_kg.types.chat import ChatMessage
from persona_kg.types.graph import GraphNode, KnowledgeGraph, NodeSource, NodeType
from persona_kg.types.results import ToolCall, ToolResult
from persona_kg.types.vfs import VFSFolder

logger = logging.getLogger(__name__)


class SessionState(BaseModel):
    """Serializable session state."""

    graph: KnowledgeGraph = Field(default_factory=KnowledgeGraph)
    vfs: VFSFolder = Field(default_factory=VFSFolder)
    memory: list[str] = Field(default_factory=list)
    chat_history: list[ChatMessage] = Field(default_factory=list)
    persona_description: str = ""

    @classmethod
    def initial(cls, root_id: str, persona_name: str = "Persona Core") -> "SessionState":
        """Fresh state: a graph holding only the persona root node."""
        root = GraphNode(
            id=root_id,
            name=persona_name,
            type=NodeType.CORE_PERSONA,
            source=NodeSource.INITIAL_ANALYSIS,
        )
        return cls(graph=KnowledgeGraph(nodes=(root,), root_id=root_id))

    @classmethod
    def load(cls, path: str | Path) -> "SessionState":
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")


def build_dispatcher(config: AgentConfig) -> ToolDispatcher:
    """
    Dispatcher wired to the configured provider.

    A missing API key is reported once here; the queue is still created so
    AI-backed tools fail with a clear error instead of crashing the session.
    """
    from persona_kg.providers import create_llm_provider

    try:
        provider = create_llm_provider(config)
    except UninitializedServiceError as e:
        logger.error(str(e))
        provider = None
    queue = RequestQueue(
        provider,
        history_limit=config.queue_history_limit,
        result_summary_max_chars=config.result_summary_max_chars,
    )
    return ToolDispatcher(queue=queue, config=config)


class Session:
    """Current state plus the dispatcher that advances it."""

    def __init__(
        self,
        dispatcher: ToolDispatcher,
        state: SessionState | None = None,
        state_path: str | Path | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.state = state or SessionState.initial(dispatcher.config.root_node_id)
        self.state_path = Path(state_path) if state_path else None

    @classmethod
    def open(cls, dispatcher: ToolDispatcher, state_path: str | Path | None = None) -> "Session":
        """Load state_path if it exists, else start fresh."""
        state = None
        if state_path and Path(state_path).exists():
            state = SessionState.load(state_path)
            logger.info(f"Loaded session state from {state_path}")
        return cls(dispatcher, state, state_path)

    async def execute(self, name: str, args: dict[str, Any] | None = None) -> ToolResult:
        """Run one tool call and commit any snapshots it returns."""
        result = await self.dispatcher.execute_tool(
            ToolCall(name=name, args=args or {}),
            graph=self.state.graph,
            vfs=self.state.vfs,
            memory=self.state.memory,
            persona_description=self.state.persona_description,
            chat_history=self.state.chat_history,
        )
        updates: dict[str, Any] = {}
        if result.new_graph is not None:
            updates["graph"] = result.new_graph
        if result.new_vfs is not None:
            updates["vfs"] = result.new_vfs
        if updates:
            self.state = self.state.model_copy(update=updates)
            if self.state_path:
                self.state.save(self.state_path)
        return result

    def summary(self) -> dict[str, Any]:
        """Counts describing the current state."""
        return {
            "nodes": len(self.state.graph.nodes),
            "links": len(self.state.graph.links),
            "root_id": self.state.graph.root_id,
            "memory_entries": len(self.state.memory),
            "chat_messages": len(self.state.chat_history),
        }
