"""
Tool Context

Everything a handler may read for one call: the snapshots handed to the
dispatcher, the request queue, and configuration. A context lives for a
single tool call and is never reused.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from persona_kg.audit import AuditLog
from persona_kg.config import AgentConfig
from persona_kg.errors import UninitializedServiceError
from persona_kg.queue import RequestQueue
from persona_kg.tools import prompts
from persona_kg.types.chat import ChatMessage
from persona_kg.types.completion import CompletionRequest, CompletionResponse
from persona_kg.types.graph import KnowledgeGraph
from persona_kg.types.vfs import VFSFolder

logger = logging.getLogger(__name__)

# (model_name, agent_name, task_prompt, persona_description) -> report markdown
SubAgentInvoker = Callable[[str, str, str, str], Awaitable[str]]


def agent_label(tool: str, stage: str | None = None) -> str:
    """Queue label for requests issued by a tool, e.g. "Persona Agent (Tool: transcend)"."""
    name = f"{tool}/{stage}" if stage else tool
    return f"Persona Agent (Tool: {name})"


def file_timestamp(now: datetime | None = None) -> str:
    """UTC timestamp safe for file names: 2026-10-19T08-30-00-123Z."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


class QueuedSubAgent:
    """
    Default sub-agent invoker.

    Sends the task to the generative service through the queue with a
    minimal specialist system instruction. Richer sub-agent behavior is
    supplied by passing a different invoker to the dispatcher.
    """

    def __init__(self, queue: RequestQueue) -> None:
        self._queue = queue

    async def __call__(
        self,
        model_name: str,
        agent_name: str,
        task_prompt: str,
        persona_description: str,
    ) -> str:
        request = CompletionRequest.from_prompt(
            model_name,
            task_prompt,
            system_instruction=prompts.sub_agent_system(agent_name, persona_description),
        )
        response = await self._queue.enqueue(
            request,
            agent_label=f"Sub-Agent: {agent_name}",
            summary={"task_chars": len(task_prompt)},
        )
        return response.text


@dataclass
class ToolContext:
    """Inputs for one tool call."""

    model_name: str
    graph: KnowledgeGraph
    vfs: VFSFolder
    config: AgentConfig
    audit: AuditLog
    queue: RequestQueue | None = None
    sub_agent: SubAgentInvoker | None = None
    memory: tuple[str, ...] = ()
    persona_description: str = ""
    chat_history: tuple[ChatMessage, ...] = field(default_factory=tuple)

    def require_queue(self) -> RequestQueue:
        if self.queue is None:
            raise UninitializedServiceError("Generative service is not configured.")
        return self.queue

    async def complete(
        self,
        request: CompletionRequest,
        *,
        tool: str,
        stage: str | None = None,
        summary: dict[str, Any] | None = None,
    ) -> CompletionResponse:
        """Enqueue request under this tool's agent label."""
        return await self.require_queue().enqueue(
            request,
            agent_label=agent_label(tool, stage),
            summary=summary,
        )

    def latest_chat_image(self) -> ChatMessage | None:
        """Most recent chat message carrying an image."""
        for message in reversed(self.chat_history):
            if message.image is not None:
                return message
        return None
