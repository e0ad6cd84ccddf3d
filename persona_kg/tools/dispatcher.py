"""
Tool Dispatcher

Resolves a tool call to its handler and runs it behind one uniform
contract:

    RECEIVED -> RESOLVED -> EXECUTING -> SUCCEEDED | FAILED

- An unknown tool name is answered with a SUCCEEDED result explaining the
  problem, so the agent loop keeps going.
- Any exception from argument validation or the handler becomes a FAILED
  result with a readable message and no snapshots; nothing propagates.
- A call that is not a {name, args} mapping is also a FAILED result.
  Missing or null args are treated as {}.
- Exactly one AGENT_ACTION audit event is written per call.

The dispatcher never keeps graph or VFS snapshots between calls; they are
passed in for each call and the caller commits whatever comes back.

Example:
    >>> dispatcher = ToolDispatcher(queue=RequestQueue(provider))
    >>> result = await dispatcher.execute_tool(
    ...     ToolCall(name="run_terminal_command", args={"command": "ls /"}),
    ...     graph=graph,
    ...     vfs=vfs,
    ... )
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from persona_kg.audit import AuditLog, resolve_audit
from persona_kg.config import AgentConfig
from persona_kg.errors import UnknownToolError
from persona_kg.queue import RequestQueue
from persona_kg.tools.args import validate_args
from persona_kg.tools.context import QueuedSubAgent, SubAgentInvoker, ToolContext
from persona_kg.tools.registry import TOOLS, ToolSpec
from persona_kg.types.chat import ChatMessage
from persona_kg.types.graph import KnowledgeGraph
from persona_kg.types.results import (
    AuditDomain,
    TerminalLine,
    ToolCall,
    ToolCallState,
    ToolResult,
)
from persona_kg.types.vfs import VFSFolder
from persona_kg.utils.cost_telemetry import CostCollector, telemetry_collector

logger = logging.getLogger(__name__)


def truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + f"... [{len(text) - max_chars} more chars]"


class ToolDispatcher:
    """
    Executes tool calls against caller-supplied snapshots.

    Args:
        queue: Request queue for AI-backed tools. Without one, those tools
            fail with UninitializedServiceError.
        sub_agent: Invoker for delegate_to_psychology_sub_agent. Defaults to
            a QueuedSubAgent on the queue.
        config: Agent configuration (defaults to AgentConfig())
        audit: Audit log (defaults to the process-wide log)
        tools: Registry override
    """

    def __init__(
        self,
        queue: RequestQueue | None = None,
        sub_agent: SubAgentInvoker | None = None,
        config: AgentConfig | None = None,
        audit: AuditLog | None = None,
        tools: dict[str, ToolSpec] | None = None,
    ) -> None:
        self._queue = queue
        self._config = config or AgentConfig()
        self._audit = resolve_audit(audit)
        self._tools = tools if tools is not None else TOOLS
        if sub_agent is None and queue is not None:
            sub_agent = QueuedSubAgent(queue)
        self._sub_agent = sub_agent

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def queue(self) -> RequestQueue | None:
        return self._queue

    async def execute_tool(
        self,
        call: ToolCall | dict[str, Any],
        *,
        graph: KnowledgeGraph,
        vfs: VFSFolder,
        memory: Iterable[str] = (),
        persona_description: str = "",
        chat_history: Iterable[ChatMessage] = (),
        model_name: str | None = None,
    ) -> ToolResult:
        """
        Run one tool call to completion. Never raises for handler errors.

        Args:
            call: ToolCall or {"name": ..., "args": {...}}
            graph: Current knowledge graph snapshot
            vfs: Current VFS root snapshot
            memory: Long-term memory archive entries
            persona_description: Persona text for sub-agents
            chat_history: Chat transcript (read-only)
            model_name: Model the agent runs on (defaults to config.llm_model)
        """
        if not isinstance(call, ToolCall):
            try:
                call = ToolCall.model_validate(call)
            except ValidationError as e:
                return self._reject_envelope(call, e)
        self._transition(call, ToolCallState.RECEIVED)

        spec = self._tools.get(call.name)
        if spec is None:
            message = str(UnknownToolError(call.name))
            logger.warning(message)
            return self._finish(call, ToolResult(result=message), message)
        self._transition(call, ToolCallState.RESOLVED)

        ctx = ToolContext(
            model_name=model_name or self._config.llm_model,
            graph=graph,
            vfs=vfs,
            config=self._config,
            audit=self._audit,
            queue=self._queue,
            sub_agent=self._sub_agent,
            memory=tuple(memory),
            persona_description=persona_description,
            chat_history=tuple(chat_history),
        )
        collector = (
            CostCollector(warn_threshold_usd=self._config.cost_debug_warn_threshold_usd)
            if self._config.cost_debug
            else None
        )

        try:
            with telemetry_collector(collector):
                args = validate_args(spec.name, spec.args_model, call.args)
                self._transition(call, ToolCallState.EXECUTING)
                result = await spec.handler(args, ctx)
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(f'Error executing tool "{call.name}": {error}')
            message = f'Tool "{call.name}" failed to execute. Error: {error}'
            result = ToolResult(
                result=message,
                state=ToolCallState.FAILED,
                terminal_output=[TerminalLine(type="error", text=message)],
            )
            outcome = f"FAILED: {error}"
        else:
            result = result.model_copy(update={"state": ToolCallState.SUCCEEDED})
            outcome = truncate(result.result, self._config.audit_result_max_chars)

        if collector is not None:
            report = collector.summary()
            for warning in report.warnings:
                logger.warning(f"[{call.name}] {warning}")
            result = result.model_copy(update={"cost_report": report})

        return self._finish(call, result, outcome)

    def _reject_envelope(self, raw: Any, error: ValidationError) -> ToolResult:
        """FAILED result for a call that is not a {name, args} mapping."""
        name = raw.get("name") if isinstance(raw, dict) else None
        call = ToolCall(name=name if isinstance(name, str) and name else "<invalid>")
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'call'}: {err['msg']}"
            for err in error.errors()
        )
        message = f'Tool "{call.name}" failed to execute. Error: Invalid tool call: {problems}'
        logger.error(message)
        result = ToolResult(
            result=message,
            state=ToolCallState.FAILED,
            terminal_output=[TerminalLine(type="error", text=message)],
        )
        return self._finish(call, result, f"FAILED: Invalid tool call: {problems}")

    def _transition(self, call: ToolCall, state: ToolCallState) -> None:
        logger.debug(f"[{call.name}] {state.value}")

    def _finish(self, call: ToolCall, result: ToolResult, outcome: str) -> ToolResult:
        self._audit.log_event(
            AuditDomain.AGENT_ACTION,
            call.name,
            {
                "tool": call.name,
                "args": call.args,
                "outcome": result.state.value,
                "result": outcome,
            },
        )
        self._transition(call, result.state)
        return result
