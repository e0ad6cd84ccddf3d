"""
Request Queue

Single admission point to the generative service. Every completion a tool
needs is enqueued here; nothing else holds the provider.

Contract:
    - FIFO admission, one call in flight (asyncio.Lock waiters are served
      in arrival order)
    - Each call is recorded as a QueuedRequest that moves exactly once from
      pending to succeeded (with a trimmed result summary) or failed (with
      the error text) before enqueue returns or raises
    - No automatic retry; a failure surfaces as UpstreamFailure
    - recent_failures() feeds failure analysis (newest first)

Example:
    >>> queue = RequestQueue(provider)
    >>> response = await queue.enqueue(
    ...     CompletionRequest.from_prompt("gemini-2.5-flash", "Hello"),
    ...     agent_label="Persona Agent (Tool: recall_memory)",
    ... )
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import OrderedDict
from typing import Any

from persona_kg.errors import UninitializedServiceError, UpstreamFailure
from persona_kg.providers.base import LLMProvider
from persona_kg.types.completion import CompletionRequest, CompletionResponse
from persona_kg.types.graph import utc_now
from persona_kg.types.results import QueuedRequest, RequestStatus
from persona_kg.utils.cost_telemetry import telemetry_stage

logger = logging.getLogger(__name__)


def summarize_response(response: CompletionResponse, max_chars: int) -> str:
    """Trimmed, single-line summary of a completion for the history."""
    text = " ".join(response.text.split())
    if len(text) > max_chars:
        text = text[: max(0, max_chars - 3)] + "..."
    extras = []
    if response.images:
        extras.append(f"{len(response.images)} image(s)")
    if response.function_calls:
        extras.append(f"{len(response.function_calls)} function call(s)")
    if extras:
        text = f"{text} [{', '.join(extras)}]" if text else f"[{', '.join(extras)}]"
    return text


class RequestQueue:
    """
    Serializes generative-service calls and records their provenance.

    Args:
        provider: The configured provider, or None when the service could not
            be configured at startup. A None provider is reported once here;
            every enqueue then records a failed entry and raises
            UninitializedServiceError.
        history_limit: Records retained (oldest dropped first)
        result_summary_max_chars: Length of the stored result summary
    """

    def __init__(
        self,
        provider: LLMProvider | None,
        *,
        history_limit: int = 200,
        result_summary_max_chars: int = 200,
    ) -> None:
        self._provider = provider
        self._history_limit = max(1, history_limit)
        self._summary_chars = result_summary_max_chars
        self._lock = asyncio.Lock()
        self._records: OrderedDict[str, QueuedRequest] = OrderedDict()
        self._ids = itertools.count(1)

        if provider is None:
            logger.error(
                "RequestQueue created without a generative-service provider; "
                "AI-backed tools will fail until one is configured."
            )

    @property
    def provider(self) -> LLMProvider | None:
        return self._provider

    @property
    def is_configured(self) -> bool:
        return self._provider is not None

    async def enqueue(
        self,
        request: CompletionRequest,
        *,
        agent_label: str,
        summary: dict[str, Any] | None = None,
    ) -> CompletionResponse:
        """
        Admit request in FIFO order and wait for its completion.

        Args:
            request: The completion payload
            agent_label: Who issued it, e.g. "Persona Agent (Tool: transcend)"
            summary: Small dict describing the request for the history

        Returns:
            The provider's response

        Raises:
            UpstreamFailure: The provider call failed
            UninitializedServiceError: No provider was configured
        """
        record = QueuedRequest(
            id=f"req_{next(self._ids):06d}",
            agent_label=agent_label,
            model=request.model,
            request_summary=summary or {"prompt_chars": len(request.prompt_text())},
        )
        self._store(record)
        logger.debug(f"Queued {record.id} [{agent_label}] model={request.model}")

        async with self._lock:
            if self._provider is None:
                message = "Generative service is not configured."
                self._finish(record, RequestStatus.FAILED, error=message)
                raise UninitializedServiceError(message)

            try:
                with telemetry_stage(agent_label):
                    response = await self._provider.complete(request)
            except Exception as e:
                message = str(e) or type(e).__name__
                self._finish(record, RequestStatus.FAILED, error=message)
                logger.warning(f"Request {record.id} [{agent_label}] failed: {message}")
                raise UpstreamFailure(agent_label, message) from e

            self._finish(
                record,
                RequestStatus.SUCCEEDED,
                result_summary=summarize_response(response, self._summary_chars),
            )
            return response

    def records(self) -> list[QueuedRequest]:
        """Retained history, oldest first."""
        return list(self._records.values())

    def get(self, request_id: str) -> QueuedRequest | None:
        return self._records.get(request_id)

    def recent_failures(self, limit: int = 3) -> list[QueuedRequest]:
        """Most recent failed records, newest first."""
        failures = [r for r in reversed(self._records.values()) if r.status == RequestStatus.FAILED]
        return failures[:limit]

    def _store(self, record: QueuedRequest) -> None:
        self._records[record.id] = record
        while len(self._records) > self._history_limit:
            self._records.popitem(last=False)

    def _finish(
        self,
        record: QueuedRequest,
        status: RequestStatus,
        *,
        error: str | None = None,
        result_summary: str | None = None,
    ) -> None:
        """Replace the pending record with its terminal copy."""
        terminal = record.model_copy(update={
            "status": status,
            "completed_at": utc_now(),
            "error": error,
            "result_summary": result_summary,
        })
        if record.id in self._records:
            self._records[record.id] = terminal
