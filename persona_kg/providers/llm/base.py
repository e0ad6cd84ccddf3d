"""
LangChain-backed provider base.

Implements LLMProvider.complete() on top of a LangChain chat model:
request translation, tool binding, structured output, and cost telemetry.
Subclasses supply the chat model and the provider-specific tool and
generation-config mappings.
"""

from __future__ import annotations

import logging
import time
from abc import abstractmethod
from typing import TYPE_CHECKING, Any

from persona_kg.config.pricing import estimate_llm_cost_usd
from persona_kg.providers.base import LLMProvider
from persona_kg.providers.llm.messages import (
    extract_token_usage,
    parse_ai_message,
    to_langchain_messages,
)
from persona_kg.types.completion import CompletionRequest, CompletionResponse, GenerationConfig
from persona_kg.types.results import CostUsageRecord
from persona_kg.utils.cost_telemetry import current_stage, record_usage
from persona_kg.utils.token_count import count_request_tokens, count_text_tokens

if TYPE_CHECKING:
    from langchain_core.language_models.chat_models import BaseChatModel

logger = logging.getLogger(__name__)


class LangChainLLMProvider(LLMProvider):
    """Shared completion flow for LangChain chat models."""

    provider_name: str = "langchain"

    def __init__(self, api_key: str | None = None, model: str = "") -> None:
        self._api_key = api_key
        self._model = model

    @property
    def model_name(self) -> str:
        return self._model

    @abstractmethod
    def _chat_model(self, model: str, temperature: float | None) -> "BaseChatModel":
        """Create the LangChain chat model for one call."""
        ...

    @abstractmethod
    def _builtin_tools(self, config: GenerationConfig) -> list[dict[str, Any]]:
        """Provider built-in tools (web search, image generation) for config."""
        ...

    def _function_tools(self, config: GenerationConfig) -> list[dict[str, Any]]:
        """Function declarations in the form bind_tools accepts."""
        return list(config.function_declarations)

    def _invoke_kwargs(self, config: GenerationConfig) -> dict[str, Any]:
        """Extra keyword arguments for ainvoke."""
        return {}

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Run one completion through LangChain.

        Structured output (response_schema) takes precedence over tool
        binding; a schema request never binds tools.
        """
        config = request.config
        start = time.perf_counter_ns()
        llm = self._chat_model(request.model, config.temperature)
        messages = to_langchain_messages(request)

        raw: Any = None
        if config.response_schema is not None:
            structured = llm.with_structured_output(config.response_schema, include_raw=True)
            result = await structured.ainvoke(messages)
            raw = result.get("raw") if isinstance(result, dict) else None
            parsed = result.get("parsed") if isinstance(result, dict) else result
            if parsed is None:
                error = result.get("parsing_error") if isinstance(result, dict) else None
                raise ValueError(f"Structured output could not be parsed: {error}")
            response = CompletionResponse(text=parsed.model_dump_json(), parsed=parsed)
            operation = "complete_structured"
        else:
            tools = self._builtin_tools(config) + self._function_tools(config)
            runnable: Any = llm.bind_tools(tools) if tools else llm
            raw = await runnable.ainvoke(messages, **self._invoke_kwargs(config))
            response = parse_ai_message(raw)
            operation = "complete"

        self._record_usage(request, response, raw, operation, start)
        logger.debug(
            f"{self.provider_name}:{request.model} {operation} -> "
            f"{len(response.text)} chars, {len(response.images)} images, "
            f"{len(response.function_calls)} function calls"
        )
        return response

    def _record_usage(
        self,
        request: CompletionRequest,
        response: CompletionResponse,
        raw: Any,
        operation: str,
        start_ns: int,
    ) -> None:
        input_tokens, output_tokens, total_tokens = extract_token_usage(raw)
        estimated = False

        if input_tokens is None:
            input_tokens = count_request_tokens(request)
            estimated = True
        if output_tokens is None:
            output_tokens = count_text_tokens(response.text, request.model)
            estimated = True
        if total_tokens is None:
            total_tokens = input_tokens + output_tokens

        estimated_cost, pricing_found = estimate_llm_cost_usd(
            request.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        elapsed_ms = (time.perf_counter_ns() - start_ns) // 1_000_000

        record_usage(
            CostUsageRecord(
                provider=self.provider_name,
                model=request.model,
                operation=operation,
                stage=current_stage(),
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=total_tokens,
                estimated_cost_usd=estimated_cost,
                latency_ms=int(elapsed_ms),
                estimated=estimated,
                metadata={
                    "temperature": request.config.temperature,
                    "web_search": request.config.web_search,
                    "images": len(response.images),
                    "pricing_found": pricing_found,
                },
            )
        )
