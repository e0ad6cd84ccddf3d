"""
OpenAI LLM Provider (LangChain-based)

Implements LLMProvider using LangChain's ChatOpenAI.

Supports:
    - Text completion with system instruction and temperature
    - Structured output with Pydantic schemas
    - Web search (Responses API built-in web_search_preview tool)
    - Function declarations (bind_tools)
    - Image output (Responses API built-in image_generation tool)

Example:
    >>> provider = OpenAILLMProvider(api_key="sk-...", model="gpt-4o")
    >>> response = await provider.generate("What is 2+2?")
    >>> print(response)
    "4"
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from persona_kg.providers.llm.base import LangChainLLMProvider
from persona_kg.types.completion import GenerationConfig

if TYPE_CHECKING:
    from langchain_openai import ChatOpenAI


def _get_chat_openai(
    api_key: str | None = None,
    model: str = "gpt-4o",
    temperature: float | None = None,
) -> "ChatOpenAI":
    """
    Get a ChatOpenAI instance.

    Uses lazy import to avoid requiring langchain-openai unless actually used.

    Raises:
        ImportError: If langchain-openai package is not installed
    """
    try:
        from langchain_openai import ChatOpenAI
    except ImportError:
        raise ImportError(
            "OpenAI provider requires the 'langchain-openai' package. "
            "Install with: pip install langchain-openai"
        )

    kwargs: dict[str, Any] = {"model": model}
    if temperature is not None:
        kwargs["temperature"] = temperature
    if api_key:
        kwargs["api_key"] = api_key

    return ChatOpenAI(**kwargs)


class OpenAILLMProvider(LangChainLLMProvider):
    """
    OpenAI provider using LangChain.

    Args:
        api_key: OpenAI API key. If None, uses OPENAI_API_KEY environment variable.
        model: Default model (default: "gpt-4o")
    """

    provider_name = "openai"

    def __init__(self, api_key: str | None = None, model: str = "gpt-4o") -> None:
        super().__init__(api_key=api_key, model=model)

    def _chat_model(self, model: str, temperature: float | None) -> "ChatOpenAI":
        return _get_chat_openai(api_key=self._api_key, model=model, temperature=temperature)

    def _builtin_tools(self, config: GenerationConfig) -> list[dict[str, Any]]:
        tools: list[dict[str, Any]] = []
        if config.web_search:
            tools.append({"type": "web_search_preview"})
        if "IMAGE" in (m.upper() for m in config.response_modalities):
            tools.append({"type": "image_generation"})
        return tools

    def _function_tools(self, config: GenerationConfig) -> list[dict[str, Any]]:
        return [{"type": "function", "function": decl} for decl in config.function_declarations]
