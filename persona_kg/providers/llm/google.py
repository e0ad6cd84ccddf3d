"""
Google Gemini LLM Provider (LangChain-based)

Implements LLMProvider using LangChain's ChatGoogleGenerativeAI.

Supports:
    - Text completion with system instruction and temperature
    - Structured output with Pydantic schemas
    - Web search (google_search grounding tool)
    - Function declarations (bind_tools)
    - Image output (response_modalities, e.g. gemini-2.5-flash-image)

Example:
    >>> provider = GoogleLLMProvider(api_key="...", model="gemini-2.5-flash")
    >>> text = await provider.generate("Summarize stoicism in one line.")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from persona_kg.providers.llm.base import LangChainLLMProvider
from persona_kg.types.completion import GenerationConfig

if TYPE_CHECKING:
    from langchain_google_genai import ChatGoogleGenerativeAI


def _get_chat_google(
    api_key: str | None = None,
    model: str = "gemini-2.5-flash",
    temperature: float | None = None,
) -> "ChatGoogleGenerativeAI":
    """
    Get a ChatGoogleGenerativeAI instance.

    Uses lazy import to avoid requiring langchain-google-genai unless used.

    Raises:
        ImportError: If langchain-google-genai package is not installed
    """
    try:
        from langchain_google_genai import ChatGoogleGenerativeAI
    except ImportError:
        raise ImportError(
            "Google provider requires the 'langchain-google-genai' package. "
            "Install with: pip install langchain-google-genai"
        )

    kwargs: dict[str, Any] = {"model": model}
    if temperature is not None:
        kwargs["temperature"] = temperature
    if api_key:
        kwargs["google_api_key"] = api_key

    return ChatGoogleGenerativeAI(**kwargs)


class GoogleLLMProvider(LangChainLLMProvider):
    """
    Gemini provider using LangChain.

    Args:
        api_key: Google API key. If None, uses GOOGLE_API_KEY environment variable.
        model: Default model (default: "gemini-2.5-flash")
    """

    provider_name = "google"

    def __init__(self, api_key: str | None = None, model: str = "gemini-2.5-flash") -> None:
        super().__init__(api_key=api_key, model=model)

    def _chat_model(self, model: str, temperature: float | None) -> "ChatGoogleGenerativeAI":
        return _get_chat_google(api_key=self._api_key, model=model, temperature=temperature)

    def _builtin_tools(self, config: GenerationConfig) -> list[dict[str, Any]]:
        if config.web_search:
            return [{"google_search": {}}]
        return []

    def _invoke_kwargs(self, config: GenerationConfig) -> dict[str, Any]:
        if config.response_modalities:
            modalities = [m.upper() for m in config.response_modalities]
            if "TEXT" not in modalities:
                modalities.insert(0, "TEXT")
            return {"generation_config": {"response_modalities": modalities}}
        return {}
