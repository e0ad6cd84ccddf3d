"""
LLM Provider Implementations

Lazy imports keep langchain-openai / langchain-google-genai optional until
a provider is actually constructed.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from persona_kg.providers.llm.google import GoogleLLMProvider
    from persona_kg.providers.llm.openai import OpenAILLMProvider

__all__ = ["OpenAILLMProvider", "GoogleLLMProvider"]


def __getattr__(name: str) -> Any:
    if name == "OpenAILLMProvider":
        from persona_kg.providers.llm.openai import OpenAILLMProvider

        return OpenAILLMProvider
    if name == "GoogleLLMProvider":
        from persona_kg.providers.llm.google import GoogleLLMProvider

        return GoogleLLMProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
