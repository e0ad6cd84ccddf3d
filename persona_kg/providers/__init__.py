"""
LLM Providers

Provider-agnostic interface to the generative service.

Modules:
    base: Abstract LLMProvider interface
    llm/: LangChain-backed implementations (OpenAI, Google)

Design:
    - One provider is created at startup and handed to the RequestQueue
    - A missing API key is reported once, at construction
    - Lazy import to avoid requiring every provider SDK

Example:
    >>> from persona_kg.config import AgentConfig
    >>> from persona_kg.providers import create_llm_provider
    >>> provider = create_llm_provider(AgentConfig(llm_provider="google"))
"""

from __future__ import annotations

import logging

from persona_kg.config import AgentConfig
from persona_kg.config.providers import API_KEY_ENV
from persona_kg.errors import UninitializedServiceError
from persona_kg.providers.base import LLMProvider

logger = logging.getLogger(__name__)

__all__ = ["LLMProvider", "create_llm_provider"]


def create_llm_provider(config: AgentConfig) -> LLMProvider:
    """
    Build the provider selected by config.

    Raises:
        UninitializedServiceError: The provider's API key is not set
        ValueError: Unknown provider name
    """
    if not config.api_key:
        env_name = API_KEY_ENV.get(config.llm_provider, "API key")
        raise UninitializedServiceError(
            f"{config.llm_provider} provider is not configured: set {env_name}."
        )

    if config.llm_provider == "openai":
        from persona_kg.providers.llm.openai import OpenAILLMProvider

        provider: LLMProvider = OpenAILLMProvider(api_key=config.api_key, model=config.llm_model)
    elif config.llm_provider == "google":
        from persona_kg.providers.llm.google import GoogleLLMProvider

        provider = GoogleLLMProvider(api_key=config.api_key, model=config.llm_model)
    else:
        raise ValueError(f"Unknown LLM provider: {config.llm_provider}")

    logger.info(f"LLM provider: {config.llm_provider} ({config.llm_model})")
    return provider
