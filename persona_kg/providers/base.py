"""
Abstract Provider Interface

The generative service is reached only through an LLMProvider, and only
the RequestQueue calls complete(). Tool handlers never hold a provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from persona_kg.types.completion import CompletionRequest, CompletionResponse


class LLMProvider(ABC):
    """Abstract interface for generative-service providers."""

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run one completion. The model named in the request is used."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Default model name."""
        ...

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float | None = None,
    ) -> str:
        """Single-turn text completion on the default model."""
        request = CompletionRequest.from_prompt(
            self.model_name,
            prompt,
            system_instruction=system,
            temperature=temperature,
        )
        response = await self.complete(request)
        return response.text
