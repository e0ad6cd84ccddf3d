"""
Completion Types

Provider-neutral request/response shapes for the external generative
service. Every request travels through the RequestQueue; providers translate
these models into their SDK calls.

Models:
    - CompletionRequest: {model, contents, config}
    - GenerationConfig: Optional sampling/output controls
    - CompletionResponse: {text, function_calls, images}
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class InlineData(BaseModel):
    """Base64-encoded binary payload (images)."""

    mime_type: str = "image/png"
    data: str


class ContentPart(BaseModel):
    """One part of a message: text or inline data."""

    text: str | None = None
    inline_data: InlineData | None = None


class Content(BaseModel):
    """A single conversational turn."""

    role: Literal["user", "model"] = "user"
    parts: list[ContentPart] = Field(default_factory=list)


class GenerationConfig(BaseModel):
    """
    Output controls for a completion.

    Attributes:
        system_instruction: Optional system message
        temperature: Sampling temperature (provider default when None)
        response_schema: Pydantic class for structured output
        response_modalities: e.g. ["IMAGE"] for image generation
        web_search: Enable the provider's built-in search tool
        function_declarations: Tool declarations the model may call
    """

    system_instruction: str | None = None
    temperature: float | None = None
    response_schema: type[BaseModel] | None = Field(default=None, exclude=True)
    response_modalities: list[str] = Field(default_factory=list)
    web_search: bool = False
    function_declarations: list[dict[str, Any]] = Field(default_factory=list)


class CompletionRequest(BaseModel):
    """Payload for one generative-service call."""

    model: str
    contents: list[Content]
    config: GenerationConfig = Field(default_factory=GenerationConfig)

    @classmethod
    def from_prompt(cls, model: str, prompt: str, **config: Any) -> "CompletionRequest":
        """Build a single-turn text request."""
        return cls(
            model=model,
            contents=[Content(parts=[ContentPart(text=prompt)])],
            config=GenerationConfig(**config),
        )

    def prompt_text(self) -> str:
        """All text parts joined, for logging and token estimates."""
        return "\n".join(
            part.text for content in self.contents for part in content.parts if part.text
        )


class FunctionCall(BaseModel):
    """A tool call requested by the model."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class CompletionResponse(BaseModel):
    """
    Result of one generative-service call.

    Attributes:
        text: Concatenated text output
        function_calls: Tool calls requested by the model
        images: Inline images returned (image modality)
        parsed: Structured output instance when response_schema was set
    """

    text: str = ""
    function_calls: list[FunctionCall] = Field(default_factory=list)
    images: list[InlineData] = Field(default_factory=list)
    parsed: Any = Field(default=None, exclude=True)
