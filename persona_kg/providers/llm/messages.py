"""
LangChain message translation.

Converts provider-neutral CompletionRequest contents into LangChain
messages and AIMessage results back into CompletionResponse fields. Shared
by the OpenAI and Google providers.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from persona_kg.types.completion import (
    CompletionRequest,
    CompletionResponse,
    Content,
    FunctionCall,
    InlineData,
)

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]+)?(?:;base64)?,(?P<data>.*)$", re.DOTALL)


def _as_int(value: Any) -> int | None:
    """Best-effort int coercion."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def extract_token_usage(response: Any) -> tuple[int | None, int | None, int | None]:
    """
    Extract token usage from LangChain response metadata.

    Returns:
        (input_tokens, output_tokens, total_tokens)
    """
    if response is None:
        return None, None, None

    usage = getattr(response, "usage_metadata", None)
    if isinstance(usage, dict):
        input_tokens = _as_int(usage.get("input_tokens") or usage.get("prompt_tokens"))
        output_tokens = _as_int(usage.get("output_tokens") or usage.get("completion_tokens"))
        total_tokens = _as_int(usage.get("total_tokens"))
        if any(v is not None for v in (input_tokens, output_tokens, total_tokens)):
            return input_tokens, output_tokens, total_tokens

    response_metadata = getattr(response, "response_metadata", None)
    if isinstance(response_metadata, dict):
        token_usage = response_metadata.get("token_usage") or response_metadata.get("usage")
        if isinstance(token_usage, dict):
            input_tokens = _as_int(
                token_usage.get("input_tokens") or token_usage.get("prompt_tokens")
            )
            output_tokens = _as_int(
                token_usage.get("output_tokens") or token_usage.get("completion_tokens")
            )
            total_tokens = _as_int(token_usage.get("total_tokens"))
            if any(v is not None for v in (input_tokens, output_tokens, total_tokens)):
                return input_tokens, output_tokens, total_tokens

    return None, None, None


def _content_blocks(content: Content) -> str | list[str | dict[str, Any]]:
    """LangChain content for one turn: plain string when it is text only."""
    if all(part.inline_data is None for part in content.parts):
        return "\n".join(part.text for part in content.parts if part.text)

    blocks: list[str | dict[str, Any]] = []
    for part in content.parts:
        if part.text:
            blocks.append({"type": "text", "text": part.text})
        if part.inline_data is not None:
            url = f"data:{part.inline_data.mime_type};base64,{part.inline_data.data}"
            blocks.append({"type": "image_url", "image_url": {"url": url}})
    return blocks


def to_langchain_messages(request: CompletionRequest) -> list[BaseMessage]:
    """Translate request contents (and system instruction) to LangChain messages."""
    from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

    messages: list[BaseMessage] = []
    if request.config.system_instruction:
        messages.append(SystemMessage(content=request.config.system_instruction))
    for content in request.contents:
        blocks = _content_blocks(content)
        if content.role == "model":
            messages.append(AIMessage(content=blocks))
        else:
            messages.append(HumanMessage(content=blocks))
    return messages


def _image_from_block(block: dict[str, Any]) -> InlineData | None:
    block_type = block.get("type")
    if block_type == "image_url":
        image_url = block.get("image_url")
        url = image_url.get("url") if isinstance(image_url, dict) else image_url
        if isinstance(url, str):
            match = _DATA_URL.match(url)
            if match:
                return InlineData(mime_type=match.group("mime") or "image/png", data=match.group("data"))
    if block_type == "image":
        data = block.get("base64") or block.get("data")
        if isinstance(data, str):
            return InlineData(mime_type=block.get("mime_type") or "image/png", data=data)
    return None


def parse_ai_message(message: Any) -> CompletionResponse:
    """
    Build a CompletionResponse from a LangChain AIMessage.

    Text blocks are concatenated; image blocks (data-URL image_url blocks or
    base64 image blocks) and image_generation tool outputs become images;
    tool_calls become function calls.
    """
    texts: list[str] = []
    images: list[InlineData] = []

    content = getattr(message, "content", "")
    if isinstance(content, str):
        texts.append(content)
    else:
        for block in content or []:
            if isinstance(block, str):
                texts.append(block)
            elif isinstance(block, dict):
                if block.get("type") == "text" and isinstance(block.get("text"), str):
                    texts.append(block["text"])
                else:
                    image = _image_from_block(block)
                    if image is not None:
                        images.append(image)

    additional = getattr(message, "additional_kwargs", None) or {}
    for output in additional.get("tool_outputs", []) or []:
        if isinstance(output, dict) and output.get("type") == "image_generation_call":
            result = output.get("result")
            if isinstance(result, str) and result:
                images.append(InlineData(mime_type="image/png", data=result))

    function_calls = [
        FunctionCall(name=call["name"], args=dict(call.get("args") or {}))
        for call in getattr(message, "tool_calls", None) or []
    ]

    return CompletionResponse(
        text="".join(texts).strip(),
        function_calls=function_calls,
        images=images,
    )
