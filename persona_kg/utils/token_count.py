"""
Token estimates for telemetry when a provider reports no usage.

Uses tiktoken when it is installed and a ~4 chars/token heuristic otherwise.
"""

from __future__ import annotations

from persona_kg.types.completion import CompletionRequest


def _count_with_tiktoken(text: str, model: str) -> int | None:
    try:
        import tiktoken
    except ImportError:
        return None

    try:
        encoding = tiktoken.encoding_for_model(model)
    except KeyError:
        encoding = tiktoken.get_encoding("cl100k_base")

    return len(encoding.encode(text))


def count_text_tokens(text: str, model: str) -> int:
    """Estimate tokens for plain text."""
    if not text:
        return 0
    tk_count = _count_with_tiktoken(text, model)
    if tk_count is not None:
        return tk_count
    return max(1, (len(text) + 3) // 4)


def count_request_tokens(request: CompletionRequest) -> int:
    """
    Estimate input tokens for a completion request.

    Counts the system instruction and every text part, plus a small fixed
    framing overhead per turn. Inline images are not counted.
    """
    total = 0
    if request.config.system_instruction:
        total += count_text_tokens(request.config.system_instruction, request.model) + 4
    for content in request.contents:
        for part in content.parts:
            if part.text:
                total += count_text_tokens(part.text, request.model)
        total += 4
    return total
