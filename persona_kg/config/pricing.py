"""
Model pricing metadata for cost telemetry.

All prices are estimated USD per 1M tokens and may change over time.
Unknown models default to 0.0 cost but still report token usage.
"""

from __future__ import annotations

from dataclasses import dataclass

PRICING_VERSION = "2026-10-estimate-v1"


@dataclass(frozen=True)
class LLMPrice:
    """Input/output pricing for chat models (USD per 1M tokens)."""

    input_per_million: float
    output_per_million: float


LLM_PRICING: dict[str, LLMPrice] = {
    "gemini-2.5-pro": LLMPrice(input_per_million=1.25, output_per_million=10.0),
    "gemini-2.5-flash": LLMPrice(input_per_million=0.30, output_per_million=2.5),
    "gemini-flash-latest": LLMPrice(input_per_million=0.30, output_per_million=2.5),
    "gemini-2.5-flash-lite": LLMPrice(input_per_million=0.10, output_per_million=0.4),
    "gemini-2.5-flash-image": LLMPrice(input_per_million=0.30, output_per_million=30.0),
    "gpt-5.1": LLMPrice(input_per_million=1.25, output_per_million=10.0),
    "gpt-5-mini": LLMPrice(input_per_million=0.25, output_per_million=2.0),
    "gpt-4.1": LLMPrice(input_per_million=2.0, output_per_million=8.0),
    "gpt-4o": LLMPrice(input_per_million=5.0, output_per_million=15.0),
    "gpt-4o-mini": LLMPrice(input_per_million=0.15, output_per_million=0.6),
}


def estimate_llm_cost_usd(
    model: str,
    *,
    input_tokens: int,
    output_tokens: int,
) -> tuple[float, bool]:
    """
    Estimate LLM cost in USD.

    Returns:
        (cost_usd, priced) where priced=False means model was unknown.
    """
    price = LLM_PRICING.get(model)
    if price is None:
        return 0.0, False
    cost = (
        (input_tokens / 1_000_000.0) * price.input_per_million
        + (output_tokens / 1_000_000.0) * price.output_per_million
    )
    return cost, True
