"""Utilities: cost telemetry and token estimates."""

from persona_kg.utils.cost_telemetry import (
    CostCollector,
    current_stage,
    record_usage,
    telemetry_collector,
    telemetry_stage,
)
from persona_kg.utils.token_count import count_request_tokens, count_text_tokens

__all__ = [
    "CostCollector",
    "current_stage",
    "record_usage",
    "telemetry_collector",
    "telemetry_stage",
    "count_text_tokens",
    "count_request_tokens",
]
