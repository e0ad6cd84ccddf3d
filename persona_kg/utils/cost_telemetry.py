"""
Per-call cost telemetry.

A CostCollector is attached through contextvars for the duration of one
tool call. Providers record usage for every completion; the RequestQueue
labels each record with the agent label of the queued request.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from persona_kg.config.pricing import PRICING_VERSION
from persona_kg.types.results import (
    CostBreakdown,
    CostDebugReport,
    CostUsageRecord,
    StageCostBreakdown,
)

_COLLECTOR: ContextVar[CostCollector | None] = ContextVar(
    "persona_cost_collector",
    default=None,
)
_STAGE: ContextVar[str] = ContextVar("persona_cost_stage", default="unlabeled")


class CostCollector:
    """Accumulates provider usage records for one tool call."""

    def __init__(self, *, warn_threshold_usd: float | None = None) -> None:
        self._records: list[CostUsageRecord] = []
        self._warn_threshold_usd = warn_threshold_usd

    def add(self, record: CostUsageRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> list[CostUsageRecord]:
        return list(self._records)

    def summary(self) -> CostDebugReport:
        """Aggregate the records by stage (agent label)."""
        by_stage: dict[str, StageCostBreakdown] = {}
        warnings: set[str] = set()
        breakdown = CostBreakdown(total_calls=len(self._records))

        for record in self._records:
            breakdown.total_input_tokens += record.input_tokens
            breakdown.total_output_tokens += record.output_tokens
            breakdown.total_tokens += record.total_tokens
            breakdown.total_estimated_cost_usd += record.estimated_cost_usd
            breakdown.total_latency_ms += record.latency_ms

            stage = by_stage.setdefault(record.stage, StageCostBreakdown(stage=record.stage))
            stage.calls += 1
            stage.input_tokens += record.input_tokens
            stage.output_tokens += record.output_tokens
            stage.total_tokens += record.total_tokens
            stage.estimated_cost_usd += record.estimated_cost_usd
            stage.total_latency_ms += record.latency_ms

            if not record.metadata.get("pricing_found", True):
                warnings.add(
                    f"No pricing for model '{record.model}' ({record.stage}); cost counted as 0.0."
                )
            if record.estimated:
                warnings.add(
                    f"Token usage for '{record.model}' ({record.stage}) was estimated locally."
                )

        total_cost = breakdown.total_estimated_cost_usd
        if self._warn_threshold_usd is not None and total_cost >= self._warn_threshold_usd:
            warnings.add(
                f"Estimated tool call cost ${total_cost:.6f} exceeded threshold "
                f"${self._warn_threshold_usd:.6f}."
            )

        breakdown.by_stage = sorted(
            by_stage.values(), key=lambda s: s.estimated_cost_usd, reverse=True
        )
        return CostDebugReport(
            enabled=True,
            pricing_version=PRICING_VERSION,
            breakdown=breakdown,
            warnings=sorted(warnings),
        )


@contextmanager
def telemetry_collector(collector: CostCollector | None) -> Iterator[CostCollector | None]:
    """Set the active collector for provider instrumentation."""
    token = _COLLECTOR.set(collector)
    try:
        yield collector
    finally:
        _COLLECTOR.reset(token)


@contextmanager
def telemetry_stage(stage: str) -> Iterator[None]:
    """Label records emitted inside the block with stage."""
    token = _STAGE.set(stage)
    try:
        yield
    finally:
        _STAGE.reset(token)


def current_stage() -> str:
    return _STAGE.get()


def record_usage(record: CostUsageRecord) -> None:
    """Add record to the active collector, if any."""
    collector = _COLLECTOR.get()
    if collector is not None:
        collector.add(record)
