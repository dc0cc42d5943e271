"""Usage metering: reporter contract, payload extraction, and cost ledger."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Protocol, runtime_checkable

from research_tools.types import UsageMetrics, UsageReport

logger = logging.getLogger(__name__)

_USAGE_FIELDS = ("completion_tokens", "prompt_tokens", "total_tokens")


@runtime_checkable
class UsageReporter(Protocol):
    """Best-effort sink for per-call token usage."""

    def report(self, usage: UsageReport) -> None:
        """Record one completed call."""


class NoopUsageReporter:
    def report(self, usage: UsageReport) -> None:
        del usage


@dataclass(slots=True)
class CostModel:
    """Simple token pricing model (USD per 1K tokens)."""

    input_per_1k: float = 0.001
    output_per_1k: float = 0.005

    def estimate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        return (prompt_tokens / 1000.0) * self.input_per_1k + (
            completion_tokens / 1000.0
        ) * self.output_per_1k


@dataclass(slots=True)
class _ModelTotals:
    calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class UsageLedger:
    """In-memory reporter that aggregates usage per model."""

    def __init__(self, *, cost_model: CostModel | None = None) -> None:
        self._cost_model = cost_model if cost_model is not None else CostModel()
        self._totals: dict[str, _ModelTotals] = {}
        self._lock = threading.Lock()

    def report(self, usage: UsageReport) -> None:
        with self._lock:
            totals = self._totals.setdefault(usage.model, _ModelTotals())
            totals.calls += 1
            totals.prompt_tokens += usage.usage.prompt_tokens
            totals.completion_tokens += usage.usage.completion_tokens
            totals.total_tokens += usage.usage.total_tokens

    def summary(self) -> dict[str, Any]:
        """Aggregate token and cost metrics for dashboard display."""
        with self._lock:
            snapshot = {model: replace(t) for model, t in self._totals.items()}

        by_model: dict[str, dict[str, float | int]] = {}
        for model, totals in snapshot.items():
            by_model[model] = {
                "calls": totals.calls,
                "prompt_tokens": totals.prompt_tokens,
                "completion_tokens": totals.completion_tokens,
                "total_tokens": totals.total_tokens,
                "estimated_cost_usd": self._cost_model.estimate_cost(
                    totals.prompt_tokens, totals.completion_tokens
                ),
            }

        return {
            "total_calls": sum(t.calls for t in snapshot.values()),
            "total_prompt_tokens": sum(t.prompt_tokens for t in snapshot.values()),
            "total_completion_tokens": sum(t.completion_tokens for t in snapshot.values()),
            "total_tokens": sum(t.total_tokens for t in snapshot.values()),
            "total_estimated_cost_usd": sum(
                float(m["estimated_cost_usd"]) for m in by_model.values()
            ),
            "by_model": by_model,
        }


def extract_usage_report(payload: Any) -> UsageReport | None:
    """Build a `UsageReport` when the payload carries a complete usage block."""
    if not isinstance(payload, dict):
        return None
    model = payload.get("model")
    usage = payload.get("usage")
    if not isinstance(model, str) or not isinstance(usage, dict):
        return None

    values: list[int] = []
    for name in _USAGE_FIELDS:
        value = usage.get(name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return None
        values.append(value)

    completion_tokens, prompt_tokens, total_tokens = values
    return UsageReport(
        model=model,
        usage=UsageMetrics(
            completion_tokens=completion_tokens,
            prompt_tokens=prompt_tokens,
            total_tokens=total_tokens,
        ),
    )


def report_usage(reporter: UsageReporter, payload: Any) -> bool:
    """Forward usage from *payload* to *reporter*; never raises.

    Returns whether a report was delivered.
    """
    report = extract_usage_report(payload)
    if report is None:
        logger.debug("No complete usage block in response; skipping report")
        return False
    try:
        reporter.report(report)
    except Exception as exc:
        logger.warning("Usage reporting failed: %s", exc, exc_info=exc)
        return False
    return True

