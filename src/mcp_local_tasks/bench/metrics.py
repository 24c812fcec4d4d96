"""Latency statistics and token estimates for benchmark runs."""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass
class LatencyStats:
    """Summary statistics over latency samples, in milliseconds."""

    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0


def calculate_percentile(sorted_values: Sequence[float], percentile: float) -> float:
    """Nearest-rank percentile of ascending ``sorted_values``.

    index = ceil(percentile / 100 * n) - 1, clamped at 0. Returns 0 for an
    empty sequence. CI gates depend on this exact formula.
    """
    if not sorted_values:
        return 0.0
    index = math.ceil((percentile / 100) * len(sorted_values)) - 1
    return sorted_values[max(0, index)]


def calculate_stats(latencies: Sequence[float]) -> LatencyStats:
    if not latencies:
        return LatencyStats()
    ordered = sorted(latencies)
    return LatencyStats(
        p50=calculate_percentile(ordered, 50),
        p95=calculate_percentile(ordered, 95),
        p99=calculate_percentile(ordered, 99),
        mean=sum(ordered) / len(ordered),
        min=ordered[0],
        max=ordered[-1],
    )


def estimate_tokens(text: str | None) -> int:
    """Rough token count, about four characters per token for English text."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def estimate_task_tokens(task: Mapping[str, Any]) -> int:
    """Token estimate for a full task or a result record."""
    return sum(
        estimate_tokens(task.get(name))
        for name in ("title", "body", "preview", "summary")
    )
