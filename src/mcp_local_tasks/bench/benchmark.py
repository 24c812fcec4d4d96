"""Benchmark harness: latency percentiles, precision@10 and CI threshold checks.

Operations measured against the seeded ``benchmark`` tasks:

- ``task.list``: newest 20 task handles
- ``task.queryHybrid``: hybrid search over a fixed query rotation
- ``task.plan_day``: the plan-day query

Each operation gets a fixed warmup (discarded) before its timed samples.
"""

import inspect
import itertools
import time
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from ..config.defaults import BENCHMARK_SOURCE, BENCHMARK_WARMUP_RUNS
from ..config.thresholds import LatencyThreshold, ThresholdConfig
from ..core.exceptions import BenchmarkError
from ..core.search import HybridSearchEngine
from ..core.task_store import TaskStore
from .labeled_queries import build_labeled_dataset, mean_precision_at_k
from .metrics import calculate_stats, estimate_task_tokens

HYBRID_QUERIES = (
    "authentication bug",
    "rate limiting API",
    "memory leak",
    "database optimization",
    "documentation update",
)
PRECISION_K = 10


@dataclass
class OperationStats:
    """Latency statistics for one benchmarked operation (ms)."""

    operation: str
    samples: int
    latencies: list[float] = field(default_factory=list)
    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0
    tokens_per_request: int = 0

    def metric(self, name: str) -> float:
        return getattr(self, name)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PrecisionSummary:
    """Mean precision@10 over labeled queries (reported as ``map10``)."""

    map10: float
    queries: int


@dataclass
class BenchmarkSuite:
    """Complete benchmark run."""

    timestamp: str
    results: list[OperationStats]
    total_samples: int = 0
    total_duration_ms: float = 0.0
    precision: PrecisionSummary | None = None

    def get(self, operation: str) -> OperationStats | None:
        for result in self.results:
            if result.operation == operation:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "total_samples": self.total_samples,
                "total_duration_ms": self.total_duration_ms,
                "precision": asdict(self.precision) if self.precision else None,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BenchmarkSuite":
        """Rebuild a suite from a saved results file."""
        try:
            summary = data.get("summary", {})
            precision = summary.get("precision")
            return cls(
                timestamp=data["timestamp"],
                results=[OperationStats(**r) for r in data["results"]],
                total_samples=summary.get("total_samples", 0),
                total_duration_ms=summary.get("total_duration_ms", 0.0),
                precision=PrecisionSummary(**precision) if precision else None,
            )
        except (KeyError, TypeError) as e:
            raise BenchmarkError(f"Malformed benchmark results: {e}") from e


def _as_mapping(item: Any) -> dict[str, Any]:
    if isinstance(item, dict):
        return item
    if hasattr(item, "to_dict"):
        return item.to_dict()
    return {}


async def _call(fn: Callable[[], Any]) -> Any:
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return result


async def run_benchmark(
    operation: str,
    fn: Callable[[], Any],
    samples: int = 100,
    warmup: int = BENCHMARK_WARMUP_RUNS,
) -> OperationStats:
    """Time ``fn`` (sync or async) over ``samples`` calls after ``warmup`` calls.

    Results that are sequences contribute to the average token estimate.
    """
    if samples <= 0:
        raise BenchmarkError(f"samples must be positive for {operation}")

    logger.debug(f"Running {operation} ({samples} samples, {warmup} warmup)")
    for _ in range(warmup):
        await _call(fn)

    latencies: list[float] = []
    total_tokens = 0
    for _ in range(samples):
        start = time.perf_counter()
        result = await _call(fn)
        latencies.append((time.perf_counter() - start) * 1000)
        if isinstance(result, Sequence) and not isinstance(result, str):
            total_tokens += sum(estimate_task_tokens(_as_mapping(item)) for item in result)

    stats = calculate_stats(latencies)
    return OperationStats(
        operation=operation,
        samples=samples,
        latencies=latencies,
        p50=stats.p50,
        p95=stats.p95,
        p99=stats.p99,
        mean=stats.mean,
        min=stats.min,
        max=stats.max,
        tokens_per_request=round(total_tokens / samples),
    )


async def run_suite(
    store: TaskStore,
    engine: HybridSearchEngine,
    list_samples: int = 200,
    hybrid_samples: int = 100,
    plan_samples: int = 100,
    warmup: int = BENCHMARK_WARMUP_RUNS,
    source: str = BENCHMARK_SOURCE,
) -> BenchmarkSuite:
    """Run every benchmarked operation plus the precision evaluation.

    Raises:
        BenchmarkError: If there is no benchmark data to measure
    """
    suite_start = time.perf_counter()

    count = store.count(source=source)
    if count == 0:
        raise BenchmarkError(
            "No benchmark data found. Run 'mcp-local-tasks seed' first.",
            {"source": source},
        )
    logger.info(f"Found {count} benchmark tasks")

    results = [
        await run_benchmark(
            "task.list",
            lambda: store.list_task_handles(limit=20, source=source),
            samples=list_samples,
            warmup=warmup,
        )
    ]

    queries = itertools.cycle(HYBRID_QUERIES)

    def next_query() -> Any:
        return engine.hybrid_search(next(queries), k=PRECISION_K)

    results.append(
        await run_benchmark(
            "task.queryHybrid", next_query, samples=hybrid_samples, warmup=warmup
        )
    )
    results.append(
        await run_benchmark(
            "task.plan_day",
            lambda: store.plan_day(limit=50, source=source),
            samples=plan_samples,
            warmup=warmup,
        )
    )

    labeled = build_labeled_dataset(store, source=source)
    pairs = []
    for labeled_query in labeled:
        records = await engine.hybrid_search(labeled_query.query, k=PRECISION_K)
        pairs.append(([r.id for r in records], labeled_query.relevant_ids))
    precision = PrecisionSummary(
        map10=mean_precision_at_k(pairs, PRECISION_K), queries=len(labeled)
    )
    logger.info(f"MAP@10 {precision.map10:.3f} over {precision.queries} queries")

    return BenchmarkSuite(
        timestamp=datetime.now(UTC).isoformat(),
        results=results,
        total_samples=sum(r.samples for r in results),
        total_duration_ms=(time.perf_counter() - suite_start) * 1000,
        precision=precision,
    )


@dataclass
class ThresholdOutcome:
    """Result of checking one latency threshold."""

    threshold: LatencyThreshold
    value: float | None
    passed: bool

    @property
    def message(self) -> str:
        t = self.threshold
        if self.value is None:
            return f"{t.operation} not found in results"
        verb = "within" if self.passed else "exceeds"
        return (
            f"{t.label} = {self.value:.2f}ms {verb} threshold of {t.threshold_ms:g}ms"
        )


def check_thresholds(
    suite: BenchmarkSuite, config: ThresholdConfig
) -> list[ThresholdOutcome]:
    """Check every configured threshold. A missing operation fails."""
    outcomes = []
    for threshold in config.thresholds:
        result = suite.get(threshold.operation)
        if result is None:
            outcomes.append(ThresholdOutcome(threshold, None, False))
            continue
        value = result.metric(threshold.metric)
        outcomes.append(ThresholdOutcome(threshold, value, value <= threshold.threshold_ms))
    return outcomes
