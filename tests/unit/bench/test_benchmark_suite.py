"""Tests for the benchmark runner, threshold gate and result files."""

import json
from pathlib import Path

import pytest

from mcp_local_tasks.bench.benchmark import (
    BenchmarkSuite,
    OperationStats,
    PrecisionSummary,
    check_thresholds,
    run_benchmark,
    run_suite,
)
from mcp_local_tasks.bench.reporter import (
    BenchmarkReporter,
    format_duration,
    load_results,
    save_results,
)
from mcp_local_tasks.bench.seed import seed_benchmark_data
from mcp_local_tasks.config.thresholds import LatencyThreshold, ThresholdConfig
from mcp_local_tasks.core.exceptions import BenchmarkError


def _suite(p95: float = 12.0) -> BenchmarkSuite:
    return BenchmarkSuite(
        timestamp="2026-01-15T12:00:00+00:00",
        results=[
            OperationStats(operation="task.list", samples=3, latencies=[1.0, 2.0, 3.0], p95=p95),
            OperationStats(operation="task.plan_day", samples=3, p95=4.0),
        ],
        total_samples=6,
        total_duration_ms=20.0,
        precision=PrecisionSummary(map10=0.4, queries=5),
    )


@pytest.mark.asyncio
class TestRunBenchmark:
    async def test_sync_callable(self):
        calls = []

        def op():
            calls.append(1)
            return [{"title": "abcd", "preview": "abcdefgh"}]

        stats = await run_benchmark("op", op, samples=4, warmup=2)

        assert len(calls) == 6
        assert stats.samples == 4
        assert len(stats.latencies) == 4
        assert stats.tokens_per_request == 3
        assert stats.min <= stats.p50 <= stats.p95 <= stats.max

    async def test_async_callable(self):
        async def op():
            return []

        stats = await run_benchmark("op", op, samples=2, warmup=0)

        assert stats.samples == 2
        assert stats.tokens_per_request == 0

    async def test_requires_samples(self):
        with pytest.raises(BenchmarkError):
            await run_benchmark("op", lambda: None, samples=0)


@pytest.mark.asyncio
class TestRunSuite:
    async def test_no_data_is_an_error(self, store, engine_factory):
        with pytest.raises(BenchmarkError):
            await run_suite(store, engine_factory(store))

    async def test_small_run(self, store, engine_factory, now):
        seed_benchmark_data(store, count=200, now=now)

        suite = await run_suite(
            store,
            engine_factory(store),
            list_samples=3,
            hybrid_samples=3,
            plan_samples=3,
            warmup=0,
        )

        assert [r.operation for r in suite.results] == [
            "task.list",
            "task.queryHybrid",
            "task.plan_day",
        ]
        assert suite.total_samples == 9
        assert suite.precision is not None
        assert 0.0 <= suite.precision.map10 <= 1.0
        assert suite.get("task.list").tokens_per_request > 0


class TestThresholdGate:
    def test_pass(self):
        config = ThresholdConfig([LatencyThreshold("task.list", "p95", 200)])

        [outcome] = check_thresholds(_suite(p95=12.0), config)

        assert outcome.passed
        assert outcome.value == 12.0
        assert "within" in outcome.message

    def test_fail(self):
        config = ThresholdConfig([LatencyThreshold("task.list", "p95", 10)])

        [outcome] = check_thresholds(_suite(p95=12.0), config)

        assert not outcome.passed
        assert "exceeds" in outcome.message

    def test_missing_operation_fails(self):
        config = ThresholdConfig([LatencyThreshold("task.queryHybrid", "p95", 200)])

        [outcome] = check_thresholds(_suite(), config)

        assert not outcome.passed
        assert outcome.value is None
        assert "not found" in outcome.message

    def test_reporter_returns_overall_status(self):
        config = ThresholdConfig(
            [
                LatencyThreshold("task.list", "p95", 200),
                LatencyThreshold("task.plan_day", "p95", 1),
            ]
        )

        reporter = BenchmarkReporter()

        assert reporter.print_thresholds(check_thresholds(_suite(), config)) is False


class TestResultFiles:
    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "out" / "results.json"
        suite = _suite()

        save_results(suite, path)
        data = json.loads(path.read_text())

        assert data["summary"]["precision"] == {"map10": 0.4, "queries": 5}
        assert data["results"][0]["operation"] == "task.list"
        assert load_results(path) == suite

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(BenchmarkError):
            load_results(tmp_path / "nope.json")

    def test_malformed_file(self, tmp_path: Path):
        path = tmp_path / "results.json"
        path.write_text(json.dumps({"results": []}))

        with pytest.raises(BenchmarkError):
            load_results(path)

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "results.json"
        path.write_text("{not json")

        with pytest.raises(BenchmarkError):
            load_results(path)


class TestFormatDuration:
    def test_units(self):
        assert format_duration(0.5) == "500µs"
        assert format_duration(12.5) == "12.50ms"
        assert format_duration(2500) == "2.50s"
