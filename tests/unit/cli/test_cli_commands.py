"""Tests for the typer CLI."""

import json
import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mcp_local_tasks import __version__
from mcp_local_tasks.cli.main import app
from mcp_local_tasks.config.thresholds import LatencyThreshold, ThresholdConfig

runner = CliRunner()

TASK_ID = re.compile(r"t_[0-9a-f]{8}")


@pytest.fixture
def cli_env(tmp_path: Path) -> dict[str, str]:
    return {
        "TASKS_DB_PATH": str(tmp_path / "tasks.db"),
        "TASKS_VECTOR_PATH": str(tmp_path / "vectors"),
        "TASKS_VECTOR_DIM": "16",
        "TASKS_CONFIG": str(tmp_path / "missing-config.yaml"),
    }


def invoke(args, env):
    return runner.invoke(app, args, env=env)


def add_task(env, title: str, *extra: str) -> str:
    result = invoke(["add", title, *extra], env)
    assert result.exit_code == 0, result.output
    return TASK_ID.search(result.output).group(0)


class TestGlobalOptions:
    def test_version(self, cli_env):
        result = invoke(["--version"], cli_env)

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_config_exits_2(self, cli_env):
        cli_env["TASKS_EMBEDDER"] = "word2vec"

        result = invoke(["list"], cli_env)

        assert result.exit_code == 2


class TestTaskCommands:
    def test_add_and_expand(self, cli_env):
        task_id = add_task(cli_env, "Renew passport", "--priority", "high", "--body", "Before June")

        result = invoke(["expand", task_id, "--json"], cli_env)

        assert result.exit_code == 0
        assert "Renew passport" in result.output
        assert '"high"' in result.output

    def test_expand_missing(self, cli_env):
        result = invoke(["expand", "t_00000000"], cli_env)
        assert result.exit_code == 1

    def test_list(self, cli_env):
        first = add_task(cli_env, "Buy milk")
        second = add_task(cli_env, "Call plumber")

        result = invoke(["list", "--json"], cli_env)

        assert result.exit_code == 0
        assert first in result.output
        assert second in result.output

    def test_list_with_query(self, cli_env):
        add_task(cli_env, "Buy milk")
        wanted = add_task(cli_env, "Call plumber")

        result = invoke(["list", "--query", "plumber", "--json"], cli_env)

        assert result.exit_code == 0
        assert TASK_ID.findall(result.output) == [wanted]

    def test_plan(self, cli_env):
        task_id = add_task(cli_env, "Prepare slides", "--priority", "high")
        add_task(cli_env, "Someday idea", "--priority", "low")

        result = invoke(["plan", "--json"], cli_env)

        assert result.exit_code == 0
        assert TASK_ID.findall(result.output) == [task_id]

    def test_add_rejects_empty_title(self, cli_env):
        result = invoke(["add", "  "], cli_env)
        assert result.exit_code == 1


class TestSearchAndIndex:
    def test_search(self, cli_env):
        task_id = add_task(cli_env, "Investigate memory leak")
        add_task(cli_env, "Water plants")

        result = invoke(["search", "memory leak", "--json"], cli_env)

        assert result.exit_code == 0
        assert task_id in result.output

    def test_search_with_timing(self, cli_env):
        add_task(cli_env, "Investigate memory leak")

        result = invoke(["search", "memory", "--timing"], cli_env)

        assert result.exit_code == 0
        assert "lexical" in result.output
        assert "total" in result.output

    def test_seed_and_index(self, cli_env):
        seeded = invoke(["seed", "--count", "40"], cli_env)
        assert seeded.exit_code == 0, seeded.output
        assert "Seeded 40 tasks" in seeded.output

        indexed = invoke(["index", "--reset"], cli_env)
        assert indexed.exit_code == 0, indexed.output
        assert "Indexed 40 tasks" in indexed.output


class TestBenchCommands:
    def test_run_and_check(self, cli_env, tmp_path: Path):
        results_path = tmp_path / "results.json"
        loose = tmp_path / "loose.yaml"
        tight = tmp_path / "tight.yaml"
        ThresholdConfig([LatencyThreshold("task.list", "p95", 60_000)]).save(loose)
        ThresholdConfig([LatencyThreshold("task.list", "p95", 0.000001)]).save(tight)

        run = invoke(
            [
                "bench",
                "run",
                "--count",
                "60",
                "--list-samples",
                "2",
                "--hybrid-samples",
                "2",
                "--plan-samples",
                "2",
                "--warmup",
                "0",
                "--output",
                str(results_path),
                "--thresholds",
                str(loose),
            ],
            cli_env,
        )

        assert run.exit_code == 0, run.output
        data = json.loads(results_path.read_text())
        assert {r["operation"] for r in data["results"]} == {
            "task.list",
            "task.queryHybrid",
            "task.plan_day",
        }

        assert invoke(["bench", "check", str(results_path), "-t", str(loose)], cli_env).exit_code == 0
        assert invoke(["bench", "check", str(results_path), "-t", str(tight)], cli_env).exit_code == 1

    def test_check_missing_results(self, cli_env, tmp_path: Path):
        result = invoke(["bench", "check", str(tmp_path / "nope.json")], cli_env)
        assert result.exit_code == 2

    def test_run_without_data_exits_2(self, cli_env, tmp_path: Path):
        result = invoke(
            ["bench", "run", "--no-seed", "--output", str(tmp_path / "r.json")],
            cli_env,
        )
        assert result.exit_code == 2
