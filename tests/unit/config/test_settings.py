"""Tests for runtime configuration loading."""

from pathlib import Path

import pytest
import yaml

from mcp_local_tasks.config.settings import TaskSearchConfig
from mcp_local_tasks.core.exceptions import ConfigError
from mcp_local_tasks.core.models import Weights


class TestTaskSearchConfigLoad:
    """YAML file plus environment overrides."""

    def test_defaults_when_file_missing(self, tmp_path: Path):
        config = TaskSearchConfig.load(tmp_path / "missing.yaml", environ={})

        assert config == TaskSearchConfig()
        assert config.embedder == "stub"
        assert config.search_timeout_ms is None

    def test_yaml_values(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.dump(
                {
                    "db_path": str(tmp_path / "t.db"),
                    "vector_dim": 64,
                    "search_timeout_ms": 250,
                    "weights": {"semantic": 0.8},
                }
            )
        )

        config = TaskSearchConfig.load(path, environ={})

        assert config.db_path == tmp_path / "t.db"
        assert config.vector_dim == 64
        assert config.search_timeout_ms == 250
        assert config.weights == Weights(semantic=0.8)

    def test_env_overrides_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"vector_dim": 64}))

        config = TaskSearchConfig.load(
            path,
            environ={
                "TASKS_DB_PATH": "/data/tasks.db",
                "TASKS_VECTOR_DIM": "128",
                "TASKS_WEIGHT_RECENCY": "0.5",
            },
        )

        assert config.db_path == Path("/data/tasks.db")
        assert config.vector_dim == 128
        assert config.weights.recency == 0.5
        assert config.weights.semantic == Weights().semantic

    def test_config_path_from_env(self, tmp_path: Path):
        path = tmp_path / "elsewhere.yaml"
        path.write_text(yaml.dump({"vector_table": "custom"}))

        config = TaskSearchConfig.load(environ={"TASKS_CONFIG": str(path)})

        assert config.vector_table == "custom"

    def test_blank_timeout_env_disables_timeout(self, tmp_path: Path):
        config = TaskSearchConfig.load(
            tmp_path / "missing.yaml", environ={"TASKS_SEARCH_TIMEOUT_MS": " "}
        )
        assert config.search_timeout_ms is None


class TestTaskSearchConfigValidation:
    def test_unknown_key(self):
        with pytest.raises(ConfigError):
            TaskSearchConfig.from_dict({"colour": "blue"})

    def test_unsupported_embedder(self):
        with pytest.raises(ConfigError):
            TaskSearchConfig.from_dict({"embedder": "word2vec"})

    def test_negative_weight(self):
        with pytest.raises(ConfigError):
            TaskSearchConfig.from_dict({"weights": {"priority": -1}})

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigError):
            TaskSearchConfig(search_timeout_ms=0)

    def test_bad_env_value(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            TaskSearchConfig.load(
                tmp_path / "missing.yaml", environ={"TASKS_VECTOR_DIM": "lots"}
            )

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("weights: [unclosed")

        with pytest.raises(ConfigError):
            TaskSearchConfig.load(path, environ={})

    def test_to_dict_round_trips(self, tmp_path: Path):
        config = TaskSearchConfig(db_path=tmp_path / "t.db", vector_dim=32)
        assert TaskSearchConfig.from_dict(config.to_dict()) == config
