"""Runtime configuration for mcp-local-tasks.

Values are resolved in order: dataclass defaults, then an optional YAML file,
then environment variables. Per-query weights passed by callers override the
configured weights for that query only.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from ..core.exceptions import ConfigError
from ..core.models import Weights
from .defaults import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_DB_PATH,
    DEFAULT_EMBED_BATCH_SIZE,
    DEFAULT_EMBEDDER,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_SEARCH_TIMEOUT_MS,
    DEFAULT_VECTOR_DIM,
    DEFAULT_VECTOR_PATH,
    DEFAULT_VECTOR_TABLE,
    ENV_CONFIG_FILE,
    ENV_DB_PATH,
    ENV_EMBEDDER,
    ENV_EMBEDDING_MODEL,
    ENV_SEARCH_TIMEOUT_MS,
    ENV_VECTOR_DIM,
    ENV_VECTOR_PATH,
    ENV_VECTOR_TABLE,
    ENV_WEIGHT_PRIORITY,
    ENV_WEIGHT_RECENCY,
    ENV_WEIGHT_SEMANTIC,
)

SUPPORTED_EMBEDDERS = ("stub", "sentence-transformers")


@dataclass
class TaskSearchConfig:
    """Complete runtime configuration."""

    db_path: Path = DEFAULT_DB_PATH
    vector_path: Path = DEFAULT_VECTOR_PATH
    vector_table: str = DEFAULT_VECTOR_TABLE
    embedder: str = DEFAULT_EMBEDDER
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    vector_dim: int = DEFAULT_VECTOR_DIM
    embed_batch_size: int = DEFAULT_EMBED_BATCH_SIZE
    search_timeout_ms: float | None = DEFAULT_SEARCH_TIMEOUT_MS
    weights: Weights = field(default_factory=Weights)

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        self.vector_path = Path(self.vector_path)
        self.validate()

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigError: If any value is out of range
        """
        if self.embedder not in SUPPORTED_EMBEDDERS:
            raise ConfigError(
                f"Unsupported embedder '{self.embedder}', "
                f"expected one of {', '.join(SUPPORTED_EMBEDDERS)}"
            )
        if self.vector_dim <= 0:
            raise ConfigError(f"vector_dim must be positive, got {self.vector_dim}")
        if self.embed_batch_size <= 0:
            raise ConfigError(
                f"embed_batch_size must be positive, got {self.embed_batch_size}"
            )
        if self.search_timeout_ms is not None and self.search_timeout_ms <= 0:
            raise ConfigError(
                f"search_timeout_ms must be positive, got {self.search_timeout_ms}"
            )

    @classmethod
    def load(
        cls,
        path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> TaskSearchConfig:
        """Load configuration from YAML (if present) and environment.

        Args:
            path: YAML config file. Falls back to ``$TASKS_CONFIG`` and then
                the default location; a missing file is not an error.
            environ: Environment mapping (defaults to ``os.environ``)

        Returns:
            TaskSearchConfig instance
        """
        environ = os.environ if environ is None else environ
        path = path or Path(environ.get(ENV_CONFIG_FILE, DEFAULT_CONFIG_FILE))

        data: dict[str, Any] = {}
        if path.exists():
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
            logger.debug(f"Loaded configuration from {path}")

        config = cls.from_dict(data)
        return config.with_env(environ)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaskSearchConfig:
        known = {
            "db_path",
            "vector_path",
            "vector_table",
            "embedder",
            "embedding_model",
            "vector_dim",
            "embed_batch_size",
            "search_timeout_ms",
        }
        unknown = set(data) - known - {"weights"}
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")

        kwargs = {key: data[key] for key in known if key in data}
        try:
            kwargs["weights"] = Weights.from_dict(data.get("weights"))
            return cls(**kwargs)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def with_env(self, environ: Mapping[str, str]) -> TaskSearchConfig:
        """Return a copy with environment overrides applied."""
        overrides: dict[str, Any] = {}
        try:
            if ENV_DB_PATH in environ:
                overrides["db_path"] = Path(environ[ENV_DB_PATH])
            if ENV_VECTOR_PATH in environ:
                overrides["vector_path"] = Path(environ[ENV_VECTOR_PATH])
            if ENV_VECTOR_TABLE in environ:
                overrides["vector_table"] = environ[ENV_VECTOR_TABLE]
            if ENV_EMBEDDER in environ:
                overrides["embedder"] = environ[ENV_EMBEDDER]
            if ENV_EMBEDDING_MODEL in environ:
                overrides["embedding_model"] = environ[ENV_EMBEDDING_MODEL]
            if ENV_VECTOR_DIM in environ:
                overrides["vector_dim"] = int(environ[ENV_VECTOR_DIM])
            if ENV_SEARCH_TIMEOUT_MS in environ:
                raw = environ[ENV_SEARCH_TIMEOUT_MS].strip()
                overrides["search_timeout_ms"] = float(raw) if raw else None

            weight_env = {
                "semantic": environ.get(ENV_WEIGHT_SEMANTIC),
                "recency": environ.get(ENV_WEIGHT_RECENCY),
                "priority": environ.get(ENV_WEIGHT_PRIORITY),
            }
            weight_env = {k: float(v) for k, v in weight_env.items() if v}
            if weight_env:
                overrides["weights"] = Weights.from_dict(weight_env, base=self.weights)
        except ValueError as e:
            raise ConfigError(f"Invalid environment override: {e}") from e

        if not overrides:
            return self
        return replace(self, **overrides)

    def to_dict(self) -> dict[str, Any]:
        return {
            "db_path": str(self.db_path),
            "vector_path": str(self.vector_path),
            "vector_table": self.vector_table,
            "embedder": self.embedder,
            "embedding_model": self.embedding_model,
            "vector_dim": self.vector_dim,
            "embed_batch_size": self.embed_batch_size,
            "search_timeout_ms": self.search_timeout_ms,
            "weights": {
                "semantic": self.weights.semantic,
                "recency": self.weights.recency,
                "priority": self.weights.priority,
            },
        }
