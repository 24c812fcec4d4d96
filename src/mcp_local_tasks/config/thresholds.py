"""Latency threshold configuration for the benchmark CI gate."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..core.exceptions import ConfigError

SUPPORTED_METRICS = ("p50", "p95", "p99", "mean")


@dataclass
class LatencyThreshold:
    """Upper bound (in ms) for one metric of one benchmarked operation."""

    operation: str
    metric: str = "p95"
    threshold_ms: float = 200.0

    def __post_init__(self) -> None:
        if self.metric not in SUPPORTED_METRICS:
            raise ConfigError(
                f"Unsupported threshold metric '{self.metric}' for {self.operation}, "
                f"expected one of {', '.join(SUPPORTED_METRICS)}"
            )
        if self.threshold_ms <= 0:
            raise ConfigError(
                f"Threshold for {self.operation}.{self.metric} must be positive"
            )

    @property
    def label(self) -> str:
        return f"{self.operation}.{self.metric}"


def _default_thresholds() -> list[LatencyThreshold]:
    return [LatencyThreshold(operation="task.list", metric="p95", threshold_ms=200.0)]


@dataclass
class ThresholdConfig:
    """Complete threshold configuration."""

    thresholds: list[LatencyThreshold] = field(default_factory=_default_thresholds)

    @classmethod
    def load(cls, path: Path) -> ThresholdConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            ThresholdConfig instance (defaults when the file does not exist)
        """
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ThresholdConfig:
        """Create config from dictionary.

        Expected shape::

            thresholds:
              - operation: task.list
                metric: p95
                threshold_ms: 200
        """
        entries = data.get("thresholds")
        if entries is None:
            return cls()
        try:
            return cls(thresholds=[LatencyThreshold(**entry) for entry in entries])
        except TypeError as e:
            raise ConfigError(f"Invalid threshold entry: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "thresholds": [
                {
                    "operation": t.operation,
                    "metric": t.metric,
                    "threshold_ms": t.threshold_ms,
                }
                for t in self.thresholds
            ]
        }

    def save(self, path: Path) -> None:
        """Save configuration to YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
