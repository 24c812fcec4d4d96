"""Per-query timing for the hybrid search pipeline.

Tracks duration and item counts for each phase:
- lexical: full-text candidate discovery
- semantic: query embedding + vector search
- fusion: bulk lookup and scoring
- materialize: display field lookup
"""

import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Any

from loguru import logger

PHASES = ("lexical", "semantic", "fusion", "materialize")


@dataclass
class PhaseMetrics:
    """Metrics for a single search phase."""

    phase_name: str
    item_count: int = 0
    duration_ms: float = 0.0
    degraded: bool = False  # backend failed or timed out, phase yielded nothing


@dataclass
class SearchMetrics:
    """Metrics for one hybrid query."""

    query: str
    phases: dict[str, PhaseMetrics] = field(
        default_factory=lambda: {name: PhaseMetrics(name) for name in PHASES}
    )
    total_ms: float = 0.0
    result_count: int = 0

    @property
    def degraded(self) -> bool:
        return any(p.degraded for p in self.phases.values())

    @contextmanager
    def phase(self, phase_name: str):
        """Time a phase.

        Example:
            with metrics.phase("lexical") as m:
                ids = await lexical.search(query, limit)
                m.item_count = len(ids)
        """
        if phase_name not in self.phases:
            logger.warning(f"Unknown search phase: {phase_name}")
            self.phases[phase_name] = PhaseMetrics(phase_name)
        phase_metrics = self.phases[phase_name]
        start = time.perf_counter()
        try:
            yield phase_metrics
        finally:
            phase_metrics.duration_ms = (time.perf_counter() - start) * 1000

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "phases": {name: asdict(p) for name, p in self.phases.items()},
            "total_ms": self.total_ms,
            "result_count": self.result_count,
            "degraded": self.degraded,
        }

    def log_summary(self) -> None:
        parts = ", ".join(
            f"{p.phase_name}={p.duration_ms:.1f}ms/{p.item_count}"
            + ("(degraded)" if p.degraded else "")
            for p in self.phases.values()
        )
        logger.debug(
            f"Hybrid search '{self.query[:50]}' -> {self.result_count} results "
            f"in {self.total_ms:.1f}ms [{parts}]"
        )
