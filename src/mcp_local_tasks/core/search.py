"""Hybrid search entry point.

Control flow for one query:

1. lexical and semantic candidate discovery run concurrently
2. a failed (or timed out) backend contributes no candidates instead of
   failing the query
3. fusion ranks the union of both candidate sets
4. the top ``k`` are hydrated into result records
"""

import asyncio
import time
from collections.abc import Awaitable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from loguru import logger

from ..config.defaults import CANDIDATE_MULTIPLIER, DEFAULT_RESULT_LIMIT
from .exceptions import IndexUnavailableError, SemanticUnavailableError
from .fusion import ScoreFusionEngine
from .lexical import LexicalSearchAdapter
from .materializer import ResultMaterializer
from .metrics import PhaseMetrics, SearchMetrics
from .models import ResultRecord, SearchFilters, Weights
from .semantic import SemanticSearchAdapter

T = TypeVar("T")


class HybridSearchEngine:
    """Combines full-text and vector retrieval into one ranked result list.

    Example:
        engine = HybridSearchEngine(lexical, semantic, fusion, materializer)
        results = await engine.hybrid_search("login bug", k=10)
    """

    def __init__(
        self,
        lexical: LexicalSearchAdapter,
        semantic: SemanticSearchAdapter | None,
        fusion: ScoreFusionEngine,
        materializer: ResultMaterializer,
        weights: Weights | None = None,
        timeout_ms: float | None = None,
        candidate_multiplier: int = CANDIDATE_MULTIPLIER,
    ) -> None:
        """Initialize the engine.

        Args:
            lexical: Full-text adapter
            semantic: Vector adapter, or None for lexical-only search
            fusion: Score fusion engine
            materializer: Result materializer
            weights: Default weights (per-query weights overlay these)
            timeout_ms: Optional per-backend timeout; a timed out backend
                contributes no candidates
            candidate_multiplier: Each backend is asked for ``k`` times this
                many candidates
        """
        self.lexical = lexical
        self.semantic = semantic
        self.fusion = fusion
        self.materializer = materializer
        self.weights = weights or Weights()
        self.timeout_ms = timeout_ms
        self.candidate_multiplier = candidate_multiplier

    async def hybrid_search(
        self,
        query: str,
        k: int = DEFAULT_RESULT_LIMIT,
        filters: SearchFilters | Mapping[str, Any] | None = None,
        weights: Weights | Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> list[ResultRecord]:
        """Search tasks by keyword and meaning.

        Args:
            query: Free-text query; blank returns an empty list
            k: Maximum number of results
            filters: State/priority restriction applied to both backends
            weights: Per-query weight overrides
            now: Reference time for recency (defaults to the current time)

        Returns:
            Result records in ranking order

        Raises:
            TaskStoreUnavailableError: If task metadata cannot be read
        """
        results, _ = await self.hybrid_search_with_metrics(
            query, k=k, filters=filters, weights=weights, now=now
        )
        return results

    async def hybrid_search_with_metrics(
        self,
        query: str,
        k: int = DEFAULT_RESULT_LIMIT,
        filters: SearchFilters | Mapping[str, Any] | None = None,
        weights: Weights | Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> tuple[list[ResultRecord], SearchMetrics]:
        metrics = SearchMetrics(query=query or "")
        if not query or not query.strip() or k <= 0:
            return [], metrics

        if not isinstance(filters, SearchFilters):
            filters = SearchFilters.from_dict(filters)
        if not isinstance(weights, Weights):
            weights = Weights.from_dict(weights, base=self.weights)

        start = time.perf_counter()
        limit = k * self.candidate_multiplier

        lexical_ids, semantic_results = await asyncio.gather(
            self._run_lexical(query, limit, filters, metrics),
            self._run_semantic(query, limit, filters, metrics),
        )

        with metrics.phase("fusion") as m:
            scored = await self.fusion.fuse(lexical_ids, semantic_results, weights, now)
            m.item_count = len(scored)

        with metrics.phase("materialize") as m:
            results = await self.materializer.materialize(scored, k)
            m.item_count = len(results)

        metrics.total_ms = (time.perf_counter() - start) * 1000
        metrics.result_count = len(results)
        metrics.log_summary()
        return results, metrics

    async def _run_lexical(
        self,
        query: str,
        limit: int,
        filters: SearchFilters,
        metrics: SearchMetrics,
    ) -> list[str]:
        with metrics.phase("lexical") as m:
            ids = await self._degrading(
                self.lexical.search(query, limit, filters), m, default=[]
            )
            m.item_count = len(ids)
        return ids

    async def _run_semantic(
        self,
        query: str,
        limit: int,
        filters: SearchFilters,
        metrics: SearchMetrics,
    ) -> list[tuple[str, float]]:
        if self.semantic is None:
            return []
        with metrics.phase("semantic") as m:
            hits = await self._degrading(
                self.semantic.search(query, limit, filters), m, default=[]
            )
            m.item_count = len(hits)
        return hits

    async def _degrading(
        self, call: Awaitable[T], phase: PhaseMetrics, default: T
    ) -> T:
        """Await a backend call, turning unavailability or timeout into ``default``."""
        try:
            if self.timeout_ms is None:
                return await call
            return await asyncio.wait_for(call, timeout=self.timeout_ms / 1000)
        except (IndexUnavailableError, SemanticUnavailableError) as e:
            logger.warning(f"{phase.phase_name} search unavailable, continuing without it: {e}")
        except TimeoutError:
            logger.warning(
                f"{phase.phase_name} search timed out after {self.timeout_ms}ms, "
                "continuing without it"
            )
        phase.degraded = True
        return default
