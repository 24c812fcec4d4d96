"""Semantic (vector similarity) candidate discovery."""

import asyncio
from typing import Protocol

from loguru import logger

from .embeddings import EmbeddingFunction
from .exceptions import SemanticUnavailableError
from .models import SearchFilters


class VectorSearchBackend(Protocol):
    """What the adapter needs from a vector index."""

    async def search(
        self,
        vector: list[float],
        limit: int,
        filters: SearchFilters | None = None,
    ) -> list[tuple[str, float]]: ...


def clamp_similarity(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


class SemanticSearchAdapter:
    """Embed the query and run a filtered nearest-neighbour search.

    Similarities returned by the backend are expected in [0, 1] but are
    clamped anyway, so out-of-range scores from a misbehaving backend never
    leak into fusion.
    """

    def __init__(
        self, embedder: EmbeddingFunction, backend: VectorSearchBackend
    ) -> None:
        self.embedder = embedder
        self.backend = backend

    async def search(
        self,
        query: str,
        limit: int,
        filters: SearchFilters | None = None,
    ) -> list[tuple[str, float]]:
        """Return ``(task_id, similarity)`` pairs, most similar first.

        Raises:
            SemanticUnavailableError: If embedding or the vector query fails
        """
        if not query or not query.strip() or limit <= 0:
            return []

        try:
            vector = await asyncio.to_thread(self.embedder.embed_query, query)
        except Exception as e:
            raise SemanticUnavailableError(f"Query embedding failed: {e}") from e

        try:
            hits = await self.backend.search(vector, limit, filters)
        except Exception as e:
            raise SemanticUnavailableError(f"Vector search failed: {e}") from e

        results = [(task_id, clamp_similarity(score)) for task_id, score in hits]
        logger.debug(f"Semantic search returned {len(results)} candidates for '{query}'")
        return results
