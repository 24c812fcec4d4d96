"""Typed exception hierarchy for mcp-local-tasks.

Hierarchy
---------
TaskSearchError (base)
├── TaskStoreError             – SQLite task store errors
│   ├── TaskStoreUnavailableError  – fatal: no task metadata, query cannot proceed
│   └── NotFoundError              – single-task lookup miss
├── SearchError                – search-time failures
│   ├── IndexUnavailableError      – full-text backend down (degrades to no lexical candidates)
│   └── SemanticUnavailableError   – embedding or vector backend down (degrades to no semantic candidates)
├── EmbeddingError             – embedding generation errors
├── VectorIndexError           – LanceDB vector table errors
├── ConfigError                – configuration / validation errors
└── BenchmarkError             – benchmark harness could not execute

Only ``TaskStoreUnavailableError`` escapes ``HybridSearchEngine.hybrid_search``.
The two ``*UnavailableError`` search errors are caught at the adapter boundary
and turned into an empty candidate list.
"""

from typing import Any


class TaskSearchError(Exception):
    """Base exception for mcp-local-tasks."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


# ── Task store ──────────────────────────────────────────────────────────


class TaskStoreError(TaskSearchError):
    """Task store errors."""

    pass


class TaskStoreUnavailableError(TaskStoreError):
    """Task store could not be opened or queried."""

    pass


class NotFoundError(TaskStoreError):
    """Task does not exist.

    Only raised for single-task operations. Batch lookups omit missing ids.
    """

    pass


# ── Search layer ────────────────────────────────────────────────────────


class SearchError(TaskSearchError):
    """Search operation failed."""

    pass


class IndexUnavailableError(SearchError):
    """Full-text index could not be queried."""

    pass


class SemanticUnavailableError(SearchError):
    """Query embedding or vector search failed."""

    pass


# ── Embedding / vector layer ────────────────────────────────────────────


class EmbeddingError(TaskSearchError):
    """Embedding generation errors."""

    pass


class VectorIndexError(TaskSearchError):
    """Vector index errors (LanceDB)."""

    pass


# ── Configuration / benchmark ───────────────────────────────────────────


class ConfigError(TaskSearchError):
    """Configuration / validation errors."""

    pass


class BenchmarkError(TaskSearchError):
    """Benchmark suite could not execute."""

    pass
