"""Core task store and hybrid search functionality."""

from .exceptions import (
    BenchmarkError,
    ConfigError,
    EmbeddingError,
    IndexUnavailableError,
    NotFoundError,
    SearchError,
    SemanticUnavailableError,
    TaskSearchError,
    TaskStoreError,
    TaskStoreUnavailableError,
    VectorIndexError,
)

__all__ = [
    "BenchmarkError",
    "ConfigError",
    "EmbeddingError",
    "IndexUnavailableError",
    "NotFoundError",
    "SearchError",
    "SemanticUnavailableError",
    "TaskSearchError",
    "TaskStoreError",
    "TaskStoreUnavailableError",
    "VectorIndexError",
]
