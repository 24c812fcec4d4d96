"""Labeled queries and retrieval-quality metrics.

Ground truth comes from keyword ``LIKE`` matches over the seeded benchmark
tasks. It is a stand-in oracle, rebuilt on every run.

``mean_precision_at_k`` is reported as ``map10`` for compatibility with
existing result files, but it is the mean of per-query precision@k, not true
mean average precision (which averages precision at each relevant hit).
"""

from collections.abc import Sequence
from dataclasses import dataclass

from ..config.defaults import BENCHMARK_SOURCE
from ..core.models import LabeledQuery
from ..core.task_store import TaskStore

RELEVANT_LIMIT = 20


@dataclass(frozen=True)
class QuerySpec:
    """A benchmark query plus the keywords that mark a task as relevant."""

    query: str
    description: str
    keywords: tuple[str, ...]


QUERY_SPECS: tuple[QuerySpec, ...] = (
    QuerySpec(
        "authentication login",
        "Authentication and login tasks",
        ("authentication", "login"),
    ),
    QuerySpec(
        "rate limiting API",
        "Rate limiting and API tasks",
        ("rate limiting", "API"),
    ),
    QuerySpec("memory leak", "Memory leak tasks", ("memory", "leak")),
    QuerySpec(
        "database optimization",
        "Database optimization tasks",
        ("database", "SQL", "query"),
    ),
    QuerySpec("documentation", "Documentation tasks", ("documentation", "docs")),
)


def build_labeled_dataset(
    store: TaskStore,
    source: str = BENCHMARK_SOURCE,
    specs: Sequence[QuerySpec] = QUERY_SPECS,
) -> list[LabeledQuery]:
    """Build labeled queries, dropping any with no relevant tasks."""
    queries = [
        LabeledQuery(
            query=query_spec.query,
            relevant_ids=store.find_ids_containing(
                query_spec.keywords, source=source, limit=RELEVANT_LIMIT
            ),
            description=query_spec.description,
        )
        for query_spec in specs
    ]
    return [q for q in queries if q.relevant_ids]


def precision_at_k(retrieved_ids: Sequence[str], relevant_ids: Sequence[str], k: int) -> float:
    """Fraction of the top ``k`` retrieved ids that are relevant.

    The denominator is always ``k``, even when fewer results came back.
    """
    if k <= 0:
        return 0.0
    relevant = set(relevant_ids)
    hits = sum(1 for task_id in retrieved_ids[:k] if task_id in relevant)
    return hits / k


def mean_precision_at_k(
    results: Sequence[tuple[Sequence[str], Sequence[str]]], k: int
) -> float:
    """Mean precision@k over ``(retrieved_ids, relevant_ids)`` pairs."""
    if not results:
        return 0.0
    return sum(precision_at_k(r, rel, k) for r, rel in results) / len(results)
