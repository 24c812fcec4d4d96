"""Shared fixtures for the task search tests."""

import asyncio
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from mcp_local_tasks.core.embeddings import StubEmbedder
from mcp_local_tasks.core.exceptions import VectorIndexError
from mcp_local_tasks.core.fusion import ScoreFusionEngine
from mcp_local_tasks.core.lexical import LexicalSearchAdapter
from mcp_local_tasks.core.materializer import ResultMaterializer
from mcp_local_tasks.core.models import Task, TaskPriority, TaskState
from mcp_local_tasks.core.search import HybridSearchEngine
from mcp_local_tasks.core.semantic import SemanticSearchAdapter
from mcp_local_tasks.core.task_store import TaskStore

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


def iso(ts: datetime) -> str:
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_task(
    task_id: str,
    title: str,
    body: str | None = None,
    priority: TaskPriority = TaskPriority.MED,
    state: TaskState = TaskState.OPEN,
    age_days: float = 0,
    due_ts: str | None = None,
    source: str = "test",
    summary: str | None = None,
) -> Task:
    created = iso(NOW - timedelta(days=age_days))
    return Task(
        id=task_id,
        title=title,
        body=body,
        state=state,
        priority=priority,
        created_ts=created,
        updated_ts=created,
        due_ts=due_ts,
        source=source,
        summary=summary,
    )


class FakeVectorBackend:
    """Vector backend returning canned ``(id, similarity)`` hits."""

    def __init__(self, hits=None, error: Exception | None = None, delay: float = 0.0):
        self.hits = list(hits or [])
        self.error = error
        self.delay = delay
        self.calls = []

    async def search(self, vector, limit, filters=None):
        self.calls.append((limit, filters))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.hits[:limit]


@pytest.fixture
def store(tmp_path: Path):
    """Open task store in a temporary directory."""
    task_store = TaskStore(tmp_path / "tasks.db").open()
    yield task_store
    task_store.close()


@pytest.fixture
def embedder() -> StubEmbedder:
    return StubEmbedder(dimension=16)


def build_engine(
    store: TaskStore,
    backend: FakeVectorBackend | None = None,
    embedder: StubEmbedder | None = None,
    timeout_ms: float | None = None,
) -> HybridSearchEngine:
    semantic = None
    if backend is not None:
        semantic = SemanticSearchAdapter(embedder or StubEmbedder(dimension=16), backend)
    return HybridSearchEngine(
        lexical=LexicalSearchAdapter(store),
        semantic=semantic,
        fusion=ScoreFusionEngine(store),
        materializer=ResultMaterializer(store),
        timeout_ms=timeout_ms,
    )


@pytest.fixture
def failing_backend() -> FakeVectorBackend:
    return FakeVectorBackend(error=VectorIndexError("vector table unavailable"))


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def task_factory():
    """Factory for tasks created relative to the fixed ``now``."""
    return make_task


@pytest.fixture
def engine_factory():
    return build_engine


@pytest.fixture
def fake_backend():
    return FakeVectorBackend
