"""End-to-end tests for HybridSearchEngine with a real store and a fake vector backend."""

from unittest.mock import MagicMock, patch

import pytest

from mcp_local_tasks.core.exceptions import EmbeddingError, TaskStoreUnavailableError
from mcp_local_tasks.core.models import SearchFilters, TaskPriority, TaskState


@pytest.fixture
def ranking_store(store, task_factory):
    """Three tasks matching "deploy" with different priority and age."""
    store.insert_tasks(
        [
            task_factory("T1", "Deploy api", priority=TaskPriority.HIGH, age_days=0),
            task_factory("T2", "Deploy worker", priority=TaskPriority.LOW, age_days=40),
            task_factory("T3", "Deploy web", priority=TaskPriority.MED, age_days=10),
        ]
    )
    return store


@pytest.mark.asyncio
class TestHybridRanking:
    """Ranking behaviour of the full pipeline."""

    async def test_priority_and_recency_order_lexical_matches(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(ranking_store, backend=fake_backend([]))

        results = await engine.hybrid_search("deploy", k=10, now=now)

        assert [r.id for r in results] == ["T1", "T3", "T2"]

    async def test_semantic_similarity_can_outrank(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(
            ranking_store, backend=fake_backend([("T2", 1.0), ("T3", 0.1)])
        )

        results = await engine.hybrid_search(
            "deploy", k=10, weights={"semantic": 1.0, "recency": 0.0, "priority": 0.0}, now=now
        )

        assert [r.id for r in results][:2] == ["T2", "T3"]

    async def test_semantic_only_candidates_are_included(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(ranking_store, backend=fake_backend([("T2", 0.9)]))

        results = await engine.hybrid_search("nothing lexical", k=10, now=now)

        assert [r.id for r in results] == ["T2"]

    async def test_partial_term_matches_are_not_candidates(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(ranking_store, backend=fake_backend([]))

        assert await engine.hybrid_search("deploy zebra", k=10, now=now) == []

    async def test_out_of_range_similarities_are_clamped(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(
            ranking_store, backend=fake_backend([("T1", 1.7), ("T2", -0.3)])
        )

        hits = await engine.semantic.search("deploy", limit=10)
        scored = await engine.fusion.fuse([], hits, engine.weights, now)

        assert hits == [("T1", 1.0), ("T2", 0.0)]
        semantic = {s.task_id: s.semantic for s in scored}
        assert semantic == {"T1": 1.0, "T2": 0.0}

    async def test_k_limits_results(self, ranking_store, engine_factory, fake_backend, now):
        engine = engine_factory(ranking_store, backend=fake_backend([]))

        results = await engine.hybrid_search("deploy", k=2, now=now)

        assert [r.id for r in results] == ["T1", "T3"]

    async def test_results_are_deterministic(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(
            ranking_store, backend=fake_backend([("T3", 0.5), ("T1", 0.5)])
        )

        first = await engine.hybrid_search("deploy", k=10, now=now)
        second = await engine.hybrid_search("deploy", k=10, now=now)

        assert [r.id for r in first] == [r.id for r in second]

    async def test_unknown_semantic_ids_are_dropped(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(ranking_store, backend=fake_backend([("ghost", 1.0)]))

        results = await engine.hybrid_search("deploy", k=10, now=now)

        assert "ghost" not in [r.id for r in results]
        assert len(results) == 3

    async def test_result_record_shape(self, store, task_factory, engine_factory, now):
        store.insert_tasks(
            [task_factory("T1", "Deploy api", body="Roll out v2", due_ts="2026-01-20")]
        )
        engine = engine_factory(store)

        [record] = await engine.hybrid_search("deploy", k=5, now=now)

        assert record.to_dict() == {
            "id": "T1",
            "title": "Deploy api",
            "preview": "Roll out v2",
            "state": "open",
            "due_ts": "2026-01-20",
        }


@pytest.mark.asyncio
class TestHybridInputs:
    """Query and filter handling."""

    async def test_blank_query_returns_nothing(
        self, ranking_store, engine_factory, fake_backend
    ):
        backend = fake_backend([("T1", 1.0)])
        engine = engine_factory(ranking_store, backend=backend)

        assert await engine.hybrid_search("   ", k=10) == []
        assert backend.calls == []

    async def test_non_positive_k_returns_nothing(self, ranking_store, engine_factory):
        engine = engine_factory(ranking_store)
        assert await engine.hybrid_search("deploy", k=0) == []

    async def test_filters_reach_both_backends(
        self, store, task_factory, engine_factory, fake_backend, now
    ):
        store.insert_tasks(
            [
                task_factory("T1", "Deploy api", state=TaskState.OPEN),
                task_factory("T2", "Deploy web", state=TaskState.DONE),
            ]
        )
        backend = fake_backend([])
        engine = engine_factory(store, backend=backend)

        results = await engine.hybrid_search(
            "deploy", k=4, filters={"state": ["done"]}, now=now
        )

        assert [r.id for r in results] == ["T2"]
        limit, filters = backend.calls[0]
        assert limit == 12
        assert filters == SearchFilters(state=("done",))

    async def test_invalid_filter_value_raises(self, ranking_store, engine_factory):
        engine = engine_factory(ranking_store)
        with pytest.raises(ValueError):
            await engine.hybrid_search("deploy", filters={"state": ["archived"]})


@pytest.mark.asyncio
class TestHybridDegradation:
    """Backend failures shrink the candidate set instead of failing the query."""

    async def test_semantic_failure_falls_back_to_lexical(
        self, ranking_store, engine_factory, failing_backend, now
    ):
        engine = engine_factory(ranking_store, backend=failing_backend)

        results, metrics = await engine.hybrid_search_with_metrics("deploy", k=10, now=now)

        assert [r.id for r in results] == ["T1", "T3", "T2"]
        assert metrics.phases["semantic"].degraded
        assert not metrics.phases["lexical"].degraded

    async def test_lexical_failure_falls_back_to_semantic(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        ranking_store.conn.execute("DROP TABLE tasks_fts")
        engine = engine_factory(ranking_store, backend=fake_backend([("T3", 0.8)]))

        results, metrics = await engine.hybrid_search_with_metrics("deploy", k=10, now=now)

        assert [r.id for r in results] == ["T3"]
        assert metrics.phases["lexical"].degraded

    async def test_both_backends_down_returns_empty(
        self, ranking_store, engine_factory, failing_backend
    ):
        ranking_store.conn.execute("DROP TABLE tasks_fts")
        engine = engine_factory(ranking_store, backend=failing_backend)

        assert await engine.hybrid_search("deploy", k=10) == []

    async def test_semantic_timeout_degrades(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(
            ranking_store,
            backend=fake_backend([("T2", 1.0)], delay=5.0),
            timeout_ms=200,
        )

        results, metrics = await engine.hybrid_search_with_metrics("deploy", k=10, now=now)

        assert [r.id for r in results] == ["T1", "T3", "T2"]
        assert metrics.phases["semantic"].degraded

    async def test_store_unavailable_propagates(
        self, ranking_store, engine_factory, fake_backend
    ):
        engine = engine_factory(ranking_store, backend=fake_backend([("T1", 0.9)]))
        ranking_store.close()

        with pytest.raises(TaskStoreUnavailableError):
            await engine.hybrid_search("deploy", k=10)

    async def test_metrics_record_phase_counts(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(ranking_store, backend=fake_backend([("T1", 0.5)]))

        results, metrics = await engine.hybrid_search_with_metrics("deploy", k=2, now=now)

        assert metrics.phases["lexical"].item_count == 3
        assert metrics.phases["semantic"].item_count == 1
        assert metrics.phases["fusion"].item_count == 3
        assert metrics.phases["materialize"].item_count == 2
        assert metrics.result_count == len(results) == 2
        assert metrics.to_dict()["degraded"] is False

    async def test_embedding_failure_degrades(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        embedder = MagicMock()
        embedder.embed_query.side_effect = EmbeddingError("model not loaded")
        backend = fake_backend([("T2", 1.0)])
        engine = engine_factory(ranking_store, backend=backend, embedder=embedder)

        results, metrics = await engine.hybrid_search_with_metrics("deploy", k=10, now=now)

        assert [r.id for r in results] == ["T1", "T3", "T2"]
        assert metrics.phases["semantic"].degraded
        assert backend.calls == []

    async def test_unexpected_lexical_error_is_treated_as_unavailable(
        self, ranking_store, engine_factory, fake_backend, now
    ):
        engine = engine_factory(ranking_store, backend=fake_backend([("T3", 0.4)]))

        with patch.object(
            ranking_store, "full_text_search", side_effect=RuntimeError("corrupt index")
        ):
            results, metrics = await engine.hybrid_search_with_metrics(
                "deploy", k=10, now=now
            )

        assert [r.id for r in results] == ["T3"]
        assert metrics.phases["lexical"].degraded
