"""Tests for the MCP task tool handlers."""

import json
import threading

import pytest

from mcp_local_tasks.core.embeddings import StubEmbedder
from mcp_local_tasks.core.exceptions import VectorIndexError
from mcp_local_tasks.core.models import TaskPriority, TaskState
from mcp_local_tasks.mcp.task_handlers import TaskHandlers
from mcp_local_tasks.mcp.tool_schemas import get_tool_schemas


class RecordingIndex:
    """Vector index stand-in that records upserts."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.upserts = []

    async def upsert(self, tasks, vectors):
        if self.fail:
            raise VectorIndexError("disk full")
        self.upserts.append(([t.id for t in tasks], vectors))
        return len(tasks)


def payload(result):
    return json.loads(result.content[0].text)


@pytest.fixture
def handlers(store, engine_factory):
    return TaskHandlers(store, engine_factory(store))


@pytest.mark.asyncio
class TestCreateAndExpand:
    async def test_create(self, handlers):
        result = await handlers.dispatch(
            "task.create", {"title": "Write report", "priority": "high"}
        )

        data = payload(result)
        assert not result.isError
        assert data["id"].startswith("t_")
        assert data["title"] == "Write report"
        assert data["state"] == "inbox"

    async def test_create_requires_title(self, handlers):
        result = await handlers.dispatch("task.create", {"body": "no title"})

        assert result.isError
        assert "title" in payload(result)["error"]

    async def test_create_rejects_bad_priority(self, handlers):
        result = await handlers.dispatch("task.create", {"title": "x", "priority": "urgent"})
        assert result.isError

    async def test_expand(self, handlers):
        created = payload(await handlers.dispatch("task.create", {"title": "Read book"}))

        data = payload(await handlers.dispatch("task.expand", {"id": created["id"]}))

        assert data["title"] == "Read book"
        assert data["priority"] == "med"
        assert data["source"] == "local"

    async def test_expand_not_found(self, handlers):
        result = await handlers.dispatch("task.expand", {"id": "t_missing"})

        assert result.isError
        assert payload(result) == {"error": "NOT_FOUND"}


@pytest.mark.asyncio
class TestListAndUpdate:
    async def test_list_envelope(self, handlers, store, task_factory):
        store.insert_tasks(
            [task_factory("t_1", "Alpha", age_days=1), task_factory("t_2", "Beta")]
        )

        data = payload(await handlers.dispatch("task.list", {"limit": 5}))

        assert data["source"] == "db"
        assert data["next"] is None
        assert "as_of" in data
        assert [item["id"] for item in data["items"]] == ["t_2", "t_1"]
        assert set(data["items"][0]) == {"id", "title", "preview", "state", "due_ts"}

    async def test_list_filters(self, handlers, store, task_factory):
        store.insert_tasks(
            [
                task_factory("t_1", "Alpha login", priority=TaskPriority.HIGH),
                task_factory("t_2", "Beta login", priority=TaskPriority.LOW),
                task_factory("t_3", "Gamma", priority=TaskPriority.HIGH),
            ]
        )

        data = payload(
            await handlers.dispatch(
                "task.list", {"filter": {"priority": ["high"], "q": "login"}}
            )
        )

        assert [item["id"] for item in data["items"]] == ["t_1"]

    async def test_list_rejects_out_of_range_limit(self, handlers):
        result = await handlers.dispatch("task.list", {"limit": 0})
        assert result.isError

    async def test_update(self, handlers):
        created = payload(await handlers.dispatch("task.create", {"title": "Plan trip"}))

        data = payload(
            await handlers.dispatch(
                "task.update", {"id": created["id"], "patch": {"state": "done"}}
            )
        )

        assert data["ok"] is True
        assert data["task"]["state"] == "done"

    async def test_update_not_found(self, handlers):
        result = await handlers.dispatch(
            "task.update", {"id": "t_missing", "patch": {"state": "done"}}
        )

        assert result.isError
        assert payload(result) == {"ok": False, "error": "NOT_FOUND"}

    async def test_update_unknown_field(self, handlers):
        created = payload(await handlers.dispatch("task.create", {"title": "Plan trip"}))

        result = await handlers.dispatch(
            "task.update", {"id": created["id"], "patch": {"colour": "red"}}
        )

        assert result.isError


@pytest.mark.asyncio
class TestQueryHybrid:
    async def test_query(self, handlers, store, task_factory):
        store.insert_tasks(
            [
                task_factory("t_1", "Deploy api", priority=TaskPriority.HIGH),
                task_factory("t_2", "Deploy web", priority=TaskPriority.LOW),
            ]
        )

        data = payload(
            await handlers.dispatch("task.queryHybrid", {"query": "deploy", "k": 5})
        )

        assert [item["id"] for item in data["items"]] == ["t_1", "t_2"]

    async def test_query_with_filters_and_weights(self, handlers, store, task_factory):
        store.insert_tasks(
            [
                task_factory("t_1", "Deploy api", state=TaskState.OPEN),
                task_factory("t_2", "Deploy web", state=TaskState.DONE),
            ]
        )

        data = payload(
            await handlers.dispatch(
                "task.queryHybrid",
                {
                    "query": "deploy",
                    "filters": {"state": ["done"]},
                    "weights": {"semantic": 0.0},
                },
            )
        )

        assert [item["id"] for item in data["items"]] == ["t_2"]

    async def test_blank_query(self, handlers):
        data = payload(await handlers.dispatch("task.queryHybrid", {"query": " "}))
        assert data == {"items": []}

    async def test_query_must_be_string(self, handlers):
        result = await handlers.dispatch("task.queryHybrid", {"query": 42})
        assert result.isError

    async def test_invalid_filter(self, handlers):
        result = await handlers.dispatch(
            "task.queryHybrid", {"query": "x", "filters": {"state": ["archived"]}}
        )
        assert result.isError


@pytest.mark.asyncio
class TestDispatch:
    async def test_unknown_tool(self, handlers):
        result = await handlers.dispatch("task.delete", {})

        assert result.isError
        assert "Unknown tool" in payload(result)["error"]

    async def test_writes_refresh_vector_index(self, store, engine_factory):
        index = RecordingIndex()
        handlers = TaskHandlers(
            store, engine_factory(store), StubEmbedder(8), vector_index=index
        )

        created = payload(await handlers.dispatch("task.create", {"title": "Embed me"}))
        await handlers.dispatch(
            "task.update", {"id": created["id"], "patch": {"title": "Embed me again"}}
        )

        assert [ids for ids, _ in index.upserts] == [[created["id"]], [created["id"]]]
        assert len(index.upserts[0][1][0]) == 8

    async def test_embedding_runs_off_the_event_loop(self, store, engine_factory):
        class ThreadRecordingEmbedder(StubEmbedder):
            def embed_query(self, text):
                self.thread_id = threading.get_ident()
                return super().embed_query(text)

        embedder = ThreadRecordingEmbedder(8)
        handlers = TaskHandlers(
            store, engine_factory(store), embedder, vector_index=RecordingIndex()
        )

        await handlers.dispatch("task.create", {"title": "Embed me"})

        assert embedder.thread_id != threading.get_ident()

    async def test_index_failure_does_not_fail_write(self, store, engine_factory):
        handlers = TaskHandlers(
            store, engine_factory(store), StubEmbedder(8), RecordingIndex(fail=True)
        )

        result = await handlers.dispatch("task.create", {"title": "Still saved"})

        assert not result.isError
        assert store.count() == 1


class TestToolSchemas:
    def test_tool_names(self):
        names = [tool.name for tool in get_tool_schemas()]
        assert names == [
            "task.create",
            "task.list",
            "task.expand",
            "task.update",
            "task.queryHybrid",
        ]

    def test_required_arguments(self):
        schemas = {tool.name: tool.inputSchema for tool in get_tool_schemas()}

        assert schemas["task.create"]["required"] == ["title"]
        assert schemas["task.queryHybrid"]["required"] == ["query"]
        assert set(schemas["task.update"]["required"]) == {"id", "patch"}
