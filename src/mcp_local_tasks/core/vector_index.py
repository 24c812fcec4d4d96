"""LanceDB vector table holding one embedding per task."""

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import lancedb
import pyarrow as pa
from loguru import logger

from ..config.defaults import DEFAULT_EMBED_BATCH_SIZE, DEFAULT_VECTOR_TABLE
from .embeddings import EmbeddingFunction
from .exceptions import EmbeddingError, VectorIndexError
from .models import SearchFilters, Task
from .task_store import TaskStore


def _create_task_schema(vector_dim: int) -> pa.Schema:
    """Schema for the task vector table.

    ``state`` and ``priority`` are the filterable keyword fields. Timestamps
    are kept as ISO-8601 strings, which order correctly as text.
    """
    return pa.schema(
        [
            pa.field("id", pa.string()),
            pa.field("vector", pa.list_(pa.float32(), vector_dim)),
            pa.field("state", pa.string()),
            pa.field("priority", pa.string()),
            pa.field("created_ts", pa.string()),
            pa.field("due_ts", pa.string()),
        ]
    )


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_where_clause(filters: SearchFilters | None) -> str | None:
    """Translate search filters into a LanceDB SQL predicate.

    Values within a dimension are ORed (``IN``), dimensions are ANDed.
    """
    if filters is None or filters.is_empty:
        return None
    clauses = []
    if filters.state:
        clauses.append(f"state IN ({', '.join(_quote(v) for v in filters.state)})")
    if filters.priority:
        clauses.append(
            f"priority IN ({', '.join(_quote(v) for v in filters.priority)})"
        )
    return " AND ".join(clauses)


def distance_to_similarity(distance: float) -> float:
    """Map LanceDB cosine distance (0..2) to a similarity clamped to [0, 1]."""
    return min(1.0, max(0.0, 1.0 - distance))


class TaskVectorIndex:
    """Cosine k-NN over task embeddings stored in LanceDB.

    Example:
        index = TaskVectorIndex(Path(".mcp-local-tasks/vectors"), vector_dim=384)
        await index.initialize()
        await index.upsert(tasks, vectors)
        hits = await index.search(query_vector, limit=30)
    """

    def __init__(
        self,
        persist_directory: Path,
        vector_dim: int,
        table_name: str = DEFAULT_VECTOR_TABLE,
    ) -> None:
        self.persist_directory = Path(persist_directory)
        self.vector_dim = vector_dim
        self.table_name = table_name
        self._schema = _create_task_schema(vector_dim)
        self._db = None
        self._table = None

    async def initialize(self) -> None:
        """Connect to LanceDB and open (or create) the task table.

        Raises:
            VectorIndexError: If the database cannot be opened or the existing
                table was built with a different vector dimension
        """
        try:
            self.persist_directory.mkdir(parents=True, exist_ok=True)
            self._db = lancedb.connect(str(self.persist_directory))
            self._table = self._db.create_table(
                self.table_name, schema=self._schema, exist_ok=True
            )
        except Exception as e:
            logger.error(f"Failed to initialize LanceDB: {e}")
            raise VectorIndexError(f"LanceDB initialization failed: {e}") from e

        existing_dim = self._table.schema.field("vector").type.list_size
        if existing_dim != self.vector_dim:
            raise VectorIndexError(
                f"Vector table '{self.table_name}' has dimension {existing_dim}, "
                f"expected {self.vector_dim}; rebuild with 'mcp-local-tasks index --reset'",
                {"table": self.table_name},
            )
        logger.debug(
            f"LanceDB table '{self.table_name}' ready at {self.persist_directory}"
        )

    def _require_table(self):
        if self._table is None:
            raise VectorIndexError("Vector index is not initialized")
        return self._table

    async def upsert(self, tasks: Sequence[Task], vectors: Sequence[Sequence[float]]) -> int:
        """Insert or replace the embeddings for ``tasks``."""
        if len(tasks) != len(vectors):
            raise VectorIndexError(
                f"Got {len(tasks)} tasks but {len(vectors)} vectors"
            )
        if not tasks:
            return 0

        rows = []
        for task, vector in zip(tasks, vectors, strict=True):
            if len(vector) != self.vector_dim:
                raise VectorIndexError(
                    f"Vector for {task.id} has dimension {len(vector)}, "
                    f"expected {self.vector_dim}"
                )
            rows.append(
                {
                    "id": task.id,
                    "vector": [float(x) for x in vector],
                    "state": task.state.value,
                    "priority": task.priority.value,
                    "created_ts": task.created_ts,
                    "due_ts": task.due_ts,
                }
            )

        table = self._require_table()
        data = pa.Table.from_pylist(rows, schema=self._schema)
        try:
            await asyncio.to_thread(
                lambda: table.merge_insert("id")
                .when_matched_update_all()
                .when_not_matched_insert_all()
                .execute(data)
            )
        except Exception as e:
            logger.error(f"Failed to upsert {len(rows)} vectors: {e}")
            raise VectorIndexError(f"Vector upsert failed: {e}") from e
        return len(rows)

    async def search(
        self,
        vector: Sequence[float],
        limit: int,
        filters: SearchFilters | None = None,
    ) -> list[tuple[str, float]]:
        """Nearest tasks to ``vector`` as ``(id, similarity)``, most similar first.

        Raises:
            VectorIndexError: If the query fails
        """
        if limit <= 0:
            return []
        table = self._require_table()
        where = build_where_clause(filters)

        def _run() -> list[dict[str, Any]]:
            query = table.search(list(vector)).metric("cosine").limit(limit)
            if where:
                query = query.where(where, prefilter=True)
            return query.to_list()

        try:
            rows = await asyncio.to_thread(_run)
        except Exception as e:
            logger.error(f"LanceDB search failed: {e}")
            raise VectorIndexError(f"Vector search failed: {e}") from e

        return [
            (row["id"], distance_to_similarity(row.get("_distance", 1.0)))
            for row in rows
        ]

    async def delete(self, task_ids: Sequence[str]) -> None:
        if not task_ids:
            return
        table = self._require_table()
        predicate = f"id IN ({', '.join(_quote(task_id) for task_id in task_ids)})"
        try:
            await asyncio.to_thread(table.delete, predicate)
        except Exception as e:
            raise VectorIndexError(f"Vector delete failed: {e}") from e

    async def count(self) -> int:
        table = self._require_table()
        return await asyncio.to_thread(table.count_rows)

    async def reset(self) -> None:
        """Drop and recreate the table."""
        if self._db is None:
            raise VectorIndexError("Vector index is not initialized")
        try:
            self._db.drop_table(self.table_name, ignore_missing=True)
            self._table = self._db.create_table(self.table_name, schema=self._schema)
        except Exception as e:
            raise VectorIndexError(f"Failed to reset vector table: {e}") from e
        logger.info(f"Vector table '{self.table_name}' reset")

    async def close(self) -> None:
        self._table = None
        self._db = None


async def index_tasks(
    store: TaskStore,
    embedder: EmbeddingFunction,
    index: TaskVectorIndex,
    batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
) -> int:
    """Embed every task in the store and upsert it into the vector index.

    Returns:
        Number of tasks indexed
    """
    indexed = 0
    for batch in store.iter_tasks(batch_size=batch_size):
        texts = [task.embedding_text for task in batch]
        try:
            vectors = await asyncio.to_thread(embedder.embed_documents, texts)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Failed to embed task batch: {e}") from e
        indexed += await index.upsert(batch, vectors)
        logger.debug(f"Indexed {indexed} tasks")
    logger.info(f"Indexed {indexed} tasks into '{index.table_name}'")
    return indexed
