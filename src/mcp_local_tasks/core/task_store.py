"""SQLite task store with an FTS5 full-text index.

The ``tasks_fts`` external-content table is kept in sync with ``tasks`` by
triggers, so every write through this store (or any other SQLite client) is
immediately searchable.

The connection is opened with ``check_same_thread=False`` and guarded by a
lock so async callers can run queries in worker threads via
``asyncio.to_thread``. The search path only reads.
"""

from __future__ import annotations

import re
import sqlite3
import threading
import uuid
from collections.abc import Iterable, Iterator, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from loguru import logger

from ..config.defaults import DEFAULT_LIST_LIMIT, PREVIEW_MAX_CHARS
from .exceptions import (
    IndexUnavailableError,
    NotFoundError,
    TaskStoreError,
    TaskStoreUnavailableError,
)
from .models import ResultRecord, SearchFilters, Task, TaskPriority, TaskState

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    body TEXT,
    state TEXT NOT NULL CHECK(state IN ('inbox', 'open', 'done')),
    priority TEXT NOT NULL CHECK(priority IN ('low', 'med', 'high')),
    estimate_min INTEGER,
    due_ts TEXT,
    source TEXT,
    summary TEXT,
    created_ts TEXT NOT NULL,
    updated_ts TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_state ON tasks(state);
CREATE INDEX IF NOT EXISTS idx_tasks_priority ON tasks(priority);
CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_ts);
CREATE INDEX IF NOT EXISTS idx_tasks_source ON tasks(source);

CREATE VIRTUAL TABLE IF NOT EXISTS tasks_fts USING fts5(
    title, body, summary,
    content='tasks',
    content_rowid='rowid'
);

CREATE TRIGGER IF NOT EXISTS tasks_ai AFTER INSERT ON tasks BEGIN
    INSERT INTO tasks_fts(rowid, title, body, summary)
    VALUES (new.rowid, new.title, new.body, new.summary);
END;

CREATE TRIGGER IF NOT EXISTS tasks_ad AFTER DELETE ON tasks BEGIN
    INSERT INTO tasks_fts(tasks_fts, rowid, title, body, summary)
    VALUES ('delete', old.rowid, old.title, old.body, old.summary);
END;

CREATE TRIGGER IF NOT EXISTS tasks_au AFTER UPDATE ON tasks BEGIN
    INSERT INTO tasks_fts(tasks_fts, rowid, title, body, summary)
    VALUES ('delete', old.rowid, old.title, old.body, old.summary);
    INSERT INTO tasks_fts(rowid, title, body, summary)
    VALUES (new.rowid, new.title, new.body, new.summary);
END;
"""

HANDLE_COLUMNS = f"""
    t.id, t.title,
    substr(coalesce(t.summary, t.body, ''), 1, {PREVIEW_MAX_CHARS}) AS preview,
    t.state, t.due_ts
"""

UPDATABLE_FIELDS = (
    "title",
    "body",
    "state",
    "priority",
    "estimate_min",
    "due_ts",
    "source",
    "summary",
)

# SQLite caps bound parameters per statement
_LOOKUP_CHUNK = 500

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_match_expression(query: str) -> str | None:
    """Convert free text into a safe FTS5 MATCH expression.

    Every word is quoted so FTS5 operators and punctuation in user input are
    treated as literal terms. Terms are space separated, which FTS5 reads as
    an implicit AND, so a row must contain every term.

    Returns:
        The MATCH expression, or None when the query has no searchable terms
    """
    tokens = _TOKEN_RE.findall(query or "")
    if not tokens:
        return None
    return " ".join(f'"{token}"' for token in tokens)


def _filter_clauses(
    filters: SearchFilters | None, prefix: str = ""
) -> tuple[list[str], list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if filters is None:
        return clauses, params
    if filters.state:
        placeholders = ",".join("?" for _ in filters.state)
        clauses.append(f"{prefix}state IN ({placeholders})")
        params.extend(filters.state)
    if filters.priority:
        placeholders = ",".join("?" for _ in filters.priority)
        clauses.append(f"{prefix}priority IN ({placeholders})")
        params.extend(filters.priority)
    return clauses, params


def _chunks(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class TaskStore:
    """Task store backed by SQLite.

    Example:
        with TaskStore(Path("tasks.db")) as store:
            task = store.create_task("Fix login bug", priority=TaskPriority.HIGH)
            ids = store.full_text_search("login", limit=10)
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> TaskStore:
        """Open the database and apply the schema.

        Raises:
            TaskStoreUnavailableError: If the database cannot be opened
        """
        if self._conn is not None:
            return self
        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            if isinstance(self.db_path, Path):
                conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to open task store at {self.db_path}: {e}")
            raise TaskStoreUnavailableError(
                f"Task store unavailable: {e}", {"db_path": str(self.db_path)}
            ) from e

        self._conn = conn
        logger.debug(f"Task store opened at {self.db_path}")
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> TaskStore:
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise TaskStoreUnavailableError("Task store is not open")
        return self._conn

    def _query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, params).fetchall()

    # ------------------------------------------------------------------
    # Writes (connectors / CLI / MCP)
    # ------------------------------------------------------------------

    def create_task(
        self,
        title: str,
        body: str | None = None,
        priority: TaskPriority | str = TaskPriority.MED,
        due_ts: str | None = None,
        source: str | None = None,
    ) -> Task:
        """Create a task in the inbox."""
        if not title or not title.strip():
            raise ValueError("Task title is required")

        ts = now_iso()
        task = Task(
            id="t_" + uuid.uuid4().hex[:8],
            title=title,
            body=body,
            state=TaskState.INBOX,
            priority=TaskPriority(priority),
            due_ts=due_ts,
            source=source or "local",
            created_ts=ts,
            updated_ts=ts,
        )
        self.insert_tasks([task])
        return task

    def insert_tasks(self, tasks: Iterable[Task]) -> int:
        """Insert tasks in one transaction. Returns the number inserted."""
        rows = [task.to_dict() for task in tasks]
        if not rows:
            return 0
        try:
            with self._lock, self.conn:
                self.conn.executemany(
                    """
                    INSERT INTO tasks(id, title, body, state, priority, estimate_min,
                                      due_ts, source, summary, created_ts, updated_ts)
                    VALUES (:id, :title, :body, :state, :priority, :estimate_min,
                            :due_ts, :source, :summary, :created_ts, :updated_ts)
                    """,
                    rows,
                )
        except sqlite3.IntegrityError as e:
            raise TaskStoreError(f"Failed to insert tasks: {e}") from e
        except sqlite3.Error as e:
            raise TaskStoreUnavailableError(f"Failed to insert tasks: {e}") from e
        return len(rows)

    def update_task(self, task_id: str, patch: Mapping[str, Any]) -> Task:
        """Patch fields on a task.

        Raises:
            NotFoundError: If the task does not exist
            ValueError: If the patch names a field that cannot be updated
        """
        unknown = set(patch) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        existing = self.get_task(task_id)
        merged = existing.to_dict()
        merged.update(patch)
        merged["state"] = TaskState(merged["state"]).value
        merged["priority"] = TaskPriority(merged["priority"]).value
        merged["updated_ts"] = now_iso()

        assignments = ", ".join(f"{name} = :{name}" for name in UPDATABLE_FIELDS)
        with self._lock, self.conn:
            self.conn.execute(
                f"UPDATE tasks SET {assignments}, updated_ts = :updated_ts WHERE id = :id",
                merged,
            )
        return Task.from_row(merged)

    def delete_by_source(self, source: str) -> int:
        with self._lock, self.conn:
            cursor = self.conn.execute("DELETE FROM tasks WHERE source = ?", (source,))
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def expand_task(self, task_id: str) -> Task | None:
        rows = self._query("SELECT * FROM tasks WHERE id = ?", (task_id,))
        return Task.from_row(rows[0]) if rows else None

    def get_task(self, task_id: str) -> Task:
        task = self.expand_task(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}", {"id": task_id})
        return task

    def count(self, source: str | None = None) -> int:
        if source is None:
            rows = self._query("SELECT COUNT(*) AS n FROM tasks")
        else:
            rows = self._query(
                "SELECT COUNT(*) AS n FROM tasks WHERE source = ?", (source,)
            )
        return rows[0]["n"]

    def count_by_state_priority(
        self, source: str | None = None
    ) -> list[tuple[str, str, int]]:
        """Task counts grouped by ``(state, priority)``."""
        sql = "SELECT state, priority, COUNT(*) AS n FROM tasks"
        params: list[Any] = []
        if source is not None:
            sql += " WHERE source = ?"
            params.append(source)
        sql += " GROUP BY state, priority ORDER BY state, priority"
        return [(row["state"], row["priority"], row["n"]) for row in self._query(sql, params)]

    def list_task_handles(
        self,
        limit: int = DEFAULT_LIST_LIMIT,
        filters: SearchFilters | None = None,
        query: str | None = None,
        source: str | None = None,
    ) -> list[ResultRecord]:
        """List tasks as compact handles, newest first.

        When ``query`` has searchable terms the listing is restricted to
        full-text matches (still newest first, not relevance ordered).
        """
        clauses, params = _filter_clauses(filters, prefix="t.")
        if source is not None:
            clauses.append("t.source = ?")
            params.append(source)

        match = build_match_expression(query) if query else None
        if match:
            sql = f"""
                SELECT {HANDLE_COLUMNS}
                FROM tasks t
                JOIN tasks_fts ON tasks_fts.rowid = t.rowid
                WHERE tasks_fts MATCH ?
            """
            params.insert(0, match)
            if clauses:
                sql += " AND " + " AND ".join(clauses)
        else:
            sql = f"SELECT {HANDLE_COLUMNS} FROM tasks t"
            if clauses:
                sql += " WHERE " + " AND ".join(clauses)

        sql += " ORDER BY t.created_ts DESC LIMIT ?"
        params.append(limit)
        return [ResultRecord.from_row(row) for row in self._query(sql, params)]

    def plan_day(
        self, limit: int = 50, source: str | None = None, now: datetime | None = None
    ) -> list[Task]:
        """Actionable tasks for today's plan.

        Inbox/open tasks of high or med priority that are undated or due within
        seven days, ordered by priority, due date (undated last), then age.
        """
        now = now or datetime.now(UTC)
        horizon = (now + timedelta(days=7)).date().isoformat()
        sql = """
            SELECT * FROM tasks
            WHERE state IN ('inbox', 'open')
              AND priority IN ('high', 'med')
              AND (due_ts IS NULL OR due_ts <= ?)
        """
        params: list[Any] = [horizon]
        if source is not None:
            sql += " AND source = ?"
            params.append(source)
        sql += """
            ORDER BY
              CASE priority WHEN 'high' THEN 1 WHEN 'med' THEN 2 ELSE 3 END,
              due_ts IS NULL, due_ts ASC,
              created_ts ASC
            LIMIT ?
        """
        params.append(limit)
        return [Task.from_row(row) for row in self._query(sql, params)]

    def find_ids_containing(
        self, keywords: Sequence[str], source: str | None = None, limit: int = 20
    ) -> list[str]:
        """Ids of tasks whose title or body contains any keyword.

        Uses ``LIKE`` (case-insensitive for ASCII), not the FTS index.
        """
        if not keywords:
            return []
        conditions = " OR ".join("title LIKE ? OR body LIKE ?" for _ in keywords)
        params: list[Any] = []
        for keyword in keywords:
            params.extend([f"%{keyword}%", f"%{keyword}%"])
        sql = f"SELECT id FROM tasks WHERE ({conditions})"
        if source is not None:
            sql += " AND source = ?"
            params.append(source)
        sql += " ORDER BY id LIMIT ?"
        params.append(limit)
        return [row["id"] for row in self._query(sql, params)]

    def iter_tasks(self, batch_size: int = 100) -> Iterator[list[Task]]:
        """Yield all tasks in batches, newest first."""
        offset = 0
        while True:
            rows = self._query(
                "SELECT * FROM tasks ORDER BY created_ts DESC, id LIMIT ? OFFSET ?",
                (batch_size, offset),
            )
            if not rows:
                return
            yield [Task.from_row(row) for row in rows]
            offset += len(rows)

    # ------------------------------------------------------------------
    # Search primitives
    # ------------------------------------------------------------------

    def full_text_search(
        self,
        query: str,
        limit: int,
        filters: SearchFilters | None = None,
        source: str | None = None,
    ) -> list[str]:
        """Ranked task ids for a keyword query, most relevant first.

        Raises:
            IndexUnavailableError: If the FTS index cannot be queried
        """
        match = build_match_expression(query)
        if match is None or limit <= 0:
            return []

        clauses, params = _filter_clauses(filters, prefix="t.")
        if source is not None:
            clauses.append("t.source = ?")
            params.append(source)

        sql = """
            SELECT t.id
            FROM tasks t
            JOIN tasks_fts ON tasks_fts.rowid = t.rowid
            WHERE tasks_fts MATCH ?
        """
        if clauses:
            sql += " AND " + " AND ".join(clauses)
        sql += " ORDER BY tasks_fts.rank, t.rowid LIMIT ?"

        try:
            rows = self._query(sql, [match, *params, limit])
        except sqlite3.Error as e:
            raise IndexUnavailableError(
                f"Full-text search failed: {e}", {"query": query}
            ) from e
        return [row["id"] for row in rows]

    def fetch_scoring_fields(self, task_ids: Sequence[str]) -> dict[str, dict[str, Any]]:
        """Bulk lookup of ``priority`` and ``created_ts`` by id.

        Missing ids are omitted.

        Raises:
            TaskStoreUnavailableError: If the lookup fails
        """
        return self._bulk_lookup(
            task_ids, "id, priority, created_ts", lambda row: dict(row)
        )

    def fetch_display_fields(self, task_ids: Sequence[str]) -> dict[str, ResultRecord]:
        """Bulk lookup of result-record fields by id. Missing ids are omitted.

        Raises:
            TaskStoreUnavailableError: If the lookup fails
        """
        return self._bulk_lookup(task_ids, HANDLE_COLUMNS, ResultRecord.from_row)

    def _bulk_lookup(self, task_ids: Sequence[str], columns: str, convert) -> dict:
        unique_ids = list(dict.fromkeys(task_ids))
        found: dict[str, Any] = {}
        try:
            for chunk in _chunks(unique_ids, _LOOKUP_CHUNK):
                placeholders = ",".join("?" for _ in chunk)
                rows = self._query(
                    f"SELECT {columns} FROM tasks t WHERE t.id IN ({placeholders})",
                    list(chunk),
                )
                for row in rows:
                    found[row["id"]] = convert(row)
        except sqlite3.Error as e:
            raise TaskStoreUnavailableError(f"Task lookup failed: {e}") from e
        return found
