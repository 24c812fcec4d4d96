"""Lexical (full-text) candidate discovery."""

import asyncio

from loguru import logger

from .exceptions import IndexUnavailableError
from .models import SearchFilters
from .task_store import TaskStore


class LexicalSearchAdapter:
    """Keyword search against the task store's FTS5 index."""

    def __init__(self, store: TaskStore, source: str | None = None) -> None:
        """Initialize the adapter.

        Args:
            store: Task store exposing ``full_text_search``
            source: Optional restriction to tasks from one source
        """
        self.store = store
        self.source = source

    async def search(
        self,
        query: str,
        limit: int,
        filters: SearchFilters | None = None,
    ) -> list[str]:
        """Return matching task ids, most relevant first.

        A blank query is "no lexical signal" and returns an empty list.

        Raises:
            IndexUnavailableError: If the full-text index cannot be queried
        """
        if not query or not query.strip() or limit <= 0:
            return []

        try:
            ids = await asyncio.to_thread(
                self.store.full_text_search, query, limit, filters, self.source
            )
        except IndexUnavailableError:
            raise
        except Exception as e:
            raise IndexUnavailableError(f"Lexical search failed: {e}") from e

        logger.debug(f"Lexical search returned {len(ids)} candidates for '{query}'")
        return ids
