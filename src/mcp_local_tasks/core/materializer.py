"""Hydrate ranked candidates into compact result records."""

import asyncio
from collections.abc import Sequence

from .models import ResultRecord, ScoredCandidate
from .task_store import TaskStore


class ResultMaterializer:
    """Turn the top of a fused ranking into ``ResultRecord`` objects."""

    def __init__(self, store: TaskStore) -> None:
        self.store = store

    async def materialize(
        self, scored: Sequence[ScoredCandidate], k: int
    ) -> list[ResultRecord]:
        """Return records for the top ``k`` candidates in ranking order.

        Tasks deleted since fusion are skipped, so fewer than ``k`` records
        may come back.
        """
        if k <= 0:
            return []
        top_ids = [s.task_id for s in scored[:k]]
        if not top_ids:
            return []

        records = await asyncio.to_thread(self.store.fetch_display_fields, top_ids)
        return [records[task_id] for task_id in top_ids if task_id in records]
