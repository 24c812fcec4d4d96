"""Weighted score fusion of lexical and semantic candidates.

composite = semantic * w.semantic + recency * w.recency + priority * w.priority

- semantic: the vector similarity in [0, 1], or 0 for lexical-only candidates
- recency: linear decay from 1.0 (created now) to 0.0 at thirty days old
- priority: fixed lookup, high 1.0 / med 0.5 / low 0.2 / unknown 0.5

Lexical rank only decides candidate membership; it is not a weighted term.
The linear recency decay is a simple tunable prior, not a fitted model.
"""

import asyncio
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from ..config.defaults import PRIORITY_SCORES, THIRTY_DAYS_MS, UNKNOWN_PRIORITY_SCORE
from .models import Candidate, ScoredCandidate, Weights
from .task_store import TaskStore


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def recency_score(created_ts: str | datetime | None, now: datetime) -> float:
    """Linear recency prior in [0, 1].

    Exactly 1.0 for a task created at ``now`` (or in the future), exactly 0.0
    for anything thirty days old or older. Missing or unparsable timestamps
    score 0.
    """
    if created_ts is None:
        return 0.0
    if isinstance(created_ts, str):
        try:
            created = parse_timestamp(created_ts)
        except ValueError:
            logger.warning(f"Unparsable created_ts '{created_ts}', recency set to 0")
            return 0.0
    else:
        created = created_ts if created_ts.tzinfo else created_ts.replace(tzinfo=UTC)

    age_ms = (now - created).total_seconds() * 1000
    if age_ms <= 0:
        return 1.0
    return max(0.0, 1.0 - age_ms / THIRTY_DAYS_MS)


def priority_score(priority: str | None) -> float:
    return PRIORITY_SCORES.get(priority or "", UNKNOWN_PRIORITY_SCORE)


def build_candidates(
    lexical_ids: Sequence[str],
    semantic_results: Sequence[tuple[str, float]],
) -> list[Candidate]:
    """Union both result sets.

    Order is lexical ids first (in lexical order), then semantic-only ids in
    semantic order. This order is the tie-break for equal scores.
    """
    semantic_scores: dict[str, float] = {}
    for task_id, similarity in semantic_results:
        semantic_scores.setdefault(task_id, similarity)

    candidates: list[Candidate] = []
    seen: set[str] = set()
    for rank, task_id in enumerate(lexical_ids, start=1):
        if task_id in seen:
            continue
        seen.add(task_id)
        candidates.append(
            Candidate(task_id, lexical_rank=rank, semantic_score=semantic_scores.get(task_id))
        )
    for task_id, similarity in semantic_scores.items():
        if task_id in seen:
            continue
        seen.add(task_id)
        candidates.append(Candidate(task_id, semantic_score=similarity))
    return candidates


def score_candidates(
    candidates: Sequence[Candidate],
    fields: Mapping[str, Mapping[str, Any]],
    weights: Weights,
    now: datetime,
) -> list[ScoredCandidate]:
    """Score and sort candidates. Candidates missing from ``fields`` are dropped."""
    scored: list[ScoredCandidate] = []
    for candidate in candidates:
        row = fields.get(candidate.task_id)
        if row is None:
            continue
        semantic = candidate.semantic_score if candidate.has_semantic else 0.0
        recency = recency_score(row.get("created_ts"), now)
        priority = priority_score(row.get("priority"))
        score = (
            semantic * weights.semantic
            + recency * weights.recency
            + priority * weights.priority
        )
        scored.append(
            ScoredCandidate(
                candidate=candidate,
                semantic=semantic,
                recency=recency,
                priority=priority,
                score=score,
            )
        )
    # sorted() is stable, so equal scores keep union order
    return sorted(scored, key=lambda s: s.score, reverse=True)


class ScoreFusionEngine:
    """Merge candidate sets and rank them by composite score."""

    def __init__(self, store: TaskStore) -> None:
        self.store = store

    async def fuse(
        self,
        lexical_ids: Sequence[str],
        semantic_results: Sequence[tuple[str, float]],
        weights: Weights,
        now: datetime | None = None,
    ) -> list[ScoredCandidate]:
        """Fuse both result sets into a ranked list.

        Scoring fields for all candidates come from a single bulk lookup.

        Raises:
            TaskStoreUnavailableError: If the bulk lookup fails
        """
        candidates = build_candidates(lexical_ids, semantic_results)
        if not candidates:
            return []

        fields = await asyncio.to_thread(
            self.store.fetch_scoring_fields, [c.task_id for c in candidates]
        )
        dropped = len(candidates) - len(fields)
        if dropped:
            logger.debug(f"Dropped {dropped} candidates missing from the task store")

        return score_candidates(candidates, fields, weights, now or datetime.now(UTC))
