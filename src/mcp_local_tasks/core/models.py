"""Data models for tasks and hybrid search."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

from ..config.defaults import (
    DEFAULT_PRIORITY_WEIGHT,
    DEFAULT_RECENCY_WEIGHT,
    DEFAULT_SEMANTIC_WEIGHT,
    PREVIEW_MAX_CHARS,
)


class TaskState(StrEnum):
    """Task lifecycle state."""

    INBOX = "inbox"
    OPEN = "open"
    DONE = "done"


class TaskPriority(StrEnum):
    """Task priority level."""

    LOW = "low"
    MED = "med"
    HIGH = "high"


@dataclass
class Task:
    """A task record as stored in the task store."""

    id: str
    title: str
    state: TaskState
    priority: TaskPriority
    created_ts: str
    updated_ts: str
    body: str | None = None
    summary: str | None = None
    estimate_min: int | None = None
    due_ts: str | None = None
    source: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Task:
        return cls(
            id=row["id"],
            title=row["title"],
            state=TaskState(row["state"]),
            priority=TaskPriority(row["priority"]),
            created_ts=row["created_ts"],
            updated_ts=row["updated_ts"],
            body=row["body"],
            summary=row["summary"],
            estimate_min=row["estimate_min"],
            due_ts=row["due_ts"],
            source=row["source"],
        )

    @property
    def embedding_text(self) -> str:
        """Text fed to the embedding function: title, body and summary."""
        parts = [self.title]
        if self.body:
            parts.append(self.body)
        if self.summary:
            parts.append(self.summary)
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        data["priority"] = self.priority.value
        return data


def _validated_values(
    values: Iterable[str] | None, enum_cls: type[StrEnum], name: str
) -> tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    allowed = {member.value for member in enum_cls}
    result = []
    for value in values:
        if value not in allowed:
            raise ValueError(
                f"Invalid {name} filter value '{value}', expected one of {sorted(allowed)}"
            )
        if value not in result:
            result.append(value)
    return tuple(result)


@dataclass(frozen=True)
class SearchFilters:
    """Optional state/priority restriction shared by both search adapters.

    Values within one dimension are ORed, dimensions are ANDed.
    An empty tuple means "no restriction" for that dimension.
    """

    state: tuple[str, ...] = ()
    priority: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "state", _validated_values(self.state, TaskState, "state")
        )
        object.__setattr__(
            self,
            "priority",
            _validated_values(self.priority, TaskPriority, "priority"),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SearchFilters:
        if not data:
            return cls()
        return cls(
            state=data.get("state") or (),
            priority=data.get("priority") or (),
        )

    @property
    def is_empty(self) -> bool:
        return not self.state and not self.priority


@dataclass(frozen=True)
class Weights:
    """Fusion weights for the composite score.

    Weights are non-negative and are NOT renormalized. The defaults sum to 1.0,
    so with defaults the composite score stays within [0, 1]. Custom weights
    that sum to more than 1.0 simply stretch the score range.
    """

    semantic: float = DEFAULT_SEMANTIC_WEIGHT
    recency: float = DEFAULT_RECENCY_WEIGHT
    priority: float = DEFAULT_PRIORITY_WEIGHT

    def __post_init__(self) -> None:
        for name in ("semantic", "recency", "priority"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"Weight '{name}' must be non-negative, got {value}")

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any] | None, base: Weights | None = None
    ) -> Weights:
        """Overlay caller-supplied weights on ``base`` (or the defaults)."""
        base = base or cls()
        if not data:
            return base
        return cls(
            semantic=float(data.get("semantic", base.semantic)),
            recency=float(data.get("recency", base.recency)),
            priority=float(data.get("priority", base.priority)),
        )

    @property
    def total(self) -> float:
        return self.semantic + self.recency + self.priority


@dataclass(frozen=True)
class Candidate:
    """A task surfaced by at least one retrieval method for a single query.

    ``lexical_rank`` is the 1-based position in the full-text results and
    ``semantic_score`` the similarity in [0, 1]. Either may be ``None`` but
    never both.
    """

    task_id: str
    lexical_rank: int | None = None
    semantic_score: float | None = None

    @property
    def has_semantic(self) -> bool:
        return self.semantic_score is not None


@dataclass(frozen=True)
class ScoredCandidate:
    """Candidate plus its component scores and weighted composite."""

    candidate: Candidate
    semantic: float
    recency: float
    priority: float
    score: float

    @property
    def task_id(self) -> str:
        return self.candidate.task_id


@dataclass
class ResultRecord:
    """Compact search result returned to callers."""

    id: str
    title: str
    preview: str
    state: str
    due_ts: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ResultRecord:
        return cls(
            id=row["id"],
            title=row["title"],
            preview=(row["preview"] or "")[:PREVIEW_MAX_CHARS],
            state=row["state"],
            due_ts=row["due_ts"],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class LabeledQuery:
    """Benchmark query with its ground-truth relevant task ids."""

    query: str
    relevant_ids: list[str] = field(default_factory=list)
    description: str = ""
