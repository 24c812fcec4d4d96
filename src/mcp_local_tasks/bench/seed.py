"""Deterministic synthetic task data for benchmarks."""

import math
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime, timedelta
from typing import TypeVar

from loguru import logger

from ..config.defaults import BENCHMARK_SEED, BENCHMARK_SOURCE, DEFAULT_BENCHMARK_TASKS
from ..core.models import Task, TaskPriority, TaskState
from ..core.task_store import TaskStore

T = TypeVar("T")

SEED_BATCH_SIZE = 500

# (title, body). A "#" in the title gets the variation number appended.
TASK_TEMPLATES: tuple[tuple[str, str], ...] = (
    ("Fix authentication bug in login flow", "Users reporting intermittent login failures. Need to investigate session handling."),
    ("Implement rate limiting for API", "Add rate limiting middleware to prevent abuse. Target: 100 req/min per user."),
    ("Update documentation for new features", "Document the new search API and hybrid query capabilities."),
    ("Refactor database connection pooling", "Current implementation has connection leaks under high load."),
    ("Add unit tests for payment service", "Coverage is currently at 45%. Need to reach 80% minimum."),
    ("Investigate memory leak in worker", "Memory usage grows unbounded after 24h runtime. Profile and fix."),
    ("Optimize SQL queries for dashboard", "Dashboard loads taking 3-5s. Need to add indexes and optimize joins."),
    ("Review pull request #", "Code review needed for the new feature branch. Check for security issues."),
    ("Deploy hotfix to production", "Critical bug fix ready. Tested in staging, needs prod deployment."),
    ("Setup CI/CD pipeline for staging", "Automate deployments to staging environment using GitHub Actions."),
    ("Migrate legacy code to TypeScript", "Convert remaining JavaScript modules to TypeScript for type safety."),
    ("Design new user onboarding flow", "Create wireframes and user flow for improved first-time experience."),
    ("Fix broken links in documentation", "Several docs links returning 404. Audit and update all references."),
    ("Implement feature flag system", "Need ability to toggle features without deployments. Use LaunchDarkly or similar."),
    ("Upgrade dependencies to latest", "Security patches available. Review changelog and upgrade safely."),
    ("Add logging to error handlers", "Improve observability by adding structured logging to all error paths."),
    ("Create API docs with OpenAPI", "Generate comprehensive API documentation from code annotations."),
    ("Fix race condition in cache", "Cache invalidation has race condition under concurrent writes."),
    ("Implement OAuth2 integration", "Add OAuth2 support for Google and GitHub authentication."),
    ("Add monitoring alerts", "Setup alerts for critical metrics: error rate, latency, memory usage."),
    ("Refactor component architecture", "Current component structure is hard to maintain. Propose new architecture."),
    ("Fix mobile responsive layout", "Layout breaks on mobile devices < 375px width. Fix CSS media queries."),
    ("Implement dark mode theme", "Add dark mode support with user preference persistence."),
    ("Add accessibility improvements", "Audit for WCAG 2.1 AA compliance. Fix keyboard navigation issues."),
    ("Optimize image loading", "Implement lazy loading and WebP format for faster page loads."),
    ("Setup automated backup system", "Configure daily backups with 30-day retention policy."),
    ("Implement search functionality", "Add full-text search with filters and faceted navigation."),
    ("Add pagination to list views", "Large lists causing performance issues. Implement cursor-based pagination."),
    ("Fix timezone handling", "Date picker not respecting user timezone. Use proper UTC conversion."),
    ("Implement email notifications", "Send email alerts for important events using SendGrid API."),
    ("Add export to CSV", "Users requesting ability to export data to CSV format."),
    ("Fix validation errors in form", "Form validation not catching edge cases. Improve error messages."),
    ("Implement file upload with progress", "Add file upload with progress bar and drag-drop support."),
    ("Add real-time updates", "Implement WebSocket connection for live data updates."),
    ("Fix memory usage in processing", "Data processing job consuming excessive memory. Optimize algorithms."),
    ("Implement caching strategy", "Add Redis caching layer for frequently accessed data."),
    ("Add error boundary components", "Prevent entire app crashes by adding React error boundaries."),
    ("Fix CORS issues in API", "CORS configuration blocking legitimate requests. Update whitelist."),
    ("Implement request throttling", "Add request throttling to prevent API abuse and DDoS."),
    ("Add health check endpoints", "Implement /health and /ready endpoints for load balancer."),
    ("Refactor auth middleware", "Authentication middleware is complex and hard to test. Simplify."),
    ("Fix broken tests in CI", "Several tests failing intermittently in CI. Make tests deterministic."),
    ("Implement user preferences", "Allow users to customize UI settings and save preferences."),
    ("Add analytics tracking", "Integrate analytics to track user behavior and feature usage."),
    ("Fix security vulnerability", "Dependabot alert for critical security issue. Upgrade immediately."),
    ("Implement data migration", "Write migration script for new database schema changes."),
    ("Add integration tests", "Add end-to-end tests for critical user flows."),
    ("Fix performance bottleneck", "Rendering performance degraded. Profile and optimize render cycle."),
    ("Implement lazy loading", "Code-split routes and lazy load components for faster initial load."),
    ("Add keyboard shortcuts", "Implement keyboard shortcuts for power users (Cmd+K, etc)."),
)


class SeededRandom:
    """Linear congruential generator, reproducible across runs and platforms."""

    def __init__(self, seed: int = BENCHMARK_SEED) -> None:
        self.seed = seed

    def next(self) -> float:
        self.seed = (self.seed * 9301 + 49297) % 233280
        return self.seed / 233280

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in ``[low, high]``."""
        return math.floor(self.next() * (high - low + 1)) + low

    def pick(self, items: Sequence[T]) -> T:
        return items[self.randint(0, len(items) - 1)]

    def chance(self, probability: float = 0.5) -> bool:
        return self.next() < probability


def _iso(ts: datetime) -> str:
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_task(rng: SeededRandom, index: int, now: datetime) -> Task:
    """Generate one benchmark task.

    Distributions: state 30% inbox / 50% open / 20% done, priority
    20% high / 50% med / 30% low, 30% with a due date in [-7, 30] days,
    40% with an estimate of 15 to 480 minutes, created 0 to 90 days ago.
    """
    title, body = rng.pick(TASK_TEMPLATES)
    created = now - timedelta(days=rng.randint(0, 90))

    state_roll = rng.next()
    if state_roll < 0.3:
        state = TaskState.INBOX
    elif state_roll < 0.8:
        state = TaskState.OPEN
    else:
        state = TaskState.DONE

    priority_roll = rng.next()
    if priority_roll < 0.2:
        priority = TaskPriority.HIGH
    elif priority_roll < 0.7:
        priority = TaskPriority.MED
    else:
        priority = TaskPriority.LOW

    due_ts = _iso(now + timedelta(days=rng.randint(-7, 30))) if rng.chance(0.3) else None
    estimate_min = rng.randint(15, 480) if rng.chance(0.4) else None

    variation = rng.randint(1, 999)
    title = f"{title}{variation}" if "#" in title else f"{title} ({variation})"

    return Task(
        id=f"t_bench_{index:05d}",
        title=title,
        body=body,
        state=state,
        priority=priority,
        estimate_min=estimate_min,
        due_ts=due_ts,
        source=BENCHMARK_SOURCE,
        summary=None,
        created_ts=_iso(created),
        updated_ts=_iso(created),
    )


def generate_tasks(
    count: int, seed: int = BENCHMARK_SEED, now: datetime | None = None
) -> Iterator[Task]:
    now = now or datetime.now(UTC)
    rng = SeededRandom(seed)
    for index in range(count):
        yield generate_task(rng, index, now)


def seed_benchmark_data(
    store: TaskStore,
    count: int = DEFAULT_BENCHMARK_TASKS,
    seed: int = BENCHMARK_SEED,
    now: datetime | None = None,
) -> int:
    """Replace all benchmark tasks in ``store`` with ``count`` fresh ones.

    Returns:
        Number of tasks inserted
    """
    removed = store.delete_by_source(BENCHMARK_SOURCE)
    logger.debug(f"Cleared {removed} existing benchmark tasks")

    inserted = 0
    batch: list[Task] = []
    for task in generate_tasks(count, seed=seed, now=now):
        batch.append(task)
        if len(batch) >= SEED_BATCH_SIZE:
            inserted += store.insert_tasks(batch)
            batch = []
    if batch:
        inserted += store.insert_tasks(batch)

    logger.info(f"Seeded {inserted} benchmark tasks")
    return inserted
