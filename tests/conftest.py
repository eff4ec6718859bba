"""Shared test fixtures for Brio planning tests.

This module provides common fixtures used across all test modules:
- A fixed clock (Monday 2026-10-19 10:00 local)
- In-memory stores, empty and pre-filled with history
- Engine factory with injectable context and config
- Temporary SQLite database paths

Usage:
    def test_something(make_engine, experienced_store):
        engine = make_engine(experienced_store)
        ...
"""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest

from brio.planning.config import PlanningConfig
from brio.planning.context import ContextProvider, StaticContextProvider
from brio.planning.engine import SuggestionEngine
from brio.planning.models import CompletionStats, ContextSnapshot, TaskDraft
from brio.planning.stores import InMemoryStatsStore


# ─────────────────────────────────────────────────────────────────────────────
# Clock Fixtures
# ─────────────────────────────────────────────────────────────────────────────

# A Monday (weekday 1 with Sunday = 0)
MONDAY_10AM = datetime(2026, 10, 19, 10, 0)


@pytest.fixture
def now() -> datetime:
    """The fixed "current time" every engine in the suite sees."""
    return MONDAY_10AM


# ─────────────────────────────────────────────────────────────────────────────
# Store Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def empty_store() -> InMemoryStatsStore:
    """Fresh install: no completions recorded."""
    return InMemoryStatsStore()


@pytest.fixture
def experienced_store() -> InMemoryStatsStore:
    """Ten completions: mornings at 9, Mondays and Wednesdays.

    Returns:
        InMemoryStatsStore with hourly {9: 5, 14: 3, 20: 2} and
        weekly {1: 6, 3: 4}
    """
    return InMemoryStatsStore(
        stats=CompletionStats(total_tasks_completed=10, current_streak=2, longest_streak=4),
        hourly={9: 5, 14: 3, 20: 2},
        weekly={1: 6, 3: 4},
    )


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    """Path for a throwaway SQLite database."""
    return tmp_path / "data" / "brio.db"


# ─────────────────────────────────────────────────────────────────────────────
# Engine Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_engine(now: datetime) -> Callable[..., SuggestionEngine]:
    """Factory for engines wired to in-memory collaborators.

    Args (of the returned callable):
        store: Used as both stats and pattern store.
        context: A ContextSnapshot or ContextProvider (neutral by default).
        config: PlanningConfig override.
        clock_time: Override for the fixed "now".
    """

    def _make(
        store,
        context: ContextSnapshot | ContextProvider | None = None,
        config: PlanningConfig | None = None,
        clock_time: datetime | None = None,
    ) -> SuggestionEngine:
        if context is None or isinstance(context, ContextSnapshot):
            context = StaticContextProvider(context)
        current = clock_time or now
        return SuggestionEngine(
            stats_store=store,
            pattern_store=store,
            context_provider=context,
            config=config,
            clock=lambda: current,
        )

    return _make


@pytest.fixture
def make_draft(now: datetime) -> Callable[..., TaskDraft]:
    """Factory for task drafts due today."""

    def _make(priority: str = "medium", title: str = "Write quarterly report") -> TaskDraft:
        return TaskDraft(title=title, due_date=now, priority=priority)

    return _make


@pytest.fixture
def deep_work_context() -> ContextSnapshot:
    return ContextSnapshot(is_deep_work_possible=True, battery_level=0.8, is_charging=False)
