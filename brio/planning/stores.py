"""
Tool: Planning Stores
Purpose: Persist completion stats, hour/weekday patterns and achievements

The engine only talks to the abstract StatsStore, PatternStore and
AchievementStore contracts. A HistoryStore holds stats and patterns
together and records a completion as one write, so the totals and the
patterns never drift apart. Two implementations ship here:

- In-memory stores, used by tests and embedding callers
- SQLite stores (data/brio.db), one row for the stats aggregate and one
  row per achievement

Each store serializes its read-modify-write cycles with a lock so a
completion recorded while a suggestion is being computed cannot lose an
update. Read failures surface as DataUnavailable.

Usage:
    from brio.planning.stores import SQLiteStatsStore

    with SQLiteStatsStore("data/brio.db") as store:
        store.record_completion(datetime.now())
"""

from __future__ import annotations

import json
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

from brio.logging_config import get_logger
from brio.planning import DB_PATH
from brio.planning.errors import DataUnavailable, InvariantViolation
from brio.planning.models import (
    Achievement,
    AchievementDefinition,
    CompletionStats,
    day_of_week,
)

logger = get_logger(__name__)

STATS_ID = "user_stats"


# ─────────────────────────────────────────────────────────────────────────────
# Contracts
# ─────────────────────────────────────────────────────────────────────────────


class StatsStore(ABC):
    @abstractmethod
    def get(self) -> CompletionStats:
        """Return a snapshot of the stats aggregate."""

    @abstractmethod
    def increment_completed(self) -> None:
        """Add one to the total completion count."""

    @abstractmethod
    def update_streak(self, completed_on: date | None = None) -> None:
        """Advance the streak for a completion on ``completed_on`` (default today)."""


class PatternStore(ABC):
    @abstractmethod
    def get_hourly(self) -> dict[int, int]:
        """Completion counts keyed by hour of day (0-23); absent means zero."""

    @abstractmethod
    def get_weekly(self) -> dict[int, int]:
        """Completion counts keyed by weekday (0 = Sunday); absent means zero."""

    @abstractmethod
    def record_completion_at(self, completed_at: datetime) -> None:
        """Bump the hourly and weekly buckets for one completion, atomically."""


class HistoryStore(StatsStore, PatternStore):
    """A store holding both the stats aggregate and the patterns."""

    @abstractmethod
    def record_completion(self, completed_at: datetime) -> None:
        """Count one completion, advance the streak and bump both patterns
        as a single write. On failure nothing is recorded."""


class AchievementStore(ABC):
    @abstractmethod
    def list_all(self) -> list[Achievement]: ...

    @abstractmethod
    def get(self, achievement_id: str) -> Achievement | None: ...

    @abstractmethod
    def update_progress(self, achievement_id: str, progress: int) -> None: ...

    @abstractmethod
    def unlock(self, achievement_id: str, unlocked_at: datetime) -> None: ...

    @abstractmethod
    def seed(self, catalog: Iterable[AchievementDefinition]) -> int:
        """Insert catalog entries whose name is not stored yet. Returns count added."""


# ─────────────────────────────────────────────────────────────────────────────
# Shared rules
# ─────────────────────────────────────────────────────────────────────────────


def advance_streak(stats: CompletionStats, completed_on: date) -> CompletionStats:
    """
    Apply one completion day to the streak counters.

    Calendar-day rule:
        - first completion ever: streak = 1
        - same day as last activity: unchanged (at least 1)
        - the day after last activity: +1
        - a longer gap: reset to 1
        - a day before the last activity (late sync): unchanged

    Returns a new CompletionStats; the input is left untouched.
    """
    last = stats.last_active_date
    current = stats.current_streak

    if last is None:
        current = 1
        last = completed_on
    else:
        days = (completed_on - last).days
        if days == 0:
            current = max(current, 1)
        elif days == 1:
            current += 1
            last = completed_on
        elif days > 1:
            current = 1
            last = completed_on

    updated = replace(stats, current_streak=current, last_active_date=last)
    return enforce_streak_invariant(replace(updated, longest_streak=max(updated.longest_streak, current)))


def enforce_streak_invariant(stats: CompletionStats) -> CompletionStats:
    """Clamp longest_streak up to current_streak, logging if it had drifted."""
    if stats.longest_streak < stats.current_streak:
        violation = InvariantViolation(
            f"longest_streak {stats.longest_streak} < current_streak {stats.current_streak}"
        )
        logger.warning("streak_invariant_corrected", error=str(violation))
        return replace(stats, longest_streak=stats.current_streak)
    return stats


def _bump(pattern: dict[int, int], key: int) -> dict[int, int]:
    pattern = dict(pattern)
    pattern[key] = pattern.get(key, 0) + 1
    return pattern


def _load_pattern(raw: str | None) -> dict[int, int]:
    data = json.loads(raw or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"pattern must be a JSON object, got {type(data).__name__}")
    return {int(key): int(count) for key, count in data.items()}


def _dump_pattern(pattern: dict[int, int]) -> str:
    return json.dumps({str(key): count for key, count in sorted(pattern.items())})


def generate_achievement_id() -> str:
    return f"ach_{uuid.uuid4().hex[:12]}"


# ─────────────────────────────────────────────────────────────────────────────
# In-memory implementations
# ─────────────────────────────────────────────────────────────────────────────


class InMemoryStatsStore(HistoryStore):
    """Stats and patterns held in process memory."""

    def __init__(
        self,
        stats: CompletionStats | None = None,
        hourly: dict[int, int] | None = None,
        weekly: dict[int, int] | None = None,
    ):
        self._stats = stats or CompletionStats()
        self._hourly = dict(hourly or {})
        self._weekly = dict(weekly or {})
        self._lock = threading.Lock()

    def get(self) -> CompletionStats:
        with self._lock:
            return replace(self._stats)

    def increment_completed(self) -> None:
        with self._lock:
            self._stats = replace(
                self._stats, total_tasks_completed=self._stats.total_tasks_completed + 1
            )

    def update_streak(self, completed_on: date | None = None) -> None:
        with self._lock:
            self._stats = advance_streak(self._stats, completed_on or date.today())

    def get_hourly(self) -> dict[int, int]:
        with self._lock:
            return dict(self._hourly)

    def get_weekly(self) -> dict[int, int]:
        with self._lock:
            return dict(self._weekly)

    def record_completion_at(self, completed_at: datetime) -> None:
        with self._lock:
            self._hourly = _bump(self._hourly, completed_at.hour)
            self._weekly = _bump(self._weekly, day_of_week(completed_at))

    def record_completion(self, completed_at: datetime) -> None:
        with self._lock:
            stats = replace(self._stats, total_tasks_completed=self._stats.total_tasks_completed + 1)
            stats = advance_streak(stats, completed_at.date())
            hourly = _bump(self._hourly, completed_at.hour)
            weekly = _bump(self._weekly, day_of_week(completed_at))
            self._stats, self._hourly, self._weekly = stats, hourly, weekly


class InMemoryAchievementStore(AchievementStore):
    def __init__(self, achievements: Iterable[Achievement] = ()):
        self._items: dict[str, Achievement] = {a.id: a for a in achievements}
        self._lock = threading.Lock()

    def list_all(self) -> list[Achievement]:
        with self._lock:
            return [replace(a) for a in self._items.values()]

    def get(self, achievement_id: str) -> Achievement | None:
        with self._lock:
            found = self._items.get(achievement_id)
            return replace(found) if found else None

    def update_progress(self, achievement_id: str, progress: int) -> None:
        with self._lock:
            self._require(achievement_id).progress = progress

    def unlock(self, achievement_id: str, unlocked_at: datetime) -> None:
        with self._lock:
            achievement = self._require(achievement_id)
            achievement.unlocked = True
            achievement.unlocked_at = unlocked_at
            achievement.progress = max(achievement.progress, achievement.target)

    def seed(self, catalog: Iterable[AchievementDefinition]) -> int:
        with self._lock:
            existing = {a.name for a in self._items.values()}
            added = 0
            for definition in catalog:
                if definition.name in existing:
                    continue
                achievement = Achievement(
                    id=generate_achievement_id(),
                    type=definition.type,
                    name=definition.name,
                    description=definition.description,
                    target=definition.target,
                    icon_name=definition.icon_name,
                )
                self._items[achievement.id] = achievement
                existing.add(definition.name)
                added += 1
            return added

    def _require(self, achievement_id: str) -> Achievement:
        achievement = self._items.get(achievement_id)
        if achievement is None:
            raise DataUnavailable("achievement_lookup", f"achievement {achievement_id} not found")
        return achievement


# ─────────────────────────────────────────────────────────────────────────────
# SQLite implementations
# ─────────────────────────────────────────────────────────────────────────────


class _SQLiteStore:
    """Connection lifecycle shared by the SQLite stores."""

    def __init__(self, db_path: Path | str = DB_PATH):
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def open(self) -> "_SQLiteStore":
        with self._lock:
            if self._conn is None:
                with self._guard("open"):
                    self.db_path.parent.mkdir(parents=True, exist_ok=True)
                    conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
                    conn.row_factory = sqlite3.Row
                    self._create_tables(conn)
                    conn.commit()
                    self._conn = conn
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.open()
        return self._conn

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (sqlite3.Error, OSError, ValueError, TypeError, AttributeError) as e:
            raise DataUnavailable(operation, str(e)) from e

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        raise NotImplementedError


class SQLiteStatsStore(_SQLiteStore, HistoryStore):
    """Single-row stats aggregate with JSON-encoded hour/weekday patterns."""

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS user_stats (
                id TEXT PRIMARY KEY,
                total_tasks_completed INTEGER NOT NULL DEFAULT 0,
                current_streak INTEGER NOT NULL DEFAULT 0,
                longest_streak INTEGER NOT NULL DEFAULT 0,
                last_active_date TEXT,
                hourly_pattern TEXT NOT NULL DEFAULT '{}',
                weekly_pattern TEXT NOT NULL DEFAULT '{}',
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.execute("INSERT OR IGNORE INTO user_stats (id) VALUES (?)", (STATS_ID,))

    def _row(self) -> sqlite3.Row:
        row = self.connection.execute(
            "SELECT * FROM user_stats WHERE id = ?", (STATS_ID,)
        ).fetchone()
        if row is None:
            raise DataUnavailable("read_stats", "user_stats row missing")
        return row

    @staticmethod
    def _stats_from_row(row: sqlite3.Row) -> CompletionStats:
        return CompletionStats(
            total_tasks_completed=row["total_tasks_completed"],
            current_streak=row["current_streak"],
            longest_streak=row["longest_streak"],
            last_active_date=(
                date.fromisoformat(row["last_active_date"]) if row["last_active_date"] else None
            ),
        )

    def get(self) -> CompletionStats:
        with self._lock, self._guard("read_stats"):
            return self._stats_from_row(self._row())

    def increment_completed(self) -> None:
        with self._lock, self._guard("increment_completed"):
            conn = self.connection
            conn.execute(
                """
                UPDATE user_stats
                SET total_tasks_completed = total_tasks_completed + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
            """,
                (STATS_ID,),
            )
            conn.commit()

    def update_streak(self, completed_on: date | None = None) -> None:
        with self._lock:
            stats = advance_streak(self.get(), completed_on or date.today())
            with self._guard("update_streak"):
                conn = self.connection
                conn.execute(
                    """
                    UPDATE user_stats
                    SET current_streak = ?, longest_streak = ?, last_active_date = ?,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                """,
                    (
                        stats.current_streak,
                        stats.longest_streak,
                        stats.last_active_date.isoformat() if stats.last_active_date else None,
                        STATS_ID,
                    ),
                )
                conn.commit()

    def get_hourly(self) -> dict[int, int]:
        with self._lock, self._guard("read_hourly_pattern"):
            return _load_pattern(self._row()["hourly_pattern"])

    def get_weekly(self) -> dict[int, int]:
        with self._lock, self._guard("read_weekly_pattern"):
            return _load_pattern(self._row()["weekly_pattern"])

    def record_completion_at(self, completed_at: datetime) -> None:
        with self._lock, self._guard("record_completion_pattern"):
            row = self._row()
            hourly = _bump(_load_pattern(row["hourly_pattern"]), completed_at.hour)
            weekly = _bump(_load_pattern(row["weekly_pattern"]), day_of_week(completed_at))

            conn = self.connection
            conn.execute(
                """
                UPDATE user_stats
                SET hourly_pattern = ?, weekly_pattern = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
            """,
                (_dump_pattern(hourly), _dump_pattern(weekly), STATS_ID),
            )
            conn.commit()

    def record_completion(self, completed_at: datetime) -> None:
        with self._lock, self._guard("record_completion"):
            row = self._row()
            stats = self._stats_from_row(row)
            stats = advance_streak(
                replace(stats, total_tasks_completed=stats.total_tasks_completed + 1),
                completed_at.date(),
            )
            hourly = _bump(_load_pattern(row["hourly_pattern"]), completed_at.hour)
            weekly = _bump(_load_pattern(row["weekly_pattern"]), day_of_week(completed_at))

            conn = self.connection
            conn.execute(
                """
                UPDATE user_stats
                SET total_tasks_completed = ?, current_streak = ?, longest_streak = ?,
                    last_active_date = ?, hourly_pattern = ?, weekly_pattern = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
            """,
                (
                    stats.total_tasks_completed,
                    stats.current_streak,
                    stats.longest_streak,
                    stats.last_active_date.isoformat(),
                    _dump_pattern(hourly),
                    _dump_pattern(weekly),
                    STATS_ID,
                ),
            )
            conn.commit()


class SQLiteAchievementStore(_SQLiteStore, AchievementStore):
    def _create_tables(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS achievements (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL CHECK(type IN ('streak', 'milestone', 'special')),
                name TEXT NOT NULL UNIQUE,
                description TEXT,
                target INTEGER NOT NULL,
                icon_name TEXT,
                progress INTEGER NOT NULL DEFAULT 0,
                unlocked INTEGER NOT NULL DEFAULT 0,
                unlocked_at TEXT
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_achievements_type ON achievements(type)")

    def list_all(self) -> list[Achievement]:
        with self._lock, self._guard("list_achievements"):
            rows = self.connection.execute("SELECT * FROM achievements ORDER BY rowid").fetchall()
            return [Achievement.from_dict(dict(row)) for row in rows]

    def get(self, achievement_id: str) -> Achievement | None:
        with self._lock, self._guard("get_achievement"):
            row = self.connection.execute(
                "SELECT * FROM achievements WHERE id = ?", (achievement_id,)
            ).fetchone()
            return Achievement.from_dict(dict(row)) if row else None

    def update_progress(self, achievement_id: str, progress: int) -> None:
        with self._lock, self._guard("update_achievement_progress"):
            conn = self.connection
            cursor = conn.execute(
                "UPDATE achievements SET progress = ? WHERE id = ?", (progress, achievement_id)
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise DataUnavailable("update_achievement_progress", f"achievement {achievement_id} not found")

    def unlock(self, achievement_id: str, unlocked_at: datetime) -> None:
        with self._lock, self._guard("unlock_achievement"):
            conn = self.connection
            cursor = conn.execute(
                """
                UPDATE achievements
                SET unlocked = 1, unlocked_at = ?, progress = MAX(progress, target)
                WHERE id = ?
            """,
                (unlocked_at.isoformat(), achievement_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise DataUnavailable("unlock_achievement", f"achievement {achievement_id} not found")

    def seed(self, catalog: Iterable[AchievementDefinition]) -> int:
        with self._lock, self._guard("seed_achievements"):
            conn = self.connection
            added = 0
            for definition in catalog:
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO achievements (id, type, name, description, target, icon_name)
                    VALUES (?, ?, ?, ?, ?, ?)
                """,
                    (
                        generate_achievement_id(),
                        definition.type.value,
                        definition.name,
                        definition.description,
                        definition.target,
                        definition.icon_name,
                    ),
                )
                added += cursor.rowcount
            conn.commit()
            return added


__all__ = [
    "AchievementStore",
    "HistoryStore",
    "InMemoryAchievementStore",
    "InMemoryStatsStore",
    "PatternStore",
    "SQLiteAchievementStore",
    "SQLiteStatsStore",
    "StatsStore",
    "advance_streak",
    "enforce_streak_invariant",
]
