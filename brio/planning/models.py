"""
Tool: Planning Models
Purpose: Data structures shared by the stores, the engine and the CLI

Usage:
    from brio.planning.models import (
        CompletionStats,
        ContextSnapshot,
        Priority,
        Suggestion,
        TaskDraft,
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from brio.planning import DAY_NAMES
from brio.planning.errors import InvalidInput


class Priority(StrEnum):
    """Task priority as chosen in the task creation form."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidInput(
                f"Invalid priority: {value!r}. Must be one of: {', '.join(p.value for p in cls)}"
            ) from None


class AchievementType(StrEnum):
    STREAK = "streak"
    MILESTONE = "milestone"
    SPECIAL = "special"


def day_of_week(moment: datetime | date) -> int:
    """Weekday with 0 = Sunday, the numbering used by the weekly pattern."""
    return (moment.weekday() + 1) % 7


def day_name(day: int) -> str:
    return DAY_NAMES[day % 7]


def _parse_datetime(value: Any, field_name: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            raise InvalidInput(f"Invalid {field_name}: {value!r} is not an ISO timestamp") from None
    raise InvalidInput(f"Invalid {field_name}: expected a timestamp, got {type(value).__name__}")


@dataclass
class CompletionStats:
    """
    Completion counters for one installation.

    Mutated only through a StatsStore in response to completion events.
    """

    total_tasks_completed: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: date | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tasks_completed": self.total_tasks_completed,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_active_date": self.last_active_date.isoformat() if self.last_active_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompletionStats":
        data = data.copy()
        if isinstance(data.get("last_active_date"), str):
            data["last_active_date"] = date.fromisoformat(data["last_active_date"])
        return cls(**data)


@dataclass
class TaskDraft:
    """
    A task being created or edited, before it has a confirmed time.

    Validation runs on construction: a draft without a due date or with an
    unknown priority raises InvalidInput.
    """

    title: str
    due_date: datetime
    priority: Priority = Priority.MEDIUM
    notes: str | None = None
    due_time: datetime | None = None
    category: str | None = None

    def __post_init__(self):
        if not isinstance(self.title, str):
            raise InvalidInput("Task title must be a string")
        if self.due_date is None:
            raise InvalidInput("Task due_date is required")
        self.due_date = _parse_datetime(self.due_date, "due_date")
        self.due_time = _parse_datetime(self.due_time, "due_time")
        self.priority = Priority.parse(self.priority)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskDraft":
        if "due_date" not in data:
            raise InvalidInput("Task due_date is required")
        return cls(
            title=data.get("title", ""),
            due_date=data["due_date"],
            priority=data.get("priority", Priority.MEDIUM),
            notes=data.get("notes"),
            due_time=data.get("due_time"),
            category=data.get("category"),
        )


@dataclass
class CompletedTask:
    """A task the user just marked done."""

    title: str
    completed_at: datetime | None
    category: str | None = None
    priority: Priority | None = None


@dataclass(frozen=True)
class ContextSnapshot:
    """Point-in-time device signals used to bias "right now" suggestions."""

    is_deep_work_possible: bool = False
    battery_level: float = 1.0
    is_charging: bool = True
    is_commuting: bool = False

    def __post_init__(self):
        if not 0.0 <= self.battery_level <= 1.0:
            raise InvalidInput(f"battery_level must be between 0 and 1, got {self.battery_level}")

    @classmethod
    def neutral(cls) -> "ContextSnapshot":
        """Snapshot used when the real context cannot be read in time."""
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_deep_work_possible": self.is_deep_work_possible,
            "battery_level": self.battery_level,
            "is_charging": self.is_charging,
            "is_commuting": self.is_commuting,
        }


@dataclass
class AlternativeSuggestion:
    time: datetime
    confidence: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "confidence": round(self.confidence, 3),
            "reason": self.reason,
        }


@dataclass
class Suggestion:
    """Primary suggested time plus up to two ranked alternatives."""

    suggested_time: datetime
    confidence: float
    reason: str
    alternatives: list[AlternativeSuggestion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "suggested_time": self.suggested_time.isoformat(),
            "confidence": round(self.confidence, 3),
            "reason": self.reason,
            "alternatives": [alt.to_dict() for alt in self.alternatives],
        }


@dataclass
class PatternSummary:
    total_completions: int = 0
    peak_hours: list[dict[str, int]] = field(default_factory=list)
    productive_days: list[dict[str, Any]] = field(default_factory=list)
    current_streak: int = 0
    longest_streak: int = 0
    sufficient_data: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_completions": self.total_completions,
            "peak_hours": self.peak_hours,
            "productive_days": self.productive_days,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "sufficient_data": self.sufficient_data,
        }


@dataclass(frozen=True)
class AchievementDefinition:
    type: AchievementType
    name: str
    description: str
    target: int
    icon_name: str


@dataclass
class Achievement:
    """Stored achievement with its progress and unlock state."""

    id: str
    type: AchievementType
    name: str
    description: str
    target: int
    icon_name: str = "star"
    progress: int = 0
    unlocked: bool = False
    unlocked_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "target": self.target,
            "icon_name": self.icon_name,
            "progress": self.progress,
            "unlocked": self.unlocked,
            "unlocked_at": self.unlocked_at.isoformat() if self.unlocked_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Achievement":
        data = data.copy()
        data["type"] = AchievementType(data["type"])
        data["unlocked"] = bool(data.get("unlocked", False))
        if isinstance(data.get("unlocked_at"), str):
            data["unlocked_at"] = datetime.fromisoformat(data["unlocked_at"])
        return cls(**data)
