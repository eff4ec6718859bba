"""
Tool: Suggestion Engine
Purpose: Suggest when to schedule a task from learned completion patterns

The engine combines:
1. Time-of-day analysis (which hours tasks actually get completed)
2. Day-of-week analysis (which weekdays are most productive)
3. Task priority (how soon the task should land)
4. Current context (deep work possible, battery, commuting)

Until min_samples completions (5 by default) are recorded, suggestions
fall back to priority defaults:
    high   -> two hours from now
    medium -> tomorrow 09:00
    low    -> two days from now at 14:00

Confidence is a heuristic in [0.1, 0.9]: 60% hour-of-day share, 40%
weekday share, scaled by context when the candidate is "right now".

Failure handling:
    Store reads that fail fall back to the priority default with a
    neutral 0.5 confidence. Context reads that fail or time out use a
    neutral snapshot. Malformed drafts raise InvalidInput.

Usage:
    engine = SuggestionEngine(store, store, StaticContextProvider())
    engine.record_completion(CompletedTask("Pay rent", completed_at=datetime.now()))
    suggestion = await engine.get_suggestions(
        TaskDraft(title="File taxes", due_date=datetime.now(), priority="high")
    )
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from brio.logging_config import get_logger
from brio.planning.config import PlanningConfig
from brio.planning.context import ContextProvider, fetch_context
from brio.planning.errors import DataUnavailable, InvalidInput
from brio.planning.models import (
    AlternativeSuggestion,
    CompletedTask,
    CompletionStats,
    ContextSnapshot,
    PatternSummary,
    Priority,
    Suggestion,
    TaskDraft,
    day_name,
    day_of_week,
)
from brio.planning.stores import HistoryStore, PatternStore, StatsStore

logger = get_logger(__name__)

ALTERNATIVE_SHIFT = timedelta(hours=3)
MAX_ALTERNATIVES = 2
TOP_RANKED = 3

# Days ahead, per priority, when no weekday history exists
DEFAULT_DAY_OFFSETS = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


@dataclass
class History:
    """One consistent read of the stats and both patterns."""

    stats: CompletionStats
    hourly: dict[int, int]
    weekly: dict[int, int]


def rank_buckets(pattern: dict[int, int], limit: int = TOP_RANKED) -> list[tuple[int, int]]:
    """Top buckets by count, highest first; ties go to the lowest key."""
    ranked = sorted(
        ((key, count) for key, count in pattern.items() if count > 0),
        key=lambda item: (-item[1], item[0]),
    )
    return ranked[:limit]


def bucket_score(pattern: dict[int, int], key: int) -> float:
    peak = max(pattern.values(), default=0)
    if peak <= 0:
        return 0.5
    return pattern.get(key, 0) / peak


def time_of_day(hour: int) -> str:
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    return "evening"


class SuggestionEngine:
    """
    Pattern-based scheduling suggestions.

    Collaborators are injected; the engine holds no history of its own, so
    every call reflects the stores as they are at that moment.

    Args:
        stats_store: Completion counters and streak.
        pattern_store: Hour-of-day and day-of-week histograms.
        context_provider: Source of the current ContextSnapshot.
        config: Tunables; defaults to PlanningConfig().
        clock: Returns the current local time.
    """

    def __init__(
        self,
        stats_store: StatsStore,
        pattern_store: PatternStore,
        context_provider: ContextProvider,
        config: PlanningConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.stats_store = stats_store
        self.pattern_store = pattern_store
        self.context_provider = context_provider
        self.config = config or PlanningConfig()
        self._clock = clock

    @property
    def min_samples(self) -> int:
        return self.config.min_samples

    @property
    def learning_rate(self) -> float:
        return self.config.learning_rate

    @property
    def confidence_threshold(self) -> float:
        return self.config.confidence_threshold

    # ─────────────────────────────────────────────────────────────────────
    # Recording
    # ─────────────────────────────────────────────────────────────────────

    def record_completion(self, task: CompletedTask) -> None:
        """
        Feed one genuine completion into the stats and patterns.

        Call exactly once per completion: a second call for the same task
        is counted again. When one HistoryStore backs both stats and
        patterns the completion is a single write; otherwise the pattern
        is written first, so a failed write is never counted in the totals.
        """
        if not isinstance(task, CompletedTask) or not isinstance(task.completed_at, datetime):
            raise InvalidInput("record_completion requires a task with a completed_at timestamp")

        completed_at = task.completed_at
        try:
            if self.stats_store is self.pattern_store and isinstance(self.stats_store, HistoryStore):
                self.stats_store.record_completion(completed_at)
            else:
                self.pattern_store.record_completion_at(completed_at)
                self.stats_store.increment_completed()
                self.stats_store.update_streak(completed_at.date())
        except DataUnavailable as e:
            logger.error(
                "record_completion_failed",
                title=task.title,
                completed_at=completed_at.isoformat(),
                error=str(e),
            )
            return

        self.analyze_patterns()

    def analyze_patterns(self) -> PatternSummary:
        """Summarize peak hours and productive days; logs the result."""
        history = self._read_history("analyze_patterns")
        if history is None:
            return PatternSummary()

        stats = history.stats
        summary = PatternSummary(
            total_completions=stats.total_tasks_completed,
            peak_hours=[{"hour": h, "count": c} for h, c in rank_buckets(history.hourly)],
            productive_days=[
                {"day": d, "name": day_name(d), "count": c} for d, c in rank_buckets(history.weekly)
            ],
            current_streak=stats.current_streak,
            longest_streak=stats.longest_streak,
            sufficient_data=stats.total_tasks_completed >= self.min_samples,
        )

        if summary.sufficient_data:
            logger.info(
                "pattern_analysis",
                total_completions=summary.total_completions,
                peak_hours=[p["hour"] for p in summary.peak_hours],
                productive_days=[p["name"] for p in summary.productive_days],
                current_streak=summary.current_streak,
            )
        else:
            logger.debug("pattern_analysis_insufficient_data", total_completions=stats.total_tasks_completed)
        return summary

    # ─────────────────────────────────────────────────────────────────────
    # Suggesting
    # ─────────────────────────────────────────────────────────────────────

    def get_optimal_hour(self) -> int:
        history = self._read_history("get_optimal_hour")
        if history is None:
            return self.config.default_hour
        return self._optimal_hour(history)

    async def suggest_time(self, task: TaskDraft) -> datetime:
        self._validate_draft(task)
        now = self._clock()
        history = self._read_history("suggest_time", priority=task.priority.value)
        context = await self._fetch_context()
        return self._suggest_time(task, now, history, context)

    async def predict_completion_probability(self, candidate: datetime) -> float:
        if not isinstance(candidate, datetime):
            raise InvalidInput("candidate time must be a datetime")

        now = self._clock()
        history = self._read_history("predict_completion_probability", candidate=candidate.isoformat())
        if history is None or history.stats.total_tasks_completed < self.min_samples:
            return 0.5

        context = ContextSnapshot.neutral()
        if self._is_now(candidate, now):
            context = await self._fetch_context()
        return self._probability(candidate, now, history, context)

    async def get_suggestions(self, task: TaskDraft) -> Suggestion:
        self._validate_draft(task)
        now = self._clock()
        history = self._read_history("get_suggestions", priority=task.priority.value)
        context = await self._fetch_context()

        suggested = self._suggest_time(task, now, history, context)
        confidence = self._probability(suggested, now, history, context)

        suggestion = Suggestion(
            suggested_time=suggested,
            confidence=confidence,
            reason=self._reason(task, suggested, history),
            alternatives=self._alternatives(suggested, now, history, context),
        )
        logger.debug(
            "suggestion_built",
            priority=task.priority.value,
            suggested_time=suggested.isoformat(),
            confidence=round(confidence, 3),
        )
        return suggestion

    def is_confident(self, suggestion: Suggestion) -> bool:
        """Whether a suggestion clears the advisory confidence threshold."""
        return suggestion.confidence >= self.confidence_threshold

    # ─────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────

    def _validate_draft(self, task: TaskDraft) -> None:
        if not isinstance(task, TaskDraft):
            raise InvalidInput(f"expected a TaskDraft, got {type(task).__name__}")
        if not isinstance(task.due_date, datetime):
            raise InvalidInput("Task due_date is required")
        if not isinstance(task.priority, Priority):
            task.priority = Priority.parse(task.priority)

    def _read_history(self, operation: str, **summary) -> History | None:
        try:
            return History(
                stats=self.stats_store.get(),
                hourly=self.pattern_store.get_hourly(),
                weekly=self.pattern_store.get_weekly(),
            )
        except DataUnavailable as e:
            logger.warning("history_unavailable", operation=operation, error=str(e), **summary)
            return None

    async def _fetch_context(self) -> ContextSnapshot:
        return await fetch_context(self.context_provider, self.config.context_timeout_seconds)

    def _is_now(self, candidate: datetime, now: datetime) -> bool:
        return abs(candidate - now) < timedelta(minutes=self.config.now_window_minutes)

    def _suggest_time(
        self,
        task: TaskDraft,
        now: datetime,
        history: History | None,
        context: ContextSnapshot,
    ) -> datetime:
        if history is None:
            return self._default_suggestion(task, now)

        if context.is_deep_work_possible and task.priority == Priority.HIGH:
            return now + timedelta(minutes=self.config.deep_work_lead_minutes)

        if history.stats.total_tasks_completed < self.min_samples:
            return self._default_suggestion(task, now)

        hour = self._optimal_hour(history)
        offset = self._optimal_day_offset(task, history.weekly, now)
        suggested = (now + timedelta(days=offset)).replace(hour=hour, minute=0, second=0, microsecond=0)
        return self._adjust_for_priority(suggested, task.priority, now)

    def _default_suggestion(self, task: TaskDraft, now: datetime) -> datetime:
        if task.priority == Priority.HIGH:
            return now + timedelta(hours=2)
        if task.priority == Priority.MEDIUM:
            return (now + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
        return (now + timedelta(days=2)).replace(hour=14, minute=0, second=0, microsecond=0)

    def _optimal_hour(self, history: History) -> int:
        if history.stats.total_tasks_completed < self.min_samples:
            return self.config.default_hour
        ranked = rank_buckets(history.hourly)
        return ranked[0][0] if ranked else self.config.default_hour

    def _optimal_day_offset(self, task: TaskDraft, weekly: dict[int, int], now: datetime) -> int:
        ranked = [day for day, _ in rank_buckets(weekly)]
        if not ranked:
            return DEFAULT_DAY_OFFSETS[task.priority]

        today = day_of_week(now)
        if task.priority == Priority.HIGH:
            # First day in rank order that has not passed yet this week
            upcoming = next((day for day in ranked if day >= today), None)
            return upcoming - today if upcoming is not None else 0

        days_until = (ranked[0] - today + 7) % 7
        return 7 if days_until == 0 else days_until

    def _adjust_for_priority(self, suggested: datetime, priority: Priority, now: datetime) -> datetime:
        if priority == Priority.HIGH and suggested - now > timedelta(hours=24):
            return now + timedelta(hours=4)
        if priority == Priority.LOW and suggested - now < timedelta(hours=24):
            return suggested + timedelta(days=2)
        return suggested

    def _probability(
        self,
        candidate: datetime,
        now: datetime,
        history: History | None,
        context: ContextSnapshot,
    ) -> float:
        if history is None or history.stats.total_tasks_completed < self.min_samples:
            return 0.5

        hour_score = bucket_score(history.hourly, candidate.hour)
        day_score = bucket_score(history.weekly, day_of_week(candidate))

        multiplier = 1.0
        if self._is_now(candidate, now):
            if context.is_deep_work_possible:
                multiplier *= 1.2
            if context.battery_level < 0.15 and not context.is_charging:
                multiplier *= 0.7
            if context.is_commuting:
                multiplier *= 0.5

        probability = (hour_score * 0.6 + day_score * 0.4) * multiplier
        return max(0.1, min(0.9, probability))

    def _reason(self, task: TaskDraft, suggested: datetime, history: History | None) -> str:
        if history is None or history.stats.total_tasks_completed < self.min_samples:
            return f"Based on {task.priority.value} priority"
        period = time_of_day(suggested.hour)
        return f"You're most productive in the {period} based on your completion history"

    def _alternatives(
        self,
        suggested: datetime,
        now: datetime,
        history: History | None,
        context: ContextSnapshot,
    ) -> list[AlternativeSuggestion]:
        candidates = []
        earlier = suggested - ALTERNATIVE_SHIFT
        if earlier > now:
            candidates.append((earlier, "Earlier time slot"))
        candidates.append((suggested + ALTERNATIVE_SHIFT, "Later time slot"))
        candidates.append((suggested + timedelta(days=1), "Next day"))

        alternatives = [
            AlternativeSuggestion(
                time=time, confidence=self._probability(time, now, history, context), reason=reason
            )
            for time, reason in candidates
        ]
        # Stable sort keeps earlier/later/next-day order among equal scores
        alternatives.sort(key=lambda alt: alt.confidence, reverse=True)
        return alternatives[:MAX_ALTERNATIVES]


__all__ = ["History", "SuggestionEngine", "bucket_score", "rank_buckets", "time_of_day"]
