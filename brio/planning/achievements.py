"""
Tool: Achievements
Purpose: Score achievement progress from completion stats

Rules:
    streak      - progress is the current streak, unlocks at target
    milestone   - progress is the total completed, unlocks at target
    special     - named predicates (see SPECIAL_RULES)

Unlocking is one-way. check() returns only the achievements that
unlocked during that call, so calling it twice with the same stats
returns an empty list the second time.

Usage:
    evaluator = AchievementEvaluator(store)
    store.seed(DEFAULT_ACHIEVEMENTS)
    for achievement in evaluator.check(stats_store.get()):
        notify(achievement.name)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any

from brio.logging_config import get_logger
from brio.planning.errors import DataUnavailable
from brio.planning.models import (
    Achievement,
    AchievementDefinition,
    AchievementType,
    CompletionStats,
)
from brio.planning.stores import AchievementStore

logger = get_logger(__name__)


def _streak(name: str, target: int, icon: str) -> AchievementDefinition:
    return AchievementDefinition(
        AchievementType.STREAK, name, f"Complete tasks for {target} days in a row", target, icon
    )


def _milestone(name: str, target: int, icon: str, description: str | None = None) -> AchievementDefinition:
    return AchievementDefinition(
        AchievementType.MILESTONE, name, description or f"Complete {target} tasks", target, icon
    )


DEFAULT_ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    _streak("Daily Spark", 1, "fire"),
    _streak("3-Day Streak", 3, "3-day-streak"),
    _streak("5-Day Flow", 5, "fire"),
    _streak("7-Day Streak", 7, "7-day-streak"),
    _streak("10-Day Groove", 10, "fire"),
    _streak("14-Day Streak", 14, "14-day-streak"),
    _streak("21-Day Habit", 21, "medal"),
    _streak("30-Day Streak", 30, "30-day-streak"),
    _streak("45-Day Burn", 45, "fire"),
    _streak("60-Day Rhythm", 60, "medal"),
    _streak("75-Day Surge", 75, "trophy"),
    _streak("100-Day Streak", 100, "100-day-streak"),
    _streak("150-Day Marathon", 150, "trophy"),
    _streak("250-Day Evergreen", 250, "award"),
    _streak("365-Day Legend", 365, "trophy"),
    _milestone("First Five", 5, "check-circle"),
    _milestone("First Steps", 10, "complete-10-tasks", "Complete your first 10 tasks"),
    _milestone("Fifteen Focus", 15, "star"),
    _milestone("Quarter Century", 25, "check-circle"),
    _milestone("Habit Builder", 40, "star"),
    _milestone("Getting Started", 50, "complete-50-tasks"),
    _milestone("Flow Starter", 60, "star"),
    _milestone("Seventy-Five Sprint", 75, "medal"),
    _milestone("Productive", 100, "complete-100-tasks"),
    _milestone("Precision Planner", 125, "medal"),
    _milestone("Century and a Half", 150, "award"),
    _milestone("Two Hundred Triumph", 200, "trophy"),
    _milestone("Quartermaster", 250, "award"),
    _milestone("Pace Setter", 300, "medal"),
    _milestone("Consistency Captain", 400, "star"),
    _milestone("Task Master", 500, "trophy"),
    _milestone("Six Hundred Grind", 600, "fire"),
    _milestone("Iron Will", 750, "medal"),
    _milestone("Task Titan", 1000, "trophy"),
    _milestone("Relentless Runner", 1250, "fire"),
    _milestone("Marathon Mind", 1500, "trophy"),
    _milestone("Ultra Finisher", 1750, "trophy"),
    _milestone("Legendary Planner", 2000, "medal"),
    _milestone("Infinity Loop", 2500, "trophy"),
    AchievementDefinition(AchievementType.SPECIAL, "First Task", "Complete your first task", 1, "star"),
    AchievementDefinition(AchievementType.SPECIAL, "Perfect Week", "Complete tasks every day for a week", 1, "award"),
)

# name -> predicate; a met predicate means progress 1 of target 1
SPECIAL_RULES: dict[str, Callable[[CompletionStats], bool]] = {
    "First Task": lambda stats: stats.total_tasks_completed > 0,
    "Perfect Week": lambda stats: stats.current_streak >= 7,
}


def measure(achievement: Achievement, stats: CompletionStats) -> tuple[int, bool]:
    """Return (progress, should_unlock) for one achievement."""
    if achievement.type == AchievementType.STREAK:
        return stats.current_streak, stats.current_streak >= achievement.target
    if achievement.type == AchievementType.MILESTONE:
        return stats.total_tasks_completed, stats.total_tasks_completed >= achievement.target

    rule = SPECIAL_RULES.get(achievement.name)
    if rule is None:
        logger.debug("special_achievement_without_rule", name=achievement.name)
        return 0, False
    met = rule(stats)
    return (1 if met else 0), met


class AchievementEvaluator:
    def __init__(self, store: AchievementStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self._clock = clock

    def check(self, stats: CompletionStats) -> list[Achievement]:
        """Update progress and unlock what the stats now qualify for.

        Returns:
            Achievements that moved from locked to unlocked in this call.
        """
        newly_unlocked: list[Achievement] = []
        try:
            for achievement in self.store.list_all():
                if achievement.unlocked:
                    continue

                progress, should_unlock = measure(achievement, stats)
                if progress != achievement.progress:
                    self.store.update_progress(achievement.id, progress)

                if should_unlock:
                    unlocked_at = self._clock()
                    self.store.unlock(achievement.id, unlocked_at)
                    newly_unlocked.append(
                        replace(
                            achievement,
                            unlocked=True,
                            unlocked_at=unlocked_at,
                            progress=max(progress, achievement.target),
                        )
                    )
        except DataUnavailable as e:
            logger.error("achievement_check_failed", error=str(e), unlocked_so_far=len(newly_unlocked))

        for achievement in newly_unlocked:
            logger.info("achievement_unlocked", name=achievement.name, type=achievement.type.value)
        return newly_unlocked

    def get_progress(self, achievement_id: str) -> float:
        """Progress toward target as a percentage (0 when unknown)."""
        try:
            achievement = self.store.get(achievement_id)
        except DataUnavailable as e:
            logger.warning("achievement_progress_unavailable", achievement_id=achievement_id, error=str(e))
            return 0.0
        if achievement is None or achievement.target <= 0:
            return 0.0
        return achievement.progress / achievement.target * 100

    def get_unlocked(self) -> list[Achievement]:
        return [a for a in self._all() if a.unlocked]

    def get_locked(self) -> list[Achievement]:
        return [a for a in self._all() if not a.unlocked]

    def get_by_type(self, achievement_type: AchievementType | str) -> list[Achievement]:
        achievement_type = AchievementType(achievement_type)
        return [a for a in self._all() if a.type == achievement_type]

    def get_summary(self) -> dict[str, Any]:
        achievements = self._all()
        total = len(achievements)
        unlocked = sum(1 for a in achievements if a.unlocked)
        return {
            "total": total,
            "unlocked": unlocked,
            "locked": total - unlocked,
            "percent_complete": (unlocked / total * 100) if total else 0.0,
        }

    def _all(self) -> list[Achievement]:
        try:
            return self.store.list_all()
        except DataUnavailable as e:
            logger.warning("achievements_unavailable", error=str(e))
            return []


__all__ = [
    "AchievementEvaluator",
    "DEFAULT_ACHIEVEMENTS",
    "SPECIAL_RULES",
    "measure",
]
