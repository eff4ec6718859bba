#!/usr/bin/env python3
"""
Brio Command Line Interface

Main entry point for the `brio` command. Every command prints a JSON
result on stdout and exits non-zero when ``success`` is false.

Usage:
    brio suggest --title "File taxes" --priority high
    brio record --title "Pay rent" --at 2026-10-19T09:30
    brio predict --at 2026-10-20T09:00
    brio stats
    brio achievements --type streak
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from brio.logging_config import setup_logging
from brio.planning import ACHIEVEMENT_TYPES, DB_PATH, PRIORITIES
from brio.planning.achievements import DEFAULT_ACHIEVEMENTS, AchievementEvaluator
from brio.planning.config import load_config
from brio.planning.context import StaticContextProvider
from brio.planning.engine import SuggestionEngine
from brio.planning.errors import InvalidInput, PlanningError
from brio.planning.models import CompletedTask, ContextSnapshot, TaskDraft
from brio.planning.stores import SQLiteAchievementStore, SQLiteStatsStore


def _context_from_args(args) -> ContextSnapshot:
    return ContextSnapshot(
        is_deep_work_possible=args.deep_work,
        battery_level=args.battery,
        is_charging=not args.on_battery,
        is_commuting=args.commuting,
    )


def _parse_time(value: str | None, flag: str) -> datetime:
    if value is None:
        return datetime.now()
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise InvalidInput(f"{flag} must be an ISO timestamp, got {value!r}") from None


def _battery_level(value: str) -> float:
    try:
        level = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid battery level: {value!r}") from None
    if not 0.0 <= level <= 1.0:
        raise argparse.ArgumentTypeError(f"battery level must be between 0 and 1, got {value}")
    return level


def _engine(args, store: SQLiteStatsStore) -> SuggestionEngine:
    return SuggestionEngine(
        stats_store=store,
        pattern_store=store,
        context_provider=StaticContextProvider(_context_from_args(args)),
        config=load_config(args.config),
    )


def cmd_suggest(args) -> dict[str, Any]:
    draft = TaskDraft(
        title=args.title,
        due_date=_parse_time(args.due, "--due"),
        priority=args.priority,
        category=args.category,
    )
    with SQLiteStatsStore(args.db) as store:
        engine = _engine(args, store)
        suggestion = asyncio.run(engine.get_suggestions(draft))
        return {
            "success": True,
            "task": draft.title,
            "priority": draft.priority.value,
            "confident": engine.is_confident(suggestion),
            **suggestion.to_dict(),
        }


def cmd_record(args) -> dict[str, Any]:
    completed_at = _parse_time(args.at, "--at")
    with SQLiteStatsStore(args.db) as store, SQLiteAchievementStore(args.db) as achievements:
        engine = _engine(args, store)
        engine.record_completion(CompletedTask(title=args.title, completed_at=completed_at))

        achievements.seed(DEFAULT_ACHIEVEMENTS)
        stats = store.get()
        unlocked = AchievementEvaluator(achievements).check(stats)
        return {
            "success": True,
            "completed_at": completed_at.isoformat(),
            "stats": stats.to_dict(),
            "newly_unlocked": [a.to_dict() for a in unlocked],
        }


def cmd_predict(args) -> dict[str, Any]:
    candidate = _parse_time(args.at, "--at")
    with SQLiteStatsStore(args.db) as store:
        probability = asyncio.run(_engine(args, store).predict_completion_probability(candidate))
        return {"success": True, "time": candidate.isoformat(), "probability": round(probability, 3)}


def cmd_stats(args) -> dict[str, Any]:
    with SQLiteStatsStore(args.db) as store:
        engine = _engine(args, store)
        return {
            "success": True,
            "stats": store.get().to_dict(),
            "patterns": engine.analyze_patterns().to_dict(),
            "optimal_hour": engine.get_optimal_hour(),
        }


def cmd_achievements(args) -> dict[str, Any]:
    with SQLiteAchievementStore(args.db) as store:
        store.seed(DEFAULT_ACHIEVEMENTS)
        evaluator = AchievementEvaluator(store)
        if args.type:
            listed = evaluator.get_by_type(args.type)
        else:
            listed = store.list_all()
        return {
            "success": True,
            "achievements": [
                {**a.to_dict(), "percent": round(evaluator.get_progress(a.id), 1)} for a in listed
            ],
            "summary": evaluator.get_summary(),
        }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="brio",
        description="Brio - learn when you get things done, schedule tasks accordingly",
    )
    parser.add_argument("--db", type=Path, default=DB_PATH, help=f"SQLite database (default: {DB_PATH})")
    parser.add_argument("--config", type=Path, default=None, help="Planning YAML config")
    parser.add_argument("--log-level", default=None, help="Log level (default: $BRIO_LOG_LEVEL or INFO)")

    context = parser.add_argument_group("context", "Device context used for 'right now' scoring")
    context.add_argument("--deep-work", action="store_true", help="Deep work is possible right now")
    context.add_argument("--battery", type=_battery_level, default=1.0, help="Battery level 0-1 (default: 1.0)")
    context.add_argument("--on-battery", action="store_true", help="Device is not charging")
    context.add_argument("--commuting", action="store_true", help="User is commuting")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    suggest_parser = subparsers.add_parser("suggest", help="Suggest a time for a new task")
    suggest_parser.add_argument("--title", required=True, help="Task title")
    suggest_parser.add_argument("--priority", choices=PRIORITIES, default="medium")
    suggest_parser.add_argument("--due", help="Due date (ISO, default: now)")
    suggest_parser.add_argument("--category", help="Task category")
    suggest_parser.set_defaults(func=cmd_suggest)

    record_parser = subparsers.add_parser("record", help="Record a task completion")
    record_parser.add_argument("--title", default="", help="Task title")
    record_parser.add_argument("--at", help="Completion time (ISO, default: now)")
    record_parser.set_defaults(func=cmd_record)

    predict_parser = subparsers.add_parser("predict", help="Completion probability for a time")
    predict_parser.add_argument("--at", required=True, help="Candidate time (ISO)")
    predict_parser.set_defaults(func=cmd_predict)

    stats_parser = subparsers.add_parser("stats", help="Show stats and learned patterns")
    stats_parser.set_defaults(func=cmd_stats)

    achievements_parser = subparsers.add_parser("achievements", help="List achievements")
    achievements_parser.add_argument("--type", choices=ACHIEVEMENT_TYPES)
    achievements_parser.set_defaults(func=cmd_achievements)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        result = args.func(args)
    except PlanningError as e:
        result = {"success": False, "error": str(e)}

    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
