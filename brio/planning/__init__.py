"""Planning - Learn when tasks get done, suggest when to schedule them

Philosophy:
    Learn from behavior, not configuration forms.
    Every completed task is a data point: the hour it was finished and
    the day of the week both feed a histogram. Suggestions come from
    those histograms, nudged by task priority and what the device says
    about right now.

Components:
    models.py: Dataclasses for stats, drafts, context and suggestions
    stores.py: Stats/pattern/achievement stores (in-memory and SQLite)
    context.py: Context providers with bounded-time fetch
    engine.py: SuggestionEngine - suggested time, confidence, alternatives
    achievements.py: Achievement catalog and progress evaluation

Safety Rules:
    1. Graceful degradation when data is insufficient or unreadable
    2. Suggestions are never persisted; they are a pure function of
       the current history, context and draft
    3. Malformed drafts are rejected, never silently defaulted

Database: data/brio.db
    - user_stats: Single-row completion counters, streak and patterns
    - achievements: Achievement progress and unlock state

Configuration: args/planning.yaml
"""

from brio import ARGS_DIR, DATA_DIR

# Path constants
DB_PATH = DATA_DIR / "brio.db"
CONFIG_PATH = ARGS_DIR / "planning.yaml"

# Sunday-first, matching the weekly pattern keys
DAY_NAMES = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]

PRIORITIES = ("low", "medium", "high")
ACHIEVEMENT_TYPES = ("streak", "milestone", "special")

__all__ = [
    "DB_PATH",
    "CONFIG_PATH",
    "DAY_NAMES",
    "PRIORITIES",
    "ACHIEVEMENT_TYPES",
]
