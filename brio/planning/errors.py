"""
Planning error taxonomy.

DataUnavailable is recovered inside the engine (default suggestion,
neutral confidence). InvalidInput is raised to the caller. Invariant
violations are logged and corrected where they are detected; the class
exists so the log line carries a stable name.
"""


class PlanningError(Exception):
    """Base class for planning errors."""


class DataUnavailable(PlanningError):
    """A store or context read failed (I/O, serialization, device API)."""

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        message = f"{operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidInput(PlanningError, ValueError):
    """A caller supplied a malformed task draft or completion."""


class InvariantViolation(PlanningError):
    """Internal consistency check failed (e.g. longest streak below current)."""
