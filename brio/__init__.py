"""
Brio Planning Core

Learns when a user actually gets things done and uses that to suggest
when new tasks should be scheduled.
"""

from pathlib import Path


PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
ARGS_DIR = PROJECT_ROOT / "args"

__all__ = [
    "ARGS_DIR",
    "DATA_DIR",
    "PROJECT_ROOT",
]
