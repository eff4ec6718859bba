"""
Planning configuration (args/planning.yaml).

Every tunable of the suggestion engine lives here so it can be overridden
per install or per engine instance. Invalid or missing files fall back to
defaults with a warning.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from brio.logging_config import get_logger
from brio.planning import CONFIG_PATH

logger = get_logger(__name__)


class PlanningConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    # Completions required before patterns replace priority defaults
    min_samples: int = Field(default=5, ge=1)
    # Reserved for adaptive blending of new observations
    learning_rate: float = Field(default=0.3, ge=0.0, le=1.0)
    # Advisory: callers decide whether to surface a suggestion below this
    confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)

    default_hour: int = Field(default=9, ge=0, le=23)
    deep_work_lead_minutes: int = Field(default=15, ge=0)
    now_window_minutes: int = Field(default=30, ge=0)

    context_timeout_seconds: float = Field(default=2.0, gt=0)
    context_cache_seconds: float = Field(default=300.0, ge=0)


def load_config(path: Path | str | None = None) -> PlanningConfig:
    """Load and validate planning settings from YAML.

    The file may either hold the settings at top level or nest them under
    a ``planning`` key.
    """
    yaml_path = Path(path) if path else CONFIG_PATH

    if not yaml_path.exists():
        if path:
            logger.warning("planning_config_missing", path=str(yaml_path))
        return PlanningConfig()

    try:
        with open(yaml_path) as f:
            raw = yaml.safe_load(f) or {}
        if "planning" in raw:
            raw = raw["planning"] or {}
        return PlanningConfig.model_validate(raw)
    except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
        logger.warning("planning_config_invalid", path=str(yaml_path), error=str(e))
        return PlanningConfig()


__all__ = ["PlanningConfig", "load_config"]
