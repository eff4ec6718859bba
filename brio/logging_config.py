"""
Structured logging for the planning core.

structlog renders on top of the stdlib logging tree, so events from
library code that uses plain ``logging`` end up in the same stream.
Console rendering by default, JSON when BRIO_LOG_FORMAT=json.

Usage:
    from brio.logging_config import get_logger, setup_logging

    setup_logging()
    logger = get_logger(__name__)
    logger.info("suggestion_built", priority="high", confidence=0.72)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, TextIO

import structlog


LEVEL_ENV = "BRIO_LOG_LEVEL"
FORMAT_ENV = "BRIO_LOG_FORMAT"


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """Install a structlog-formatted handler on the root logger.

    Args:
        level: Log level name; falls back to $BRIO_LOG_LEVEL, then INFO.
        json_output: Render JSON lines; falls back to $BRIO_LOG_FORMAT == "json".
        stream: Destination, stderr by default. The CLI writes results to
            stdout, so logs must never share it.
    """
    level = level or os.environ.get(LEVEL_ENV, "INFO")
    if json_output is None:
        json_output = os.environ.get(FORMAT_ENV, "").lower() == "json"

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None, **initial: Any) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger(name)
    return logger.bind(**initial) if initial else logger


__all__ = ["get_logger", "setup_logging"]
