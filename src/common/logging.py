"""Logging setup shared by the generator, publisher and CLIs."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv("PAGE_ENGINE_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        return value if isinstance(value, int) else logging.INFO
    return level


def setup_logging(
    level: int | str | None = None,
    module_name: str = "page_engine",
) -> logging.Logger:
    """Return a stdout logger for one engine area.

    Loggers are namespaced under ``page_engine.`` so the CLIs can raise or
    lower verbosity for the whole engine at once.

    Args:
        level: Logging level; defaults to $PAGE_ENGINE_LOG_LEVEL or INFO.
        module_name: Short area name, e.g. "publisher.orchestrator".

    Returns:
        Configured logger.
    """
    if not module_name.startswith("page_engine"):
        module_name = f"page_engine.{module_name}"
    logger = logging.getLogger(module_name)

    if logger.handlers:
        return logger

    resolved = _resolve_level(level)
    logger.setLevel(resolved)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(handler)

    return logger
