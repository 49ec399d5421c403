"""Logging setup shared by the headless runner and the web controller."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LEVEL_ENV_VAR = "BIOME_LOG_LEVEL"
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def resolve_level(level: str | None = None) -> str:
    """Explicit level, else ``BIOME_LOG_LEVEL``, else INFO."""
    return (level or os.getenv(LEVEL_ENV_VAR) or "INFO").upper()


def configure_logging(level: str | None = None, *, include_uvicorn: bool = False) -> logging.Logger:
    resolved = resolve_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logger = logging.getLogger("biome")
    logger.setLevel(resolved)
    if include_uvicorn:
        # Keep server access logs at the same verbosity as the simulation.
        for name in _UVICORN_LOGGERS:
            logging.getLogger(name).setLevel(resolved)
    return logger
