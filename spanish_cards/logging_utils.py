"""
Logging setup for the terminal quiz.

Log lines share the terminal with the quiz prompts, so the root level
defaults to WARNING; LOG_LEVEL=INFO adds tier failovers and cache stats.
SPANISH_CARDS_DEBUG=1 raises only the package logger to DEBUG, aiohttp
stays at LOG_LEVEL.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv

from .config import _env_bool

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
PACKAGE_LOGGER = "spanish_cards"
DEFAULT_LOG_LEVEL = logging.WARNING


def _resolve_level(name: Optional[str]) -> int:
    if not name or not name.strip():
        return DEFAULT_LOG_LEVEL
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def setup_logging(level: Optional[str] = None) -> int:
    """Configure root logging and return the level in effect.

    *level* wins over LOG_LEVEL; both are read before load_config() runs,
    so .env is loaded here as well.
    """
    load_dotenv(override=False)
    resolved = _resolve_level(level if level is not None else os.getenv("LOG_LEVEL"))
    logging.basicConfig(level=resolved, format=LOG_FORMAT)

    if _env_bool("SPANISH_CARDS_DEBUG"):
        logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)
    return resolved
