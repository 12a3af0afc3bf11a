#!/usr/bin/env python
"""
logging_helper.py – one-call logger setup: optional file + stdout.

Usage:
    from promptforge.utils.logging_helper import get_logger
    log = get_logger()                  # name comes from the calling module
    log.info("Scoring prompt")

Environment:
    PROMPT_FORGE_LOG_DIR    directory for <name>.log files ("" disables them)
    PROMPT_FORGE_LOG_LEVEL  DEBUG / INFO / WARNING / ...
"""

from __future__ import annotations
import inspect, logging, sys, os
from pathlib import Path
from typing import Optional

DEF_FMT  = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEF_DATE = "%Y-%m-%d %H:%M:%S"
CONSOLE_FMT = "[%(levelname)s] %(message)s"


def _resolve_level(level: Optional[int]) -> int:
    if level is not None:
        return level
    name = os.getenv("PROMPT_FORGE_LOG_LEVEL", "INFO").upper()
    return getattr(logging, name, logging.INFO)


def _resolve_log_dir(log_dir: Optional[str | Path]) -> Optional[Path]:
    if log_dir is not None:
        return Path(log_dir) if str(log_dir) else None
    env_dir = os.getenv("PROMPT_FORGE_LOG_DIR", "logs")
    return Path(env_dir) if env_dir else None


def get_logger(level: Optional[int] = None,
               log_dir: Optional[str | Path] = None) -> logging.Logger:
    """
    Create (or return the existing) logger named after the caller's module
    (e.g. 'classifier'). Echoes to stdout and, unless file logging is
    disabled, appends to <log_dir>/<name>.log.
    """
    # ── derive name from caller ───────────────────────────────────────────
    caller = inspect.stack()[1]
    module = inspect.getmodule(caller[0])
    if module and module.__name__ != "__main__":
        name = module.__name__.split(".")[-1]
    else:
        # run as a script: use the file stem (e.g. cli)
        name = os.path.splitext(os.path.basename(caller.filename))[0]

    logger = logging.getLogger(f"promptforge.{name}")
    if logger.handlers:                 # already initialised
        return logger

    lvl = _resolve_level(level)
    logger.setLevel(lvl)

    directory = _resolve_log_dir(log_dir)
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(directory / f"{name}.log", encoding="utf-8")
        fh.setFormatter(logging.Formatter(DEF_FMT, DEF_DATE))
        fh.setLevel(lvl)
        logger.addHandler(fh)

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(logging.Formatter(CONSOLE_FMT))
    ch.setLevel(lvl)
    logger.addHandler(ch)

    logger.propagate = False
    return logger


def set_level(level: int) -> None:
    """Re-level every promptforge logger and its handlers (e.g. quiet for --json)."""
    for name, logger in logging.Logger.manager.loggerDict.items():
        if not name.startswith("promptforge.") or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
