#!/usr/bin/env python3
"""
Operator-facing console output and logging setup.

Two channels, kept apart from stage logic:
- info/success/warn/error/debug print colored, tagged lines (flushed, so
  they interleave correctly with streamed child output)
- configure_logging() sets up the logging module for debug tracing
"""

from __future__ import annotations

import logging
import os
import sys

# Color codes for output
BLUE = '\033[94m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
RESET = '\033[0m'

# Debug lines are opt-in and tied to log_level.
DEBUG_ENABLED = False

logger = logging.getLogger(__name__)


def _colors_enabled() -> bool:
    if os.environ.get('NO_COLOR'):
        return False
    return sys.stdout.isatty()


def _emit(color: str, tag: str, msg: str, context: dict, stream=None) -> None:
    stream = stream or sys.stdout
    if _colors_enabled():
        print(f"{color}[{tag}]{RESET} {msg}", file=stream, flush=True)
    else:
        print(f"[{tag}] {msg}", file=stream, flush=True)
    for key, value in context.items():
        print(f"  {key}: {value}", file=stream, flush=True)


def info(msg, **context):
    """Print info message with optional structured context."""
    _emit(BLUE, 'INFO', msg, context)


def success(msg, **context):
    _emit(GREEN, 'SUCCESS', msg, context)


def warn(msg, **context):
    _emit(YELLOW, 'WARN', msg, context)


def error(msg, **context):
    """Print error message to stderr. Does not exit; callers decide."""
    _emit(RED, 'ERROR', msg, context, stream=sys.stderr)


def interrupted(msg, **context):
    _emit(YELLOW, 'INTERRUPTED', msg, context)


def debug(msg, **context):
    """Print debug message (only shown when DEBUG logging is enabled)."""
    if not DEBUG_ENABLED:
        return
    _emit(BLUE, 'DEBUG', msg, context)


def rule(char: str = '=', width: int = 60) -> None:
    print(char * width, flush=True)


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure logging module with specified level.
    """
    global DEBUG_ENABLED

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR
    }
    level = level_map.get(str(log_level or '').upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='[%(levelname)s] %(message)s',
        force=True
    )
    DEBUG_ENABLED = level == logging.DEBUG

    logger.debug(f"Logging configured: {logging.getLevelName(level)}")
