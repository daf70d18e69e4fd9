"""
Logging configuration for the plugin process.

linuxdeploy shows a plugin's stderr verbatim, so the default console
output mimics the shell plugin: one ``-*- message`` line per step.
Diagnostics go through the same root logger; modules only ever do
``logger = logging.getLogger(__name__)``.

Level selection (``resolve_level``):
    --debug or $DEBUG (any non-empty value)   DEBUG, with file:line
    $APPDIR_CONDA_LOG_LEVEL                   as named
    otherwise                                 INFO

``--verbose`` keeps the level and adds timestamps and logger names.
$APPDIR_CONDA_LOG_FILE tees everything at $APPDIR_CONDA_LOG_FILE_LEVEL
(default: the console level) into a file, which helps when a CI log
truncates a long conda solve.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

# ── Format strings ──────────────────────────────────────────────

_FMT_PLUGIN = "-*- %(message)s"

_FMT_TIMESTAMPED = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_SHORT = "%H:%M:%S"

_FMT_DIAGNOSTIC = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_LONG = "%Y-%m-%d %H:%M:%S"

# filelock logs every acquire/release at DEBUG
_NOISY_LOGGERS = ("filelock",)


def resolve_level(debug: bool, environ: Mapping[str, str]) -> str:
    """Pick the console level from the CLI flag and the environment."""
    if debug or environ.get("DEBUG"):
        return "DEBUG"
    return environ.get("APPDIR_CONDA_LOG_LEVEL") or "INFO"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    timestamps: bool = False,
    quiet_third_party: bool = True,
) -> None:
    """Install the console handler (and optionally a file handler) on the root logger.

    Safe to call more than once; earlier handlers are replaced.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level, timestamps))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_DIAGNOSTIC, datefmt=_DATEFMT_LONG))
        root.addHandler(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # a closed stderr must not turn a log call into a failed build
    logging.raiseExceptions = False


def _console_formatter(level: int, timestamps: bool) -> logging.Formatter:
    if level <= logging.DEBUG:
        return logging.Formatter(_FMT_DIAGNOSTIC, datefmt=_DATEFMT_SHORT)
    if timestamps:
        return logging.Formatter(_FMT_TIMESTAMPED, datefmt=_DATEFMT_SHORT)
    return logging.Formatter(_FMT_PLUGIN)


def _parse_level(level: str | None) -> int:
    """Level name → numeric level; unknown or empty names mean INFO."""
    if not level:
        return logging.INFO
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
