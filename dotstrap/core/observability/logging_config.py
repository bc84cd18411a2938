"""
Logging setup for the dotstrap CLI.

Phase banners and result lines are printed by the CLI with click; the
``logging`` tree carries everything else (commands as they run, adapter
errors, per-package retries). main.py configures it once per process.

Console level, strongest first:
    --debug / --verbose / --quiet  >  $DOTSTRAP_LOG_LEVEL  >  WARNING

$DOTSTRAP_LOG_FILE adds a file handler at $DOTSTRAP_LOG_FILE_LEVEL
(console level when unset). A DEBUG log file next to a quiet console is
the usual way to keep a transcript of a long first run.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

LOG_LEVEL_ENV = "DOTSTRAP_LOG_LEVEL"
LOG_FILE_ENV = "DOTSTRAP_LOG_FILE"
LOG_FILE_LEVEL_ENV = "DOTSTRAP_LOG_FILE_LEVEL"


# ── Format strings ──────────────────────────────────────────────

# WARNING and above: phase output is already printed by the CLI
_FMT_MINIMAL = "%(message)s"

# INFO: which module is talking
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG: file and line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# Log file: full detail, dated
_FMT_FILE = _FMT_DEBUG
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("urllib3", "asyncio")


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Console level from the CLI flags, else $DOTSTRAP_LOG_LEVEL."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = environ if environ is not None else {}
    return env.get(LOG_LEVEL_ENV, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Replace the root logger's handlers with a stderr handler and,
    when ``log_file`` is given, a file handler.

    Args:
        level: Console level name.
        log_file: Optional transcript path.
        log_file_level: Level for the transcript; the console level when
            unset.
        quiet_third_party: Hold noisy library loggers at WARNING unless
            the console is at DEBUG.
    """
    numeric_level = _parse_level(level)

    # ── Console handler (stderr) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    # Root must pass records down to the more verbose of the two handlers
    effective_level = numeric_level

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name to number. Unknown or empty names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
