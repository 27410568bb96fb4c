"""Log sinks for programs that run the segmenter.

The package itself only emits records through module loggers. Applications
call :func:`configure_logging_from` once at start-up to route them to a
timestamped file and to stdout, as configured by :class:`RuntimeSettings`.
"""
from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .settings import RuntimeSettings

DEFAULT_LOG_PREFIX = "vod-segmenter"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOG_FILE: Optional[Path] = None
_HANDLERS: List[logging.Handler] = []


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    prefix: str = DEFAULT_LOG_PREFIX,
    *,
    log_dir: Optional[Path] = None,
    level: str | int = logging.INFO,
) -> Path:
    """Send root logging to ``<log_dir>/<prefix>-<UTC stamp>.log`` and stdout.

    Only the first call installs handlers; later calls return the same file.
    Handlers installed by the host application are left in place.
    """

    global _LOG_FILE

    if _LOG_FILE is not None:
        return _LOG_FILE

    directory = Path(log_dir).expanduser() if log_dir is not None else Path.cwd() / "logs"
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / f"{prefix}-{datetime.now(timezone.utc):%Y%m%d-%H%M%S}.log"

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: List[logging.Handler] = [
        logging.FileHandler(log_file, encoding="utf-8"),
        logging.StreamHandler(sys.stdout),
    ]
    root = logging.getLogger()
    root.setLevel(_resolve_level(level))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    _HANDLERS[:] = handlers

    _LOG_FILE = log_file
    root.info("Logging to %s", log_file)
    return log_file


def configure_logging_from(settings: RuntimeSettings, prefix: str = DEFAULT_LOG_PREFIX) -> Path:
    """Apply the ``log_level`` and ``log_dir`` of ``settings``."""

    return configure_logging(prefix, log_dir=settings.log_dir, level=settings.log_level)


def current_log_file() -> Optional[Path]:
    return _LOG_FILE


def reset_logging() -> None:
    """Detach and close the handlers installed by :func:`configure_logging`."""

    global _LOG_FILE

    root = logging.getLogger()
    for handler in _HANDLERS:
        root.removeHandler(handler)
        handler.close()
    _HANDLERS.clear()
    _LOG_FILE = None


__all__ = [
    "DEFAULT_LOG_PREFIX",
    "configure_logging",
    "configure_logging_from",
    "current_log_file",
    "reset_logging",
]
