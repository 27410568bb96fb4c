"""Environment driven runtime settings for the segmenter."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeVar

from dotenv import find_dotenv, load_dotenv

from .probe import ffprobe_binary_for

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

ENV_PREFIX = "VOD_SEGMENTER_"
DEFAULT_FFMPEG_BINARY = "ffmpeg"
DEFAULT_PROBE_TIMEOUT = 30.0
DEFAULT_BUFFER_SIZE = 1
DEFAULT_POLL_INTERVAL = 0.1
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(slots=True)
class RuntimeSettings:
    """Process-wide knobs that are not part of an individual transcode request."""

    ffmpeg_binary: str = DEFAULT_FFMPEG_BINARY
    ffprobe_binary: Optional[str] = None
    probe_timeout: Optional[float] = DEFAULT_PROBE_TIMEOUT
    buffer_size: int = DEFAULT_BUFFER_SIZE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    log_level: str = DEFAULT_LOG_LEVEL
    log_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        self.buffer_size = max(1, int(self.buffer_size))
        self.poll_interval = max(0.01, float(self.poll_interval))
        if self.probe_timeout is not None and self.probe_timeout <= 0:
            self.probe_timeout = None
        self.log_level = self.log_level.upper()
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir).expanduser()

    def resolve_ffprobe_binary(self, ffmpeg_binary: Optional[str] = None) -> str:
        """Return the configured ffprobe binary, or the one next to ``ffmpeg_binary``."""

        if self.ffprobe_binary:
            return self.ffprobe_binary
        return ffprobe_binary_for(ffmpeg_binary or self.ffmpeg_binary)


def _env(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = environ.get(f"{ENV_PREFIX}{key}")
    if value is None:
        return None
    return value.strip() or None


def _env_number(environ: Mapping[str, str], key: str, parse: Callable[[str], T], fallback: T) -> T:
    raw = _env(environ, key)
    if raw is None:
        return fallback
    try:
        return parse(raw)
    except ValueError:
        LOGGER.warning("Ignoring invalid %s%s=%r; using %s", ENV_PREFIX, key, raw, fallback)
        return fallback


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    load_env_file: bool = True,
) -> RuntimeSettings:
    """Read :class:`RuntimeSettings` from the environment (and a ``.env`` file)."""

    if load_env_file:
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)
    env = os.environ if environ is None else environ

    log_dir = _env(env, "LOG_DIR")
    return RuntimeSettings(
        ffmpeg_binary=_env(env, "FFMPEG") or DEFAULT_FFMPEG_BINARY,
        ffprobe_binary=_env(env, "FFPROBE"),
        probe_timeout=_env_number(env, "PROBE_TIMEOUT", float, DEFAULT_PROBE_TIMEOUT),
        buffer_size=_env_number(env, "BUFFER_SIZE", int, DEFAULT_BUFFER_SIZE),
        poll_interval=_env_number(env, "POLL_INTERVAL", float, DEFAULT_POLL_INTERVAL),
        log_level=_env(env, "LOG_LEVEL") or DEFAULT_LOG_LEVEL,
        log_dir=Path(log_dir) if log_dir else None,
    )


__all__ = ["ENV_PREFIX", "RuntimeSettings", "load_settings"]
