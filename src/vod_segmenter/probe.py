"""Inspect source media to discover the pixel format of its first video stream."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

import ffmpeg  # type: ignore

from .exceptions import ProbeError

LOGGER = logging.getLogger(__name__)


def ffprobe_binary_for(ffmpeg_binary: str) -> str:
    """Return the ffprobe binary that ships next to ``ffmpeg_binary``."""

    return ffmpeg_binary.replace("ffmpeg", "ffprobe", 1)


def _error_detail(exc: ffmpeg.Error) -> str:  # type: ignore[name-defined]
    stderr = getattr(exc, "stderr", None)
    if isinstance(stderr, bytes):
        text = stderr.decode(errors="ignore").strip()
        if text:
            return text
    return str(exc)


def _probe_first_video_stream(
    input_path: str | Path,
    ffprobe_binary: str,
    timeout: Optional[float],
) -> Dict[str, Any]:
    try:
        result = ffmpeg.probe(
            str(input_path),
            cmd=ffprobe_binary,
            timeout=timeout,
            v="error",
            select_streams="v:0",
        )
    except ffmpeg.Error as exc:  # type: ignore[attr-defined]
        raise ProbeError(f"ffprobe failed for '{input_path}': {_error_detail(exc)}") from exc
    except subprocess.TimeoutExpired as exc:
        raise ProbeError(f"ffprobe timed out after {timeout}s for '{input_path}'") from exc
    except OSError as exc:
        raise ProbeError(f"Failed to run ffprobe binary '{ffprobe_binary}': {exc}") from exc
    except ValueError as exc:
        raise ProbeError(f"Failed to parse ffprobe output for '{input_path}': {exc}") from exc

    if not isinstance(result, dict):
        raise ProbeError(f"Unexpected ffprobe output for '{input_path}'")
    streams = result.get("streams")
    if not isinstance(streams, list):
        raise ProbeError(f"ffprobe output for '{input_path}' has no stream list")
    if not streams:
        raise ProbeError(f"No video streams found in '{input_path}'")
    stream = streams[0]
    if not isinstance(stream, dict):
        raise ProbeError(f"Unexpected stream entry in ffprobe output for '{input_path}'")
    return stream


def detect_pixel_format(
    input_path: str | Path,
    ffprobe_binary: str = "ffprobe",
    *,
    timeout: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> str:
    """Return the ``pix_fmt`` of the first video stream of ``input_path``.

    An empty string means the stream did not report a format. Every failure to
    run or understand ffprobe is raised as :class:`ProbeError`.
    """

    log = logger or LOGGER
    log.debug("Probing pixel format of %s with %s", input_path, ffprobe_binary)
    stream = _probe_first_video_stream(input_path, ffprobe_binary, timeout)
    pixel_format = stream.get("pix_fmt")
    if pixel_format is None:
        return ""
    if not isinstance(pixel_format, str):
        raise ProbeError(f"Unexpected pix_fmt value {pixel_format!r} for '{input_path}'")
    return pixel_format


__all__ = ["detect_pixel_format", "ffprobe_binary_for"]
