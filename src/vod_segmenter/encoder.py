"""Build the FFmpeg invocation that renders a boundary plan into TS segments."""
from __future__ import annotations

import logging
import shlex
from typing import List, Optional

from .config import SegmentBoundarySet, TranscodeConfig, VideoProfile, format_timestamp
from .exceptions import ProbeError
from .pixel_formats import is_high_chroma, video_profile_for
from .probe import detect_pixel_format, ffprobe_binary_for

LOGGER = logging.getLogger(__name__)

VIDEO_CODEC = "libx264"
VIDEO_PRESET = "faster"
VIDEO_LEVEL = "4.0"
AUDIO_CODEC = "aac"
SEGMENT_TIME_DELTA = "0.2"
SEGMENT_FORMAT = "mpegts"


def scale_filter(profile: VideoProfile) -> str:
    """Return the scale filter that pins the larger requested dimension.

    The other side is left to the encoder (``-2``), which keeps the source
    aspect ratio and rounds to an even size.
    """

    if profile.width >= profile.height:
        return f"scale=-2:{profile.height}"
    return f"scale={profile.width}:-2"


class SegmentCommandBuilder:
    """Turn a :class:`TranscodeConfig` into an ordered FFmpeg argument vector."""

    def __init__(
        self,
        ffmpeg_binary: str,
        config: TranscodeConfig,
        *,
        ffprobe_binary: Optional[str] = None,
        high_chroma: Optional[bool] = None,
        probe_timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.ffmpeg_binary = ffmpeg_binary
        self.config = config
        self.ffprobe_binary = ffprobe_binary or ffprobe_binary_for(ffmpeg_binary)
        self.probe_timeout = probe_timeout
        self._high_chroma = high_chroma
        self._logger = logger or LOGGER

    @property
    def boundaries(self) -> SegmentBoundarySet:
        self.config.validate()
        return self.config.boundaries()

    def build_args(self) -> List[str]:
        """Return the encoder arguments, without the binary itself."""

        config = self.config
        boundaries = self.boundaries

        args: List[str] = ["-loglevel", "warning"]

        # A zero seek can push the demuxer's seek timestamp below zero after
        # its internal adjustment, which the encoder rejects.
        if boundaries.start > 0:
            args.extend(["-ss", boundaries.start_arg])

        args.extend([
            "-i", str(config.input_path),
            "-to", boundaries.end_arg,
            "-copyts",  # keeps -to relative to the source timeline
            "-force_key_frames", boundaries.interior,
            "-sn",
        ])

        if config.video is not None:
            args.extend(self._build_video_args(config.video))
        if config.audio is not None:
            args.extend(["-c:a", AUDIO_CODEC, "-b:a", f"{config.audio.bitrate}k"])

        args.extend(self._build_segment_args(boundaries))
        return args

    def build_command(self) -> List[str]:
        """Construct the full FFmpeg command line."""

        return [self.ffmpeg_binary, *self.build_args()]

    def dry_run(self) -> str:
        """Return a shell-escaped command string without executing it."""

        return shlex.join(self.build_command())

    def high_chroma(self) -> bool:
        """Return whether the source needs the 4:2:2 profile, probing at most once."""

        if self._high_chroma is None:
            self._high_chroma = self._detect_high_chroma()
        return self._high_chroma

    def _detect_high_chroma(self) -> bool:
        try:
            pixel_format = detect_pixel_format(
                self.config.input_path,
                self.ffprobe_binary,
                timeout=self.probe_timeout,
                logger=self._logger,
            )
        except ProbeError as exc:
            self._logger.warning("Could not detect video format, using default profile: %s", exc)
            return False

        self._logger.info("Detected pixel format: %s", pixel_format or "<unknown>")
        if is_high_chroma(pixel_format):
            self._logger.info("Detected 4:2:2 format (%s), using high422 profile", pixel_format)
            return True
        self._logger.info("Using default profile for format: %s", pixel_format or "<unknown>")
        return False

    def _build_video_args(self, profile: VideoProfile) -> List[str]:
        return [
            "-vf", scale_filter(profile),
            "-c:v", VIDEO_CODEC,
            "-preset", VIDEO_PRESET,
            "-profile:v", video_profile_for(self.high_chroma()),
            "-level:v", VIDEO_LEVEL,
            "-b:v", f"{profile.bitrate}k",
        ]

    def _build_segment_args(self, boundaries: SegmentBoundarySet) -> List[str]:
        config = self.config
        return [
            "-f", "segment",
            "-segment_time_delta", SEGMENT_TIME_DELTA,
            "-segment_format", SEGMENT_FORMAT,
            "-segment_times", boundaries.interior,
            "-segment_start_number", str(config.segment_offset),
            "-segment_list_type", "flat",
            "-segment_list", "pipe:1",  # one finished segment name per stdout line
            config.output_target,
        ]


__all__ = ["SegmentCommandBuilder", "format_timestamp", "scale_filter"]
