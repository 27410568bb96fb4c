"""Configuration objects describing a segmented transcode request."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .exceptions import ConfigError

TIMESTAMP_FORMAT = "{:.6f}"


def format_timestamp(seconds: float) -> str:
    """Render ``seconds`` the way the encoder expects time arguments."""

    return TIMESTAMP_FORMAT.format(float(seconds))


@dataclass(slots=True)
class VideoProfile:
    """Target video encoding for the produced segments."""

    width: int
    height: int
    bitrate: int  # kbps

    def validate(self) -> None:
        for name in ("width", "height", "bitrate"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigError(f"Video profile {name} must be a positive integer, got {value!r}")


@dataclass(slots=True)
class AudioProfile:
    """Target audio encoding for the produced segments."""

    bitrate: int  # kbps

    def validate(self) -> None:
        if not isinstance(self.bitrate, int) or isinstance(self.bitrate, bool) or self.bitrate <= 0:
            raise ConfigError(f"Audio profile bitrate must be a positive integer, got {self.bitrate!r}")


@dataclass(frozen=True)
class SegmentBoundarySet:
    """Timing plan derived from the ordered segment boundaries.

    ``interior`` lists every boundary except the first. The encoder receives it
    twice, once to force keyframes and once to place the segment splits, so the
    two must always be the very same string.
    """

    start: float
    end: float
    interior: str

    @classmethod
    def from_times(cls, segment_times: Sequence[float]) -> "SegmentBoundarySet":
        if len(segment_times) < 2:
            raise ConfigError("At least 2 segment times are needed")
        formatted = [format_timestamp(value) for value in segment_times]
        return cls(
            start=float(segment_times[0]),
            end=float(segment_times[-1]),
            interior=",".join(formatted[1:]),
        )

    @property
    def start_arg(self) -> str:
        return format_timestamp(self.start)

    @property
    def end_arg(self) -> str:
        return format_timestamp(self.end)


@dataclass(slots=True)
class TranscodeConfig:
    """One transcode request: a source, a boundary plan and target profiles."""

    input_path: str | Path
    output_dir: str | Path
    segment_prefix: str
    segment_times: Sequence[float] = field(default_factory=tuple)
    segment_offset: int = 0
    video: Optional[VideoProfile] = None
    audio: Optional[AudioProfile] = None

    def __post_init__(self) -> None:
        self.segment_times = tuple(float(value) for value in self.segment_times)
        self.output_dir = Path(self.output_dir)

    @property
    def segment_pattern(self) -> str:
        """Return the output filename template handed to the segment muxer."""

        return f"{self.segment_prefix}-%05d.ts"

    @property
    def output_target(self) -> str:
        return str(Path(self.output_dir) / self.segment_pattern)

    def segment_name(self, index: int) -> str:
        """Return the filename the encoder uses for segment ``index``."""

        return f"{self.segment_prefix}-{index:05d}.ts"

    def boundaries(self) -> SegmentBoundarySet:
        return SegmentBoundarySet.from_times(self.segment_times)

    def validate(self) -> None:
        """Raise :class:`ConfigError` when the request cannot be executed."""

        times: Tuple[float, ...] = tuple(self.segment_times)
        if len(times) < 2:
            raise ConfigError(
                f"At least 2 segment times are needed, got {len(times)}"
            )
        for value in times:
            if not math.isfinite(value):
                raise ConfigError(f"Segment times must be finite, got {value!r}")
        for previous, current in zip(times, times[1:]):
            if current < previous:
                raise ConfigError(
                    f"Segment times must be non-decreasing ({current:.6f} follows {previous:.6f})"
                )
        if times[0] < 0:
            raise ConfigError(f"Segment times cannot be negative, got {times[0]:.6f}")
        if not self.segment_prefix:
            raise ConfigError("Segment prefix must not be empty")
        offset = self.segment_offset
        if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
            raise ConfigError(f"Segment offset must be a non-negative integer, got {offset!r}")
        if self.video is not None:
            self.video.validate()
        if self.audio is not None:
            self.audio.validate()


__all__ = [
    "AudioProfile",
    "SegmentBoundarySet",
    "TranscodeConfig",
    "VideoProfile",
    "format_timestamp",
]
