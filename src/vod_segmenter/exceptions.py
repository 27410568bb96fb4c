"""Custom exceptions raised by the segmenter package."""
from __future__ import annotations


class SegmenterError(RuntimeError):
    """Base error for the segmenter package."""


class ConfigError(SegmenterError):
    """Raised when a transcode request cannot be turned into an encoder invocation."""


class ProbeError(SegmenterError):
    """Raised when a source file cannot be inspected with ffprobe."""


class SpawnError(SegmenterError):
    """Raised when the encoder process or its pipes cannot be started."""


class EncoderRuntimeError(SegmenterError):
    """Recorded when the encoder exits with a non-zero status after starting."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class KillResolutionError(SegmenterError):
    """Raised internally when the process group of an encoder cannot be resolved."""


class ProcessKillError(SegmenterError):
    """Raised when an encoder process tree could not be terminated."""
