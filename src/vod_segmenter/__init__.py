"""Public package interface for the segmenter."""
from .config import AudioProfile, SegmentBoundarySet, TranscodeConfig, VideoProfile
from .encoder import SegmentCommandBuilder
from .logging_config import configure_logging_from
from .exceptions import (
    ConfigError,
    EncoderRuntimeError,
    KillResolutionError,
    ProbeError,
    ProcessKillError,
    SegmenterError,
    SpawnError,
)
from .pipeline import SegmentStream, TranscodeState, transcode_segments
from .pixel_formats import HIGH_CHROMA_PIXEL_FORMATS, is_high_chroma
from .probe import detect_pixel_format
from .procgroup import ProcessGroupManager, configure, kill
from .settings import RuntimeSettings, load_settings

__version__ = "0.1.0"

__all__ = [
    "AudioProfile",
    "ConfigError",
    "EncoderRuntimeError",
    "HIGH_CHROMA_PIXEL_FORMATS",
    "KillResolutionError",
    "ProbeError",
    "ProcessGroupManager",
    "ProcessKillError",
    "RuntimeSettings",
    "SegmentBoundarySet",
    "SegmentCommandBuilder",
    "SegmentStream",
    "SegmenterError",
    "SpawnError",
    "TranscodeConfig",
    "TranscodeState",
    "VideoProfile",
    "configure",
    "configure_logging_from",
    "detect_pixel_format",
    "is_high_chroma",
    "kill",
    "load_settings",
    "transcode_segments",
]
