"""Pixel format classification used to pick the H.264 profile variant."""
from __future__ import annotations

from typing import FrozenSet, Optional

# Formats sampled at 4:2:2 chroma. Standard ``high`` cannot encode these, the
# encoder needs ``high422`` instead.
HIGH_CHROMA_PIXEL_FORMATS: FrozenSet[str] = frozenset(
    {
        # planar
        "yuv422p",
        "yuv422p9le",
        "yuv422p9be",
        "yuv422p10le",
        "yuv422p10be",
        "yuv422p12le",
        "yuv422p12be",
        "yuv422p14le",
        "yuv422p14be",
        "yuv422p16le",
        "yuv422p16be",
        # packed
        "yuyv422",
        "uyvy422",
        # JPEG (full) range
        "yuvj422p",
        # planar with alpha
        "yuva422p",
        "yuva422p9le",
        "yuva422p9be",
        "yuva422p10le",
        "yuva422p10be",
        "yuva422p12le",
        "yuva422p12be",
        "yuva422p16le",
        "yuva422p16be",
        # professional / broadcast packed
        "v210",
        "v216",
        # semi-planar
        "p210le",
        "p210be",
        "p216le",
        "p216be",
    }
)

DEFAULT_VIDEO_PROFILE = "high"
HIGH_CHROMA_VIDEO_PROFILE = "high422"


def is_high_chroma(pixel_format: Optional[str]) -> bool:
    """Return True when ``pixel_format`` carries 4:2:2 chroma."""

    if not pixel_format:
        return False
    return pixel_format in HIGH_CHROMA_PIXEL_FORMATS


def video_profile_for(high_chroma: bool) -> str:
    return HIGH_CHROMA_VIDEO_PROFILE if high_chroma else DEFAULT_VIDEO_PROFILE


__all__ = [
    "DEFAULT_VIDEO_PROFILE",
    "HIGH_CHROMA_PIXEL_FORMATS",
    "HIGH_CHROMA_VIDEO_PROFILE",
    "is_high_chroma",
    "video_profile_for",
]
