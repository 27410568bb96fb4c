from __future__ import annotations

import logging
from pathlib import Path

import pytest

from vod_segmenter import AudioProfile, ConfigError, ProbeError, SegmentCommandBuilder, TranscodeConfig, VideoProfile
from vod_segmenter import encoder as encoder_module
from vod_segmenter.encoder import scale_filter

OUTPUT_DIR = Path("/srv/segments")


def _config(**overrides) -> TranscodeConfig:
    values = {
        "input_path": "/media/in.mkv",
        "output_dir": OUTPUT_DIR,
        "segment_prefix": "seg",
        "segment_times": [0.0, 2.0, 4.0, 6.0],
    }
    values.update(overrides)
    return TranscodeConfig(**values)


class FakeDetector:
    def __init__(self, pixel_format: str = "yuv420p", exc: Exception | None = None) -> None:
        self.pixel_format = pixel_format
        self.exc = exc
        self.calls: list[tuple] = []

    def __call__(self, input_path, ffprobe_binary, *, timeout=None, logger=None):
        self.calls.append((input_path, ffprobe_binary, timeout))
        if self.exc is not None:
            raise self.exc
        return self.pixel_format


def _value_after(args: list[str], flag: str) -> str:
    return args[args.index(flag) + 1]


def test_builds_exact_command_for_zero_start() -> None:
    builder = SegmentCommandBuilder("ffmpeg", _config())

    assert builder.build_command() == [
        "ffmpeg",
        "-loglevel", "warning",
        "-i", "/media/in.mkv",
        "-to", "6.000000",
        "-copyts",
        "-force_key_frames", "2.000000,4.000000,6.000000",
        "-sn",
        "-f", "segment",
        "-segment_time_delta", "0.2",
        "-segment_format", "mpegts",
        "-segment_times", "2.000000,4.000000,6.000000",
        "-segment_start_number", "0",
        "-segment_list_type", "flat",
        "-segment_list", "pipe:1",
        str(OUTPUT_DIR / "seg-%05d.ts"),
    ]


def test_seek_precedes_input_when_start_is_positive() -> None:
    args = SegmentCommandBuilder("ffmpeg", _config(segment_times=[12.5, 14.5, 16.0])).build_args()

    assert args[:4] == ["-loglevel", "warning", "-ss", "12.500000"]
    assert args.index("-ss") < args.index("-i")
    assert _value_after(args, "-to") == "16.000000"


@pytest.mark.parametrize(
    "times",
    [[0.0, 1.0], [3.0, 5.5, 8.25], [0.0, 2.002, 4.004, 6.006, 8.008], [1.0, 1.0, 2.0]],
)
def test_keyframes_and_split_points_are_identical(times) -> None:
    args = SegmentCommandBuilder("ffmpeg", _config(segment_times=times)).build_args()

    assert _value_after(args, "-force_key_frames") == _value_after(args, "-segment_times")
    assert _value_after(args, "-force_key_frames") == ",".join(f"{t:.6f}" for t in times[1:])


def test_segment_offset_is_forwarded() -> None:
    args = SegmentCommandBuilder("ffmpeg", _config(segment_offset=42)).build_args()

    assert _value_after(args, "-segment_start_number") == "42"


def test_too_few_boundaries_is_a_config_error() -> None:
    with pytest.raises(ConfigError):
        SegmentCommandBuilder("ffmpeg", _config(segment_times=[0.0])).build_command()


def test_video_and_audio_profiles(monkeypatch: pytest.MonkeyPatch) -> None:
    detector = FakeDetector("yuv420p")
    monkeypatch.setattr(encoder_module, "detect_pixel_format", detector)
    config = _config(
        video=VideoProfile(width=1280, height=720, bitrate=3500),
        audio=AudioProfile(bitrate=128),
    )

    args = SegmentCommandBuilder("/opt/bin/ffmpeg", config, probe_timeout=7.0).build_args()

    sn = args.index("-sn")
    assert args[sn + 1:sn + 17] == [
        "-vf", "scale=-2:720",
        "-c:v", "libx264",
        "-preset", "faster",
        "-profile:v", "high",
        "-level:v", "4.0",
        "-b:v", "3500k",
        "-c:a", "aac",
        "-b:a", "128k",
    ]
    assert args[sn + 17] == "-f"
    assert detector.calls == [("/media/in.mkv", "/opt/bin/ffprobe", 7.0)]


def test_high_chroma_source_selects_high422(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(encoder_module, "detect_pixel_format", FakeDetector("yuv422p10le"))
    config = _config(video=VideoProfile(width=1920, height=1080, bitrate=6000))

    args = SegmentCommandBuilder("ffmpeg", config).build_args()

    assert _value_after(args, "-profile:v") == "high422"


def test_probe_failure_falls_back_to_default_profile(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(encoder_module, "detect_pixel_format", FakeDetector(exc=ProbeError("no video streams")))
    config = _config(video=VideoProfile(width=1280, height=720, bitrate=3500))
    logger = logging.getLogger("tests.encoder")

    with caplog.at_level(logging.WARNING, logger="tests.encoder"):
        args = SegmentCommandBuilder("ffmpeg", config, logger=logger).build_args()

    assert _value_after(args, "-profile:v") == "high"
    assert "using default profile" in caplog.text


def test_probe_runs_once_per_builder(monkeypatch: pytest.MonkeyPatch) -> None:
    detector = FakeDetector("yuv422p")
    monkeypatch.setattr(encoder_module, "detect_pixel_format", detector)
    builder = SegmentCommandBuilder("ffmpeg", _config(video=VideoProfile(width=640, height=360, bitrate=800)))

    builder.build_args()
    builder.build_args()

    assert len(detector.calls) == 1


def test_explicit_classification_skips_probe(monkeypatch: pytest.MonkeyPatch) -> None:
    detector = FakeDetector("yuv420p")
    monkeypatch.setattr(encoder_module, "detect_pixel_format", detector)
    config = _config(video=VideoProfile(width=640, height=360, bitrate=800))

    args = SegmentCommandBuilder("ffmpeg", config, high_chroma=True).build_args()

    assert _value_after(args, "-profile:v") == "high422"
    assert detector.calls == []


def test_no_probe_without_video_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    detector = FakeDetector()
    monkeypatch.setattr(encoder_module, "detect_pixel_format", detector)

    args = SegmentCommandBuilder("ffmpeg", _config(audio=AudioProfile(bitrate=96))).build_args()

    assert "-vf" not in args
    assert detector.calls == []


def test_scale_filter_anchors_larger_dimension() -> None:
    assert scale_filter(VideoProfile(width=1280, height=720, bitrate=1)) == "scale=-2:720"
    assert scale_filter(VideoProfile(width=720, height=720, bitrate=1)) == "scale=-2:720"
    assert scale_filter(VideoProfile(width=720, height=1280, bitrate=1)) == "scale=720:-2"


def test_dry_run_is_shell_escaped() -> None:
    config = _config(input_path="/media/My Movie.mkv")

    command = SegmentCommandBuilder("ffmpeg", config).dry_run()

    assert command.startswith("ffmpeg -loglevel warning -i '/media/My Movie.mkv' -to 6.000000")
