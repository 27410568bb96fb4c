from __future__ import annotations

from pathlib import Path

import pytest

from vod_segmenter import RuntimeSettings, load_settings


def test_defaults_without_environment() -> None:
    settings = load_settings({}, load_env_file=False)

    assert settings.ffmpeg_binary == "ffmpeg"
    assert settings.ffprobe_binary is None
    assert settings.resolve_ffprobe_binary() == "ffprobe"
    assert settings.probe_timeout == 30.0
    assert settings.buffer_size == 1
    assert settings.poll_interval == 0.1
    assert settings.log_level == "INFO"
    assert settings.log_dir is None


def test_values_are_read_from_environment() -> None:
    settings = load_settings(
        {
            "VOD_SEGMENTER_FFMPEG": "/opt/media/ffmpeg",
            "VOD_SEGMENTER_PROBE_TIMEOUT": "12.5",
            "VOD_SEGMENTER_BUFFER_SIZE": "4",
            "VOD_SEGMENTER_POLL_INTERVAL": "0.25",
            "VOD_SEGMENTER_LOG_LEVEL": "debug",
            "VOD_SEGMENTER_LOG_DIR": "/var/log/segmenter",
        },
        load_env_file=False,
    )

    assert settings.ffmpeg_binary == "/opt/media/ffmpeg"
    assert settings.resolve_ffprobe_binary() == "/opt/media/ffprobe"
    assert settings.probe_timeout == 12.5
    assert settings.buffer_size == 4
    assert settings.poll_interval == 0.25
    assert settings.log_level == "DEBUG"
    assert settings.log_dir == Path("/var/log/segmenter")


def test_explicit_ffprobe_wins() -> None:
    settings = load_settings(
        {"VOD_SEGMENTER_FFPROBE": "/usr/local/bin/ffprobe"},
        load_env_file=False,
    )

    assert settings.resolve_ffprobe_binary("/opt/ffmpeg") == "/usr/local/bin/ffprobe"


def test_invalid_numbers_fall_back_to_defaults() -> None:
    settings = load_settings(
        {
            "VOD_SEGMENTER_BUFFER_SIZE": "many",
            "VOD_SEGMENTER_POLL_INTERVAL": "soon",
            "VOD_SEGMENTER_PROBE_TIMEOUT": "",
        },
        load_env_file=False,
    )

    assert settings.buffer_size == 1
    assert settings.poll_interval == 0.1
    assert settings.probe_timeout == 30.0


def test_values_are_clamped() -> None:
    settings = RuntimeSettings(buffer_size=0, poll_interval=0, probe_timeout=0)

    assert settings.buffer_size == 1
    assert settings.poll_interval == 0.01
    assert settings.probe_timeout is None


def test_dotenv_file_is_loaded(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("VOD_SEGMENTER_FFMPEG", "placeholder")
    monkeypatch.delenv("VOD_SEGMENTER_FFMPEG")
    (tmp_path / ".env").write_text("VOD_SEGMENTER_FFMPEG=/srv/bin/ffmpeg\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    settings = load_settings()

    assert settings.ffmpeg_binary == "/srv/bin/ffmpeg"
