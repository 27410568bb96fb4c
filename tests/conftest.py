from __future__ import annotations

import stat
from pathlib import Path
from typing import Callable

import pytest

from vod_segmenter import TranscodeConfig


@pytest.fixture()
def fake_encoder(tmp_path: Path) -> Callable[..., Path]:
    """Write an executable shell script that stands in for ffmpeg."""

    def _write(body: str, name: str = "ffmpeg") -> Path:
        script = tmp_path / "bin" / name
        script.parent.mkdir(parents=True, exist_ok=True)
        script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _write


@pytest.fixture()
def segment_config(tmp_path: Path) -> TranscodeConfig:
    output_dir = tmp_path / "segments"
    output_dir.mkdir()
    return TranscodeConfig(
        input_path=tmp_path / "input.mkv",
        output_dir=output_dir,
        segment_prefix="seg",
        segment_times=[0.0, 2.0, 4.0, 6.0],
    )
