from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

posix_only = pytest.mark.skipif(os.name == "nt", reason="requires POSIX process groups")


def process_gone(pid: int) -> bool:
    """Return True once ``pid`` no longer runs (exited, or left as a zombie)."""

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    except PermissionError:
        return False
    stat_path = Path(f"/proc/{pid}/stat")
    try:
        fields = stat_path.read_text().rsplit(")", 1)[1].split()
    except (OSError, IndexError):
        return False
    return fields[0] in {"Z", "X"}


def wait_until_gone(pid: int, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if process_gone(pid):
            return True
        time.sleep(0.05)
    return process_gone(pid)
