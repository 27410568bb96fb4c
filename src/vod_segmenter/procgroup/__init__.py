"""Start encoder processes in their own group and kill the whole tree at once.

The platform variant is chosen once, when this package is imported.
"""
from __future__ import annotations

import os
import subprocess
from typing import Any, Dict, Optional

from .base import ProcessGroupManager

if os.name == "nt":
    from ._windows import WindowsProcessGroup as PlatformProcessGroup
else:
    from ._posix import PosixProcessGroup as PlatformProcessGroup

_DEFAULT_MANAGER: ProcessGroupManager = PlatformProcessGroup()


def default_manager() -> ProcessGroupManager:
    return _DEFAULT_MANAGER


def configure(popen_kwargs: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return ``popen_kwargs`` extended so the child heads a new process group."""

    return _DEFAULT_MANAGER.configure(dict(popen_kwargs or {}))


def kill(process: Optional[subprocess.Popen[Any]]) -> None:
    """Kill ``process`` and every descendant; a no-op when nothing is running."""

    _DEFAULT_MANAGER.kill(process)


__all__ = [
    "PlatformProcessGroup",
    "ProcessGroupManager",
    "configure",
    "default_manager",
    "kill",
]
