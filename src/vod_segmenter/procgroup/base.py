"""Interface shared by the platform process-group managers."""
from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

LOGGER = logging.getLogger(__name__)


class ProcessGroupManager(ABC):
    """Start processes as the head of their own group and kill that group."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or LOGGER

    @abstractmethod
    def configure(self, popen_kwargs: Dict[str, Any]) -> Dict[str, Any]:
        """Add the ``Popen`` options that isolate the child in a new group."""

    @abstractmethod
    def kill(self, process: Optional[subprocess.Popen[Any]]) -> None:
        """Terminate ``process`` together with all of its descendants.

        Safe to call repeatedly, on processes that already exited and on
        ``None``. Once the exit status has been collected this does nothing.
        """

    def wait_for_exit(self, process: subprocess.Popen[Any], timeout: float) -> bool:
        """Return whether ``process`` exited within ``timeout`` seconds."""

        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    def reap(self, process: subprocess.Popen[Any]) -> int:
        """Collect the exit status of an exited ``process``."""

        return process.wait()


__all__ = ["ProcessGroupManager"]
