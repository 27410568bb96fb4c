"""Process-group handling for Windows."""
from __future__ import annotations

import subprocess
from typing import Any, Dict, List, Optional

from ..exceptions import ProcessKillError
from .base import ProcessGroupManager

CREATE_NEW_PROCESS_GROUP = 0x00000200


class WindowsProcessGroup(ProcessGroupManager):
    """Create the child in a new process group and tear it down with ``taskkill``.

    ``taskkill /T`` finds the tree through a live parent, so descendants are only
    reached while the encoder runs. Reaping an exited encoder sweeps nothing.
    """

    taskkill_binary = "taskkill"

    def configure(self, popen_kwargs: Dict[str, Any]) -> Dict[str, Any]:
        flag = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", CREATE_NEW_PROCESS_GROUP)
        popen_kwargs["creationflags"] = int(popen_kwargs.get("creationflags", 0)) | flag
        return popen_kwargs

    def kill_command(self, pid: int) -> List[str]:
        return [self.taskkill_binary, "/T", "/F", "/PID", str(pid)]

    def kill(self, process: Optional[subprocess.Popen[Any]]) -> None:
        if process is None or getattr(process, "pid", None) is None:
            return
        if process.poll() is not None:
            return

        command = self.kill_command(process.pid)
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise ProcessKillError(f"Failed to run {self.taskkill_binary}: {exc}") from exc

        if result.returncode != 0 and process.poll() is None:
            detail = (result.stderr or result.stdout or "").strip()
            raise ProcessKillError(
                f"{self.taskkill_binary} exited with {result.returncode} for pid {process.pid}: {detail}"
            )
        self._logger.debug("Killed process tree of pid %s", process.pid)


__all__ = ["WindowsProcessGroup"]
