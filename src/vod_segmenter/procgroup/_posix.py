"""Process-group handling for POSIX systems."""
from __future__ import annotations

import os
import signal
import subprocess
import time
from typing import Any, Dict, Optional

from ..exceptions import KillResolutionError, ProcessKillError
from .base import ProcessGroupManager

_MAX_POLL_DELAY = 0.05


class PosixProcessGroup(ProcessGroupManager):
    """Run the child as a process-group leader and ``SIGKILL`` the group.

    The leader pid doubles as the group id. It stays reserved only until the
    exit status is collected, so the group is signalled while the leader is
    alive or an unreaped zombie, never afterwards.
    """

    def configure(self, popen_kwargs: Dict[str, Any]) -> Dict[str, Any]:
        popen_kwargs["process_group"] = 0
        return popen_kwargs

    def kill(self, process: Optional[subprocess.Popen[Any]]) -> None:
        if process is None or getattr(process, "pid", None) is None:
            return
        if process.returncode is not None:
            return

        try:
            pgid = self._resolve_group(process.pid)
        except KillResolutionError as exc:
            self._logger.warning("%s; killing pid %s directly", exc, process.pid)
            try:
                process.kill()
            except OSError as kill_exc:
                if process.poll() is None:
                    raise ProcessKillError(
                        f"Failed to kill encoder process (pid={process.pid}): {kill_exc}"
                    ) from kill_exc
            return

        self._signal_group(pgid)

    def wait_for_exit(self, process: subprocess.Popen[Any], timeout: float) -> bool:
        """Wait for ``process`` to exit without collecting its status."""

        if process.returncode is not None:
            return True
        if not hasattr(os, "waitid"):
            return super().wait_for_exit(process, timeout)

        deadline = time.monotonic() + timeout
        delay = 0.0005
        while True:
            try:
                result = os.waitid(os.P_PID, process.pid, os.WEXITED | os.WNOWAIT | os.WNOHANG)
            except ChildProcessError:
                # Collected elsewhere; let Popen record what it can.
                process.poll()
                return True
            if result is not None:
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            delay = min(delay * 2, remaining, _MAX_POLL_DELAY)
            time.sleep(delay)

    def reap(self, process: subprocess.Popen[Any]) -> int:
        """Kill what is left of the group, then collect the leader's status.

        Descendants can outlive the leader. While the leader is a zombie its
        pid cannot be handed out again, so the group id still names its group.
        """

        if process.returncode is None and hasattr(os, "waitid"):
            try:
                os.waitid(os.P_PID, process.pid, os.WEXITED | os.WNOWAIT)
            except ChildProcessError:
                pass
            else:
                try:
                    self._signal_group(process.pid)
                except ProcessKillError:
                    self._logger.exception("Failed to sweep process group %s", process.pid)
        return process.wait()

    @staticmethod
    def _resolve_group(pid: int) -> int:
        try:
            return os.getpgid(pid)
        except OSError as exc:
            raise KillResolutionError(f"Could not get process group id of pid {pid}: {exc}") from exc

    def _signal_group(self, pgid: int) -> None:
        try:
            os.killpg(pgid, signal.SIGKILL)
        except ProcessLookupError:
            return
        except PermissionError as exc:
            raise ProcessKillError(f"Not permitted to kill process group {pgid}: {exc}") from exc
        self._logger.debug("Sent SIGKILL to process group %s", pgid)


__all__ = ["PosixProcessGroup"]
