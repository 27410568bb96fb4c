"""Run FFmpeg over a boundary plan and stream finished segment names back."""
from __future__ import annotations

import logging
import queue
import shlex
import subprocess
import threading
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Any, Iterator, List, Optional, Sequence, Type

from . import procgroup
from .config import TranscodeConfig
from .encoder import SegmentCommandBuilder
from .exceptions import EncoderRuntimeError, ProcessKillError, SpawnError
from .procgroup import ProcessGroupManager
from .settings import RuntimeSettings

LOGGER = logging.getLogger(__name__)

_CLOSED = object()


class TranscodeState(str, Enum):
    """Lifecycle of a single segmented transcode."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    DRAINING = "draining"
    COMPLETED = "completed"
    FAILED = "failed"
    KILLED = "killed"

    @property
    def is_terminal(self) -> bool:
        return self in (TranscodeState.COMPLETED, TranscodeState.FAILED, TranscodeState.KILLED)


class SegmentStream:
    """Iterate the names of finished segments while FFmpeg is running.

    The stream is consumed once. It ends after FFmpeg closed its stdout, the
    stderr reader finished and the exit status was recorded, so ``state``,
    ``returncode`` and ``error`` are final by the time iteration stops. A
    closed stream says nothing about success; check :attr:`error`.

    Callers that stop iterating early must :meth:`cancel` (or leave the
    ``with`` block) so the reader is not left blocked on the bounded buffer.
    The supervisor owns the exit status of ``process``; waiting on it directly
    would release its pid before the process group has been swept.
    """

    def __init__(
        self,
        process: subprocess.Popen[str],
        command: Sequence[str],
        config: TranscodeConfig,
        *,
        group_manager: ProcessGroupManager,
        cancel_event: Optional[threading.Event] = None,
        buffer_size: int = 1,
        poll_interval: float = 0.1,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.process = process
        self.command = tuple(command)
        self.config = config
        self._group = group_manager
        self._external_cancel = cancel_event
        self._cancelled = threading.Event()
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max(1, buffer_size))
        self._poll_interval = poll_interval
        self._logger = logger or LOGGER

        self._state = TranscodeState.RUNNING
        self._returncode: Optional[int] = None
        self._error: Optional[EncoderRuntimeError] = None
        self._outcome: Optional[TranscodeState] = None
        self._killed = False
        self._exhausted = False
        self._exited = threading.Event()
        self._finished = threading.Event()

        self._stderr_thread = threading.Thread(
            target=self._drain_stderr, name="segmenter-stderr", daemon=True
        )
        self._supervisor_thread = threading.Thread(
            target=self._supervise, name="segmenter-supervisor", daemon=True
        )
        self._stdout_thread = threading.Thread(
            target=self._drain_stdout, name="segmenter-stdout", daemon=True
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def state(self) -> TranscodeState:
        return self._state

    @property
    def returncode(self) -> Optional[int]:
        return self._returncode

    @property
    def error(self) -> Optional[EncoderRuntimeError]:
        """The failure recorded for a non-zero FFmpeg exit, if any."""

        return self._error

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested()

    def segment_path(self, name: str) -> Path:
        """Return where the segment reported as ``name`` was written."""

        return Path(self.config.output_dir) / name

    def cancel(self) -> None:
        """Ask the supervisor to kill the encoder and its whole process tree."""

        if not self._cancelled.is_set():
            self._logger.debug("Cancellation requested for FFmpeg (pid=%s)", self.process.pid)
        self._cancelled.set()

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until the run reached a terminal state and return its exit code.

        Returns ``None`` when ``timeout`` expires first.
        """

        if not self._finished.wait(timeout):
            return None
        return self._returncode

    def raise_for_status(self) -> None:
        """Raise the recorded :class:`EncoderRuntimeError` of a failed run."""

        if self._error is not None:
            raise self._error

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        if self._exhausted:
            raise StopIteration
        item = self._queue.get()
        if item is _CLOSED:
            self._exhausted = True
            raise StopIteration
        return item

    def __enter__(self) -> "SegmentStream":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        if not self._finished.is_set():
            self.cancel()
        self.wait()

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------
    def _start(self) -> None:
        self._stderr_thread.start()
        self._supervisor_thread.start()
        self._stdout_thread.start()

    def _drain_stdout(self) -> None:
        stream = self.process.stdout
        try:
            if stream is not None:
                for line in stream:
                    name = line.rstrip("\r\n")
                    if not name:
                        continue
                    self._logger.debug("Segment finished: %s", name)
                    if not self._offer(name):
                        self._logger.debug("Dropped segment %s after cancellation", name)
        except (OSError, ValueError) as exc:
            self._logger.error("Error while reading FFmpeg stdout: %s", exc)
        finally:
            if stream is not None:
                stream.close()
            self._stderr_thread.join()
            self._exited.wait()
            self._finish()
            self._offer(_CLOSED)

    def _drain_stderr(self) -> None:
        stream = self.process.stderr
        if stream is None:
            return
        try:
            for line in stream:
                text = line.rstrip()
                if text:
                    self._logger.warning("ffmpeg: %s", text)
        except (OSError, ValueError) as exc:
            self._logger.error("Error while reading FFmpeg stderr: %s", exc)
        finally:
            stream.close()

    def _supervise(self) -> None:
        process = self.process
        try:
            while not self._group.wait_for_exit(process, self._poll_interval):
                if self._cancel_requested() and not self._killed:
                    self._terminate()

            self._state = TranscodeState.DRAINING
            # Descendants can outlive FFmpeg itself; reaping sweeps what is left of the group.
            returncode = self._group.reap(process)
            self._record_exit(returncode)
        finally:
            self._exited.set()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _cancel_requested(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._external_cancel is not None and self._external_cancel.is_set()

    def _terminate(self) -> None:
        self._killed = True
        process = self.process
        self._logger.info("Killing FFmpeg process tree (pid=%s)", process.pid)
        try:
            process.terminate()
        except OSError as exc:
            self._logger.warning("Failed to terminate FFmpeg (pid=%s): %s", process.pid, exc)
        self._kill_group()

    def _kill_group(self) -> None:
        try:
            self._group.kill(self.process)
        except ProcessKillError:
            self._logger.exception("Failed to kill FFmpeg process tree (pid=%s)", self.process.pid)

    def _record_exit(self, returncode: int) -> None:
        self._returncode = returncode
        if self._killed:
            self._logger.info("FFmpeg process was killed (returncode=%s)", returncode)
            self._outcome = TranscodeState.KILLED
        elif returncode == 0:
            self._logger.info("FFmpeg process successfully finished.")
            self._outcome = TranscodeState.COMPLETED
        else:
            self._error = EncoderRuntimeError(
                f"FFmpeg exited with {returncode}", returncode=returncode
            )
            self._logger.error("FFmpeg process exited with error: %s", returncode)
            self._outcome = TranscodeState.FAILED

    def _finish(self) -> None:
        self._state = self._outcome or TranscodeState.FAILED
        self._finished.set()

    def _offer(self, item: Any) -> bool:
        while True:
            try:
                self._queue.put(item, timeout=self._poll_interval)
                return True
            except queue.Full:
                if not self._cancel_requested():
                    continue
                if item is not _CLOSED:
                    return False
                # Nobody is reading after a cancellation; make room for the close marker.
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass


def transcode_segments(
    ffmpeg_binary: str,
    config: TranscodeConfig,
    *,
    cancel_event: Optional[threading.Event] = None,
    settings: Optional[RuntimeSettings] = None,
    group_manager: Optional[ProcessGroupManager] = None,
    logger: Optional[logging.Logger] = None,
) -> SegmentStream:
    """Start FFmpeg for ``config`` and return the stream of finished segments.

    Returns as soon as the process and its reader threads are running.
    Invalid configurations raise :class:`~vod_segmenter.exceptions.ConfigError`
    and start failures raise :class:`~vod_segmenter.exceptions.SpawnError`;
    neither leaves a process behind. Setting ``cancel_event`` kills the whole
    FFmpeg process tree.
    """

    log = logger or LOGGER
    settings = settings or RuntimeSettings()
    manager = group_manager or procgroup.default_manager()

    log.debug("Transcode %s -> %s: %s", config.input_path, config.output_dir, TranscodeState.STARTING.value)
    builder = SegmentCommandBuilder(
        ffmpeg_binary,
        config,
        ffprobe_binary=settings.resolve_ffprobe_binary(ffmpeg_binary),
        probe_timeout=settings.probe_timeout,
        logger=log,
    )
    command: List[str] = builder.build_command()

    if cancel_event is not None and cancel_event.is_set():
        raise SpawnError("Transcode was cancelled before FFmpeg started")

    popen_kwargs = manager.configure(
        {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.PIPE,
            "stderr": subprocess.PIPE,
            "text": True,
            "encoding": "utf-8",
            "errors": "replace",
            "bufsize": 1,
        }
    )
    log.info("Starting FFmpeg process with args %s", shlex.join(command))
    try:
        process = subprocess.Popen(command, **popen_kwargs)
    except (OSError, ValueError, subprocess.SubprocessError) as exc:
        log.error("Failed to start FFmpeg: %s", exc)
        raise SpawnError(f"Failed to start FFmpeg: {exc}") from exc

    stream = SegmentStream(
        process,
        command,
        config,
        group_manager=manager,
        cancel_event=cancel_event,
        buffer_size=settings.buffer_size,
        poll_interval=settings.poll_interval,
        logger=log,
    )
    try:
        stream._start()
    except RuntimeError as exc:
        manager.kill(process)
        process.wait()
        raise SpawnError(f"Failed to start FFmpeg reader threads: {exc}") from exc
    return stream


__all__ = ["SegmentStream", "TranscodeState", "transcode_segments"]
