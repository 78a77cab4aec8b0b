"""Process metric acquisition backed by psutil."""

from collections.abc import Callable
from typing import Any, Protocol, TypeVar

import psutil

from pmon.log import get_logger
from pmon.models import MetricSnapshot

logger = get_logger("source")

T = TypeVar("T")


class SnapshotSource(Protocol):
    """Anything that can open a PID and read its metrics."""

    def open(self, pid: int) -> Any: ...

    def name(self, handle: Any) -> str: ...

    def snapshot(self, handle: Any) -> MetricSnapshot: ...


class PsutilSource:
    """
    Snapshot source reading from ``psutil.Process`` handles.

    Fields are read independently so an AccessDenied on one of them only
    blanks that field. A process that has exited (or is a zombie) yields a
    snapshot flagged ``gone``.
    """

    def open(self, pid: int) -> psutil.Process:
        """
        Acquire a handle for ``pid``.

        Raises:
            psutil.Error: If the process does not exist or cannot be accessed.
            ValueError: If ``pid`` is negative.
        """
        handle = psutil.Process(pid)
        # Initialize CPU percent (first call returns 0.0)
        try:
            handle.cpu_percent(interval=None)
        except psutil.AccessDenied:
            logger.debug("Access denied priming cpu_percent for pid %s", pid)
        return handle

    def name(self, handle: psutil.Process) -> str:
        try:
            return handle.name() or ""
        except psutil.Error as exc:
            logger.debug("Unable to read name of pid %s: %s", handle.pid, exc)
            return ""

    def snapshot(self, handle: psutil.Process) -> MetricSnapshot:
        try:
            # Use oneshot() context manager for efficient attribute access
            with handle.oneshot():
                cpu_percent = self._read(
                    handle, "cpu_percent", lambda: handle.cpu_percent(interval=None)
                )
                cpu_times = self._read(handle, "cpu_times", handle.cpu_times)
                ctx = self._read(handle, "num_ctx_switches", handle.num_ctx_switches)
                mem = self._read(handle, "memory_info", handle.memory_info)
        except psutil.NoSuchProcess:
            # Also covers ZombieProcess
            logger.debug("Process %s is gone", handle.pid)
            return MetricSnapshot(gone=True)

        return MetricSnapshot(
            cpu_percent=cpu_percent,
            cpu_time=cpu_times.user + cpu_times.system if cpu_times is not None else None,
            ctx_voluntary=ctx.voluntary if ctx is not None else None,
            ctx_involuntary=ctx.involuntary if ctx is not None else None,
            memory_rss=mem.rss if mem is not None else None,
        )

    @staticmethod
    def _read(handle: psutil.Process, label: str, read: Callable[[], T]) -> T | None:
        try:
            return read()
        except psutil.NoSuchProcess:
            raise
        except psutil.Error as exc:
            logger.debug("Unable to read %s of pid %s: %s", label, handle.pid, exc)
            return None
