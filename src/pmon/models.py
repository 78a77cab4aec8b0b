"""Data models for pmon."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProcessStatus(Enum):
    """Health of a monitored process as seen by the sampler."""

    ALIVE = "alive"
    STALE = "stale"
    DEAD = "dead"


@dataclass(slots=True, frozen=True)
class MetricSnapshot:
    """One read of a process. ``None`` marks a field whose read failed."""

    cpu_percent: float | None = None
    cpu_time: float | None = None  # Cumulative user + system seconds
    ctx_voluntary: int | None = None
    ctx_involuntary: int | None = None
    memory_rss: int | None = None  # Bytes
    gone: bool = False

    @property
    def failed(self) -> bool:
        """True when no metric could be read at all."""
        return (
            self.cpu_percent is None
            and self.cpu_time is None
            and self.ctx_voluntary is None
            and self.ctx_involuntary is None
            and self.memory_rss is None
        )


@dataclass(slots=True)
class ProcessMetrics:
    """
    Running statistics for one monitored process.

    Created once at startup and mutated in place by the sampling thread only.
    """

    handle: Any
    pid: int
    name: str = ""
    cumulative_cpu_time: float | None = None
    avg_cpu_approx: float = 0.0
    avg_cpu_exact: float | None = None
    ctx_voluntary: int = 0
    ctx_involuntary: int = 0
    memory_bytes: int = 0
    consecutive_failures: int = 0
    gone: bool = False

    def status(self, stale_after: int = 3) -> ProcessStatus:
        """Classify the record from its failure bookkeeping."""
        if self.gone:
            return ProcessStatus.DEAD
        if stale_after > 0 and self.consecutive_failures >= stale_after:
            return ProcessStatus.STALE
        return ProcessStatus.ALIVE


@dataclass(slots=True, frozen=True)
class ProcessRow:
    """Immutable copy of a record, safe to hand to another thread."""

    key: str
    pid: int
    name: str
    avg_cpu_approx: float
    avg_cpu_exact: float | None
    ctx_voluntary: int
    ctx_involuntary: int
    memory_bytes: int
    status: ProcessStatus

    @classmethod
    def from_metrics(cls, key: str, metrics: ProcessMetrics, stale_after: int = 3) -> "ProcessRow":
        return cls(
            key=key,
            pid=metrics.pid,
            name=metrics.name,
            avg_cpu_approx=metrics.avg_cpu_approx,
            avg_cpu_exact=metrics.avg_cpu_exact,
            ctx_voluntary=metrics.ctx_voluntary,
            ctx_involuntary=metrics.ctx_involuntary,
            memory_bytes=metrics.memory_bytes,
            status=metrics.status(stale_after),
        )
