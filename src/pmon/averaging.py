"""Averaging strategies for CPU usage."""

from typing import Protocol

from pmon.models import MetricSnapshot, ProcessMetrics


def approx_rolling_average(avg: float, sample: float, n: int) -> float:
    """
    Fold ``sample`` into the running mean ``avg`` of ``n - 1`` earlier samples.

    Every sample is weighted equally, so applying this over a sequence with
    ``n`` counting from 1 yields the arithmetic mean. At ``n == 1`` the result
    is ``sample`` regardless of ``avg``.

    Raises:
        ValueError: If ``n`` is less than 1.
    """
    if n < 1:
        raise ValueError(f"sample count must be >= 1, got {n}")
    avg -= avg / n
    avg += sample / n
    return avg


def exact_rate(prev_cumulative: float, new_cumulative: float, interval: float) -> float:
    """
    Percent of one core used between two cumulative CPU-time readings.

    Raises:
        ValueError: If ``interval`` is not positive.
    """
    if interval <= 0:
        raise ValueError(f"interval must be > 0, got {interval}")
    return 100.0 * (new_cumulative - prev_cumulative) / interval


class AveragingStrategy(Protocol):
    """Updates the CPU fields of a record from a fresh snapshot."""

    name: str

    def update(
        self, metrics: ProcessMetrics, snapshot: MetricSnapshot, n: int, interval: float
    ) -> None: ...


class ApproxStrategy:
    """Running mean of the per-tick CPU percent reported by the source."""

    name = "approx"

    def update(
        self, metrics: ProcessMetrics, snapshot: MetricSnapshot, n: int, interval: float
    ) -> None:
        if snapshot.cpu_percent is None:
            return
        metrics.avg_cpu_approx = approx_rolling_average(
            metrics.avg_cpu_approx, snapshot.cpu_percent, n
        )


class ExactStrategy:
    """
    CPU percent derived from the cumulative CPU-time counter.

    The first reading only primes the counter, so no rate is reported until
    two consecutive readings exist. A missed reading or a counter that moves
    backwards re-primes it.
    """

    name = "exact"

    def update(
        self, metrics: ProcessMetrics, snapshot: MetricSnapshot, n: int, interval: float
    ) -> None:
        new = snapshot.cpu_time
        if new is None:
            # The next delta would span more than one interval
            metrics.cumulative_cpu_time = None
            return
        prev = metrics.cumulative_cpu_time
        metrics.cumulative_cpu_time = new
        if prev is None:
            # Priming tick; an earlier rate, if any, stays on display
            return
        if new < prev:
            metrics.avg_cpu_exact = None
            return
        metrics.avg_cpu_exact = exact_rate(prev, new, interval)


STRATEGY_NAMES = ("approx", "exact", "both")


def resolve_strategies(name: str) -> tuple[AveragingStrategy, ...]:
    """Map a configured strategy name to strategy instances."""
    if name == "approx":
        return (ApproxStrategy(),)
    if name == "exact":
        return (ExactStrategy(),)
    if name == "both":
        return (ApproxStrategy(), ExactStrategy())
    raise ValueError(f"unknown averaging strategy {name!r}, expected one of {STRATEGY_NAMES}")
