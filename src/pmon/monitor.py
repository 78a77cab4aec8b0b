"""Fixed-interval sampling engine for pmon."""

import threading
from collections.abc import Callable, Mapping, Sequence
from enum import Enum

from pmon.averaging import ApproxStrategy, AveragingStrategy, approx_rolling_average
from pmon.log import get_logger
from pmon.models import ProcessMetrics
from pmon.source import SnapshotSource

logger = get_logger("monitor")

Reporter = Callable[[Mapping[str, ProcessMetrics]], None]

DEFAULT_INTERVAL = 1.0
MIN_INTERVAL = 0.05


class MonitorState(Enum):
    """Lifecycle of the sampling loop."""

    RUNNING = "running"
    STOPPED = "stopped"


class ProcessMonitor:
    """
    Samples every registered process once per tick and updates its averages.

    Runs in a separate daemon thread. The thread is the only writer of the
    registry records and calls the reporter synchronously at the end of each
    tick. A stop request is only observed between ticks.
    """

    def __init__(
        self,
        registry: Mapping[str, ProcessMetrics],
        source: SnapshotSource,
        reporter: Reporter | None = None,
        strategies: Sequence[AveragingStrategy] | None = None,
        interval: float = DEFAULT_INTERVAL,
        stale_after: int = 3,
    ) -> None:
        """
        Initialize the ProcessMonitor.

        Args:
            registry: Records to update, keyed by identifier.
            source: Where snapshots are read from.
            reporter: Called with the registry after every tick.
            strategies: CPU averaging strategies applied to each snapshot.
            interval: Seconds between ticks. Default 1.0s.
            stale_after: Consecutive fully failed ticks before a record is
                logged as stale.
        """
        self._registry = registry
        self._source = source
        self._reporter = reporter
        self._strategies: tuple[AveragingStrategy, ...] = tuple(strategies or (ApproxStrategy(),))
        self._interval = max(MIN_INTERVAL, interval)
        self._stale_after = stale_after
        self._samples = 0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> float:
        """Get the tick interval in seconds."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the tick interval."""
        self._interval = max(MIN_INTERVAL, value)

    @property
    def samples(self) -> int:
        """Number of ticks run so far."""
        return self._samples

    @property
    def strategies(self) -> tuple[AveragingStrategy, ...]:
        return self._strategies

    @property
    def is_running(self) -> bool:
        """Check if the sampling thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def state(self) -> MonitorState:
        return MonitorState.RUNNING if self.is_running else MonitorState.STOPPED

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="ProcessMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread, waiting for the current tick to finish.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        thread = self._thread
        if thread is None:
            return
        if thread is threading.current_thread():
            # Called from the reporter; the loop exits after this tick
            return
        thread.join(timeout=timeout)
        if thread.is_alive():
            logger.warning("Sampling thread did not stop within %ss", timeout)
            return
        self._thread = None

    def _poll_loop(self) -> None:
        """Main sampling loop running in the background thread."""
        # Event.wait returns True once stop is requested
        while not self._stop_event.wait(timeout=self._interval):
            self.tick()
        logger.debug("Sampling stopped after %d ticks", self._samples)

    def tick(self) -> None:
        """Run one sweep over every registered process, then report."""
        self._samples += 1
        n = self._samples

        for key, metrics in self._registry.items():
            self._sample_process(key, metrics, n)

        if self._reporter is not None:
            try:
                self._reporter(self._registry)
            except Exception:
                logger.exception("Reporter failed on tick %d", n)

    def _sample_process(self, key: str, metrics: ProcessMetrics, n: int) -> None:
        if metrics.gone:
            return

        try:
            snapshot = self._source.snapshot(metrics.handle)
        except Exception:
            logger.exception("Unexpected error sampling %s", key)
            self._record_failure(key, metrics)
            return

        if snapshot.gone:
            metrics.gone = True
            logger.info("Process %s (%s) exited", key, metrics.name)
            return

        if snapshot.failed:
            self._record_failure(key, metrics)
            return
        metrics.consecutive_failures = 0

        logger.debug("Sample %s cpu=%s cpu_time=%s", key, snapshot.cpu_percent, snapshot.cpu_time)
        for strategy in self._strategies:
            strategy.update(metrics, snapshot, n, self._interval)

        if snapshot.ctx_voluntary is not None:
            metrics.ctx_voluntary = snapshot.ctx_voluntary
        if snapshot.ctx_involuntary is not None:
            metrics.ctx_involuntary = snapshot.ctx_involuntary
        if snapshot.memory_rss is not None:
            metrics.memory_bytes = int(
                approx_rolling_average(float(metrics.memory_bytes), float(snapshot.memory_rss), n)
            )

    def _record_failure(self, key: str, metrics: ProcessMetrics) -> None:
        metrics.consecutive_failures += 1
        # A skipped tick breaks the cumulative CPU-time delta
        metrics.cumulative_cpu_time = None
        if metrics.consecutive_failures == self._stale_after:
            logger.warning(
                "No metrics for %s (%s) in %d ticks, marking stale",
                key,
                metrics.name,
                metrics.consecutive_failures,
            )
