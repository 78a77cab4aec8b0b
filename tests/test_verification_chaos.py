"""Verification Test: Chaos Monkey - monitored processes dying mid-run.

Kill some of the monitored processes while the sampler is running and ensure
the sampler keeps going, flags the dead ones and keeps reporting the rest.
"""

import multiprocessing
import random
import time

from pmon.averaging import resolve_strategies
from pmon.models import ProcessStatus
from pmon.monitor import ProcessMonitor
from pmon.registry import build_registry
from pmon.source import PsutilSource


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_monitor_survives_process_termination(self):
        """
        Test that the sampler doesn't crash when monitored processes exit.

        Terminated processes are reaped so reads raise NoSuchProcess; those
        records must turn DEAD while survivors stay ALIVE.
        """
        processes = []
        for _ in range(10):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        registry = build_registry([str(p.pid) for p in processes], PsutilSource())
        reports = []
        monitor = ProcessMonitor(
            registry,
            PsutilSource(),
            reporter=lambda reg: reports.append(len(reg)),
            strategies=resolve_strategies("both"),
            interval=0.1,
        )

        try:
            assert len(registry) == len(processes)
            monitor.start()
            time.sleep(0.3)

            victims = random.sample(processes, 5)
            for p in victims:
                p.terminate()
            for p in victims:
                p.join(timeout=5.0)

            ticks_before = monitor.samples
            deadline = time.time() + 5.0
            while time.time() < deadline and monitor.samples < ticks_before + 3:
                time.sleep(0.05)

            assert monitor.is_running, "Sampler should still be running after chaos"
            assert monitor.samples >= ticks_before + 3
        finally:
            monitor.stop()
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)

        victim_keys = {str(p.pid) for p in victims}
        for key, metrics in registry.items():
            if key in victim_keys:
                assert metrics.status() is ProcessStatus.DEAD
            else:
                assert metrics.status() is ProcessStatus.ALIVE
                assert metrics.memory_bytes > 0
        # The registry never shrinks
        assert set(reports) == {len(processes)}
