"""Shared fixtures for pmon tests."""

import logging

import psutil
import pytest

from pmon.models import MetricSnapshot


class FakeSource:
    """Snapshot source driven by scripted snapshots instead of real processes."""

    def __init__(self, processes: dict[int, str | None] | None = None) -> None:
        self.processes = dict(processes or {})
        self.scripts: dict[int, list[MetricSnapshot]] = {}
        self.reads = 0

    def script(self, pid: int, *snapshots: MetricSnapshot) -> None:
        """Queue snapshots for ``pid``; the last one repeats once the rest are used."""
        self.scripts[pid] = list(snapshots)

    def open(self, pid: int) -> int:
        if pid not in self.processes:
            raise psutil.NoSuchProcess(pid)
        return pid

    def name(self, handle: int) -> str:
        return self.processes[handle] or ""

    def snapshot(self, handle: int) -> MetricSnapshot:
        self.reads += 1
        script = self.scripts.get(handle)
        if not script:
            return MetricSnapshot()
        if len(script) > 1:
            return script.pop(0)
        return script[0]


@pytest.fixture
def fake_source():
    return FakeSource({100: "alpha", 200: "beta"})


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the user's real config file."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture(autouse=True)
def reset_pmon_logger():
    """Undo setup_logging so caplog keeps seeing pmon records."""
    yield
    logger = logging.getLogger("pmon")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def make_source():
    """Factory for sources with a custom set of processes."""
    return FakeSource
