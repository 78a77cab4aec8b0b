"""Tests for the psutil-backed snapshot source."""

import os
from unittest.mock import MagicMock

import psutil
import pytest

from pmon.models import MetricSnapshot
from pmon.source import PsutilSource


def fake_handle(**overrides) -> MagicMock:
    """A psutil.Process stand-in whose readers can be made to fail."""
    handle = MagicMock(spec=psutil.Process)
    handle.pid = 4242
    handle.oneshot.return_value = MagicMock()
    handle.cpu_percent.return_value = 12.5
    handle.cpu_times.return_value = MagicMock(user=1.5, system=0.5)
    handle.num_ctx_switches.return_value = MagicMock(voluntary=30, involuntary=3)
    handle.memory_info.return_value = MagicMock(rss=8 * 1024 * 1024)
    handle.name.return_value = "fake"
    for attr, value in overrides.items():
        getattr(handle, attr).side_effect = value
    return handle


class TestPsutilSourceOnCurrentProcess:
    """Tests against the running test process."""

    def test_open_and_name(self):
        source = PsutilSource()

        handle = source.open(os.getpid())

        assert handle.pid == os.getpid()
        assert isinstance(source.name(handle), str)
        assert source.name(handle)

    def test_snapshot_has_all_fields(self):
        source = PsutilSource()
        handle = source.open(os.getpid())

        snapshot = source.snapshot(handle)

        assert isinstance(snapshot, MetricSnapshot)
        assert not snapshot.gone
        assert not snapshot.failed
        assert isinstance(snapshot.cpu_percent, float)
        assert snapshot.cpu_time is not None and snapshot.cpu_time > 0
        assert snapshot.ctx_voluntary is not None and snapshot.ctx_voluntary >= 0
        assert snapshot.ctx_involuntary is not None and snapshot.ctx_involuntary >= 0
        assert snapshot.memory_rss is not None and snapshot.memory_rss > 0

    def test_open_missing_process(self):
        with pytest.raises(psutil.NoSuchProcess):
            PsutilSource().open(99_999_999)

    def test_open_negative_pid(self):
        with pytest.raises(ValueError):
            PsutilSource().open(-5)


class TestPsutilSourceFailures:
    """Tests for partial and total read failures."""

    def test_snapshot_reads_all_fields(self):
        snapshot = PsutilSource().snapshot(fake_handle())

        assert snapshot == MetricSnapshot(
            cpu_percent=12.5,
            cpu_time=2.0,
            ctx_voluntary=30,
            ctx_involuntary=3,
            memory_rss=8 * 1024 * 1024,
        )

    def test_access_denied_blanks_only_that_field(self):
        handle = fake_handle(memory_info=psutil.AccessDenied(4242))

        snapshot = PsutilSource().snapshot(handle)

        assert snapshot.memory_rss is None
        assert snapshot.cpu_percent == 12.5
        assert snapshot.ctx_voluntary == 30
        assert not snapshot.gone

    def test_every_field_denied(self):
        denied = psutil.AccessDenied(4242)
        handle = fake_handle(
            cpu_percent=denied, cpu_times=denied, num_ctx_switches=denied, memory_info=denied
        )

        snapshot = PsutilSource().snapshot(handle)

        assert snapshot.failed
        assert not snapshot.gone

    def test_exited_process_is_gone(self):
        handle = fake_handle(cpu_times=psutil.NoSuchProcess(4242))

        snapshot = PsutilSource().snapshot(handle)

        assert snapshot.gone
        assert snapshot.failed

    def test_zombie_is_gone(self):
        handle = fake_handle(cpu_percent=psutil.ZombieProcess(4242))

        assert PsutilSource().snapshot(handle).gone

    def test_name_failure_yields_empty_string(self):
        handle = fake_handle(name=psutil.AccessDenied(4242))

        assert PsutilSource().name(handle) == ""
