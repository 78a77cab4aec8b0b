"""Command-line entry point for pmon."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from queue import Queue

from pmon.averaging import STRATEGY_NAMES, resolve_strategies
from pmon.config import LOG_LEVELS, ConfigError, Settings, load_settings
from pmon.log import get_logger, setup_logging
from pmon.monitor import ProcessMonitor
from pmon.registry import Registry, build_registry
from pmon.report import ConsoleReporter, snapshot_rows
from pmon.shutdown import ShutdownController
from pmon.source import PsutilSource, SnapshotSource

logger = get_logger("cli")

# Seconds between "still waiting" warnings while the sampler finishes a tick
STOP_WAIT = 5.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pmon",
        description="Sample CPU, context switches and memory of running processes.",
    )
    parser.add_argument("pids", nargs="*", metavar="PID", help="process ids to monitor")
    parser.add_argument("-i", "--interval", type=float, help="seconds between samples (default 1)")
    parser.add_argument("-s", "--strategy", choices=STRATEGY_NAMES, help="CPU averaging strategy")
    parser.add_argument("--stale-after", type=int, help="failed ticks before a process is stale")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS)
    parser.add_argument("--log-file")
    parser.add_argument("--config", type=Path, help="JSON settings file")
    parser.add_argument(
        "--tui", action="store_true", default=None, help="interactive table instead of redraws"
    )
    return parser


def main(argv: list[str] | None = None, source: SnapshotSource | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.pids:
        parser.error("No processes to monitor. Usage: pmon <list of pids>")

    try:
        settings = load_settings(
            {
                "interval": args.interval,
                "strategy": args.strategy,
                "stale_after": args.stale_after,
                "log_level": args.log_level,
                "log_file": args.log_file,
                "tui": args.tui,
            },
            path=args.config,
        )
    except ConfigError as exc:
        parser.error(str(exc))

    setup_logging(settings.log_level, settings.log_file, console=not settings.tui)

    source = source or PsutilSource()
    registry = build_registry(args.pids, source)
    if not registry:
        logger.warning("None of the given pids could be monitored")

    if settings.tui:
        return run_tui(registry, source, settings)
    return run_console(registry, source, settings)


def wait_for_monitor(monitor: ProcessMonitor) -> None:
    """Stop the sampler and block until its thread has exited."""
    monitor.stop(timeout=STOP_WAIT)
    while monitor.is_running:
        logger.warning("Waiting for the sampler to finish its current tick")
        monitor.stop(timeout=STOP_WAIT)


def run_console(registry: Registry, source: SnapshotSource, settings: Settings) -> int:
    strategies = resolve_strategies(settings.strategy)
    reporter = ConsoleReporter(strategies=strategies, stale_after=settings.stale_after)
    monitor = ProcessMonitor(
        registry,
        source,
        reporter=reporter,
        strategies=strategies,
        interval=settings.interval,
        stale_after=settings.stale_after,
    )

    with ShutdownController() as shutdown:
        monitor.start()
        shutdown.wait()
        wait_for_monitor(monitor)

    reporter(registry)
    return 0


def run_tui(registry: Registry, source: SnapshotSource, settings: Settings) -> int:
    # Imported lazily so console mode does not pay for textual
    from pmon.app import PmonApp, QueueReporter

    strategies = resolve_strategies(settings.strategy)
    update_queue: Queue = Queue()
    monitor = ProcessMonitor(
        registry,
        source,
        reporter=QueueReporter(update_queue, settings.stale_after),
        strategies=strategies,
        interval=settings.interval,
        stale_after=settings.stale_after,
    )

    with ShutdownController() as shutdown:
        app = PmonApp(
            monitor,
            update_queue,
            initial_rows=snapshot_rows(registry, settings.stale_after),
            shutdown=shutdown,
        )
        app.run()
        wait_for_monitor(monitor)

    ConsoleReporter(strategies=strategies, stale_after=settings.stale_after, clear=False)(registry)
    return 0


if __name__ == "__main__":
    sys.exit(main())
