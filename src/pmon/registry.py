"""Construction of the registry of monitored processes."""

from collections.abc import Iterable

import psutil

from pmon.log import get_logger
from pmon.models import ProcessMetrics
from pmon.source import SnapshotSource

logger = get_logger("registry")

Registry = dict[str, ProcessMetrics]


def parse_pid(identifier: str) -> int:
    """Parse a decimal PID. Invalid input yields 0."""
    try:
        return int(identifier.strip(), 10)
    except ValueError:
        logger.warning("Invalid pid %r, falling back to 0", identifier)
        return 0


def build_registry(identifiers: Iterable[str], source: SnapshotSource) -> Registry:
    """
    Build one record per identifier whose process handle could be acquired.

    Identifiers that fail are logged and left out. The name is read once;
    failing to read it leaves it empty.
    """
    registry: Registry = {}
    for identifier in identifiers:
        if identifier in registry:
            continue
        pid = parse_pid(identifier)
        try:
            handle = source.open(pid)
        except (psutil.Error, ValueError) as exc:
            logger.warning(
                "Unable to initialize process monitor for pid %s. Error %s", identifier, exc
            )
            continue

        registry[identifier] = ProcessMetrics(
            handle=handle,
            pid=pid,
            name=source.name(handle),
        )
        logger.info("Monitoring pid %s (%s)", pid, registry[identifier].name or "?")
    return registry
