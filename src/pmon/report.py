"""Console rendering of the process table."""

from collections.abc import Iterable, Mapping, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from pmon.averaging import AveragingStrategy
from pmon.models import ProcessMetrics, ProcessRow, ProcessStatus

MEGABYTE = 1024 * 1024

STATUS_STYLES = {
    ProcessStatus.ALIVE: "green",
    ProcessStatus.STALE: "yellow",
    ProcessStatus.DEAD: "red",
}


def format_megabytes(size: int) -> str:
    """Format bytes as whole megabytes, truncated."""
    return f"{int(size) // MEGABYTE} MB"


def format_cpu(value: float | None) -> str:
    """Format a CPU percentage with two decimals, ``-`` when unknown."""
    if value is None:
        return "-"
    return f"{value:.2f}"


def cpu_columns(strategy_names: Iterable[str]) -> list[tuple[str, str]]:
    """(key, header) pairs for the CPU columns of the given strategies."""
    columns = []
    for name in strategy_names:
        if name == "approx":
            columns.append(("cpu", "CPU"))
        elif name == "exact":
            columns.append(("cpu_rate", "CPU (rate)"))
    return columns


def cpu_cells(row: ProcessRow, strategy_names: Iterable[str]) -> list[str]:
    cells = []
    for key, _ in cpu_columns(strategy_names):
        value = row.avg_cpu_approx if key == "cpu" else row.avg_cpu_exact
        cells.append(format_cpu(value))
    return cells


def snapshot_rows(
    registry: Mapping[str, ProcessMetrics], stale_after: int = 3
) -> list[ProcessRow]:
    """Copy every record into an immutable row."""
    return [
        ProcessRow.from_metrics(key, metrics, stale_after) for key, metrics in registry.items()
    ]


def build_table(rows: Sequence[ProcessRow], strategy_names: Sequence[str] = ("approx",)) -> Table:
    """Build the rich table for a set of rows."""
    table = Table(box=None, pad_edge=False, header_style="bold")
    table.add_column("Name")
    table.add_column("PID", justify="right")
    for _, header in cpu_columns(strategy_names):
        table.add_column(header, justify="right")
    table.add_column("CTX_voluntary", justify="right")
    table.add_column("CTX_involuntary", justify="right")
    table.add_column("Mem", justify="right")
    table.add_column("Status")

    for row in rows:
        table.add_row(
            Text(row.name),
            str(row.pid),
            *cpu_cells(row, strategy_names),
            str(row.ctx_voluntary),
            str(row.ctx_involuntary),
            format_megabytes(row.memory_bytes),
            f"[{STATUS_STYLES[row.status]}]{row.status.value}[/]",
        )
    return table


class ConsoleReporter:
    """Clears the terminal and redraws the table on every call."""

    def __init__(
        self,
        console: Console | None = None,
        strategies: Sequence[AveragingStrategy] = (),
        stale_after: int = 3,
        clear: bool = True,
    ) -> None:
        self.console = console or Console()
        self.strategy_names = tuple(s.name for s in strategies) or ("approx",)
        self.stale_after = stale_after
        self.clear = clear

    def __call__(self, registry: Mapping[str, ProcessMetrics]) -> None:
        table = build_table(snapshot_rows(registry, self.stale_after), self.strategy_names)
        if self.clear:
            self.console.clear()
        self.console.print(table)
