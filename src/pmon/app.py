"""pmon - interactive Textual view of the sampled processes."""

from collections.abc import Mapping, Sequence
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from pmon.log import get_logger
from pmon.models import ProcessMetrics, ProcessRow
from pmon.monitor import ProcessMonitor
from pmon.report import cpu_cells, cpu_columns, format_megabytes, snapshot_rows
from pmon.shutdown import ShutdownController

logger = get_logger("app")


class QueueReporter:
    """
    Reporter that hands immutable rows to the UI thread.

    Rows are copied inside the sampling thread, so the UI never reads a
    record while it is being updated.
    """

    def __init__(self, update_queue: "Queue[list[ProcessRow]]", stale_after: int = 3) -> None:
        self._queue = update_queue
        self._stale_after = stale_after

    def __call__(self, registry: Mapping[str, ProcessMetrics]) -> None:
        self._queue.put(snapshot_rows(registry, self._stale_after))


class StatusLine(Static):
    """One-line summary of the sampler state."""

    DEFAULT_CSS = """
    StatusLine {
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    """

    def show_counts(self, processes: int, samples: int, interval: float) -> None:
        self.update(f"Processes: {processes}  Samples: {samples}  Interval: {interval:g}s")


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(
        self,
        strategy_names: Sequence[str] = ("approx",),
        initial_rows: Sequence[ProcessRow] = (),
        *args,
        **kwargs,
    ) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._strategy_names = tuple(strategy_names)
        self._initial_rows = list(initial_rows)
        self._current_keys: set[str] = set()

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("Name", key="name", width=20)
        table.add_column("PID", key="pid", width=8)
        for key, header in cpu_columns(self._strategy_names):
            table.add_column(header, key=key, width=11)
        table.add_column("CTX_voluntary", key="ctx_vol", width=14)
        table.add_column("CTX_involuntary", key="ctx_invol", width=16)
        table.add_column("Mem", key="mem", width=10)
        table.add_column("Status", key="status", width=7)
        self.update_rows(self._initial_rows)

    def _cells(self, row: ProcessRow) -> list[str]:
        return [
            row.name[:20],
            str(row.pid),
            *cpu_cells(row, self._strategy_names),
            str(row.ctx_voluntary),
            str(row.ctx_involuntary),
            format_megabytes(row.memory_bytes),
            row.status.value,
        ]

    def _column_keys(self) -> list[str]:
        return [
            "name",
            "pid",
            *(key for key, _ in cpu_columns(self._strategy_names)),
            "ctx_vol",
            "ctx_invol",
            "mem",
            "status",
        ]

    def update_rows(self, rows: Sequence[ProcessRow]) -> None:
        """
        Update the table with new rows.

        Uses update_cell for existing rows to avoid re-rendering the whole table.
        """
        table = self.query_one("#process-table", DataTable)
        column_keys = self._column_keys()

        for row in rows:
            cells = self._cells(row)
            if row.key in self._current_keys:
                for column_key, value in zip(column_keys, cells):
                    table.update_cell(row.key, column_key, value)
            else:
                table.add_row(*cells, key=row.key)
                self._current_keys.add(row.key)


class PmonApp(App):
    """Main pmon application."""

    TITLE = "pmon"
    SUB_TITLE = "Process Resource Sampler"

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        monitor: ProcessMonitor,
        update_queue: "Queue[list[ProcessRow]]",
        initial_rows: Sequence[ProcessRow] = (),
        shutdown: ShutdownController | None = None,
    ) -> None:
        """Initialize the PmonApp."""
        super().__init__()
        self._monitor = monitor
        self._update_queue = update_queue
        self._initial_rows = list(initial_rows)
        self._shutdown_ctl = shutdown

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield StatusLine(id="status-line")
        yield ProcessTable(
            tuple(s.name for s in self._monitor.strategies), self._initial_rows
        )
        yield Footer()

    def on_mount(self) -> None:
        """Start the sampler when the app is mounted."""
        self._refresh_status(len(self._initial_rows))
        self._monitor.start()
        self.set_interval(0.25, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and show the most recent rows."""
        if self._shutdown_ctl is not None and self._shutdown_ctl.cancelled:
            self.action_quit()
            return

        rows = None
        while True:
            try:
                rows = self._update_queue.get_nowait()
            except Empty:
                break

        if rows is not None:
            self.query_one(ProcessTable).update_rows(rows)
            self._refresh_status(len(rows))

    def _refresh_status(self, processes: int) -> None:
        self.query_one("#status-line", StatusLine).show_counts(
            processes, self._monitor.samples, self._monitor.interval
        )

    def action_quit(self) -> None:
        """Stop sampling and leave the app."""
        self._monitor.stop()
        logger.debug("Leaving the table after %d samples", self._monitor.samples)
        self.exit()
