"""gpuproc - Textual viewer for GPU processes."""

import argparse
import logging
from enum import Enum
from pathlib import Path
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Header
from textual.widgets.data_table import RowDoesNotExist

from gpuproc.config import LAYOUTS, PMON_COMMAND, Settings
from gpuproc.control import Terminator, psutil_terminate
from gpuproc.errors import TerminationError
from gpuproc.log import setup_logging
from gpuproc.models import GpuProcess, coerce_int
from gpuproc.monitor import GpuProcessMonitor
from gpuproc.sampler import Executor

logger = logging.getLogger(__name__)

# (column key, title) in record field order
COLUMNS: tuple[tuple[str, str], ...] = (
    ("name", "Name of Process"),
    ("type", "Type (C/G)"),
    ("gpu_index", "GPU ID"),
    ("pid", "Process ID"),
    ("sm_util", "SM Util (%)"),
    ("mem_util", "GPU Mem Util (%)"),
    ("enc_util", "Encoding (%)"),
    ("dec_util", "Decoding (%)"),
    ("fb_mem_usage", "FB Mem Usage (MB)"),
)


class SortKey(Enum):
    """Sort keys for the process table."""

    FB_MEM = "fb_mem_usage"
    SM = "sm_util"
    PID = "pid"
    NAME = "name"


def sort_value(text: str) -> tuple[int, int | str]:
    """Sort key for a cell: integers numerically, then text."""
    value = coerce_int(text)
    if isinstance(value, int):
        return (1, value)
    return (0, value.lower())


def row_key(proc: GpuProcess) -> str:
    """Table row key of a record: GPU index and pid."""
    return f"{proc.gpu_index}:{proc.pid}"


def pid_of_row(key: str) -> str:
    """Pid part of a table row key."""
    return key.partition(":")[2]


def is_process_row(proc: GpuProcess) -> bool:
    """False for the placeholder row pmon prints for an idle GPU (pid '-')."""
    return isinstance(coerce_int(proc.pid), int)


class GpuProcessTable(Container):
    """Container for the GPU process data table."""

    DEFAULT_CSS = """
    GpuProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize GpuProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_rows: set[str] = set()
        self._sort_key: SortKey = SortKey.FB_MEM
        self._sort_reverse: bool = True
        self.selected_pid: str | None = None

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        next_index = (keys.index(self._sort_key) + 1) % len(keys)
        self._sort_key = keys[next_index]
        # Metrics read best largest first
        self._sort_reverse = self._sort_key in (SortKey.FB_MEM, SortKey.SM)
        self._apply_sort()
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        for key, title in COLUMNS:
            table.add_column(title, key=key)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Remember the selected process by pid, not by row."""
        self.selected_pid = pid_of_row(event.row_key.value)

    def clear_selection(self) -> None:
        """Forget the selected process."""
        self.selected_pid = None

    def update_processes(self, processes: tuple[GpuProcess, ...]) -> None:
        """
        Update the table with a new snapshot.

        Rows are keyed by GPU and pid, since a process using two GPUs is
        listed once per GPU. Idle-GPU placeholder rows are not shown.
        Vanished rows are removed, known ones updated in place and new ones
        appended, then the table is sorted and the cursor put back on the
        selected process.
        """
        table = self.query_one("#process-table", DataTable)
        rows = {row_key(proc): proc for proc in processes if is_process_row(proc)}

        for key in self._current_rows - rows.keys():
            try:
                table.remove_row(key)
            except RowDoesNotExist:
                pass

        for key, proc in rows.items():
            if key in self._current_rows:
                for (column, _), value in zip(COLUMNS, proc.as_row()):
                    table.update_cell(key, column, value)
            else:
                table.add_row(*proc.as_row(), key=key)

        self._current_rows = set(rows)
        self._apply_sort()

    def _apply_sort(self) -> None:
        table = self.query_one("#process-table", DataTable)
        if table.row_count == 0:
            return
        table.sort(self._sort_key.value, key=sort_value, reverse=self._sort_reverse)

        if self.selected_pid is None:
            return
        indexes = [
            table.get_row_index(key)
            for key in self._current_rows
            if pid_of_row(key) == self.selected_pid
        ]
        # Not shown until it turns up in a later snapshot
        if indexes:
            table.move_cursor(row=min(indexes))


class GpuProcApp(App):
    """Main gpuproc application."""

    TITLE = "gpuproc"
    SUB_TITLE = "GPU Processes"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
        ("k", "kill", "Kill process"),
    ]

    def __init__(
        self,
        settings: Settings | None = None,
        executor: Executor | None = None,
        terminator: Terminator = psutil_terminate,
    ) -> None:
        """Initialize the GpuProcApp."""
        super().__init__()
        self._update_queue: Queue[tuple[GpuProcess, ...]] = Queue()
        self._monitor = GpuProcessMonitor(
            settings,
            executor=executor,
            terminator=terminator,
            update_queue=self._update_queue,
        )

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Header()
        yield GpuProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def on_unmount(self) -> None:
        """Stop polling when the app shuts down."""
        self._monitor.stop()

    def _check_for_updates(self) -> None:
        """Show the most recent snapshot from the queue, if any."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            try:
                self.query_one(GpuProcessTable).update_processes(snapshot)
            except Exception:
                # A bad snapshot must not take the UI down; the next one may render
                logger.exception("Failed to show %d GPU processes", len(snapshot))
                return
            shown = sum(1 for proc in snapshot if is_process_row(proc))
            self.sub_title = f"{shown} GPU processes"
        elif self._monitor.last_error is not None:
            self.sub_title = f"Sampling failed: {self._monitor.last_error}"

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        new_sort_key = self.query_one(GpuProcessTable).cycle_sort()
        self.notify(f"Sort: {new_sort_key.name}")

    def action_kill(self) -> None:
        """Terminate the selected process."""
        process_table = self.query_one(GpuProcessTable)
        pid = process_table.selected_pid
        if pid is None:
            self.notify("No process selected", severity="warning")
            return

        record = self._monitor.control.find(pid)
        try:
            sent = self._monitor.control.terminate(pid)
        except TerminationError as exc:
            self.notify(str(exc), severity="error")
            return

        if sent:
            name = record.name if record is not None else "process"
            self.notify(f"Killed {name} (pid {pid})")
            process_table.clear_selection()
        else:
            self.notify(f"pid {pid} is no longer running", severity="warning")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="gpuproc",
        description="Watch the processes running on NVIDIA GPUs.",
    )
    parser.add_argument(
        "--command",
        default=PMON_COMMAND,
        help="command printing the process table (default: %(default)s)",
    )
    parser.add_argument(
        "--layout",
        choices=sorted(LAYOUTS),
        default="pmon",
        help="column order of the command's output (default: %(default)s)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=2.0,
        help="seconds between samples (default: %(default)s)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="seconds before a sample is abandoned (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
    )
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Turn parsed command line arguments into Settings."""
    return Settings(
        command=args.command,
        layout=LAYOUTS[args.layout],
        poll_rate=args.interval,
        timeout=args.timeout,
        log_level=getattr(logging, args.log_level),
        log_file=args.log_file,
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for gpuproc application."""
    settings = settings_from_args(build_parser().parse_args(argv))
    # The terminal belongs to the UI; log to the file only.
    setup_logging(settings.log_level, settings.log_file, stream=None)
    app = GpuProcApp(settings)
    app.run()


if __name__ == "__main__":
    main()
