"""One sampling cycle: run the query, parse it, publish the snapshot."""

import logging
from collections.abc import Callable

from gpuproc.errors import CommandError, FormatError
from gpuproc.executor import run_command
from gpuproc.models import GpuProcess
from gpuproc.parser import DEFAULT_LAYOUT, ColumnLayout, parse
from gpuproc.store import SnapshotStore

logger = logging.getLogger(__name__)

Executor = Callable[[str], str]
Subscriber = Callable[[], None]


class Sampler:
    """
    Refreshes a SnapshotStore from the output of an external command.

    The sampler owns no timer: whoever embeds it decides how often
    ``run_cycle`` is called. After every successful cycle each subscriber
    is called, on the thread that ran the cycle.
    """

    def __init__(
        self,
        store: SnapshotStore,
        command: str,
        executor: Executor = run_command,
        layout: ColumnLayout = DEFAULT_LAYOUT,
    ) -> None:
        """
        Initialize the Sampler.

        Args:
            store: Store that receives each new snapshot.
            command: Command line that prints the process table.
            executor: Runs a command and returns its standard output.
                Must raise on failure rather than return partial output.
            layout: Column positions in the command's output.
        """
        self._store = store
        self._command = command
        self._executor = executor
        self._layout = layout
        self._subscribers: list[Subscriber] = []
        self._cycles = 0

    @property
    def command(self) -> str:
        """Get the sampling command."""
        return self._command

    @property
    def cycles(self) -> int:
        """Number of cycles that completed successfully."""
        return self._cycles

    def subscribe(self, callback: Subscriber) -> None:
        """Call ``callback()`` after every successful cycle."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        """Stop notifying ``callback``. Unknown callbacks are ignored."""
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def run_cycle(self) -> tuple[GpuProcess, ...]:
        """
        Sample once and replace the store's snapshot.

        The store is only touched after the command returned and its whole
        output parsed, so on failure the previous snapshot stays visible.

        Returns:
            The newly installed snapshot.

        Raises:
            CommandError: The command failed; nothing was replaced.
            FormatError: The output did not match the layout; nothing was
                replaced.
        """
        try:
            raw_text = self._executor(self._command)
        except CommandError as exc:
            logger.warning("Sampling failed, keeping previous snapshot: %s", exc)
            raise

        try:
            records = parse(raw_text, self._layout)
        except FormatError:
            logger.error("Unexpected output from %r", self._command)
            raise

        snapshot = self._store.replace(records)
        self._cycles += 1
        logger.debug("Sampled %d GPU processes", len(snapshot))
        self._notify()
        return snapshot

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:
                logger.exception("Snapshot subscriber %r failed", callback)
