"""GPU process monitoring engine for gpuproc."""

import functools
import logging
import threading
from queue import Queue

from gpuproc.config import MIN_POLL_RATE, Settings
from gpuproc.control import ProcessControl, Terminator, psutil_terminate
from gpuproc.errors import GpuProcError
from gpuproc.executor import run_command
from gpuproc.models import GpuProcess
from gpuproc.sampler import Executor, Sampler
from gpuproc.store import SnapshotStore

logger = logging.getLogger(__name__)


class GpuProcessMonitor:
    """
    One independent GPU process monitor.

    Wires a SnapshotStore to the Sampler that fills it and the
    ProcessControl that acts on it. ``run_cycle`` can be driven by the
    caller, or ``start`` runs it from a daemon thread every ``poll_rate``
    seconds. When an update queue is given, every new snapshot is pushed
    onto it so another thread can pick it up.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        executor: Executor | None = None,
        terminator: Terminator = psutil_terminate,
        update_queue: Queue[tuple[GpuProcess, ...]] | None = None,
    ) -> None:
        """
        Initialize the GpuProcessMonitor.

        Args:
            settings: Command, layout and timing. Defaults to Settings().
            executor: Runs the sampling command. Defaults to run_command
                with the configured timeout.
            terminator: Terminates a process by id.
            update_queue: Thread-safe queue receiving each new snapshot.
        """
        self._settings = settings or Settings()
        if executor is None:
            executor = functools.partial(run_command, timeout=self._settings.timeout)

        self._store = SnapshotStore()
        self._sampler = Sampler(
            self._store,
            self._settings.command,
            executor=executor,
            layout=self._settings.layout,
        )
        self._control = ProcessControl(self._store, terminator=terminator)
        self._queue = update_queue
        if update_queue is not None:
            self._sampler.subscribe(self._publish)

        self._poll_rate = max(MIN_POLL_RATE, self._settings.poll_rate)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_error: GpuProcError | None = None

    @property
    def settings(self) -> Settings:
        """Get the settings this monitor was built with."""
        return self._settings

    @property
    def store(self) -> SnapshotStore:
        """Get the snapshot store."""
        return self._store

    @property
    def sampler(self) -> Sampler:
        """Get the sampler."""
        return self._sampler

    @property
    def control(self) -> ProcessControl:
        """Get the lookup/termination API."""
        return self._control

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(MIN_POLL_RATE, value)

    @property
    def last_error(self) -> GpuProcError | None:
        """Error of the last polled cycle, or None if it succeeded."""
        return self._last_error

    @property
    def is_running(self) -> bool:
        """Check if the polling thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def run_cycle(self) -> tuple[GpuProcess, ...]:
        """Sample once. See Sampler.run_cycle."""
        return self._sampler.run_cycle()

    def snapshot(self) -> tuple[GpuProcess, ...]:
        """Return the latest snapshot."""
        return self._store.snapshot()

    def start(self) -> None:
        """Start the polling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="GpuProcessMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the polling thread.

        The thread is only forgotten once it has exited, so a cycle still
        blocked in the command keeps ``is_running`` true and a later
        ``start`` cannot run a second loop next to it.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Polling thread still busy after %ss", timeout)
                return
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._sampler.run_cycle()
                self._last_error = None
            except GpuProcError as exc:
                # Already logged by the sampler; the last snapshot stays visible
                self._last_error = exc
            except Exception:
                logger.exception("Unexpected error during sampling")

            # Wait for poll_rate seconds or until stop is requested
            self._stop_event.wait(timeout=self._poll_rate)

    def _publish(self) -> None:
        if self._queue is not None:
            self._queue.put(self._store.snapshot())
