"""Lookup and termination of sampled GPU processes."""

import logging
from collections.abc import Callable

import psutil

from gpuproc.errors import TerminationError
from gpuproc.models import GpuProcess
from gpuproc.store import SnapshotStore

logger = logging.getLogger(__name__)

Terminator = Callable[[int], None]


def psutil_terminate(pid: int) -> None:
    """Send SIGTERM (TerminateProcess on Windows) to ``pid``."""
    psutil.Process(pid).terminate()


class ProcessControl:
    """Pid-keyed operations on the processes of a SnapshotStore."""

    def __init__(self, store: SnapshotStore, terminator: Terminator = psutil_terminate) -> None:
        self._store = store
        self._terminator = terminator

    def index_of_pid(self, pid: str | int) -> int | None:
        """
        Return the current row of ``pid``, or None if it is not sampled.

        Rows move between cycles; remember the pid, not the index, and
        resolve it again after each refresh.
        """
        return self._store.index_of_pid(pid)

    def find(self, pid: str | int) -> GpuProcess | None:
        """Return the sampled record for ``pid``, or None."""
        return self._store.find_by_pid(pid)

    def terminate(self, pid: str | int) -> bool:
        """
        Ask the operating system to terminate a sampled process.

        Nothing is sent unless ``pid`` is in the current snapshot. The
        record is not removed: the next cycle reports whether the process
        actually went away. Callers holding a selection for ``pid`` should
        drop it once this returns True.

        Returns:
            True if the request was sent, False if the process is not
            sampled or had already exited.

        Raises:
            TerminationError: The request was refused.
        """
        pid = str(pid)
        with self._store.locked() as records:
            present = any(record.pid == pid for record in records)

        if not present:
            logger.debug("pid %s is not in the snapshot, nothing to terminate", pid)
            return False

        try:
            os_pid = int(pid)
        except ValueError as exc:
            raise TerminationError(pid, "not a numeric process id") from exc

        try:
            self._terminator(os_pid)
        except (psutil.NoSuchProcess, ProcessLookupError):
            logger.info("pid %s exited before it could be terminated", pid)
            return False
        except (psutil.AccessDenied, PermissionError) as exc:
            raise TerminationError(pid, "permission denied") from exc
        except (psutil.Error, OSError) as exc:
            raise TerminationError(pid, str(exc)) from exc

        logger.info("Sent termination request to pid %s", pid)
        return True
