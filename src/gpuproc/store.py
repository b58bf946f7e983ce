"""Thread-safe holder of the most recently sampled GPU processes."""

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from gpuproc.models import GpuProcess


class SnapshotStore:
    """
    The latest snapshot of GPU processes, guarded by a single lock.

    The sequence is only ever replaced wholesale. Readers get an immutable
    tuple, so nothing outside the store can observe or cause a partial
    update. Lookups scan the tuple with the lock held.
    """

    def __init__(self, records: Iterable[GpuProcess] = ()) -> None:
        self._lock = threading.Lock()
        self._records: tuple[GpuProcess, ...] = tuple(records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def replace(self, records: Iterable[GpuProcess]) -> tuple[GpuProcess, ...]:
        """Install a new snapshot, discarding the previous one."""
        new_records = tuple(records)
        with self._lock:
            self._records = new_records
        return new_records

    def snapshot(self) -> tuple[GpuProcess, ...]:
        """Return the current snapshot."""
        with self._lock:
            return self._records

    @contextmanager
    def locked(self) -> Iterator[tuple[GpuProcess, ...]]:
        """
        Hold the lock for a scoped read of the current snapshot.

        No replace can happen until the block exits, so keep it short and
        never call back into the store from inside it.
        """
        with self._lock:
            yield self._records

    def index_of_pid(self, pid: str | int) -> int | None:
        """Return the position of ``pid`` in the snapshot, or None."""
        with self._lock:
            return _index_of(self._records, str(pid))

    def find_by_pid(self, pid: str | int) -> GpuProcess | None:
        """Return the record for ``pid``, or None when it is not sampled."""
        with self._lock:
            index = _index_of(self._records, str(pid))
            return None if index is None else self._records[index]


def _index_of(records: tuple[GpuProcess, ...], pid: str) -> int | None:
    for index, record in enumerate(records):
        if record.pid == pid:
            return index
    return None
