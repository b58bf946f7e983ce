"""Verification Test: Memory Leak Check.

Each cycle replaces the whole snapshot, so memory must stay flat no matter
how long the monitor runs. The duration is kept short for CI with a
threshold that still catches unbounded growth.
"""

import gc
import os
import time
from queue import Empty, Queue

import psutil

from gpuproc.config import Settings
from gpuproc.models import GpuProcess
from gpuproc.monitor import GpuProcessMonitor
from gpuproc.parser import DEFAULT_LAYOUT


def get_current_memory_mb() -> float:
    """Get current process memory usage in MB."""
    process = psutil.Process()
    return process.memory_info().rss / (1024 * 1024)


def busy_table(command: str) -> str:
    """A table of 200 processes with changing metrics."""
    tick = int(time.monotonic() * 1000) % 100
    lines = ["header line A", "header line B"]
    lines += [f"proc{i} C {i % 4} {2000 + i} {tick} {tick} 0 0 {i * 8}" for i in range(200)]
    return "\n".join(lines)


class TestMemoryLeakCheck:
    """Memory leak verification suite tests."""

    def test_monitor_memory_stability(self):
        """Polling for several seconds does not grow memory unboundedly."""
        is_ci = os.environ.get("CI", "false").lower() == "true"
        test_duration = 5.0 if is_ci else 10.0
        max_delta_mb = 5.0

        gc.collect()

        queue: Queue[tuple[GpuProcess, ...]] = Queue()
        settings = Settings(command="fake", layout=DEFAULT_LAYOUT, poll_rate=0.1)
        monitor = GpuProcessMonitor(settings, executor=busy_table, update_queue=queue)

        initial_memory = get_current_memory_mb()

        monitor.start()

        try:
            start_time = time.time()
            snapshots_processed = 0

            while time.time() - start_time < test_duration:
                try:
                    snapshot = queue.get(timeout=1.0)
                    snapshots_processed += 1
                    _ = monitor.control.find(snapshot[0].pid)
                except Empty:
                    pass

            assert snapshots_processed > 0, "Should have processed at least one snapshot"

        finally:
            monitor.stop()

        gc.collect()
        time.sleep(0.5)

        memory_delta = get_current_memory_mb() - initial_memory

        assert memory_delta < max_delta_mb, (
            f"Memory increased by {memory_delta:.2f}MB, "
            f"expected < {max_delta_mb}MB over {test_duration}s"
        )
        assert monitor.sampler.cycles >= snapshots_processed
