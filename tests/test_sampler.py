"""Tests for the Sampler class."""

import logging

import pytest

from gpuproc.errors import CommandError, FormatError
from gpuproc.parser import PMON_LAYOUT
from gpuproc.sampler import Sampler
from gpuproc.store import SnapshotStore

SAMPLE_OUTPUT = """header line A
header line B
chrome         G   0   1234   10   20   0   0   512
python         C   0   5678   55   40   5   3   2048
"""


class FakeExecutor:
    """Returns canned outputs in order and records the commands it ran."""

    def __init__(self, *outputs) -> None:
        self.outputs = list(outputs)
        self.commands: list[str] = []

    def __call__(self, command: str) -> str:
        self.commands.append(command)
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, Exception):
            raise output
        return output


class TestSampler:
    """Tests for Sampler."""

    def test_run_cycle_replaces_snapshot(self):
        store = SnapshotStore()
        sampler = Sampler(store, "query", executor=FakeExecutor(SAMPLE_OUTPUT))

        snapshot = sampler.run_cycle()

        assert [r.pid for r in snapshot] == ["1234", "5678"]
        assert store.snapshot() == snapshot
        assert sampler.cycles == 1

    def test_runs_configured_command(self):
        executor = FakeExecutor(SAMPLE_OUTPUT)
        sampler = Sampler(SnapshotStore(), "nvidia-smi pmon -c 1", executor=executor)

        sampler.run_cycle()

        assert executor.commands == ["nvidia-smi pmon -c 1"]
        assert sampler.command == "nvidia-smi pmon -c 1"

    def test_uses_layout(self):
        output = "# h\n# h\n    0   4242   C   1   2   -   -   100   trainer\n"
        sampler = Sampler(SnapshotStore(), "q", executor=FakeExecutor(output), layout=PMON_LAYOUT)

        (record,) = sampler.run_cycle()

        assert record.name == "trainer"
        assert record.pid == "4242"

    def test_each_cycle_is_a_full_replace(self):
        second = "h1\nh2\npython C 0 5678 55 40 5 3 2048\n"
        store = SnapshotStore()
        sampler = Sampler(store, "q", executor=FakeExecutor(SAMPLE_OUTPUT, second))

        sampler.run_cycle()
        sampler.run_cycle()

        assert [r.pid for r in store.snapshot()] == ["5678"]
        assert sampler.cycles == 2

    def test_empty_output_clears_snapshot(self):
        """Empty but successful output means no GPU processes."""
        store = SnapshotStore()
        sampler = Sampler(store, "q", executor=FakeExecutor(SAMPLE_OUTPUT, ""))

        sampler.run_cycle()
        assert sampler.run_cycle() == ()
        assert store.snapshot() == ()

    def test_command_failure_keeps_last_snapshot(self, caplog):
        store = SnapshotStore()
        failure = CommandError("q", "exit status 9")
        sampler = Sampler(store, "q", executor=FakeExecutor(SAMPLE_OUTPUT, failure))
        sampler.run_cycle()
        before = store.snapshot()

        with caplog.at_level(logging.WARNING, logger="gpuproc"):
            with pytest.raises(CommandError):
                sampler.run_cycle()

        assert store.snapshot() == before
        assert sampler.cycles == 1
        assert "keeping previous snapshot" in caplog.text

    def test_format_error_keeps_last_snapshot(self):
        store = SnapshotStore()
        broken = "h1\nh2\nchrome G 0\n"
        sampler = Sampler(store, "q", executor=FakeExecutor(SAMPLE_OUTPUT, broken))
        sampler.run_cycle()
        before = store.snapshot()

        with pytest.raises(FormatError):
            sampler.run_cycle()

        assert store.snapshot() == before


class TestSubscribers:
    """Tests for change notification."""

    def test_subscriber_called_after_replace(self):
        store = SnapshotStore()
        seen = []
        sampler = Sampler(store, "q", executor=FakeExecutor(SAMPLE_OUTPUT))
        sampler.subscribe(lambda: seen.append(store.snapshot()))

        sampler.run_cycle()

        assert len(seen) == 1
        assert len(seen[0]) == 2

    def test_every_subscriber_called(self):
        calls = []
        sampler = Sampler(SnapshotStore(), "q", executor=FakeExecutor(SAMPLE_OUTPUT))
        sampler.subscribe(lambda: calls.append("a"))
        sampler.subscribe(lambda: calls.append("b"))

        sampler.run_cycle()
        sampler.run_cycle()

        assert calls == ["a", "b", "a", "b"]

    def test_no_notification_on_failure(self):
        calls = []
        executor = FakeExecutor(CommandError("q", "missing"))
        sampler = Sampler(SnapshotStore(), "q", executor=executor)
        sampler.subscribe(lambda: calls.append(1))

        with pytest.raises(CommandError):
            sampler.run_cycle()

        assert calls == []

    def test_unsubscribe(self):
        calls = []

        def callback():
            calls.append(1)

        sampler = Sampler(SnapshotStore(), "q", executor=FakeExecutor(SAMPLE_OUTPUT))
        sampler.subscribe(callback)
        sampler.run_cycle()
        sampler.unsubscribe(callback)
        sampler.run_cycle()

        assert calls == [1]

    def test_unsubscribe_unknown_is_ignored(self):
        sampler = Sampler(SnapshotStore(), "q", executor=FakeExecutor(SAMPLE_OUTPUT))
        sampler.unsubscribe(lambda: None)

    def test_failing_subscriber_does_not_stop_others(self, caplog):
        calls = []

        def broken():
            raise RuntimeError("boom")

        store = SnapshotStore()
        sampler = Sampler(store, "q", executor=FakeExecutor(SAMPLE_OUTPUT))
        sampler.subscribe(broken)
        sampler.subscribe(lambda: calls.append(1))

        with caplog.at_level(logging.ERROR, logger="gpuproc"):
            snapshot = sampler.run_cycle()

        assert calls == [1]
        assert store.snapshot() == snapshot
        assert "subscriber" in caplog.text
