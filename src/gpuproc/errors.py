"""Exceptions raised by gpuproc."""


class GpuProcError(RuntimeError):
    """Base class for gpuproc errors."""


class CommandError(GpuProcError):
    """The sampling command could not be run or produced no usable output."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"{command!r}: {reason}")
        self.command = command
        self.reason = reason


class FormatError(GpuProcError, ValueError):
    """A data line does not have the columns the layout requires."""

    def __init__(self, line_number: int, line: str, expected: int, found: int) -> None:
        super().__init__(
            f"line {line_number}: expected at least {expected} columns, "
            f"found {found}: {line!r}"
        )
        self.line_number = line_number
        self.line = line
        self.expected = expected
        self.found = found


class TerminationError(GpuProcError):
    """The operating system refused to terminate a process."""

    def __init__(self, pid: str, reason: str) -> None:
        super().__init__(f"cannot terminate pid {pid}: {reason}")
        self.pid = pid
        self.reason = reason
