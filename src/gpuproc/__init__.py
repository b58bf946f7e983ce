"""gpuproc: sample, inspect and terminate the processes running on NVIDIA GPUs."""

__version__ = "0.1.0"

from gpuproc.config import Settings
from gpuproc.control import ProcessControl
from gpuproc.errors import CommandError, FormatError, GpuProcError, TerminationError
from gpuproc.models import GpuProcess
from gpuproc.monitor import GpuProcessMonitor
from gpuproc.parser import DEFAULT_LAYOUT, PMON_LAYOUT, ColumnLayout, parse
from gpuproc.sampler import Sampler
from gpuproc.store import SnapshotStore

__all__ = [
    "DEFAULT_LAYOUT",
    "PMON_LAYOUT",
    "ColumnLayout",
    "CommandError",
    "FormatError",
    "GpuProcError",
    "GpuProcess",
    "GpuProcessMonitor",
    "ProcessControl",
    "Sampler",
    "Settings",
    "SnapshotStore",
    "TerminationError",
    "parse",
]
