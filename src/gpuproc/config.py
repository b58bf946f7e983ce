"""Configuration values for gpuproc."""

import logging
from dataclasses import dataclass
from pathlib import Path

from gpuproc.parser import DEFAULT_LAYOUT, PMON_LAYOUT, ColumnLayout

# One sample of per-process utilization (u) and frame-buffer memory (m).
PMON_COMMAND = "nvidia-smi pmon -c 1 -s um"

LAYOUTS: dict[str, ColumnLayout] = {
    "default": DEFAULT_LAYOUT,
    "pmon": PMON_LAYOUT,
}

MIN_POLL_RATE = 0.1  # seconds


@dataclass(frozen=True)
class Settings:
    """Settings for one GPU process monitor."""

    command: str = PMON_COMMAND
    layout: ColumnLayout = PMON_LAYOUT
    poll_rate: float = 2.0  # seconds between cycles
    timeout: float = 5.0  # seconds before the command is abandoned
    log_level: int = logging.INFO
    log_file: Path | None = None
