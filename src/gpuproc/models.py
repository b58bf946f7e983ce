"""Data models for gpuproc."""

import re
from dataclasses import astuple, dataclass

_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass(slots=True, frozen=True)
class GpuProcess:
    """Immutable record of one process sampled on a GPU.

    Columns are kept as the text the sampling tool printed; idle metrics
    are often reported as ``-`` rather than a number.
    """

    name: str
    type: str  # 'C' (compute) or 'G' (graphics)
    gpu_index: str
    pid: str
    sm_util: str  # %
    mem_util: str  # %
    enc_util: str  # %
    dec_util: str  # %
    fb_mem_usage: str  # MB

    def as_row(self) -> tuple[str, ...]:
        """Return the columns in display order."""
        return astuple(self)


def coerce_int(text: str) -> int | str:
    """
    Coerce a column to an integer for sorting and display.

    The whole string must be an optionally signed run of digits, with no
    surrounding whitespace or digit separators; anything else is returned
    unchanged as literal text.
    """
    if isinstance(text, str) and _INTEGER.fullmatch(text):
        return int(text)
    return text
