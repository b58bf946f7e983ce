"""Parser for the tabular text printed by the GPU process query."""

from collections.abc import Iterable
from dataclasses import dataclass, fields

from gpuproc.errors import FormatError
from gpuproc.models import GpuProcess

# Banner and column-title lines printed before any data line.
HEADER_LINES = 2


@dataclass(slots=True, frozen=True)
class ColumnLayout:
    """Position of each record field among the whitespace-split columns."""

    name: int = 0
    type: int = 1
    gpu_index: int = 2
    pid: int = 3
    sm_util: int = 4
    mem_util: int = 5
    enc_util: int = 6
    dec_util: int = 7
    fb_mem_usage: int = 8

    @property
    def min_columns(self) -> int:
        """Number of columns a data line needs for this layout."""
        return max(getattr(self, f.name) for f in fields(self)) + 1

    def build(self, columns: list[str]) -> GpuProcess:
        """Build a record from an already split data line."""
        return GpuProcess(
            name=columns[self.name],
            type=columns[self.type],
            gpu_index=columns[self.gpu_index],
            pid=columns[self.pid],
            sm_util=columns[self.sm_util],
            mem_util=columns[self.mem_util],
            enc_util=columns[self.enc_util],
            dec_util=columns[self.dec_util],
            fb_mem_usage=columns[self.fb_mem_usage],
        )


DEFAULT_LAYOUT = ColumnLayout()

# nvidia-smi pmon -s um:
# gpu  pid  type  sm  mem  enc  dec  fb  command
PMON_LAYOUT = ColumnLayout(
    name=8,
    type=2,
    gpu_index=0,
    pid=1,
    sm_util=3,
    mem_util=4,
    enc_util=5,
    dec_util=6,
    fb_mem_usage=7,
)


def parse_lines(
    lines: Iterable[str],
    layout: ColumnLayout = DEFAULT_LAYOUT,
) -> list[GpuProcess]:
    """
    Parse already split output lines into records.

    The first HEADER_LINES lines are skipped unconditionally and blank lines
    are ignored. Every other line must carry at least ``layout.min_columns``
    whitespace-separated columns, otherwise FormatError is raised.

    Args:
        lines: Output lines, banner included.
        layout: Column positions of the record fields.

    Returns:
        Records in input order.
    """
    records: list[GpuProcess] = []
    expected = layout.min_columns

    for line_number, line in enumerate(lines):
        if line_number < HEADER_LINES:
            continue

        columns = line.split()
        if not columns:
            continue

        if len(columns) < expected:
            raise FormatError(line_number, line, expected, len(columns))

        records.append(layout.build(columns))

    return records


def parse(raw_text: str, layout: ColumnLayout = DEFAULT_LAYOUT) -> list[GpuProcess]:
    """Parse the raw output of the process query into records."""
    return parse_lines(raw_text.strip().split("\n"), layout)
