from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

"""Import result models for the solver-result CSV import.

Aggregates per-file statistics into the totals printed on the SUMMARY line of
the `import-csv` command.
"""

__all__ = [
    "FileStat",
    "ImportResult",
]


@dataclass(frozen=True)
class FileStat:
    """Per-file statistics (internal helper for ImportResult)."""
    file_name: str
    status: str  # success | failed
    imported_rows: int
    skipped_rows: int  # data lines with fewer fields than the header
    elapsed_seconds: float
    error: str | None = None


@dataclass(frozen=True)
class ImportResult:
    """Aggregated result of one import run."""
    success_files: int
    failed_files: int
    total_rows: int
    skipped_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    output: Path | None = None  # JSON file written, None when nothing was imported
    file_stats: list[FileStat] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files

    @property
    def throughput_rows_per_sec(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.total_rows / self.elapsed_seconds
