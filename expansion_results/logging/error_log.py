from __future__ import annotations

import threading
from datetime import UTC, datetime
from pathlib import Path

from expansion_results.models.error_record import FetchErrorRecord

"""Fetch error log buffering.

- JSON Lines, fixed schema (see FetchErrorRecord)
- one `logs/fetch-errors-YYYYMMDD-HHMMSS.log` (UTC) per run, created on first flush
- records are appended from resolver worker threads, so access is locked
"""

__all__ = [
    "FetchErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for fetch error records. Flush writes JSON Lines."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[FetchErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"fetch-errors-{stamp}.log"
        return self._file_path

    def append(self, record: FetchErrorRecord) -> None:
        with self._lock:
            self._records.append(record)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> list[FetchErrorRecord]:
        with self._lock:
            return list(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, or None when nothing was buffered."""
        with self._lock:
            if not self._records:
                return None
            pending = list(self._records)
            self._records.clear()
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in pending:
                f.write(r.to_json_line() + "\n")
        return fp
