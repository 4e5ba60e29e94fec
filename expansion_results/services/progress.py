from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

A single tqdm bar per run; in non-TTY environments (CI, piped output) the bar
is disabled so that the labeled log lines stay clean and greppable.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """File-level progress bar for multi-file imports.

    Use as a context manager so the bar is closed even when a file fails.
    """

    def __init__(self, total: int, *, description: str = "Importing", unit: str = "file") -> None:
        """Initialize the tracker.

        Args:
            total: Number of items (files) to process
            description: Base description shown left of the bar
            unit: tqdm unit label
        """
        self.total = total
        self.description = description
        self.current = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit=unit,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start(self, path: Path) -> None:
        self.current += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({path.name})")

    def finish(self, **postfix: Any) -> None:
        """Advance the bar by one item, optionally updating the stats postfix."""
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            if postfix:
                self.pbar.set_postfix(**postfix)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
