"""Progress reporting shared between commands."""

from __future__ import annotations

import logging
from typing import Optional

from rich.progress import Progress, TextColumn, SpinnerColumn, TimeElapsedColumn


class ProgressReporter:
    """Receives the processed-record count and reports it.

    Logs every ``interval`` records and, when a rich Progress is supplied,
    keeps a live counter on screen.
    """

    def __init__(self, logger: logging.Logger, interval: int = 1_000_000,
                 progress: Optional[Progress] = None, description: str = "[cyan]Processing records..."):
        self.logger = logger
        self.interval = interval
        self.progress = progress
        self.count = 0
        self._task = progress.add_task(description, total=None) if progress is not None else None

    def __call__(self, count: int) -> None:
        if count < self.count:
            raise ValueError(f"Progress count went backwards ({self.count} -> {count})")
        self.count = count
        if self.progress is not None and count % 1000 == 0:
            self.progress.update(self._task, completed=count)
        if count % self.interval == 0:
            self.logger.info(f"Processed {count:,} records")

    def finish(self) -> None:
        if self.progress is not None:
            self.progress.update(self._task, completed=self.count)
        self.logger.info(f"Processed {self.count:,} records in total")


def record_progress() -> Progress:
    """Progress display for streams of unknown length."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        TextColumn("{task.completed:,} records"),
        TimeElapsedColumn()
    )
