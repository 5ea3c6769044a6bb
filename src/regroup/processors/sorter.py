from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
import heapq
import logging
import tempfile

import pysam

from ..errors import SpillError

SortKey = Callable[[pysam.AlignedSegment], Tuple]


class ExternalSorter:
    """Sorts more records than fit in memory using sorted runs on disk.

    Records are buffered up to ``max_records_in_ram``. Once the buffer is
    full it is sorted and written as a numbered BAM run into a private
    scratch directory, which is only created when the first run is spilled. ``sorted_records`` then streams the
    final order: straight from memory if nothing was spilled, straight from
    the single run if exactly one was spilled and nothing is left over, and
    through a k-way merge of all runs otherwise.

    The sort is stable. ``list.sort`` keeps arrival order within a run and
    ``heapq.merge`` prefers earlier inputs on ties, so equal keys come out in
    arrival order across runs as well.

    Use as a context manager; on exit any run still open for reading is
    closed and the scratch directory is removed, whether or not sorting
    succeeded.
    """

    def __init__(self, header: Dict[str, Any], sort_key: SortKey,
                 max_records_in_ram: int = 500_000, tmp_dir: Optional[Path] = None):
        if max_records_in_ram < 1:
            raise ValueError("max_records_in_ram must be at least 1")
        self.header = header
        self.sort_key = sort_key
        self.max_records_in_ram = max_records_in_ram
        self.tmp_dir = tmp_dir
        self.logger = logging.getLogger(__name__)
        self.records_added = 0
        self.runs: List[Path] = []
        self._buffer: List[pysam.AlignedSegment] = []
        self._scratch: Optional[tempfile.TemporaryDirectory] = None
        self._cursors: List[Iterator[pysam.AlignedSegment]] = []
        self._finished = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()

    @property
    def scratch_dir(self) -> Optional[Path]:
        return Path(self._scratch.name) if self._scratch else None

    def add(self, record: pysam.AlignedSegment) -> None:
        if self._finished:
            raise RuntimeError("Cannot add records after sorted_records() was called")
        self._buffer.append(record)
        self.records_added += 1
        if len(self._buffer) >= self.max_records_in_ram:
            self._spill()

    def _spill(self) -> None:
        self._buffer.sort(key=self.sort_key)
        try:
            if self._scratch is None:
                self._scratch = tempfile.TemporaryDirectory(prefix="regroup-sort-", dir=self.tmp_dir)
                self.logger.debug(f"Created scratch directory {self._scratch.name}")
            run_path = self.scratch_dir / f"run_{len(self.runs):05d}.bam"
            # uncompressed BAM, each run is written once and read once
            with pysam.AlignmentFile(str(run_path), "wbu", header=self.header) as run:
                for record in self._buffer:
                    run.write(record)
        except (OSError, ValueError) as exc:
            raise SpillError(f"Failed writing sorted run {len(self.runs)}: {exc}") from exc

        self.runs.append(run_path)
        self.logger.debug(f"Spilled run {len(self.runs) - 1} ({len(self._buffer)} records) to {run_path}")
        self._buffer = []

    def _iter_run(self, run_path: Path) -> Iterator[pysam.AlignedSegment]:
        try:
            with pysam.AlignmentFile(str(run_path), "rb", check_sq=False) as run:
                yield from run.fetch(until_eof=True)
        except (OSError, ValueError) as exc:
            raise SpillError(f"Failed reading sorted run {run_path}: {exc}") from exc

    def _track(self, cursor: Iterator[pysam.AlignedSegment]) -> Iterator[pysam.AlignedSegment]:
        self._cursors.append(cursor)
        return cursor

    def sorted_records(self) -> Iterator[pysam.AlignedSegment]:
        """Finish run generation and return an iterator over the sorted records.

        Ends input: no records can be added afterwards, and this can only be
        called once.
        """
        if self._finished:
            raise RuntimeError("sorted_records() can only be called once")
        self._finished = True

        buffer, self._buffer = self._buffer, []
        buffer.sort(key=self.sort_key)

        if not self.runs:
            self.logger.debug(f"Sorted {len(buffer)} records in memory")
            return iter(buffer)

        if len(self.runs) == 1 and not buffer:
            self.logger.debug("Streaming the single spilled run")
            return self._track(self._iter_run(self.runs[0]))

        # the in-memory tail holds the newest records, so it merges last
        cursors = [self._track(self._iter_run(path)) for path in self.runs]
        if buffer:
            cursors.append(iter(buffer))
        self.logger.info(f"Merging {len(cursors)} sorted runs")
        return self._track(heapq.merge(*cursors, key=self.sort_key))

    def cleanup(self) -> None:
        """Close any run still being read and remove the scratch directory."""
        self._buffer = []
        # closing a suspended run reader exits its ``with`` block
        for cursor in reversed(self._cursors):
            cursor.close()
        self._cursors = []
        if self._scratch is not None:
            self.logger.debug(f"Removing scratch directory {self._scratch.name}")
            self._scratch.cleanup()
            self._scratch = None
