from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional
import logging
import time

import pysam

from .alignments import AlignmentSink, AlignmentSource
from .header import rewrite_header
from .sorter import ExternalSorter
from .transform import ReadGroupStamper
from ..errors import IncompleteOutputError
from ..models.read_group import ReadGroupDescriptor
from ..models.sort_order import SortOrder


class EmitMode(Enum):
    """How records travel from input to output."""
    PASS_THROUGH = auto()  # output order is the declared input order
    UNORDERED = auto()  # requested order imposes no comparator (unsorted, unknown)
    REORDER = auto()  # external sort into the requested order


class EmitterState(Enum):
    INIT = auto()
    STREAMING = auto()
    PASS_THROUGH_DONE = auto()
    SORTING = auto()
    MERGE_EMITTING = auto()
    CLOSED = auto()
    FAILED = auto()


TRANSITIONS = {
    EmitterState.INIT: {EmitterState.STREAMING, EmitterState.FAILED},
    EmitterState.STREAMING: {EmitterState.PASS_THROUGH_DONE, EmitterState.SORTING, EmitterState.FAILED},
    EmitterState.PASS_THROUGH_DONE: {EmitterState.CLOSED, EmitterState.FAILED},
    EmitterState.SORTING: {EmitterState.MERGE_EMITTING, EmitterState.FAILED},
    EmitterState.MERGE_EMITTING: {EmitterState.CLOSED, EmitterState.FAILED},
    EmitterState.CLOSED: set(),
    EmitterState.FAILED: set(),
}


@dataclass
class EmitSummary:
    """Outcome of a completed rewrite."""
    mode: EmitMode
    records_processed: int
    records_written: int
    runs_spilled: int
    output_header: Dict[str, Any]
    elapsed: float


def choose_mode(declared_order: SortOrder, requested_order: Optional[SortOrder]) -> EmitMode:
    """Pass through unless a different order was requested.

    The declared input order is trusted, not verified.
    """
    if requested_order is None or requested_order is declared_order:
        return EmitMode.PASS_THROUGH
    if requested_order.sort_key is None:
        return EmitMode.UNORDERED
    return EmitMode.REORDER


class OrderedEmitter:
    """Rewrites the read group of every record and emits them in the requested order.

    Attributes:
        records_processed: Input records consumed so far, increases by one per record
        records_written: Records handed to the output so far
        state: Current EmitterState
    """

    def __init__(
        self,
        source: AlignmentSource,
        output_path: Path,
        descriptor: ReadGroupDescriptor,
        requested_order: Optional[SortOrder] = None,
        max_records_in_ram: int = 500_000,
        tmp_dir: Optional[Path] = None,
        reference: Optional[Path] = None,
        progress: Optional[Callable[[int], None]] = None,
        sink_factory: Callable[..., AlignmentSink] = AlignmentSink,
    ):
        self.source = source
        self.output_path = Path(output_path)
        self.descriptor = descriptor
        self.requested_order = requested_order
        self.max_records_in_ram = max_records_in_ram
        self.tmp_dir = tmp_dir
        self.reference = reference
        self.progress = progress
        self.sink_factory = sink_factory
        self.logger = logging.getLogger(__name__)

        self.stamp = ReadGroupStamper(descriptor)
        self.mode = choose_mode(source.declared_order, requested_order)
        self.state = EmitterState.INIT
        self.records_processed = 0
        self.records_written = 0
        self.runs_spilled = 0

    def _transition(self, new_state: EmitterState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal emitter transition {self.state.name} -> {new_state.name}")
        self.logger.debug(f"Emitter state {self.state.name} -> {new_state.name}")
        self.state = new_state

    def _consume(self) -> Iterable[pysam.AlignedSegment]:
        for record in self.source.records():
            self.records_processed += 1
            if self.progress is not None:
                self.progress(self.records_processed)
            yield self.stamp(record)

    def _write_all(self, sink: AlignmentSink, records: Iterable[pysam.AlignedSegment]) -> None:
        for record in records:
            sink.write(record)
            self.records_written += 1

    def run(self) -> EmitSummary:
        """Run the pipeline once.

        Returns:
            EmitSummary describing the completed run

        Raises:
            DecodeError, SpillError, EncodeError: the output is removed before re-raising
            IncompleteOutputError: if fewer records were written than read
        """
        if self.state is not EmitterState.INIT:
            raise RuntimeError("OrderedEmitter.run() can only be called once")

        start_time = time.time()
        output_header = rewrite_header(self.source.header, self.descriptor, self.requested_order)
        presorted = self.mode is EmitMode.PASS_THROUGH
        self.logger.info(f"Emitting in {self.mode.name} mode "
                         f"(declared input order: {self.source.declared_order.value}, "
                         f"requested: {self.requested_order.value if self.requested_order else 'unspecified'})")

        sink = self.sink_factory(self.output_path, output_header, presorted=presorted, reference=self.reference)
        try:
            sink.open()
            self._transition(EmitterState.STREAMING)
            if self.mode is EmitMode.REORDER:
                self._reorder(sink)
            else:
                self._write_all(sink, self._consume())
                self._transition(EmitterState.PASS_THROUGH_DONE)

            if self.records_written != self.records_processed:
                raise IncompleteOutputError(f"Read {self.records_processed} records but wrote {self.records_written}")
            sink.close()
        except BaseException:
            self.state = EmitterState.FAILED
            sink.abort()
            raise
        self._transition(EmitterState.CLOSED)

        elapsed = time.time() - start_time
        self.logger.info(f"Wrote {self.records_written} records to {self.output_path} in {elapsed:.2f} seconds")
        return EmitSummary(
            mode=self.mode,
            records_processed=self.records_processed,
            records_written=self.records_written,
            runs_spilled=self.runs_spilled,
            output_header=output_header,
            elapsed=elapsed,
        )

    def _reorder(self, sink: AlignmentSink) -> None:
        with ExternalSorter(sink.header, self.requested_order.sort_key,
                            max_records_in_ram=self.max_records_in_ram, tmp_dir=self.tmp_dir) as sorter:
            for record in self._consume():
                sorter.add(record)
            self.runs_spilled = len(sorter.runs)
            self._transition(EmitterState.SORTING)
            self.logger.info(f"Read {self.records_processed} records, spilled {self.runs_spilled} sorted runs")

            # every run is on disk before merging starts
            records = sorter.sorted_records()
            self._transition(EmitterState.MERGE_EMITTING)
            self._write_all(sink, records)
