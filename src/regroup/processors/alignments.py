from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
import logging
import os

import pysam

from ..errors import DecodeError, EncodeError, SourceError
from ..models.sort_order import SortOrder


class AlignmentSource:
    """Reads the header and records of a SAM, BAM or CRAM file in file order."""

    def __init__(self, input_path: Path, reference: Optional[Path] = None):
        self.input_path = Path(input_path)
        self.reference = reference
        self.logger = logging.getLogger(__name__)
        self._file: Optional[pysam.AlignmentFile] = None

    def __enter__(self):
        kwargs = {'check_sq': False}
        if self.reference is not None:
            kwargs['reference_filename'] = str(self.reference)
        try:
            self._file = pysam.AlignmentFile(str(self.input_path), "r", **kwargs)
        except (OSError, ValueError) as exc:
            raise SourceError(f"Cannot open alignment input {self.input_path}: {exc}") from exc
        self.logger.debug(f"Opened alignment input: {self.input_path}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._file:
            self._file.close()
            self.logger.debug(f"Closed alignment input: {self.input_path}")
            self._file = None

    @property
    def header(self) -> Dict[str, Any]:
        if not self._file:
            raise RuntimeError("Alignment input not opened. Use with-statement to open file.")
        return self._file.header.to_dict()

    @property
    def declared_order(self) -> SortOrder:
        return SortOrder.from_header(self.header)

    def records(self) -> Iterator[pysam.AlignedSegment]:
        """Yield records one at a time in file order.

        Raises:
            RuntimeError: if the file is not opened
            DecodeError: if a record cannot be decoded
        """
        if not self._file:
            raise RuntimeError("Alignment input not opened. Use with-statement to open file.")

        iterator = self._file.fetch(until_eof=True)
        n_read = 0
        while True:
            try:
                record = next(iterator)
            except StopIteration:
                return
            except (OSError, ValueError) as exc:
                raise DecodeError(f"Malformed record after {n_read} records in {self.input_path}: {exc}") from exc
            n_read += 1
            yield record


class AlignmentSink:
    """Writes records to a SAM, BAM or CRAM file.

    Records go to a temporary file next to the output. The output path only
    appears once ``close`` succeeds; ``abort`` removes everything written.
    """

    def __init__(self, output_path: Path, header: Dict[str, Any], presorted: bool,
                 reference: Optional[Path] = None):
        """Initialize an alignment writer.

        Args:
            output_path: Final output path; the extension selects the format
            header: SAM header mapping to write
            presorted: Whether records arrive already in the header's declared order
            reference: Reference FASTA, required for CRAM output
        """
        self.output_path = Path(output_path)
        self.header = header
        self.presorted = presorted
        self.reference = reference
        self.temp_path = self.output_path.with_name(f".{self.output_path.name}.partial")
        self.records_written = 0
        self.logger = logging.getLogger(__name__)
        self._file: Optional[pysam.AlignmentFile] = None
        self._created_dirs: List[Path] = []

    @property
    def mode(self) -> str:
        suffix = self.output_path.suffix.lower()
        if suffix == '.bam':
            return 'wb'
        if suffix == '.cram':
            return 'wc'
        return 'w'

    def open(self) -> 'AlignmentSink':
        if self.mode == 'wc' and self.reference is None:
            raise EncodeError(f"CRAM output {self.output_path} requires a reference FASTA")

        kwargs = {'header': self.header}
        if self.reference is not None:
            kwargs['reference_filename'] = str(self.reference)
        try:
            self._make_output_directory()
            self._file = pysam.AlignmentFile(str(self.temp_path), self.mode, **kwargs)
        except (OSError, ValueError) as exc:
            self._remove_temp()
            raise EncodeError(f"Cannot create alignment output {self.output_path}: {exc}") from exc

        self.logger.debug(f"Writing {self.output_path} (mode={self.mode}, presorted={self.presorted})")
        return self

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def write(self, record: pysam.AlignedSegment) -> None:
        if not self._file:
            raise RuntimeError("Alignment output not opened.")
        try:
            self._file.write(record)
        except (OSError, ValueError) as exc:
            raise EncodeError(f"Failed writing record {record.query_name} to {self.output_path}: {exc}") from exc
        self.records_written += 1

    def close(self) -> None:
        """Flush the output and move it into place."""
        if not self._file:
            raise RuntimeError("Alignment output not opened.")
        try:
            self._file.close()
            self._file = None
            os.replace(self.temp_path, self.output_path)
            self._created_dirs = []
        except OSError as exc:
            self.abort()
            raise EncodeError(f"Failed finalizing {self.output_path}: {exc}") from exc
        self.logger.debug(f"Finalized {self.output_path} ({self.records_written} records)")

    def abort(self) -> None:
        """Discard everything written so far."""
        if self._file:
            try:
                self._file.close()
            except OSError as exc:
                self.logger.debug(f"Ignoring close failure while aborting {self.output_path}: {exc}")
            self._file = None
        self._remove_temp()
        self.logger.debug(f"Discarded partial output for {self.output_path}")

    def _make_output_directory(self) -> None:
        missing = []
        parent = self.output_path.parent
        while not parent.exists():
            missing.append(parent)
            parent = parent.parent
        for directory in reversed(missing):
            directory.mkdir()
            self._created_dirs.insert(0, directory)
            self.logger.info(f"Created output directory: {directory}")

    def _remove_temp(self) -> None:
        self.temp_path.unlink(missing_ok=True)
        # only directories this sink created, deepest first, and only if empty
        for directory in self._created_dirs:
            try:
                directory.rmdir()
            except OSError as exc:
                self.logger.debug(f"Keeping output directory {directory}: {exc}")
                break
        self._created_dirs = []
