from __future__ import annotations

from pathlib import Path
import os
from typing import List, Optional, Sequence, Tuple

import pysam
import pytest

from regroup.models.read_group import ReadGroupDescriptor

REFERENCES = [("chr1", 10000), ("chr2", 5000)]


def header_text(sort_order: Optional[str] = "coordinate", read_groups: Sequence[str] = ("old1", "old2")) -> str:
    lines = []
    if sort_order is not None:
        lines.append(f"@HD\tVN:1.6\tSO:{sort_order}")
    for name, length in REFERENCES:
        lines.append(f"@SQ\tSN:{name}\tLN:{length}")
    for rg_id in read_groups:
        lines.append(f"@RG\tID:{rg_id}\tSM:sample_{rg_id}")
    lines.append("@PG\tID:bwa\tPN:bwa\tVN:0.7.17")
    return "\n".join(lines) + "\n"


def sam_line(name: str, chrom: Optional[str], pos: int, rg: Optional[str] = "old1", flag: Optional[int] = None) -> str:
    """One SAM record; chrom None makes an unplaced unmapped read. pos is 1-based."""
    if chrom is None:
        fields = [name, str(4 if flag is None else flag), "*", "0", "0", "*", "*", "0", "0", "ACGT", "IIII"]
    else:
        fields = [name, str(0 if flag is None else flag), chrom, str(pos), "60", "4M", "*", "0", "0", "ACGT", "IIII"]
    if rg is not None:
        fields.append(f"RG:Z:{rg}")
    return "\t".join(fields)


@pytest.fixture
def write_sam(tmp_path):
    """Factory writing a SAM file from a header and (name, chrom, pos[, rg]) tuples."""
    def _write(records: Sequence[Tuple], name: str = "input.sam", sort_order: Optional[str] = "coordinate",
               read_groups: Sequence[str] = ("old1", "old2")) -> Path:
        path = tmp_path / name
        body = "".join(sam_line(*record) + "\n" for record in records)
        path.write_text(header_text(sort_order, read_groups) + body)
        return path
    return _write


@pytest.fixture
def descriptor() -> ReadGroupDescriptor:
    return ReadGroupDescriptor.create(
        identifier="rg_new",
        library="lib1",
        platform="illumina",
        platform_unit="unit1",
        sample="sample20",
    )


@pytest.fixture
def pysam_header() -> pysam.AlignmentHeader:
    return pysam.AlignmentHeader.from_dict({
        "HD": {"VN": "1.6", "SO": "unsorted"},
        "SQ": [{"SN": name, "LN": length} for name, length in REFERENCES],
    })


@pytest.fixture
def make_read(pysam_header):
    """Factory for in-memory records; tid -1 makes an unplaced unmapped read."""
    def _make(name: str, tid: int = 0, pos: int = 0, unmapped: bool = False) -> pysam.AlignedSegment:
        read = pysam.AlignedSegment(pysam_header)
        read.query_name = name
        read.query_sequence = "ACGT"
        read.query_qualities = pysam.qualitystring_to_array("IIII")
        if tid < 0:
            read.flag = 4
            read.reference_id = -1
            read.reference_start = -1
        else:
            read.flag = 4 if unmapped else 0
            read.reference_id = tid
            read.reference_start = pos
            read.mapping_quality = 0 if unmapped else 60
            if not unmapped:
                read.cigartuples = [(0, 4)]
        return read
    return _make


def read_names(path: Path) -> List[str]:
    with pysam.AlignmentFile(str(path), "r", check_sq=False) as handle:
        return [read.query_name for read in handle.fetch(until_eof=True)]


def read_all(path: Path) -> Tuple[dict, List[pysam.AlignedSegment]]:
    with pysam.AlignmentFile(str(path), "r", check_sq=False) as handle:
        return handle.header.to_dict(), list(handle.fetch(until_eof=True))


def open_files_under(directory: Path) -> List[str]:
    """Paths below directory that this process still holds open (Linux only)."""
    fd_dir = Path("/proc/self/fd")
    targets = []
    for fd in fd_dir.iterdir():
        try:
            targets.append(os.readlink(fd))
        except OSError:
            continue
    return [target for target in targets if target.startswith(str(directory.resolve()))]


requires_proc_fd = pytest.mark.skipif(not Path("/proc/self/fd").is_dir(),
                                      reason="needs /proc/self/fd to list open files")
