from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Mapping, Optional, Tuple

import pysam

# Sorts after every real reference index
NO_REFERENCE = 0x7FFFFFFF


class SortOrder(Enum):
    """Sort orders a SAM header can declare in its ``@HD SO`` field."""
    UNKNOWN = 'unknown'
    UNSORTED = 'unsorted'
    QUERYNAME = 'queryname'
    COORDINATE = 'coordinate'
    DUPLICATE = 'duplicate'

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional['SortOrder']:
        """Parse a user supplied order; None and 'unspecified' mean no request."""
        if value is None or value.lower() == 'unspecified':
            return None
        try:
            return cls(value.lower())
        except ValueError:
            choices = ', '.join(o.value for o in cls)
            raise ValueError(f"Unknown sort order '{value}' (choose from {choices}, unspecified)")

    @classmethod
    def from_header(cls, header: Mapping[str, Any]) -> 'SortOrder':
        """Declared order of a header mapping; unknown if absent or unrecognised."""
        declared = header.get('HD', {}).get('SO')
        try:
            return cls(declared)
        except ValueError:
            return cls.UNKNOWN

    @property
    def sort_key(self) -> Optional[Callable[[pysam.AlignedSegment], Tuple]]:
        """Key function realising this order, or None if any order satisfies it."""
        if self in (SortOrder.COORDINATE, SortOrder.DUPLICATE):
            return coordinate_key
        if self is SortOrder.QUERYNAME:
            return queryname_key
        return None


def coordinate_key(read: pysam.AlignedSegment) -> Tuple[int, int, bool]:
    tid = read.reference_id if read.reference_id >= 0 else NO_REFERENCE
    return (tid, read.reference_start, read.is_unmapped)


def queryname_key(read: pysam.AlignedSegment) -> Tuple[bytes]:
    name = read.query_name or ''
    return (name.encode('utf-8'),)
