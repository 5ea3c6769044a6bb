from __future__ import annotations

import pysam

from ..models.read_group import ReadGroupDescriptor


class ReadGroupStamper:
    """Assigns records to the replacement read group."""

    TAG = 'RG'

    def __init__(self, descriptor: ReadGroupDescriptor):
        self.read_group_id = descriptor.identifier

    def __call__(self, record: pysam.AlignedSegment) -> pysam.AlignedSegment:
        # set_tag replaces an existing RG of any type
        record.set_tag(self.TAG, self.read_group_id, value_type='Z')
        return record
