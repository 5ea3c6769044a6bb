"""Output header construction."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict, Mapping, Optional
import logging

from ..models.read_group import ReadGroupDescriptor
from ..models.sort_order import SortOrder

SAM_VERSION = '1.6'

logger = logging.getLogger(__name__)


def rewrite_header(input_header: Mapping[str, Any], descriptor: ReadGroupDescriptor,
                   requested_order: Optional[SortOrder] = None) -> Dict[str, Any]:
    """Build the output header from the input header.

    References, programs, comments and every other header field are copied
    unchanged. The read group list is replaced, not merged: afterwards it
    holds only ``descriptor``, and whatever distinguished the previous read
    groups is lost. This is intended, since every record is reassigned to the
    new group.

    Args:
        input_header: Header mapping as returned by ``pysam.AlignmentHeader.to_dict``
        descriptor: The replacement read group
        requested_order: Order to declare; None keeps the input's declared order

    Returns:
        A new header mapping; the input is not modified
    """
    output_header = deepcopy(dict(input_header))

    previous = output_header.get('RG', [])
    if previous:
        dropped = [rg.get('ID') for rg in previous]
        logger.warning(f"Replacing {len(previous)} existing read group(s) {dropped} with '{descriptor.identifier}'")
    output_header['RG'] = [descriptor.to_header_dict()]

    if requested_order is not None:
        hd = output_header.setdefault('HD', {'VN': SAM_VERSION})
        hd['SO'] = requested_order.value

    return output_header
