from __future__ import annotations

from .alignments import AlignmentSource, AlignmentSink
from .header import rewrite_header
from .transform import ReadGroupStamper
from .sorter import ExternalSorter
from .emitter import OrderedEmitter, EmitMode, EmitterState, EmitSummary

__all__ = [
    'AlignmentSource',
    'AlignmentSink',
    'rewrite_header',
    'ReadGroupStamper',
    'ExternalSorter',
    'OrderedEmitter',
    'EmitMode',
    'EmitterState',
    'EmitSummary'
]
