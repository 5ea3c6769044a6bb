from .read_group import ReadGroupDescriptor, TagValidator, FIELD_TAGS
from .sort_order import SortOrder, coordinate_key, queryname_key

__all__ = [
    'ReadGroupDescriptor',
    'TagValidator',
    'FIELD_TAGS',
    'SortOrder',
    'coordinate_key',
    'queryname_key'
]
