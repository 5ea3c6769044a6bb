from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Pattern, Union
import re

from ..errors import ValidationError

# SAM header tag for every descriptor field, in @RG output order
FIELD_TAGS: Dict[str, str] = {
    'identifier': 'ID',
    'library': 'LB',
    'platform': 'PL',
    'platform_unit': 'PU',
    'sample': 'SM',
    'sequencing_center': 'CN',
    'description': 'DS',
    'run_date': 'DT',
    'key_sequence': 'KS',
    'flow_order': 'FO',
    'predicted_insert_size': 'PI',
    'program_group': 'PG',
    'platform_model': 'PM',
}

REQUIRED_FIELDS = ('identifier', 'library', 'platform', 'platform_unit', 'sample')

FREE_TEXT_FIELDS = (
    'identifier', 'library', 'platform', 'platform_unit', 'sample',
    'sequencing_center', 'description', 'key_sequence', 'flow_order',
    'program_group', 'platform_model',
)


class TagValidator:
    """Checks free-text header values against the SAM printable-ASCII rule."""

    PATTERN: ClassVar[Pattern] = re.compile(r'^[ -~]+$')

    @classmethod
    def validate(cls, field_name: str, value: Optional[str]) -> Optional[str]:
        """Validate a single value.

        Args:
            field_name: Descriptor field the value belongs to
            value: Value to check; None means the field was not supplied

        Returns:
            None if the value is valid or absent, otherwise an error message
        """
        if value is None:
            return None
        if isinstance(value, str) and cls.PATTERN.fullmatch(value):
            return None
        tag = FIELD_TAGS.get(field_name, field_name)
        return (f"The value of {field_name} (RG{tag}) must match the regex \"^[ -~]+$\", "
                f"but the value provided, {value!r}, doesn't.")

    @classmethod
    def validate_all(cls, values: Mapping[str, Optional[str]]) -> List[str]:
        """Validate every value and collect all failures."""
        errors = []
        for field_name, value in values.items():
            error = cls.validate(field_name, value)
            if error is not None:
                errors.append(error)
        return errors


def _parse_run_date(value: Union[str, date]) -> Union[date, datetime]:
    if isinstance(value, date):
        return value
    value = value.strip()
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    try:
        return date.fromisoformat(value)
    except ValueError:
        return datetime.fromisoformat(value)


@dataclass(frozen=True)
class ReadGroupDescriptor:
    """The single read group every output record is assigned to.

    Build instances through ``create`` so that all fields are validated
    together before anything is read or written.
    """
    identifier: str
    library: str
    platform: str
    platform_unit: str
    sample: str
    sequencing_center: Optional[str] = None
    description: Optional[str] = None
    run_date: Optional[Union[date, datetime]] = None
    key_sequence: Optional[str] = None
    flow_order: Optional[str] = None
    predicted_insert_size: Optional[int] = None
    program_group: Optional[str] = None
    platform_model: Optional[str] = None

    @classmethod
    def create(cls, **values: Any) -> 'ReadGroupDescriptor':
        """Validate the supplied fields and build a descriptor.

        Raises:
            ValidationError: listing every invalid or missing field
        """
        known = {f.name for f in fields(cls)}
        errors = [f"Unknown read group field: {name}" for name in values if name not in known]

        for name in REQUIRED_FIELDS:
            if values.get(name) is None:
                errors.append(f"Missing required read group field: {name} (RG{FIELD_TAGS[name]})")

        errors.extend(TagValidator.validate_all(
            {name: values.get(name) for name in FREE_TEXT_FIELDS if name in values}
        ))

        run_date = values.get('run_date')
        if run_date is not None:
            try:
                values['run_date'] = _parse_run_date(run_date)
            except (TypeError, ValueError, AttributeError):
                errors.append(f"The value of run_date (RGDT) must be an ISO 8601 date, got {run_date!r}")

        insert_size = values.get('predicted_insert_size')
        if insert_size is not None and (isinstance(insert_size, bool) or not isinstance(insert_size, int)):
            errors.append(f"The value of predicted_insert_size (RGPI) must be an integer, got {insert_size!r}")

        if errors:
            raise ValidationError(errors)
        return cls(**{name: value for name, value in values.items() if name in known})

    def to_header_dict(self) -> Dict[str, Any]:
        """Render the descriptor as a SAM ``@RG`` record mapping."""
        record: Dict[str, Any] = {}
        for name, tag in FIELD_TAGS.items():
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, date):
                value = value.isoformat()
            record[tag] = value
        return record

    def __str__(self) -> str:
        return f"ID={self.identifier} PL={self.platform} LB={self.library} SM={self.sample}"
