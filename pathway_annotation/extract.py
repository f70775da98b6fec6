from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

# marker for a field the remote entry did not carry
ABSENT = None

# remote field name -> RemoteEntry attribute
REMOTE_FIELDS = {
    'NAME': 'name',
    'DESCRIPTION': 'description',
    'CLASS': 'class_field',
    'PATHWAY_MAP': 'pathway_map',
}


def _as_values(value) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class RemoteEntry:
    """
    One record returned by the remote pathway database.

    Each field is either ``None`` (not present in the response) or a tuple of
    the values the response carried for it, in response order.
    """
    entry_id: str
    name: Optional[Tuple[str, ...]] = None
    description: Optional[Tuple[str, ...]] = None
    class_field: Optional[Tuple[str, ...]] = None
    pathway_map: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'RemoteEntry':
        entry = _as_values(record.get('ENTRY'))
        if not entry:
            raise ValueError(f'record without ENTRY: {sorted(record)}')
        values = {attr: _as_values(record.get(key)) for key, attr in REMOTE_FIELDS.items()}
        return cls(entry_id=entry[0], **values)


def safe_field(record, field: str):
    """
    Return the first value of ``field`` in ``record`` or ``ABSENT``.

    ``record`` may be a :class:`RemoteEntry` or a plain mapping of field name
    to value list. Missing, empty and unknown fields all give ``ABSENT``.
    """
    if isinstance(record, RemoteEntry):
        attr = REMOTE_FIELDS.get(field)
        values = getattr(record, attr) if attr else None
    elif isinstance(record, Mapping):
        values = record.get(field)
    else:
        return ABSENT

    if values is None:
        return ABSENT
    if isinstance(values, str):
        return values
    try:
        return values[0] if len(values) >= 1 else ABSENT
    except (TypeError, KeyError):
        return ABSENT
