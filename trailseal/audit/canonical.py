"""Canonical JSON encoding of audit records.

Guarantees that semantically identical records produce byte-identical text:

- Only the hashed content fields are included (`id`, `prevHash` and
  `selfHash` never are)
- Object keys sorted lexicographically at every nesting level
- Compact form, no whitespace between tokens
- Arrays keep their order
- `null` is written out, never omitted
- Timestamps as ISO-8601 UTC with microseconds (`2025-01-01T00:00:00.000000Z`)
"""

import json
from datetime import datetime
from typing import Any

from trailseal.audit.models import HASHED_FIELDS, AuditRecord, to_utc


def canonicalize(record: AuditRecord) -> str:
    """Return the canonical JSON text of a record's hashable content."""
    content: dict[str, Any] = {}
    for key, attribute in HASHED_FIELDS.items():
        value = getattr(record, attribute)
        if isinstance(value, datetime):
            value = format_timestamp(value)
        content[key] = value

    return json.dumps(
        _canonical_value(content),
        separators=(",", ":"),
        ensure_ascii=False,
    )


def format_timestamp(value: datetime) -> str:
    """Render an instant in the single textual form used for hashing."""
    return to_utc(value).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _canonical_value(value: Any) -> Any:
    """Recursively rebuild a JSON value with sorted object keys."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, dict):
        return {key: _canonical_value(value[key]) for key in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [_canonical_value(item) for item in value]
    raise TypeError(f"Cannot canonicalize type: {type(value).__name__}")
