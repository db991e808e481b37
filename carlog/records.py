"""Shared (de)serialization helpers for the record classes."""

from typing import Any, Dict, Iterable, Tuple

# (attribute, wire key) pairs
FieldMap = Tuple[Tuple[str, str], ...]


def split_known(data: Dict[str, Any], fields: FieldMap) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split a wire dict into known attribute values and extra keys."""
    keys = {key for _, key in fields}
    known = {attr: data.get(key) for attr, key in fields}
    extra = {k: v for k, v in data.items() if k not in keys}
    return known, extra


def build_dict(record: Any, fields: FieldMap, required: Iterable[str] = ()) -> Dict[str, Any]:
    """Serialize a record, omitting None values for optional fields."""
    d: Dict[str, Any] = dict(record.extra)
    required = set(required)
    for attr, key in fields:
        value = getattr(record, attr)
        if value is None and attr not in required:
            continue
        d[key] = value
    return d


def apply_updates(record: Any, fields: FieldMap, updates: Dict[str, Any]) -> None:
    """Set the given attributes on a record.

    Only attributes in the record's field set may be changed; the id is fixed.
    """
    allowed = {attr for attr, _ in fields if attr != "id"}
    unknown = sorted(set(updates) - allowed)
    if unknown:
        raise TypeError(
            f"{type(record).__name__} has no updatable field(s): {', '.join(unknown)}"
        )
    for attr, value in updates.items():
        setattr(record, attr, value)
