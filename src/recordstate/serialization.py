"""
Plain-data expansion, and removal of client-only keys from record data.

Anything exposing ``to_json()`` (records, collections) is expanded; dicts,
lists and tuples are copied recursively so callers never share containers
with a record's storage.
"""

from typing import Any, FrozenSet, Iterable


def to_plain_data(value: Any) -> Any:
    """Recursively convert value into JSON-compatible plain data."""
    to_json = getattr(value, "to_json", None)
    if callable(to_json) and not isinstance(value, type):
        return to_json()
    if isinstance(value, dict):
        return {key: to_plain_data(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain_data(item) for item in value]
    return value


def strip_record_fields(record: Any, data: Any, keys: Iterable[str]) -> Any:
    """Return a copy of a record's plain data with keys removed at record level.

    The walk follows the record's nested schema: the record's own mapping,
    the mappings of its nested records and those of its collection members
    lose the keys. Any other dict inside the data (a plain JSON attribute
    value) is left as it is.

    Args:
        record: Record the data was serialized from (None strips the top level only)
        data: Plain data as produced by the record's to_json()
        keys: Keys to remove
    """
    return _strip_record(record, data, frozenset(keys))


def _strip_record(record: Any, data: Any, keys: FrozenSet[str]) -> Any:
    if not isinstance(data, dict):
        return data
    stripped = {key: value for key, value in data.items() if key not in keys}
    schema = getattr(record, "nested_schema", None)
    if schema is None:
        return stripped

    for entry in schema.entries():
        value = stripped.get(entry.key)
        nested = record.get(entry.key)
        if entry.is_record and isinstance(value, dict):
            stripped[entry.key] = _strip_record(nested, value, keys)
        elif entry.is_collection and isinstance(value, list):
            stripped[entry.key] = [_strip_record(_member_for(nested, item), item, keys) for item in value]
    return stripped


def _member_for(collection: Any, item: Any) -> Any:
    """Collection member the serialized item came from, or None."""
    if collection is None or not isinstance(item, dict):
        return None
    return collection.get(item)
