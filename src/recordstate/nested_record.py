"""
NestedRecord: a record whose attributes may be records or collections themselves.

Intended for records that mirror a single JSON API resource with nested
objects and lists. Declare the nested attributes with ``nested``: keys are the
attribute keys as the API returns them, values are the Record or Collection
subclass that manages that attribute::

    class Profile(NestedRecord):
        nested = {
            "smtp_settings": SmtpSettings,   # NestedRecord subclass
            "addresses": AddressBook,        # Collection subclass
        }

A custom nested type is mostly useful to give nested attributes defaults.

Setting nested attributes
-------------------------
All of these update the same nested instance::

    profile = Profile({"smtp_settings": {"notifications": False}})
    profile.set({"smtp_settings": {"notifications": False}})
    profile.get("smtp_settings").set("notifications", False)

Plain data assigned to a nested key is merged into the existing instance, so
its identity and listeners survive. For nested collections whose members have
no ids yet, prefer updating the members directly if you rely on their events.

Saving
------
Save through the parent: ``profile.save()`` or ``profile.save({...})``.

Events
------
Nested change events are NOT re-raised on the parent. Listen on the nested
instance itself::

    profile.get("smtp_settings").on("change:notifications", callback)
    profile.get("addresses").on("update", callback)

The parent does fire ``someChange`` whenever its full expansion (nested parts
included) differs after a set().
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from recordstate.collection import Collection
from recordstate.config import get_record_config, stripped_fields
from recordstate.error_paths import (
    ErrorMap,
    as_messages,
    distribute_errors,
    harvest_nested_collection_errors,
    harvest_nested_record_errors,
)
from recordstate.events import SOME_CHANGE, SYNC
from recordstate.record import Record
from recordstate.schema import NestedSchema, resolve_nested_schema
from recordstate.serialization import strip_record_fields, to_plain_data
from recordstate.snapshot_model import SyncSnapshot
from recordstate.transport import WRITE_METHODS

logger = logging.getLogger(__name__)


def _is_blank(data: Any) -> bool:
    """None, False, 0 and "" carry no nested data; empty containers do."""
    if data is None:
        return True
    if isinstance(data, (Mapping, list, tuple, Record, Collection)):
        return False
    return not data


def _unset_keys_missing_from(record: Record, data: Mapping[str, Any]) -> None:
    """Remove attributes that data lacks from record and the nested records beneath it."""
    extra = [key for key in record.attributes if key not in data]
    if extra:
        record.set({key: None for key in extra}, unset=True)
    schema = getattr(record, "nested_schema", None)
    if schema is None:
        return
    for entry in schema.entries():
        nested = record.get(entry.key)
        value = data.get(entry.key)
        if isinstance(nested, Record) and isinstance(value, Mapping):
            _unset_keys_missing_from(nested, value)
        elif isinstance(nested, Collection) and isinstance(value, list):
            for item in value:
                member = nested.get(item) if isinstance(item, Mapping) else None
                if member is not None:
                    _unset_keys_missing_from(member, item)


class NestedRecord(Record):
    """Record that keeps nested records and collections in sync with plain-data assignment.

    Attributes:
        nested: ``{key: RecordOrCollectionSubclass}`` or a method returning one.
                Resolved on first use and cached for the lifetime of the instance.
        last_synced: Snapshot taken at the last confirmed sync (None before any sync)
    """

    nested: Union[Mapping[str, type], Callable[[], Mapping[str, type]], None] = None

    def __init__(
        self,
        attributes: Optional[Mapping[str, Any]] = None,
        *,
        parse: bool = False,
        collection: Optional[Any] = None,
    ):
        self._nested_schema: Optional[NestedSchema] = None
        self.last_synced: Optional[SyncSnapshot] = None
        super().__init__(attributes, parse=parse, collection=collection)
        self.on(SYNC, self._capture_synced_snapshot)

    @property
    def nested_schema(self) -> NestedSchema:
        if self._nested_schema is None:
            self._nested_schema = resolve_nested_schema(self)
        return self._nested_schema

    # ==================== ASSIGNMENT ====================

    def set(
        self,
        key: Union[str, Mapping[str, Any], None],
        value: Any = None,
        *,
        unset: bool = False,
        silent: bool = False,
        validate: bool = False,
    ) -> bool:
        """Assign attributes, merging plain data into existing nested instances.

        For each nested key in the payload:
        - an instance of the declared type is adopted as is
        - otherwise, data for an existing nested record goes through that
          record's parse() and is set on it; data for an existing nested
          collection is set on it with parse=True; the key is then dropped
          from the payload so the nested instance stays in place
        - otherwise a new instance of the declared type is built from the data

        With unset=True nested state is not reconciled; keys are simply removed.

        With validate=True, nested merges happen before validation and are not
        rolled back when it fails; only the remaining top-level keys are
        withheld.

        Fires ``someChange`` (record, {"set_attrs": payload}) once if the full
        expansion differs afterwards, in addition to the per-attribute events.
        """
        attrs = self._attrs_from_args(key, value)
        set_attrs = to_plain_data(attrs)
        previous = self.to_json()

        # TODO: unsetting a nested key drops the instance without reconciling its state
        if not unset:
            attrs = self._merge_nested(attrs)

        result = super().set(attrs, unset=unset, silent=silent, validate=validate)

        if self.to_json() != previous:
            logger.debug(f"{type(self).__name__}(cid={self.cid}): someChange for keys {sorted(set_attrs)}")
            self.trigger(SOME_CHANGE, self, {"set_attrs": set_attrs})
        return result

    def _merge_nested(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        """Reconcile nested keys of attrs with the current nested instances.

        Returns attrs with nested keys either removed (merged in place) or
        holding the instance to store. Non-nested keys are untouched.
        """
        for entry in self.nested_schema.entries():
            if entry.key not in attrs or _is_blank(attrs[entry.key]):
                continue

            data = attrs[entry.key]
            existing = self.attributes.get(entry.key)

            if entry.matches(data):
                logger.debug(f"{entry.key}: adopting {type(data).__name__} instance")
                continue

            if isinstance(data, (Record, Collection)):
                data = to_plain_data(data)

            if entry.is_record and isinstance(existing, Record):
                logger.debug(f"{entry.key}: merging into existing {type(existing).__name__}")
                existing.set(existing.parse(data))
                del attrs[entry.key]
            elif entry.is_collection and isinstance(existing, Collection):
                logger.debug(f"{entry.key}: merging into existing {type(existing).__name__}")
                existing.set(data, parse=True)
                del attrs[entry.key]
            else:
                logger.debug(f"{entry.key}: building new {entry.factory.__name__}")
                attrs[entry.key] = entry.build(data)
        return attrs

    # ==================== SERIALIZATION ====================

    def to_json(self) -> Dict[str, Any]:
        """Plain data for the whole tree, plus the client id under the configured key.

        Nested records and collections are replaced by their own to_json().
        """
        data = to_plain_data(self.attributes)
        data[get_record_config().client_id_field] = self.cid
        return data

    # ==================== SNAPSHOT ====================

    def _capture_synced_snapshot(self, record: Record, response: Any) -> None:
        # Captures state at completion time, which includes edits made while the request was in flight
        self.last_synced = SyncSnapshot.capture(self.to_json())
        logger.debug(f"{type(self).__name__}(cid={self.cid}): captured synced snapshot {self.last_synced.id}")

    def reset(self) -> None:
        """Restore the last synced attributes, or the defaults if never synced.

        Keys absent from the snapshot are removed, here and on every nested
        record or collection member the snapshot covers. Clears validation_error.
        """
        snapshot = self.last_synced
        if snapshot is not None and not snapshot.is_empty:
            restored = snapshot.restore()
            _unset_keys_missing_from(self, restored)
            self.set(restored)
        else:
            self.clear()
            self.set(self.resolve_defaults())
        self.validation_error = None

    def clone(self) -> 'NestedRecord':
        """New record of the same type from the current data, sharing this record's sync history."""
        clone = type(self)(self.to_json())
        clone.last_synced = self.last_synced
        return clone

    # ==================== VALIDATION ERRORS ====================

    def _merge_in_nested_record_errors(self, errors: Mapping[str, Any]) -> ErrorMap:
        return harvest_nested_record_errors(self, errors)

    def _merge_in_nested_collection_errors(self, errors: Mapping[str, Any]) -> ErrorMap:
        return harvest_nested_collection_errors(self, errors)

    def merge_in_nested_errors(self, errors: Optional[Mapping[str, Any]] = None) -> ErrorMap:
        """Combine errors with those of failing nested nodes and attach them throughout the tree.

        Typically called from validate() on the root record::

            def validate(self, attributes):
                errors = {}
                if not attributes.get("name"):
                    errors["name"] = ["Name is required."]
                return self.merge_in_nested_errors(errors) or None

        Args:
            errors: ``{path: [messages]}`` relative to this record

        Returns:
            The combined error map

        Raises:
            PathResolutionError: a path does not resolve against the current tree
        """
        errors = dict(errors or {})
        merged: ErrorMap = {path: as_messages(messages) for path, messages in errors.items()}

        # Harvest before distributing: harvesting re-validates nested nodes,
        # which resets the error state distribution writes into.
        merged.update(self._merge_in_nested_record_errors(errors))
        merged.update(self._merge_in_nested_collection_errors(errors))

        self._set_nested_validation_errors(merged)
        return merged

    def _set_nested_validation_errors(self, errors: Mapping[str, List[str]]) -> Mapping[str, List[str]]:
        """Attach each entry to the validation_error of the node its path ends on.

        Paths are resolved relative to this record, so this is only meaningful on
        the root of the tree the paths were built for.
        """
        return distribute_errors(self, errors)

    # ==================== PERSISTENCE ====================

    def sync(self, method: str, record: Record, **options: Any):
        """Strip client-only fields from create/update payloads before handing off."""
        if method in WRITE_METHODS and options.get("attrs") is not None:
            options["attrs"] = strip_record_fields(record, options["attrs"], stripped_fields())
        return super().sync(method, record, **options)
