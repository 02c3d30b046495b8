"""
Collection: an ordered sequence of records.

Collections hold no nested schema of their own; they manage membership and
forward attribute updates to their members. ``set()`` performs a smart merge:
incoming items that match an existing member (same record, same persistent
id, or same client id) update that member in place, so members keep their
identity and listeners across repeated assignments.

Events fired:
- ``add`` (record, collection) per added member
- ``remove`` (record, collection) per removed member
- ``update`` (collection, info) once per set/add/remove that changed membership
- ``reset`` (collection) after reset()
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Type, Union

from recordstate.config import get_record_config
from recordstate.events import ADD, REMOVE, RESET, UPDATE, EventEmitter
from recordstate.record import Record
from recordstate.serialization import to_plain_data
from recordstate.transport import Transport

logger = logging.getLogger(__name__)


class Collection(EventEmitter):
    """Ordered records of a single record_class."""

    record_class: Type[Record] = Record
    transport: Optional[Transport] = None

    def __init__(self, records: Optional[Iterable[Any]] = None, *, parse: bool = False):
        self._records: List[Record] = []
        if records is not None:
            self.reset(records, parse=parse, silent=True)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._records)} records)"

    # ==================== SEQUENCE PROTOCOL ====================

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records))

    def __getitem__(self, index: int) -> Record:
        return self._records[index]

    def __contains__(self, item: Any) -> bool:
        return self.get(item) is not None

    @property
    def records(self) -> List[Record]:
        """Copy of the member list."""
        return list(self._records)

    def at(self, index: int) -> Record:
        return self._records[index]

    # ==================== LOOKUP ====================

    def _id_attribute(self) -> str:
        return self.record_class.id_attribute or get_record_config().id_attribute

    def get_by_cid(self, cid: Any) -> Optional[Record]:
        """Member with the given client identifier, or None."""
        for record in self._records:
            if record.cid == cid:
                return record
        return None

    def get_by_id(self, record_id: Any) -> Optional[Record]:
        """Member with the given persistent id, or None."""
        if record_id is None:
            return None
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def get(self, obj: Any) -> Optional[Record]:
        """Find a member by record, persistent id, client id, or attribute mapping.

        Mappings are matched on the id attribute first, then on the client id field.
        """
        if obj is None:
            return None
        if isinstance(obj, Record):
            for record in self._records:
                if record is obj:
                    return record
            return self.get_by_id(obj.id) or self.get_by_cid(obj.cid)
        if isinstance(obj, Mapping):
            found = self.get_by_id(obj.get(self._id_attribute()))
            if found is None:
                found = self.get_by_cid(obj.get(get_record_config().client_id_field))
            return found
        return self.get_by_id(obj) or self.get_by_cid(obj)

    # ==================== MEMBERSHIP ====================

    def parse(self, data: Any) -> Any:
        """Translate a raw list payload into member data. Identity by default."""
        return data

    def _prepare(self, item: Any, parse: bool) -> Record:
        if isinstance(item, Record):
            if item.collection is None:
                item.collection = self
            return item
        return self.record_class(item, parse=parse, collection=self)

    def set(
        self,
        data: Union[Any, Iterable[Any], None],
        *,
        parse: bool = False,
        add: bool = True,
        remove: bool = True,
        merge: bool = True,
        silent: bool = False,
    ) -> List[Record]:
        """Reconcile membership with data.

        Args:
            data: Records or attribute mappings (a single item is accepted too)
            parse: Run data through parse(), and merged items through the member's parse()
            add: Add items with no matching member
            remove: Remove members with no matching item
            merge: Update matching members with the item's attributes
            silent: Suppress add/remove/update events

        Returns:
            Members corresponding to the items in data, in order
        """
        if parse:
            data = self.parse(data)
        if data is None:
            data = []
        items = list(data) if isinstance(data, (list, tuple)) else [data]

        matched: List[Record] = []
        seen = set()
        added: List[Record] = []
        merged: List[Record] = []

        for item in items:
            existing = self.get(item)
            if existing is not None:
                if merge and existing is not item:
                    attrs = to_plain_data(item) if isinstance(item, Record) else item
                    if parse:
                        attrs = existing.parse(attrs)
                    existing.set(attrs)
                    merged.append(existing)
                record = existing
            elif add:
                record = self._prepare(item, parse)
                added.append(record)
            else:
                continue
            if id(record) not in seen:
                seen.add(id(record))
                matched.append(record)

        removed: List[Record] = []
        if remove:
            removed = [record for record in self._records if id(record) not in seen]
            self._records = matched
        else:
            self._records.extend(added)

        for record in removed:
            if record.collection is self:
                record.collection = None

        logger.debug(
            f"{type(self).__name__}.set: added={len(added)} merged={len(merged)} removed={len(removed)}"
        )

        if not silent:
            for record in added:
                self.trigger(ADD, record, self)
            for record in removed:
                self.trigger(REMOVE, record, self)
            if added or removed:
                self.trigger(UPDATE, self, {"added": added, "removed": removed, "merged": merged})
        return matched

    def add(self, data: Any, *, parse: bool = False, silent: bool = False) -> List[Record]:
        """Append new members; items matching existing members are left untouched."""
        return self.set(data, parse=parse, remove=False, merge=False, silent=silent)

    def remove(self, data: Any, *, silent: bool = False) -> List[Record]:
        """Remove the members matching data. Returns the removed records."""
        items = list(data) if isinstance(data, (list, tuple)) else [data]
        removed: List[Record] = []
        for item in items:
            record = self.get(item)
            if record is None or any(record is r for r in removed):
                continue
            self._records = [r for r in self._records if r is not record]
            if record.collection is self:
                record.collection = None
            removed.append(record)
        if not silent:
            for record in removed:
                self.trigger(REMOVE, record, self)
            if removed:
                self.trigger(UPDATE, self, {"added": [], "removed": removed, "merged": []})
        return removed

    def reset(self, data: Any = None, *, parse: bool = False, silent: bool = False) -> List[Record]:
        """Replace every member without merging."""
        for record in self._records:
            if record.collection is self:
                record.collection = None
        self._records = []
        added = self.add(data if data is not None else [], parse=parse, silent=True)
        if not silent:
            self.trigger(RESET, self)
        return added

    # ==================== SERIALIZATION ====================

    def to_json(self) -> List[Dict[str, Any]]:
        return [record.to_json() for record in self._records]
