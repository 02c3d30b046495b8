"""
Nested schema: which record or collection type manages each nested attribute.

A record class declares its nested attributes with a ``nested`` class
attribute, either a mapping or a method returning one::

    class Profile(NestedRecord):
        nested = {
            "settings": Settings,        # NestedRecord subclass
            "addresses": AddressBook,    # Collection subclass
        }

        # or, computed from instance state:
        def nested(self):
            return {"settings": self.settings_class}

Each factory is classified once as record-like or collection-like when the
schema is built, so the merge logic branches on the declared kind instead of
probing the runtime type of whatever value it is handed.
"""

from dataclasses import dataclass
from enum import Enum
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Type

from recordstate.collection import Collection
from recordstate.errors import NestedSchemaError
from recordstate.record import Record

logger = logging.getLogger(__name__)


class NestedKind(Enum):
    RECORD = "record"
    COLLECTION = "collection"


@dataclass(frozen=True)
class NestedSchemaEntry:
    """One nested attribute: its key, the type managing it, and that type's kind."""
    key: str
    factory: Type[Any]
    kind: NestedKind

    @classmethod
    def for_factory(cls, key: str, factory: Any) -> 'NestedSchemaEntry':
        """Classify factory as record-like or collection-like.

        Raises:
            NestedSchemaError: factory is not a Record or Collection subclass
        """
        if isinstance(factory, type) and issubclass(factory, Collection):
            return cls(key, factory, NestedKind.COLLECTION)
        if isinstance(factory, type) and issubclass(factory, Record):
            return cls(key, factory, NestedKind.RECORD)
        raise NestedSchemaError(
            f"Nested attribute {key!r} must map to a Record or Collection subclass, got {factory!r}"
        )

    @property
    def is_record(self) -> bool:
        return self.kind is NestedKind.RECORD

    @property
    def is_collection(self) -> bool:
        return self.kind is NestedKind.COLLECTION

    def matches(self, value: Any) -> bool:
        """True if value is already an instance of the declared type."""
        return isinstance(value, self.factory)

    def build(self, data: Any) -> Any:
        """Construct a fresh instance from raw (unparsed) data."""
        return self.factory(data, parse=True)


class NestedSchema:
    """Read-only, ordered mapping of attribute key -> NestedSchemaEntry."""

    def __init__(self, entries: Tuple[NestedSchemaEntry, ...] = ()):
        self._entries: Mapping[str, NestedSchemaEntry] = MappingProxyType(
            {entry.key: entry for entry in entries}
        )

    @classmethod
    def from_declaration(cls, declaration: Optional[Mapping[str, Any]]) -> 'NestedSchema':
        """Build a schema from a ``{key: factory}`` declaration (None means empty)."""
        if not declaration:
            return cls()
        return cls(tuple(
            NestedSchemaEntry.for_factory(key, factory) for key, factory in declaration.items()
        ))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __getitem__(self, key: str) -> NestedSchemaEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        body = ", ".join(f"{key}={entry.factory.__name__}" for key, entry in self._entries.items())
        return f"NestedSchema({body})"

    def get(self, key: str) -> Optional[NestedSchemaEntry]:
        return self._entries.get(key)

    def keys(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    def entries(self) -> Tuple[NestedSchemaEntry, ...]:
        return tuple(self._entries.values())

    def as_dict(self) -> Dict[str, Type[Any]]:
        """The declaration this schema was built from."""
        return {key: entry.factory for key, entry in self._entries.items()}


def resolve_nested_schema(record: Any) -> NestedSchema:
    """Read a record's ``nested`` declaration (calling it if it is a method)."""
    declaration = getattr(record, "nested", None)
    if callable(declaration):
        declaration = declaration()
    schema = NestedSchema.from_declaration(declaration)
    if schema:
        logger.debug(f"Resolved nested schema for {type(record).__name__}: {schema!r}")
    return schema
