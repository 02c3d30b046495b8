"""
Nested record state for JSON API resources.

Records mirror an API response tree: attributes can be other records or
ordered collections of records. A per-type nested schema says which type
manages each nested attribute, and the framework keeps the tree consistent.

Key Features:
- Plain-data assignment merges into existing nested instances (identity and
  listeners preserved)
- Recursive serialization back to plain data, client id included
- Aggregate ``someChange`` notification covering nested changes
- Snapshot of the last confirmed sync, with reset() and clone()
- Validation errors harvested from nested nodes and routed back down the tree
  by path (``settings.locale``, ``addresses[c12].zip``)
- Client-only fields stripped from outgoing write payloads

Quick Start:
    >>> from recordstate import NestedRecord, Collection
    >>>
    >>> class Address(NestedRecord):
    ...     defaults = {"city": "", "zip": ""}
    >>>
    >>> class AddressBook(Collection):
    ...     record_class = Address
    >>>
    >>> class Profile(NestedRecord):
    ...     nested = {"home": Address, "addresses": AddressBook}
    >>>
    >>> profile = Profile({"home": {"city": "Oslo"}})
    >>> home = profile.get("home")
    >>> profile.set({"home": {"zip": "0150"}})
    True
    >>> profile.get("home") is home
    True

Modules:
    - nested_record: NestedRecord (merge, serialize, snapshot, error routing, sync gate)
    - record: Record primitive (storage, events, validation hook, persistence)
    - collection: Collection primitive (ordered membership, smart merge)
    - schema: NestedSchema declaration and classification
    - error_paths: ErrorPath and the validation error router
    - snapshot_model: SyncSnapshot
    - transport: Transport interface and InMemoryTransport
    - config: Framework configuration
"""

# Configuration
from recordstate.config import (
    RecordConfig,
    get_record_config,
    set_record_config,
    configure,
    set_default_transport,
    get_default_transport,
)

# Errors
from recordstate.errors import (
    RecordStateError,
    NestedSchemaError,
    PathResolutionError,
    TransportError,
)

# Events
from recordstate.events import EventEmitter, SOME_CHANGE, change_event

# Identity
from recordstate.identity import unique_client_id

# Primitives
from recordstate.record import Record
from recordstate.collection import Collection

# Transport
from recordstate.transport import Transport, InMemoryTransport

# Schema
from recordstate.schema import NestedKind, NestedSchema, NestedSchemaEntry

# Error paths
from recordstate.error_paths import ErrorPath, PathSegment, SegmentKind

# Snapshot model
from recordstate.snapshot_model import SyncSnapshot

# Nested records
from recordstate.nested_record import NestedRecord

__all__ = [
    # Configuration
    'RecordConfig',
    'get_record_config',
    'set_record_config',
    'configure',
    'set_default_transport',
    'get_default_transport',
    # Errors
    'RecordStateError',
    'NestedSchemaError',
    'PathResolutionError',
    'TransportError',
    # Events
    'EventEmitter',
    'SOME_CHANGE',
    'change_event',
    # Identity
    'unique_client_id',
    # Primitives
    'Record',
    'Collection',
    # Transport
    'Transport',
    'InMemoryTransport',
    # Schema
    'NestedKind',
    'NestedSchema',
    'NestedSchemaEntry',
    # Error paths
    'ErrorPath',
    'PathSegment',
    'SegmentKind',
    # Snapshot model
    'SyncSnapshot',
    # Nested records
    'NestedRecord',
]

__version__ = '1.0.0'
__description__ = 'Nested record state: merge, serialize, snapshot and route validation errors'
