"""
Record: a reactive mapping of attribute keys to values.

This is the primitive the nested machinery in ``nested_record`` builds on. It
owns attribute storage, per-attribute change events, the validation hook and
the persistence hook, and knows nothing about nested schemas.

Events fired:
- ``change:<key>`` (record, new_value) for every attribute whose value changed
- ``change`` (record) once per set() that changed anything
- ``invalid`` (record, errors) when validation fails
- ``request`` (record, future, options) when a sync request is issued
- ``sync`` (record, response) when a sync request succeeds
- ``error`` (record, exception) when a sync request fails
- ``destroy`` (record) when the record is destroyed
"""

from concurrent.futures import Future
import copy
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from recordstate.config import get_default_transport, get_record_config
from recordstate.errors import RecordStateError
from recordstate.events import (
    CHANGE, ERROR, INVALID, REQUEST, SYNC, EventEmitter, change_event,
)
from recordstate.identity import unique_client_id
from recordstate.serialization import to_plain_data
from recordstate.transport import CREATE, DELETE, PATCH, READ, UPDATE, Transport

logger = logging.getLogger(__name__)

DESTROY = "destroy"

_MISSING = object()


class Record(EventEmitter):
    """A single resource: attribute storage plus events, validation and persistence.

    Subclasses customise behaviour through class attributes and hooks:
    - defaults: mapping (or method returning one) applied under constructor attributes
    - id_attribute: name of the persistent id attribute (defaults to config)
    - url_root: resource name used by the transport (defaults to lowercased class name)
    - transport: Transport instance (defaults to the collection's, then the configured default)
    - parse(data): translate a raw API payload into attributes
    - validate(attributes): return None or a dict of key -> list of messages
    """

    defaults: Union[Mapping[str, Any], Callable[[], Mapping[str, Any]], None] = None
    id_attribute: Optional[str] = None
    transport: Optional[Transport] = None

    def __init__(
        self,
        attributes: Optional[Mapping[str, Any]] = None,
        *,
        parse: bool = False,
        collection: Optional[Any] = None,
    ):
        """
        Args:
            attributes: Initial attribute values
            parse: Run the raw attributes through parse() first
            collection: Owning collection, if any
        """
        self._cid = unique_client_id()
        self.attributes: Dict[str, Any] = {}
        self.changed: Dict[str, Any] = {}
        self.validation_error: Optional[Dict[str, List[str]]] = None
        self.collection = collection

        attrs = dict(attributes or {})
        if parse:
            attrs = dict(self.parse(attrs) or {})
        merged = self.resolve_defaults()
        merged.update(attrs)
        self.set(merged)
        self.changed = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(cid={self._cid!r}, id={self.id!r})"

    @property
    def cid(self) -> str:
        """Client identifier: assigned at construction, never persisted, never changes."""
        return self._cid

    @property
    def url_root(self) -> str:
        return type(self).__name__.lower()

    def id_attribute_name(self) -> str:
        return self.id_attribute or get_record_config().id_attribute

    @property
    def id(self) -> Any:
        return self.attributes.get(self.id_attribute_name())

    def is_new(self) -> bool:
        """True until the record has a persistent id."""
        return self.id is None

    def resolve_defaults(self) -> Dict[str, Any]:
        """Deep copy of the declared defaults (empty dict if none)."""
        defaults = self.defaults
        if callable(defaults):
            defaults = defaults()
        return copy.deepcopy(dict(defaults or {}))

    # ==================== ATTRIBUTE ACCESS ====================

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def has(self, key: str) -> bool:
        return self.attributes.get(key) is not None

    @staticmethod
    def _attrs_from_args(key: Union[str, Mapping[str, Any], None], value: Any) -> Dict[str, Any]:
        """Accept both ``set("key", value)`` and ``set({"key": value})`` call styles."""
        if key is None:
            return {}
        if isinstance(key, Mapping):
            return dict(key)
        return {key: value}

    def set(
        self,
        key: Union[str, Mapping[str, Any], None],
        value: Any = None,
        *,
        unset: bool = False,
        silent: bool = False,
        validate: bool = False,
    ) -> bool:
        """Assign (or with unset=True, remove) attributes.

        The configured client id field is never stored as an attribute.

        Returns:
            False if validate=True and validation failed (no attribute of this
            record assigned; subclasses may already have updated nested
            instances), else True
        """
        attrs = self._attrs_from_args(key, value)
        attrs.pop(get_record_config().client_id_field, None)

        if validate and not self._validate({**self.attributes, **attrs}):
            return False

        changes: List[str] = []
        self.changed = {}
        for name, new_value in attrs.items():
            if unset:
                if name in self.attributes:
                    del self.attributes[name]
                    changes.append(name)
                    self.changed[name] = None
                continue
            current = self.attributes.get(name, _MISSING)
            if current is _MISSING or not (current is new_value or current == new_value):
                changes.append(name)
                self.changed[name] = new_value
            self.attributes[name] = new_value

        if not silent:
            for name in changes:
                self.trigger(change_event(name), self, self.attributes.get(name))
            if changes:
                self.trigger(CHANGE, self)
        return True

    def unset(self, key: str, *, silent: bool = False) -> bool:
        return self.set(key, None, unset=True, silent=silent)

    def clear(self, *, silent: bool = False) -> bool:
        """Remove every attribute."""
        return self.set({name: None for name in self.attributes}, unset=True, silent=silent)

    # ==================== HOOKS ====================

    def parse(self, data: Any) -> Any:
        """Translate a raw payload into attributes. Identity by default."""
        return data

    def validate(self, attributes: Dict[str, Any]) -> Optional[Dict[str, List[str]]]:
        """Return None when valid, otherwise a dict of key -> list of messages."""
        return None

    def _validate(self, attributes: Dict[str, Any]) -> bool:
        error = self.validate(attributes)
        self.validation_error = error or None
        if not error:
            return True
        self.trigger(INVALID, self, error)
        return False

    def is_valid(self) -> bool:
        """Run validate() on the current attributes and record the outcome in validation_error."""
        return self._validate(dict(self.attributes))

    # ==================== SERIALIZATION ====================

    def to_json(self) -> Dict[str, Any]:
        """Plain-data copy of the attributes."""
        return to_plain_data(self.attributes)

    def clone(self) -> 'Record':
        """New record of the same type built from this one's plain data."""
        return type(self)(self.to_json())

    # ==================== PERSISTENCE ====================

    def _get_transport(self) -> Transport:
        transport = self.transport
        if transport is None and self.collection is not None:
            transport = getattr(self.collection, "transport", None)
        if transport is None:
            transport = get_default_transport()
        if transport is None:
            raise RecordStateError(f"No transport configured for {type(self).__name__}")
        return transport

    def sync(self, method: str, record: 'Record', **options: Any) -> Future:
        """Hand a persistence request to the transport.

        Args:
            method: create, read, update, patch or delete
            record: The record being persisted (normally self)
            **options: ``attrs`` is the payload to send, if any
        """
        logger.debug(f"sync {method} {type(record).__name__}(cid={record.cid})")
        future = self._get_transport().request(method, record, options.get("attrs"))
        self.trigger(REQUEST, self, future, options)
        return future

    def _on_sync_done(self, future: Future, apply: Callable[[Any], bool]) -> None:
        error = future.exception()
        if error is not None:
            logger.debug(f"sync failed for {type(self).__name__}(cid={self.cid}): {error}")
            self.trigger(ERROR, self, error)
            return
        response = future.result()
        if apply(response):
            self.trigger(SYNC, self, response)

    def save(
        self,
        attributes: Optional[Mapping[str, Any]] = None,
        *,
        patch: bool = False,
        wait: bool = False,
    ) -> Union[Future, bool]:
        """Validate, then create (new record) or update/patch (persisted record).

        Args:
            attributes: Attributes to assign before saving
            patch: Send only `attributes` with a patch request
            wait: Assign `attributes` only once the server confirms

        Returns:
            The request Future, or False if validation failed
        """
        if attributes is not None and not wait:
            if not self.set(attributes, validate=True):
                return False
        elif not self._validate({**self.attributes, **dict(attributes or {})}):
            return False

        if self.is_new():
            method = CREATE
        else:
            method = PATCH if patch else UPDATE

        if method == PATCH:
            payload = to_plain_data(dict(attributes or {}))
        else:
            payload = self.to_json()
            if wait and attributes:
                payload.update(to_plain_data(dict(attributes)))

        def apply(response: Any) -> bool:
            server_attrs = self.parse(response) if response else {}
            if wait and attributes:
                server_attrs = {**dict(attributes), **dict(server_attrs or {})}
            if server_attrs:
                return self.set(server_attrs)
            return True

        future = self.sync(method, self, attrs=payload)
        future.add_done_callback(lambda done: self._on_sync_done(done, apply))
        return future

    def fetch(self) -> Future:
        """Reload attributes from the transport."""
        def apply(response: Any) -> bool:
            server_attrs = self.parse(response)
            return self.set(server_attrs) if server_attrs else True

        future = self.sync(READ, self)
        future.add_done_callback(lambda done: self._on_sync_done(done, apply))
        return future

    def destroy(self) -> Optional[Future]:
        """Delete the record remotely (if persisted) and detach it from its collection."""
        def finish() -> None:
            self.trigger(DESTROY, self)
            if self.collection is not None:
                self.collection.remove(self)

        if self.is_new():
            finish()
            return None

        def apply(response: Any) -> bool:
            finish()
            return True

        future = self.sync(DELETE, self)
        future.add_done_callback(lambda done: self._on_sync_done(done, apply))
        return future
