"""
Remote persistence boundary.

Records hand create/read/update/patch/delete requests to a Transport and get
a ``concurrent.futures.Future`` back. Completion is the only asynchronous
event in the package; everything a record does on completion (apply server
attributes, fire ``sync``, capture the synced snapshot) runs from the
future's done-callback.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future
import copy
import itertools
import logging
from typing import Any, Dict, List, Optional, Tuple

from recordstate.errors import TransportError

logger = logging.getLogger(__name__)

CREATE = "create"
READ = "read"
UPDATE = "update"
PATCH = "patch"
DELETE = "delete"

METHODS = (CREATE, READ, UPDATE, PATCH, DELETE)
WRITE_METHODS = (CREATE, UPDATE)


class Transport(ABC):
    """Sends a record's persistence request somewhere and reports back via a Future."""

    @abstractmethod
    def request(self, method: str, record: Any, payload: Optional[Dict[str, Any]]) -> Future:
        """Issue a request.

        Args:
            method: One of METHODS
            record: The record the request is about (for url_root/id lookup)
            payload: Plain-data attributes to send, or None for read/delete

        Returns:
            Future resolving to the server's attribute dict, or failing with TransportError
        """


class InMemoryTransport(Transport):
    """Dict-backed store that behaves like a small REST API.

    Rows are keyed by ``(record.url_root, id)``. Ids are assigned on create.

    With ``deferred=True`` requests are queued and only complete when
    ``flush()`` is called, which lets callers mutate records while a request
    is in flight.
    """

    def __init__(self, deferred: bool = False):
        self.deferred = deferred
        self.requests: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self._rows: Dict[Tuple[str, Any], Dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._pending: List[Tuple[Future, str, Any, Optional[Dict[str, Any]], Optional[Exception]]] = []
        self._next_failure: Optional[Exception] = None

    def request(self, method: str, record: Any, payload: Optional[Dict[str, Any]]) -> Future:
        if method not in METHODS:
            raise ValueError(f"Unknown sync method {method!r}; expected one of {METHODS}")

        payload = copy.deepcopy(payload)
        self.requests.append((method, payload))
        logger.debug(f"{type(self).__name__}: {method} {record.url_root}/{record.id} deferred={self.deferred}")

        failure, self._next_failure = self._next_failure, None
        future: Future = Future()
        job = (future, method, record, payload, failure)
        if self.deferred:
            self._pending.append(job)
        else:
            self._complete(*job)
        return future

    def fail_next(self, error: Exception) -> None:
        """Make the next request fail with error."""
        self._next_failure = error

    @property
    def pending(self) -> int:
        return len(self._pending)

    def flush(self) -> int:
        """Complete queued requests in issue order. Returns how many completed."""
        jobs, self._pending = self._pending, []
        for job in jobs:
            self._complete(*job)
        return len(jobs)

    def stored(self, url_root: str, record_id: Any) -> Optional[Dict[str, Any]]:
        """Copy of a stored row, or None."""
        row = self._rows.get((url_root, record_id))
        return copy.deepcopy(row) if row is not None else None

    def _complete(self, future: Future, method: str, record: Any,
                  payload: Optional[Dict[str, Any]], failure: Optional[Exception]) -> None:
        if not future.set_running_or_notify_cancel():
            return
        if failure is not None:
            future.set_exception(failure)
            return
        try:
            response = self._handle(method, record, payload)
        except TransportError as e:
            future.set_exception(e)
        else:
            future.set_result(response)

    def _handle(self, method: str, record: Any, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        id_attribute = record.id_attribute_name()
        url_root = record.url_root

        if method == CREATE:
            record_id = next(self._ids)
            row = dict(payload or {})
            row[id_attribute] = record_id
            self._rows[(url_root, record_id)] = row
            return copy.deepcopy(row)

        key = (url_root, record.id)
        if record.id is None:
            raise TransportError(f"{method} requires a persisted {url_root!r} record")
        if key not in self._rows:
            raise TransportError(f"No {url_root!r} record with id {record.id!r}")

        if method == READ:
            return copy.deepcopy(self._rows[key])
        if method == UPDATE:
            row = dict(payload or {})
            row[id_attribute] = record.id
            self._rows[key] = row
            return copy.deepcopy(row)
        if method == PATCH:
            self._rows[key].update(payload or {})
            return copy.deepcopy(self._rows[key])
        # DELETE
        del self._rows[key]
        return {}
