"""
Client identifiers for record instances.

A client identifier is assigned once, when a record is constructed, and is
never persisted. It addresses collection members that have no server-assigned
key yet (e.g. in error paths like ``addresses[c12].zip``).
"""

import itertools
import threading
from typing import Optional

from recordstate.config import get_record_config

_counter = itertools.count(1)
_counter_lock = threading.Lock()


def unique_client_id(prefix: Optional[str] = None) -> str:
    """Return the next process-wide client identifier.

    Args:
        prefix: Identifier prefix. Defaults to the configured client_id_prefix.

    Returns:
        A string such as ``"c42"``, unique for the lifetime of the process.
    """
    if prefix is None:
        prefix = get_record_config().client_id_prefix
    with _counter_lock:
        number = next(_counter)
    return f"{prefix}{number}"
