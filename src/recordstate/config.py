"""
Framework configuration for recordstate.

Module-level storage for the settings every record consults: the client
identifier prefix, the reserved serialization key for the client identifier,
the instance-local fields that must never reach the wire, and the default
transport used by records that do not declare their own.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class RecordConfig:
    """Settings shared by all records in the process."""
    client_id_prefix: str = "c"
    client_id_field: str = "cid"  # Key appended by to_json(), ignored by set()
    local_only_fields: Tuple[str, ...] = ("_clientID",)  # Stripped by the sync gate
    id_attribute: str = "id"


_record_config: RecordConfig = RecordConfig()
_default_transport: Optional[Any] = None


def get_record_config() -> RecordConfig:
    """Get the active record configuration."""
    return _record_config


def set_record_config(config: RecordConfig) -> None:
    """Replace the active record configuration.

    Args:
        config: The RecordConfig to install
    """
    global _record_config
    _record_config = config


def configure(**overrides: Any) -> RecordConfig:
    """Install a copy of the active configuration with some fields replaced.

    Example:
        configure(client_id_prefix="tmp")  # new records get ids like "tmp7"
    """
    config = dataclasses.replace(_record_config, **overrides)
    set_record_config(config)
    return config


def stripped_fields() -> Tuple[str, ...]:
    """Fields the sync gate removes from outgoing write payloads.

    Never includes the client id field: collection members without a
    persistent id are matched against the response by it.
    """
    config = _record_config
    return tuple(name for name in config.local_only_fields if name != config.client_id_field)


def set_default_transport(transport: Optional[Any]) -> None:
    """Set the transport used by records without their own."""
    global _default_transport
    _default_transport = transport


def get_default_transport() -> Optional[Any]:
    """Get the default transport (None if never set)."""
    return _default_transport
