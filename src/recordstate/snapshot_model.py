"""
Snapshot of a record's state at its last confirmed remote sync.

Design:
- Immutable (frozen dataclass); a new snapshot replaces the old one on each sync
- Data only, no object references: the captured attributes are a deep
  plain-data copy of the record's full nested expansion
- UUID-based identity, so two records sharing sync history (see
  NestedRecord.clone) can be seen to share the same snapshot
"""

from dataclasses import dataclass, field
from typing import Any, Dict
import copy
import time
import uuid


@dataclass(frozen=True)
class SyncSnapshot:
    """Deep plain-data copy of a record's attributes at the moment of a confirmed sync."""
    id: str  # UUID string
    timestamp: float
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def capture(cls, attributes: Dict[str, Any]) -> 'SyncSnapshot':
        """Create a snapshot with auto-generated ID and timestamp."""
        return cls(
            id=str(uuid.uuid4()),
            timestamp=time.time(),
            attributes=copy.deepcopy(attributes),
        )

    @property
    def is_empty(self) -> bool:
        return not self.attributes

    def restore(self) -> Dict[str, Any]:
        """Fresh deep copy of the captured attributes, safe to hand to set()."""
        return copy.deepcopy(self.attributes)

    def to_dict(self) -> Dict[str, Any]:
        """Export to JSON-serializable dict."""
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'attributes': copy.deepcopy(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SyncSnapshot':
        """Import from dict (e.g., loaded from JSON)."""
        return cls(
            id=data['id'],
            timestamp=data['timestamp'],
            attributes=copy.deepcopy(data.get('attributes', {})),
        )
