"""
Minimal event broadcasting for records and collections.

Callbacks are best-effort: a callback that raises is logged and dispatch
continues with the next one.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

CHANGE = "change"
SOME_CHANGE = "someChange"
SYNC = "sync"
REQUEST = "request"
ERROR = "error"
INVALID = "invalid"
ADD = "add"
REMOVE = "remove"
UPDATE = "update"
RESET = "reset"


def change_event(key: str) -> str:
    """Name of the per-attribute change event, e.g. ``change:title``."""
    return f"{CHANGE}:{key}"


class EventEmitter:
    """Mixin providing on/off/trigger.

    Listener storage is created lazily so subclasses don't need to call
    ``EventEmitter.__init__``.
    """

    _listeners: Dict[str, List[Callable[..., Any]]]

    def _listener_map(self) -> Dict[str, List[Callable[..., Any]]]:
        try:
            return self._listeners
        except AttributeError:
            self._listeners = {}
            return self._listeners

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        """Subscribe callback to event (no-op if already subscribed)."""
        callbacks = self._listener_map().setdefault(event, [])
        if callback not in callbacks:
            callbacks.append(callback)

    def off(self, event: Optional[str] = None, callback: Optional[Callable[..., Any]] = None) -> None:
        """Unsubscribe.

        Args:
            event: Event name. None removes from every event.
            callback: Callback to remove. None removes all callbacks for the event(s).
        """
        listeners = self._listener_map()
        events = [event] if event is not None else list(listeners.keys())
        for name in events:
            if name not in listeners:
                continue
            if callback is None:
                del listeners[name]
            elif callback in listeners[name]:
                listeners[name].remove(callback)

    def listener_count(self, event: str) -> int:
        return len(self._listener_map().get(event, ()))

    def trigger(self, event: str, *args: Any) -> None:
        """Fire all callbacks subscribed to event with the given arguments."""
        for callback in list(self._listener_map().get(event, ())):
            try:
                callback(*args)
            except Exception as e:
                logger.warning(f"Error in {event!r} callback on {type(self).__name__}: {e}")
