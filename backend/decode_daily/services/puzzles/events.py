import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[str, Dict[str, Any]], None]


class EventHub:
    """In-process publish/subscribe; the socket layer is one subscriber among many."""

    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, payload)
            except Exception:
                logger.exception(f"[event-listener] event={event} listener={listener!r} failed")
