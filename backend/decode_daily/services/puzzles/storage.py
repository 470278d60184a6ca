"""Key-value persistence used by every stateful puzzle service.

The services only ever need ``get``/``set`` of opaque bytes; JSON encoding
happens at the edges through :func:`dump_json` and :func:`load_json`.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .errors import PersistenceWriteError

logger = logging.getLogger(__name__)


class KeyValueStore:
    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def set(self, key: str, value: bytes) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self, prefix: str = '') -> List[str]:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._data.get(key)

    def set(self, key, value):
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix=''):
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))


class SqlKeyValueStore(KeyValueStore):
    """Stores entries in the ``key_value_entry`` table; needs an app context."""

    def get(self, key):
        from decode_daily import db
        from decode_daily.models import KeyValueEntry
        entry = db.session.get(KeyValueEntry, key)
        return bytes(entry.value) if entry is not None else None

    def set(self, key, value):
        from decode_daily import db
        from decode_daily.models import KeyValueEntry
        try:
            entry = db.session.get(KeyValueEntry, key)
            if entry is None:
                entry = KeyValueEntry(key=key)
            entry.value = bytes(value)
            entry.updated_at = datetime.now(timezone.utc)
            db.session.add(entry)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceWriteError(key, str(exc)) from exc

    def delete(self, key):
        from decode_daily import db
        from decode_daily.models import KeyValueEntry
        try:
            KeyValueEntry.query.filter_by(key=key).delete()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceWriteError(key, str(exc)) from exc

    def keys(self, prefix=''):
        from decode_daily.models import KeyValueEntry
        rows = (
            KeyValueEntry.query.filter(KeyValueEntry.key.startswith(prefix))
            .order_by(KeyValueEntry.key.asc())
            .all()
        )
        return [row.key for row in rows]


def dump_json(payload: Any) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(',', ':')).encode('utf-8')


def load_json(raw: Optional[bytes], default: Any = None) -> Any:
    if raw is None:
        return default
    try:
        return json.loads(raw.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as exc:
        logger.warning(f"[store-decode] discarding unreadable payload: {exc}")
        return default


class WriteThrough:
    """Writes values immediately, queueing failed keys for the next attempt.

    The caller's in-memory state stays authoritative: a failed write never
    propagates, it is retried the next time anything is written through the
    same instance.
    """

    def __init__(self, store: KeyValueStore, owner: str):
        self.store = store
        self.owner = owner
        self._pending: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    @property
    def pending_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._pending)

    def write(self, key: str, payload: Any) -> bool:
        with self._lock:
            self._pending[key] = dump_json(payload)
            return self._flush_locked()

    def write_many(self, items: Iterable) -> bool:
        with self._lock:
            for key, payload in items:
                self._pending[key] = dump_json(payload)
            return self._flush_locked()

    def flush(self) -> bool:
        with self._lock:
            return self._flush_locked()

    def _flush_locked(self) -> bool:
        for key in list(self._pending):
            try:
                self.store.set(key, self._pending[key])
            except PersistenceWriteError as exc:
                logger.warning(f"[persist-retry] owner={self.owner} key={key} pending={len(self._pending)} error={exc}")
                return False
            del self._pending[key]
        return True
