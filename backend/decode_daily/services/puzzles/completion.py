"""First play of the day counts; replays do not.

Completion is monotonic: once a (game, day) pair is marked it stays marked,
and marking it again is a no-op.
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple

from . import dates
from .entries import CompletionRecord
from .events import EventHub
from .storage import KeyValueStore, WriteThrough, load_json

logger = logging.getLogger(__name__)

COMPLETION_PREFIX = 'completed_'


def completion_key(game_id: str, day_key: str) -> str:
    return f"{COMPLETION_PREFIX}{game_id}_{day_key}"


class CompletionTracker:
    def __init__(self, store: KeyValueStore, hub: Optional[EventHub] = None, clock: dates.Clock = dates.utc_now):
        self.store = store
        self.hub = hub
        self.clock = clock
        self._records: Dict[Tuple[str, str], CompletionRecord] = {}
        self._writer = WriteThrough(store, owner='completion')
        self._lock = threading.Lock()

    def _record(self, game_id: str, key: str) -> Optional[CompletionRecord]:
        record = self._records.get((game_id, key))
        if record is not None:
            return record
        payload = load_json(self.store.get(completion_key(game_id, key)))
        if isinstance(payload, dict):
            try:
                record = CompletionRecord.from_dict(payload)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(f"[completion-decode] game={game_id} day={key} {exc}")
                return None
        elif payload is True:
            record = CompletionRecord(game_id=game_id, day_key=key)
        if record is not None:
            self._records[(game_id, key)] = record
        return record

    def is_completed(self, game_id: str, day: dates.DayLike) -> bool:
        key = dates.day_key(day)
        with self._lock:
            record = self._record(game_id, key)
        return record is not None and record.played_for_score

    def mark_completed(self, game_id: str, day: dates.DayLike) -> bool:
        """Mark the pair completed; returns False when it already was."""
        key = dates.day_key(day)
        with self._lock:
            existing = self._record(game_id, key)
            if existing is not None and existing.played_for_score:
                return False
            record = CompletionRecord(game_id=game_id, day_key=key, marked_at=self.clock())
            self._records[(game_id, key)] = record
            self._writer.write(completion_key(game_id, key), record.to_dict())
        logger.info(f"[completion-mark] game={game_id} day={key}")
        if self.hub is not None:
            self.hub.publish('completion_marked', {'gameId': game_id, 'dayKey': key})
        return True

    def should_score_this_play(self, game_id: str, day: dates.DayLike) -> bool:
        return not self.is_completed(game_id, day)

    def completed_days(self, game_id: str) -> List[str]:
        prefix = f"{COMPLETION_PREFIX}{game_id}_"
        with self._lock:
            stored = {k[len(prefix):] for k in self.store.keys(prefix)}
            stored.update(day for (gid, day), rec in self._records.items() if gid == game_id and rec.played_for_score)
        return sorted(stored)
