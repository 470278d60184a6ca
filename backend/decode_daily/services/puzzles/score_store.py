"""Append-only score ledger persisted under a single key.

Appends and queries share one lock, so a query issued after ``append``
returns always sees the new record.
"""

import logging
import threading
from datetime import timedelta
from typing import List, Optional

from . import dates
from .entries import ScoreRecord
from .events import EventHub
from .storage import KeyValueStore, WriteThrough, load_json

logger = logging.getLogger(__name__)

SCORES_KEY = 'SavedGameScores'


def _best_first(record: ScoreRecord):
    return (record.final_score, record.date)


def _newest_first(record: ScoreRecord):
    return record.date


class ScoreStore:
    def __init__(self, store: KeyValueStore, hub: Optional[EventHub] = None, clock: dates.Clock = dates.utc_now):
        self.store = store
        self.hub = hub
        self.clock = clock
        self._records: List[ScoreRecord] = []
        self._writer = WriteThrough(store, owner='scores')
        self._lock = threading.RLock()

    def load(self) -> int:
        payload = load_json(self.store.get(SCORES_KEY), [])
        records = []
        for item in payload if isinstance(payload, list) else []:
            try:
                records.append(ScoreRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(f"[scores-load] skipping unreadable record: {exc}")
        with self._lock:
            self._records = records
        logger.info(f"[scores-load] records={len(records)}")
        return len(records)

    def append(self, record: ScoreRecord) -> ScoreRecord:
        with self._lock:
            self._records.append(record)
            self._persist()
        logger.info(f"[score-saved] game={record.game_id} day={record.day_key} score={record.final_score} won={record.won}")
        if self.hub is not None:
            self.hub.publish('score_saved', record.to_dict())
        return record

    def clear(self) -> None:
        with self._lock:
            self._records = []
            self._persist()
        if self.hub is not None:
            self.hub.publish('scores_cleared', {})

    def _persist(self) -> None:
        self._writer.write(SCORES_KEY, [r.to_dict() for r in self._records])

    def all(self) -> List[ScoreRecord]:
        with self._lock:
            return list(self._records)

    def query(self, game_id: Optional[str] = None) -> List[ScoreRecord]:
        """Best score first; equal scores newest first."""
        records = [r for r in self.all() if game_id is None or r.game_id == game_id]
        return sorted(records, key=_best_first, reverse=True)

    def top_n(self, n: int = 10) -> List[ScoreRecord]:
        return self.query()[:max(0, n)]

    def recent(self, n: int = 5) -> List[ScoreRecord]:
        return sorted(self.all(), key=_newest_first, reverse=True)[:max(0, n)]

    def most_recent_score(self, game_id: str) -> Optional[ScoreRecord]:
        records = [r for r in self.all() if r.game_id == game_id]
        if not records:
            return None
        return max(records, key=_newest_first)

    def for_day(self, day: dates.DayLike, game_id: Optional[str] = None) -> List[ScoreRecord]:
        key = dates.day_key(day)
        records = [r for r in self.all() if r.day_key == key and (game_id is None or r.game_id == game_id)]
        return sorted(records, key=_best_first, reverse=True)

    def last_week(self) -> List[ScoreRecord]:
        cutoff = dates.to_utc(self.clock()) - timedelta(days=7)
        return [r for r in self.all() if r.date >= cutoff]
