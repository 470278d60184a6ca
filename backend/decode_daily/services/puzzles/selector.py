"""Resolve the puzzle for a game and a day.

Lookup order: today's in-memory cache, the bundled catalog, a stored
override, and finally generation. A generated entry is stored as an override
straight away so later calls for the same day get the same puzzle.
"""

from __future__ import annotations

import dataclasses
import logging
import random
import threading
from datetime import date
from typing import Dict, List, Mapping, Optional, Tuple

from . import dates
from .catalog import PuzzleCatalog
from .entries import ENTRY_TYPES, CodePuzzle, EquationSet, PuzzleEntry, WordSet
from .errors import MalformedCatalogError, UnknownGameError
from .generators import AntiRepetitionPool, equation_pool, generate_code
from .storage import KeyValueStore, WriteThrough, load_json

logger = logging.getLogger(__name__)

OVERRIDE_PREFIXES = {
    'decode': 'DailyCodeSets',
    'flashdance': 'DailyEquationSets',
    'anagrams': 'DailyWordsets',
}
WORD_PROGRESS_KEY = 'WordsetGenerationProgress'
EQUATION_PROGRESS_KEY = 'EquationGenerationProgress'


def override_key(game_id: str, key: str) -> str:
    return f"{OVERRIDE_PREFIXES[game_id]}_{key}"


class DailyPuzzleSelector:
    def __init__(
        self,
        catalogs: Mapping[str, PuzzleCatalog],
        store: KeyValueStore,
        master_words: List[str],
        rng: Optional[random.Random] = None,
        clock: dates.Clock = dates.utc_now,
        num_pegs: int = 5,
        num_colors: int = 6,
        words_per_set: int = 10,
        equations_per_set: int = 20,
        fallback_days: int = 30,
    ):
        self.catalogs = {game_id: catalogs.get(game_id) or PuzzleCatalog(game_id) for game_id in ENTRY_TYPES}
        self.store = store
        self.rng = rng or random.Random()
        self.clock = clock
        self.num_pegs = num_pegs
        self.num_colors = num_colors
        self.words_per_set = words_per_set
        self.equations_per_set = equations_per_set
        self.fallback_days = fallback_days
        self.word_pool = AntiRepetitionPool('words', master_words, store, WORD_PROGRESS_KEY, clock=clock)
        self.equation_pool = AntiRepetitionPool(
            'equations', equation_pool(), store, EQUATION_PROGRESS_KEY,
            key=lambda eq: eq.expression, clock=clock,
        )
        self._writer = WriteThrough(store, owner='selector')
        self._today: Dict[str, PuzzleEntry] = {}
        self._overrides: Dict[Tuple[str, str], PuzzleEntry] = {}
        self._lock = threading.RLock()

    # -------------------------
    # Lookup
    # -------------------------

    def today_key(self) -> str:
        return dates.day_key(self.clock())

    def get_puzzle(self, game_id: str, day: Optional[dates.DayLike] = None) -> PuzzleEntry:
        catalog = self._catalog(game_id)
        key = dates.day_key(day if day is not None else self.clock())
        is_today = key == self.today_key()
        with self._lock:
            if is_today:
                cached = self._today.get(game_id)
                if cached is not None and cached.id == key:
                    return cached

            entry = catalog.lookup(key)
            override = self._load_override(game_id, key)
            if entry is None:
                entry = override
            elif override is not None:
                entry = _carry_completion(entry, override)
            if entry is None:
                entry = self._generate(game_id, key)

            if is_today:
                self._today[game_id] = entry
            return entry

    def refresh_for_new_day(self) -> None:
        with self._lock:
            self._today.clear()
        logger.info(f"[selector-refresh] today={self.today_key()}")

    def date_range(self, game_id: str) -> Tuple[date, date]:
        return self._catalog(game_id).date_range(dates.today(self.clock), self.fallback_days)

    def available_dates(self, game_id: str) -> List[date]:
        return self._catalog(game_id).available_dates()

    # -------------------------
    # Completion flags on sets
    # -------------------------

    def mark_set_completed(self, game_id: str, day: dates.DayLike) -> PuzzleEntry:
        """Stamp a word or equation set as completed; code puzzles carry no flag."""
        entry = self.get_puzzle(game_id, day)
        if isinstance(entry, CodePuzzle):
            return entry
        with self._lock:
            if isinstance(entry, WordSet):
                if entry.completed:
                    return entry
                updated = dataclasses.replace(entry, completed=True, completed_at=self.clock())
            else:
                if entry.completed_at is not None:
                    return entry
                updated = dataclasses.replace(entry, completed_at=self.clock())
            self._save_override(game_id, updated)
            if self._today.get(game_id) is not None and self._today[game_id].id == updated.id:
                self._today[game_id] = updated
            return updated

    def mark_wordset_completed(self, day: dates.DayLike) -> PuzzleEntry:
        return self.mark_set_completed('anagrams', day)

    # -------------------------
    # Internal helpers
    # -------------------------

    def _catalog(self, game_id: str) -> PuzzleCatalog:
        if game_id not in self.catalogs:
            raise UnknownGameError(game_id)
        return self.catalogs[game_id]

    def _generate(self, game_id: str, key: str) -> PuzzleEntry:
        if game_id == 'decode':
            entry = CodePuzzle.for_day(key, generate_code(self.rng, self.num_pegs, self.num_colors))
        elif game_id == 'flashdance':
            entry = EquationSet.for_day(key, self.equation_pool.draw(self.equations_per_set, self.rng))
        else:
            entry = WordSet.for_day(key, self.word_pool.draw(self.words_per_set, self.rng))
        logger.info(f"[puzzle-generate] game={game_id} day={key}")
        self._save_override(game_id, entry)
        return entry

    def _save_override(self, game_id: str, entry: PuzzleEntry) -> None:
        self._overrides[(game_id, entry.id)] = entry
        self._writer.write(override_key(game_id, entry.id), entry.to_dict())

    def _load_override(self, game_id: str, key: str) -> Optional[PuzzleEntry]:
        cached = self._overrides.get((game_id, key))
        if cached is not None:
            return cached
        payload = load_json(self.store.get(override_key(game_id, key)))
        if payload is None:
            return None
        try:
            if game_id == 'decode':
                entry = CodePuzzle.from_dict(payload, num_pegs=self.num_pegs, num_colors=self.num_colors)
            else:
                entry = ENTRY_TYPES[game_id].from_dict(payload)
        except MalformedCatalogError as exc:
            logger.warning(f"[override-malformed] game={game_id} day={key} {exc}")
            return None
        self._overrides[(game_id, key)] = entry
        return entry


def _carry_completion(entry: PuzzleEntry, override: PuzzleEntry) -> PuzzleEntry:
    if isinstance(entry, WordSet) and isinstance(override, WordSet) and override.completed:
        return dataclasses.replace(entry, completed=True, completed_at=override.completed_at)
    if isinstance(entry, EquationSet) and isinstance(override, EquationSet) and override.completed_at:
        return dataclasses.replace(entry, completed_at=override.completed_at)
    return entry
