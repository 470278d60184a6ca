"""Bundled, read-only daily content for one game type.

Catalogs are JSON arrays authored in date order. That order is canonical and
is never re-sorted here; ``date_range`` reads the first and last entries as
authored.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import date
from pathlib import Path
from typing import Dict, IO, List, Optional, Sequence, Tuple, Union

from . import dates
from .entries import ENTRY_TYPES, CodePuzzle, PuzzleEntry
from .errors import CatalogMissingError, MalformedCatalogError, UnknownGameError

logger = logging.getLogger(__name__)

CATALOG_FILES = {
    'decode': 'DailyCodes.json',
    'flashdance': 'DailyEquations.json',
    'anagrams': 'DailyWordsets.json',
}
MASTER_WORD_LIST_FILE = 'MasterWordList.json'

CatalogSource = Union[str, Path, IO, bytes, list]

FALLBACK_MASTER_WORDS = (
    'APPLE', 'ABOUT', 'ARISE', 'BRAVE', 'BREAD', 'CLOUD', 'CABLE', 'DRIVE', 'EVENT', 'FABLE',
    'GHOST', 'HONEY', 'INDEX', 'JOKER', 'KNIFE', 'LIGHT', 'MONEY', 'NIGHT', 'OFFER', 'POINT',
    'QUEST', 'RIVER', 'SCOPE', 'TRAIN', 'UNITY', 'VALUE', 'WATER', 'YOUTH', 'ZEBRA', 'SPEAK',
)


def read_source(source: CatalogSource):
    """Return the decoded JSON payload of a path, open file, raw bytes or list."""
    if isinstance(source, list):
        return source
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise CatalogMissingError(f"no catalog at {path}")
        with path.open('r', encoding='utf-8') as handle:
            text = handle.read()
    elif isinstance(source, bytes):
        text = source.decode('utf-8', errors='replace')
    else:
        text = source.read()
    try:
        return json.loads(text)
    except ValueError as exc:
        raise MalformedCatalogError(f"catalog is not valid JSON: {exc}") from exc


def parse_entries(game_id: str, payload, num_pegs: int = 5, num_colors: int = 6) -> List[PuzzleEntry]:
    """Decode a catalog payload; any bad record rejects the whole catalog."""
    if game_id not in ENTRY_TYPES:
        raise UnknownGameError(game_id)
    if not isinstance(payload, list):
        raise MalformedCatalogError(f"{game_id} catalog must be a JSON array")
    entries = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise MalformedCatalogError(f"{game_id} catalog entry {index} is not an object")
        if game_id == 'decode':
            entries.append(CodePuzzle.from_dict(item, num_pegs=num_pegs, num_colors=num_colors))
        else:
            entries.append(ENTRY_TYPES[game_id].from_dict(item))
    return entries


class PuzzleCatalog:
    def __init__(self, game_id: str, entries: Sequence[PuzzleEntry] = (), load_error: Optional[str] = None):
        self.game_id = game_id
        self.entries: Tuple[PuzzleEntry, ...] = tuple(entries)
        self.load_error = load_error
        self._index: Dict[str, PuzzleEntry] = {}
        for entry in self.entries:
            if entry.id in self._index:
                logger.warning(f"[catalog-dup] game={game_id} id={entry.id} keeping first entry")
                continue
            self._index[entry.id] = entry

    @classmethod
    def load(cls, game_id: str, source: CatalogSource, num_pegs: int = 5, num_colors: int = 6) -> 'PuzzleCatalog':
        """Load a catalog, degrading to an empty one when the source is missing or corrupt."""
        try:
            entries = parse_entries(game_id, read_source(source), num_pegs=num_pegs, num_colors=num_colors)
        except CatalogMissingError as exc:
            logger.warning(f"[catalog-missing] game={game_id} {exc}")
            return cls(game_id, (), load_error=str(exc))
        except MalformedCatalogError as exc:
            logger.warning(f"[catalog-malformed] game={game_id} {exc}")
            return cls(game_id, (), load_error=str(exc))
        logger.info(f"[catalog-load] game={game_id} entries={len(entries)}")
        return cls(game_id, entries)

    def __len__(self):
        return len(self.entries)

    def __contains__(self, key):
        return key in self._index

    def lookup(self, key: dates.DayLike) -> Optional[PuzzleEntry]:
        return self._index.get(dates.day_key(key))

    def date_range(self, today: date, fallback_days: int = 30) -> Tuple[date, date]:
        if not self.entries:
            return dates.shift(today, -fallback_days), today
        return self.entries[0].date, self.entries[-1].date

    def available_dates(self) -> List[date]:
        """Catalog dates, newest first."""
        return sorted((entry.date for entry in self.entries), reverse=True)


def load_catalogs(catalog_dir: Union[str, Path], num_pegs: int = 5, num_colors: int = 6) -> Dict[str, PuzzleCatalog]:
    base = Path(catalog_dir)
    return {
        game_id: PuzzleCatalog.load(game_id, base / filename, num_pegs=num_pegs, num_colors=num_colors)
        for game_id, filename in CATALOG_FILES.items()
    }


def load_master_words(source: CatalogSource) -> List[str]:
    """Upper-cased generation pool; falls back to a built-in list when unavailable."""
    try:
        payload = read_source(source)
    except (CatalogMissingError, MalformedCatalogError) as exc:
        logger.warning(f"[wordlist-fallback] {exc}")
        return list(FALLBACK_MASTER_WORDS)
    if not isinstance(payload, list) or not all(isinstance(w, str) for w in payload):
        logger.warning('[wordlist-fallback] master word list must be an array of strings')
        return list(FALLBACK_MASTER_WORDS)
    words = []
    seen = set()
    for word in payload:
        word = word.strip().upper()
        if word and word not in seen:
            seen.add(word)
            words.append(word)
    if not words:
        logger.warning('[wordlist-fallback] master word list is empty')
        return list(FALLBACK_MASTER_WORDS)
    return words


def default_catalog_dir() -> Path:
    override = os.environ.get('CATALOG_DIR')
    if override:
        return Path(override).expanduser()
    return Path(__file__).resolve().parents[2] / 'data'
