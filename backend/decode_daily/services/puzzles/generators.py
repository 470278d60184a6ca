"""Fallback content generation for days the bundled catalogs do not cover."""

from __future__ import annotations

import logging
import random
import threading
from typing import Callable, Generic, List, Optional, Sequence, Set, TypeVar

from . import dates
from .entries import Equation
from .errors import GenerationExhaustedError
from .storage import KeyValueStore, WriteThrough, load_json

logger = logging.getLogger(__name__)

T = TypeVar('T')


def generate_code(rng: random.Random, num_pegs: int = 5, num_colors: int = 6) -> List[int]:
    return [rng.randint(1, num_colors) for _ in range(num_pegs)]


def equation_pool() -> List[Equation]:
    """Every equation the generator may hand out, in a stable order."""
    pool = []
    for a in range(1, 13):
        for b in range(a, 13):
            pool.append(Equation(f"{a} + {b}", a + b))
    for hi in range(1, 13):
        for lo in range(1, hi + 1):
            pool.append(Equation(f"{hi} - {lo}", hi - lo))
    for x in range(2, 9):
        for y in range(2, 9):
            pool.append(Equation(f"{x} × {y}", x * y))
    for divisor in range(2, 9):
        for quotient in range(2, 13):
            pool.append(Equation(f"{quotient * divisor} ÷ {divisor}", quotient))
    return pool


class GenerationProgress:
    def __init__(self, used: Optional[Set[str]] = None, total_generated: int = 0, last_generated_date=None):
        self.used: Set[str] = set(used or ())
        self.total_generated = total_generated
        self.last_generated_date = last_generated_date

    def to_dict(self):
        return {
            'usedItems': sorted(self.used),
            'totalGenerated': self.total_generated,
            'lastGeneratedDate': dates.format_timestamp(self.last_generated_date) if self.last_generated_date else None,
        }

    @classmethod
    def from_dict(cls, data) -> 'GenerationProgress':
        if not isinstance(data, dict):
            return cls()
        last = data.get('lastGeneratedDate')
        try:
            last_dt = dates.parse_timestamp(last) if last else None
        except ValueError:
            last_dt = None
        return cls(
            used=set(data.get('usedItems') or ()),
            total_generated=int(data.get('totalGenerated') or 0),
            last_generated_date=last_dt,
        )


class AntiRepetitionPool(Generic[T]):
    """Random draws that avoid items handed out by earlier draws.

    Used items accumulate across calls. When fewer unused items remain than a
    draw asks for, the used set is reset and the full pool is available again;
    a draw larger than the whole pool resets again mid-draw, so it repeats
    items rather than coming up short.
    """

    def __init__(
        self,
        name: str,
        items: Sequence[T],
        store: KeyValueStore,
        progress_key: str,
        key: Callable[[T], str] = str,
        clock: dates.Clock = dates.utc_now,
    ):
        self.name = name
        self.items = list(items)
        self.key = key
        self.progress_key = progress_key
        self.clock = clock
        self.resets = 0
        self._writer = WriteThrough(store, owner=f"pool:{name}")
        self._lock = threading.Lock()
        self.progress = GenerationProgress.from_dict(load_json(store.get(progress_key), {}))

    def draw(self, count: int, rng: random.Random) -> List[T]:
        with self._lock:
            try:
                chosen = self._draw_locked(count, rng)
            except GenerationExhaustedError as exc:
                logger.warning(f"[pool-exhausted] pool={self.name} {exc}")
                chosen = []
            self.progress.total_generated += len(chosen)
            self.progress.last_generated_date = self.clock()
            self._writer.write(self.progress_key, self.progress.to_dict())
            return chosen

    def _draw_locked(self, count: int, rng: random.Random) -> List[T]:
        if count <= 0:
            return []
        if not self.items:
            raise GenerationExhaustedError(f"pool is empty, wanted {count}")
        used = self.progress.used
        available = [item for item in self.items if self.key(item) not in used]
        if len(available) < count:
            self._reset(f"{len(available)} unused < {count} requested")
            available = list(self.items)
        chosen = []
        for _ in range(count):
            if not available:
                self._reset(f"draw of {count} exceeds pool of {len(self.items)}")
                available = list(self.items)
            item = available.pop(rng.randrange(len(available)))
            chosen.append(item)
            self.progress.used.add(self.key(item))
        return chosen

    def _reset(self, reason: str) -> None:
        self.resets += 1
        self.progress.used.clear()
        logger.info(f"[pool-reset] pool={self.name} size={len(self.items)} reason={reason}")
