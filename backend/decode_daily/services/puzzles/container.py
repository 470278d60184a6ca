import logging
import random
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional

from . import dates
from .access import AccessPolicy, SubscriptionState
from .catalog import MASTER_WORD_LIST_FILE, PuzzleCatalog, default_catalog_dir, load_catalogs, load_master_words
from .completion import CompletionTracker
from .events import EventHub
from .score_store import ScoreStore
from .scoring import ScoreCalculator
from .selector import DailyPuzzleSelector
from .sessions import GameSessionService
from .storage import KeyValueStore

logger = logging.getLogger(__name__)


class DailyServices:
    """The one set of puzzle services shared by every request and socket.

    Construction is cheap and touches no storage; ``init`` loads catalogs and
    persisted state the first time it is called and is a no-op afterwards.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[Mapping] = None,
        clock: dates.Clock = dates.utc_now,
        rng: Optional[random.Random] = None,
        catalogs: Optional[Dict[str, PuzzleCatalog]] = None,
        master_words=None,
        hub: Optional[EventHub] = None,
    ):
        self.store = store
        self.settings = dict(settings or {})
        self.clock = clock
        self.rng = rng or random.Random()
        self.hub = hub or EventHub()
        self._catalogs = catalogs
        self._master_words = master_words
        self._init_lock = threading.Lock()
        self.initialized = False

        self.catalogs: Dict[str, PuzzleCatalog] = {}
        self.selector: Optional[DailyPuzzleSelector] = None
        self.completion: Optional[CompletionTracker] = None
        self.scores: Optional[ScoreStore] = None
        self.subscription: Optional[SubscriptionState] = None
        self.access = AccessPolicy(clock)
        self.calculator = ScoreCalculator(
            strict=bool(self.setting('STRICT_SCORE_INPUTS', False)),
            decode_max_attempts=int(self.setting('DECODE_MAX_ATTEMPTS', 7)),
        )
        self.sessions: Optional[GameSessionService] = None

    @classmethod
    def from_config(cls, config: Mapping, store: KeyValueStore, **kwargs) -> 'DailyServices':
        return cls(store, settings=config, **kwargs)

    def setting(self, name: str, default=None):
        value = self.settings.get(name)
        return default if value is None else value

    def catalog_dir(self) -> Path:
        configured = self.setting('CATALOG_DIR')
        return Path(configured) if configured else default_catalog_dir()

    def init(self) -> 'DailyServices':
        with self._init_lock:
            if self.initialized:
                return self
            num_pegs = int(self.setting('DECODE_NUM_PEGS', 5))
            num_colors = int(self.setting('DECODE_NUM_COLORS', 6))
            base = self.catalog_dir()

            if self._catalogs is not None:
                self.catalogs = dict(self._catalogs)
            else:
                self.catalogs = load_catalogs(base, num_pegs=num_pegs, num_colors=num_colors)
            if self._master_words is not None:
                master_words = load_master_words(list(self._master_words))
            else:
                master_words = load_master_words(base / MASTER_WORD_LIST_FILE)

            self.selector = DailyPuzzleSelector(
                self.catalogs, self.store, master_words,
                rng=self.rng,
                clock=self.clock,
                num_pegs=num_pegs,
                num_colors=num_colors,
                words_per_set=int(self.setting('ANAGRAMS_WORDS_PER_SET', 10)),
                equations_per_set=int(self.setting('FLASHDANCE_EQUATIONS_PER_SET', 20)),
                fallback_days=int(self.setting('ARCHIVE_FALLBACK_DAYS', 30)),
            )
            self.completion = CompletionTracker(self.store, self.hub, self.clock)
            self.scores = ScoreStore(self.store, self.hub, self.clock)
            self.scores.load()
            self.subscription = SubscriptionState(self.store, self.hub)
            self.sessions = GameSessionService(
                self.selector, self.completion, self.scores, self.subscription,
                self.store, self.hub,
                calculator=self.calculator,
                access=self.access,
                clock=self.clock,
                rng=self.rng,
                countdown_ticks=int(self.setting('COUNTDOWN_TICKS', 3)),
                decode_max_attempts=int(self.setting('DECODE_MAX_ATTEMPTS', 7)),
                anagrams_duration=int(self.setting('ANAGRAMS_DURATION_SEC', 60)),
                flashdance_duration=int(self.setting('FLASHDANCE_DURATION_SEC', 30)),
                finished_round_limit=int(self.setting('FINISHED_ROUND_LIMIT', 20)),
            )
            self.initialized = True
            counts = ' '.join(f"{g}={len(c)}" for g, c in self.catalogs.items())
            logger.info(
                f"[services-init] {counts} master_words={len(master_words)} "
                f"tier={self.subscription.current_tier.value}"
            )
            return self
