"""Round lifecycle on top of the selector, calculator, tracker and ledger.

``start_round`` decides up front whether a play is scored. When the round
ends, completion is marked first and the score is appended only if that mark
was new, so a replay or a second round for the same day never scores twice.
"""

import logging
import random
import threading
from typing import Dict, List, Optional, Tuple

from . import GAME_IDS, dates
from .access import AccessPolicy, SubscriptionState
from .completion import CompletionTracker
from .entries import ScoreRecord
from .errors import ArchiveAccessDeniedError, RoundNotFoundError, RoundStateError, UnknownGameError
from .events import EventHub
from .rounds import AnagramsRound, DecodeRound, FlashdanceRound, Round
from .score_store import ScoreStore
from .scoring import ScoreCalculator
from .selector import DailyPuzzleSelector
from .storage import KeyValueStore, WriteThrough, load_json

logger = logging.getLogger(__name__)

DAILY_CHECK_KEY = 'lastDailyCheckDate'

GAME_INFO = {
    'decode': {
        'name': 'Decode',
        'description': 'Crack the hidden color code.',
        'timed': False,
    },
    'flashdance': {
        'name': 'Flashdance',
        'description': 'Solve as many equations as you can before time runs out.',
        'timed': True,
    },
    'anagrams': {
        'name': 'Anagrams',
        'description': 'Unscramble the letters to form words.',
        'timed': True,
    },
}

# action name -> (game the action belongs to, round method)
ROUND_ACTIONS = {
    'guess': ('decode', 'submit_guess'),
    'letter': ('anagrams', 'select_letter'),
    'remove': ('anagrams', 'remove_letter'),
    'clear': ('anagrams', 'clear_answer'),
    'skip': ('anagrams', 'skip_word'),
    'answer': ('flashdance', 'answer'),
}


class GameSessionService:
    def __init__(
        self,
        selector: DailyPuzzleSelector,
        completion: CompletionTracker,
        scores: ScoreStore,
        subscription: SubscriptionState,
        store: KeyValueStore,
        hub: EventHub,
        calculator: Optional[ScoreCalculator] = None,
        access: Optional[AccessPolicy] = None,
        clock: dates.Clock = dates.utc_now,
        rng: Optional[random.Random] = None,
        countdown_ticks: int = 3,
        decode_max_attempts: int = 7,
        anagrams_duration: int = 60,
        flashdance_duration: int = 30,
        finished_round_limit: int = 20,
    ):
        self.selector = selector
        self.completion = completion
        self.scores = scores
        self.subscription = subscription
        self.store = store
        self.hub = hub
        self.calculator = calculator or ScoreCalculator(decode_max_attempts=decode_max_attempts)
        self.access = access or AccessPolicy(clock)
        self.clock = clock
        self.rng = rng or random.Random()
        self.countdown_ticks = countdown_ticks
        self.decode_max_attempts = decode_max_attempts
        self.anagrams_duration = anagrams_duration
        self.flashdance_duration = flashdance_duration
        self.finished_round_limit = finished_round_limit
        self._rounds: Dict[str, Round] = {}
        self._scored: Dict[str, bool] = {}
        self._writer = WriteThrough(store, owner='sessions')
        self._lock = threading.RLock()

    # -------------------------
    # Games and puzzles
    # -------------------------

    def games(self) -> List[Dict]:
        return [dict(GAME_INFO[game_id], id=game_id) for game_id in GAME_IDS]

    def check_game(self, game_id: str) -> None:
        if game_id not in GAME_IDS:
            raise UnknownGameError(game_id)

    def resolve_day(self, day: Optional[str]) -> str:
        if day in (None, '', 'today'):
            return dates.day_key(self.clock())
        return dates.day_key(dates.parse_day_key(day))

    def ensure_access(self, game_id: str, day_key: str) -> None:
        tier = self.subscription.current_tier
        if not self.access.can_access(tier, day_key):
            raise ArchiveAccessDeniedError(game_id, day_key, tier.value)

    def puzzle_for(self, game_id: str, day: Optional[str] = None) -> Dict:
        self.check_game(game_id)
        key = self.resolve_day(day)
        self.ensure_access(game_id, key)
        entry = self.selector.get_puzzle(game_id, key)
        completed = self.completion.is_completed(game_id, key)
        return {
            'gameId': game_id,
            'dayKey': key,
            'puzzle': entry.to_dict(),
            'completed': completed,
            'scored': not completed,
        }

    def archive_days(self, game_id: str) -> List[Dict]:
        """Every day in the catalog range, newest first, with access and completion flags."""
        self.check_game(game_id)
        earliest, latest = self.selector.date_range(game_id)
        tier = self.subscription.current_tier
        completed = set(self.completion.completed_days(game_id))
        days = []
        day = latest
        while day >= earliest:
            key = dates.day_key(day)
            days.append({
                'dayKey': key,
                'accessible': self.access.can_access(tier, day),
                'completed': key in completed,
            })
            day = dates.shift(day, -1)
        return days

    # -------------------------
    # Rounds
    # -------------------------

    def start_round(self, game_id: str, day: Optional[str] = None) -> Tuple[Round, bool]:
        self.check_game(game_id)
        key = self.resolve_day(day)
        self.ensure_access(game_id, key)
        entry = self.selector.get_puzzle(game_id, key)
        scored = self.completion.should_score_this_play(game_id, key)

        if game_id == 'decode':
            current = DecodeRound(
                entry, max_attempts=self.decode_max_attempts,
                num_colors=self.selector.num_colors, countdown_ticks=self.countdown_ticks,
            )
        elif game_id == 'anagrams':
            current = AnagramsRound(
                entry, duration=self.anagrams_duration, rng=self.rng,
                countdown_ticks=self.countdown_ticks,
            )
        else:
            current = FlashdanceRound(
                entry, duration=self.flashdance_duration, rng=self.rng,
                countdown_ticks=self.countdown_ticks,
            )
        current.on_over(self._round_over)

        with self._lock:
            self._prune_finished()
            self._rounds[current.id] = current
            self._scored[current.id] = scored
        current.start()
        logger.info(f"[round-start] round={current.id} game={game_id} day={key} scored={scored}")
        self._publish_update(current)
        return current, scored

    def find_round(self, round_id: str) -> Optional[Round]:
        with self._lock:
            return self._rounds.get(round_id)

    def get_round(self, round_id: str) -> Round:
        current = self.find_round(round_id)
        if current is None:
            raise RoundNotFoundError(round_id)
        return current

    def is_scored(self, round_id: str) -> bool:
        with self._lock:
            return self._scored.get(round_id, False)

    def active_rounds(self) -> List[Round]:
        with self._lock:
            return [r for r in self._rounds.values() if not r.game_over]

    def round_state(self, round_id: str) -> Dict:
        current = self.get_round(round_id)
        payload = current.to_dict()
        payload['scored'] = self.is_scored(round_id)
        if current.outcome is not None:
            payload['finalScore'] = self.score_outcome(current)
        return payload

    def tick(self, round_id: str) -> Round:
        with self._lock:
            current = self.get_round(round_id)
            if current.tick():
                self._publish_update(current)
        return current

    def pause(self, round_id: str) -> Round:
        with self._lock:
            current = self.get_round(round_id)
            current.pause()
        self._publish_update(current)
        return current

    def resume(self, round_id: str) -> Round:
        with self._lock:
            current = self.get_round(round_id)
            current.resume()
        self._publish_update(current)
        return current

    def perform(self, round_id: str, action: str, *args):
        """Apply a player action such as ``guess`` or ``letter`` to a round."""
        if action not in ROUND_ACTIONS:
            raise RoundStateError(f"unknown action {action!r}")
        game_id, method = ROUND_ACTIONS[action]
        with self._lock:
            current = self.get_round(round_id)
            if current.game_id != game_id:
                raise RoundStateError(f"{action} is not a {current.game_id} action")
            result = getattr(current, method)(*args)
        self._publish_update(current)
        return current, result

    def abandon_round(self, round_id: str) -> bool:
        with self._lock:
            current = self.get_round(round_id)
            abandoned = current.abandon()
        if abandoned:
            self.hub.publish('round_abandoned', {'roundId': round_id, 'gameId': current.game_id})
        return abandoned

    def release_round(self, round_id: str) -> None:
        with self._lock:
            current = self._rounds.pop(round_id, None)
            self._scored.pop(round_id, None)
        if current is not None and not current.game_over:
            current.abandon()
            self.hub.publish('round_abandoned', {'roundId': round_id, 'gameId': current.game_id})

    def _prune_finished(self) -> None:
        # oldest finished rounds go first; callers hold the lock
        finished = [rid for rid, r in self._rounds.items() if r.game_over]
        excess = len(finished) - self.finished_round_limit
        for rid in finished[:max(excess, 0)]:
            del self._rounds[rid]
            self._scored.pop(rid, None)
        if excess > 0:
            logger.info(f"[round-prune] dropped={excess} kept={len(self._rounds)}")

    def score_outcome(self, current: Round) -> int:
        outcome = current.outcome
        detail = outcome.detail
        if outcome.game_id == 'decode':
            return self.calculator.decode(outcome.attempts, outcome.time_elapsed, outcome.won, max_attempts=current.max_attempts)
        if outcome.game_id == 'anagrams':
            return self.calculator.anagrams(detail.words_completed, detail.total_words_in_set, detail.completed_word_lengths)
        return self.calculator.flashdance(detail.correct_answers, detail.incorrect_answers, detail.longest_streak)

    def _round_over(self, current: Round) -> None:
        outcome = current.outcome
        final_score = self.score_outcome(current)
        saved = None
        if self.is_scored(current.id) and self.completion.mark_completed(outcome.game_id, outcome.day_key):
            saved = self.scores.append(ScoreRecord(
                game_id=outcome.game_id,
                date=self.clock(),
                attempts=outcome.attempts,
                time_elapsed=outcome.time_elapsed,
                won=outcome.won,
                final_score=final_score,
                detail=outcome.detail,
                archive_date=dates.parse_day_key(outcome.day_key),
            ))
            if outcome.game_id in ('anagrams', 'flashdance'):
                self.selector.mark_set_completed(outcome.game_id, outcome.day_key)
        elif self.is_scored(current.id):
            logger.info(f"[score-skip] round={current.id} game={outcome.game_id} day={outcome.day_key} already completed")
        self.hub.publish('round_over', {
            'roundId': current.id,
            'gameId': outcome.game_id,
            'dayKey': outcome.day_key,
            'won': outcome.won,
            'finalScore': final_score,
            'scored': saved is not None,
            'record': saved.to_dict() if saved is not None else None,
        })

    def _publish_update(self, current: Round) -> None:
        self.hub.publish('round_update', current.to_dict())

    # -------------------------
    # Day rollover
    # -------------------------

    def check_for_new_day(self) -> bool:
        today = dates.day_key(self.clock())
        last = load_json(self.store.get(DAILY_CHECK_KEY))
        if last == today:
            return False
        self._writer.write(DAILY_CHECK_KEY, today)
        if last is None:
            logger.info(f"[daily-check] first check today={today}")
            return False
        logger.info(f"[new-day] previous={last} today={today}")
        self.selector.refresh_for_new_day()
        for current in self.active_rounds():
            self.abandon_round(current.id)
        with self._lock:
            for rid in [rid for rid, r in self._rounds.items() if r.game_over]:
                self.release_round(rid)
        self.hub.publish('new_day', {'dayKey': today, 'previous': last})
        return True
