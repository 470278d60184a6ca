"""Round state machines for decode, anagrams and flashdance.

Every round runs NOT_STARTED -> COUNTDOWN -> ACTIVE -> OVER, driven by
one-second ticks from whatever tick source owns it. Timed games can pause
(ACTIVE <-> PAUSED). A round left early goes to ABANDONED and never produces
an outcome. Ticks that arrive once a round is OVER or ABANDONED are ignored.
"""

from __future__ import annotations

import enum
import logging
import random
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from . import scoring
from .entries import (
    AnagramsDetail,
    CodePuzzle,
    DecodeDetail,
    Equation,
    EquationSet,
    FlashdanceDetail,
    ScoreDetail,
    WordSet,
)
from .errors import RoundStateError

logger = logging.getLogger(__name__)


class RoundState(str, enum.Enum):
    NOT_STARTED = 'not_started'
    COUNTDOWN = 'countdown'
    ACTIVE = 'active'
    PAUSED = 'paused'
    OVER = 'over'
    ABANDONED = 'abandoned'


TERMINAL_STATES = (RoundState.OVER, RoundState.ABANDONED)


@dataclass(frozen=True)
class RoundOutcome:
    game_id: str
    day_key: str
    attempts: int
    time_elapsed: float
    won: bool
    detail: ScoreDetail


class Round:
    """Shared lifecycle; subclasses add the game rules and ``status_text``."""

    game_id = ''
    supports_pause = False

    def __init__(self, day_key: str, countdown_ticks: int = 3, duration: Optional[int] = None, round_id: Optional[str] = None):
        self.id = round_id or uuid.uuid4().hex
        self.day_key = day_key
        self.state = RoundState.NOT_STARTED
        self.countdown_ticks = countdown_ticks
        self.countdown_remaining = countdown_ticks
        self.duration = duration
        self.time_remaining = duration
        self.elapsed = 0.0
        self.status_text = ''
        self.outcome: Optional[RoundOutcome] = None
        self._over_listeners: List[Callable[['Round'], None]] = []

    # -------------------------
    # Lifecycle
    # -------------------------

    @property
    def game_over(self) -> bool:
        return self.state in TERMINAL_STATES

    def on_over(self, listener: Callable[['Round'], None]) -> None:
        self._over_listeners.append(listener)

    def start(self) -> None:
        if self.state is not RoundState.NOT_STARTED:
            raise RoundStateError(f"round {self.id} already started")
        self.status_text = 'Get ready…'
        if self.countdown_ticks <= 0:
            self._activate()
        else:
            self.state = RoundState.COUNTDOWN

    def tick(self, seconds: float = 1.0) -> bool:
        """Advance one tick; returns False when the tick was ignored."""
        if self.state is RoundState.COUNTDOWN:
            self.countdown_remaining -= 1
            if self.countdown_remaining <= 0:
                self._activate()
            return True
        if self.state is not RoundState.ACTIVE:
            return False
        self.elapsed += seconds
        if self.time_remaining is not None:
            self.time_remaining = max(0, self.time_remaining - 1)
            if self.time_remaining == 0:
                self._time_expired()
        return True

    def pause(self) -> None:
        if not self.supports_pause:
            raise RoundStateError(f"{self.game_id} rounds cannot be paused")
        if self.state is not RoundState.ACTIVE:
            raise RoundStateError(f"cannot pause a round that is {self.state.value}")
        self.state = RoundState.PAUSED

    def resume(self) -> None:
        if self.state is not RoundState.PAUSED:
            raise RoundStateError(f"cannot resume a round that is {self.state.value}")
        self.state = RoundState.ACTIVE

    def abandon(self) -> bool:
        if self.game_over:
            return False
        self.state = RoundState.ABANDONED
        self.status_text = ''
        logger.info(f"[round-abandon] round={self.id} game={self.game_id} day={self.day_key}")
        return True

    def reset(self) -> 'Round':
        raise NotImplementedError

    def _activate(self) -> None:
        self.state = RoundState.ACTIVE
        self.countdown_remaining = 0
        self.status_text = self.ready_text()

    def _require_active(self) -> None:
        if self.state is not RoundState.ACTIVE:
            raise RoundStateError(f"round {self.id} is {self.state.value}, not active")

    def _finish(self, won: bool) -> None:
        if self.game_over:
            return
        self.state = RoundState.OVER
        self.outcome = self.build_outcome(won)
        logger.info(f"[round-over] round={self.id} game={self.game_id} day={self.day_key} won={won} attempts={self.outcome.attempts}")
        for listener in list(self._over_listeners):
            listener(self)

    def _time_expired(self) -> None:
        self._finish(won=False)

    # -------------------------
    # Game hooks
    # -------------------------

    def ready_text(self) -> str:
        return 'Go!'

    def build_outcome(self, won: bool) -> RoundOutcome:
        raise NotImplementedError

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'gameId': self.game_id,
            'dayKey': self.day_key,
            'state': self.state.value,
            'gameOver': self.game_over,
            'statusText': self.status_text,
            'countdown': self.countdown_remaining,
            'timeRemaining': self.time_remaining,
            'elapsed': self.elapsed,
        }


class DecodeRound(Round):
    game_id = 'decode'

    def __init__(self, puzzle: CodePuzzle, max_attempts: int = 7, num_colors: int = 6, **kwargs):
        super().__init__(puzzle.id, **kwargs)
        self.puzzle = puzzle
        self.code = list(puzzle.pegs)
        self.max_attempts = max_attempts
        self.num_colors = num_colors
        self.board: List[List[int]] = []
        self.feedback: List[Dict[str, int]] = []

    @property
    def num_pegs(self) -> int:
        return len(self.code)

    @property
    def current_turn(self) -> int:
        return len(self.board)

    def ready_text(self):
        return 'Tap each square to assign a color.'

    def submit_guess(self, pegs: Sequence[int]) -> Dict[str, int]:
        self._require_active()
        guess = [int(p) for p in pegs]
        if len(guess) != self.num_pegs or any(p == 0 for p in guess):
            self.status_text = 'Assign every square a color.'
            raise RoundStateError(f"a guess needs {self.num_pegs} colors")
        if any(not 1 <= p <= self.num_colors for p in guess):
            raise RoundStateError(f"colors must be between 1 and {self.num_colors}")

        exact, partial = score_guess(self.code, guess)
        self.board.append(guess)
        result = {'exact': exact, 'partial': partial}
        self.feedback.append(result)

        if exact == self.num_pegs:
            self.status_text = 'You cracked the code! Nice job!'
            self._finish(won=True)
        elif self.current_turn >= self.max_attempts:
            self.status_text = "Sorry, you're out of guesses. Maybe next time!"
            self._finish(won=False)
        else:
            turns_left = self.max_attempts - self.current_turn
            self.status_text = (
                f"You got {exact} in the RIGHT spot and {partial} in the WRONG spot. "
                f"Try again ({turns_left} turns left)."
            )
        return result

    def build_outcome(self, won):
        return RoundOutcome(
            game_id=self.game_id,
            day_key=self.day_key,
            attempts=self.current_turn,
            time_elapsed=self.elapsed,
            won=won,
            detail=DecodeDetail(
                game_duration=self.elapsed,
                turns_to_solve=self.current_turn,
                code_length=self.num_pegs,
            ),
        )

    def reset(self):
        return DecodeRound(
            self.puzzle, max_attempts=self.max_attempts, num_colors=self.num_colors,
            countdown_ticks=self.countdown_ticks,
        )

    def to_dict(self):
        payload = super().to_dict()
        payload.update({
            'board': self.board,
            'feedback': self.feedback,
            'maxAttempts': self.max_attempts,
            'numPegs': self.num_pegs,
            'numColors': self.num_colors,
        })
        if self.state is RoundState.OVER:
            payload['code'] = self.code
        return payload


def score_guess(code: Sequence[int], guess: Sequence[int]):
    """Return (exact, partial): right color right spot, right color wrong spot."""
    remaining: Dict[int, int] = {}
    exact = 0
    for secret, peg in zip(code, guess):
        if secret == peg:
            exact += 1
        else:
            remaining[secret] = remaining.get(secret, 0) + 1
    partial = 0
    for secret, peg in zip(code, guess):
        if secret != peg and remaining.get(peg, 0) > 0:
            partial += 1
            remaining[peg] -= 1
    return exact, partial


def scramble(word: str, rng: random.Random) -> List[str]:
    letters = list(word)
    if len(set(letters)) < 2:
        return letters
    while True:
        rng.shuffle(letters)
        if ''.join(letters) != word:
            return letters


class AnagramsRound(Round):
    game_id = 'anagrams'
    supports_pause = True

    def __init__(self, wordset: WordSet, duration: int = 60, rng: Optional[random.Random] = None, **kwargs):
        super().__init__(wordset.id, duration=duration, **kwargs)
        self.wordset = wordset
        self.words = list(wordset.words)
        self.rng = rng or random.Random()
        self.word_index = 0
        self.words_completed = 0
        self.skipped_words = 0
        self.completed_lengths: List[int] = []
        self.scrambled: List[str] = []
        self.used_indices: List[int] = []
        self._present()

    @property
    def current_word(self) -> Optional[str]:
        if self.word_index < len(self.words):
            return self.words[self.word_index]
        return None

    @property
    def user_answer(self) -> str:
        return ''.join(self.scrambled[i] for i in self.used_indices)

    def ready_text(self):
        return 'Unscramble the letters to form a word!'

    def _present(self) -> None:
        word = self.current_word
        self.scrambled = scramble(word, self.rng) if word else []
        self.used_indices = []

    def _advance(self) -> None:
        self.word_index += 1
        if self.current_word is None:
            if self.words_completed == len(self.words):
                self.status_text = 'You solved every word!'
                self._finish(won=True)
            else:
                self.status_text = 'No more words in this set.'
                self._finish(won=False)
            return
        self._present()

    def select_letter(self, index: int) -> None:
        self._require_active()
        if not 0 <= index < len(self.scrambled) or index in self.used_indices:
            raise RoundStateError(f"letter {index} is not available")
        self.used_indices.append(index)
        if len(self.used_indices) == len(self.scrambled):
            self._check_answer()

    def remove_letter(self, position: int) -> None:
        self._require_active()
        if not 0 <= position < len(self.used_indices):
            raise RoundStateError(f"no letter at answer position {position}")
        self.used_indices.pop(position)

    def clear_answer(self) -> None:
        self._require_active()
        self.used_indices = []

    def skip_word(self) -> None:
        self._require_active()
        self.skipped_words += 1
        self.status_text = f"Skipped {self.current_word}."
        self._advance()

    def _check_answer(self) -> None:
        word = self.current_word
        if self.user_answer.upper() == word.upper():
            self.words_completed += 1
            self.completed_lengths.append(len(word))
            self.status_text = f"✅ Correct! ({self.words_completed})"
            self._advance()
        else:
            self.status_text = '❌ Wrong! Try again.'
            self.used_indices = []

    def _time_expired(self):
        self.status_text = 'Game over!'
        self._finish(won=False)

    def build_outcome(self, won):
        return RoundOutcome(
            game_id=self.game_id,
            day_key=self.day_key,
            attempts=self.words_completed,
            time_elapsed=self.elapsed,
            won=won,
            detail=AnagramsDetail(
                game_duration=self.elapsed,
                longest_word=max(self.completed_lengths, default=0),
                total_words_in_set=len(self.words),
                words_completed=self.words_completed,
                wordset_id=self.wordset.id,
                completed_word_lengths=tuple(self.completed_lengths),
                difficulty_score=scoring.length_multiplier(self.completed_lengths),
                skipped_words=self.skipped_words,
            ),
        )

    def reset(self):
        return AnagramsRound(self.wordset, duration=self.duration, rng=self.rng, countdown_ticks=self.countdown_ticks)

    def to_dict(self):
        payload = super().to_dict()
        payload.update({
            'scrambledLetters': self.scrambled,
            'usedLetterIndices': self.used_indices,
            'userAnswer': self.user_answer,
            'wordIndex': self.word_index,
            'totalWords': len(self.words),
            'wordsCompleted': self.words_completed,
            'skippedWords': self.skipped_words,
        })
        return payload


def answer_options(answer: int, rng: random.Random, count: int = 3, spread: int = 10) -> List[int]:
    """The answer plus distinct non-negative distractors near it, shuffled."""
    options = {answer}
    while len(options) < count:
        options.add(max(0, answer + rng.randint(-spread, spread)))
    ordered = sorted(options)
    rng.shuffle(ordered)
    return ordered


class FlashdanceRound(Round):
    game_id = 'flashdance'
    supports_pause = True

    def __init__(self, equation_set: EquationSet, duration: int = 30, rng: Optional[random.Random] = None, **kwargs):
        super().__init__(equation_set.id, duration=duration, **kwargs)
        self.equation_set = equation_set
        self.equations = list(equation_set.equations)
        self.rng = rng or random.Random()
        self.equation_index = 0
        self.correct = 0
        self.incorrect = 0
        self.streak = 0
        self.longest_streak = 0
        self.answers: List[int] = []
        self._present()

    @property
    def current_equation(self) -> Optional[Equation]:
        if not self.equations:
            return None
        return self.equations[self.equation_index % len(self.equations)]

    def ready_text(self):
        return 'Swipe toward the correct answer!'

    def _present(self) -> None:
        equation = self.current_equation
        self.answers = answer_options(equation.answer, self.rng) if equation else []

    def answer(self, value: int) -> bool:
        self._require_active()
        equation = self.current_equation
        if equation is None:
            raise RoundStateError('this round has no equations')
        if int(value) == equation.answer:
            self.correct += 1
            self.streak += 1
            self.longest_streak = max(self.longest_streak, self.streak)
            self.status_text = f"✅ Correct! ({self.correct})"
            self.equation_index += 1
            self._present()
            return True
        self.incorrect += 1
        self.streak = 0
        self.status_text = '❌ Try again!'
        return False

    def _time_expired(self):
        self.status_text = 'Game over!'
        self._finish(won=True)

    def build_outcome(self, won):
        return RoundOutcome(
            game_id=self.game_id,
            day_key=self.day_key,
            attempts=self.correct,
            time_elapsed=self.elapsed,
            won=won,
            detail=FlashdanceDetail(
                game_duration=int(self.duration or 0),
                correct_answers=self.correct,
                incorrect_answers=self.incorrect,
                longest_streak=self.longest_streak,
            ),
        )

    def reset(self):
        return FlashdanceRound(self.equation_set, duration=self.duration, rng=self.rng, countdown_ticks=self.countdown_ticks)

    def to_dict(self):
        payload = super().to_dict()
        equation = self.current_equation
        payload.update({
            'equation': equation.expression if equation else None,
            'answers': self.answers,
            'correct': self.correct,
            'incorrect': self.incorrect,
            'streak': self.streak,
            'longestStreak': self.longest_streak,
        })
        return payload
