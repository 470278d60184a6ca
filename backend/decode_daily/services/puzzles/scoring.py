"""Pure score formulas for the three games.

Every function is total over its valid inputs. Out-of-contract inputs raise
:class:`InvalidScoreInputError` when ``strict`` is set; otherwise they are
logged and clamped into range so a round always ends with a score.
"""

import logging
import math
from typing import Optional, Sequence

from .errors import InvalidScoreInputError

logger = logging.getLogger(__name__)

DECODE_BASE = 1000
DECODE_ATTEMPT_PENALTY = 100
DECODE_SECONDS_PER_POINT = 10
DECODE_PERFECT_BONUS = 500
DECODE_QUICK_BONUS = 200
DECODE_QUICK_ATTEMPTS = 3
DECODE_MIN_WIN_SCORE = 50


def _checked(name: str, value, low, high=None, strict: bool = True):
    if value >= low and (high is None or value <= high):
        return value
    bounds = f"[{low}, {high}]" if high is not None else f">= {low}"
    message = f"{name}={value!r} outside {bounds}"
    if strict:
        raise InvalidScoreInputError(message)
    clamped = max(low, value) if high is None else min(max(low, value), high)
    logger.warning(f"[score-clamp] {message}, using {clamped!r}")
    return clamped


def decode_score(attempts: int, time_elapsed: float, won: bool, max_attempts: int = 8, strict: bool = True) -> int:
    """Score a decode round.

    A loss scores 0. A win starts from 1000, loses 100 per attempt after the
    first and 1 per 10 seconds, gains 500 for a first-guess solve or 200 for
    a solve within three attempts, and never drops below 50.
    """
    max_attempts = _checked('max_attempts', max_attempts, 1, strict=strict)
    attempts = _checked('attempts', attempts, 0, max_attempts, strict=strict)
    time_elapsed = _checked('time_elapsed', time_elapsed, 0, strict=strict)
    if not won:
        return 0
    attempts = _checked('attempts', attempts, 1, max_attempts, strict=strict)

    score = DECODE_BASE - (attempts - 1) * DECODE_ATTEMPT_PENALTY - math.floor(time_elapsed / DECODE_SECONDS_PER_POINT)
    if attempts == 1:
        score += DECODE_PERFECT_BONUS
    elif attempts <= DECODE_QUICK_ATTEMPTS:
        score += DECODE_QUICK_BONUS
    return max(score, DECODE_MIN_WIN_SCORE)


def length_multiplier(completed_word_lengths: Sequence[int]) -> float:
    if not completed_word_lengths:
        return 1.0
    average = sum(completed_word_lengths) / len(completed_word_lengths)
    return max(1.0, (average - 2.0) / 4.0)


def anagrams_score(
    words_completed: int,
    total_words: int,
    completed_word_lengths: Optional[Sequence[int]] = None,
    strict: bool = True,
) -> int:
    """floor(completion rate * length multiplier * 100).

    The multiplier is max(1, (mean completed word length - 2) / 4), so only
    sets of long words (mean above six letters) lift the score past 100.
    """
    lengths = list(completed_word_lengths or ())
    total_words = _checked('total_words', total_words, 0, strict=strict)
    words_completed = _checked('words_completed', words_completed, 0, total_words, strict=strict)
    lengths = [_checked('word_length', n, 0, strict=strict) for n in lengths]
    if total_words == 0:
        return 0
    completion_rate = words_completed / total_words
    return math.floor(completion_rate * length_multiplier(lengths) * 100)


def flashdance_score(correct: int, incorrect: int = 0, longest_streak: int = 0, strict: bool = True) -> int:
    """One point per correct answer; wrong answers and streaks do not move it."""
    correct = _checked('correct', correct, 0, strict=strict)
    _checked('incorrect', incorrect, 0, strict=strict)
    _checked('longest_streak', longest_streak, 0, correct, strict=strict)
    return correct


class ScoreCalculator:
    """Binds the strictness setting so callers do not pass it each time."""

    def __init__(self, strict: bool = False, decode_max_attempts: int = 7):
        self.strict = strict
        self.decode_max_attempts = decode_max_attempts

    def decode(self, attempts, time_elapsed, won, max_attempts=None):
        return decode_score(
            attempts, time_elapsed, won,
            max_attempts=self.decode_max_attempts if max_attempts is None else max_attempts,
            strict=self.strict,
        )

    def anagrams(self, words_completed, total_words, completed_word_lengths=None):
        return anagrams_score(words_completed, total_words, completed_word_lengths, strict=self.strict)

    def flashdance(self, correct, incorrect=0, longest_streak=0):
        return flashdance_score(correct, incorrect, longest_streak, strict=self.strict)
