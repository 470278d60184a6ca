import random

import pytest

from decode_daily.services.puzzles.entries import CodePuzzle, Equation, EquationSet, WordSet
from decode_daily.services.puzzles.errors import RoundStateError
from decode_daily.services.puzzles.rounds import (
    AnagramsRound,
    DecodeRound,
    FlashdanceRound,
    RoundState,
    answer_options,
    scramble,
    score_guess,
)


def _run_countdown(round_):
    round_.start()
    assert round_.state is RoundState.COUNTDOWN
    for _ in range(round_.countdown_ticks):
        round_.tick()
    assert round_.state is RoundState.ACTIVE


def _decode(pegs=(1, 1, 2, 2, 3), max_attempts=7):
    return DecodeRound(CodePuzzle.for_day('2026-10-18', pegs), max_attempts=max_attempts)


def test_feedback_counts_each_code_peg_once():
    assert score_guess([1, 1, 2, 2, 3], [1, 1, 2, 2, 3]) == (5, 0)
    assert score_guess([1, 1, 2, 2, 3], [3, 2, 2, 1, 1]) == (1, 4)
    assert score_guess([1, 2, 3, 4, 5], [6, 6, 6, 6, 1]) == (0, 1)
    assert score_guess([1, 1, 1, 2, 2], [1, 3, 3, 3, 1]) == (1, 1)


def test_countdown_then_active():
    round_ = _decode()
    assert round_.state is RoundState.NOT_STARTED
    _run_countdown(round_)
    with pytest.raises(RoundStateError):
        round_.start()


def test_guess_rejected_during_countdown():
    round_ = _decode()
    round_.start()
    with pytest.raises(RoundStateError):
        round_.submit_guess([1, 1, 2, 2, 3])


def test_decode_win_produces_outcome_once():
    round_ = _decode()
    finished = []
    round_.on_over(finished.append)
    _run_countdown(round_)
    round_.tick()
    round_.tick()
    assert round_.submit_guess([3, 2, 2, 1, 1]) == {'exact': 1, 'partial': 4}
    assert round_.submit_guess([1, 1, 2, 2, 3]) == {'exact': 5, 'partial': 0}
    assert round_.state is RoundState.OVER
    assert round_.outcome.won and round_.outcome.attempts == 2
    assert round_.outcome.time_elapsed == 2.0
    assert round_.outcome.detail.code_length == 5
    # late ticks are ignored
    assert round_.tick() is False
    assert round_.outcome.time_elapsed == 2.0
    assert finished == [round_]


def test_decode_loses_at_attempt_cap():
    round_ = _decode(max_attempts=2)
    _run_countdown(round_)
    round_.submit_guess([6, 6, 6, 6, 6])
    round_.submit_guess([5, 5, 5, 5, 5])
    assert round_.state is RoundState.OVER
    assert not round_.outcome.won
    assert round_.outcome.attempts == 2
    with pytest.raises(RoundStateError):
        round_.submit_guess([1, 1, 2, 2, 3])


def test_decode_rejects_incomplete_rows():
    round_ = _decode()
    _run_countdown(round_)
    with pytest.raises(RoundStateError):
        round_.submit_guess([1, 2, 0, 4, 5])
    with pytest.raises(RoundStateError):
        round_.submit_guess([1, 2, 3])
    with pytest.raises(RoundStateError):
        round_.submit_guess([1, 2, 3, 4, 9])
    assert round_.current_turn == 0


def test_decode_cannot_pause():
    round_ = _decode()
    _run_countdown(round_)
    with pytest.raises(RoundStateError):
        round_.pause()


def test_abandon_never_produces_outcome():
    round_ = _decode()
    finished = []
    round_.on_over(finished.append)
    _run_countdown(round_)
    assert round_.abandon() is True
    assert round_.state is RoundState.ABANDONED
    assert round_.tick() is False
    assert round_.abandon() is False
    assert round_.outcome is None and finished == []


def test_scramble_differs_from_word_when_possible():
    rng = random.Random(0)
    for word in ('CAT', 'AB', 'LEMON', 'BALLOON'):
        for _ in range(20):
            assert ''.join(scramble(word, rng)) != word
    assert scramble('AAA', rng) == ['A', 'A', 'A']
    assert scramble('I', rng) == ['I']


def _anagrams(words=('CAT', 'DOG'), duration=60):
    return AnagramsRound(WordSet.for_day('2026-10-18', words), duration=duration, rng=random.Random(4), countdown_ticks=0)


def _spell(round_, word):
    letters = list(round_.scrambled)
    for ch in word:
        index = next(i for i, c in enumerate(letters) if c == ch and i not in round_.used_indices)
        round_.select_letter(index)


def test_anagrams_all_words_wins():
    round_ = _anagrams()
    round_.start()
    assert round_.state is RoundState.ACTIVE
    _spell(round_, 'CAT')
    assert round_.words_completed == 1 and round_.current_word == 'DOG'
    _spell(round_, 'DOG')
    assert round_.state is RoundState.OVER
    assert round_.outcome.won
    assert round_.outcome.detail.completed_word_lengths == (3, 3)
    assert round_.outcome.detail.total_words_in_set == 2


def test_anagrams_wrong_answer_clears_and_retries():
    round_ = _anagrams(words=('CAT',))
    round_.start()
    # letters in scrambled order never spell the word
    for i in range(3):
        round_.select_letter(i)
    assert round_.used_indices == []
    assert round_.words_completed == 0
    assert 'Wrong' in round_.status_text
    assert round_.state is RoundState.ACTIVE


def test_anagrams_remove_and_clear_letters():
    round_ = _anagrams()
    round_.start()
    round_.select_letter(0)
    round_.select_letter(1)
    round_.remove_letter(0)
    assert round_.used_indices == [1]
    with pytest.raises(RoundStateError):
        round_.select_letter(1)
    round_.clear_answer()
    assert round_.user_answer == ''


def test_anagrams_skip_and_timer_expiry_loses():
    round_ = _anagrams(words=('CAT', 'DOG', 'EMU'), duration=5)
    round_.start()
    round_.skip_word()
    assert round_.skipped_words == 1 and round_.current_word == 'DOG'
    round_.pause()
    for _ in range(10):
        round_.tick()
    assert round_.time_remaining == 5
    round_.resume()
    for _ in range(5):
        round_.tick()
    assert round_.state is RoundState.OVER
    assert not round_.outcome.won
    assert round_.outcome.detail.skipped_words == 1
    assert round_.outcome.time_elapsed == 5.0


def test_anagrams_skipping_last_word_ends_without_win():
    round_ = _anagrams(words=('CAT',))
    round_.start()
    round_.skip_word()
    assert round_.state is RoundState.OVER
    assert not round_.outcome.won


def test_answer_options_are_distinct_and_include_answer():
    rng = random.Random(2)
    for answer in (0, 1, 5, 42, 96):
        options = answer_options(answer, rng)
        assert len(options) == 3 == len(set(options))
        assert answer in options
        assert all(o >= 0 and abs(o - answer) <= 10 for o in options)


def _flashdance(duration=3):
    equations = EquationSet.for_day('2026-10-18', [Equation('2 + 3', 5), Equation('3 × 4', 12)])
    return FlashdanceRound(equations, duration=duration, rng=random.Random(9), countdown_ticks=0)


def test_flashdance_streaks_and_wrapping():
    round_ = _flashdance()
    round_.start()
    assert round_.answer(5) is True
    assert round_.answer(12) is True
    assert round_.current_equation.expression == '2 + 3'
    assert round_.answer(4) is False
    assert round_.current_equation.expression == '2 + 3'
    assert round_.streak == 0 and round_.longest_streak == 2
    assert round_.answer(5) is True
    assert (round_.correct, round_.incorrect) == (3, 1)


def test_flashdance_timer_end_counts_as_won():
    round_ = _flashdance(duration=3)
    round_.start()
    round_.answer(5)
    for _ in range(3):
        round_.tick()
    assert round_.state is RoundState.OVER
    assert round_.outcome.won
    assert round_.outcome.attempts == 1
    assert round_.outcome.detail.game_duration == 3
    assert round_.tick() is False


def test_reset_gives_fresh_round():
    round_ = _flashdance()
    round_.start()
    round_.answer(5)
    fresh = round_.reset()
    assert fresh.id != round_.id
    assert fresh.state is RoundState.NOT_STARTED
    assert fresh.correct == 0
