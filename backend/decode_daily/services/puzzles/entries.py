"""Value types shared by the catalog, selector, score store and API.

Every type round-trips through ``to_dict``/``from_dict`` using the JSON field
names of the bundled catalogs and of the persisted ledger.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple, Union
import uuid

from . import dates
from .errors import MalformedCatalogError


def _entry_day(data: Dict[str, Any]) -> date:
    raw = data.get('date') or data.get('id')
    if not raw:
        raise MalformedCatalogError(f"entry has neither date nor id: {data!r}")
    try:
        return dates.parse_day_key(str(raw)[:10])
    except ValueError as exc:
        raise MalformedCatalogError(str(exc)) from exc


def _optional_timestamp(raw) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return dates.parse_timestamp(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedCatalogError(f"bad timestamp {raw!r}") from exc


@dataclass(frozen=True)
class CodePuzzle:
    id: str
    date: date
    pegs: Tuple[int, ...]

    game_id = 'decode'

    @classmethod
    def for_day(cls, day: dates.DayLike, pegs) -> 'CodePuzzle':
        d = dates.to_date(day)
        return cls(id=dates.day_key(d), date=d, pegs=tuple(int(p) for p in pegs))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'id': self.id, 'date': self.id}
        for index, peg in enumerate(self.pegs, start=1):
            payload[f'peg{index}'] = peg
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any], num_pegs: int = 5, num_colors: int = 6) -> 'CodePuzzle':
        try:
            if 'pegs' in data:
                pegs = [int(p) for p in data['pegs']]
            else:
                pegs = [int(data[f'peg{i}']) for i in range(1, num_pegs + 1)]
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedCatalogError(f"bad code pegs in {data!r}") from exc
        if len(pegs) != num_pegs or any(not 1 <= p <= num_colors for p in pegs):
            raise MalformedCatalogError(f"code must be {num_pegs} pegs in [1, {num_colors}]: {pegs}")
        return cls.for_day(_entry_day(data), pegs)


@dataclass(frozen=True)
class Equation:
    expression: str
    answer: int

    def to_dict(self) -> Dict[str, Any]:
        return {'expression': self.expression, 'answer': self.answer}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Equation':
        try:
            return cls(expression=str(data['expression']), answer=int(data['answer']))
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedCatalogError(f"bad equation {data!r}") from exc


@dataclass(frozen=True)
class EquationSet:
    id: str
    date: date
    equations: Tuple[Equation, ...]
    completed_at: Optional[datetime] = None

    game_id = 'flashdance'

    @classmethod
    def for_day(cls, day: dates.DayLike, equations) -> 'EquationSet':
        d = dates.to_date(day)
        return cls(id=dates.day_key(d), date=d, equations=tuple(equations))

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'id': self.id,
            'date': self.id,
            'equations': [eq.to_dict() for eq in self.equations],
        }
        if self.completed_at is not None:
            payload['completedAt'] = dates.format_timestamp(self.completed_at)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EquationSet':
        raw = data.get('equations')
        if not isinstance(raw, list):
            raise MalformedCatalogError(f"equation set without equations: {data!r}")
        d = _entry_day(data)
        return cls(
            id=dates.day_key(d),
            date=d,
            equations=tuple(Equation.from_dict(item) for item in raw),
            completed_at=_optional_timestamp(data.get('completedAt')),
        )


@dataclass(frozen=True)
class WordSet:
    id: str
    date: date
    words: Tuple[str, ...]
    completed: bool = False
    completed_at: Optional[datetime] = None

    game_id = 'anagrams'

    @classmethod
    def for_day(cls, day: dates.DayLike, words) -> 'WordSet':
        d = dates.to_date(day)
        return cls(id=dates.day_key(d), date=d, words=tuple(str(w).upper() for w in words))

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'id': self.id,
            'date': self.id,
            'words': list(self.words),
            'completed': self.completed,
        }
        if self.completed_at is not None:
            payload['completedAt'] = dates.format_timestamp(self.completed_at)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WordSet':
        raw = data.get('words')
        if not isinstance(raw, list) or not all(isinstance(w, str) for w in raw):
            raise MalformedCatalogError(f"word set without a list of words: {data!r}")
        d = _entry_day(data)
        return cls(
            id=dates.day_key(d),
            date=d,
            words=tuple(w.upper() for w in raw),
            completed=bool(data.get('completed', data.get('isCompleted', False))),
            completed_at=_optional_timestamp(data.get('completedAt')),
        )


PuzzleEntry = Union[CodePuzzle, EquationSet, WordSet]

ENTRY_TYPES = {
    'decode': CodePuzzle,
    'flashdance': EquationSet,
    'anagrams': WordSet,
}


# Score details, one shape per game

@dataclass(frozen=True)
class DecodeDetail:
    game_duration: float
    turns_to_solve: int
    code_length: int

    def to_dict(self):
        return {
            'gameDuration': self.game_duration,
            'turnsToSolve': self.turns_to_solve,
            'codeLength': self.code_length,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            game_duration=float(data['gameDuration']),
            turns_to_solve=int(data['turnsToSolve']),
            code_length=int(data['codeLength']),
        )


@dataclass(frozen=True)
class FlashdanceDetail:
    game_duration: int
    correct_answers: int
    incorrect_answers: int
    longest_streak: int

    def to_dict(self):
        return {
            'gameDuration': self.game_duration,
            'correctAnswers': self.correct_answers,
            'incorrectAnswers': self.incorrect_answers,
            'longestStreak': self.longest_streak,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            game_duration=int(data['gameDuration']),
            correct_answers=int(data['correctAnswers']),
            incorrect_answers=int(data['incorrectAnswers']),
            longest_streak=int(data['longestStreak']),
        )


@dataclass(frozen=True)
class AnagramsDetail:
    game_duration: float
    longest_word: int
    total_words_in_set: int
    words_completed: int
    wordset_id: str
    completed_word_lengths: Tuple[int, ...]
    difficulty_score: float
    skipped_words: int

    def to_dict(self):
        return {
            'gameDuration': self.game_duration,
            'longestWord': self.longest_word,
            'totalWordsInSet': self.total_words_in_set,
            'wordsCompleted': self.words_completed,
            'wordsetId': self.wordset_id,
            'completedWordLengths': list(self.completed_word_lengths),
            'difficultyScore': self.difficulty_score,
            'skippedWords': self.skipped_words,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            game_duration=float(data['gameDuration']),
            longest_word=int(data['longestWord']),
            total_words_in_set=int(data['totalWordsInSet']),
            words_completed=int(data['wordsCompleted']),
            wordset_id=str(data['wordsetId']),
            completed_word_lengths=tuple(int(n) for n in data['completedWordLengths']),
            difficulty_score=float(data['difficultyScore']),
            skipped_words=int(data['skippedWords']),
        )


DETAIL_TYPES = {
    'decode': DecodeDetail,
    'flashdance': FlashdanceDetail,
    'anagrams': AnagramsDetail,
}

ScoreDetail = Union[DecodeDetail, FlashdanceDetail, AnagramsDetail]


@dataclass(frozen=True)
class ScoreRecord:
    game_id: str
    date: datetime
    attempts: int
    time_elapsed: float
    won: bool
    final_score: int
    detail: Optional[ScoreDetail] = None
    archive_date: Optional[date] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def day_key(self) -> str:
        """The puzzle day this record counts for."""
        return dates.day_key(self.archive_date if self.archive_date is not None else self.date)

    @property
    def formatted_time(self) -> str:
        seconds = int(self.time_elapsed)
        return f"{seconds // 60}:{seconds % 60:02d}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'gameId': self.game_id,
            'date': dates.format_timestamp(self.date),
            'archiveDate': dates.day_key(self.archive_date) if self.archive_date is not None else None,
            'attempts': self.attempts,
            'timeElapsed': self.time_elapsed,
            'won': self.won,
            'finalScore': self.final_score,
            'detail': self.detail.to_dict() if self.detail is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScoreRecord':
        game_id = data['gameId']
        detail = None
        if data.get('detail') and game_id in DETAIL_TYPES:
            detail = DETAIL_TYPES[game_id].from_dict(data['detail'])
        archive = data.get('archiveDate')
        return cls(
            id=str(data['id']),
            game_id=game_id,
            date=dates.parse_timestamp(data['date']),
            archive_date=dates.parse_day_key(archive) if archive else None,
            attempts=int(data['attempts']),
            time_elapsed=float(data['timeElapsed']),
            won=bool(data['won']),
            final_score=int(data['finalScore']),
            detail=detail,
        )


@dataclass(frozen=True)
class CompletionRecord:
    game_id: str
    day_key: str
    played_for_score: bool = True
    marked_at: Optional[datetime] = None

    def to_dict(self):
        return {
            'gameId': self.game_id,
            'dayKey': self.day_key,
            'playedForScore': self.played_for_score,
            'markedAt': dates.format_timestamp(self.marked_at) if self.marked_at else None,
        }

    @classmethod
    def from_dict(cls, data):
        marked = data.get('markedAt')
        return cls(
            game_id=data['gameId'],
            day_key=data['dayKey'],
            played_for_score=bool(data.get('playedForScore', True)),
            marked_at=dates.parse_timestamp(marked) if marked else None,
        )
