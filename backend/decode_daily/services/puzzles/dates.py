"""Day keys: the canonical ``YYYY-MM-DD`` join key between dates and puzzles.

All keys are computed in UTC so that a date never drifts to a neighbouring
day depending on the device timezone.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Union

DAY_KEY_FORMAT = '%Y-%m-%d'

DayLike = Union[str, date, datetime]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to already be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_date(value: DayLike) -> date:
    if isinstance(value, datetime):
        return to_utc(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_day_key(value)
    raise TypeError(f"cannot interpret {value!r} as a day")


def day_key(value: DayLike) -> str:
    return to_date(value).strftime(DAY_KEY_FORMAT)


def parse_day_key(key: str) -> date:
    try:
        return datetime.strptime(key.strip(), DAY_KEY_FORMAT).date()
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"invalid day key {key!r}, expected YYYY-MM-DD") from exc


def today(clock: Clock = utc_now) -> date:
    return to_utc(clock()).date()


def days_since(value: DayLike, reference: date) -> int:
    """Whole days from ``value`` to ``reference``; negative for future days."""
    return (reference - to_date(value)).days


def shift(value: DayLike, days: int) -> date:
    return to_date(value) + timedelta(days=days)


def format_timestamp(moment: datetime) -> str:
    return to_utc(moment).isoformat()


def parse_timestamp(text: str) -> datetime:
    return to_utc(datetime.fromisoformat(text))
