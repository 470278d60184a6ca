"""Archive access by subscription tier.

Entitlements come from the purchase system outside this package; all this
module sees is the resulting tier.
"""

import enum
import logging
import math
import threading
from datetime import date
from typing import Optional

from . import dates
from .events import EventHub
from .storage import KeyValueStore, WriteThrough, load_json

logger = logging.getLogger(__name__)

TIER_KEY = 'userPaidTier'


class AccessTier(enum.Enum):
    PREMIUM = 'premium'
    STANDARD = 'standard'
    BASIC = 'basic'
    FREE = 'free'

    @property
    def archive_days_allowed(self) -> float:
        return _ARCHIVE_DAYS[self]

    @property
    def display_name(self) -> str:
        return self.value.title()

    @classmethod
    def parse(cls, value) -> 'AccessTier':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"unknown tier {value!r}; expected one of {[t.value for t in cls]}")


_ARCHIVE_DAYS = {
    AccessTier.PREMIUM: math.inf,
    AccessTier.STANDARD: 7,
    AccessTier.BASIC: 3,
    AccessTier.FREE: 0,
}


def can_access(tier: AccessTier, day: dates.DayLike, today: date) -> bool:
    """True when ``day`` is no further back than the tier's archive allowance."""
    return dates.days_since(day, today) <= tier.archive_days_allowed


class AccessPolicy:
    def __init__(self, clock: dates.Clock = dates.utc_now):
        self.clock = clock

    def can_access(self, tier: AccessTier, day: dates.DayLike) -> bool:
        return can_access(tier, day, dates.today(self.clock))


class SubscriptionState:
    """The current tier as last reported by the purchase system, persisted locally."""

    def __init__(self, store: KeyValueStore, hub: Optional[EventHub] = None, default: AccessTier = AccessTier.FREE):
        self.store = store
        self.hub = hub
        self._writer = WriteThrough(store, owner='subscription')
        self._lock = threading.Lock()
        stored = load_json(store.get(TIER_KEY))
        try:
            self._tier = AccessTier.parse(stored) if stored is not None else default
        except ValueError as exc:
            logger.warning(f"[tier-load] {exc}, falling back to {default.value}")
            self._tier = default

    @property
    def current_tier(self) -> AccessTier:
        with self._lock:
            return self._tier

    def update_tier(self, tier) -> AccessTier:
        tier = AccessTier.parse(tier)
        with self._lock:
            changed = tier is not self._tier
            self._tier = tier
            self._writer.write(TIER_KEY, tier.value)
        if changed:
            logger.info(f"[tier-change] tier={tier.value}")
            if self.hub is not None:
                self.hub.publish('tier_changed', {'tier': tier.value})
        return tier
