import math
from datetime import date, timedelta

import pytest

from decode_daily.services.puzzles.access import AccessPolicy, AccessTier, SubscriptionState, can_access
from decode_daily.services.puzzles.completion import CompletionTracker, completion_key
from decode_daily.services.puzzles.storage import dump_json


TODAY = date(2026, 10, 18)


def test_mark_completed_is_idempotent(kv_store, hub, events, clock):
    tracker = CompletionTracker(kv_store, hub, clock)
    assert tracker.should_score_this_play('decode', '2026-10-18')
    assert tracker.mark_completed('decode', '2026-10-18') is True
    assert tracker.mark_completed('decode', TODAY) is False
    assert tracker.is_completed('decode', '2026-10-18')
    assert not tracker.is_completed('decode', '2026-10-17')
    assert not tracker.is_completed('anagrams', '2026-10-18')
    assert not tracker.should_score_this_play('decode', '2026-10-18')
    assert [name for name, _ in events] == ['completion_marked']
    assert kv_store.keys('completed_') == [completion_key('decode', '2026-10-18')]


def test_completion_persists_across_instances(kv_store, clock):
    CompletionTracker(kv_store, clock=clock).mark_completed('flashdance', '2026-10-10')
    reloaded = CompletionTracker(kv_store, clock=clock)
    assert reloaded.is_completed('flashdance', '2026-10-10')
    assert reloaded.mark_completed('flashdance', '2026-10-10') is False
    assert reloaded.completed_days('flashdance') == ['2026-10-10']


def test_legacy_boolean_flag_counts_as_completed(kv_store):
    kv_store.set(completion_key('anagrams', '2026-10-01'), dump_json(True))
    assert CompletionTracker(kv_store).is_completed('anagrams', '2026-10-01')


def test_unreadable_completion_record_is_skipped(kv_store, caplog):
    caplog.set_level('WARNING')
    kv_store.set(completion_key('decode', '2026-10-02'), dump_json({
        'gameId': 'decode', 'dayKey': '2026-10-02', 'markedAt': 1790000000,
    }))
    assert not CompletionTracker(kv_store).is_completed('decode', '2026-10-02')
    assert any('[completion-decode]' in r.getMessage() for r in caplog.records)


def test_basic_tier_window():
    assert can_access(AccessTier.BASIC, TODAY, TODAY)
    assert can_access(AccessTier.BASIC, TODAY - timedelta(days=3), TODAY)
    assert not can_access(AccessTier.BASIC, TODAY - timedelta(days=4), TODAY)
    assert can_access(AccessTier.BASIC, TODAY + timedelta(days=2), TODAY)


def test_premium_is_unbounded_and_free_is_today_only():
    assert can_access(AccessTier.PREMIUM, TODAY - timedelta(days=10000), TODAY)
    assert AccessTier.PREMIUM.archive_days_allowed == math.inf
    assert can_access(AccessTier.FREE, TODAY, TODAY)
    assert not can_access(AccessTier.FREE, TODAY - timedelta(days=1), TODAY)


@pytest.mark.parametrize('days_back', [0, 1, 3, 4, 7, 8, 365])
def test_tiers_are_nested(days_back):
    day = TODAY - timedelta(days=days_back)
    order = [AccessTier.FREE, AccessTier.BASIC, AccessTier.STANDARD, AccessTier.PREMIUM]
    allowed = [can_access(tier, day, TODAY) for tier in order]
    # once a smaller tier can see a day, every larger tier can too
    assert allowed == sorted(allowed)


def test_policy_uses_clock(clock):
    policy = AccessPolicy(clock)
    assert policy.can_access(AccessTier.STANDARD, '2026-10-11')
    assert not policy.can_access(AccessTier.STANDARD, '2026-10-10')


def test_tier_parse():
    assert AccessTier.parse('Premium') is AccessTier.PREMIUM
    assert AccessTier.parse(AccessTier.BASIC) is AccessTier.BASIC
    with pytest.raises(ValueError):
        AccessTier.parse('gold')


def test_subscription_defaults_to_free_and_persists(kv_store, hub, events):
    state = SubscriptionState(kv_store, hub)
    assert state.current_tier is AccessTier.FREE
    state.update_tier('standard')
    state.update_tier(AccessTier.STANDARD)
    assert [payload for name, payload in events if name == 'tier_changed'] == [{'tier': 'standard'}]
    assert SubscriptionState(kv_store).current_tier is AccessTier.STANDARD


def test_subscription_ignores_unknown_stored_tier(kv_store):
    kv_store.set('userPaidTier', dump_json('platinum'))
    assert SubscriptionState(kv_store).current_tier is AccessTier.FREE
