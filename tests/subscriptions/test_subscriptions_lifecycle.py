"""
Tests for lifecycle predicates evaluated on subscription snapshots.

All instants are explicit; nothing here reads the clock.
"""

import itertools
from datetime import timedelta

import pytest

from apps.subscriptions import lifecycle
from apps.subscriptions.lifecycle import (
    STATES,
    SubscriptionSnapshot,
    describe_state,
    evaluate_states,
    is_active,
    is_cancelled,
    is_ended,
    is_infinite,
    is_on_grace_period,
    is_on_trial,
    is_recurring,
    is_valid,
)
from tests.factories.subscriptions import utc

NOW = utc(2024, 6, 1)

# Every interesting position of an optional timestamp relative to NOW
INSTANTS = [None, NOW - timedelta(days=30), NOW - timedelta(seconds=1), NOW, NOW + timedelta(seconds=1), NOW + timedelta(days=30)]
PERIODS = [None, 'P1M']


def snapshot(**kwargs) -> SubscriptionSnapshot:
    kwargs.setdefault('created_at', utc(2024, 1, 1))
    return SubscriptionSnapshot(**kwargs)


def all_snapshots():
    for trial_ends_at, ends_at, period in itertools.product(INSTANTS, INSTANTS, PERIODS):
        yield snapshot(trial_ends_at=trial_ends_at, ends_at=ends_at, period=period)


# ===============================================================================
# SCENARIOS
# ===============================================================================

class TestScenarios:
    def test_infinite_uncancelled_subscription_is_active(self):
        sub = snapshot(created_at=utc(2024, 1, 1), period=None)

        assert is_active(sub, NOW)
        assert is_infinite(sub, NOW)
        assert not is_recurring(sub, NOW)
        assert is_valid(sub, NOW)

    def test_trial_in_the_future_is_on_trial(self):
        sub = snapshot(trial_ends_at=utc(2024, 2, 1))
        now = utc(2024, 1, 15)

        assert is_on_trial(sub, now)
        assert is_valid(sub, now)

    def test_cancelled_with_future_end_is_on_grace_period(self):
        sub = snapshot(ends_at=utc(2024, 3, 1))
        now = utc(2024, 2, 15)

        assert is_cancelled(sub, now)
        assert is_on_grace_period(sub, now)
        assert is_active(sub, now)
        assert not is_ended(sub, now)

    def test_cancelled_with_past_end_has_ended(self):
        sub = snapshot(ends_at=utc(2024, 1, 1))
        now = utc(2024, 2, 1)

        assert is_cancelled(sub, now)
        assert not is_on_grace_period(sub, now)
        assert is_ended(sub, now)
        assert not is_valid(sub, now)

    def test_recurring_requires_period_no_trial_and_no_cancellation(self):
        assert is_recurring(snapshot(period='P1M'), NOW)
        assert not is_recurring(snapshot(period=None), NOW)
        assert not is_recurring(snapshot(period='P1M', trial_ends_at=NOW + timedelta(days=1)), NOW)
        assert not is_recurring(snapshot(period='P1M', ends_at=NOW + timedelta(days=1)), NOW)

    def test_expired_trial_does_not_block_recurrence(self):
        sub = snapshot(period='P1M', trial_ends_at=NOW - timedelta(days=1))

        assert not is_on_trial(sub, NOW)
        assert is_recurring(sub, NOW)

    def test_trial_and_cancellation_are_independent(self):
        sub = snapshot(trial_ends_at=NOW + timedelta(days=5), ends_at=NOW - timedelta(days=5))

        assert is_on_trial(sub, NOW)
        assert is_ended(sub, NOW)
        assert is_valid(sub, NOW)


# ===============================================================================
# BOUNDARIES
# ===============================================================================

class TestStrictBoundaries:
    """The exact expiry instant counts as lapsed"""

    def test_trial_ending_now_is_over(self):
        assert not is_on_trial(snapshot(trial_ends_at=NOW), NOW)

    def test_trial_ending_one_second_later_is_running(self):
        assert is_on_trial(snapshot(trial_ends_at=NOW + timedelta(seconds=1)), NOW)

    def test_grace_period_ending_now_has_ended(self):
        sub = snapshot(ends_at=NOW)

        assert not is_on_grace_period(sub, NOW)
        assert not is_active(sub, NOW)
        assert is_ended(sub, NOW)
        assert not is_valid(sub, NOW)


# ===============================================================================
# INVARIANTS OVER ALL COMBINATIONS
# ===============================================================================

@pytest.mark.parametrize('sub', list(all_snapshots()))
def test_lifecycle_invariants(sub):
    if is_ended(sub, NOW):
        assert not is_active(sub, NOW)
        assert not is_on_grace_period(sub, NOW)
    if is_recurring(sub, NOW):
        assert not is_on_trial(sub, NOW)
        assert not is_cancelled(sub, NOW)
        assert sub.period is not None
    assert is_active(sub, NOW) != is_ended(sub, NOW)
    assert is_infinite(sub, NOW) == (sub.period is None)
    assert is_valid(sub, NOW) == (is_active(sub, NOW) or is_on_trial(sub, NOW) or is_on_grace_period(sub, NOW))


@pytest.mark.parametrize('name', list(STATES))
def test_negated_condition_is_the_complement(name):
    condition = STATES[name]
    negated = ~condition

    for sub in all_snapshots():
        assert negated.evaluate(sub, NOW) is (not condition.evaluate(sub, NOW))


def test_predicates_match_state_table():
    sub = snapshot(trial_ends_at=NOW + timedelta(days=1), period='P1M')

    assert evaluate_states(sub, NOW) == {
        'on_trial': True,
        'cancelled': False,
        'on_grace_period': False,
        'active': True,
        'ended': False,
        'recurring': False,
        'infinite': False,
        'valid': True,
    }


class TestDescribeState:
    def test_labels(self):
        assert describe_state(snapshot(), NOW) == 'active'
        assert describe_state(snapshot(trial_ends_at=NOW + timedelta(days=1)), NOW) == 'trial'
        assert describe_state(snapshot(ends_at=NOW + timedelta(days=1)), NOW) == 'grace_period'
        assert describe_state(snapshot(ends_at=NOW), NOW) == 'ended'


class TestConditionCompilation:
    """The storage filter is built from the same declaration as the predicate"""

    def test_after_compiles_to_strict_greater_than(self):
        q = lifecycle.ON_TRIAL.to_q(NOW)

        assert ('trial_ends_at__gt', NOW) in q.children
        assert ('trial_ends_at__isnull', False) in q.children

    def test_negated_after_includes_null_and_boundary(self):
        q = (~lifecycle.ON_GRACE_PERIOD).to_q(NOW)

        assert q.connector == 'OR'
        assert repr(q).count('ends_at__lte') == 1
        assert repr(q).count('ends_at__isnull') == 2

    def test_combinators_flatten(self):
        assert len(lifecycle.VALID.conditions) == 4
        assert len(lifecycle.RECURRING.conditions) == 3
