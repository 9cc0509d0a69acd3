"""
Subscription lifecycle evaluation.

Each lifecycle state is declared exactly once as a ``Condition``. The same
declaration answers the question for one subscription in memory
(``evaluate``) and for a whole table in the database (``to_q``), so the
strict "later than now" boundary can never drift between the two.

Conditions read fields by name from anything shaped like a subscription:
a ``SubscriptionSnapshot`` or a ``Subscription`` model instance.

    >>> ACTIVE.evaluate(snapshot, now)
    True
    >>> Subscription.objects.filter(ACTIVE.to_q(now))
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from datetime import datetime
from functools import reduce
from typing import Any

from django.db.models import Q

# ===============================================================================
# SUBSCRIPTION SNAPSHOT
# ===============================================================================


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """Immutable copy of the fields lifecycle state is derived from"""

    created_at: datetime
    trial_ends_at: datetime | None = None
    ends_at: datetime | None = None
    period: str | None = None
    plan_id: int | None = None
    features: tuple[str, ...] = field(default_factory=tuple)


# ===============================================================================
# CONDITIONS
# ===============================================================================


class Condition:
    """A lifecycle condition that can be evaluated in memory or compiled to a Q"""

    def evaluate(self, subscription: Any, now: datetime) -> bool:
        raise NotImplementedError

    def to_q(self, now: datetime) -> Q:
        raise NotImplementedError

    def negate(self) -> Condition:
        raise NotImplementedError

    def __and__(self, other: Condition) -> Condition:
        return AllOf((self, other))

    def __or__(self, other: Condition) -> Condition:
        return AnyOf((self, other))

    def __invert__(self) -> Condition:
        return self.negate()


@dataclass(frozen=True)
class IsNull(Condition):
    field: str

    def evaluate(self, subscription: Any, now: datetime) -> bool:
        return getattr(subscription, self.field) is None

    def to_q(self, now: datetime) -> Q:
        return Q(**{f"{self.field}__isnull": True})

    def negate(self) -> Condition:
        return IsSet(self.field)


@dataclass(frozen=True)
class IsSet(Condition):
    field: str

    def evaluate(self, subscription: Any, now: datetime) -> bool:
        return getattr(subscription, self.field) is not None

    def to_q(self, now: datetime) -> Q:
        return Q(**{f"{self.field}__isnull": False})

    def negate(self) -> Condition:
        return IsNull(self.field)


@dataclass(frozen=True)
class After(Condition):
    """Field is set and strictly later than now; the exact instant counts as lapsed"""

    field: str

    def evaluate(self, subscription: Any, now: datetime) -> bool:
        value = getattr(subscription, self.field)
        return value is not None and value > now

    def to_q(self, now: datetime) -> Q:
        return Q(**{f"{self.field}__isnull": False, f"{self.field}__gt": now})

    def negate(self) -> Condition:
        return IsNull(self.field) | AtOrBefore(self.field)


@dataclass(frozen=True)
class AtOrBefore(Condition):
    field: str

    def evaluate(self, subscription: Any, now: datetime) -> bool:
        value = getattr(subscription, self.field)
        return value is not None and value <= now

    def to_q(self, now: datetime) -> Q:
        return Q(**{f"{self.field}__isnull": False, f"{self.field}__lte": now})

    def negate(self) -> Condition:
        return IsNull(self.field) | After(self.field)


@dataclass(frozen=True)
class AllOf(Condition):
    conditions: tuple[Condition, ...]

    def evaluate(self, subscription: Any, now: datetime) -> bool:
        return all(condition.evaluate(subscription, now) for condition in self.conditions)

    def to_q(self, now: datetime) -> Q:
        return reduce(operator.and_, (condition.to_q(now) for condition in self.conditions))

    def negate(self) -> Condition:
        return AnyOf(tuple(condition.negate() for condition in self.conditions))

    def __and__(self, other: Condition) -> Condition:
        return AllOf((*self.conditions, other))


@dataclass(frozen=True)
class AnyOf(Condition):
    conditions: tuple[Condition, ...]

    def evaluate(self, subscription: Any, now: datetime) -> bool:
        return any(condition.evaluate(subscription, now) for condition in self.conditions)

    def to_q(self, now: datetime) -> Q:
        return reduce(operator.or_, (condition.to_q(now) for condition in self.conditions))

    def negate(self) -> Condition:
        return AllOf(tuple(condition.negate() for condition in self.conditions))

    def __or__(self, other: Condition) -> Condition:
        return AnyOf((*self.conditions, other))


# ===============================================================================
# LIFECYCLE STATES
# ===============================================================================

ON_TRIAL = After("trial_ends_at")
CANCELLED = IsSet("ends_at")
ON_GRACE_PERIOD = After("ends_at")
ACTIVE = IsNull("ends_at") | ON_GRACE_PERIOD
ENDED = CANCELLED & ~ON_GRACE_PERIOD
RECURRING = IsSet("period") & ~ON_TRIAL & ~CANCELLED
INFINITE = IsNull("period")
VALID = ACTIVE | ON_TRIAL | ON_GRACE_PERIOD

STATES: dict[str, Condition] = {
    "on_trial": ON_TRIAL,
    "cancelled": CANCELLED,
    "on_grace_period": ON_GRACE_PERIOD,
    "active": ACTIVE,
    "ended": ENDED,
    "recurring": RECURRING,
    "infinite": INFINITE,
    "valid": VALID,
}


# ===============================================================================
# PREDICATES
# ===============================================================================


def is_on_trial(subscription: Any, now: datetime) -> bool:
    return ON_TRIAL.evaluate(subscription, now)


def is_cancelled(subscription: Any, now: datetime) -> bool:
    """Cancellation was requested, whether or not the end date has passed"""
    return CANCELLED.evaluate(subscription, now)


def is_on_grace_period(subscription: Any, now: datetime) -> bool:
    return ON_GRACE_PERIOD.evaluate(subscription, now)


def is_active(subscription: Any, now: datetime) -> bool:
    """Never cancelled, or cancelled with paid time still remaining"""
    return ACTIVE.evaluate(subscription, now)


def is_ended(subscription: Any, now: datetime) -> bool:
    return ENDED.evaluate(subscription, now)


def is_recurring(subscription: Any, now: datetime) -> bool:
    """Renews automatically: has a period, not on trial, not cancelled"""
    return RECURRING.evaluate(subscription, now)


def is_infinite(subscription: Any, now: datetime) -> bool:
    return INFINITE.evaluate(subscription, now)


def is_valid(subscription: Any, now: datetime) -> bool:
    """Still grants access: active, on trial or on grace period"""
    return VALID.evaluate(subscription, now)


def evaluate_states(subscription: Any, now: datetime) -> dict[str, bool]:
    """Every lifecycle state at once, keyed like STATES"""
    return {name: condition.evaluate(subscription, now) for name, condition in STATES.items()}


def describe_state(subscription: Any, now: datetime) -> str:
    """Single display label for listings: ended, grace_period, trial or active"""
    if ENDED.evaluate(subscription, now):
        return "ended"
    if ON_GRACE_PERIOD.evaluate(subscription, now):
        return "grace_period"
    if ON_TRIAL.evaluate(subscription, now):
        return "trial"
    return "active"
