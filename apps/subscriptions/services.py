"""
Subscription Service for the Subscription Manager
Creating subscriptions from plans and changing their cancellation state.

Provides:
- SubscriptionBuilder: fluent construction of a subscription for a subscriber
- create_subscription_from_plan: build from a plan with an optional customisation callback
- cancel_subscription / resume_subscription: row-locked cancellation changes
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

from django.db import models, transaction
from django.utils import timezone

from apps.common.types import ValidationError

from .config import get_default_trial_days
from .models import Plan, Subscription
from .periods import parse_period

logger = logging.getLogger(__name__)


# ===============================================================================
# SUBSCRIPTION BUILDER
# ===============================================================================


class SubscriptionBuilder:
    """
    Collects the settings of a new subscription, then creates it.

    Defaults come from the plan: its period and its feature codes. Without a
    plan the subscription is infinite and grants no features until told
    otherwise.

        subscription = (
            SubscriptionBuilder(user, plan)
            .period("P1M")
            .trial_days(14)
            .create()
        )
    """

    def __init__(self, subscribable: models.Model, plan: Plan | None = None):
        self.subscribable = subscribable
        self.plan = plan
        self._period: str | None = plan.period if plan is not None else None
        self._features: list[str] | None = None
        self._starts_at: datetime | None = None
        self._trial_days: int | None = None
        self._trial_ends_at: datetime | None = None
        self._skip_trial = False

    def period(self, period: str) -> SubscriptionBuilder:
        """Billing period as an ISO-8601 duration, e.g. P1M"""
        parse_period(period)
        self._period = period
        return self

    def infinite(self) -> SubscriptionBuilder:
        self._period = None
        return self

    def trial_days(self, days: int) -> SubscriptionBuilder:
        if days < 0:
            raise ValidationError("trial_days", "must not be negative")
        self._trial_days = days
        self._trial_ends_at = None
        self._skip_trial = False
        return self

    def trial_until(self, ends_at: datetime) -> SubscriptionBuilder:
        self._trial_ends_at = ends_at
        self._trial_days = None
        self._skip_trial = False
        return self

    def skip_trial(self) -> SubscriptionBuilder:
        self._skip_trial = True
        return self

    def features(self, codes: Iterable[str]) -> SubscriptionBuilder:
        """Grant exactly these feature codes instead of the plan's"""
        self._features = list(codes)
        return self

    def starts_at(self, starts_at: datetime) -> SubscriptionBuilder:
        self._starts_at = starts_at
        return self

    def build(self) -> Subscription:
        """An unsaved subscription with all defaults applied"""
        created_at = self._starts_at or timezone.now()

        trial_ends_at: datetime | None = None
        if not self._skip_trial:
            if self._trial_ends_at is not None:
                trial_ends_at = self._trial_ends_at
            else:
                days = self._trial_days if self._trial_days is not None else get_default_trial_days()
                if days > 0:
                    trial_ends_at = created_at + timedelta(days=days)

        if self._features is not None:
            features = self._features
        elif self.plan is not None:
            features = self.plan.feature_codes()
        else:
            features = []

        return Subscription(
            subscribable=self.subscribable,
            plan=self.plan,
            features=features,
            period=self._period,
            trial_ends_at=trial_ends_at,
            created_at=created_at,
        )

    def create(self) -> Subscription:
        with transaction.atomic():
            subscription = self.build()
            subscription.save()

        logger.info(
            f"✅ [Subscriptions] Subscription #{subscription.pk} created for "
            f"{subscription.subscribable_type.model} {subscription.subscribable_id}"
        )
        return subscription


def create_subscription_from_plan(
    plan: Plan,
    subscribable: models.Model,
    callback: Callable[[SubscriptionBuilder], Any] | None = None,
) -> Subscription:
    """
    Create a subscription to ``plan`` for ``subscribable``.

    ``callback`` receives the builder before creation and may adjust it,
    e.g. ``lambda builder: builder.trial_days(30)``.
    """
    builder = SubscriptionBuilder(subscribable, plan)
    if callback is not None:
        callback(builder)
    return builder.create()


# ===============================================================================
# CANCELLATION
# ===============================================================================


def cancel_subscription(subscription_id: int, at: datetime | None = None, now: datetime | None = None) -> Subscription:
    """Cancel under a row lock so concurrent writers see one before/after pair"""
    with transaction.atomic():
        subscription = Subscription.objects.select_for_update().get(pk=subscription_id)
        subscription.cancel(at=at, now=now)
    return subscription


def resume_subscription(subscription_id: int, now: datetime | None = None) -> Subscription:
    with transaction.atomic():
        subscription = Subscription.objects.select_for_update().get(pk=subscription_id)
        subscription.resume(now=now)
    return subscription
