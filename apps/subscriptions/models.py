"""
Subscription models for the Subscription Manager
Plans, features and the subscriptions granting them.

A subscription stores only a handful of timestamps; its lifecycle state
(trial, active, grace period, ended) and its billing circles are derived
from them on demand. See lifecycle.py and circles.py.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, ClassVar

from dateutil.relativedelta import relativedelta
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models.query import QuerySet
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.models import SoftDeleteManager, SoftDeleteModel, SoftDeleteQuerySet, TimestampedModel

from . import lifecycle
from .circles import SubscriptionCircle, current_circle, generate_circles
from .exceptions import SubscriptionStateError
from .lifecycle import SubscriptionSnapshot
from .periods import period_length
from .signals import (
    dispatch_transition,
    subscription_created,
    subscription_deleted,
    subscription_purged,
    subscription_restored,
    subscription_updated,
)
from .validators import normalize_feature_codes, validate_feature_codes, validate_period

logger = logging.getLogger(__name__)

# Marks an ends_at value that was deferred when the row was loaded
_NOT_LOADED = object()

# ===============================================================================
# FEATURES & PLANS
# ===============================================================================


class Feature(TimestampedModel):
    """A capability that plans and subscriptions grant, identified by its code"""

    code = models.SlugField(max_length=100, unique=True, help_text=_("Stable identifier, e.g. 'api-access'"))
    name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    is_metered = models.BooleanField(default=False, help_text=_("Usage of this feature is counted"))

    class Meta:
        db_table = "subscription_features"
        verbose_name = _("Feature")
        verbose_name_plural = _("Features")
        ordering = ("code",)

    def __str__(self) -> str:
        return self.code


class Plan(TimestampedModel):
    """A named bundle of features with a default billing period"""

    name = models.CharField(max_length=255, unique=True)
    period = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        validators=[validate_period],
        help_text=_("ISO-8601 duration such as P1M or P1Y; empty means infinite"),
    )
    features = models.ManyToManyField(Feature, related_name="plans", blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "subscription_plans"
        verbose_name = _("Plan")
        verbose_name_plural = _("Plans")
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name

    def clean(self) -> None:
        super().clean()
        if self.period == "":
            self.period = None

    def feature_codes(self) -> list[str]:
        """Codes of the plan's features, sorted"""
        return sorted(feature.code for feature in self.features.all())

    @property
    def is_infinite(self) -> bool:
        return self.period is None


# ===============================================================================
# SUBSCRIPTION QUERYSET
# ===============================================================================


class SubscriptionQuerySet(SoftDeleteQuerySet):
    """
    Storage-level lifecycle filters.

    Each filter compiles the same condition the in-memory predicate evaluates,
    so ``Subscription.objects.active(now)`` returns exactly the rows for which
    ``subscription.is_active(now)`` is true.
    """

    def in_state(self, condition: lifecycle.Condition, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.filter(condition.to_q(now or timezone.now()))

    def on_trial(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(lifecycle.ON_TRIAL, now)

    def not_on_trial(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(~lifecycle.ON_TRIAL, now)

    def cancelled(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(lifecycle.CANCELLED, now)

    def not_cancelled(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(~lifecycle.CANCELLED, now)

    def on_grace_period(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(lifecycle.ON_GRACE_PERIOD, now)

    def not_on_grace_period(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(~lifecycle.ON_GRACE_PERIOD, now)

    def active(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(lifecycle.ACTIVE, now)

    def ended(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(lifecycle.ENDED, now)

    def recurring(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(lifecycle.RECURRING, now)

    def infinite(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(lifecycle.INFINITE, now)

    def valid(self, now: datetime | None = None) -> QuerySet[Subscription]:
        return self.in_state(lifecycle.VALID, now)

    def for_subscribable(self, subscribable: models.Model) -> QuerySet[Subscription]:
        return self.filter(
            subscribable_type=ContentType.objects.get_for_model(subscribable),
            subscribable_id=subscribable.pk,
        )


class SubscriptionManager(SoftDeleteManager.from_queryset(SubscriptionQuerySet)):  # type: ignore[misc]
    """Default manager: lifecycle filters over non-deleted subscriptions"""


# ===============================================================================
# SUBSCRIPTION MODEL
# ===============================================================================


class Subscription(SoftDeleteModel, TimestampedModel):
    """
    A time-bounded grant of a plan and its features to a subscriber.

    Lifecycle fields:
    - trial_ends_at: on trial while strictly in the future
    - ends_at: set when cancellation is requested; while still in the future
      the subscription is on its grace period, afterwards it has ended
    - period: ISO-8601 billing period; empty means infinite

    Setting ends_at from empty to a date sends ``subscription_cancelled``;
    clearing it sends ``subscription_resumed``.
    """

    subscribable_type = models.ForeignKey(
        ContentType,
        on_delete=models.CASCADE,
        related_name="+",
        help_text=_("Model type of the subscriber"),
    )
    subscribable_id = models.PositiveBigIntegerField(help_text=_("Primary key of the subscriber"))
    subscribable = GenericForeignKey("subscribable_type", "subscribable_id")

    plan = models.ForeignKey(
        Plan,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="subscriptions",
    )
    features = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Feature codes granted, independent of later plan changes"),
    )
    period = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        validators=[validate_period],
        help_text=_("ISO-8601 duration such as P1M or P1Y; empty means infinite"),
    )
    trial_ends_at = models.DateTimeField(null=True, blank=True, db_index=True)
    ends_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = SubscriptionManager()
    all_objects = SubscriptionQuerySet.as_manager()

    class Meta:
        db_table = "subscriptions"
        verbose_name = _("Subscription")
        verbose_name_plural = _("Subscriptions")
        ordering = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["subscribable_type", "subscribable_id"], name="idx_subscription_subscribable"),
        )

    def __str__(self) -> str:
        plan = self.plan.name if self.plan_id else _("no plan")
        return f"Subscription #{self.pk} ({plan})"

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    @classmethod
    def from_db(cls, db: str | None, field_names: Any, values: Any) -> Subscription:
        instance = super().from_db(db, field_names, values)
        instance._persisted_ends_at = instance.__dict__.get("ends_at", _NOT_LOADED)
        return instance

    def refresh_from_db(self, using: str | None = None, fields: Any = None, **kwargs: Any) -> None:
        super().refresh_from_db(using=using, fields=fields, **kwargs)
        if fields is None or "ends_at" in fields:
            self._persisted_ends_at = self.ends_at

    def _previous_ends_at(self) -> datetime | None:
        previous = getattr(self, "_persisted_ends_at", _NOT_LOADED)
        if previous is _NOT_LOADED:
            previous = type(self).all_objects.filter(pk=self.pk).values_list("ends_at", flat=True).first()
        return previous

    def clean(self) -> None:
        """Validate subscription data."""
        super().clean()
        self._clean_period()
        self._clean_features()

    def _clean_period(self) -> None:
        if self.period == "":
            self.period = None
        try:
            validate_period(self.period)
        except ValidationError as e:
            raise ValidationError({"period": e.messages}) from e

    def _clean_features(self) -> None:
        try:
            validate_feature_codes(self.features)
        except ValidationError as e:
            raise ValidationError({"features": e.messages}) from e
        self.features = normalize_feature_codes(self.features)

    def save(self, *args: Any, **kwargs: Any) -> None:  # noqa: DJ012
        """Validate, write, then announce creation or the ends_at transition."""
        creating = self._state.adding
        previous_ends_at = None if creating else self._previous_ends_at()

        update_fields = kwargs.get("update_fields")
        if update_fields is None:
            self.clean()
        else:
            # Partial saves validate only what they write
            if "period" in update_fields:
                self._clean_period()
            if "features" in update_fields:
                self._clean_features()
        super().save(*args, **kwargs)

        if creating:
            self._persisted_ends_at = self.ends_at
            subscription_created.send(sender=type(self), subscription=self)
            return

        if update_fields is not None and "ends_at" not in update_fields:
            new_ends_at = previous_ends_at
        else:
            new_ends_at = self.ends_at
        self._persisted_ends_at = new_ends_at

        subscription_updated.send(sender=type(self), subscription=self)
        dispatch_transition(self, previous_ends_at, new_ends_at)

    def soft_delete(self) -> None:
        super().soft_delete()
        subscription_deleted.send(sender=type(self), subscription=self)

    def restore(self) -> None:
        super().restore()
        subscription_restored.send(sender=type(self), subscription=self)

    def delete(self, *args: Any, **kwargs: Any) -> tuple[int, dict[str, int]]:
        """Remove the row for good (use soft_delete() to keep it)"""
        subscription_id = self.pk
        result = super().delete(*args, **kwargs)
        subscription_purged.send(sender=type(self), subscription=self, subscription_id=subscription_id)
        return result

    # =========================================================================
    # SNAPSHOT, PLAN & FEATURES
    # =========================================================================

    def snapshot(self) -> SubscriptionSnapshot:
        return SubscriptionSnapshot(
            created_at=self.created_at,
            trial_ends_at=self.trial_ends_at,
            ends_at=self.ends_at,
            period=self.period,
            plan_id=self.plan_id,
            features=tuple(self.features or ()),
        )

    def has_plan(self, plan: Plan | None = None) -> bool:
        """Does the subscription have a plan, or this specific plan when one is given"""
        if plan is not None:
            return self.plan_id == plan.pk
        return self.plan_id is not None

    def has_feature(self, feature: str | Feature) -> bool:
        if isinstance(feature, Feature):
            feature = feature.code
        return feature in (self.features or ())

    # =========================================================================
    # LIFECYCLE STATE
    # =========================================================================

    def is_on_trial(self, now: datetime | None = None) -> bool:
        return lifecycle.is_on_trial(self, now or timezone.now())

    def is_cancelled(self, now: datetime | None = None) -> bool:
        return lifecycle.is_cancelled(self, now or timezone.now())

    def is_on_grace_period(self, now: datetime | None = None) -> bool:
        return lifecycle.is_on_grace_period(self, now or timezone.now())

    def is_active(self, now: datetime | None = None) -> bool:
        return lifecycle.is_active(self, now or timezone.now())

    def is_ended(self, now: datetime | None = None) -> bool:
        return lifecycle.is_ended(self, now or timezone.now())

    def is_recurring(self, now: datetime | None = None) -> bool:
        return lifecycle.is_recurring(self, now or timezone.now())

    def is_infinite(self, now: datetime | None = None) -> bool:
        return lifecycle.is_infinite(self, now or timezone.now())

    def is_valid(self, now: datetime | None = None) -> bool:
        return lifecycle.is_valid(self, now or timezone.now())

    def state(self, now: datetime | None = None) -> str:
        return lifecycle.describe_state(self, now or timezone.now())

    # =========================================================================
    # BILLING CIRCLES
    # =========================================================================

    def period_length(self) -> relativedelta:
        return period_length(self.period)

    def circles(self, now: datetime | None = None) -> list[SubscriptionCircle]:
        return generate_circles(self, now or timezone.now())

    def current_circle(self, now: datetime | None = None) -> SubscriptionCircle:
        return current_circle(self, now or timezone.now())

    # =========================================================================
    # CANCELLATION
    # =========================================================================

    def cancel(self, at: datetime | None = None, now: datetime | None = None) -> None:
        """
        Request cancellation.

        Without an explicit date the subscription keeps running until the
        paid time runs out: the end of the trial when on trial, otherwise the
        end of the current billing circle. Infinite subscriptions have no
        paid period to run out and end immediately.
        """
        now = now or timezone.now()
        if self.is_ended(now):
            raise SubscriptionStateError(f"Subscription #{self.pk} has already ended")

        if at is None:
            if self.is_on_trial(now):
                at = self.trial_ends_at
            elif self.is_infinite(now):
                at = now
            else:
                at = current_circle(self, now).end

        self.ends_at = at
        self.save(update_fields=["ends_at", "updated_at"])

    def cancel_now(self, now: datetime | None = None) -> None:
        now = now or timezone.now()
        self.cancel(at=now, now=now)

    def resume(self, now: datetime | None = None) -> None:
        """Take back a cancellation; only possible while the grace period lasts"""
        if not self.is_on_grace_period(now or timezone.now()):
            raise SubscriptionStateError(f"Unable to resume subscription #{self.pk}: not within grace period")

        self.ends_at = None
        self.save(update_fields=["ends_at", "updated_at"])
