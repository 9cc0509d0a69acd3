"""
Subscription lifecycle signals.

Cancel and resume are detected from the change of ``ends_at`` alone:

- null → set    : cancelled (also when the end date is still in the future,
                  i.e. cancellation scheduled for the end of the paid period)
- set  → null   : resumed
- anything else : no transition

Detection is a pure function of the previously persisted value and the newly
written one. The model dispatches the result explicitly once the row has been
saved; billing and notification code subscribes to the signals below.

Every signal is sent with ``sender=Subscription`` and a ``subscription``
keyword. Transition signals also carry ``previous_ends_at`` and ``ends_at``;
``subscription_purged`` also carries ``subscription_id``.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from django.dispatch import Signal, receiver

if TYPE_CHECKING:
    from .models import Subscription

logger = logging.getLogger(__name__)

# ===============================================================================
# CUSTOM SIGNALS FOR SUBSCRIPTION LIFECYCLE
# ===============================================================================

# Persistence lifecycle
subscription_created = Signal()
subscription_updated = Signal()
subscription_deleted = Signal()  # soft delete
subscription_restored = Signal()
subscription_purged = Signal()  # hard delete

# ends_at transitions
subscription_cancelled = Signal()
subscription_resumed = Signal()


# ===============================================================================
# TRANSITION DETECTION
# ===============================================================================


class Transition(enum.Enum):
    CANCELLED = "cancelled"
    RESUMED = "resumed"


def detect_transition(previous_ends_at: datetime | None, new_ends_at: datetime | None) -> Transition | None:
    """Zero or one transition for a single (old, new) pair of ends_at values"""
    if previous_ends_at is None and new_ends_at is not None:
        return Transition.CANCELLED
    if previous_ends_at is not None and new_ends_at is None:
        return Transition.RESUMED
    return None


_TRANSITION_SIGNALS: dict[Transition, Signal] = {
    Transition.CANCELLED: subscription_cancelled,
    Transition.RESUMED: subscription_resumed,
}


def dispatch_transition(
    subscription: Subscription,
    previous_ends_at: datetime | None,
    new_ends_at: datetime | None,
) -> Transition | None:
    """Send the cancelled or resumed signal for a persisted ends_at change, if there is one"""
    transition = detect_transition(previous_ends_at, new_ends_at)
    if transition is not None:
        _TRANSITION_SIGNALS[transition].send(
            sender=type(subscription),
            subscription=subscription,
            previous_ends_at=previous_ends_at,
            ends_at=new_ends_at,
        )
    return transition


# ===============================================================================
# AUDIT LOGGING RECEIVERS
# ===============================================================================


@receiver(subscription_created)
def log_subscription_created(sender: type[Subscription], subscription: Subscription, **kwargs: Any) -> None:
    logger.info(f"📋 [Subscription] Created #{subscription.pk} (plan={subscription.plan_id}, period={subscription.period})")


@receiver(subscription_cancelled)
def log_subscription_cancelled(
    sender: type[Subscription],
    subscription: Subscription,
    ends_at: datetime,
    **kwargs: Any,
) -> None:
    logger.info(f"🛑 [Subscription] Cancelled #{subscription.pk}, ends at {ends_at.isoformat()}")


@receiver(subscription_resumed)
def log_subscription_resumed(
    sender: type[Subscription],
    subscription: Subscription,
    previous_ends_at: datetime,
    **kwargs: Any,
) -> None:
    logger.info(f"▶️ [Subscription] Resumed #{subscription.pk} (was ending {previous_ends_at.isoformat()})")


@receiver(subscription_deleted)
def log_subscription_deleted(sender: type[Subscription], subscription: Subscription, **kwargs: Any) -> None:
    logger.info(f"🗑️ [Subscription] Soft-deleted #{subscription.pk}")


@receiver(subscription_restored)
def log_subscription_restored(sender: type[Subscription], subscription: Subscription, **kwargs: Any) -> None:
    logger.info(f"♻️ [Subscription] Restored #{subscription.pk}")


@receiver(subscription_purged)
def log_subscription_purged(sender: type[Subscription], subscription_id: int, **kwargs: Any) -> None:
    # The instance has lost its primary key by now
    logger.warning(f"🔥 [Subscription] Purged #{subscription_id}")
