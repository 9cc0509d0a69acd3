"""
Billing circle generation.

A circle is one billing period of a subscription. Circles are laid end to
end starting at the subscription's creation date:

- each circle lasts one period, unless the subscription's end date cuts it short
- with an end date, the last circle is the one that reaches it
- without an end date, the last circle is the first one that has not fully
  elapsed yet, so the list always ends with the current (or upcoming) period

Circles are derived values: they are computed fresh on every call and never
stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .config import get_infinite_period
from .exceptions import InvalidCircleBoundsError, MalformedPeriodError
from .periods import period_length

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriptionCircle:
    """One billing period of a subscription, numbered from 1"""

    subscription: Any
    start: datetime
    end: datetime
    number: int

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        """Half-open: the end instant belongs to the next circle"""
        return self.start <= instant < self.end

    def is_current(self, now: datetime) -> bool:
        return self.contains(now)

    def __str__(self) -> str:
        return f"#{self.number} {self.start.isoformat()} → {self.end.isoformat()}"


def generate_circles(subscription: Any, now: datetime) -> list[SubscriptionCircle]:
    """
    Lay out the billing circles of a subscription.

    ``subscription`` needs ``created_at``, ``period`` and ``ends_at``.
    ``now`` only matters for open-ended subscriptions, where it decides how
    many elapsed circles precede the current one.

    Raises MalformedPeriodError when the period cannot be parsed or carries a
    circle past the last representable date, and InvalidCircleBoundsError when the subscription ends before it starts.
    """
    start = subscription.created_at
    length = period_length(subscription.period)
    hard_end = subscription.ends_at

    if hard_end is not None and hard_end < start:
        raise InvalidCircleBoundsError(start, hard_end)

    circles: list[SubscriptionCircle] = []
    while True:
        try:
            end = start + length
        except (OverflowError, ValueError) as e:
            period = subscription.period if subscription.period is not None else get_infinite_period()
            raise MalformedPeriodError(period, f"runs past the end of the calendar from {start.isoformat()}") from e
        if hard_end is not None and end > hard_end:
            end = hard_end

        circles.append(SubscriptionCircle(subscription, start, end, len(circles) + 1))
        start = end

        if hard_end is None:
            if end >= now:
                break
        elif end >= hard_end:
            break

    logger.debug(f"🔁 [Circles] Generated {len(circles)} circle(s) from {subscription.created_at.isoformat()}")
    return circles


def current_circle(subscription: Any, now: datetime) -> SubscriptionCircle:
    """The circle containing now, or the last circle when now lies outside the schedule"""
    circles = generate_circles(subscription, now)
    for circle in circles:
        if circle.contains(now):
            return circle
    return circles[-1]
