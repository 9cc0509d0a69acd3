"""
Subscription lifecycle exceptions.

Every error here is fatal to the requested computation: callers get it
immediately and nothing is retried or partially returned.
"""

from __future__ import annotations

from datetime import datetime

from apps.common.types import BusinessError


class SubscriptionError(BusinessError):
    """Base exception for subscription lifecycle errors"""


class MalformedPeriodError(SubscriptionError, ValueError):
    """The period string is not a usable ISO-8601 duration"""

    def __init__(self, period: object, reason: str = "not an ISO-8601 duration"):
        self.period = period
        self.reason = reason
        super().__init__(f"Malformed period {period!r}: {reason}")


class InvalidCircleBoundsError(SubscriptionError):
    """The subscription ends before it starts, so no billing circle can be laid out"""

    def __init__(self, start: datetime, end: datetime):
        self.start = start
        self.end = end
        super().__init__(f"Subscription ends at {end.isoformat()} before it starts at {start.isoformat()}")


class SubscriptionStateError(SubscriptionError):
    """Operation not allowed in the subscription's current lifecycle state"""
