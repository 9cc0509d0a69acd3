"""
Billing period length resolution.

Periods are stored as ISO-8601 durations with day granularity ("P1M", "P1Y",
"P2W", "P1Y6M", "P10D"). They resolve to a calendar-aware ``relativedelta``
so that adding one month to January 31st lands on the last day of February.
Time components ("PT12H") are not billing periods and are rejected.

A subscription without a period is infinite; it resolves to a very long
sentinel period so that the circle algorithm needs no special branch.
"""

from __future__ import annotations

import re

from dateutil.relativedelta import relativedelta

from apps.common.types import PeriodSpec

from .config import get_infinite_period
from .exceptions import MalformedPeriodError

ISO8601_PERIOD_RE = re.compile(
    r"^P"
    r"(?:(?P<years>\d+)Y)?"
    r"(?:(?P<months>\d+)M)?"
    r"(?:(?P<weeks>\d+)W)?"
    r"(?:(?P<days>\d+)D)?"
    r"\Z"
)

_UNITS = ("years", "months", "weeks", "days")


def parse_period(value: PeriodSpec) -> relativedelta:
    """
    Parse an ISO-8601 duration into a relativedelta.

    Raises MalformedPeriodError for anything that is not a non-empty,
    non-negative duration of whole years, months, weeks and days.
    """
    if not isinstance(value, str):
        raise MalformedPeriodError(value, "expected a string")

    match = ISO8601_PERIOD_RE.match(value)
    if match is None:
        if value.startswith("P") and "T" in value:
            raise MalformedPeriodError(value, "periods shorter than a day are not supported")
        raise MalformedPeriodError(value)

    parts = match.groupdict()
    if not any(parts[unit] for unit in _UNITS):
        raise MalformedPeriodError(value, "no duration components")

    length = relativedelta(**{unit: int(parts[unit]) for unit in _UNITS if parts[unit]})
    if not length:
        raise MalformedPeriodError(value, "zero-length period")
    return length


def period_length(period: PeriodSpec | None) -> relativedelta:
    """How long one billing period lasts; infinite subscriptions use the sentinel period"""
    return parse_period(get_infinite_period() if period is None else period)


def is_valid_period(value: object) -> bool:
    try:
        parse_period(value)  # type: ignore[arg-type]
    except MalformedPeriodError:
        return False
    return True
