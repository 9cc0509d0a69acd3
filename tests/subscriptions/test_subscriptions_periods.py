"""
Tests for billing period parsing and calendar-aware period arithmetic.
"""

import pytest
from dateutil.relativedelta import relativedelta
from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import override_settings

from apps.subscriptions.exceptions import MalformedPeriodError, SubscriptionError
from apps.subscriptions.periods import is_valid_period, parse_period, period_length
from apps.subscriptions.validators import validate_period
from tests.factories.subscriptions import utc


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        ('P1M', relativedelta(months=1)),
        ('P1Y', relativedelta(years=1)),
        ('P1Y6M', relativedelta(years=1, months=6)),
        ('P2W', relativedelta(days=14)),
        ('P10D', relativedelta(days=10)),
        ('P1Y2M3W4D', relativedelta(years=1, months=2, days=25)),
    ],
)
def test_parse_period_accepts_iso8601_durations(value, expected):
    assert parse_period(value) == expected


@pytest.mark.parametrize(
    'value',
    ['', 'P', '1M', 'P1.5M', 'P-1M', 'p1m', 'P1M ', 'P1M\n', 'monthly', 'P1H', 'P0D', 'P0Y0M'],
)
def test_parse_period_rejects_malformed_values(value):
    with pytest.raises(MalformedPeriodError) as exc_info:
        parse_period(value)

    assert exc_info.value.period == value


@pytest.mark.parametrize('value', ['PT12H', 'PT1M', 'PT1S', 'P1DT2H', 'PT', 'P1MT'])
def test_parse_period_rejects_time_components(value):
    with pytest.raises(MalformedPeriodError, match='shorter than a day'):
        parse_period(value)
    assert not is_valid_period(value)


def test_validate_period_rejects_sub_day_periods():
    with pytest.raises(DjangoValidationError) as exc_info:
        validate_period('PT1S')

    assert exc_info.value.code == 'malformed_period'


@pytest.mark.parametrize('value', [None, 30, b'P1M'])
def test_parse_period_rejects_non_strings(value):
    with pytest.raises(MalformedPeriodError, match='expected a string'):
        parse_period(value)


def test_malformed_period_error_is_a_value_error_and_subscription_error():
    with pytest.raises(ValueError):
        parse_period('nope')
    with pytest.raises(SubscriptionError):
        parse_period('nope')


def test_period_length_of_infinite_subscription_is_a_thousand_years():
    assert period_length(None) == relativedelta(years=1000)


@override_settings(SUBSCRIPTIONS_INFINITE_PERIOD='P10Y')
def test_infinite_period_follows_settings():
    assert period_length(None) == relativedelta(years=10)


def test_period_length_propagates_malformed_period():
    with pytest.raises(MalformedPeriodError):
        period_length('every month')


def test_is_valid_period():
    assert is_valid_period('P3M')
    assert not is_valid_period('3 months')
    assert not is_valid_period(None)


class TestCalendarArithmetic:
    """Adding periods follows the calendar, not a fixed number of days"""

    def test_month_end_lands_on_last_day_of_february_in_leap_year(self):
        assert utc(2024, 1, 31) + parse_period('P1M') == utc(2024, 2, 29)

    def test_month_end_lands_on_last_day_of_february(self):
        assert utc(2023, 1, 31) + parse_period('P1M') == utc(2023, 2, 28)

    def test_leap_day_plus_one_year(self):
        assert utc(2024, 2, 29) + parse_period('P1Y') == utc(2025, 2, 28)

    def test_month_lengths_differ(self):
        assert utc(2024, 2, 1) + parse_period('P1M') == utc(2024, 3, 1)
        assert utc(2024, 3, 1) + parse_period('P1M') == utc(2024, 4, 1)

    def test_weeks_are_seven_days(self):
        assert utc(2024, 2, 26) + parse_period('P1W') == utc(2024, 3, 4)
