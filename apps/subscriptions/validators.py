"""
Field validators for subscription and plan data.
"""

from __future__ import annotations

from typing import Any

from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from .exceptions import MalformedPeriodError
from .periods import parse_period


def validate_period(value: str | None) -> None:
    """Reject period strings that are not ISO-8601 durations (None means infinite)"""
    if value is None:
        return
    try:
        parse_period(value)
    except MalformedPeriodError as e:
        raise ValidationError(
            _("%(value)s is not a valid period: %(reason)s"),
            code="malformed_period",
            params={"value": value, "reason": e.reason},
        ) from e


def validate_feature_codes(value: Any) -> None:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(_("Features must be a list of feature codes"), code="invalid_features")
    for code in value:
        if not isinstance(code, str) or not code:
            raise ValidationError(
                _("Invalid feature code: %(code)r"),
                code="invalid_feature_code",
                params={"code": code},
            )


def normalize_feature_codes(value: Any) -> list[str]:
    """Ordered, de-duplicated list of feature codes"""
    return list(dict.fromkeys(value or ()))
