"""
Centralized subscription configuration.

Values come from Django settings with validated fallbacks.
"""

import logging

from django.conf import settings

logger = logging.getLogger(__name__)

# ===============================================================================
# HELPER: SAFE VALUE PARSING
# ===============================================================================


def _get_non_negative_int(setting_name: str, default: int) -> int:
    """Get a non-negative integer from settings with validation."""
    value = getattr(settings, setting_name, default)
    try:
        result = int(value)
    except (TypeError, ValueError):
        logger.warning(f"⚠️ [Subscriptions] Invalid {setting_name}={value!r}, using {default}")
        result = default
    return max(0, result)


# ===============================================================================
# PERIODS
# ===============================================================================

# Stand-in length for subscriptions without a period, long enough to never lapse
DEFAULT_INFINITE_PERIOD = "P1000Y"


def get_infinite_period() -> str:
    """Period used for infinite subscriptions."""
    return getattr(settings, "SUBSCRIPTIONS_INFINITE_PERIOD", DEFAULT_INFINITE_PERIOD) or DEFAULT_INFINITE_PERIOD


# ===============================================================================
# TRIALS
# ===============================================================================


def get_default_trial_days() -> int:
    """Trial length applied by the builder when none is given explicitly."""
    return _get_non_negative_int("SUBSCRIPTIONS_DEFAULT_TRIAL_DAYS", 0)
