"""
Shared type aliases and base exceptions for the Subscription Manager.
"""

from __future__ import annotations

from typing import TypeAlias

# ===============================================================================
# DOMAIN TYPE ALIASES
# ===============================================================================

PeriodSpec: TypeAlias = str  # ISO-8601 duration, e.g. "P1M"


# ===============================================================================
# COMMON EXCEPTIONS
# ===============================================================================

class BusinessError(Exception):
    """Base exception for business logic errors"""


class ValidationError(BusinessError):
    """Validation error with field information"""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")
