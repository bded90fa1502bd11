"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Timestamp conversion and normalization utilities
    - numbers: Decimal coercion and token-amount scaling
"""

from core.utils.time import to_utc_datetime, current_utc_datetime
from core.utils.numbers import to_decimal, scale_down

__all__ = ["to_utc_datetime", "current_utc_datetime", "to_decimal", "scale_down"]
