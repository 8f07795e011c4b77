"""Jinja2 filters driven by the engine option bundle.

The registry installs these on every environment it builds, bound to the
number and date formats currently configured:

    ${ total | number }            -> 1,234.5
    ${ issued | date }             -> 2024-01-15
    ${ issued | date("%d/%m/%Y") } -> 15/01/2024
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


def format_number(value: Any, number_format: str = ",") -> str:
    """Format a number with a Python format spec.

    Args:
        value: Number or numeric string
        number_format: Format spec passed to ``format()``

    Returns:
        Formatted number, or the value unchanged when it is not numeric

    Examples:
        >>> format_number(1234.5)
        '1,234.5'
        >>> format_number(3.14159, ".2f")
        '3.14'
    """
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = Decimal(value)
        except ArithmeticError:
            return value
    if not isinstance(value, (int, float, Decimal)):
        return str(value)
    return format(value, number_format)


def _coerce_datetime(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


def format_date(value: Any, date_format: str = "%Y-%m-%d") -> str:
    """Format a date, datetime or ISO string.

    Strings that are not ISO dates are returned unchanged.
    """
    if value is None:
        return ""
    value = _coerce_datetime(value)
    if isinstance(value, (date, datetime, time)):
        return value.strftime(date_format)
    return str(value)


def build_filters(
    number_format: str,
    date_format: str,
    time_format: str,
    datetime_format: str,
) -> dict[str, Any]:
    """Build the filter table for one environment."""

    def with_default(func: Any, default_format: str) -> Any:
        def apply(value: Any, fmt: str | None = None) -> str:
            return func(value, fmt or default_format)

        return apply

    return {
        "number": with_default(format_number, number_format),
        "date": with_default(format_date, date_format),
        "time": with_default(format_date, time_format),
        "datetime": with_default(format_date, datetime_format),
    }


def is_valid_number_format(number_format: str) -> bool:
    """Check that a format spec is accepted for numbers."""
    try:
        format(Decimal("1234.5"), number_format)
        format(1234, number_format)
    except (ValueError, TypeError):
        return False
    return True


def is_valid_date_format(date_format: str) -> bool:
    """Check that a strftime pattern is usable."""
    try:
        datetime(2024, 1, 15, 12, 30).strftime(date_format)
    except (ValueError, TypeError):
        return False
    return True


