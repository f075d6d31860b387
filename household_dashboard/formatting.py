"""Formatting utilities for currency and text display."""

from __future__ import annotations

from typing import Optional, Union

PRIVACY_MASK = "••••"


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount with proper formatting.

    Args:
        amount: The amount to format
        include_sign: Whether to include the dollar sign

    Returns:
        Formatted currency string (e.g., "$1,234.56" or "1,234.56")

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(-50)
        '-$50.00'
    """
    formatted = f"{abs(amount):,.2f}"
    sign = "-" if amount < 0 else ""
    return f"{sign}${formatted}" if include_sign else f"{sign}{formatted}"


def escape_dollar_for_markdown(text: str) -> str:
    """Escape dollar signs so Streamlit markdown does not start LaTeX math.

    Example:
        >>> escape_dollar_for_markdown("$1,234.56")
        '\\\\$1,234.56'
    """
    return text.replace("$", "\\$")


def format_percent(value: Optional[float]) -> str:
    """Signed percentage, or ``n/a`` when there is no prior month to compare."""
    if value is None:
        return "n/a"
    return f"{value:+.1f}%"


def display_amount(amount: float, privacy_mode: bool = False) -> str:
    """Currency string, masked when privacy mode hides balances."""
    if privacy_mode:
        return PRIVACY_MASK
    return format_currency(amount)
