"""
Helper Utilities
Common formatting helpers
"""

from datetime import date, datetime
from typing import Optional, Union

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
}


def format_currency(amount: float, currency: str = "USD") -> str:
    """
    Format amount as currency

    Args:
        amount: Amount to format
        currency: Currency code

    Returns:
        str: Formatted currency string
    """
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{currency} {amount:,.2f}"


def format_date(value: Optional[Union[date, datetime]], format_str: str = "%Y-%m-%d") -> str:
    """Format a date, returning an empty string for None"""
    if value is None:
        return ""
    return value.strftime(format_str)
