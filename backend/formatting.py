"""Display formatting for pricing figures. Rounding happens here and nowhere else."""

import math

from .config import settings


def _finite(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def format_currency(value, symbol: str = None) -> str:
    """1234.5 -> '₱1,234.50'. Non-finite or non-numeric input renders as zero."""
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    amount = round(_finite(value), 2)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_percent(value, digits: int = 1) -> str:
    return f"{_finite(value):.{digits}f}%"


def format_pricing(pricing: dict, symbol: str = None) -> dict:
    """Display strings for every CalculatedPricing figure."""
    formatted = {
        key: format_currency(value, symbol)
        for key, value in pricing.items()
        if key != "required_margin"
    }
    formatted["required_margin"] = format_percent(pricing.get("required_margin", 0))
    return formatted
