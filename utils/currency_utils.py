"""Amount formatting and parsing."""

import config
from utils.logging import logger


def format_amount(amount: float, symbol: str | None = None) -> str:
    """Format an amount with the currency symbol and two decimals.

    Example: 1234.56 -> "₺1,234.56"

    Args:
        amount: Amount in currency units
        symbol: Currency symbol, defaults to the configured one

    Returns:
        Formatted amount string
    """
    if symbol is None:
        symbol = config.CURRENCY_SYMBOL
    return f"{symbol}{amount:,.2f}"


def parse_amount(amount_str: str | None) -> float | None:
    """Parse a user-entered amount, returning None if it isn't a number."""
    if amount_str is None:
        return None
    try:
        amount = float(amount_str.strip())
    except ValueError:
        logger.debug(f"Could not parse amount '{amount_str}'")
        return None
    # float() accepts "nan" and "inf", which are not amounts
    if amount != amount or amount in (float("inf"), float("-inf")):
        logger.debug(f"Rejected non-finite amount '{amount_str}'")
        return None
    return amount
