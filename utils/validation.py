"""Validation utilities for the add-expense flow.

Validation happens before anything reaches the repository; the store accepts
any amount and category it is given.
"""

from constants import EXPENSE_CATEGORIES, MAX_AMOUNT, MAX_NOTE_LENGTH
from utils.currency_utils import parse_amount
from utils.logging import logger


class ValidationError(ValueError):
    """Raised when user input for a new expense is rejected."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def validate_amount(amount_str: str) -> tuple[bool, float | str]:
    """
    Validate an amount string and convert to float if valid.

    Args:
        amount_str: The amount string to validate

    Returns:
        Tuple of (is_valid, amount_or_error_message)
    """
    if not amount_str or not amount_str.strip():
        logger.debug("Empty amount validation failed")
        return False, "Please enter amount"

    amount = parse_amount(amount_str)
    if amount is None or amount <= 0:
        logger.debug(f"Amount validation failed: '{amount_str}' is not a positive number")
        return False, "Please enter valid amount"

    if amount > MAX_AMOUNT:
        logger.debug(f"Amount validation failed: '{amount}' exceeds reasonable limit")
        return False, "Amount seems too large. Please enter a reasonable value."

    logger.debug(f"Amount '{amount}' validated successfully")
    return True, amount


def validate_category(category: str) -> tuple[bool, str]:
    """
    Validate a category against the predefined category list.

    Args:
        category: The category to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not category or not category.strip():
        logger.debug("Empty category validation failed")
        return False, "Please select category"

    if category not in EXPENSE_CATEGORIES:
        logger.debug(f"Category validation failed: '{category}' is not a known category")
        return False, "Please select valid category"

    logger.debug(f"Category '{category}' validated successfully")
    return True, ""


def validate_note(note: str | None, max_length: int = MAX_NOTE_LENGTH) -> tuple[bool, str]:
    """
    Validate an optional expense note.

    Args:
        note: The note to validate
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Note can be empty, so no check for that

    if note and len(note) > max_length:
        logger.debug(f"Note validation failed: length {len(note)} exceeds max {max_length}")
        return False, f"Note too long (maximum {max_length} characters)"

    return True, ""


def validate_new_expense(
    amount_str: str, category: str, note: str | None = None
) -> tuple[float, str, str | None]:
    """Validate the add-expense form and return cleaned values.

    Blank notes become None.

    Returns:
        Tuple of (amount, category, note)

    Raises:
        ValidationError: For the first field that fails validation
    """
    is_valid, amount_or_error = validate_amount(amount_str)
    if not is_valid:
        raise ValidationError("amount", amount_or_error)

    is_valid, error = validate_category(category)
    if not is_valid:
        raise ValidationError("category", error)

    is_valid, error = validate_note(note)
    if not is_valid:
        raise ValidationError("note", error)

    cleaned_note = note.strip() if note and note.strip() else None
    return amount_or_error, category, cleaned_note
