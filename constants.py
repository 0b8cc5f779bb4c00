EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Education",
    "Other",
]

# strftime equivalents of "dd MMM yyyy" and "MMMM yyyy"
DATE_FORMAT = "%d %b %Y"
MONTH_YEAR_FORMAT = "%B %Y"

DEFAULT_CURRENCY_SYMBOL = "₺"

MAX_NOTE_LENGTH = 200
MAX_AMOUNT = 1_000_000_000

FALLBACK_LOAD_ERROR = "Failed to load expenses"
