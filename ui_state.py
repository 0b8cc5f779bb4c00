"""State published to the expense list and statistics screens.

The list state is one of Loading, Success, Error or Empty. Consumers match on
it and handle every case:

    match state:
        case Loading():
            ...
        case Success(expenses=expenses, monthly_total=total):
            ...
        case Error(message=message):
            ...
        case Empty():
            ...
"""

from dataclasses import dataclass, field

from models import DisplayExpense


@dataclass(frozen=True)
class Loading:
    """Initial state, or a load is in flight."""


@dataclass(frozen=True)
class Success:
    expenses: tuple[DisplayExpense, ...]
    monthly_total: float = 0.0


@dataclass(frozen=True)
class Error:
    message: str


@dataclass(frozen=True)
class Empty:
    """The query returned no expenses."""


ExpenseUiState = Loading | Success | Error | Empty


@dataclass(frozen=True)
class StatisticsUiState:
    is_loading: bool = False
    category_totals: dict[str, float] = field(default_factory=dict)
    monthly_total: float = 0.0
    average_daily: float = 0.0
    top_category: tuple[str, float] | None = None
    error_message: str | None = None


def describe_state(state: ExpenseUiState) -> str:
    """One-line summary of a list state, used in log messages."""
    match state:
        case Loading():
            return "Loading"
        case Success(expenses=expenses, monthly_total=total):
            return f"Success({len(expenses)} expenses, monthly total {total:.2f})"
        case Error(message=message):
            return f"Error({message})"
        case Empty():
            return "Empty"
        case _:
            raise TypeError(f"Unknown expense UI state: {state!r}")
