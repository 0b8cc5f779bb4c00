from pydantic.dataclasses import dataclass

from utils.currency_utils import format_amount
from utils.date_utils import format_date


@dataclass
class Expense:
    """A persisted expense row. id == 0 means the store has not assigned one yet."""

    amount: float
    category: str
    date: int  # epoch milliseconds of when the expense happened
    note: str | None = None
    id: int = 0

    @classmethod
    def from_row(cls, row: tuple) -> "Expense":
        """Create an Expense from an (id, amount, category, date, note) row."""
        return cls(
            id=row[0],
            amount=row[1],
            category=row[2],
            date=row[3],
            note=row[4],
        )


@dataclass
class CategoryTotal:
    category: str
    total: float


@dataclass
class DisplayExpense:
    """An expense plus its display strings, rebuilt on every delivery."""

    id: int
    amount: float
    category: str
    date: int
    note: str | None
    formatted_amount: str = ""
    formatted_date: str = ""

    @classmethod
    def from_entity(cls, expense: Expense) -> "DisplayExpense":
        return cls(
            id=expense.id,
            amount=expense.amount,
            category=expense.category,
            date=expense.date,
            note=expense.note,
            formatted_amount=format_amount(expense.amount),
            formatted_date=format_date(expense.date),
        )

    def to_entity(self) -> Expense:
        return Expense(
            id=self.id,
            amount=self.amount,
            category=self.category,
            date=self.date,
            note=self.note,
        )
