"""Data models for the finance tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable

# --- Categories ---

GROCERIES = "Groceries"
TRANSPORT = "Transport"
ENTERTAINMENT = "Entertainment"
UTILITIES = "Utilities"
SALARY = "Salary"
OTHER = "Other"

CATEGORIES: tuple[str, ...] = (GROCERIES, TRANSPORT, ENTERTAINMENT, UTILITIES, SALARY, OTHER)

DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class Transaction:
    """A single dated, signed monetary entry.

    Negative ``amount`` is an expense, positive is income.
    """

    date: date
    amount: float
    category: str = OTHER
    description: str = ""

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    def __str__(self):
        return f"{self.date.strftime(DATE_FORMAT)} | {self.category} | {format_amount(self.amount)} | {self.description}"


def format_amount(amount: float) -> str:
    """Render an amount the same way everywhere: ``-50``, ``12.5``."""
    amount = float(amount)
    if amount.is_integer():
        return str(int(amount))
    return repr(amount)


# --- Field dispatch ---

class TransactionField(Enum):
    """Fields a transaction can be filtered and sorted by."""

    DATE = "date"
    AMOUNT = "amount"
    CATEGORY = "category"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def accessor(self) -> Callable[[Transaction], Any]:
        return _ACCESSORS[self]

    def key(self, transaction: Transaction) -> Any:
        """Natural sort key: chronological, numeric or lexicographic."""
        return self.accessor(transaction)

    def stringify(self, transaction: Transaction) -> str:
        """String form used for exact-match filtering and display."""
        return _STRINGIFIERS[self](self.accessor(transaction))

    @classmethod
    def parse(cls, name: TransactionField | str) -> TransactionField:
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown transaction field: {name!r}") from None


_ACCESSORS: dict[TransactionField, Callable[[Transaction], Any]] = {
    TransactionField.DATE: lambda t: t.date,
    TransactionField.AMOUNT: lambda t: t.amount,
    TransactionField.CATEGORY: lambda t: t.category,
}

_STRINGIFIERS: dict[TransactionField, Callable[[Any], str]] = {
    TransactionField.DATE: lambda d: d.strftime(DATE_FORMAT),
    TransactionField.AMOUNT: format_amount,
    TransactionField.CATEGORY: str,
}


class SortOrder(Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"

    @property
    def label(self) -> str:
        return "Ascending" if self is SortOrder.ASCENDING else "Descending"

    @classmethod
    def parse(cls, name: SortOrder | str) -> SortOrder:
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown sort order: {name!r}") from None
