"""
processor.py
------------
In-memory transaction store plus the operations both front-ends share:
filter, sort, delete, budgets and the three-month forecast.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

import config
import storage
from codec import ParseError, format_line, parse_lines
from logging_setup import get_logger
from models import CATEGORIES, SortOrder, Transaction, TransactionField

logger = get_logger("processor")

FRAME_COLUMNS = ["Date", "Amount", "Category", "Description"]


class TransactionProcessor:
    """Owns the ordered transaction list and the per-category budgets."""

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        self.transactions: List[Transaction] = list(transactions or [])
        self.budgets: Dict[str, float] = {category: 0.0 for category in CATEGORIES}

    def __len__(self):
        return len(self.transactions)

    def is_empty(self) -> bool:
        return not self.transactions

    # --- Store ---

    def append(self, transaction: Transaction) -> None:
        self.transactions.append(transaction)

    def reset_view(self, transactions: Iterable[Transaction]) -> None:
        """Replace the whole sequence."""
        self.transactions = list(transactions)

    def import_lines(self, lines: Iterable[str]) -> int:
        """Parse lines in the file format and append the valid ones."""
        added, _ = self.import_with_errors(lines)
        return added

    def import_with_errors(self, lines: Iterable[str]) -> Tuple[int, List[ParseError]]:
        """Like :meth:`import_lines`, also returning the rejected lines."""
        parsed, errors = parse_lines(lines)
        self.transactions.extend(parsed)
        logger.info("Imported %d transactions (%d lines skipped)", len(parsed), len(errors))
        return len(parsed), errors

    def load_from_path(self, path: str | Path) -> int:
        return self.import_lines(storage.read_lines(path))

    def export_to_path(self, path: str | Path) -> bool:
        ok = storage.write_lines(path, (format_line(t) for t in self.transactions))
        if ok:
            logger.info("Saved %d transactions to %s", len(self.transactions), path)
        return ok

    # --- View operations ---

    def filter(self, field: TransactionField | str, value: str) -> None:
        """Keep only transactions whose stringified ``field`` equals ``value``.

        Raises ``ValueError`` for an unknown field.
        """
        field = TransactionField.parse(field)
        self.transactions = [t for t in self.transactions if field.stringify(t) == value]

    def sort(self, field: TransactionField | str, order: SortOrder | str = SortOrder.ASCENDING) -> None:
        field = TransactionField.parse(field)
        order = SortOrder.parse(order)
        # sorted(reverse=True) keeps equal elements in their original order.
        self.transactions = sorted(
            self.transactions, key=field.key, reverse=order is SortOrder.DESCENDING
        )

    def delete(self, index: int) -> bool:
        """Remove the transaction at ``index``; ``False`` if out of range."""
        if not 0 <= index < len(self.transactions):
            logger.warning(
                "Cannot delete transaction %s: valid indexes are 0-%d", index, len(self.transactions) - 1
            )
            return False
        del self.transactions[index]
        logger.info("Transaction with index %d was deleted", index)
        return True

    def field_values(self, field: TransactionField | str) -> List[str]:
        """Distinct stringified values of ``field``, in first-seen order."""
        field = TransactionField.parse(field)
        return list(dict.fromkeys(field.stringify(t) for t in self.transactions))

    def expense_categories(self) -> List[str]:
        return list(dict.fromkeys(t.category for t in self.transactions if t.is_expense))

    # --- Budgets ---

    def set_budget(self, category: str, amount: float) -> None:
        self.budgets[category] = amount

    def budget_for(self, category: str) -> float:
        """Budget limit for ``category``; categories never set count as zero."""
        return self.budgets.get(category, 0.0)

    # --- Forecast ---

    def forecast(self, today: Optional[date] = None) -> Dict[str, float]:
        """
        Average monthly expense per category over the trailing window.

        Only expenses dated on or after ``today`` minus ``FORECAST_MONTHS``
        calendar months count. Each category's total is divided by the number
        of distinct months that category has expenses in, so a category active
        in a single month is not diluted. Values are negative.
        """
        df = self.to_frame()
        if df.empty:
            return {}

        today = pd.Timestamp(today or date.today())
        cutoff = today - pd.DateOffset(months=config.FORECAST_MONTHS)
        expenses = df[(df["Amount"] < 0) & (df["Date"] >= cutoff)]
        if expenses.empty:
            return {}

        grouped = expenses.groupby("Category", sort=False)
        totals = grouped["Amount"].sum()
        months = grouped["Month"].nunique()
        return {category: float(totals[category] / months[category]) for category in totals.index}

    # --- Frames ---

    def to_frame(self) -> pd.DataFrame:
        """
        Transactions as a DataFrame with ``Date``, ``Amount``, ``Category``,
        ``Description`` and a ``Month`` period column.
        """
        if not self.transactions:
            return pd.DataFrame(columns=FRAME_COLUMNS + ["Month"])

        df = pd.DataFrame(
            [
                {
                    "Date": t.date,
                    "Amount": t.amount,
                    "Category": t.category,
                    "Description": t.description,
                }
                for t in self.transactions
            ]
        )
        df["Date"] = pd.to_datetime(df["Date"])
        df["Amount"] = pd.to_numeric(df["Amount"])
        df["Month"] = df["Date"].dt.to_period("M").astype(str)
        return df
