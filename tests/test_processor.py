from datetime import date

import pytest

from insights import STATUS_EXCEEDED, compute_budget_status
from models import CATEGORIES, SortOrder, Transaction, TransactionField
from processor import TransactionProcessor


def test_new_processor_is_empty_with_zero_budgets():
    processor = TransactionProcessor()
    assert processor.is_empty()
    assert len(processor) == 0
    assert processor.budgets == {category: 0.0 for category in CATEGORIES}


def test_import_lines_keeps_valid_lines_in_order():
    processor = TransactionProcessor()
    added = processor.import_lines([
        "[2024-01-05] [-50] [Groceries] [milk]",
        "[2024-01-06] [200] [Salary] [pay]",
        "not a valid line",
    ])
    assert added == 2
    assert len(processor) == 2
    assert [t.description for t in processor.transactions] == ["milk", "pay"]


def test_filter_by_category(processor):
    processor.filter(TransactionField.CATEGORY, "Groceries")
    assert [t.description for t in processor.transactions] == ["milk", "market"]


def test_filter_by_date_and_amount_uses_string_form(processor):
    processor.filter("date", "2024-01-06")
    assert [t.category for t in processor.transactions] == ["Salary"]

    processor.reset_view([
        Transaction(date(2024, 1, 1), -20.0, "Other", "a"),
        Transaction(date(2024, 1, 2), -20.5, "Other", "b"),
    ])
    processor.filter("amount", "-20")
    assert [t.description for t in processor.transactions] == ["a"]


def test_filter_unknown_field_raises(processor):
    with pytest.raises(ValueError, match="Unknown transaction field"):
        processor.filter("payee", "x")
    assert len(processor) == 5


def test_filter_with_no_match_leaves_empty_view(processor):
    processor.filter("category", "Utilities")
    assert processor.is_empty()


def test_sort_by_amount_ascending_and_descending(processor):
    processor.sort("amount", "asc")
    assert [t.amount for t in processor.transactions] == [-100.0, -50.0, -20.0, -20.0, 200.0]

    processor.sort(TransactionField.AMOUNT, SortOrder.DESCENDING)
    assert [t.amount for t in processor.transactions] == [200.0, -20.0, -20.0, -50.0, -100.0]


def test_sort_is_stable_for_equal_keys(processor):
    processor.sort("amount", "desc")
    ties = [t.description for t in processor.transactions if t.amount == -20.0]
    assert ties == ["bus", "cinema"]

    processor.sort("category")
    groceries = [t.description for t in processor.transactions if t.category == "Groceries"]
    assert groceries == ["milk", "market"]


def test_sort_is_idempotent(processor):
    processor.sort("date", "desc")
    once = list(processor.transactions)
    processor.sort("date", "desc")
    assert processor.transactions == once


def test_sort_rejects_unknown_order(processor):
    with pytest.raises(ValueError, match="Unknown sort order"):
        processor.sort("date", "sideways")


def test_delete_in_range(processor):
    assert processor.delete(0) is True
    assert len(processor) == 4
    assert processor.transactions[0].description == "pay"


@pytest.mark.parametrize("index", [-1, 5, 99])
def test_delete_out_of_range_changes_nothing(processor, index):
    before = list(processor.transactions)
    assert processor.delete(index) is False
    assert processor.transactions == before


def test_field_values_and_expense_categories(processor):
    assert processor.field_values("category") == ["Groceries", "Salary", "Transport", "Entertainment"]
    assert processor.expense_categories() == ["Groceries", "Transport", "Entertainment"]


def test_budget_for_unset_category_is_zero():
    processor = TransactionProcessor()
    processor.set_budget("Groceries", 250.0)
    assert processor.budget_for("Groceries") == 250.0
    assert processor.budget_for("Travel") == 0.0


def test_budget_exceeded_is_reported():
    processor = TransactionProcessor([
        Transaction(date(2024, 1, 5), -100.0, "Groceries", "weekly"),
        Transaction(date(2024, 1, 12), -50.0, "Groceries", "extra"),
    ])
    processor.set_budget("Groceries", 100)

    (row,) = compute_budget_status(processor.to_frame(), processor.budgets)
    assert row["category"] == "Groceries"
    assert row["spent"] == 150.0
    assert row["is_over"] is True
    assert row["status"] == STATUS_EXCEEDED


def test_forecast_divides_by_months_with_expenses():
    processor = TransactionProcessor([
        Transaction(date(2024, 5, 3), -100.0, "Groceries", "a"),
        Transaction(date(2024, 5, 20), -50.0, "Groceries", "b"),
    ])
    assert processor.forecast(today=date(2024, 6, 15)) == {"Groceries": -150.0}


def test_forecast_averages_over_distinct_months():
    processor = TransactionProcessor([
        Transaction(date(2024, 4, 1), -90.0, "Utilities", "april"),
        Transaction(date(2024, 5, 1), -30.0, "Utilities", "may"),
        Transaction(date(2024, 5, 2), 1000.0, "Salary", "income is ignored"),
    ])
    assert processor.forecast(today=date(2024, 6, 15)) == {"Utilities": -60.0}


def test_forecast_ignores_expenses_before_window():
    processor = TransactionProcessor([
        Transaction(date(2024, 3, 14), -500.0, "Transport", "too old"),
        Transaction(date(2024, 3, 15), -40.0, "Transport", "on the boundary"),
    ])
    assert processor.forecast(today=date(2024, 6, 15)) == {"Transport": -40.0}


def test_forecast_empty_cases():
    assert TransactionProcessor().forecast() == {}
    income_only = TransactionProcessor([Transaction(date(2024, 6, 1), 10.0, "Salary", "x")])
    assert income_only.forecast(today=date(2024, 6, 15)) == {}


def test_to_frame_columns(processor):
    df = processor.to_frame()
    assert list(df.columns) == ["Date", "Amount", "Category", "Description", "Month"]
    assert len(df) == 5
    assert df["Month"].tolist()[:2] == ["2024-01", "2024-01"]


def test_to_frame_empty():
    df = TransactionProcessor().to_frame()
    assert df.empty
    assert "Amount" in df.columns


def test_export_then_load(tmp_path, processor):
    path = tmp_path / "transactions.txt"
    assert processor.export_to_path(path) is True
    assert path.read_text(encoding="utf-8").splitlines()[0] == "[2024-01-05] [-50] [Groceries] [milk]"

    restored = TransactionProcessor()
    assert restored.load_from_path(path) == 5
    assert restored.transactions == processor.transactions


def test_load_missing_file_adds_nothing(tmp_path):
    processor = TransactionProcessor()
    assert processor.load_from_path(tmp_path / "missing.txt") == 0
    assert processor.is_empty()


@pytest.mark.parametrize(
    "line",
    [
        "[2024-01-05] [-1e400] [Other] [overflow]",
        "[2024-01-05] [-5] [Other] [tea\nand cake]",
    ],
)
def test_import_rejects_lines_that_would_not_survive_a_save(tmp_path, line):
    processor = TransactionProcessor()
    assert processor.import_lines([line]) == 0

    processor.import_lines(["[2024-01-06] [-5] [Other] [tea and cake]"])
    path = tmp_path / "transactions.txt"
    assert processor.export_to_path(path) is True

    restored = TransactionProcessor()
    restored.load_from_path(path)
    assert restored.transactions == processor.transactions


def test_import_with_errors_reports_rejected_lines():
    processor = TransactionProcessor()
    added, errors = processor.import_with_errors(["[2024-01-05] [-50] [Groceries] [milk]", "", "broken"])
    assert added == 1
    assert [e.line for e in errors] == ["broken"]
