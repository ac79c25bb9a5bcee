"""Shared fixtures.

Data files always go to local disk during tests: ``S3_BUCKET`` from a
developer's ``.env`` would otherwise route storage calls to a real bucket.
"""

from __future__ import annotations

from datetime import date

import pytest

import config
from models import Transaction
from processor import TransactionProcessor


@pytest.fixture(autouse=True)
def _local_storage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "S3_BUCKET", None)
    monkeypatch.setattr(config, "FORECAST_MONTHS", 3)


@pytest.fixture
def transactions() -> list[Transaction]:
    return [
        Transaction(date(2024, 1, 5), -50.0, "Groceries", "milk"),
        Transaction(date(2024, 1, 6), 200.0, "Salary", "pay"),
        Transaction(date(2024, 1, 7), -20.0, "Transport", "bus"),
        Transaction(date(2024, 2, 3), -100.0, "Groceries", "market"),
        Transaction(date(2024, 2, 10), -20.0, "Entertainment", "cinema"),
    ]


@pytest.fixture
def processor(transactions) -> TransactionProcessor:
    return TransactionProcessor(transactions)
