"""
codec.py
--------
Line format shared by file import/export and the bot's quick add::

    [2024-01-05] [-50] [Groceries] [milk]

One transaction per line, four bracketed fields separated by ``"] ["``.
"""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Iterable, List, Tuple

from logging_setup import get_logger
from models import DATE_FORMAT, Transaction, format_amount

logger = get_logger("codec")

FIELD_DELIMITER = "] ["
FIELD_COUNT = 4

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# Invariant decimal: sign, digits, optional point and exponent. No commas.
_AMOUNT_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


class ParseError(ValueError):
    """A line that is not a well-formed transaction."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason


def split_fields(line: str) -> List[str]:
    """Strip one leading ``[`` and one trailing ``]`` and split on ``"] ["``."""
    text = line.strip()
    if text.startswith("["):
        text = text[1:]
    if text.endswith("]"):
        text = text[:-1]
    return text.split(FIELD_DELIMITER)


def parse_date(value: str) -> date:
    value = value.strip()
    if not _DATE_RE.match(value):
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
    return date.fromisoformat(value)


def parse_amount(value: str) -> float:
    value = value.strip()
    if not _AMOUNT_RE.match(value):
        raise ValueError(f"amount must be a decimal number, got {value!r}")
    amount = float(value)
    if not math.isfinite(amount):
        raise ValueError(f"amount is out of range, got {value!r}")
    return amount


def parse_line(line: str) -> Transaction:
    """Parse one line into a :class:`Transaction`.

    Raises
    ------
    ParseError
        When the field count is not exactly four, a field spans more than
        one line or a field does not parse.
    """
    parts = split_fields(line)
    if len(parts) != FIELD_COUNT:
        raise ParseError(line, f"expected {FIELD_COUNT} fields, got {len(parts)}")
    if any("\n" in part or "\r" in part for part in parts):
        raise ParseError(line, "fields must not contain line breaks")

    try:
        t_date = parse_date(parts[0])
        amount = parse_amount(parts[1])
    except ValueError as exc:
        raise ParseError(line, str(exc)) from exc

    return Transaction(date=t_date, amount=amount, category=parts[2], description=parts[3])


def parse_lines(lines: Iterable[str]) -> Tuple[List[Transaction], List[ParseError]]:
    """Best-effort bulk parse: bad lines are logged and skipped, blank ones ignored."""
    transactions: List[Transaction] = []
    errors: List[ParseError] = []
    for line in lines:
        if not line.strip():
            continue
        try:
            transactions.append(parse_line(line))
        except ParseError as exc:
            logger.warning("Skipping line: %s", exc)
            errors.append(exc)
    return transactions, errors


def format_line(transaction: Transaction) -> str:
    return (
        f"[{transaction.date.strftime(DATE_FORMAT)}] "
        f"[{format_amount(transaction.amount)}] "
        f"[{transaction.category}] "
        f"[{transaction.description}]"
    )
