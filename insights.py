from typing import Dict, List, Mapping

import pandas as pd

STATUS_EXCEEDED = "Exceeded"
STATUS_OK = "Within budget"


def _prep(df: pd.DataFrame) -> pd.DataFrame:
    """
    Adds helper columns used by the aggregations below.
    """
    df = df.copy()
    if df.empty:
        for col in ("AbsExpense", "Income"):
            df[col] = pd.Series(dtype=float)
        return df

    df["Date"] = pd.to_datetime(df["Date"])
    df["Amount"] = pd.to_numeric(df["Amount"], errors="coerce").fillna(0)
    df["AbsExpense"] = df["Amount"].where(df["Amount"] < 0, 0).abs()
    df["Income"] = df["Amount"].where(df["Amount"] > 0, 0)
    return df


def expenses_by_category(df: pd.DataFrame, order: str = "category") -> pd.DataFrame:
    """Total absolute expense per category.

    ``order`` is ``"category"`` (alphabetical) or ``"total"`` (largest first).
    """
    df = _prep(df)
    expenses = df[df["AbsExpense"] > 0]
    if expenses.empty:
        return pd.DataFrame(columns=["Category", "Amount"])

    by_cat = expenses.groupby("Category")["AbsExpense"].sum().reset_index()
    by_cat.columns = ["Category", "Amount"]
    if order == "total":
        by_cat = by_cat.sort_values("Amount", ascending=False, kind="stable")
    return by_cat.reset_index(drop=True)


def monthly_income_expense(df: pd.DataFrame) -> pd.DataFrame:
    """Income and absolute expenses per calendar month, oldest first."""
    df = _prep(df)
    if df.empty:
        return pd.DataFrame(columns=["Month", "Income", "Expense"])

    monthly = (
        df.groupby(df["Date"].dt.to_period("M"))
        .agg(Income=("Income", "sum"), Expense=("AbsExpense", "sum"))
        .sort_index()
        .reset_index()
    )
    monthly = monthly.rename(columns={"Date": "Month"})
    monthly["Month"] = monthly["Month"].dt.to_timestamp()
    return monthly


def daily_savings(df: pd.DataFrame) -> pd.DataFrame:
    """Running balance: cumulative net amount at the end of each day."""
    df = _prep(df)
    if df.empty:
        return pd.DataFrame(columns=["Date", "Savings"])

    daily = df.groupby(df["Date"].dt.normalize())["Amount"].sum().sort_index().cumsum().reset_index()
    daily.columns = ["Date", "Savings"]
    return daily


def compute_budget_status(df: pd.DataFrame, budgets: Mapping[str, float]) -> List[Dict]:
    """
    Actual expense versus budget for every category that has expenses.

    Categories missing from ``budgets`` are compared against a zero limit.
    Rows are ordered by actual expense, largest first.
    """
    by_cat = expenses_by_category(df, order="total")

    status = []
    for _, row in by_cat.iterrows():
        category = row["Category"]
        limit = float(budgets.get(category, 0.0))
        spent = float(row["Amount"])
        remaining = limit - spent
        is_over = spent > limit
        status.append({
            "category": category,
            "limit": limit,
            "spent": spent,
            "remaining": remaining,
            "is_over": is_over,
            "status": STATUS_EXCEEDED if is_over else STATUS_OK,
        })
    return status


def forecast_rows(forecast: Mapping[str, float]) -> List[Dict]:
    """Forecast as display rows with positive amounts, largest first."""
    rows = [{"category": category, "monthly": abs(value)} for category, value in forecast.items()]
    return sorted(rows, key=lambda r: r["monthly"], reverse=True)


def summarize_budget_watch(budget_status) -> List[str]:
    """Return human-readable alerts for categories over budget."""

    alerts = []
    for entry in budget_status or []:
        if entry["is_over"]:
            alerts.append(
                f"{entry['category']} is over budget by {abs(entry['remaining']):,.2f} "
                f"(spent {entry['spent']:,.2f} of {entry['limit']:,.2f})."
            )
    return alerts
