# dashboard.py: plotly charts and table images shared by both front-ends

from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

import config
from insights import daily_savings, expenses_by_category, monthly_income_expense
from logging_setup import get_logger
from models import DATE_FORMAT, Transaction, format_amount

logger = get_logger("dashboard")

CHART_WIDTH = 800
CHART_HEIGHT = 600

MONTHLY_CHART = "monthly_expenses_income.png"
CATEGORY_CHART = "expenses_by_category.png"
PIE_CHART = "expenses_pie_chart.png"
SAVINGS_CHART = "days_savings.png"
TREND_CHARTS = (MONTHLY_CHART, CATEGORY_CHART, PIE_CHART, SAVINGS_CHART)

EXPENSE_COLOR = "#FF5252"
INCOME_COLOR = "#4CAF50"
HEADER_COLOR = "#E0E0E0"


# --- Trend charts ---

def income_vs_expense_monthly(df):
    """
    Line chart of income vs expenses per month.
    """
    monthly = monthly_income_expense(df)

    fig = go.Figure()
    fig.add_trace(go.Scatter(x=monthly["Month"], y=monthly["Expense"], name="Expenses",
                             mode="lines+markers", line_color=EXPENSE_COLOR))
    fig.add_trace(go.Scatter(x=monthly["Month"], y=monthly["Income"], name="Income",
                             mode="lines+markers", line_color=INCOME_COLOR))
    fig.update_layout(title="Monthly Expenses and Income", xaxis_title="Month", yaxis_title="Amount")
    fig.update_xaxes(tickformat="%Y-%m")
    return fig


def expenses_by_category_bar(df):
    """
    Bar chart of total expenses per category, alphabetical.
    """
    by_cat = expenses_by_category(df)

    fig = go.Figure(go.Bar(x=by_cat["Category"], y=by_cat["Amount"], name="Expenses", marker_color=EXPENSE_COLOR))
    fig.update_layout(title="Expenses by Category", xaxis_title="Category", yaxis_title="Expenses",
                      showlegend=True)
    return fig


def cat_spend(df):
    """
    Pie chart of the expense distribution across categories.
    """
    by_cat = expenses_by_category(df)

    fig = px.pie(by_cat, values="Amount", names="Category", title="Expense Distribution")
    fig.update_traces(textposition="inside", textinfo="percent+label")
    return fig


def savings_trend(df):
    """
    Running savings (cumulative cashflow) per day.
    """
    daily = daily_savings(df)

    fig = go.Figure(go.Scatter(x=daily["Date"], y=daily["Savings"], name="Savings", mode="lines+markers"))
    fig.update_layout(title="Savings by Day", xaxis_title="Day", yaxis_title="Amount", showlegend=True)
    fig.update_xaxes(tickformat="%Y-%m-%d")
    return fig


def trend_figures(df) -> Dict[str, go.Figure]:
    return {
        MONTHLY_CHART: income_vs_expense_monthly(df),
        CATEGORY_CHART: expenses_by_category_bar(df),
        PIE_CHART: cat_spend(df),
        SAVINGS_CHART: savings_trend(df),
    }


# --- Table images ---

def _table_figure(headers: Sequence[str], columns: Sequence[Sequence], title: str, font_colors=None):
    rows = len(columns[0]) if columns else 0
    cells = dict(values=list(columns), align="left", height=28)
    if font_colors is not None:
        cells["font"] = dict(color=font_colors)

    fig = go.Figure(go.Table(
        header=dict(values=list(headers), fill_color=HEADER_COLOR, align="left", height=30),
        cells=cells,
    ))
    fig.update_layout(title=title, width=CHART_WIDTH, height=120 + 30 * (rows + 1),
                      margin=dict(l=20, r=20, t=50, b=20))
    return fig


def transactions_table(transactions: Sequence[Transaction]):
    """Numbered transaction table; numbers are the indexes delete expects."""
    return _table_figure(
        ["#", "Date", "Amount", "Category", "Description"],
        [
            [str(i) for i in range(len(transactions))],
            [t.date.strftime(DATE_FORMAT) for t in transactions],
            [format_amount(t.amount) for t in transactions],
            [t.category for t in transactions],
            [t.description for t in transactions],
        ],
        "Transactions",
    )


def budget_table(budget_status: List[Dict]):
    colors = [EXPENSE_COLOR if row["is_over"] else INCOME_COLOR for row in budget_status]
    black = ["black"] * len(budget_status)
    return _table_figure(
        ["#", "Category", "Budget", "Actual expense", "Status"],
        [
            [str(i + 1) for i in range(len(budget_status))],
            [row["category"] for row in budget_status],
            [f"{row['limit']:,.2f}" for row in budget_status],
            [f"{row['spent']:,.2f}" for row in budget_status],
            [row["status"] for row in budget_status],
        ],
        "Budget",
        font_colors=[black, black, black, colors, colors],
    )


def forecast_table(rows: List[Dict]):
    return _table_figure(
        ["#", "Category", "Forecast"],
        [
            [str(i + 1) for i in range(len(rows))],
            [row["category"] for row in rows],
            [f"{row['monthly']:,.2f}" for row in rows],
        ],
        f"Average monthly expenses (last {config.FORECAST_MONTHS} months)",
    )


def expenses_diagram(df):
    """
    Horizontal bars of expenses per category, largest on top.
    """
    by_cat = expenses_by_category(df, order="total")
    palette = px.colors.qualitative.Plotly

    fig = go.Figure(go.Bar(
        x=by_cat["Amount"], y=by_cat["Category"], orientation="h",
        text=[f"{v:,.2f}" for v in by_cat["Amount"]], textposition="outside",
        marker_color=[palette[i % len(palette)] for i in range(len(by_cat))],
    ))
    fig.update_layout(title="Expenses by Category", height=max(300, 120 + 40 * len(by_cat)))
    fig.update_yaxes(autorange="reversed")
    return fig


# --- Export ---

def figure_to_png(fig, width: int = CHART_WIDTH, height: int | None = None) -> bytes:
    return fig.to_image(format="png", width=width, height=height or fig.layout.height or CHART_HEIGHT)


def save_figure(fig, path: Path, width: int = CHART_WIDTH, height: int = CHART_HEIGHT) -> Path:
    fig.write_image(str(path), width=width, height=height)
    return path


def render_trend_charts(df: pd.DataFrame, out_dir: Path) -> List[Path]:
    """
    Writes the four trend charts as PNG files under their fixed names.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for name, fig in trend_figures(df).items():
        path = save_figure(fig, out_dir / name)
        logger.info("Saved chart %s", path)
        paths.append(path)
    return paths
