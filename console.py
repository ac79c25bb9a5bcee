"""Console front-end: numbered main menu rendered with ``rich``."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

import config
from codec import parse_amount, parse_date
from dashboard import render_trend_charts
from insights import compute_budget_status, expenses_by_category, forecast_rows, summarize_budget_watch
from logging_setup import get_logger
from models import CATEGORIES, SortOrder, Transaction, TransactionField, format_amount
from processor import TransactionProcessor

logger = get_logger("console")

NO_DATA = "[yellow]No data. Import or add transactions through the menu first.[/yellow]"

MENU_ITEMS = (
    ("1", "Import transactions from file"),
    ("2", "View transactions"),
    ("3", "Add transaction"),
    ("4", "Delete transaction"),
    ("5", "Budget"),
    ("6", "Forecast"),
    ("7", "Trend analysis"),
    ("8", "Exit"),
)

BAR_WIDTH = 40


class ConsoleApp:
    def __init__(
        self,
        processor: TransactionProcessor,
        console: Optional[Console] = None,
        data_file: Optional[str] = None,
        chart_dir: Path = config.CHART_DIR,
    ):
        self.processor = processor
        self.console = console or Console()
        self.data_file = data_file
        self.chart_dir = Path(chart_dir)
        self._actions = {
            "1": self.import_from_file,
            "2": self.view_transactions,
            "3": self.add_transaction,
            "4": self.delete_transaction,
            "5": self.budget,
            "6": self.forecast,
            "7": self.trend_analysis,
        }

    # --- Main loop ---

    def run(self) -> None:
        while True:
            self.console.clear()
            self.print_menu()
            choice = Prompt.ask("Choose a menu item", console=self.console)
            if choice == "8":
                self.exit()
                return

            action = self._actions.get(choice.strip())
            if action is None:
                self.console.print("[red]Invalid choice. Pick an item from 1 to 8.[/red]")
            else:
                action()
            self.pause()

    def print_menu(self) -> None:
        menu = Table(title="Menu", box=box.SIMPLE, show_header=False)
        menu.add_column(justify="center", width=4)
        menu.add_column(min_width=32)
        for key, label in MENU_ITEMS:
            menu.add_row(f"[cyan]{key}[/cyan]", label)
        self.console.print(menu)

    def pause(self) -> None:
        self.console.input("Press Enter to continue...")

    # --- 1. Import ---

    def import_from_file(self) -> None:
        path = Prompt.ask("Path to file", default="", show_default=False, console=self.console).strip()
        if not path:
            self.console.print("[red]Enter a non-empty path.[/red]")
            return

        self.data_file = path
        added = self.processor.load_from_path(path)
        self.console.print(f"[green]Added {added} transactions.[/green]")

    # --- 2. View / filter / sort ---

    def transactions_table(self) -> Table:
        table = Table(box=box.ROUNDED)
        for header in ("#", "Date", "Amount", "Category", "Description"):
            table.add_column(header, justify="center")
        for i, t in enumerate(self.processor.transactions):
            table.add_row(str(i), t.date.isoformat(), format_amount(t.amount), t.category, t.description)
        return table

    def view_transactions(self) -> None:
        if self.processor.is_empty():
            self.console.print(NO_DATA)
            return

        while True:
            self.console.clear()
            self.console.print(self.transactions_table())
            choice = Prompt.ask(
                "Choose an action", choices=["filter", "sort", "chart", "back"], default="back", console=self.console
            )
            if choice == "filter":
                self.filter_transactions()
            elif choice == "sort":
                self.sort_transactions()
            elif choice == "chart":
                self.expenses_chart()
                self.pause()
            else:
                return

    def _ask_field(self, title: str) -> TransactionField:
        name = Prompt.ask(title, choices=[f.value for f in TransactionField], console=self.console)
        return TransactionField.parse(name)

    def filter_transactions(self) -> None:
        field = self._ask_field("Filter by")
        values = self.processor.field_values(field)
        if not values:
            self.console.print(NO_DATA)
            return
        value = Prompt.ask("Value to keep", choices=values, console=self.console)
        self.processor.filter(field, value)

    def sort_transactions(self) -> None:
        field = self._ask_field("Sort by")
        order = Prompt.ask("Order", choices=[o.value for o in SortOrder], default="asc", console=self.console)
        self.processor.sort(field, order)

    def expenses_chart(self) -> None:
        by_cat = expenses_by_category(self.processor.to_frame())
        if by_cat.empty:
            self.console.print("[yellow]No expenses recorded.[/yellow]")
            return

        top = float(by_cat["Amount"].max())
        table = Table(title="Expense distribution by category", box=box.SIMPLE)
        table.add_column("Category", min_width=16)
        table.add_column("Amount", justify="right")
        table.add_column("", min_width=BAR_WIDTH)
        for _, row in by_cat.iterrows():
            bar = "█" * max(1, round(BAR_WIDTH * row["Amount"] / top))
            table.add_row(row["Category"], f"{row['Amount']:,.2f}", f"[red]{bar}[/red]")
        self.console.print(table)

    # --- 3. Add ---

    def add_transaction(self) -> None:
        while True:
            try:
                t_date = parse_date(Prompt.ask("Transaction date (e.g. 2024-10-26)", console=self.console))
                break
            except ValueError:
                self.console.print("[red]Enter a valid date in YYYY-MM-DD format.[/red]")

        while True:
            try:
                amount = parse_amount(Prompt.ask("Amount (negative for expenses)", console=self.console))
                break
            except ValueError:
                self.console.print("[red]Enter a valid amount.[/red]")

        for i, name in enumerate(CATEGORIES, 1):
            self.console.print(f"  [dim]{i}.[/dim] {name}")
        while True:
            choice = IntPrompt.ask("Category number", console=self.console)
            if 1 <= choice <= len(CATEGORIES):
                category = CATEGORIES[choice - 1]
                break
            self.console.print("[red]Enter a valid category number.[/red]")

        while True:
            description = Prompt.ask("Description", default="", show_default=False, console=self.console)
            if description.strip():
                break
            self.console.print("[red]Description must not be empty.[/red]")

        transaction = Transaction(date=t_date, amount=amount, category=category, description=description)
        self.processor.append(transaction)
        self.console.print(f"[green]Added:[/green] {transaction}")

    # --- 4. Delete ---

    def delete_transaction(self) -> None:
        if self.processor.is_empty():
            self.console.print(NO_DATA)
            return

        raw = Prompt.ask(
            f"Number of the transaction to delete (0-{len(self.processor) - 1})", console=self.console
        )
        try:
            index = int(raw)
        except ValueError:
            index = -1
        if self.processor.delete(index):
            self.console.print(f"[green]Transaction {index} was deleted.[/green]")
        else:
            self.console.print("[red]Enter a valid transaction number.[/red]")

    # --- 5. Budget ---

    def budget_table(self, status) -> Table:
        table = Table(box=box.ROUNDED)
        for header in ("#", "Category", "Budget", "Actual expense", "Status"):
            table.add_column(header, justify="center")
        for i, row in enumerate(status, 1):
            color = "red" if row["is_over"] else "green"
            table.add_row(
                str(i),
                row["category"],
                f"{row['limit']:,.2f}",
                f"[{color}]{row['spent']:,.2f}[/{color}]",
                f"[{color}]{row['status']}[/{color}]",
            )
        return table

    def budget(self) -> None:
        if self.processor.is_empty():
            self.console.print(NO_DATA)
            return

        while True:
            self.console.clear()
            status = compute_budget_status(self.processor.to_frame(), self.processor.budgets)
            self.console.print(self.budget_table(status))
            for alert in summarize_budget_watch(status):
                self.console.print(f"[red]{alert}[/red]")

            choice = Prompt.ask("Choose an action", choices=["set", "back"], default="back", console=self.console)
            if choice != "set":
                return
            self.set_budget()

    def set_budget(self) -> None:
        categories = self.processor.expense_categories()
        if not categories:
            self.console.print("[yellow]No expense categories to budget.[/yellow]")
            return

        category = Prompt.ask("Category", choices=categories, console=self.console)
        while True:
            try:
                amount = parse_amount(Prompt.ask("Budget amount", console=self.console))
            except ValueError:
                amount = -1.0
            if amount >= 0:
                break
            self.console.print("[red]Enter a non-negative number.[/red]")
        self.processor.set_budget(category, amount)

    # --- 6. Forecast ---

    def forecast(self) -> None:
        if self.processor.is_empty():
            self.console.print(NO_DATA)
            return

        rows = forecast_rows(self.processor.forecast())
        if not rows:
            self.console.print(f"[yellow]No expenses in the last {config.FORECAST_MONTHS} months.[/yellow]")
            return

        table = Table(title="Average monthly expenses", box=box.ROUNDED)
        for header in ("#", "Category", "Forecast"):
            table.add_column(header, justify="center")
        for i, row in enumerate(rows, 1):
            table.add_row(str(i), row["category"], f"{row['monthly']:,.2f}")
        self.console.print(table)

    # --- 7. Trends ---

    def trend_analysis(self) -> None:
        if self.processor.is_empty():
            self.console.print(NO_DATA)
            return

        try:
            paths = render_trend_charts(self.processor.to_frame(), self.chart_dir)
        except (ValueError, RuntimeError, OSError) as e:
            logger.error("Could not render trend charts: %s", e)
            self.console.print(f"[red]Could not generate the charts: {e}[/red]")
            return

        for path in paths:
            self.console.print(f"Saved chart to [cyan]{path.resolve()}[/cyan]")

    # --- 8. Exit ---

    def exit(self) -> None:
        target = self.data_file or config.DATA_FILE
        if self.processor.export_to_path(target):
            self.console.print(f"[green]Data saved to {target}.[/green]")
        else:
            self.console.print(f"[red]Could not save data to {target}.[/red]")
        self.console.print("Exiting...")
