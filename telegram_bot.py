"""Telegram front-end for the finance tracker.

All chats share one :class:`TransactionProcessor`. Per-chat conversation
state lives in a :class:`session.SessionStore`; every free-text reply is
routed through :data:`session.TRANSITIONS`.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional

from telegram import (
    BotCommand,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InputFile,
    InputMediaPhoto,
    Update,
)
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

import config
from codec import ParseError, parse_amount, parse_line, split_fields
from dashboard import (
    budget_table,
    expenses_diagram,
    figure_to_png,
    forecast_table,
    render_trend_charts,
    transactions_table,
)
from insights import compute_budget_status, forecast_rows, summarize_budget_watch
from logging_setup import get_logger
from models import SortOrder, TransactionField
from processor import TransactionProcessor
from session import ChatState, InMemorySessionStore, InputKind, SessionContext, SessionStore, next_state

logger = get_logger("telegram_bot")

NO_DATA = "No data. Add transactions through the menu first."
TRANSACTION_FORMAT_HINT = "Send a transaction as [YYYY-MM-DD] [amount] [category] [description]"
BUDGET_FORMAT_HINT = "Send a category and amount, for example [Other] [600]."

# Callbacks that make no sense on an empty store.
DATA_REQUIRED = {
    "view_transactions",
    "delete_transaction",
    "budget",
    "set_budget",
    "forecast",
    "trend_analysis",
}


def _keyboard(rows) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(label, callback_data=data) for label, data in row] for row in rows]
    )


MAIN_MENU = _keyboard([
    [("Import transactions from file", "add_file")],
    [("View transactions", "view_transactions")],
    [("Add transaction", "add_transaction")],
    [("Delete transaction", "delete_transaction")],
    [("Budget", "budget")],
    [("Forecast", "forecast")],
    [("Trend analysis", "trend_analysis")],
])

VIEW_MENU = _keyboard([
    [("Filter", "filter_transactions")],
    [("Sort", "transactions_sort_menu")],
    [("Expense diagram", "expenses_diagram")],
    [("Main menu", "main_menu")],
])

FILTER_MENU = _keyboard([
    [(field.label, f"filter_{field.value}")] for field in TransactionField
] + [[("Main menu", "main_menu")]])

SET_BUDGET_MENU = _keyboard([
    [("Set budget", "set_budget")],
    [("Main menu", "main_menu")],
])

SORT_MENU = _keyboard([
    [(f"{field.label} ↑", f"sort_{field.value}_asc"), (f"{field.label} ↓", f"sort_{field.value}_desc")]
    for field in TransactionField
] + [[("Main menu", "main_menu")]])


class FinanceBot:
    """Update handlers; build an :class:`Application` with :meth:`build_application`."""

    def __init__(
        self,
        processor: TransactionProcessor,
        sessions: Optional[SessionStore] = None,
        chart_dir: Path = config.CHART_DIR,
    ):
        self.processor = processor
        self.sessions = sessions if sessions is not None else InMemorySessionStore()
        self.chart_dir = Path(chart_dir)

        self._callbacks: Dict[str, Callable[[object, int], Awaitable[None]]] = {
            "add_file": self._on_add_file,
            "view_transactions": self._on_view_transactions,
            "add_transaction": self._on_add_transaction,
            "delete_transaction": self._on_delete_transaction,
            "budget": self._on_budget,
            "set_budget": self._on_set_budget,
            "forecast": self._on_forecast,
            "trend_analysis": self._on_trend_analysis,
            "filter_transactions": self._on_filter_menu,
            "expenses_diagram": self._on_expenses_diagram,
            "transactions_sort_menu": self._on_sort_menu,
            "main_menu": self._on_main_menu,
        }
        self._state_handlers = {
            ChatState.AWAITING_TRANSACTION: self._handle_transaction,
            ChatState.AWAITING_DELETE_TRANSACTION: self._handle_delete,
            ChatState.AWAITING_FILTER_VALUE: self._handle_filter_value,
            ChatState.AWAITING_SET_BUDGET: self._handle_set_budget,
        }

    # --- Wiring ---

    def build_application(self, token: str) -> Application:
        application = Application.builder().token(token).post_init(self._post_init).build()
        application.add_handler(CommandHandler("start", self.start))
        application.add_handler(CallbackQueryHandler(self.on_callback))
        application.add_handler(MessageHandler(filters.Document.ALL, self.on_document))
        application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self.on_text))
        application.add_error_handler(self.on_error)
        return application

    def run(self, token: str) -> None:
        logger.info("Starting bot polling")
        self.build_application(token).run_polling()

    async def _post_init(self, application: Application) -> None:
        me = await application.bot.get_me()
        logger.info("@%s is running", me.username)
        await application.bot.set_my_commands([BotCommand("start", "Start the bot and show the main menu")])

    # --- Entry handlers ---

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = update.effective_chat.id
        self.sessions.clear(chat_id)
        await self.send_main_menu(context.bot, chat_id)

    async def on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = update.effective_chat.id
        text = update.message.text
        logger.info("Received %r in chat %s", text, chat_id)

        session = self.sessions.get(chat_id)
        target = next_state(session.state, InputKind.TEXT)
        if target is None:
            return

        # Consume the awaited reply before handling it: one shot, no retry.
        self.sessions.set(chat_id, session.resolved())
        await self._state_handlers[session.state](context.bot, chat_id, text, session)

    async def on_document(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = update.effective_chat.id
        session = self.sessions.get(chat_id)
        if next_state(session.state, InputKind.DOCUMENT) is None:
            return
        self.sessions.set(chat_id, session.resolved())

        document = update.message.document
        logger.info("Received file %s in chat %s", document.file_name, chat_id)
        bot = context.bot
        try:
            tg_file = await bot.get_file(document.file_id)
            content = await tg_file.download_as_bytearray()
            lines = bytes(content).decode("utf-8-sig").splitlines()
        except (TelegramError, UnicodeDecodeError) as e:
            logger.error("Could not read uploaded file: %s", e)
            await bot.send_message(chat_id, f"Could not process the file: {e}")
        else:
            added, errors = self.processor.import_with_errors(lines)
            skipped = len(errors)
            message = f"Added {added} transactions from the file."
            if skipped:
                message += f" Skipped {skipped} malformed lines."
            await bot.send_message(chat_id, message)

        await self.send_main_menu(bot, chat_id)

    async def on_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        chat_id = update.effective_chat.id
        data = query.data or ""
        logger.info("User %s clicked %s", getattr(query.from_user, "username", None), data)

        bot = context.bot
        try:
            if data in DATA_REQUIRED and self.processor.is_empty():
                await bot.send_message(chat_id, NO_DATA)
                await self.send_main_menu(bot, chat_id)
            elif data in self._callbacks:
                await self._callbacks[data](bot, chat_id)
            elif data.startswith("filter_"):
                await self._on_filter_field(bot, chat_id, data)
            elif data.startswith("sort_"):
                await self._on_sort(bot, chat_id, data)
            else:
                await bot.send_message(chat_id, "Unknown command.")
        finally:
            await query.answer()

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error("Error while handling an update", exc_info=context.error)

    # --- Menus ---

    async def send_main_menu(self, bot, chat_id: int) -> None:
        await bot.send_message(chat_id, "Choose an action:", reply_markup=MAIN_MENU)

    async def send_view_menu(self, bot, chat_id: int) -> None:
        await bot.send_message(chat_id, "Choose an action:", reply_markup=VIEW_MENU)

    async def send_set_budget_menu(self, bot, chat_id: int) -> None:
        await bot.send_message(chat_id, "Choose an action:", reply_markup=SET_BUDGET_MENU)

    # --- Callback actions ---

    async def _on_add_file(self, bot, chat_id: int) -> None:
        self.sessions.set(chat_id, SessionContext().awaiting(ChatState.AWAITING_FILE))
        await bot.send_message(chat_id, "Send a text file with one transaction per line.")

    async def _on_view_transactions(self, bot, chat_id: int) -> None:
        await self.send_transactions(bot, chat_id)
        await self.send_view_menu(bot, chat_id)

    async def _on_add_transaction(self, bot, chat_id: int) -> None:
        self.sessions.set(chat_id, SessionContext().awaiting(ChatState.AWAITING_TRANSACTION))
        await bot.send_message(chat_id, TRANSACTION_FORMAT_HINT)

    async def _on_delete_transaction(self, bot, chat_id: int) -> None:
        self.sessions.set(chat_id, SessionContext().awaiting(ChatState.AWAITING_DELETE_TRANSACTION))
        await bot.send_message(
            chat_id,
            f"Send the number of the transaction to delete (0-{len(self.processor) - 1}).",
        )

    async def _on_budget(self, bot, chat_id: int) -> None:
        await self.send_budget(bot, chat_id)
        await self.send_set_budget_menu(bot, chat_id)

    async def _on_set_budget(self, bot, chat_id: int) -> None:
        self.sessions.set(chat_id, SessionContext().awaiting(ChatState.AWAITING_SET_BUDGET))
        await bot.send_message(chat_id, BUDGET_FORMAT_HINT)

    async def _on_forecast(self, bot, chat_id: int) -> None:
        rows = forecast_rows(self.processor.forecast())
        if rows:
            await self.send_figure(bot, chat_id, forecast_table(rows), "forecast.png", "Your forecast:")
        else:
            await bot.send_message(chat_id, f"No expenses in the last {config.FORECAST_MONTHS} months.")
        await self.send_main_menu(bot, chat_id)

    async def _on_trend_analysis(self, bot, chat_id: int) -> None:
        await self.send_trend_charts(bot, chat_id)
        await self.send_main_menu(bot, chat_id)

    async def _on_filter_menu(self, bot, chat_id: int) -> None:
        await bot.send_message(chat_id, "Filter by:", reply_markup=FILTER_MENU)

    async def _on_filter_field(self, bot, chat_id: int, data: str) -> None:
        try:
            field = TransactionField.parse(data.split("_", 1)[1])
        except ValueError:
            await bot.send_message(chat_id, "Unknown command.")
            return
        self.sessions.set(chat_id, SessionContext().awaiting(ChatState.AWAITING_FILTER_VALUE, filter_field=field))
        await bot.send_message(chat_id, f"Send the {field.value} value to filter by.")

    async def _on_expenses_diagram(self, bot, chat_id: int) -> None:
        await self.send_figure(
            bot, chat_id, expenses_diagram(self.processor.to_frame()), "expenses.png", "Expenses by category:"
        )
        await self.send_view_menu(bot, chat_id)

    async def _on_sort_menu(self, bot, chat_id: int) -> None:
        await bot.send_message(chat_id, "Choose a field and sort order:", reply_markup=SORT_MENU)

    async def _on_sort(self, bot, chat_id: int, data: str) -> None:
        parts = data.split("_")
        try:
            if len(parts) != 3:
                raise ValueError(data)
            self.processor.sort(parts[1], parts[2])
        except ValueError:
            await bot.send_message(chat_id, "Unknown command.")
            return
        await bot.send_message(chat_id, "Transactions sorted.")
        await self.send_transactions(bot, chat_id)
        await self.send_view_menu(bot, chat_id)

    async def _on_main_menu(self, bot, chat_id: int) -> None:
        await self.send_main_menu(bot, chat_id)

    # --- Awaited replies ---

    async def _handle_transaction(self, bot, chat_id: int, text: str, session: SessionContext) -> None:
        try:
            transaction = parse_line(text)
        except ParseError as e:
            await bot.send_message(chat_id, f"Could not add the transaction: {e.reason}.")
        else:
            self.processor.append(transaction)
            await bot.send_message(chat_id, "Transaction added.")
        await self.send_main_menu(bot, chat_id)

    async def _handle_delete(self, bot, chat_id: int, text: str, session: SessionContext) -> None:
        try:
            index = int(text.strip())
        except ValueError:
            index = -1
        if self.processor.delete(index):
            await bot.send_message(chat_id, "Transaction deleted.")
        else:
            await bot.send_message(chat_id, "Enter a valid transaction number.")
        await self.send_main_menu(bot, chat_id)

    async def _handle_filter_value(self, bot, chat_id: int, text: str, session: SessionContext) -> None:
        try:
            self.processor.filter(session.filter_field, text.strip())
        except ValueError as e:
            await bot.send_message(chat_id, f"Filter error: {e}")
            return
        await bot.send_message(chat_id, "Filter applied.")
        await self.send_transactions(bot, chat_id)
        await self.send_view_menu(bot, chat_id)

    async def _handle_set_budget(self, bot, chat_id: int, text: str, session: SessionContext) -> None:
        try:
            parts = split_fields(text)
            if len(parts) != 2:
                raise ParseError(text, "expected [category] [amount]")
            category = parts[0].strip()
            amount = parse_amount(parts[1])
        except ValueError as e:
            await bot.send_message(chat_id, f"Could not set the budget: {e}")
            return
        self.processor.set_budget(category, amount)
        await self.send_budget(bot, chat_id)
        await self.send_set_budget_menu(bot, chat_id)

    # --- Rendering ---

    async def send_figure(self, bot, chat_id: int, fig, filename: str, caption: str = "") -> None:
        try:
            png = figure_to_png(fig)
            await bot.send_photo(chat_id, photo=InputFile(io.BytesIO(png), filename=filename), caption=caption)
        except (TelegramError, ValueError, RuntimeError) as e:
            logger.error("Could not send image %s: %s", filename, e)
            await bot.send_message(chat_id, f"Could not send the image: {e}")

    async def send_transactions(self, bot, chat_id: int) -> None:
        if self.processor.is_empty():
            await bot.send_message(chat_id, "No transactions to show.")
            return
        await self.send_figure(
            bot, chat_id, transactions_table(self.processor.transactions), "transactions.png", "Your transactions:"
        )

    async def send_budget(self, bot, chat_id: int) -> None:
        status = compute_budget_status(self.processor.to_frame(), self.processor.budgets)
        if not status:
            await bot.send_message(chat_id, "No expenses to compare against the budget yet.")
            return
        caption = "\n".join(["Your budget:"] + summarize_budget_watch(status))
        await self.send_figure(bot, chat_id, budget_table(status), "budget.png", caption)

    async def send_trend_charts(self, bot, chat_id: int) -> None:
        try:
            paths = render_trend_charts(self.processor.to_frame(), self.chart_dir)
        except (ValueError, RuntimeError, OSError) as e:
            logger.error("Could not render trend charts: %s", e)
            await bot.send_message(chat_id, "Could not generate the charts.")
            return

        media = []
        for path in paths:
            try:
                media.append(InputMediaPhoto(media=path.read_bytes(), caption=path.name))
            except OSError as e:
                logger.error("Could not read chart %s: %s", path, e)
                await bot.send_message(chat_id, f"Could not read chart {path.name}.")

        if media:
            try:
                await bot.send_media_group(chat_id, media=media)
            except TelegramError as e:
                logger.error("Could not send charts: %s", e)
                await bot.send_message(chat_id, "Could not send the charts. Please try again.")
