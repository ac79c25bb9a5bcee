import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

import telegram_bot
from dashboard import TREND_CHARTS
from models import TransactionField
from processor import TransactionProcessor
from session import ChatState
from telegram_bot import MAIN_MENU, NO_DATA, FinanceBot

CHAT_ID = 42


@pytest.fixture(autouse=True)
def _no_image_export(monkeypatch):
    monkeypatch.setattr(telegram_bot, "figure_to_png", lambda fig: b"png")


@pytest.fixture
def bot(processor, tmp_path):
    return FinanceBot(processor, chart_dir=tmp_path)


@pytest.fixture
def context():
    return SimpleNamespace(bot=AsyncMock())


def text_update(text):
    return SimpleNamespace(effective_chat=SimpleNamespace(id=CHAT_ID), message=SimpleNamespace(text=text))


def callback_update(data):
    query = SimpleNamespace(data=data, from_user=SimpleNamespace(username="alice"), answer=AsyncMock())
    return SimpleNamespace(effective_chat=SimpleNamespace(id=CHAT_ID), callback_query=query)


def document_update(file_name="tx.txt"):
    document = SimpleNamespace(file_id="file-1", file_name=file_name)
    return SimpleNamespace(effective_chat=SimpleNamespace(id=CHAT_ID), message=SimpleNamespace(document=document))


def sent_texts(context):
    return [call.args[1] for call in context.bot.send_message.call_args_list]


def click(bot, context, data):
    update = callback_update(data)
    asyncio.run(bot.on_callback(update, context))
    return update


def reply(bot, context, text):
    asyncio.run(bot.on_text(text_update(text), context))


def test_start_shows_main_menu(bot, context):
    asyncio.run(bot.start(text_update("/start"), context))
    context.bot.send_message.assert_awaited_once_with(CHAT_ID, "Choose an action:", reply_markup=MAIN_MENU)


def test_add_transaction_flow(bot, context, processor):
    click(bot, context, "add_transaction")
    assert bot.sessions.get(CHAT_ID).state is ChatState.AWAITING_TRANSACTION

    reply(bot, context, "[2024-03-01] [-10] [Other] [snack]")

    assert len(processor) == 6
    assert processor.transactions[-1].description == "snack"
    assert "Transaction added." in sent_texts(context)
    assert bot.sessions.get(CHAT_ID).state is ChatState.IDLE


def test_bad_transaction_is_consumed_without_retry(bot, context, processor):
    click(bot, context, "add_transaction")
    reply(bot, context, "[2024-03-01] [ten] [Other] [snack]")

    assert len(processor) == 5
    assert any(text.startswith("Could not add the transaction") for text in sent_texts(context))
    assert bot.sessions.get(CHAT_ID).state is ChatState.IDLE


def test_text_while_idle_is_ignored(bot, context, processor):
    reply(bot, context, "[2024-03-01] [-10] [Other] [snack]")
    assert len(processor) == 5
    context.bot.send_message.assert_not_awaited()


def test_data_required_actions_on_empty_store(context, tmp_path):
    bot = FinanceBot(TransactionProcessor(), chart_dir=tmp_path)
    update = click(bot, context, "budget")

    assert sent_texts(context)[0] == NO_DATA
    update.callback_query.answer.assert_awaited_once()


def test_unknown_callback(bot, context):
    click(bot, context, "launch_rockets")
    assert sent_texts(context) == ["Unknown command."]


def test_delete_flow(bot, context, processor):
    click(bot, context, "delete_transaction")
    assert "(0-4)" in sent_texts(context)[0]

    reply(bot, context, "0")
    assert len(processor) == 4
    assert "Transaction deleted." in sent_texts(context)


def test_delete_out_of_range(bot, context, processor):
    click(bot, context, "delete_transaction")
    reply(bot, context, "9")
    assert len(processor) == 5
    assert "Enter a valid transaction number." in sent_texts(context)


def test_filter_flow(bot, context, processor):
    click(bot, context, "filter_category")
    session = bot.sessions.get(CHAT_ID)
    assert session.state is ChatState.AWAITING_FILTER_VALUE
    assert session.filter_field is TransactionField.CATEGORY

    reply(bot, context, "Groceries")

    assert [t.description for t in processor.transactions] == ["milk", "market"]
    assert "Filter applied." in sent_texts(context)
    context.bot.send_photo.assert_awaited_once()


def test_sort_callback(bot, context, processor):
    click(bot, context, "sort_amount_desc")
    assert processor.transactions[0].amount == 200.0
    assert "Transactions sorted." in sent_texts(context)


def test_malformed_sort_callback(bot, context, processor):
    before = list(processor.transactions)
    click(bot, context, "sort_amount")
    assert sent_texts(context) == ["Unknown command."]
    assert processor.transactions == before


def test_set_budget_flow(bot, context, processor):
    click(bot, context, "set_budget")
    assert bot.sessions.get(CHAT_ID).state is ChatState.AWAITING_SET_BUDGET

    reply(bot, context, "[Groceries] [100]")

    assert processor.budget_for("Groceries") == 100.0
    caption = context.bot.send_photo.await_args.kwargs["caption"]
    assert "Groceries is over budget by 50.00" in caption


def test_set_budget_rejects_bad_reply(bot, context, processor):
    click(bot, context, "set_budget")
    reply(bot, context, "[Groceries]")

    assert processor.budget_for("Groceries") == 0.0
    assert any(text.startswith("Could not set the budget") for text in sent_texts(context))


def test_file_upload_imports_valid_lines(bot, context, processor):
    content = b"[2024-03-01] [-5] [Other] [tea]\n[2024-03-02] [15] [Salary] [bonus]\nbroken\n"
    context.bot.get_file.return_value = SimpleNamespace(download_as_bytearray=AsyncMock(return_value=bytearray(content)))

    click(bot, context, "add_file")
    asyncio.run(bot.on_document(document_update(), context))

    assert len(processor) == 7
    assert "Added 2 transactions from the file. Skipped 1 malformed lines." in sent_texts(context)
    assert bot.sessions.get(CHAT_ID).state is ChatState.IDLE


def test_document_without_request_is_ignored(bot, context, processor):
    asyncio.run(bot.on_document(document_update(), context))
    context.bot.get_file.assert_not_awaited()
    assert len(processor) == 5


def test_forecast_without_recent_expenses(bot, context):
    click(bot, context, "forecast")
    assert sent_texts(context)[0] == "No expenses in the last 3 months."


def test_trend_analysis_sends_media_group(bot, context, tmp_path, monkeypatch):
    paths = []
    for name in TREND_CHARTS:
        path = tmp_path / name
        path.write_bytes(b"png")
        paths.append(path)
    monkeypatch.setattr(telegram_bot, "render_trend_charts", lambda df, out_dir: paths)

    click(bot, context, "trend_analysis")

    media = context.bot.send_media_group.await_args.kwargs["media"]
    assert len(media) == 4


def test_image_failure_is_reported(bot, context, monkeypatch):
    def broken(fig):
        raise ValueError("kaleido missing")

    monkeypatch.setattr(telegram_bot, "figure_to_png", broken)
    click(bot, context, "view_transactions")
    assert "Could not send the image: kaleido missing" in sent_texts(context)


def test_quick_add_rejects_multiline_reply(bot, context, processor):
    click(bot, context, "add_transaction")
    reply(bot, context, "[2024-03-01] [-10] [Other] [tea\nand cake]")

    assert len(processor) == 5
    assert any("line breaks" in text for text in sent_texts(context))


def test_file_upload_does_not_count_blank_lines(bot, context, processor):
    content = b"[2024-03-01] [-5] [Other] [tea]\n\n\n[2024-03-02] [15] [Salary] [bonus]\n"
    context.bot.get_file.return_value = SimpleNamespace(download_as_bytearray=AsyncMock(return_value=bytearray(content)))

    click(bot, context, "add_file")
    asyncio.run(bot.on_document(document_update(), context))

    assert len(processor) == 7
    assert "Added 2 transactions from the file." in sent_texts(context)
