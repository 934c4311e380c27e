import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from telegram import Chat, Message, Sticker, Update, User

from helpers import FakeBot, FakeProbe, make_callback_update, make_config, make_message, make_update
from toki_telegram.cron import CronjobRunner
from toki_telegram.dispatcher import ADMIN_REQUIRED_TEXT, Dispatcher
from toki_telegram.loader import PluginLoader
from toki_telegram.registry import BotState

REPO_PLUGINS = Path(__file__).resolve().parents[1] / "toki-core" / "plugins"


def _dispatcher() -> Dispatcher:
    loader = PluginLoader(REPO_PLUGINS)
    state = BotState()
    state.swap_commands(loader.load_commands())
    state.swap_events(loader.load_events())
    return Dispatcher(state, make_config(), probe=FakeProbe())


def _dispatch(dispatcher: Dispatcher, bot: FakeBot, *updates: Update) -> None:
    async def run() -> None:
        for update in updates:
            await dispatcher.dispatch_message(update, bot)

    asyncio.run(run())


def test_message_logger_event_logs_every_message(caplog) -> None:
    dispatcher = _dispatcher()

    with caplog.at_level(logging.INFO):
        asyncio.run(dispatcher.run_events(make_update("hello", user_id=77), FakeBot()))

    records = [record for record in caplog.records if record.getMessage() == "message_received"]
    assert len(records) == 1
    assert records[0].user_id == 77
    assert records[0].full_name == "Tester"
    assert records[0].text == "hello"
    assert not [record for record in caplog.records if record.levelno >= logging.ERROR]


def test_ping_requires_prefix_and_shares_cooldown_with_alias() -> None:
    dispatcher = _dispatcher()
    bot = FakeBot()

    _dispatch(dispatcher, bot, make_update("ping", user_id=5), make_update("/ping", user_id=5), make_update("/p", user_id=6))

    assert bot.texts() == ["Pong!", "Pong!"]


def test_help_lists_commands_with_usage() -> None:
    dispatcher = _dispatcher()
    bot = FakeBot()

    _dispatch(dispatcher, bot, make_update("menu"))

    text = bot.texts()[0]
    assert text.startswith("Available commands:")
    assert "/ping - Check if the bot is responsive" in text
    assert "Usage: /getsticker (reply to a sticker)" in text


def test_demo_is_admin_only_and_sends_each_kind() -> None:
    dispatcher = _dispatcher()
    bot = FakeBot()

    _dispatch(
        dispatcher,
        bot,
        make_update("/demo sticker", user_id=9),
        make_update("/demo sticker", user_id=1),
    )

    assert bot.texts() == [ADMIN_REQUIRED_TEXT]
    assert bot.sent("send_sticker")[0][1]["sticker"].startswith("CAACAgQ")


def test_getsticker_replies_with_file_id() -> None:
    dispatcher = _dispatcher()
    bot = FakeBot()
    sticker_message = Message(
        message_id=3,
        date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        chat=Chat(id=-100, type="private"),
        from_user=User(id=42, first_name="Tester", is_bot=False),
        sticker=Sticker(
            file_id="STICKER-FILE-ID",
            file_unique_id="unique",
            width=512,
            height=512,
            is_animated=False,
            is_video=False,
            type=Sticker.REGULAR,
        ),
    )

    _dispatch(
        dispatcher,
        bot,
        make_update("/stickerid", reply_to=sticker_message),
        make_update("/getsticker", user_id=43),
    )

    assert bot.texts()[0] == "STICKER-FILE-ID"
    assert bot.texts()[1].startswith("Please reply to a sticker")


def test_greet_answers_every_reply_to_its_prompt() -> None:
    dispatcher = _dispatcher()
    bot = FakeBot()
    _dispatch(dispatcher, bot, make_update("/greet"))
    prompt_id = bot.last_sent.message_id
    anchor = make_message("Please reply to this message with your name!", message_id=prompt_id)

    _dispatch(dispatcher, bot, make_update("Ada", reply_to=anchor), make_update("/help", reply_to=anchor))

    assert bot.texts() == [
        "Please reply to this message with your name!",
        "Nice to meet you, Ada!",
        "Nice to meet you, /help!",
    ]


def test_listen_answers_hello_in_the_same_chat_only() -> None:
    dispatcher = _dispatcher()
    bot = FakeBot()

    _dispatch(
        dispatcher,
        bot,
        make_update("/listen"),
        make_update("Hello there"),
        make_update("hello from elsewhere", chat_id=-200),
    )

    assert bot.texts() == [
        'Listening for "hello" for 60 seconds.',
        'I heard you say "hello"! What\'s up?',
    ]


def test_button_registers_an_answer_callback() -> None:
    dispatcher = _dispatcher()
    bot = FakeBot()
    _dispatch(dispatcher, bot, make_update("/button"))
    markup = bot.sent("send_message")[0][1]["reply_markup"]
    button_id = markup.inline_keyboard[0][0].callback_data

    asyncio.run(dispatcher.dispatch_callback(make_callback_update(button_id, user_id=9), bot))

    assert bot.texts()[-1] == "Button clicked by user 9!"


def test_daily_reminder_cronjob_sends_to_configured_chat(monkeypatch) -> None:
    monkeypatch.setenv("DAILY_REMINDER_CHAT_ID", "-1001")
    cronjob = PluginLoader(REPO_PLUGINS).load_cronjobs()[0]
    runner = CronjobRunner(_dispatcher())
    runner.bot = FakeBot()

    asyncio.run(runner.run_job(cronjob))

    assert runner.bot.calls == [
        ("send_message", {"text": "Good morning! This is your daily reminder.", "chat_id": "-1001"})
    ]
