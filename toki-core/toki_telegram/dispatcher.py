"""Inbound update routing.

Text messages go through, in order: reply-callback anchors, the command table
(with prefix, admin, VIP and rate-limit guards), the unknown-command hint for
prefixed text, and finally every matching passive listener. Button presses are
acknowledged, then routed to an answer callback or the button listeners.

Nothing raised by a handler leaves this module.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

from telegram import Bot, Update
from telegram.ext import ContextTypes

from config import AppConfig
from toki_telegram.chat import ChatReplier
from toki_telegram.registry import BotState, Command, HandlerContext
from utils.media import MediaProbe

logger = logging.getLogger(__name__)

ADMIN_REQUIRED_TEXT = "Admin access required."
VIP_REQUIRED_TEXT = "VIP access required."
RATE_LIMITED_TEXT = "Slow down! Try again in a moment."
COMMAND_ERROR_TEXT = "Error executing command."
REPLY_ERROR_TEXT = "Error processing reply."
BUTTON_ERROR_TEXT = "Error processing button action."
UNKNOWN_BUTTON_TEXT = "Unknown button action."


def parse_command(text: str, prefix: str) -> tuple[bool, str, list[str]]:
    """Split text into (has_prefix, command_name, args).

    Unprefixed text is tokenized the same way so listeners and the unknown
    command hint see a pseudo-command name.
    """
    has_prefix = bool(prefix) and text.startswith(prefix)
    body = text[len(prefix):] if has_prefix else text
    tokens = body.split()
    if not tokens:
        return has_prefix, "", []
    name = tokens[0].lower()
    if has_prefix and "@" in name:
        name = name.split("@", 1)[0]
    return has_prefix, name, tokens[1:]


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class Dispatcher:
    def __init__(self, state: BotState, config: AppConfig, probe: MediaProbe | None = None) -> None:
        self.state = state
        self.config = config
        self.probe = probe or MediaProbe(
            probe_timeout_seconds=config.media_probe_timeout_seconds,
            download_timeout_seconds=config.media_download_timeout_seconds,
        )

    # python-telegram-bot entry points

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.dispatch_message(update, context.bot)

    async def handle_events(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.run_events(update, context.bot)

    async def handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.dispatch_callback(update, context.bot)

    def build_context(
        self,
        bot: Bot,
        chat: ChatReplier,
        update: Update | None,
        chat_id: int | str | None,
        user_id: str | None,
        args: list[str] | None = None,
    ) -> HandlerContext:
        return HandlerContext(
            bot=bot,
            chat=chat,
            config=self.config,
            chat_id=chat_id,
            user_id=user_id,
            update=update,
            args=list(args or []),
            add_listener=self.state.add_listener,
            add_answer_callback=self.state.add_answer_callback,
            add_reply_callback=self.state.add_reply_callback,
            commands=self.state.commands,
        )

    async def dispatch_message(self, update: Update, bot: Bot) -> None:
        message = update.effective_message
        if message is None:
            return
        user = message.from_user
        if user is None:
            logger.info("Ignoring message with no sender information")
            return

        chat_id = message.chat.id
        user_id = str(user.id)
        text = message.text or ""
        prefix = self.config.command_prefix
        has_prefix, command_name, args = parse_command(text, prefix)
        chat = ChatReplier.for_message(bot, message, probe=self.probe)

        anchor = message.reply_to_message
        if anchor is not None:
            callback = self.state.reply_callbacks.get(anchor.message_id)
            if callback is not None:
                logger.info("Handling reply to message %s from user %s", anchor.message_id, user_id)
                try:
                    await callback(update)
                except Exception:  # noqa: BLE001
                    logger.exception("Error in reply callback for message %s", anchor.message_id)
                    await chat.reply(REPLY_ERROR_TEXT)
                return

        command = self.state.commands.get(command_name) if command_name else None
        if command is not None:
            ctx = self.build_context(bot, chat, update, chat_id, user_id, args)
            await self._run_command(command, ctx, has_prefix)
        elif has_prefix:
            logger.info("Unknown command '%s' from user %s", command_name, user_id)
            await chat.reply(f"Unknown command. Try {prefix}help.")
        else:
            await self._run_listeners(update)

    async def _run_command(self, command: Command, ctx: HandlerContext, has_prefix: bool) -> None:
        user_id = ctx.user_id
        if not command.prefix.allows(has_prefix):
            logger.debug(
                "Command %s ignored: prefix %s, has_prefix=%s", command.name, command.prefix.value, has_prefix
            )
            return
        if command.admin and not self.config.is_admin(user_id):
            logger.info("Command %s blocked: user %s is not admin", command.name, user_id)
            await ctx.chat.reply(ADMIN_REQUIRED_TEXT)
            return
        if command.vip and not (self.config.is_vip(user_id) or self.config.is_admin(user_id)):
            logger.info("Command %s blocked: user %s is not VIP or admin", command.name, user_id)
            await ctx.chat.reply(VIP_REQUIRED_TEXT)
            return
        if not self.state.rate_limiter.check(user_id, command.name):
            logger.info("Command %s blocked: rate limit exceeded for user %s", command.name, user_id)
            await ctx.chat.reply(RATE_LIMITED_TEXT)
            return

        try:
            await command.execute(ctx)
            logger.info("Command %s executed by user %s", command.name, user_id)
        except Exception:  # noqa: BLE001
            logger.exception("Error in command %s for user %s", command.name, user_id)
            await ctx.chat.reply(COMMAND_ERROR_TEXT)

    async def _run_listeners(self, update: Update) -> None:
        try:
            listeners = self.state.listeners.matching(update)
        except Exception:  # noqa: BLE001
            logger.exception("Listener predicate failed for update %s", update.update_id)
            return
        for listener in listeners:
            try:
                await _maybe_await(listener.action(update))
                logger.debug("Listener triggered for message %s", update.effective_message.message_id)
            except Exception:  # noqa: BLE001
                logger.exception("Listener failed for update %s", update.update_id)

    async def run_events(self, update: Update, bot: Bot) -> None:
        message = update.effective_message
        if message is None or message.from_user is None or message.from_user.is_bot:
            return
        chat = ChatReplier.for_message(bot, message, probe=self.probe)
        for event in list(self.state.events):
            ctx = self.build_context(bot, chat, update, message.chat.id, str(message.from_user.id))
            try:
                await event.handle_event(ctx)
            except Exception:  # noqa: BLE001
                logger.exception("Error handling event %s", event.name)

    async def dispatch_callback(self, update: Update, bot: Bot) -> None:
        query = update.callback_query
        if query is None:
            return
        user_id = str(query.from_user.id)
        if query.message is not None:
            chat = ChatReplier.for_message(bot, query.message, probe=self.probe)
        else:
            chat = ChatReplier(bot, query.from_user.id, probe=self.probe)

        try:
            await bot.answer_callback_query(callback_query_id=query.id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Error answering callback query %s: %s", query.id, exc)

        button_id = query.data or ""
        ctx = self.build_context(bot, chat, update, chat.chat_id, user_id)
        callback = self.state.answer_callbacks.get(button_id) if button_id else None
        if callback is not None:
            try:
                await callback(ctx)
                logger.info("Answer callback executed for button %s by user %s", button_id, user_id)
            except Exception:  # noqa: BLE001
                logger.exception("Error in answer callback %s", button_id)
                await chat.reply(BUTTON_ERROR_TEXT)
            return

        try:
            listeners = self.state.button_listeners.matching(update)
        except Exception:  # noqa: BLE001
            logger.exception("Button listener predicate failed for button %s", button_id)
            return
        for listener in listeners:
            try:
                await _maybe_await(listener.action(update))
            except Exception:  # noqa: BLE001
                logger.exception("Button listener failed for button %s", button_id)
        if listeners:
            return

        logger.info("No callback found for button %s", button_id)
        await chat.reply(UNKNOWN_BUTTON_TEXT)
