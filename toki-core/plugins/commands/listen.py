"""Listener demo: reacts to "hello" in this chat for one minute."""

import asyncio
import logging

from toki_telegram import Command, PrefixMode

logger = logging.getLogger(__name__)

LISTEN_SECONDS = 60

_expiry_tasks: set[asyncio.Task] = set()


async def execute(ctx):
    chat_id = ctx.chat_id

    def heard_hello(update) -> bool:
        message = update.effective_message
        if message is None or not message.text:
            return False
        return message.chat.id == chat_id and "hello" in message.text.lower()

    async def answer(update) -> None:
        await ctx.chat.reply('I heard you say "hello"! What\'s up?')

    remove_listener = ctx.add_listener(heard_hello, answer)
    await ctx.chat.reply(f'Listening for "hello" for {LISTEN_SECONDS} seconds.')

    async def expire() -> None:
        await asyncio.sleep(LISTEN_SECONDS)
        remove_listener()
        logger.info("Hello listener for chat %s removed", chat_id)
        await ctx.chat.reply('Listener for "hello" has been removed.')

    # Keep a reference so the task is not garbage collected mid-sleep.
    task = asyncio.create_task(expire())
    _expiry_tasks.add(task)
    task.add_done_callback(_expiry_tasks.discard)


command = Command(
    name="listen",
    description='Temporarily answers "hello" messages in this chat',
    prefix=PrefixMode.REQUIRED,
    execute=execute,
)
