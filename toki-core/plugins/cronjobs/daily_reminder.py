import logging
import os

from toki_telegram import Cronjob

logger = logging.getLogger(__name__)


async def execute(ctx):
    await ctx.chat.reply("Good morning! This is your daily reminder.")
    logger.info("Daily reminder sent to chat %s", ctx.chat_id)


cronjob = Cronjob(
    name="daily_reminder",
    schedule="0 9 * * *",
    chat_id=os.getenv("DAILY_REMINDER_CHAT_ID") or None,
    execute=execute,
)
