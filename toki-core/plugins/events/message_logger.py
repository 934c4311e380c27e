import logging
from zoneinfo import ZoneInfo

from toki_telegram import Event

logger = logging.getLogger(__name__)


async def handle_event(ctx):
    message = ctx.message
    if message is None:
        return
    user = message.from_user
    timestamp = message.date.astimezone(ZoneInfo(ctx.config.cron_default_timezone)).isoformat() if message.date else "N/A"
    logger.info(
        "message_received",
        extra={
            "event": "message_received",
            "user_id": user.id if user else None,
            "username": (user.username if user else None) or "N/A",
            "full_name": user.full_name if user else "N/A",
            "chat_id": message.chat.id,
            "thread_id": message.message_thread_id,
            "timestamp": timestamp,
            "text": message.text or "Non-text message",
        },
    )


event = Event(
    name="message_logger",
    description="Logs sender, chat, topic and text of every incoming message",
    handle_event=handle_event,
)
