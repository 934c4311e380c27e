from toki_telegram.chat import ChatReplier
from toki_telegram.registry import Command, Cronjob, Event, HandlerContext, PrefixMode
from toki_telegram.replies import Location, MediaItem, Reply, ReplyKind

__all__ = [
    "ChatReplier",
    "Command",
    "Cronjob",
    "Event",
    "HandlerContext",
    "Location",
    "MediaItem",
    "PrefixMode",
    "Reply",
    "ReplyKind",
]
