from utils.callbacks import CallbackTable
from utils.listeners import Listener, ListenerRegistry
from utils.media import MediaDownloadError, MediaProbe, MediaTypeError
from utils.rate_limiter import RateLimiter

__all__ = [
    "CallbackTable",
    "Listener",
    "ListenerRegistry",
    "MediaDownloadError",
    "MediaProbe",
    "MediaTypeError",
    "RateLimiter",
]
