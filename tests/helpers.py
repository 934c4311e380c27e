"""In-memory stand-ins for the Telegram Bot API and the media probe."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

from telegram import CallbackQuery, Chat, Message, Update, User
from telegram.constants import ChatType

from config import AppConfig
from utils.media import MediaDownloadError, MediaTypeError

SEND_METHODS = (
    "send_message",
    "send_photo",
    "send_video",
    "send_audio",
    "send_document",
    "send_animation",
    "send_sticker",
    "send_location",
    "send_media_group",
)


class FakeBot:
    """Records every call; send failures are popped from ``failures`` in order."""

    def __init__(self, failures: list[BaseException] | None = None, chat_info: Any = None) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures = list(failures or [])
        self.chat_info = chat_info or SimpleNamespace(is_forum=False, permissions=None)
        self._next_message_id = 1000
        self.last_sent: SimpleNamespace | None = None

    def __getattr__(self, name: str):
        if name not in SEND_METHODS:
            raise AttributeError(name)

        async def send(**kwargs: Any):
            self.calls.append((name, kwargs))
            if self.failures:
                raise self.failures.pop(0)
            if name == "send_media_group":
                return [self._message() for _ in kwargs["media"]]
            return self._message()

        return send

    def _message(self) -> SimpleNamespace:
        self._next_message_id += 1
        self.last_sent = SimpleNamespace(message_id=self._next_message_id)
        return self.last_sent

    async def delete_message(self, **kwargs: Any) -> bool:
        self.calls.append(("delete_message", kwargs))
        return True

    async def answer_callback_query(self, **kwargs: Any) -> bool:
        self.calls.append(("answer_callback_query", kwargs))
        return True

    async def get_chat(self, chat_id: Any):
        self.calls.append(("get_chat", {"chat_id": chat_id}))
        return self.chat_info

    async def set_my_commands(self, commands: Any) -> bool:
        self.calls.append(("set_my_commands", {"commands": commands}))
        return True

    def sent(self, method: str | None = None) -> list[tuple[str, dict[str, Any]]]:
        return [call for call in self.calls if call[0] in SEND_METHODS and (method is None or call[0] == method)]

    def texts(self) -> list[str]:
        return [kwargs["text"] for method, kwargs in self.calls if method == "send_message"]


class FakeProbe:
    def __init__(self, types: dict[str, str] | None = None, download_error: bool = False) -> None:
        self.types = types or {}
        self.download_error = download_error
        self.probed: list[str] = []
        self.downloads: list[str] = []

    async def media_type(self, url: str) -> str:
        self.probed.append(url)
        if url not in self.types:
            raise MediaTypeError(f"Could not determine media type for {url}")
        return self.types[url]

    async def download(self, url: str) -> bytes:
        self.downloads.append(url)
        if self.download_error:
            raise MediaDownloadError(f"Could not download {url}")
        return b"downloaded-bytes"

    async def aclose(self) -> None:
        return None


def make_config(**overrides: Any) -> AppConfig:
    values = {
        "telegram_bot_token": "123:abc",
        "command_prefix": "/",
        "admin_user_ids": ["1"],
        "vip_user_ids": ["2"],
        "command_cooldown_ms": 1000,
    }
    values.update(overrides)
    return AppConfig(**values)


def make_message(
    text: str = "",
    user_id: int | None = 42,
    chat_id: int = -100,
    chat_type: str = ChatType.PRIVATE,
    message_id: int = 1,
    reply_to: Message | None = None,
    thread_id: int | None = None,
) -> Message:
    user = User(id=user_id, first_name="Tester", is_bot=False) if user_id is not None else None
    return Message(
        message_id=message_id,
        date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        chat=Chat(id=chat_id, type=chat_type),
        from_user=user,
        text=text,
        reply_to_message=reply_to,
        message_thread_id=thread_id,
    )


def make_update(text: str = "", update_id: int = 1, **kwargs: Any) -> Update:
    return Update(update_id=update_id, message=make_message(text, **kwargs))


def make_callback_update(data: str, user_id: int = 42, chat_id: int = -100, with_message: bool = True) -> Update:
    query = CallbackQuery(
        id="cb-1",
        from_user=User(id=user_id, first_name="Tester", is_bot=False),
        chat_instance="instance",
        data=data,
        message=make_message("menu", chat_id=chat_id, message_id=50) if with_message else None,
    )
    return Update(update_id=7, callback_query=query)
