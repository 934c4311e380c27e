"""Chat-bound reply normalizer.

``ChatReplier.reply`` turns a :class:`~toki_telegram.replies.Reply` into one
Bot API call and delivers it with two bounded recovery steps:

* topic closed: retry once in the chat's general thread, or give up quietly
  when the general thread is not writable either;
* remote fetch failed: download the URL(s) locally once and retry with the
  raw bytes.

Anything else is logged and answered with a short plain-text notice. The
method never raises; ``None`` means nothing was sent.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlparse

from telegram import (
    Bot,
    InputFile,
    InputMediaAudio,
    InputMediaDocument,
    InputMediaPhoto,
    InputMediaVideo,
    Message,
)
from telegram.constants import ChatType
from telegram.error import TelegramError

from toki_telegram.replies import (
    MEDIA_KINDS,
    Location,
    MediaItem,
    Reply,
    ReplyKind,
    coerce_location,
    media_item,
    normalize_reply,
)
from utils.media import MediaDownloadError, MediaProbe, MediaTypeError, is_remote_url

logger = logging.getLogger(__name__)

GENERIC_ERROR_TEXT = "Error processing the request."
MEDIA_ERROR_TEXT = "Error sending media. Please try again later."

_TOPIC_CLOSED_MARKERS = ("topic_closed",)
_REMOTE_FETCH_MARKERS = (
    "webpage_curl_failed",
    "webpage_media_empty",
    "failed to get http url content",
    "wrong file identifier/http url specified",
)

_SINGLE_SEND_METHODS = {
    ReplyKind.PHOTO: "send_photo",
    ReplyKind.VIDEO: "send_video",
    ReplyKind.AUDIO: "send_audio",
    ReplyKind.DOCUMENT: "send_document",
    ReplyKind.ANIMATION: "send_animation",
}
_GROUP_MEDIA_CLASSES = {
    ReplyKind.PHOTO: InputMediaPhoto,
    ReplyKind.VIDEO: InputMediaVideo,
    ReplyKind.AUDIO: InputMediaAudio,
    ReplyKind.DOCUMENT: InputMediaDocument,
    # sendMediaGroup has no animation slot.
    ReplyKind.ANIMATION: InputMediaDocument,
}

SentMessage = Message | Sequence[Message] | None


def is_topic_closed(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _TOPIC_CLOSED_MARKERS)


def is_remote_fetch_failure(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _REMOTE_FETCH_MARKERS)


def _filename_from_url(url: str, fallback: str = "file") -> str:
    name = PurePosixPath(urlparse(url).path).name
    return name or fallback


class MediaDeliveryError(RuntimeError):
    """Delivery still failed after the local re-upload retry."""


@dataclass(frozen=True)
class GroupEntry:
    kind: ReplyKind
    media: Any
    caption: str | None = None
    parse_mode: str | None = None
    filename: str | None = None

    def to_input_media(self):
        media_class = _GROUP_MEDIA_CLASSES[self.kind]
        kwargs: dict[str, Any] = {"media": self.media}
        if self.filename:
            kwargs["filename"] = self.filename
        if self.caption:
            kwargs["caption"] = self.caption
        if self.parse_mode:
            kwargs["parse_mode"] = self.parse_mode
        return media_class(**kwargs)


@dataclass
class OutboundCall:
    """One Bot API send, kept in a form that can be re-targeted and re-uploaded."""

    method: str
    kwargs: dict[str, Any] = field(default_factory=dict)
    media_field: str | None = None
    group: list[GroupEntry] | None = None

    def remote_urls(self) -> list[str]:
        if self.group is not None:
            return [entry.media for entry in self.group if is_remote_url(entry.media)]
        if self.media_field and is_remote_url(self.kwargs.get(self.media_field)):
            return [self.kwargs[self.media_field]]
        return []

    def with_uploads(self, uploads: dict[str, tuple[bytes, str]]) -> "OutboundCall":
        if self.group is not None:
            group = []
            for entry in self.group:
                if isinstance(entry.media, str) and entry.media in uploads:
                    content, filename = uploads[entry.media]
                    entry = replace(entry, media=content, filename=filename)
                group.append(entry)
            return replace(self, kwargs=dict(self.kwargs), group=group)
        kwargs = dict(self.kwargs)
        current = kwargs.get(self.media_field) if self.media_field else None
        if isinstance(current, str) and current in uploads:
            content, filename = uploads[current]
            kwargs[self.media_field] = InputFile(content, filename=filename)
        return replace(self, kwargs=kwargs)

    def build_kwargs(self, chat_id: int | str, thread_id: int | None) -> dict[str, Any]:
        kwargs = dict(self.kwargs)
        if self.group is not None:
            kwargs["media"] = [entry.to_input_media() for entry in self.group]
        kwargs["chat_id"] = chat_id
        if thread_id is not None:
            kwargs["message_thread_id"] = thread_id
        return kwargs


class ChatReplier:
    """Sends replies to the chat an update came from."""

    def __init__(
        self,
        bot: Bot,
        chat_id: int | str | None,
        thread_id: int | None = None,
        probe: MediaProbe | None = None,
    ) -> None:
        self.bot = bot
        self.chat_id = chat_id
        self.thread_id = thread_id
        self.probe = probe or MediaProbe()

    @classmethod
    def for_message(cls, bot: Bot, message: Message, probe: MediaProbe | None = None) -> "ChatReplier":
        thread_id = None
        message_thread_id = getattr(message, "message_thread_id", None)
        if message.chat.type == ChatType.SUPERGROUP and message_thread_id:
            thread_id = message_thread_id
        return cls(bot, message.chat.id, thread_id=thread_id, probe=probe)

    async def reply(
        self,
        message: "str | Reply | dict[str, Any]",
        chat_id: int | str | None = None,
        **options: Any,
    ) -> SentMessage:
        target = chat_id if chat_id is not None else self.chat_id
        try:
            reply = normalize_reply(message)
        except ValueError as exc:
            logger.error("Invalid reply for chat %s: %s", target, exc)
            return None
        reply.options = {**reply.options, **options}

        try:
            call = await self._resolve(reply)
            if call is None:
                return None
            return await self._deliver(call, target)
        except MediaDeliveryError as exc:
            logger.warning("Media delivery failed for chat %s after local upload: %s", target, exc)
            await self._notify_failure(target, MEDIA_ERROR_TEXT)
        except Exception as exc:  # noqa: BLE001
            if is_topic_closed(exc):
                logger.info("Dropping %s reply for chat %s: topic closed", reply.kind.value, target)
                return None
            logger.error("Error processing %s reply for chat %s: %s", reply.kind.value, target, exc)
            await self._notify_failure(target, GENERIC_ERROR_TEXT)
        return None

    async def delete(self, sent: SentMessage | int, chat_id: int | str | None = None) -> None:
        target = chat_id if chat_id is not None else self.chat_id
        if sent is None:
            return
        items = list(sent) if isinstance(sent, Sequence) else [sent]
        for item in items:
            message_id = item if isinstance(item, int) else getattr(item, "message_id", None)
            if message_id is None:
                continue
            try:
                await self.bot.delete_message(chat_id=target, message_id=message_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to delete message %s in chat %s: %s", message_id, target, exc)

    async def send_photo(self, photo: Any, caption: str = "", chat_id=None, parse_mode: str | None = "Markdown", **options):
        return await self._send_kind(ReplyKind.PHOTO, photo, caption, chat_id, parse_mode, options)

    async def send_video(self, video: Any, caption: str = "", chat_id=None, parse_mode: str | None = "Markdown", **options):
        return await self._send_kind(ReplyKind.VIDEO, video, caption, chat_id, parse_mode, options)

    async def send_audio(self, audio: Any, caption: str = "", chat_id=None, parse_mode: str | None = "Markdown", **options):
        return await self._send_kind(ReplyKind.AUDIO, audio, caption, chat_id, parse_mode, options)

    async def send_document(self, document: Any, caption: str = "", chat_id=None, parse_mode: str | None = "Markdown", **options):
        return await self._send_kind(ReplyKind.DOCUMENT, document, caption, chat_id, parse_mode, options)

    async def send_animation(self, animation: Any, caption: str = "", chat_id=None, parse_mode: str | None = "Markdown", **options):
        return await self._send_kind(ReplyKind.ANIMATION, animation, caption, chat_id, parse_mode, options)

    async def send_location(self, latitude: float, longitude: float, chat_id=None, **options):
        return await self.reply(
            Reply(kind=ReplyKind.LOCATION, payload=Location(latitude, longitude), options=options),
            chat_id,
        )

    async def _send_kind(self, kind, payload, caption, chat_id, parse_mode, options):
        reply = Reply(body=caption or "", kind=kind, payload=payload, parse_mode=parse_mode, options=options)
        return await self.reply(reply, chat_id)

    async def _resolve(self, reply: Reply) -> OutboundCall | None:
        kind = reply.kind
        payload = reply.payload
        options = dict(reply.options)

        if kind is ReplyKind.AUTO:
            if isinstance(payload, list):
                kind = ReplyKind.MEDIA_GROUP
            elif is_remote_url(payload):
                kind = ReplyKind(await self.probe.media_type(payload))
            else:
                kind = ReplyKind.DOCUMENT

        if kind is ReplyKind.TEXT:
            if not reply.body:
                return None
            kwargs = {"text": reply.body, **options}
            if reply.parse_mode:
                kwargs["parse_mode"] = reply.parse_mode
            return OutboundCall("send_message", kwargs)

        if kind in MEDIA_KINDS:
            if payload is None:
                logger.warning("Ignoring %s reply without payload", kind.value)
                return None
            if isinstance(payload, list):
                items = [MediaItem(media=item) for item in payload]
                group = await self._group_entries(items, kind, reply, per_item_captions=False)
                return self._group_call(group, options)
            kwargs = {kind.value: payload, **options}
            if reply.body:
                kwargs["caption"] = reply.body
            if reply.parse_mode:
                kwargs["parse_mode"] = reply.parse_mode
            return OutboundCall(_SINGLE_SEND_METHODS[kind], kwargs, media_field=kind.value)

        if kind is ReplyKind.STICKER:
            if payload is None:
                logger.warning("Ignoring sticker reply without payload")
                return None
            return OutboundCall("send_sticker", {"sticker": payload, **options}, media_field="sticker")

        if kind is ReplyKind.LOCATION:
            location = coerce_location(payload)
            if location is None:
                logger.warning("Ignoring location reply with malformed payload: %r", payload)
                return None
            return OutboundCall(
                "send_location",
                {"latitude": location.latitude, "longitude": location.longitude, **options},
            )

        if kind is ReplyKind.MEDIA_GROUP:
            if not isinstance(payload, list) or not payload:
                raise ValueError("Media group requires a list of media items")
            items = [media_item(item) for item in payload]
            group = await self._group_entries(items, None, reply, per_item_captions=True)
            return self._group_call(group, options)

        raise ValueError(f"Unsupported reply kind: {kind}")

    async def _group_entries(
        self,
        items: list[MediaItem],
        fallback_kind: ReplyKind | None,
        reply: Reply,
        per_item_captions: bool,
    ) -> list[GroupEntry]:
        kinds = await asyncio.gather(*(self._item_kind(item, fallback_kind) for item in items))
        entries: list[GroupEntry] = []
        for index, (item, kind) in enumerate(zip(items, kinds)):
            caption = None
            parse_mode = None
            if index == 0:
                caption = (item.caption if per_item_captions and item.caption else None) or reply.body or None
                parse_mode = reply.parse_mode
            entries.append(GroupEntry(kind=kind, media=item.media, caption=caption, parse_mode=parse_mode))
        return entries

    async def _item_kind(self, item: MediaItem, fallback_kind: ReplyKind | None) -> ReplyKind:
        if item.type is not None and item.type in MEDIA_KINDS:
            return item.type
        if is_remote_url(item.media):
            return ReplyKind(await self.probe.media_type(item.media))
        if fallback_kind is not None:
            return fallback_kind
        raise MediaTypeError(f"Could not determine media type for group item {item.media!r}")

    @staticmethod
    def _group_call(group: list[GroupEntry], options: dict[str, Any]) -> OutboundCall:
        if "reply_markup" in options:
            logger.debug("Dropping reply_markup: media groups do not support keyboards")
            options = {key: value for key, value in options.items() if key != "reply_markup"}
        return OutboundCall("send_media_group", options, group=group)

    async def _deliver(self, call: OutboundCall, chat_id: int | str) -> SentMessage:
        thread_id = self.thread_id if chat_id == self.chat_id else None
        topic_fallback_used = False
        upload_fallback_used = False

        while True:
            try:
                return await self._send(call, chat_id, thread_id)
            except TelegramError as exc:
                logger.warning("Send %s to chat %s (thread %s) failed: %s", call.method, chat_id, thread_id, exc)
                if upload_fallback_used:
                    raise MediaDeliveryError(str(exc)) from exc
                if is_topic_closed(exc) and not topic_fallback_used:
                    topic_fallback_used = True
                    if thread_id is None or not await self._general_thread_writable(chat_id):
                        logger.info("General topic is inaccessible in chat %s; message dropped", chat_id)
                        return None
                    logger.info("Topic %s is closed in chat %s; retrying in the general topic", thread_id, chat_id)
                    thread_id = None
                    continue
                urls = call.remote_urls()
                if is_remote_fetch_failure(exc) and urls:
                    upload_fallback_used = True
                    call = await self._upload_locally(call, urls)
                    continue
                raise

    async def _send(self, call: OutboundCall, chat_id: int | str, thread_id: int | None) -> SentMessage:
        method = getattr(self.bot, call.method)
        return await method(**call.build_kwargs(chat_id, thread_id))

    async def _upload_locally(self, call: OutboundCall, urls: list[str]) -> OutboundCall:
        logger.info("Telegram could not fetch %d URL(s); re-uploading from local download", len(urls))
        uploads: dict[str, tuple[bytes, str]] = {}
        try:
            for url in dict.fromkeys(urls):
                content = await self.probe.download(url)
                uploads[url] = (content, _filename_from_url(url))
        except MediaDownloadError as exc:
            raise MediaDeliveryError(str(exc)) from exc
        return call.with_uploads(uploads)

    async def _general_thread_writable(self, chat_id: int | str) -> bool:
        try:
            info = await self.bot.get_chat(chat_id)
        except TelegramError as exc:
            logger.warning("Could not inspect chat %s: %s", chat_id, exc)
            return False
        if getattr(info, "is_forum", False):
            permissions = getattr(info, "permissions", None)
            return bool(permissions and permissions.can_send_messages)
        return True

    async def _notify_failure(self, chat_id: int | str, text: str) -> None:
        thread_id = self.thread_id if chat_id == self.chat_id else None
        kwargs: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if thread_id is not None:
            kwargs["message_thread_id"] = thread_id
        try:
            await self.bot.send_message(**kwargs)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to send error notice to chat %s: %s", chat_id, exc)
