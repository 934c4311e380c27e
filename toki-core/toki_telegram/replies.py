"""Reply descriptors handed to :class:`toki_telegram.chat.ChatReplier`.

A handler describes *what* to send with a :class:`Reply`; the replier decides
*how*. ``kind`` is an explicit discriminator and ``payload`` is the only place
media lives.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

MAX_MEDIA_GROUP_ITEMS = 10


class ReplyKind(str, Enum):
    TEXT = "text"
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    ANIMATION = "animation"
    STICKER = "sticker"
    LOCATION = "location"
    MEDIA_GROUP = "media_group"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: "str | ReplyKind") -> "ReplyKind":
        if isinstance(value, ReplyKind):
            return value
        normalized = str(value).strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unsupported reply kind: {value}") from exc


MEDIA_KINDS = frozenset(
    {ReplyKind.PHOTO, ReplyKind.VIDEO, ReplyKind.AUDIO, ReplyKind.DOCUMENT, ReplyKind.ANIMATION}
)


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class MediaItem:
    """One media-group entry with an optional declared type and caption."""

    media: Any
    type: ReplyKind | None = None
    caption: str | None = None


@dataclass
class Reply:
    body: str = ""
    kind: ReplyKind | None = None
    payload: Any = None
    parse_mode: str | None = None
    options: dict[str, Any] = field(default_factory=dict)


_DESCRIPTOR_KEYS = {"body", "kind", "type", "payload", "parse_mode"}
_AMBIGUOUS_PAYLOAD_KEYS = {"content", "attachment"}


def _reply_from_mapping(data: Mapping[str, Any]) -> Reply:
    ambiguous = _AMBIGUOUS_PAYLOAD_KEYS.intersection(data)
    if ambiguous:
        raise ValueError(f"Use 'payload' instead of {sorted(ambiguous)}")
    raw_kind = data.get("kind", data.get("type"))
    return Reply(
        body=str(data.get("body") or ""),
        kind=ReplyKind.parse(raw_kind) if raw_kind is not None else None,
        payload=data.get("payload"),
        parse_mode=data.get("parse_mode"),
        options={key: value for key, value in data.items() if key not in _DESCRIPTOR_KEYS},
    )


def media_item(raw: Any) -> MediaItem:
    if isinstance(raw, MediaItem):
        return raw
    if isinstance(raw, Mapping):
        media = raw.get("media", raw.get("url"))
        if media is None:
            raise ValueError("Media item requires 'media' or 'url'")
        raw_type = raw.get("type")
        return MediaItem(
            media=media,
            type=ReplyKind.parse(raw_type) if raw_type else None,
            caption=raw.get("caption"),
        )
    return MediaItem(media=raw)


def normalize_reply(message: "str | Reply | Mapping[str, Any]") -> Reply:
    """Resolve defaults so every reply carries a concrete ``kind``.

    * no payload -> ``text``
    * list payload without a kind -> ``media_group``
    * a :class:`Location` payload without a kind -> ``location``
    * any other single payload without a kind -> ``auto`` (content-sniffed)

    List payloads are truncated to the first ten items.
    """
    if isinstance(message, str):
        return Reply(body=message, kind=ReplyKind.TEXT)
    if isinstance(message, Reply):
        reply = replace(message, options=dict(message.options))
    elif isinstance(message, Mapping):
        reply = _reply_from_mapping(message)
    else:
        raise ValueError(f"Invalid reply input: expected str, Reply or mapping, got {type(message).__name__}")

    payload = reply.payload
    if isinstance(payload, tuple) and reply.kind is not ReplyKind.LOCATION:
        payload = list(payload)
    if isinstance(payload, list):
        payload = payload[:MAX_MEDIA_GROUP_ITEMS]
    reply.payload = payload

    if reply.kind is None:
        if payload is None:
            reply.kind = ReplyKind.TEXT
        elif isinstance(payload, list):
            reply.kind = ReplyKind.MEDIA_GROUP
        elif isinstance(payload, Location):
            reply.kind = ReplyKind.LOCATION
        else:
            reply.kind = ReplyKind.AUTO
    return reply


def coerce_location(payload: Any) -> Location | None:
    """Accept a Location, a mapping with latitude/longitude, or a (lat, lon) pair."""
    if isinstance(payload, Location):
        return payload
    try:
        if isinstance(payload, Mapping):
            return Location(float(payload["latitude"]), float(payload["longitude"]))
        if isinstance(payload, (tuple, list)) and len(payload) == 2:
            return Location(float(payload[0]), float(payload[1]))
    except (KeyError, TypeError, ValueError):
        return None
    return None
