from __future__ import annotations

import logging
import re
import threading
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from telegram import Bot, Message, Update

from utils.callbacks import CallbackTable
from utils.listeners import ListenerRegistry
from utils.rate_limiter import RateLimiter

if TYPE_CHECKING:
    from config import AppConfig
    from toki_telegram.chat import ChatReplier

logger = logging.getLogger(__name__)

_MENU_COMMAND_PATTERN = re.compile(r"^[a-z0-9_]{1,32}$")


class PrefixMode(str, Enum):
    REQUIRED = "required"
    FORBIDDEN = "forbidden"
    EITHER = "either"

    @classmethod
    def parse(cls, value: "PrefixMode | bool | str | None") -> "PrefixMode":
        if isinstance(value, PrefixMode):
            return value
        if value is None:
            return cls.EITHER
        if isinstance(value, bool):
            return cls.REQUIRED if value else cls.FORBIDDEN
        return cls(str(value).strip().lower())

    def allows(self, has_prefix: bool) -> bool:
        if self is PrefixMode.REQUIRED:
            return has_prefix
        if self is PrefixMode.FORBIDDEN:
            return not has_prefix
        return True


@dataclass
class HandlerContext:
    """Everything a command, event, cronjob or callback gets to work with."""

    bot: Bot
    chat: "ChatReplier"
    config: "AppConfig"
    chat_id: int | str | None
    user_id: str | None
    update: Update | None = None
    args: list[str] = field(default_factory=list)
    add_listener: Callable[..., Callable[[], None]] | None = None
    add_answer_callback: Callable[[str, Callable[..., Awaitable[Any]]], None] | None = None
    add_reply_callback: Callable[[int, Callable[..., Awaitable[Any]]], None] | None = None
    commands: "CommandTable | None" = None

    @property
    def message(self) -> Message | None:
        return self.update.effective_message if self.update else None


Execute = Callable[[HandlerContext], Awaitable[Any]]


@dataclass
class Command:
    name: str
    execute: Execute
    description: str = ""
    aliases: tuple[str, ...] = ()
    prefix: PrefixMode = PrefixMode.EITHER
    admin: bool = False
    vip: bool = False
    usage: str = ""

    def __post_init__(self) -> None:
        self.name = (self.name or "").strip().lower()
        self.aliases = tuple(alias.strip().lower() for alias in self.aliases if alias and alias.strip())
        self.prefix = PrefixMode.parse(self.prefix)


@dataclass
class Event:
    name: str
    handle_event: Execute
    description: str = ""


@dataclass
class Cronjob:
    name: str
    schedule: str
    execute: Execute
    chat_id: int | str | None = None
    user_id: str | None = None
    timezone: str | None = None


class CommandTable:
    """Name/alias lookup for commands, swapped wholesale on reload."""

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        self._lookup: dict[str, Command] = {}
        self._primary: dict[str, Command] = {}
        for command in commands:
            self.register(command)

    def register(self, command: Command) -> bool:
        if not command.name:
            logger.warning("Skipping command without a name")
            return False
        if command.name in self._primary:
            logger.warning("Skipping duplicate command name '%s'", command.name)
            return False
        self._primary[command.name] = command
        self._lookup[command.name] = command
        for alias in command.aliases:
            if alias in self._primary:
                logger.warning("Alias '%s' of '%s' shadows a command name; ignored", alias, command.name)
                continue
            self._lookup[alias] = command
        return True

    def get(self, name: str) -> Command | None:
        return self._lookup.get(name.lower())

    def unique(self) -> list[Command]:
        return list(self._primary.values())

    def menu(self) -> list[tuple[str, str]]:
        return [
            (command.name, command.description)
            for command in self._primary.values()
            if command.description and _MENU_COMMAND_PATTERN.match(command.name)
        ]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._lookup

    def __len__(self) -> int:
        return len(self._primary)


class BotState:
    """Process-wide dispatch tables owned by one bot instance."""

    def __init__(self, cooldown_seconds: float = 1.0) -> None:
        self.rate_limiter = RateLimiter(cooldown_seconds=cooldown_seconds)
        self.listeners = ListenerRegistry("message")
        self.button_listeners = ListenerRegistry("callback_query")
        self.reply_callbacks: CallbackTable[int] = CallbackTable()
        self.answer_callbacks: CallbackTable[str] = CallbackTable()
        self.commands = CommandTable()
        self.events: list[Event] = []
        self._swap_lock = threading.Lock()

    def add_listener(self, predicate, action, kind: str = "message") -> Callable[[], None]:
        if kind == "callback_query":
            return self.button_listeners.add(predicate, action)
        if kind != "message":
            raise ValueError(f"Unknown listener kind: {kind}")
        return self.listeners.add(predicate, action)

    def add_answer_callback(self, button_id: str, action) -> None:
        self.answer_callbacks.set(button_id, action)
        logger.debug("Answer callback registered for button %s", button_id)

    def add_reply_callback(self, message_id: int, action) -> None:
        self.reply_callbacks.set(message_id, action)
        logger.debug("Reply callback registered for message %s", message_id)

    def swap_commands(self, table: CommandTable) -> None:
        with self._swap_lock:
            self.commands = table

    def swap_events(self, events: list[Event]) -> None:
        with self._swap_lock:
            self.events = list(events)
