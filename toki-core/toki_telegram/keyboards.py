from collections.abc import Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, KeyboardButton, ReplyKeyboardMarkup


def inline_keyboard(rows: Sequence[Sequence[tuple[str, str]]]) -> InlineKeyboardMarkup:
    """Rows of (label, target). Targets starting with http(s):// become URL buttons."""
    keyboard = []
    for row in rows:
        buttons = []
        for label, target in row:
            if target.startswith(("http://", "https://")):
                buttons.append(InlineKeyboardButton(label, url=target))
            else:
                buttons.append(InlineKeyboardButton(label, callback_data=target))
        keyboard.append(buttons)
    return InlineKeyboardMarkup(keyboard)


def reply_keyboard(rows: Sequence[Sequence[str]], one_time: bool = True) -> ReplyKeyboardMarkup:
    keyboard = [[KeyboardButton(label) for label in row] for row in rows]
    return ReplyKeyboardMarkup(keyboard, resize_keyboard=True, one_time_keyboard=one_time)
