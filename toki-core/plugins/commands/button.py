"""Answer-callback demo."""

import time

from toki_telegram import Command, PrefixMode
from toki_telegram.keyboards import inline_keyboard


async def execute(ctx):
    button_id = f"button:{ctx.chat_id}:{time.time_ns()}"

    async def clicked(button_ctx):
        await button_ctx.chat.reply(f"Button clicked by user {button_ctx.user_id}!")

    ctx.add_answer_callback(button_id, clicked)
    await ctx.chat.reply("Click the button!", reply_markup=inline_keyboard([[("Click Me", button_id)]]))


command = Command(
    name="button",
    description="Sends a button and reports who clicked it",
    prefix=PrefixMode.REQUIRED,
    execute=execute,
)
