"""Reply-callback demo: answers every reply to the anchor message."""

from toki_telegram import Command, PrefixMode


async def execute(ctx):
    sent = await ctx.chat.reply("Please reply to this message with your name!")
    if sent is None:
        return

    async def on_reply(update):
        name = (update.effective_message.text or "").strip() or "Anonymous"
        await ctx.chat.reply(f"Nice to meet you, {name}!")

    ctx.add_reply_callback(sent.message_id, on_reply)


command = Command(
    name="greet",
    description="Asks for your name and answers every reply to that message",
    prefix=PrefixMode.REQUIRED,
    execute=execute,
)
