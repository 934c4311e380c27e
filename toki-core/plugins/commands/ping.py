from toki_telegram import Command, PrefixMode, Reply


async def execute(ctx):
    await ctx.chat.reply(Reply(body="Pong!"))


command = Command(
    name="ping",
    description="Check if the bot is responsive",
    aliases=("p",),
    prefix=PrefixMode.REQUIRED,
    execute=execute,
)
