from toki_telegram import Command, PrefixMode


async def execute(ctx):
    message = ctx.message
    replied = message.reply_to_message if message else None
    sticker = replied.sticker if replied else None
    if sticker is None:
        await ctx.chat.reply("Please reply to a sticker to get its file_id.\nUsage: /getsticker")
        return
    await ctx.chat.reply(sticker.file_id)


command = Command(
    name="getsticker",
    description="Reply to a sticker to get its file_id",
    aliases=("stickerid",),
    prefix=PrefixMode.REQUIRED,
    usage="/getsticker (reply to a sticker)",
    execute=execute,
)
