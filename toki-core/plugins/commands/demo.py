from toki_telegram import Command, Location, PrefixMode, Reply, ReplyKind
from toki_telegram.keyboards import inline_keyboard, reply_keyboard

SAMPLE_STICKER = "CAACAgQAAxkBAAIBDGhD1T-tSooTYrAZKWK-y_1bojq_AAIDEwACGhBAUgTfLwvZLYNWNgQ"

FEATURES = {
    "inline": Reply(
        body="Test *inline keyboard* with buttons:",
        parse_mode="Markdown",
        options={
            "reply_markup": inline_keyboard(
                [
                    [("Option 1", "test_inline_1"), ("Option 2", "test_inline_2")],
                    [("Visit Telegram", "https://telegram.org")],
                ]
            )
        },
    ),
    "reply": Reply(
        body="Test *reply keyboard*:",
        parse_mode="Markdown",
        options={"reply_markup": reply_keyboard([["Yes", "No"], ["Cancel"]])},
    ),
    "photo": Reply(
        body="Here's a test *photo*!",
        kind=ReplyKind.PHOTO,
        payload="https://picsum.photos/800/600",
        parse_mode="Markdown",
    ),
    "video": Reply(
        body="Here's a test *video*!",
        kind=ReplyKind.VIDEO,
        payload="https://sample-videos.com/video321/mp4/720/big_buck_bunny_720p_1mb.mp4",
        parse_mode="Markdown",
        options={"disable_notification": True},
    ),
    "document": Reply(
        body="Here's a test *document*!",
        kind=ReplyKind.DOCUMENT,
        payload="https://www.w3.org/WAI/ER/tests/xhtml/testfiles/resources/pdf/dummy.pdf",
        parse_mode="Markdown",
    ),
    "location": Reply(kind=ReplyKind.LOCATION, payload=Location(40.7128, -74.0060)),
    "animation": Reply(
        body="Here's a test *animation* (GIF)!",
        kind=ReplyKind.ANIMATION,
        payload="https://media.giphy.com/media/3oEjI6SIIHBdRxXI40/giphy.gif",
        parse_mode="Markdown",
    ),
    "sticker": Reply(kind=ReplyKind.STICKER, payload=SAMPLE_STICKER),
}


async def execute(ctx):
    available = ", ".join(FEATURES)
    feature = ctx.args[0].lower() if ctx.args else ""
    if not feature:
        await ctx.chat.reply(f"Please specify a feature to test.\nAvailable features: {available}\nUsage: /demo <feature>")
        return
    reply = FEATURES.get(feature)
    if reply is None:
        await ctx.chat.reply(f"Unknown feature: {feature}\nAvailable features: {available}")
        return
    await ctx.chat.reply(reply)


command = Command(
    name="demo",
    description="Tests the different reply kinds (admin only)",
    prefix=PrefixMode.REQUIRED,
    admin=True,
    usage="/demo <feature> (inline, reply, photo, video, document, location, animation, sticker)",
    execute=execute,
)
