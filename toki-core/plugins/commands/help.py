from toki_telegram import Command, HandlerContext


def describe(command: Command, prefix: str) -> str:
    line = f"{prefix}{command.name} - {command.description or 'No description'}"
    if command.usage:
        line += f"\n    Usage: {command.usage}"
    return line


async def execute(ctx: HandlerContext) -> None:
    prefix = ctx.config.command_prefix
    commands = ctx.commands.unique() if ctx.commands else []
    body = "\n".join(describe(command, prefix) for command in commands) or "No commands available."
    await ctx.chat.reply(f"Available commands:\n{body}")


command = Command(
    name="help",
    description="List all available commands",
    aliases=("commands", "menu"),
    execute=execute,
)
