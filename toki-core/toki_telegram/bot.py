import logging

from telegram import BotCommand, Update
from telegram.error import TelegramError
from telegram.ext import Application, CallbackQueryHandler, MessageHandler, filters

from config import AppConfig
from toki_telegram.cron import CronjobRunner
from toki_telegram.dispatcher import Dispatcher
from toki_telegram.loader import PluginLoader
from toki_telegram.registry import BotState, Command, CommandTable, HandlerContext, PrefixMode
from utils.media import MediaProbe

logger = logging.getLogger(__name__)

RELOAD_SUCCESS_TEXT = "Commands, events, and cronjobs reloaded successfully."
RELOAD_FAILURE_TEXT = "Error reloading commands, events, or cronjobs."
_MAX_MENU_DESCRIPTION = 256


class TokiBot:
    """Wires the dispatcher, plugin loader and scheduler into a PTB application."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.state = BotState(cooldown_seconds=config.cooldown_seconds)
        self.probe = MediaProbe(
            probe_timeout_seconds=config.media_probe_timeout_seconds,
            download_timeout_seconds=config.media_download_timeout_seconds,
        )
        self.dispatcher = Dispatcher(self.state, config, probe=self.probe)
        self.loader = PluginLoader(config.plugins_dir)
        self.cron = CronjobRunner(self.dispatcher, default_timezone=config.cron_default_timezone)
        self.app = None

    def build_application(self) -> Application:
        if not self.config.telegram_bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required to start the Telegram bot.")

        self.app = (
            Application.builder()
            .token(self.config.telegram_bot_token)
            .concurrent_updates(True)
            .connect_timeout(20.0)
            .read_timeout(30.0)
            .write_timeout(30.0)
            .pool_timeout(20.0)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )
        self.app.add_handler(MessageHandler(filters.UpdateType.MESSAGE, self.dispatcher.handle_message), group=0)
        self.app.add_handler(MessageHandler(filters.UpdateType.MESSAGE, self.dispatcher.handle_events), group=1)
        self.app.add_handler(CallbackQueryHandler(self.dispatcher.handle_callback))
        return self.app

    async def _post_init(self, application: Application) -> None:
        self.cron.start(application.bot)
        await self.reload(application.bot)
        logger.info("✓ Telegram bot is ready")

    async def _post_shutdown(self, application: Application) -> None:
        self.cron.shutdown()
        await self.probe.aclose()

    async def reload(self, bot) -> None:
        """Load every plugin kind, then swap the tables in one step."""
        table = self.loader.load_commands()
        table.register(self.reload_command())
        events = self.loader.load_events()
        cronjobs = self.loader.load_cronjobs()

        self.state.swap_commands(table)
        self.state.swap_events(events)
        self.cron.replace(cronjobs)
        await self.publish_menu(bot, table)

    async def publish_menu(self, bot, table: CommandTable) -> None:
        commands = [BotCommand(name, description[:_MAX_MENU_DESCRIPTION]) for name, description in table.menu()]
        try:
            await bot.set_my_commands(commands)
            logger.info("command_menu_updated", extra={"event": "command_menu_updated", "count": len(commands)})
        except TelegramError as exc:
            logger.error("Error setting Telegram command menu: %s", exc)

    def reload_command(self) -> Command:
        return Command(
            name="reload",
            description="Reload commands, events, and cronjobs (admin only)",
            prefix=PrefixMode.REQUIRED,
            admin=True,
            execute=self._execute_reload,
        )

    async def _execute_reload(self, ctx: HandlerContext) -> None:
        try:
            await self.reload(ctx.bot)
        except Exception:  # noqa: BLE001
            logger.exception("Reload requested by user %s failed", ctx.user_id)
            await ctx.chat.reply(RELOAD_FAILURE_TEXT)
            return
        logger.info("Commands, events, and cronjobs reloaded by user %s", ctx.user_id)
        await ctx.chat.reply(RELOAD_SUCCESS_TEXT)

    def run(self) -> None:
        application = self.build_application()
        application.run_polling(
            allowed_updates=Update.ALL_TYPES,
            close_loop=False,
            stop_signals=None,
        )
