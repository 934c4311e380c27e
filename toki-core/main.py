import asyncio
import logging
import time

from telegram.error import NetworkError, TimedOut

from config import AppConfig
from toki_telegram.bot import TokiBot

logger = logging.getLogger("toki-main")


def _is_shutdown_network_error(exc: NetworkError) -> bool:
    return "cannot schedule new futures after shutdown" in str(exc).lower()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every Bot API request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def run_bot() -> None:
    config = AppConfig.load()
    configure_logging(config.log_level)
    logger.info("🚀 Starting Toki bot (prefix %r, %d admin(s))", config.command_prefix, len(config.admin_user_ids))

    while True:
        bot = TokiBot(config)
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            bot.run()
            return
        except (TimedOut, NetworkError) as exc:
            if isinstance(exc, NetworkError) and _is_shutdown_network_error(exc):
                logger.info("Telegram polling stopped during runtime shutdown; exiting bot loop cleanly.")
                return
            logger.warning(
                "Telegram startup failed (%s). Retrying in %s seconds.",
                exc.__class__.__name__,
                config.telegram_startup_retry_delay_seconds,
            )
            time.sleep(config.telegram_startup_retry_delay_seconds)
        finally:
            loop.close()


if __name__ == "__main__":
    run_bot()
