"""APScheduler-backed cronjob runner.

Jobs live only in memory; a reload drops every job and schedules the new set.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from telegram import Bot

from toki_telegram.chat import ChatReplier
from toki_telegram.dispatcher import Dispatcher
from toki_telegram.registry import Cronjob

logger = logging.getLogger(__name__)


class CronjobRunner:
    def __init__(
        self,
        dispatcher: Dispatcher,
        default_timezone: str = "Asia/Manila",
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.default_timezone = default_timezone
        self.scheduler = scheduler or AsyncIOScheduler(timezone=default_timezone)
        self.bot: Bot | None = None

    def start(self, bot: Bot) -> None:
        self.bot = bot
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("scheduler_started", extra={"event": "scheduler_started"})

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped", extra={"event": "scheduler_stopped"})

    def replace(self, cronjobs: list[Cronjob]) -> list[str]:
        self.scheduler.remove_all_jobs()
        scheduled: list[str] = []
        for cronjob in cronjobs:
            timezone = cronjob.timezone or self.default_timezone
            try:
                trigger = CronTrigger.from_crontab(cronjob.schedule, timezone=timezone)
                self.scheduler.add_job(
                    self.run_job,
                    trigger=trigger,
                    args=[cronjob],
                    id=cronjob.name,
                    name=cronjob.name,
                    replace_existing=True,
                )
            except Exception:  # noqa: BLE001
                logger.exception("Error scheduling cronjob %s", cronjob.name)
                continue
            scheduled.append(cronjob.name)
            logger.info(
                "cronjob_scheduled",
                extra={"event": "cronjob_scheduled", "cronjob": cronjob.name, "schedule": cronjob.schedule, "timezone": timezone},
            )
        return scheduled

    async def run_job(self, cronjob: Cronjob) -> None:
        if self.bot is None:
            logger.warning("Cronjob %s fired before the bot was attached; skipped", cronjob.name)
            return
        chat = ChatReplier(self.bot, cronjob.chat_id, probe=self.dispatcher.probe)
        ctx = self.dispatcher.build_context(self.bot, chat, None, cronjob.chat_id, cronjob.user_id)
        try:
            await cronjob.execute(ctx)
            logger.info("Cronjob %s executed successfully", cronjob.name)
        except Exception:  # noqa: BLE001
            logger.exception("Error executing cronjob %s", cronjob.name)
