import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

import yaml
from dotenv import load_dotenv

from utils.config_paths import resolve_config_file

load_dotenv()

logger = logging.getLogger(__name__)

BOT_CONFIG_FILENAME = "bot.yaml"
_DEFAULT_PLUGINS_DIR = str(Path(__file__).resolve().parent / "plugins")


def _env_csv(name: str) -> list[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


def _valid_timezone_name(value: str, fallback: str = "UTC") -> str:
    candidate = (value or fallback).strip() or fallback
    try:
        ZoneInfo(candidate)
        return candidate
    except Exception:  # noqa: BLE001
        return fallback


def _id_list(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (str, int)):
        raw = [raw]
    return [str(item).strip() for item in raw if str(item).strip()]


@dataclass
class AppConfig:
    telegram_bot_token: str | None = os.getenv("TELEGRAM_BOT_TOKEN")
    command_prefix: str = os.getenv("COMMAND_PREFIX", "/")
    admin_user_ids: list[str] = field(default_factory=lambda: _env_csv("ADMIN_USER_IDS"))
    vip_user_ids: list[str] = field(default_factory=lambda: _env_csv("VIP_USER_IDS"))
    command_cooldown_ms: int = int(os.getenv("COMMAND_COOLDOWN_MS", "1000"))

    plugins_dir: str = os.getenv("TOKI_PLUGINS_DIR", _DEFAULT_PLUGINS_DIR)
    media_probe_timeout_seconds: float = float(os.getenv("MEDIA_PROBE_TIMEOUT_SECONDS", "5"))
    media_download_timeout_seconds: float = float(os.getenv("MEDIA_DOWNLOAD_TIMEOUT_SECONDS", "30"))
    cron_default_timezone: str = _valid_timezone_name(os.getenv("CRON_DEFAULT_TIMEZONE", "Asia/Manila"), "UTC")

    telegram_startup_retry_delay_seconds: int = int(os.getenv("TELEGRAM_STARTUP_RETRY_DELAY_SECONDS", "10"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def cooldown_seconds(self) -> float:
        return max(self.command_cooldown_ms, 0) / 1000.0

    def is_admin(self, user_id: str | int | None) -> bool:
        return user_id is not None and str(user_id) in self.admin_user_ids

    def is_vip(self, user_id: str | int | None) -> bool:
        return user_id is not None and str(user_id) in self.vip_user_ids

    def apply_overrides(self, data: dict[str, Any]) -> "AppConfig":
        """Overlay values from a ``bot.yaml`` mapping."""
        if "prefix" in data and data["prefix"]:
            self.command_prefix = str(data["prefix"])
        if "admins" in data:
            self.admin_user_ids = _id_list(data["admins"])
        if "vips" in data:
            self.vip_user_ids = _id_list(data["vips"])
        return self

    @classmethod
    def load(cls, path: Path | None = None) -> "AppConfig":
        config = cls()
        config_path = path or resolve_config_file(BOT_CONFIG_FILENAME)
        if config_path is None or not config_path.is_file():
            return config
        data = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a mapping at top level", config_path)
            return config
        logger.info("Loaded bot config overrides from %s", config_path)
        return config.apply_overrides(data)
