"""Filesystem plugin discovery.

Each ``*.py`` file below ``<root>/commands``, ``<root>/events`` and
``<root>/cronjobs`` is imported fresh on every load and may expose a
module-level descriptor (``command``/``event``/``cronjob``) or a list of them
(``commands``/``events``/``cronjobs``). Invalid files are skipped with a
warning so one broken plugin never blocks the rest.
"""

from __future__ import annotations

import importlib.util
import logging
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from types import ModuleType
from typing import Any

from apscheduler.triggers.cron import CronTrigger

from toki_telegram.registry import Command, CommandTable, Cronjob, Event

logger = logging.getLogger(__name__)

_MODULE_NAMESPACE = "toki_plugins"


class PluginLoadError(RuntimeError):
    pass


def validate_command(command: Any) -> bool:
    return (
        isinstance(command, Command)
        and bool(command.name)
        and bool(command.description)
        and callable(command.execute)
    )


def validate_event(event: Any) -> bool:
    return isinstance(event, Event) and bool(event.name) and callable(event.handle_event)


def validate_cronjob(cronjob: Any) -> bool:
    if not isinstance(cronjob, Cronjob) or not cronjob.name or not callable(cronjob.execute):
        return False
    if cronjob.chat_id in (None, ""):
        return False
    try:
        CronTrigger.from_crontab(cronjob.schedule)
    except (TypeError, ValueError):
        return False
    return True


class PluginLoader:
    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self._generation = 0

    def load_commands(self) -> CommandTable:
        table = CommandTable()
        for command in self._load("commands", "command", validate_command):
            table.register(command)
        logger.info("commands_loaded", extra={"event": "commands_loaded", "count": len(table)})
        return table

    def load_events(self) -> list[Event]:
        events = list(self._load("events", "event", validate_event))
        logger.info("events_loaded", extra={"event": "events_loaded", "count": len(events)})
        return events

    def load_cronjobs(self) -> list[Cronjob]:
        cronjobs = list(self._load("cronjobs", "cronjob", validate_cronjob))
        logger.info("cronjobs_loaded", extra={"event": "cronjobs_loaded", "count": len(cronjobs)})
        return cronjobs

    def _load(self, folder: str, kind: str, validator: Callable[[Any], bool]) -> Iterator[Any]:
        self._generation += 1
        for path in self._discover(self.root / folder):
            try:
                module = self._import(path)
            except Exception:  # noqa: BLE001
                logger.exception("Error loading %s %s", kind, path.name)
                continue
            descriptors = self._descriptors(module, kind)
            if not descriptors:
                logger.warning("Skipping invalid %s file: %s", kind, path.name)
                continue
            for descriptor in descriptors:
                if not validator(descriptor):
                    logger.warning("Skipping invalid %s file: %s", kind, path.name)
                    continue
                logger.debug("Loaded %s: %s", kind, descriptor.name)
                yield descriptor

    def _discover(self, directory: Path) -> list[Path]:
        if not directory.exists():
            logger.info("Plugin directory %s does not exist; nothing to load", directory)
            return []
        try:
            return sorted(
                path
                for path in directory.rglob("*.py")
                if path.is_file() and not path.name.startswith("_")
            )
        except OSError as exc:
            raise PluginLoadError(f"Error reading plugin directory {directory}: {exc}") from exc

    def _import(self, path: Path) -> ModuleType:
        relative = path.relative_to(self.root).with_suffix("")
        module_name = ".".join((_MODULE_NAMESPACE, f"g{self._generation}", *relative.parts))
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise PluginLoadError(f"Cannot import {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        finally:
            # Drop the entry so the next reload executes the file again.
            sys.modules.pop(module_name, None)
        return module

    @staticmethod
    def _descriptors(module: ModuleType, kind: str) -> list[Any]:
        single = getattr(module, kind, None)
        if single is not None:
            return [single]
        many = getattr(module, f"{kind}s", None)
        if isinstance(many, (list, tuple)):
            return list(many)
        return []
