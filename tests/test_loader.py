from pathlib import Path

from toki_telegram.loader import PluginLoader, validate_cronjob
from toki_telegram.registry import Cronjob

REPO_PLUGINS = Path(__file__).resolve().parents[1] / "toki-core" / "plugins"


def _write(root: Path, relative: str, source: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source)
    return path


PING = """
from toki_telegram import Command

async def execute(ctx):
    await ctx.chat.reply("{reply}")

command = Command(name="ping", description="Ping", aliases=("p",), prefix=True, execute=execute)
"""


def test_loads_valid_commands_and_skips_bad_files(tmp_path: Path) -> None:
    _write(tmp_path, "commands/ping.py", PING.format(reply="Pong!"))
    _write(tmp_path, "commands/nested/echo.py", (
        "from toki_telegram import Command\n"
        "async def run(ctx):\n    pass\n"
        "commands = [Command(name='echo', description='Echo', execute=run),\n"
        "            Command(name='nodesc', execute=run)]\n"
    ))
    _write(tmp_path, "commands/syntax_error.py", "def broken(:\n")
    _write(tmp_path, "commands/no_descriptor.py", "VALUE = 1\n")
    _write(tmp_path, "commands/_private.py", "raise RuntimeError('never imported')\n")

    table = PluginLoader(tmp_path).load_commands()

    assert sorted(command.name for command in table.unique()) == ["echo", "ping"]
    assert table.get("p").name == "ping"
    assert table.get("ping").prefix.value == "required"


def test_reload_executes_edited_files_again(tmp_path: Path) -> None:
    path = _write(tmp_path, "commands/ping.py", PING.format(reply="Pong!"))
    loader = PluginLoader(tmp_path)
    first = loader.load_commands().get("ping")

    path.write_text(PING.format(reply="Pong again!"))
    second = loader.load_commands().get("ping")

    assert first is not second
    assert first.execute is not second.execute


def test_missing_folders_load_nothing(tmp_path: Path) -> None:
    loader = PluginLoader(tmp_path)

    assert len(loader.load_commands()) == 0
    assert loader.load_events() == []
    assert loader.load_cronjobs() == []


def test_events_and_cronjobs(tmp_path: Path) -> None:
    _write(tmp_path, "events/logger.py", (
        "from toki_telegram import Event\n"
        "async def handle(ctx):\n    pass\n"
        "event = Event(name='logger', handle_event=handle)\n"
    ))
    _write(tmp_path, "cronjobs/jobs.py", (
        "from toki_telegram import Cronjob\n"
        "async def run(ctx):\n    pass\n"
        "cronjobs = [\n"
        "    Cronjob(name='morning', schedule='0 9 * * *', chat_id=123, execute=run),\n"
        "    Cronjob(name='nowhere', schedule='0 9 * * *', execute=run),\n"
        "    Cronjob(name='garbled', schedule='not a schedule', chat_id=1, execute=run),\n"
        "]\n"
    ))
    loader = PluginLoader(tmp_path)

    assert [event.name for event in loader.load_events()] == ["logger"]
    assert [cronjob.name for cronjob in loader.load_cronjobs()] == ["morning"]


def test_validate_cronjob_rules() -> None:
    async def run(ctx) -> None:
        return None

    assert validate_cronjob(Cronjob(name="a", schedule="*/5 * * * *", chat_id="-100", execute=run))
    assert not validate_cronjob(Cronjob(name="a", schedule="*/5 * * * *", chat_id="", execute=run))
    assert not validate_cronjob(Cronjob(name="a", schedule="61 * * * *", chat_id=1, execute=run))
    assert not validate_cronjob({"name": "a"})


def test_bundled_plugins_load(monkeypatch) -> None:
    monkeypatch.setenv("DAILY_REMINDER_CHAT_ID", "-1001")
    loader = PluginLoader(REPO_PLUGINS)

    table = loader.load_commands()

    for name in ("help", "ping", "demo", "greet", "listen", "button", "getsticker"):
        assert name in table
    assert table.get("stickerid").name == "getsticker"
    assert table.get("menu").name == "help"
    assert table.get("demo").admin
    assert [event.name for event in loader.load_events()] == ["message_logger"]
    assert [cronjob.name for cronjob in loader.load_cronjobs()] == ["daily_reminder"]
