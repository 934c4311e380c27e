from pathlib import Path

from config import AppConfig


def test_overrides_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "bot.yaml"
    path.write_text("prefix: '!'\nadmins: [123, '456']\nvips: 789\n")

    config = AppConfig.load(path)

    assert config.command_prefix == "!"
    assert config.admin_user_ids == ["123", "456"]
    assert config.vip_user_ids == ["789"]
    assert config.is_admin(123)
    assert config.is_vip("789")
    assert not config.is_admin(None)


def test_missing_or_malformed_file_keeps_defaults(tmp_path: Path) -> None:
    listing = tmp_path / "list.yaml"
    listing.write_text("- just\n- a list\n")

    assert AppConfig.load(tmp_path / "absent.yaml").command_prefix == AppConfig().command_prefix
    assert AppConfig.load(listing).admin_user_ids == AppConfig().admin_user_ids


def test_cooldown_is_derived_from_milliseconds() -> None:
    assert AppConfig(command_cooldown_ms=1500).cooldown_seconds == 1.5
    assert AppConfig(command_cooldown_ms=-5).cooldown_seconds == 0.0
