from pathlib import Path

import pytest
import yaml

from gatecord.configuration.app_configuration import AppConfig
from gatecord.dispatch.registry import CommandRegistry


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_payload = {
        "prefix": "?",
        "owner_ids": [1, "2"],
        "support_url": "https://example.invalid/support",
        "channels": {"error": "1380538525048508417"},
        "error_reporting": {"max_chars": 2000},
        "prefixes": {"max_length": 3},
        "notices": {"blacklist_user": 0.5, "no_prefix_dm": 0.25},
        "premium": {"default_duration": "7d", "sweep_interval_seconds": 120},
        "database": {"path": str(config_path.parent / "bot.db")},
        "status": {"text": "?ping"},
    }
    config_path.write_text(yaml.safe_dump(config_payload), encoding="utf-8")

    config = AppConfig(config_path)

    assert config.default_prefix == "?"
    assert config.owner_ids == frozenset({1, 2})
    assert config.support_url == "https://example.invalid/support"
    assert config.error_channel_id == 1380538525048508417
    assert config.error_report_max_chars == 2000
    assert config.max_prefix_length == 3
    assert config.blacklist_user_notice_rate == pytest.approx(0.5)
    assert config.blacklist_guild_notice_rate == pytest.approx(0.05)
    assert config.no_prefix_dm_notice_rate == pytest.approx(0.25)
    assert config.no_prefix_channel_notice_rate == pytest.approx(0.2)
    assert config.default_grant_duration == "7d"
    assert config.entitlement_sweep_interval == pytest.approx(120.0)
    assert config.database_path == (config_path.parent / "bot.db").resolve()
    assert config.status_text == "?ping"


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.default_prefix == "."
    assert config.owner_ids == frozenset()
    assert config.error_channel_id is None
    assert config.error_report_max_chars == 4000
    assert config.max_prefix_length == 5
    assert config.default_grant_duration == "30d"
    assert config.entitlement_sweep_interval == pytest.approx(3600.0)
    assert config.status_text == ".ping"


def test_notice_rates_are_clamped(config_path: Path) -> None:
    config_path.write_text(
        yaml.safe_dump({"notices": {"blacklist_user": 4, "blacklist_guild": -1, "no_prefix_dm": "often"}}),
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.blacklist_user_notice_rate == 1.0
    assert config.blacklist_guild_notice_rate == 0.0
    assert config.no_prefix_dm_notice_rate == pytest.approx(0.3)


def test_invalid_owner_ids_are_skipped(config_path: Path) -> None:
    config_path.write_text(yaml.safe_dump({"owner_ids": ["12", "nope", 34]}), encoding="utf-8")

    assert AppConfig(config_path).owner_ids == frozenset({12, 34})


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text(yaml.safe_dump({"prefix": "!"}), encoding="utf-8")
    config = AppConfig(config_path)
    assert config.default_prefix == "!"

    config_path.write_text(yaml.safe_dump({"prefix": "$"}), encoding="utf-8")
    config.reload()

    assert config.default_prefix == "$"
    assert config.get("prefix") == "$"


def test_shipped_status_text_names_a_real_command() -> None:
    config = AppConfig(Path(__file__).resolve().parents[1] / "config" / "app_config.yml")
    registry = CommandRegistry()
    registry.load_all()

    hint = config.status_text.split()[0]

    assert hint.startswith(config.default_prefix)
    assert hint[len(config.default_prefix):] in registry
