"""
Pytest configuration and fixtures for Gatecord tests.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio
import yaml

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from gatecord.configuration.app_configuration import AppConfig  # noqa: E402
from gatecord.database.db_connection import ConnectionManager  # noqa: E402
from gatecord.services.entitlement_store import EntitlementStore  # noqa: E402
from gatecord.services.settings_service import SettingsService  # noqa: E402

T0 = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def connections(tmp_path: Path):
    manager = ConnectionManager()
    await manager.open(tmp_path / "gatecord.db")
    yield manager
    await manager.close()


@pytest.fixture
def settings(connections, clock) -> SettingsService:
    return SettingsService(connections, "!", max_prefix_length=5, clock=clock)


@pytest.fixture
def entitlements(connections, clock) -> EntitlementStore:
    return EntitlementStore(connections, clock=clock)


OWNER_ID = 1
ERROR_CHANNEL_ID = 999_000


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    path = tmp_path / "app_config.yml"
    path.write_text(
        yaml.safe_dump(
            {
                "prefix": "!",
                "owner_ids": [OWNER_ID],
                "support_url": "https://example.invalid/support",
                "channels": {"error": ERROR_CHANNEL_ID},
                "error_reporting": {"max_chars": 1000},
            }
        ),
        encoding="utf-8",
    )
    return AppConfig(path)
