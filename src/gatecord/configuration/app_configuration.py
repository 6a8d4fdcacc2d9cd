from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, FrozenSet
import yaml

from gatecord.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_PREFIX = "."


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes typed
    properties for the dispatcher, the entitlement subsystem and the runtime.
    Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    @staticmethod
    def _rate(section: Dict[str, Any], key: str, default: float) -> float:
        try:
            value = float(section.get(key, default))
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid rate for %s; using %.2f", key, default)
            return default
        return min(max(value, 0.0), 1.0)

    @staticmethod
    def _channel_id(section: Dict[str, Any], key: str) -> int | None:
        value = section.get(key)
        try:
            return int(value) if value else None
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid channel id for %s: %r", key, value)
            return None

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # Dispatch
    # --------------------------
    @property
    def default_prefix(self) -> str:
        """Global fallback prefix used when a guild has no override."""
        value = self._data.get("prefix")
        return str(value) if value else DEFAULT_PREFIX

    @property
    def owner_ids(self) -> FrozenSet[int]:
        """Operator user ids; they bypass maintenance and owner-only gates."""
        raw = self._data.get("owner_ids") or []
        if isinstance(raw, (str, int)):
            raw = str(raw).split(",")
        owners = set()
        for item in raw:
            try:
                owners.add(int(str(item).strip()))
            except ValueError:
                logger.warning("[APP CONFIGURATION] Ignoring invalid owner id %r", item)
        return frozenset(owners)

    @property
    def max_prefix_length(self) -> int:
        return int(self._section("prefixes").get("max_length", 5))

    @property
    def error_report_max_chars(self) -> int:
        """Upper bound for tracebacks mirrored to the error channel."""
        return int(self._section("error_reporting").get("max_chars", 4000))

    @property
    def error_channel_id(self) -> int | None:
        return self._channel_id(self._section("channels"), "error")

    @property
    def support_url(self) -> str:
        return str(self._data.get("support_url") or "")

    # --------------------------
    # Notice probabilities
    # --------------------------
    @property
    def blacklist_user_notice_rate(self) -> float:
        """Chance that a blacklisted user is told about the denial."""
        return self._rate(self._section("notices"), "blacklist_user", 0.1)

    @property
    def blacklist_guild_notice_rate(self) -> float:
        """Chance that a command in a blacklisted guild gets a denial notice."""
        return self._rate(self._section("notices"), "blacklist_guild", 0.05)

    @property
    def no_prefix_dm_notice_rate(self) -> float:
        """Chance that a lapsed no-prefix holder is sent a direct notice."""
        return self._rate(self._section("notices"), "no_prefix_dm", 0.3)

    @property
    def no_prefix_channel_notice_rate(self) -> float:
        """Chance of the in-channel fallback when the direct notice fails."""
        return self._rate(self._section("notices"), "no_prefix_channel", 0.2)

    # --------------------------
    # Entitlements
    # --------------------------
    @property
    def default_grant_duration(self) -> str:
        return str(self._section("premium").get("default_duration", "30d"))

    @property
    def entitlement_sweep_interval(self) -> float:
        """Seconds between background sweeps of expired entitlements.

        Default is 3600 seconds (one hour).
        """
        return float(self._section("premium").get("sweep_interval_seconds", 3600.0))

    # --------------------------
    # Runtime
    # --------------------------
    @property
    def database_path(self) -> Path:
        return Path(self._section("database").get("path", "./data/gatecord.db")).resolve()

    @property
    def status_text(self) -> str:
        return str(self._section("status").get("text") or f"{self.default_prefix}ping")


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
