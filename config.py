"""Configuration management for FamilyReel."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Public mirrors tried when the primary embed fails. Tier A serves direct
# stream descriptors, tier B a video metadata API plus an embeddable page.
DEFAULT_TIER_A = [
    "https://pipedapi.kavin.rocks",
    "https://pipedapi.smnz.de",
    "https://pipedapi.adminforge.de",
    "https://pipedapi.aeong.one",
    "https://piped-api.lunar.icu",
    "https://pipedapi.ggxt.dev",
    "https://pipedapi.simpleprivacy.fr",
    "https://pipedapi.drgns.space",
    "https://piped-api.garudalinux.org",
    "https://pipedapi.privacydev.net",
    "https://pipedapi.moomoo.me",
    "https://api-piped.mha.fi",
    "https://pipedapi.leptons.xyz",
    "https://pipedapi.frontend.social",
]

DEFAULT_TIER_B = [
    "https://vid.puffyan.us",
    "https://invidious.lunar.icu",
    "https://iv.ggtyler.dev",
    "https://inv.odyssey346.dev",
    "https://invidious.nerdvpn.de",
    "https://invidious.protokolla.fi",
    "https://iv.datura.network",
    "https://invidious.projectsegfau.lt",
    "https://invidious.slipfox.xyz",
    "https://invidious.kavin.rocks",
    "https://invidious.io.lol",
    "https://inv.vern.cc",
    "https://invidious.private.coffee",
    "https://iv.melmac.space",
]


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in strings, dicts, and lists.

    Supports both ${VAR} and $VAR patterns.
    """
    if isinstance(value, str):
        pattern = re.compile(r'\$\{([^}]+)\}')
        result = pattern.sub(lambda m: os.environ.get(m.group(1), ''), value)
        pattern = re.compile(r'\$([A-Za-z_][A-Za-z0-9_]*)')
        result = pattern.sub(lambda m: os.environ.get(m.group(1), ''), result)
        return result
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    else:
        return value


def _split_list(raw: str, default: list[str]) -> list[str]:
    """Parse a comma-separated env value; empty means use the default list."""
    items = [s.strip().rstrip("/") for s in raw.split(",") if s.strip()]
    return items or list(default)


@dataclass
class WebConfig:
    """Web server configuration."""
    host: str = "0.0.0.0"
    port: int = 8080
    pin: str = ""  # PIN for the bootstrapped parent profile
    session_secret: str = ""  # auto-generated if not set
    base_url: str = ""  # embed player origin

    def __post_init__(self):
        if not self.base_url:
            self.base_url = os.environ.get("FR_BASE_URL", "")
        # YAML reads an unquoted PIN as an int
        self.pin = str(self.pin) if self.pin is not None else ""


@dataclass
class TelegramConfig:
    """Telegram notification configuration (optional)."""
    bot_token: str = ""
    admin_chat_id: str = ""


@dataclass
class PlaybackConfig:
    """Fallback providers and player timing."""
    tier_a_instances: list[str] = field(default_factory=lambda: list(DEFAULT_TIER_A))
    tier_b_instances: list[str] = field(default_factory=lambda: list(DEFAULT_TIER_B))
    provider_timeout: float = 2.0  # seconds per provider request
    api_load_timeout: float = 10.0  # seconds to wait for the embed API before falling back
    ydl_timeout: int = 30  # seconds for a yt-dlp metadata lookup


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "db/familyreel.db"


@dataclass
class WatchLimitsConfig:
    """Default parental controls, used until a parent saves settings."""
    enabled: bool = False
    daily_limit_minutes: int = 60
    schedule_start: str = "09:00"
    schedule_end: str = "18:00"
    timezone: str = "America/New_York"
    notify_on_limit: bool = True


@dataclass
class Config:
    """Main configuration container."""
    web: WebConfig = field(default_factory=WebConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    watch_limits: WatchLimitsConfig = field(default_factory=WatchLimitsConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Config":
        """Load configuration from YAML file with environment variable expansion."""
        path = Path(path)
        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        expanded_config = expand_env_vars(raw_config)

        web_data = expanded_config.get("web", {}) or {}
        telegram_data = expanded_config.get("telegram", {}) or {}
        playback_data = expanded_config.get("playback", {}) or {}
        database_data = expanded_config.get("database", {}) or {}
        watch_limits_data = expanded_config.get("watch_limits", {}) or {}

        return cls(
            web=WebConfig(**web_data),
            telegram=TelegramConfig(**telegram_data),
            playback=PlaybackConfig(**playback_data),
            database=DatabaseConfig(**database_data),
            watch_limits=WatchLimitsConfig(**watch_limits_data),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration directly from environment variables."""
        return cls(
            web=WebConfig(
                host=os.environ.get("FR_WEB_HOST", "0.0.0.0"),
                port=int(os.environ.get("FR_WEB_PORT", "8080")),
                pin=os.environ.get("FR_PIN", ""),
                session_secret=os.environ.get("FR_SESSION_SECRET", ""),
                base_url=os.environ.get("FR_BASE_URL", ""),
            ),
            telegram=TelegramConfig(
                bot_token=os.environ.get("FR_BOT_TOKEN", ""),
                admin_chat_id=os.environ.get("FR_ADMIN_CHAT_ID", ""),
            ),
            playback=PlaybackConfig(
                tier_a_instances=_split_list(os.environ.get("FR_TIER_A_INSTANCES", ""), DEFAULT_TIER_A),
                tier_b_instances=_split_list(os.environ.get("FR_TIER_B_INSTANCES", ""), DEFAULT_TIER_B),
                provider_timeout=float(os.environ.get("FR_PROVIDER_TIMEOUT", "2")),
                api_load_timeout=float(os.environ.get("FR_API_LOAD_TIMEOUT", "10")),
                ydl_timeout=int(os.environ.get("FR_YDL_TIMEOUT", "30")),
            ),
            database=DatabaseConfig(
                path=os.environ.get("FR_DB_PATH", "db/familyreel.db"),
            ),
            watch_limits=WatchLimitsConfig(
                enabled=os.environ.get("FR_CONTROLS_ENABLED", "false").lower() == "true",
                daily_limit_minutes=int(os.environ.get("FR_DAILY_LIMIT_MINUTES", "60")),
                schedule_start=os.environ.get("FR_SCHEDULE_START", "09:00"),
                schedule_end=os.environ.get("FR_SCHEDULE_END", "18:00"),
                timezone=os.environ.get("FR_TIMEZONE", "America/New_York"),
                notify_on_limit=os.environ.get("FR_NOTIFY_ON_LIMIT", "true").lower() == "true",
            ),
        )


_DEFAULT_PATHS = ("config.yaml", "config.yml")


def _find_config_file(config_path: str | None) -> Path | None:
    """The explicit path (which must exist), else the first default present."""
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return path
    return next((Path(p) for p in _DEFAULT_PATHS if Path(p).exists()), None)


def load_config(config_path: str | None = None) -> Config:
    """Load configuration from a YAML file, falling back to FR_* environment variables.

    Without `config_path`, config.yaml then config.yml in the working
    directory are tried.
    """
    path = _find_config_file(config_path)
    config = Config.from_yaml(path) if path else Config.from_env()

    admin_id = config.telegram.admin_chat_id
    if config.telegram.bot_token and not admin_id:
        logger.warning("telegram.admin_chat_id is empty, limit notifications disabled")
    elif admin_id and not admin_id.lstrip("-").isdigit():
        logger.warning("telegram.admin_chat_id %r is not numeric, notifications will fail", admin_id)

    pb = config.playback
    pb.tier_a_instances = [u.rstrip("/") for u in pb.tier_a_instances if u]
    pb.tier_b_instances = [u.rstrip("/") for u in pb.tier_b_instances if u]
    if not pb.tier_b_instances:
        logger.warning("No tier B instances configured, failed embeds end in an error state")

    tz = config.watch_limits.timezone
    if tz:
        try:
            from zoneinfo import ZoneInfo
            ZoneInfo(tz)
        except Exception:
            logger.warning("Invalid timezone %r in config, falling back to UTC", tz)
            config.watch_limits.timezone = ""

    return config
