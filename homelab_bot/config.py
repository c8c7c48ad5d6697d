import logging
import os
import sys
from dataclasses import dataclass
from datetime import time
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .external_ip import DEFAULT_LOOKUP_URL

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE: str = "America/New_York"
DEFAULT_REPORT_TIME: str = "08:00"


# ------------------------------
# Configuration
# ------------------------------
@dataclass(frozen=True)
class BotConfig:
    """Process-wide settings, built once at startup and passed around."""

    token: str
    allowed_channel_id: Optional[int] = None
    allowed_user_id: Optional[int] = None
    report_channel_id: Optional[int] = None
    state_dir: Path = Path("data")
    timezone: str = DEFAULT_TIMEZONE
    report_time: time = time(8, 0)
    external_ip_url: str = DEFAULT_LOOKUP_URL
    guild_id: Optional[int] = None
    register_global: bool = False
    command_prefix: str = "!"
    debug: bool = False

    @property
    def report_fire_time(self) -> time:
        """Daily report time, aware in the configured timezone."""
        return self.report_time.replace(tzinfo=ZoneInfo(self.timezone))

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[str] = None,
    ) -> "BotConfig":
        if env is None:
            logger.debug("Loading environment variables from %s", dotenv_path or ".env")
            load_dotenv(dotenv_path)
            env = os.environ

        timezone_name: str = env.get("REPORT_TIMEZONE") or DEFAULT_TIMEZONE
        _validate_timezone(timezone_name)

        config = cls(
            token=_load_required(env, "DISCORD_TOKEN"),
            allowed_channel_id=_load_optional_id(env, "DISCORD_ALLOWED_CHANNEL_ID"),
            allowed_user_id=_load_optional_id(env, "DISCORD_ALLOWED_USER_ID"),
            report_channel_id=_load_optional_id(env, "DISCORD_REPORT_CHANNEL_ID"),
            state_dir=Path(env.get("BOT_STATE_DIR") or Path.cwd() / "data"),
            timezone=timezone_name,
            report_time=_parse_report_time(
                env.get("REPORT_TIME") or DEFAULT_REPORT_TIME
            ),
            external_ip_url=env.get("EXTERNAL_IP_URL") or DEFAULT_LOOKUP_URL,
            guild_id=_load_optional_id(env, "DISCORD_GUILD_ID"),
            register_global=env.get("DISCORD_REGISTER_GLOBAL", "").lower() == "true",
            command_prefix=env.get("COMMAND_PREFIX") or "!",
            debug=env.get("DEBUG", "0") == "1",
        )

        logger.debug("DISCORD_ALLOWED_CHANNEL_ID: %s", config.allowed_channel_id)
        logger.debug("DISCORD_ALLOWED_USER_ID: %s", config.allowed_user_id)
        logger.debug("DISCORD_REPORT_CHANNEL_ID: %s", config.report_channel_id)
        logger.debug("BOT_STATE_DIR: %s", config.state_dir)
        logger.debug(
            "Daily report at %s %s", config.report_time.strftime("%H:%M"), timezone_name
        )
        return config


def _load_required(env: Mapping[str, str], key: str) -> str:
    value = env.get(key)
    if not value:
        logger.critical("%s is not set. Exiting.", key)
        sys.exit(1)
    return value


def _load_optional_id(env: Mapping[str, str], key: str) -> Optional[int]:
    raw: str = (env.get(key) or "").strip()
    if not raw:
        return None
    if not raw.isdigit():
        logger.critical("%s must be a numeric Discord ID. Exiting.", key)
        sys.exit(1)
    return int(raw)


def _validate_timezone(name: str) -> None:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.critical("REPORT_TIMEZONE '%s' is not a known timezone. Exiting.", name)
        sys.exit(1)


def _parse_report_time(raw: str) -> time:
    try:
        hour_raw, minute_raw = raw.strip().split(":")
        return time(int(hour_raw), int(minute_raw))
    except ValueError:
        logger.critical("REPORT_TIME '%s' must use HH:MM. Exiting.", raw)
        sys.exit(1)
