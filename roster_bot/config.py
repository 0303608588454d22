import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Pattern

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


class Config:
    """Bot configuration settings"""

    # Discord settings
    DISCORD_TOKEN = os.getenv('DISCORD_TOKEN')
    DISCORD_GUILD_ID = int(os.getenv('DISCORD_GUILD_ID', 0))
    DISCORD_GUILD_IDS = os.getenv('DISCORD_GUILD_IDS', '')  # Comma-separated for multi-guild support
    OWNER_DISCORD_ID = int(os.getenv('OWNER_DISCORD_ID', 0))

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///roster.db')

    # Bot settings
    COMMAND_PREFIX = os.getenv('COMMAND_PREFIX', '!')
    DEBUG = _env_flag('DEBUG', 'False')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Roster settings
    APP_ID = os.getenv('APP_ID', 'default-app-id')
    KILL_ID_PATTERN = os.getenv('KILL_ID_PATTERN', r'^\d+$')
    STRICT_NUMERIC = _env_flag('STRICT_NUMERIC', 'False')
    REJECT_DUPLICATE_IDS = _env_flag('REJECT_DUPLICATE_IDS', 'True')

    # Screenshot analysis settings
    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY', '')
    GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')
    GEMINI_TIMEOUT_SECONDS = float(os.getenv('GEMINI_TIMEOUT_SECONDS', 60))

    @classmethod
    def get_guild_ids(cls):
        """Get list of guild IDs for command syncing"""
        if cls.DISCORD_GUILD_IDS:
            # Multi-guild support: comma-separated IDs
            try:
                return [int(guild_id.strip()) for guild_id in cls.DISCORD_GUILD_IDS.split(',') if guild_id.strip()]
            except ValueError:
                raise ValueError("DISCORD_GUILD_IDS must be comma-separated integers")
        elif cls.DISCORD_GUILD_ID:
            return [cls.DISCORD_GUILD_ID]
        else:
            # Global sync
            return []

    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not cls.DISCORD_TOKEN:
            raise ValueError("DISCORD_TOKEN is required")
        if not cls.OWNER_DISCORD_ID:
            raise ValueError("OWNER_DISCORD_ID is required")
        try:
            re.compile(cls.KILL_ID_PATTERN)
        except re.error as e:
            raise ValueError(f"KILL_ID_PATTERN is not a valid regular expression: {e}")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TrackerSettings:
    """
    Settings handed to the roster operations at construction time.

    Operations never read Config themselves; the bot builds one of these
    with from_config() and tests build their own.
    """
    app_id: str = 'default-app-id'
    kill_id_pattern: Pattern = field(default_factory=lambda: re.compile(r'^\d+$'))
    strict_numeric: bool = False
    reject_duplicate_ids: bool = True
    clock: Callable[[], datetime] = utc_now

    @classmethod
    def from_config(cls) -> 'TrackerSettings':
        return cls(
            app_id=Config.APP_ID,
            kill_id_pattern=re.compile(Config.KILL_ID_PATTERN),
            strict_numeric=Config.STRICT_NUMERIC,
            reject_duplicate_ids=Config.REJECT_DUPLICATE_IDS,
        )
