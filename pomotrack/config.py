"""Configuration management for Pomotrack."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import toml

logger = logging.getLogger(__name__)

HOME_ENV = "POMOTRACK_HOME"


@dataclass
class TelegramConfig:
    """Telegram bot configuration."""
    bot_token: str = ""
    chat_id: str = ""
    enabled: bool = False


@dataclass
class TimerConfig:
    """Timer duration settings."""
    focus_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    long_break_after: int = 4  # pomodoros before long break


@dataclass
class StorageConfig:
    """Where session data is persisted."""
    remote_enabled: bool = True
    db_file: str = ""  # empty means <config dir>/pomotrack.db


@dataclass
class SoundConfig:
    """Audible cues."""
    bell: bool = True


@dataclass
class Config:
    """Main application configuration."""
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    timer: TimerConfig = field(default_factory=TimerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    sound: SoundConfig = field(default_factory=SoundConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary."""
        telegram_data = data.get("telegram", {})
        timer_data = data.get("timer", {})
        storage_data = data.get("storage", {})
        sound_data = data.get("sound", {})

        return cls(
            telegram=TelegramConfig(
                bot_token=telegram_data.get("bot_token", ""),
                chat_id=telegram_data.get("chat_id", ""),
                enabled=telegram_data.get("enabled", False),
            ),
            timer=TimerConfig(
                focus_minutes=timer_data.get("focus_minutes", 25),
                short_break_minutes=timer_data.get("short_break_minutes", 5),
                long_break_minutes=timer_data.get("long_break_minutes", 15),
                long_break_after=timer_data.get("long_break_after", 4),
            ),
            storage=StorageConfig(
                remote_enabled=storage_data.get("remote_enabled", True),
                db_file=storage_data.get("db_file", ""),
            ),
            sound=SoundConfig(
                bell=sound_data.get("bell", True),
            ),
        )

    def to_dict(self) -> dict:
        """Convert Config to dictionary."""
        return {
            "telegram": {
                "bot_token": self.telegram.bot_token,
                "chat_id": self.telegram.chat_id,
                "enabled": self.telegram.enabled,
            },
            "timer": {
                "focus_minutes": self.timer.focus_minutes,
                "short_break_minutes": self.timer.short_break_minutes,
                "long_break_minutes": self.timer.long_break_minutes,
                "long_break_after": self.timer.long_break_after,
            },
            "storage": {
                "remote_enabled": self.storage.remote_enabled,
                "db_file": self.storage.db_file,
            },
            "sound": {
                "bell": self.sound.bell,
            },
        }


class ConfigManager:
    """Manages configuration file operations."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            config_dir: Override config directory (for testing). Defaults to
                $POMOTRACK_HOME, then ~/.pomotrack
        """
        if config_dir is None:
            env_dir = os.environ.get(HOME_ENV)
            self.config_dir = Path(env_dir) if env_dir else Path.home() / ".pomotrack"
        else:
            self.config_dir = config_dir

        self.config_file = self.config_dir / "config.toml"
        self.local_dir = self.config_dir / "local"
        self.log_file = self.config_dir / "pomotrack.log"

    def ensure_dirs(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def db_file(self, config: Config) -> Path:
        """Path of the SQLite store for the given configuration."""
        if config.storage.db_file:
            return Path(config.storage.db_file).expanduser()
        return self.config_dir / "pomotrack.db"

    def load(self) -> Config:
        """Load configuration from file.

        Returns:
            Config object with loaded or default values
        """
        if not self.config_file.exists():
            return Config()

        try:
            data = toml.load(self.config_file)
            return Config.from_dict(data)
        except Exception as e:
            logger.warning(f"Unreadable config {self.config_file}, using defaults: {e}")
            return Config()

    def save(self, config: Config) -> None:
        """Save configuration to file.

        Args:
            config: Configuration to save
        """
        self.ensure_dirs()
        with open(self.config_file, "w") as f:
            toml.dump(config.to_dict(), f)

    def is_configured(self) -> bool:
        """Check if initial setup has been completed."""
        return self.config_file.exists()


# Global config manager instance, used by the CLI only
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global config manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
