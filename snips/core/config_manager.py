# snips/core/config_manager.py

import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_data_dir

from .exceptions import ConfigError
from .query import DEFAULT_SORT, SortOption

logger = logging.getLogger(__name__)

APP_NAME = "snips"
SETTINGS_FILE_NAME = "settings.json"
DATA_DIR_ENV_VAR = "SNIPS_DATA_DIR"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def resolve_data_dir(explicit: Path | None = None) -> Path:
    """The --data-dir option wins, then $SNIPS_DATA_DIR, then the platform's user data directory."""
    if explicit is not None:
        return Path(explicit)
    from_env = os.getenv(DATA_DIR_ENV_VAR)
    if from_env:
        return Path(from_env)
    return Path(user_data_dir(APP_NAME))


@dataclass
class Settings:
    """User preferences, stored as settings.json inside the data directory."""
    data_dir: Path = field(default_factory=resolve_data_dir)
    default_sort: SortOption = DEFAULT_SORT
    console_log_level: str = "WARNING"

    @property
    def settings_path(self) -> Path:
        return self.data_dir / SETTINGS_FILE_NAME

    def validate(self):
        if self.console_log_level.upper() not in LOG_LEVELS:
            raise ConfigError(
                f"Unknown console_log_level: '{self.console_log_level}'. Use one of {', '.join(LOG_LEVELS)}.")

    def to_dict(self) -> dict:
        return {
            "default_sort": self.default_sort.name.lower(),
            "console_log_level": self.console_log_level.upper(),
        }


def load_settings(data_dir: Path | None = None) -> Settings:
    """Loads settings for a data directory. A missing settings file means defaults."""
    settings = Settings(data_dir=resolve_data_dir(data_dir))
    path = settings.settings_path
    if not path.exists():
        logger.debug(f"No settings file at '{path}'. Using defaults.")
        return settings

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read settings file '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file '{path}' must contain a JSON object.")

    try:
        if "default_sort" in data:
            settings.default_sort = SortOption.from_name(data["default_sort"])
    except ValueError as e:
        raise ConfigError(str(e)) from e
    settings.console_log_level = str(data.get("console_log_level", settings.console_log_level)).upper()
    settings.validate()
    return settings


def save_settings(settings: Settings) -> bool:
    """
    Writes settings.json. The previous file is backed up first and restored
    if the write fails, so a bad save never leaves a broken settings file.
    """
    settings.validate()
    path = settings.settings_path
    backup_path = path.with_suffix(".json.bak")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            shutil.copy(path, backup_path)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(settings.to_dict(), f, indent=2)
        logger.info(f"Settings saved to '{path}'.")
        return True
    except OSError as e:
        logger.error(f"Failed to save settings: {e}", exc_info=True)
        if backup_path.exists():
            shutil.copy(backup_path, path)
            logger.warning("Restored settings from backup after a failed save.")
        return False
