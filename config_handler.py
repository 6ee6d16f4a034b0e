"""
Configuration Handler for OMWModManager
Cross-platform configuration storage.
- Windows: %APPDATA%/OMWModManager/
- macOS: ~/Library/Application Support/OMWModManager/
- Linux: ~/.config/omwmodmanager/
"""

import json
import os
import logging
import platform
import tempfile
from pathlib import Path
from typing import Any
from dataclasses import dataclass, asdict

# Module logger
log = logging.getLogger("omwmodmanager.config_handler")


def get_platform() -> str:
    """Get current platform: 'windows', 'macos', or 'linux'."""
    system = platform.system().lower()
    if system == 'darwin':
        return 'macos'
    elif system == 'windows':
        return 'windows'
    else:
        return 'linux'


PLATFORM = get_platform()


@dataclass
class AppConfig:
    """Application configuration data class."""
    # Path to openmw.cfg
    openmw_config_path: str = ""

    # OpenMW launcher (or openmw executable) started by "run game"
    openmw_launcher_path: str = ""

    # mlox executable or mlox.py
    mlox_path: str = ""

    # Treat anything mlox writes to stderr as a failed sort
    mlox_fail_on_stderr: bool = True

    # Debug logging
    debug_logging: bool = False


class ConfigHandler:
    """
    Handles loading, saving, and accessing application configuration.
    Cross-platform config directory support.
    """

    CONFIG_DIR_NAME = "OMWModManager" if PLATFORM == 'windows' else "omwmodmanager"
    CONFIG_FILE_NAME = "mod_manager_config.json"
    STATE_FILE_NAME = "mods_list_manager_config.json"
    WORK_DIR_NAME = "work"

    def __init__(self):
        self._config_dir = self._get_config_dir()
        self._config_file = self._config_dir / self.CONFIG_FILE_NAME
        self._config: AppConfig = AppConfig()

        # Ensure directories exist
        self._config_dir.mkdir(parents=True, exist_ok=True)

        # Missing config file is written with defaults
        if not self.load():
            self.save()

    def _get_config_dir(self) -> Path:
        """Get platform-specific config directory."""
        if PLATFORM == 'windows':
            appdata = os.environ.get('APPDATA')
            if appdata:
                return Path(appdata) / self.CONFIG_DIR_NAME
            return Path.home() / 'AppData' / 'Roaming' / self.CONFIG_DIR_NAME

        elif PLATFORM == 'macos':
            return Path.home() / 'Library' / 'Application Support' / self.CONFIG_DIR_NAME

        else:
            # Linux: XDG config directory
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
            if xdg_config_home:
                base = Path(xdg_config_home)
            else:
                base = Path.home() / ".config"
            return base / self.CONFIG_DIR_NAME

    @property
    def config_dir(self) -> Path:
        """Return the configuration directory path."""
        return self._config_dir

    @property
    def state_file(self) -> Path:
        """Where the mods list state is persisted."""
        return self._config_dir / self.STATE_FILE_NAME

    @property
    def work_dir(self) -> Path:
        """Per-user scratch directory for files handed to external tools."""
        return self._config_dir / self.WORK_DIR_NAME

    @property
    def config(self) -> AppConfig:
        """Return the current configuration."""
        return self._config

    def load(self) -> bool:
        """
        Load configuration from file.
        Returns True if loaded successfully, False otherwise.
        """
        if not self._config_file.exists():
            return False

        try:
            with open(self._config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            if not isinstance(data, dict):
                log.warning("Config file is not a valid JSON object")
                return False

            # Keep defaults for missing keys and wrongly typed values
            for key, value in data.items():
                if not hasattr(self._config, key):
                    continue
                default = getattr(AppConfig(), key)
                if not isinstance(value, type(default)):
                    log.warning(f"Ignoring config value for {key}: expected {type(default).__name__}")
                    continue
                setattr(self._config, key, value)

            return True
        except (json.JSONDecodeError, IOError, PermissionError, TypeError) as e:
            log.warning(f"Failed to load config: {e}")
            return False

    def save(self) -> bool:
        """
        Save configuration to file using atomic write.
        Returns True if saved successfully, False otherwise.
        """
        try:
            # Write to temp file first, then atomic rename
            fd, temp_path = tempfile.mkstemp(
                suffix='.json',
                prefix='config_',
                dir=self._config_dir
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(asdict(self._config), f, indent=2)

                Path(temp_path).replace(self._config_file)
                return True
            except Exception:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise
        except (IOError, PermissionError, OSError) as e:
            log.error(f"Failed to save config: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key."""
        return getattr(self._config, key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value and save."""
        if hasattr(self._config, key):
            setattr(self._config, key, value)
            self.save()
