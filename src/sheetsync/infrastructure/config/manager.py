"""
Settings manager.

Caches the loaded engine settings so every component of one process sees
the same values, with an explicit force_reload for long-running callers.
"""

import logging
from pathlib import Path
from typing import Optional

from sheetsync.domain.config import SyncSettings
from sheetsync.infrastructure.config.repository import ConfigRepository

logger = logging.getLogger(__name__)


class SettingsManager:
    """
    Loads and caches SyncSettings.

    Relative paths in the settings (db_path, log_file) are resolved against
    the parent of the config directory, so a project laid out as

        project/config/sheetsync.json
        project/output/sheetsync.db

    works regardless of the current working directory.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Args:
            config_dir: Base directory for configuration files.
                        Defaults to 'config' subdirectory of current working directory.
        """
        if config_dir is None:
            config_dir = Path.cwd() / "config"

        self.config_dir = Path(config_dir)
        self.repository = ConfigRepository(self.config_dir)
        self._settings: Optional[SyncSettings] = None

    def load_settings(self, force_reload: bool = False) -> SyncSettings:
        """
        Load engine settings.

        Args:
            force_reload: Whether to force reload from disk

        Raises:
            ConfigError: If the settings file is invalid
        """
        if self._settings is None or force_reload:
            self._settings = self.repository.load_settings()
            logger.debug(
                "Settings loaded: db=%s duplicate_headers=%s",
                self._settings.db_path,
                self._settings.duplicate_headers.value,
            )
        return self._settings

    def resolve_path(self, value: str) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        return self.config_dir.parent / path

    @property
    def db_path(self) -> Path:
        return self.resolve_path(self.load_settings().db_path)

    @property
    def log_file(self) -> Optional[Path]:
        log_file = self.load_settings().log_file
        return self.resolve_path(log_file) if log_file else None
