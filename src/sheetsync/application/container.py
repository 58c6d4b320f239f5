"""
Dependency injection container for the application.

This module provides a centralized way to create and manage application dependencies.
It follows the dependency injection pattern for clean architecture.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from ..domain.config import SourceConfig, SyncSettings
from ..domain.errors import ConfigError
from ..infrastructure.config.manager import SettingsManager
from ..infrastructure.config.repository import ConfigRepository
from ..infrastructure.excel.workbook_source import WorkbookSource
from ..infrastructure.sqlite.store import EventStore
from .sync.service import SyncOrchestrator

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    Manages the creation and lifecycle of the store, transports and sync
    services.
    """

    def __init__(self, config_dir: Optional[Path] = None, settings: Optional[SyncSettings] = None):
        """
        Initialize the container.

        Args:
            config_dir: Base directory for configuration files
            settings: Settings override (skips loading sheetsync.json)
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd() / "config"

        self._settings_manager: Optional[SettingsManager] = None
        self._config_repository: Optional[ConfigRepository] = None
        self._store: Optional[EventStore] = None
        self._transports: Dict[str, WorkbookSource] = {}
        self._settings = settings

    @property
    def settings_manager(self) -> SettingsManager:
        """Get the settings manager."""
        if self._settings_manager is None:
            self._settings_manager = SettingsManager(self.config_dir)
        return self._settings_manager

    @property
    def config_repository(self) -> ConfigRepository:
        """Get the configuration repository."""
        if self._config_repository is None:
            self._config_repository = ConfigRepository(self.config_dir)
        return self._config_repository

    @property
    def settings(self) -> SyncSettings:
        """Get engine settings (loaded once)."""
        if self._settings is None:
            self._settings = self.settings_manager.load_settings()
        return self._settings

    @property
    def store(self) -> EventStore:
        """Get the event store, schema initialized."""
        if self._store is None:
            db_path = self.settings_manager.resolve_path(self.settings.db_path)
            self._store = EventStore(db_path)
            self._store.initialize_schema()
        return self._store

    def get_source(self, source_id: str) -> SourceConfig:
        """
        Look up a registered source.

        Raises:
            ConfigError: Unknown source id
        """
        source = self.store.get_source(source_id)
        if source is None:
            raise ConfigError(f"Unknown source '{source_id}' (register it with 'source add')")
        return source

    def transport_for(self, source: SourceConfig, create: bool = False) -> WorkbookSource:
        """Workbook transport for a source (one per source per container)."""
        transport = self._transports.get(source.id)
        if transport is None or create:
            path = self.settings_manager.resolve_path(source.workbook_path)
            transport = WorkbookSource(path, source.sheet_name, create=create)
            self._transports[source.id] = transport
        return transport

    def orchestrator_for(self, source: SourceConfig, create: bool = False) -> SyncOrchestrator:
        """Sync service bound to one source."""
        return SyncOrchestrator(
            source=source,
            transport=self.transport_for(source, create=create),
            store=self.store,
            settings=self.settings,
        )

    def reset(self) -> None:
        """Reset all cached instances."""
        if self._store is not None:
            self._store.close()
        self._settings_manager = None
        self._config_repository = None
        self._store = None
        self._transports = {}
        logger.debug("Container reset - all instances cleared")
