"""
Configuration repository for loading and saving config files.

This module provides the infrastructure layer for configuration persistence.
It handles file I/O operations and basic validation.

Files (in the config directory):
    sheetsync.json / sheetsync.jsonc   engine settings (optional)
    sources.json / sources.jsonc       list of sources for bulk import
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from sheetsync.domain.config import SourceConfig, SyncSettings
from sheetsync.domain.errors import ConfigError

logger = logging.getLogger(__name__)

SETTINGS_FILE = "sheetsync"
SOURCES_FILE = "sources"

# // line comments and /* block */ comments outside of strings
_JSONC_COMMENT = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/', re.DOTALL)


def _strip_comments(jsonc_content: str) -> str:
    """Strip comments from JSONC content, leaving string literals intact."""
    return _JSONC_COMMENT.sub(lambda m: m.group(1) or "", jsonc_content)


class ConfigRepository:
    """
    Repository for configuration file operations.

    Handles loading and saving of configuration files with support for
    JSON and JSONC formats.
    """

    def __init__(self, config_dir: Path):
        """
        Initialize the config repository.

        Args:
            config_dir: Base directory for configuration files
        """
        self.config_dir = Path(config_dir)

    def exists(self, filename: str) -> bool:
        return (self.config_dir / f"{filename}.json").exists() or (
            self.config_dir / f"{filename}.jsonc"
        ).exists()

    def load_json_file(self, filename: str, allow_jsonc: bool = True) -> Any:
        """
        Load a JSON or JSONC file.

        Args:
            filename: Name of the file to load (without extension)
            allow_jsonc: Whether to try the .jsonc variant

        Returns:
            Parsed JSON data

        Raises:
            ConfigError: If the file is missing or cannot be parsed
        """
        json_path = self.config_dir / f"{filename}.json"
        jsonc_path = self.config_dir / f"{filename}.jsonc"

        if json_path.exists():
            try:
                with open(json_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON in {json_path}: {e}") from e

        if allow_jsonc and jsonc_path.exists():
            try:
                with open(jsonc_path, 'r', encoding='utf-8') as f:
                    return json.loads(_strip_comments(f.read()))
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSONC in {jsonc_path}: {e}") from e

        raise ConfigError(
            f"Config file '{filename}.json' or '{filename}.jsonc' not found in {self.config_dir}"
        )

    def save_json_file(self, filename: str, data: Any) -> Path:
        """
        Save data to a JSON file.

        Args:
            filename: Name of the file to save (without extension)
            data: Data to save
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.config_dir / f"{filename}.json"
        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(json.dumps(data, indent=2, ensure_ascii=False))
        logger.info("Saved config file: %s", filepath)
        return filepath

    def load_settings(self) -> SyncSettings:
        """
        Load engine settings.

        A missing settings file yields the defaults.

        Raises:
            ConfigError: If the file exists but is invalid
        """
        if not self.exists(SETTINGS_FILE):
            logger.debug("No %s config in %s, using defaults", SETTINGS_FILE, self.config_dir)
            return SyncSettings()

        data = self.load_json_file(SETTINGS_FILE)
        try:
            return SyncSettings(**data)
        except (PydanticValidationError, TypeError) as e:
            raise ConfigError(f"Invalid settings: {e}") from e

    def save_settings(self, settings: SyncSettings) -> Path:
        return self.save_json_file(SETTINGS_FILE, settings.model_dump(mode="json"))

    def load_sources(self) -> List[SourceConfig]:
        """
        Load sources for bulk import.

        Accepts either a list or {"sources": [...]}.

        Raises:
            ConfigError: If the file is missing or an entry is invalid
        """
        data = self.load_json_file(SOURCES_FILE)
        entries: List[Dict[str, Any]] = data.get("sources", []) if isinstance(data, dict) else data

        sources = []
        for i, entry in enumerate(entries):
            try:
                sources.append(SourceConfig(**entry))
            except (PydanticValidationError, TypeError) as e:
                raise ConfigError(f"Invalid source at index {i}: {e}") from e

        logger.info("Loaded %d source(s) from %s", len(sources), self.config_dir)
        return sources
