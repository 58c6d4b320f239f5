"""
Sync settings domain model.

Controls storage locations, logging and engine policies for every source.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class DuplicateHeaderPolicy(str, Enum):
    """What to do when two header cells resolve to the same field."""

    REJECT = "reject"
    LAST_WINS = "last_wins"


class SyncSettings(BaseModel):
    """
    Engine-wide settings loaded from sheetsync.json.

    Every field has a default so a missing settings file is valid.
    """

    model_config = ConfigDict(use_enum_values=False, extra="forbid")

    db_path: str = Field(
        default="output/sheetsync.db",
        description="SQLite database holding events and source state",
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file (always written at DEBUG level)",
    )

    log_level: str = Field(
        default="INFO",
        description="Console log level",
    )

    duplicate_headers: DuplicateHeaderPolicy = Field(
        default=DuplicateHeaderPolicy.REJECT,
        description="Policy for two columns mapping to the same field",
    )

    lock_timeout_seconds: int = Field(
        default=600,
        description="Age after which a held sync lock is considered stale",
        ge=10,
        le=86400,
    )

    default_token_column: str = Field(
        default="A",
        description="Column used for identity tokens when no header names it",
    )

    protect_token_column: bool = Field(
        default=True,
        description="Lock the token column when setting up a sheet",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("default_token_column")
    @classmethod
    def validate_column_letter(cls, v: str) -> str:
        letter = v.strip().upper()
        if not letter.isalpha() or len(letter) > 3:
            raise ValueError(f"Not a column letter: {v}")
        return letter

    @field_validator("lock_timeout_seconds")
    @classmethod
    def warn_long_lock_timeout(cls, v: int) -> int:
        if v > 3600:
            logger.warning("Lock timeout of %ss is very high - a crashed sync blocks the source that long", v)
        return v

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level)
