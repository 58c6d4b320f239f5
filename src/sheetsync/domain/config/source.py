"""
Source configuration domain model.

A source is one worksheet in one workbook that syncs with the event store.
"""

import re
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class SyncMode(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


class SourceConfig(BaseModel):
    """
    Configuration of a single sheet source.

    Layout convention: header in row 1, data from row 2, tokens in column A.
    """

    id: str = Field(..., min_length=1, description="Unique source identifier")
    name: str = Field(default="", description="Display name")
    workbook_path: str = Field(..., min_length=1, description="Path to the .xlsx workbook")
    sheet_name: str = Field(default="Events", description="Worksheet name")
    header_row: int = Field(default=1, ge=1)
    data_start_row: int = Field(default=2, ge=2)
    token_column: str = Field(default="A", description="Fallback identity token column")
    enabled: bool = True
    sync_mode: SyncMode = SyncMode.MANUAL

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not re.fullmatch(r"[A-Za-z0-9_.-]+", v):
            raise ValueError("Source id may only contain letters, digits, '.', '_' and '-'")
        return v

    @field_validator("token_column")
    @classmethod
    def validate_token_column(cls, v: str) -> str:
        letter = v.strip().upper()
        if not letter.isalpha() or len(letter) > 3:
            raise ValueError(f"Not a column letter: {v}")
        return letter

    @model_validator(mode="after")
    def validate_rows(self) -> "SourceConfig":
        if self.data_start_row <= self.header_row:
            raise ValueError("data_start_row must come after header_row")
        if not self.name:
            self.name = self.id
        return self

    @property
    def display_name(self) -> str:
        return self.name or self.id
