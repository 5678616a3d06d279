from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class Shape(StrEnum):
    """Content shapes of a page's first block, in classification priority order."""

    BOTH_PRESENT_AND_CURRENT = "both_present_and_current"
    HAS_EITHER_PROPERTY = "has_either_property"
    IS_PROPERTY_BLOCK = "is_property_block"
    PLAIN_BLOCK = "plain_block"


class Stamp(BaseModel):
    """The two formatted dates and the property names they are written under."""

    model_config = ConfigDict(frozen=True)

    create_key: str
    update_key: str
    created: str  # already formatted, e.g. "2024-01-01"
    updated: str

    @property
    def created_line(self) -> str:
        return f"{self.create_key}:: [[{self.created}]]"

    @property
    def updated_line(self) -> str:
        return f"{self.update_key}:: [[{self.updated}]]"


class Skip(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["skip"] = "skip"


class Replace(BaseModel):
    """New content for the existing first block."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["replace"] = "replace"
    content: str


class InsertBefore(BaseModel):
    """Content for a new block inserted as the preceding sibling of the first block."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["insert_before"] = "insert_before"
    content: str


Edit = Skip | Replace | InsertBefore
