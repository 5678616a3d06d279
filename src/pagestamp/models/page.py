from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Page(BaseModel):
    """A page as reported by the document store."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    name: str
    is_journal: bool = False
    updated_at: int  # epoch millis, authoritative
    file_id: int | None = None  # backing file, absent for never-saved pages


class Block(BaseModel):
    model_config = ConfigDict(frozen=True)

    uuid: str
    content: str
    page_id: str
    position: int = 0
