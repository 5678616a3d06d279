from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pagestamp.cache import TimestampCache
    from pagestamp.config import Settings
    from pagestamp.gate import ChangeGate
    from pagestamp.store import SqliteDocumentStore


@dataclass
class AppState:
    """Everything wired at startup, owned by the runner for its lifetime."""

    settings: Settings
    store: SqliteDocumentStore
    cache: TimestampCache
    gate: ChangeGate
