"""Unit-specific fixtures (no I/O beyond in-memory SQLite)."""

from __future__ import annotations

import aiosqlite
import pytest

from pagestamp.store import SqliteDocumentStore


@pytest.fixture()
async def store():
    """In-memory SQLite document store for unit tests."""
    async with aiosqlite.connect(":memory:") as db:
        s = SqliteDocumentStore(db)
        await s.init_db()
        await s.set_user_config("preferred_date_format", "yyyy-MM-dd")
        yield s
