"""Integration test fixtures.

Provides a fully wired AppState over in-memory SQLite with a canned history
runner, and an environment for running ``python -m pagestamp.runner``.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import aiosqlite
import pytest

from pagestamp.cache import TimestampCache
from pagestamp.config import Settings, StampSettings
from pagestamp.gate import ChangeGate
from pagestamp.history import HistoryResolver
from pagestamp.state import AppState
from pagestamp.store import SqliteDocumentStore

if TYPE_CHECKING:
    from pathlib import Path

NOW = 1704456000.0  # 2024-01-05T12:00:00Z


@pytest.fixture()
def history_runner(make_runner):
    return make_runner({"pages/project.md": "1704110400\n", "pages/notes.md": "1700000000\n"})


@pytest.fixture()
async def app_state(history_runner) -> AppState:
    """Full AppState wired with in-memory SQLite."""
    settings = Settings(stamp=StampSettings(timezone="UTC", ignore_pages="Contents"))
    async with aiosqlite.connect(":memory:") as db:
        store = SqliteDocumentStore(db)
        await store.init_db()
        await store.set_user_config("preferred_date_format", "yyyy-MM-dd")

        cache = TimestampCache(
            HistoryResolver(store, history_runner),
            ttl_hours=settings.cache.ttl_hours,
            max_entries=settings.cache.max_entries,
        )
        gate = ChangeGate(store, store, settings.stamp, cache, clock=lambda: NOW)
        state = AppState(settings=settings, store=store, cache=cache, gate=gate)
        await gate.start()
        yield state
        await gate.stop()


@pytest.fixture()
def subprocess_env(tmp_path: Path) -> dict[str, str]:
    """Environment for the runner subprocess, isolated from any user config."""
    env = os.environ.copy()
    env["PAGESTAMP__STORE__DB_PATH"] = str(tmp_path / "graph.db")
    env["PAGESTAMP__HISTORY__GRAPH_DIR"] = str(tmp_path)
    env["PAGESTAMP__STAMP__TIMEZONE"] = "UTC"
    env["PAGESTAMP__LOGGING__FORMAT"] = "json"
    return env
