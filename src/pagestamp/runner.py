"""stdio runner: ``python -m pagestamp.runner``.

Reads newline-delimited JSON host notifications from stdin and feeds them to
the gate against the SQLite store at ``store.db_path``:

    {"type": "change", "blocks": [{"uuid": "..."}], "txMeta": {"outlinerOp": "save-block"}}
    {"type": "page_opened", "page": "<page uuid>"}

At end of input the runner drains pending evaluations and prints a one-line
JSON summary to stdout. Logs go to stderr.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from pagestamp.cache import TimestampCache
from pagestamp.config import Settings
from pagestamp.gate import ChangeGate
from pagestamp.history import GitHistoryRunner, HistoryResolver
from pagestamp.log_setup import configure_logging
from pagestamp.state import AppState
from pagestamp.store import SqliteDocumentStore

log = structlog.get_logger()


def dispatch(state: AppState, message: dict[str, Any]) -> bool:
    """Route one decoded message to the gate. Returns False for unknown types."""
    match message.get("type"):
        case "change":
            state.gate.on_change(message)
        case "page_opened" if message.get("page"):
            state.gate.on_page_opened(str(message["page"]))
        case other:
            log.warning("message_unknown_type", type=other)
            return False
    return True


async def _read_messages(state: AppState) -> dict[str, int]:
    counts = {"accepted": 0, "rejected": 0}
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            return counts
        if not line.strip():
            continue
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            log.warning("message_invalid_json", line=line[:200])
            counts["rejected"] += 1
            continue
        if isinstance(message, dict) and dispatch(state, message):
            counts["accepted"] += 1
        else:
            counts["rejected"] += 1


async def _cleanup_loop(cache: TimestampCache, interval_seconds: float) -> None:
    """Purge expired creation times every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        cache.purge_expired()


async def run(settings: Settings) -> dict[str, int]:
    db_path = Path(settings.store.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(db_path) as db:
        store = SqliteDocumentStore(db)
        await store.init_db()

        resolver = HistoryResolver(
            store, GitHistoryRunner(settings.history.graph_dir, settings.history.git_binary)
        )
        cache = TimestampCache(
            resolver,
            ttl_hours=settings.cache.ttl_hours,
            max_entries=settings.cache.max_entries,
        )
        gate = ChangeGate(store, store, settings.stamp, cache)
        state = AppState(settings=settings, store=store, cache=cache, gate=gate)

        await state.gate.start()
        cleanup = asyncio.create_task(
            _cleanup_loop(cache, settings.cache.cleanup_interval_hours * 3600),
            name="pagestamp-cache-cleanup",
        )
        try:
            counts = await _read_messages(state)
            await state.gate.stop()
        finally:
            cleanup.cancel()
            try:
                await cleanup
            except asyncio.CancelledError:
                pass
        cache.purge_expired()
        log.info("runner_finished", db_path=str(db_path), **counts)
        return counts


def main() -> None:
    settings = Settings()
    configure_logging(settings.logging)
    counts = asyncio.run(run(settings))
    sys.stdout.write(json.dumps(counts) + "\n")
    sys.stdout.flush()


if __name__ == "__main__":
    main()
