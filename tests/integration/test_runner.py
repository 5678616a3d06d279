"""Tests for the stdio runner process.

Covers:
- Messages from stdin reach the gate and stamp pages in the SQLite store
- Invalid lines are counted and skipped
- Missing db_path parent directories are created
- Wrong-type config values exit non-zero before any input is read
"""

from __future__ import annotations

import json
import subprocess
import sys
from typing import TYPE_CHECKING

import aiosqlite

from pagestamp.store import SqliteDocumentStore

if TYPE_CHECKING:
    from pathlib import Path

UPDATED_AT = 1704196800000  # 2024-01-02T12:00:00Z


def _run(
    env: dict[str, str], lines: list[str], timeout: int = 20
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "pagestamp.runner"],
        input="".join(line + "\n" for line in lines),
        capture_output=True,
        text=True,
        timeout=timeout,
        env=env,
    )


async def _seed(db_path: str) -> tuple[str, str]:
    async with aiosqlite.connect(db_path) as db:
        store = SqliteDocumentStore(db)
        await store.init_db()
        await store.set_user_config("preferred_date_format", "yyyy-MM-dd")
        file_id = await store.add_file("pages/foo.md")
        page = await store.add_page("Foo", UPDATED_AT, file_id=file_id)
        (block,) = await store.add_blocks(page.uuid, ["Some notes here"])
        return page.uuid, block.uuid


async def _tree(db_path: str, page_uuid: str) -> list[str]:
    async with aiosqlite.connect(db_path) as db:
        store = SqliteDocumentStore(db)
        return [b.content for b in await store.get_page_blocks_tree(page_uuid)]


class TestRunner:
    async def test_change_message_stamps_page(
        self, tmp_path: Path, subprocess_env: dict[str, str]
    ) -> None:
        db_path = subprocess_env["PAGESTAMP__STORE__DB_PATH"]
        page_uuid, block_uuid = await _seed(db_path)

        message = {
            "type": "change",
            "blocks": [{"uuid": block_uuid}],
            "txMeta": {"outlinerOp": "save-block"},
        }
        result = _run(subprocess_env, [json.dumps(message), "not json", json.dumps({"type": "x"})])

        assert result.returncode == 0, result.stderr
        assert json.loads(result.stdout) == {"accepted": 1, "rejected": 2}

        tree = await _tree(db_path, page_uuid)
        assert len(tree) == 2
        # tmp_path is not a git repository, so creation time falls back to now
        assert tree[0].startswith("created:: [[")
        assert tree[0].endswith("\nupdated:: [[2024-01-02]]\n")
        assert tree[1] == "Some notes here"

    async def test_page_opened_message(
        self, tmp_path: Path, subprocess_env: dict[str, str]
    ) -> None:
        db_path = subprocess_env["PAGESTAMP__STORE__DB_PATH"]
        page_uuid, _ = await _seed(db_path)

        result = _run(subprocess_env, [json.dumps({"type": "page_opened", "page": page_uuid})])

        assert result.returncode == 0, result.stderr
        assert len(await _tree(db_path, page_uuid)) == 2

    def test_missing_parent_dirs_are_auto_created(
        self, tmp_path: Path, subprocess_env: dict[str, str]
    ) -> None:
        deep_path = tmp_path / "a" / "b" / "c" / "graph.db"
        assert not deep_path.parent.exists()

        env = {**subprocess_env, "PAGESTAMP__STORE__DB_PATH": str(deep_path)}
        result = _run(env, [])

        assert result.returncode == 0, result.stderr
        assert json.loads(result.stdout) == {"accepted": 0, "rejected": 0}
        assert deep_path.exists()

    def test_wrong_type_config_exits_non_zero(self, subprocess_env: dict[str, str]) -> None:
        env = {**subprocess_env, "PAGESTAMP__CACHE__TTL_HOURS": "not-a-number"}
        result = _run(env, [])
        assert result.returncode != 0
