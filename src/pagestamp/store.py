"""SQLite-backed document store.

A local stand-in for the host application's database, used by the stdio
runner and the integration tests. It implements ``DocumentStore`` and
``UserConfigSource``.

Read failures are logged and reported as "absent" (``None`` or an empty
list), which the gate treats as a no-op. Write failures are raised as
``WriteFailure`` so the gate can log them.
"""

from __future__ import annotations

import uuid as uuid_lib
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from pagestamp.errors import WriteFailure
from pagestamp.models import Block, Page

if TYPE_CHECKING:
    from collections.abc import Iterable

log = structlog.get_logger()

DEFAULT_DATE_FORMAT = "MMM do, yyyy"
DEFAULT_LANGUAGE = "en"

_CREATE_FILES_TABLE = """
CREATE TABLE IF NOT EXISTS files (
    id    INTEGER PRIMARY KEY,
    path  TEXT NOT NULL UNIQUE
)
"""

_CREATE_PAGES_TABLE = """
CREATE TABLE IF NOT EXISTS pages (
    id          INTEGER PRIMARY KEY,
    uuid        TEXT NOT NULL UNIQUE,
    name        TEXT NOT NULL,
    is_journal  INTEGER NOT NULL DEFAULT 0,
    updated_at  INTEGER NOT NULL,
    file_id     INTEGER REFERENCES files(id)
)
"""

_CREATE_BLOCKS_TABLE = """
CREATE TABLE IF NOT EXISTS blocks (
    id        INTEGER PRIMARY KEY,
    uuid      TEXT NOT NULL UNIQUE,
    page_id   INTEGER NOT NULL REFERENCES pages(id),
    position  INTEGER NOT NULL,
    content   TEXT NOT NULL
)
"""

_CREATE_USER_CONFIG_TABLE = """
CREATE TABLE IF NOT EXISTS user_config (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
)
"""

_CREATE_BLOCKS_INDEX = "CREATE INDEX IF NOT EXISTS idx_blocks_page ON blocks(page_id, position)"

_SELECT_PAGE = (
    "SELECT uuid, name, is_journal, updated_at, file_id FROM pages WHERE {column} = ?"
)
_SELECT_BLOCK = (
    "SELECT b.uuid, b.content, p.uuid, b.position "
    "FROM blocks b JOIN pages p ON p.id = b.page_id"
)


def _page_from_row(row: aiosqlite.Row | tuple) -> Page:
    return Page(
        uuid=row[0],
        name=row[1],
        is_journal=bool(row[2]),
        updated_at=row[3],
        file_id=row[4],
    )


def _block_from_row(row: aiosqlite.Row | tuple) -> Block:
    return Block(uuid=row[0], content=row[1], page_id=row[2], position=row[3])


class SqliteDocumentStore:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute("PRAGMA foreign_keys = ON")
        await self._db.execute(_CREATE_FILES_TABLE)
        await self._db.execute(_CREATE_PAGES_TABLE)
        await self._db.execute(_CREATE_BLOCKS_TABLE)
        await self._db.execute(_CREATE_USER_CONFIG_TABLE)
        await self._db.execute(_CREATE_BLOCKS_INDEX)
        await self._db.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_page(self, page_id: str) -> Page | None:
        """Look a page up by uuid, or by numeric row id as hosts report it on blocks."""
        column = "id" if str(page_id).isdigit() else "uuid"
        try:
            cursor = await self._db.execute(_SELECT_PAGE.format(column=column), (page_id,))
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("store_read_error", key=f"page:{page_id}", exc_info=True)
            return None
        return None if row is None else _page_from_row(row)

    async def get_block(self, block_id: str) -> Block | None:
        try:
            cursor = await self._db.execute(f"{_SELECT_BLOCK} WHERE b.uuid = ?", (block_id,))
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("store_read_error", key=f"block:{block_id}", exc_info=True)
            return None
        return None if row is None else _block_from_row(row)

    async def get_page_blocks_tree(self, page_id: str) -> list[Block]:
        try:
            cursor = await self._db.execute(
                f"{_SELECT_BLOCK} WHERE p.uuid = ? ORDER BY b.position", (page_id,)
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error:
            log.warning("store_read_error", key=f"tree:{page_id}", exc_info=True)
            return []
        return [_block_from_row(row) for row in rows]

    async def resolve_file_path(self, file_id: int) -> str | None:
        try:
            cursor = await self._db.execute("SELECT path FROM files WHERE id = ?", (file_id,))
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("store_read_error", key=f"file:{file_id}", exc_info=True)
            return None
        return None if row is None else row[0]

    async def get_user_date_format(self) -> str:
        return await self._user_config("preferred_date_format", DEFAULT_DATE_FORMAT)

    async def get_user_language(self) -> str:
        return await self._user_config("preferred_language", DEFAULT_LANGUAGE)

    async def _user_config(self, key: str, default: str) -> str:
        try:
            cursor = await self._db.execute("SELECT value FROM user_config WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("store_read_error", key=f"config:{key}", exc_info=True)
            return default
        return default if row is None else row[0]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def update_block_content(self, block_id: str, content: str) -> None:
        try:
            cursor = await self._db.execute(
                "UPDATE blocks SET content = ? WHERE uuid = ?", (content, block_id)
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise WriteFailure(f"Cannot update block {block_id}: {exc}") from exc
        if cursor.rowcount == 0:
            raise WriteFailure(f"Block {block_id} no longer exists")

    async def insert_block_before_as_sibling(self, anchor_id: str, content: str) -> None:
        try:
            cursor = await self._db.execute(
                "SELECT page_id, position FROM blocks WHERE uuid = ?", (anchor_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                raise WriteFailure(f"Anchor block {anchor_id} no longer exists")
            page_id, position = row
            await self._db.execute(
                "UPDATE blocks SET position = position + 1 WHERE page_id = ? AND position >= ?",
                (page_id, position),
            )
            await self._db.execute(
                "INSERT INTO blocks (uuid, page_id, position, content) VALUES (?, ?, ?, ?)",
                (str(uuid_lib.uuid4()), page_id, position, content),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            await self._db.rollback()
            raise WriteFailure(f"Cannot insert before {anchor_id}: {exc}") from exc

    # ------------------------------------------------------------------
    # Seeding (runner input and tests)
    # ------------------------------------------------------------------

    async def add_file(self, path: str) -> int:
        cursor = await self._db.execute("INSERT INTO files (path) VALUES (?)", (path,))
        await self._db.commit()
        assert cursor.lastrowid is not None
        return cursor.lastrowid

    async def add_page(
        self,
        name: str,
        updated_at: int,
        *,
        is_journal: bool = False,
        file_id: int | None = None,
        page_uuid: str | None = None,
    ) -> Page:
        page = Page(
            uuid=page_uuid or str(uuid_lib.uuid4()),
            name=name,
            is_journal=is_journal,
            updated_at=updated_at,
            file_id=file_id,
        )
        await self._db.execute(
            "INSERT INTO pages (uuid, name, is_journal, updated_at, file_id) "
            "VALUES (?, ?, ?, ?, ?)",
            (page.uuid, page.name, int(page.is_journal), page.updated_at, page.file_id),
        )
        await self._db.commit()
        return page

    async def add_blocks(self, page_uuid: str, contents: Iterable[str]) -> list[Block]:
        cursor = await self._db.execute(
            "SELECT id, "
            "COALESCE((SELECT MAX(position) + 1 FROM blocks WHERE page_id = pages.id), 0) "
            "FROM pages WHERE uuid = ?",
            (page_uuid,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise ValueError(f"Unknown page: {page_uuid}")
        page_row_id, position = row
        blocks: list[Block] = []
        for offset, content in enumerate(contents):
            block = Block(
                uuid=str(uuid_lib.uuid4()),
                content=content,
                page_id=page_uuid,
                position=position + offset,
            )
            await self._db.execute(
                "INSERT INTO blocks (uuid, page_id, position, content) VALUES (?, ?, ?, ?)",
                (block.uuid, page_row_id, block.position, block.content),
            )
            blocks.append(block)
        await self._db.commit()
        return blocks

    async def set_user_config(self, key: str, value: str) -> None:
        await self._db.execute(
            "INSERT OR REPLACE INTO user_config (key, value) VALUES (?, ?)", (key, value)
        )
        await self._db.commit()
