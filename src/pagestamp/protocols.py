"""Collaborator interfaces the engine consumes.

The host application owns all durable state. These protocols are the whole
surface the engine reads from and writes through.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pagestamp.models import Block, Page


class DocumentStore(Protocol):
    async def get_block(self, block_id: str) -> Block | None: ...

    async def get_page(self, page_id: str) -> Page | None: ...

    async def get_page_blocks_tree(self, page_id: str) -> list[Block]:
        """Top-level blocks of the page, in display order."""
        ...

    async def update_block_content(self, block_id: str, content: str) -> None:
        """Replace a block's content. Raises ``WriteFailure`` when rejected."""
        ...

    async def insert_block_before_as_sibling(self, anchor_id: str, content: str) -> None:
        """Insert a new block right before ``anchor_id``. Raises ``WriteFailure``."""
        ...

    async def resolve_file_path(self, file_id: int) -> str | None: ...


class UserConfigSource(Protocol):
    async def get_user_date_format(self) -> str: ...

    async def get_user_language(self) -> str: ...


class HistoryCommandRunner(Protocol):
    async def run_history_command(self, path: str) -> str:
        """Raw stdout of the history lookup. Raises ``EnvironmentUnavailable``."""
        ...


class CreationTimeSource(Protocol):
    async def resolve(self, file_id: int) -> int: ...

    async def resolve_or(self, file_id: int, fallback: int) -> int:
        """Never raises; returns ``fallback`` when resolution fails."""
        ...
