"""Change ingestion and per-page orchestration.

The host calls ``on_change`` for every database transaction. The call only
enqueues; a worker task drains the queue in arrival order and spawns one
evaluation task per message. Evaluations of different pages may interleave.
Stamps of the same page run one after another in arrival order, so a later
one reads the first block only after the earlier write has landed, and
finds it current.

Nothing raised inside an evaluation crosses ``ChangeGate``: known failures
are logged at the level their code warrants, anything else is logged with
``exc_info=True``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from pagestamp.analyzer import classify
from pagestamp.dates import format_epoch_millis, resolve_timezone
from pagestamp.editor import plan_edit
from pagestamp.errors import ErrorCode, PageStampError, WriteFailure
from pagestamp.models import ChangeEvent, InsertBefore, Replace, Stamp

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from pagestamp.config import StampSettings
    from pagestamp.models import Block, Edit, Page
    from pagestamp.protocols import CreationTimeSource, DocumentStore, UserConfigSource

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class _ChangeMessage:
    event: ChangeEvent
    arrived_at: int  # epoch millis


@dataclass(frozen=True, slots=True)
class _PageOpenedMessage:
    page_id: str
    arrived_at: int


_Message = _ChangeMessage | _PageOpenedMessage


class ChangeGate:
    def __init__(
        self,
        store: DocumentStore,
        user_config: UserConfigSource,
        settings: StampSettings,
        creation_times: CreationTimeSource | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._user_config = user_config
        self._settings = settings
        self._creation_times = creation_times
        self._clock = clock
        self._tz = resolve_timezone(settings.timezone)
        self._queue: asyncio.Queue[_Message] = asyncio.Queue()
        self._tasks: set[asyncio.Task[None]] = set()
        # Last queued stamp per page uuid; each new one waits on it.
        self._page_tails: dict[str, asyncio.Task[None]] = {}
        self._worker: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._worker is not None:
            return
        language = await self._user_config.get_user_language()
        log.info(
            "gate_started",
            language=language,
            create_key=self._settings.create_time_property_name,
            update_key=self._settings.update_time_property_name,
            use_history=self._settings.use_external_history_for_creation_time,
        )
        self._worker = asyncio.create_task(self._run(), name="pagestamp-gate")

    async def wait_idle(self) -> None:
        """Return once every queued message and spawned evaluation has finished."""
        await self._queue.join()
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self) -> None:
        await self.wait_idle()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        log.info("gate_stopped")

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def on_change(self, event: ChangeEvent | Mapping[str, Any]) -> None:
        """Host entry point for database changes. Never raises."""
        try:
            if not isinstance(event, ChangeEvent):
                event = ChangeEvent.model_validate(event)
        except ValidationError:
            log.warning("change_event_invalid", exc_info=True)
            return
        if not event.is_block_save:
            return
        self._queue.put_nowait(_ChangeMessage(event=event, arrived_at=self._now()))

    def on_page_opened(self, page_id: str) -> None:
        """Host entry point for a page being shown. Stamps it without a save event."""
        self._queue.put_nowait(_PageOpenedMessage(page_id=str(page_id), arrived_at=self._now()))

    def _now(self) -> int:
        return int(self._clock() * 1000)

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                match message:
                    case _ChangeMessage(event=event, arrived_at=arrived_at):
                        self._spawn(self._handle_change(event, arrived_at))
                    case _PageOpenedMessage(page_id=page_id, arrived_at=arrived_at):
                        self._spawn(self._evaluate(page_id, arrived_at))
            finally:
                self._queue.task_done()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(self._guarded(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _guarded(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            await coro
        except PageStampError as exc:
            if exc.code is ErrorCode.NOT_FOUND:
                log.debug("evaluation_skipped", **exc.to_log())
            else:
                log.warning("evaluation_failed", **exc.to_log())
        except Exception:
            log.error("evaluation_error", exc_info=True)

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def _handle_change(self, event: ChangeEvent, arrived_at: int) -> None:
        page_ids: list[str] = []
        for ref in event.blocks:
            page_id = ref.page_id
            if page_id is None:
                block = await self._store.get_block(ref.uuid)
                if block is None:
                    log.debug("changed_block_not_found", block_id=ref.uuid)
                    continue
                page_id = block.page_id
            if page_id not in page_ids:
                page_ids.append(page_id)

        for page_id in page_ids:
            await self._evaluate(page_id, arrived_at)

    def _is_exempt(self, page: Page) -> bool:
        return page.is_journal or self._settings.is_ignored(page.name)

    async def _evaluate(self, page_id: str, arrived_at: int) -> None:
        page = await self._store.get_page(page_id)
        if page is None:
            log.debug("page_not_found", page_id=page_id)
            return
        if self._is_exempt(page):
            log.debug("page_exempt", page=page.name, journal=page.is_journal)
            return
        await self._in_page_order(page, arrived_at)

    async def _in_page_order(self, page: Page, arrived_at: int) -> None:
        """Run the stamp for ``page`` after any earlier stamp of the same page has finished."""
        previous = self._page_tails.get(page.uuid)
        current = asyncio.create_task(self._stamp_after(previous, page, arrived_at))
        self._page_tails[page.uuid] = current
        try:
            await current
        finally:
            if self._page_tails.get(page.uuid) is current:
                del self._page_tails[page.uuid]

    async def _stamp_after(
        self, previous: asyncio.Task[None] | None, page: Page, arrived_at: int
    ) -> None:
        if previous is not None:
            await asyncio.wait([previous])
        await self._stamp(page, arrived_at)

    async def _stamp(self, page: Page, arrived_at: int) -> None:
        tree = await self._store.get_page_blocks_tree(page.uuid)
        if not tree:
            return
        first = await self._store.get_block(tree[0].uuid)
        if first is None:
            return

        created_at = await self._creation_time(page, arrived_at)
        date_format = await self._user_config.get_user_date_format()
        stamp = Stamp(
            create_key=self._settings.create_time_property_name,
            update_key=self._settings.update_time_property_name,
            created=format_epoch_millis(created_at, date_format, self._tz),
            updated=format_epoch_millis(page.updated_at, date_format, self._tz),
        )

        shape = classify(first.content, stamp.create_key, stamp.update_key, stamp.updated)
        edit = plan_edit(shape, first.content, stamp)
        log.debug("block_classified", page=page.name, block_id=first.uuid, shape=str(shape))
        await self._apply(page, first, edit)

    async def _creation_time(self, page: Page, arrived_at: int) -> int:
        if (
            not self._settings.use_external_history_for_creation_time
            or self._creation_times is None
            or page.file_id is None
        ):
            return arrived_at
        return await self._creation_times.resolve_or(page.file_id, arrived_at)

    async def _apply(self, page: Page, block: Block, edit: Edit) -> None:
        try:
            match edit:
                case Replace(content=content) if content != block.content:
                    await self._store.update_block_content(block.uuid, content)
                    log.info("block_patched", page=page.name, block_id=block.uuid)
                case InsertBefore(content=content):
                    await self._store.insert_block_before_as_sibling(block.uuid, content)
                    log.info("stamp_block_inserted", page=page.name, anchor_id=block.uuid)
                case _:
                    log.debug("block_current", page=page.name, block_id=block.uuid)
        except WriteFailure as exc:
            log.warning("write_failed", page=page.name, block_id=block.uuid, **exc.to_log())
