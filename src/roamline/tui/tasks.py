"""Background requests.

Each request runs as its own asyncio task holding copies of the identifiers
it needs and reports back by putting a message on the controller queue. No
task touches AppState.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Coroutine, Iterable

from roamline.api import queries
from roamline.api.client import RoamClient
from roamline.api.types import Page, WriteAction, parse_linked_refs, parse_page
from roamline.errors import ErrorInfo, RoamError
from roamline.tui.state import (
    ApiErrorOccurred,
    BlockRefResolved,
    DailyNoteLoaded,
    LinkedRefsLoaded,
    LoadDailyNote,
    LoadLinkedRefs,
    LoadPage,
    LoadRequest,
    Message,
    PageLoaded,
    RefreshLoaded,
)


logger = logging.getLogger(__name__)


class TaskRunner:
    def __init__(self, client: RoamClient, queue: "asyncio.Queue[Message]") -> None:
        self.client = client
        self.queue = queue
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def __len__(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until no task is running, including ones spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def load(self, request: LoadRequest, generation: int) -> None:
        match request:
            case LoadDailyNote(day=day):
                self.spawn(self._fetch_daily_note(day, generation, refresh=False))
            case LoadPage(title=title):
                self.spawn(self._fetch_page(title, generation, refresh=False))
            case LoadLinkedRefs(titles=titles):
                for title in titles:
                    self.spawn(self._fetch_linked_refs(title, generation))

    def refresh(self, pages: Iterable[Page], generation: int) -> None:
        for page in pages:
            if page.date is not None:
                self.spawn(self._fetch_daily_note(page.date, generation, refresh=True))
            else:
                self.spawn(self._fetch_page(page.title, generation, refresh=True))

    def resolve_block_refs(self, uids: Iterable[str]) -> None:
        for uid in uids:
            self.spawn(self._resolve_block_ref(uid))

    def write(self, action: WriteAction) -> None:
        self.spawn(self._write(action))

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    async def _fetch_daily_note(self, day: date, generation: int, *, refresh: bool) -> None:
        eid, selector = queries.pull_daily_note(day)
        try:
            raw = await self.client.pull(eid, selector)
        except RoamError as exc:
            if refresh:
                logger.debug("refresh of %s failed: %s", day, exc)
                return
            await self.queue.put(ApiErrorOccurred(ErrorInfo.from_exception(exc), generation))
            return
        page = parse_page(raw, uid=queries.daily_note_uid(day), day=day)
        if refresh:
            await self.queue.put(RefreshLoaded(page, generation))
        else:
            await self.queue.put(DailyNoteLoaded(page, generation))

    async def _fetch_page(self, title: str, generation: int, *, refresh: bool) -> None:
        eid, selector = queries.pull_page_by_title(title)
        try:
            raw = await self.client.pull(eid, selector)
        except RoamError as exc:
            if refresh:
                logger.debug("refresh of %r failed: %s", title, exc)
                return
            await self.queue.put(ApiErrorOccurred(ErrorInfo.from_exception(exc), generation))
            return
        page = parse_page(raw)
        if not page.title:
            page.title = title
        if refresh:
            await self.queue.put(RefreshLoaded(page, generation))
        else:
            await self.queue.put(PageLoaded(page, generation))

    async def _fetch_linked_refs(self, title: str, generation: int) -> None:
        query, args = queries.linked_refs(title)
        try:
            rows = await self.client.query(query, args)
        except RoamError as exc:
            logger.debug("linked refs for %r failed: %s", title, exc)
            rows = []
        groups = parse_linked_refs(rows, title)
        await self.queue.put(LinkedRefsLoaded(title, groups, generation))

    async def _resolve_block_ref(self, uid: str) -> None:
        eid, selector = queries.pull_block_text(uid)
        try:
            raw = await self.client.pull(eid, selector)
        except RoamError as exc:
            logger.debug("block ref %s failed: %s", uid, exc)
            return
        text = (raw or {}).get(":block/string")
        if text is None:
            logger.debug("block ref %s not found", uid)
            return
        await self.queue.put(BlockRefResolved(uid, str(text)))

    async def _write(self, action: WriteAction) -> None:
        try:
            await self.client.write(action)
        except RoamError as exc:
            logger.warning("write %s failed: %s", type(action).__name__, exc)
            await self.queue.put(ApiErrorOccurred(ErrorInfo.write_failed(exc)))
            return
        logger.debug("write %s ok", type(action).__name__)
