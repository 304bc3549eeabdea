"""The single owner of AppState.

Messages (keys, fetch results, ticks) are taken off one asyncio queue and
handled one at a time, synchronously, so tree mutations never interleave.
Follow-up requests and queued writes are handed to the TaskRunner.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from roamline.api.client import RoamClient
from roamline.tui import reconcile
from roamline.tui.input import dispatch_key
from roamline.tui.keys import Keymap
from roamline.tui.state import (
    ApiErrorOccurred,
    AppState,
    BlockRefResolved,
    DailyNoteLoaded,
    KeyPressed,
    LinkedRefsLoaded,
    LoadDailyNote,
    LoadRequest,
    Message,
    PageLoaded,
    RefreshLoaded,
    Tick,
)
from roamline.tui.tasks import TaskRunner


logger = logging.getLogger(__name__)


class Controller:
    def __init__(
        self,
        state: AppState,
        client: RoamClient,
        keymap: Keymap,
        *,
        idle_ticks: int = reconcile.DEFAULT_IDLE_TICKS,
    ) -> None:
        self.state = state
        self.keymap = keymap
        self.idle_ticks = idle_ticks
        self.queue: asyncio.Queue[Message] = asyncio.Queue()
        self.tasks = TaskRunner(client, self.queue)

    def start(self) -> None:
        """Request today's daily note."""
        self.state.loading = True
        self.state.status_message = "Loading today's notes..."
        self.request(LoadDailyNote(self.state.current_date))

    def post(self, message: Message) -> None:
        self.queue.put_nowait(message)

    def request(self, request: Optional[LoadRequest]) -> None:
        if request is not None:
            self.tasks.load(request, self.state.generation)

    # -------------------------------------------------------------------------
    # Message handling
    # -------------------------------------------------------------------------

    def handle(self, message: Message) -> None:
        state = self.state
        match message:
            case KeyPressed(key=key):
                self.request(dispatch_key(state, key, self.keymap))

            case DailyNoteLoaded(page=page, generation=generation):
                self.request(reconcile.handle_daily_note_loaded(state, page, generation))
                self._resolve_refs()

            case PageLoaded(page=page, generation=generation):
                self.request(reconcile.handle_page_loaded(state, page, generation))
                self._resolve_refs()

            case RefreshLoaded(page=page, generation=generation):
                if reconcile.handle_refresh_loaded(state, page, generation):
                    self._resolve_refs()

            case LinkedRefsLoaded(title=title, groups=groups, generation=generation):
                reconcile.handle_linked_refs_loaded(state, title, groups, generation)

            case BlockRefResolved(uid=uid, text=text):
                reconcile.handle_block_ref_resolved(state, uid, text)

            case ApiErrorOccurred(error=error, generation=generation):
                reconcile.handle_api_error(state, error, generation)

            case Tick():
                if reconcile.handle_tick(state, self.idle_ticks):
                    logger.debug("refreshing %d page(s)", len(state.days))
                    self.tasks.refresh(list(state.days), state.generation)

        for write in state.take_writes():
            self.tasks.write(write)

    def _resolve_refs(self) -> None:
        uids = reconcile.claim_unresolved_refs(self.state)
        if uids:
            self.tasks.resolve_block_refs(uids)

    async def settle(self) -> None:
        """Handle messages until no task is running and the queue is empty."""
        while True:
            while not self.queue.empty():
                self.handle(self.queue.get_nowait())
            if not len(self.tasks):
                break
            await self.tasks.drain()
