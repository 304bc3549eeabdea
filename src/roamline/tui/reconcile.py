"""Merging fetched data into the live state.

Results carry the generation they were requested under; anything from an
older generation belongs to a view the user has left and is dropped.
Periodic refreshes replace a page only when its content really changed,
keep local expand/collapse flags, and never land during an edit session.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from roamline.api.types import Block, LinkedRefGroup, Page
from roamline.errors import ErrorInfo
from roamline.tui import blocks
from roamline.tui.search import collect_unresolved_refs
from roamline.tui.state import AppState, LoadLinkedRefs, LoadRequest, PageView


logger = logging.getLogger(__name__)

DEFAULT_IDLE_TICKS = 120


def _is_stale(state: AppState, generation: Optional[int], what: str) -> bool:
    if generation is not None and generation != state.generation:
        logger.debug("dropping stale %s (generation %s, current %s)", what, generation, state.generation)
        return True
    return False


def _ensure_placeholder(page: Page) -> None:
    if not page.blocks:
        page.blocks.append(Block(uid=blocks.generate_uid()))


@contextmanager
def preserve_cursor(state: AppState) -> Iterator[None]:
    """Keep the cursor on the same block across a change to the rows above it."""
    selected = state.selected_block()
    yield
    if selected is None or not state.move_cursor_to(selected.uid):
        state.clamp_cursor()


def _request_linked_refs(state: AppState, titles: list[str]) -> Optional[LoadRequest]:
    wanted = [t for t in titles if t and t not in state.linked_refs]
    for title in wanted:
        state.linked_refs[title] = blocks.LinkedRefsState(loading=True)
    return LoadLinkedRefs(tuple(wanted)) if wanted else None


def _loaded(state: AppState) -> None:
    state.loading = False
    state.loading_more = False
    state.status_message = None


# =============================================================================
# Initial loads
# =============================================================================

def handle_daily_note_loaded(state: AppState, page: Page, generation: int) -> Optional[LoadRequest]:
    """Insert a daily page, newest first, replacing an already loaded copy."""
    if _is_stale(state, generation, "daily note"):
        return None
    if not page.title and page.date is not None:
        page.title = blocks.daily_title(page.date)
    _ensure_placeholder(page)

    state.days = [d for d in state.days if d.date != page.date]
    pos = len(state.days)
    if page.date is not None:
        pos = next(
            (i for i, d in enumerate(state.days) if d.date is not None and d.date < page.date),
            pos,
        )
    state.days.insert(pos, page)
    _loaded(state)
    return _request_linked_refs(state, [page.title])


def handle_page_loaded(state: AppState, page: Page, generation: int) -> Optional[LoadRequest]:
    if _is_stale(state, generation, "page"):
        return None
    if not page.title and isinstance(state.view_mode, PageView):
        page.title = state.view_mode.title
    _ensure_placeholder(page)
    state.days = [page]
    state.cursor = 0
    _loaded(state)
    return _request_linked_refs(state, [page.title])


# =============================================================================
# Periodic refresh
# =============================================================================

def _open_flags(block_list: list[Block], out: dict[str, bool]) -> dict[str, bool]:
    for block in block_list:
        out[block.uid] = block.open
        _open_flags(block.children, out)
    return out


def _apply_open_flags(block_list: list[Block], flags: dict[str, bool]) -> None:
    for block in block_list:
        if block.uid in flags:
            block.open = flags[block.uid]
        _apply_open_flags(block.children, flags)


def _is_placeholder_only(page: Page) -> bool:
    return len(page.blocks) == 1 and not page.blocks[0].text and not page.blocks[0].children


def handle_refresh_loaded(state: AppState, page: Page, generation: int) -> bool:
    """Replace a loaded page with a refetched copy if its content changed.

    Returns True when the page was replaced.
    """
    if _is_stale(state, generation, "refresh"):
        return False
    if state.edit_session is not None:
        logger.debug("dropping refresh during edit session")
        return False

    if page.date is not None:
        pos = next((i for i, d in enumerate(state.days) if d.date == page.date), None)
    else:
        pos = next((i for i, d in enumerate(state.days) if d.title == page.title), None)
    if pos is None:
        return False
    current = state.days[pos]

    if not page.title:
        page.title = current.title
    if not page.uid:
        page.uid = current.uid
    if not page.blocks:
        if _is_placeholder_only(current):
            return False
        _ensure_placeholder(page)

    _apply_open_flags(page.blocks, _open_flags(current.blocks, {}))
    if page == current:
        return False

    logger.debug("refresh: %s changed remotely", page.title)
    with preserve_cursor(state):
        state.days[pos] = page
    return True


def handle_tick(state: AppState, idle_ticks: int = DEFAULT_IDLE_TICKS) -> bool:
    """Count idle ticks. Returns True when a refresh of every page is due.

    Any interaction in progress (edit session, overlay, error notice, load)
    resets the counter.
    """
    if (
        state.edit_session is not None
        or state.overlay is not None
        or state.error is not None
        or state.loading
        or state.loading_more
    ):
        state.refresh_counter = 0
        return False
    state.refresh_counter += 1
    if state.refresh_counter >= idle_ticks:
        state.refresh_counter = 0
        return True
    return False


# =============================================================================
# Background lookups and errors
# =============================================================================

def handle_linked_refs_loaded(
    state: AppState, title: str, groups: list[LinkedRefGroup], generation: int
) -> None:
    if _is_stale(state, generation, "linked refs"):
        return
    if title not in state.page_titles:
        return
    previous = state.linked_refs.get(title) or blocks.LinkedRefsState()
    group_titles = {g.page_title for g in groups}
    with preserve_cursor(state):
        state.linked_refs[title] = blocks.LinkedRefsState(
            groups=list(groups),
            collapsed=previous.collapsed,
            loading=False,
            collapsed_groups=previous.collapsed_groups & group_titles,
        )


def claim_unresolved_refs(state: AppState) -> list[str]:
    """Block refs that need their text fetched, marked as pending."""
    uids = collect_unresolved_refs(state.days, state.block_ref_cache, state.pending_block_refs)
    state.pending_block_refs.update(uids)
    return uids


def handle_block_ref_resolved(state: AppState, uid: str, text: str) -> None:
    state.pending_block_refs.discard(uid)
    state.block_ref_cache[uid] = text


def handle_api_error(state: AppState, error: ErrorInfo, generation: Optional[int] = None) -> None:
    if _is_stale(state, generation, "error"):
        return
    state.loading = False
    state.loading_more = False
    state.status_message = None
    state.error = error
