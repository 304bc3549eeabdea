"""Normal-mode actions.

apply_action(state, action) is the single entry point for resolved
keybindings. It mutates state in place and returns the load the action
needs (a page to fetch, an older day, fresh linked references), if any.
Writes are queued on ``state.pending_writes``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from roamline.tui import blocks
from roamline.tui.input import delete_selected, open_search, start_create, start_edit
from roamline.tui.nav import go_back, go_forward, navigate_to_daily, navigate_to_page
from roamline.tui.search import extract_page_links
from roamline.tui.state import (
    Action,
    Activate,
    AppState,
    CollapseBlock,
    CursorDown,
    CursorUp,
    DeleteSelected,
    Dismiss,
    ExpandBlock,
    GotoDaily,
    HelpOverlay,
    LinkPickerState,
    LoadDailyNote,
    LoadRequest,
    NavBack,
    NavForward,
    NextDay,
    OpenSearch,
    PrevDay,
    Quit,
    Redo,
    StartCreate,
    StartEdit,
    ToggleHelp,
    Undo,
)
from roamline.tui.undo import apply_redo, apply_undo


logger = logging.getLogger(__name__)


def apply_action(state: AppState, action: Action) -> Optional[LoadRequest]:
    """
    Apply a normal-mode action to state.

    All keybinding-driven state changes flow through here.
    """
    match action:
        case Quit():
            state.should_quit = True

        case CursorUp():
            if state.cursor > 0:
                state.cursor -= 1

        case CursorDown():
            return _cursor_down(state)

        case StartEdit():
            start_edit(state)

        case StartCreate():
            start_create(state)

        case DeleteSelected():
            state.queue_write(delete_selected(state))

        case Undo():
            state.queue_write(apply_undo(state))

        case Redo():
            state.queue_write(apply_redo(state))

        case CollapseBlock():
            _set_open(state, False)

        case ExpandBlock():
            _set_open(state, True)

        case Activate():
            return _activate(state)

        case NextDay():
            if not state.is_daily:
                return None
            page_index = blocks.page_index_at(state.days, state.linked_refs, state.cursor)
            if page_index:
                state.cursor = blocks.page_start(state.days, state.linked_refs, page_index - 1)

        case PrevDay():
            if not state.is_daily:
                return None
            page_index = blocks.page_index_at(state.days, state.linked_refs, state.cursor)
            if page_index is not None and page_index + 1 < len(state.days):
                state.cursor = blocks.page_start(state.days, state.linked_refs, page_index + 1)
                return None
            return _load_older_day(state)

        case GotoDaily():
            if not state.is_daily:
                return navigate_to_daily(state)
            state.cursor = 0
            if not state.days or state.days[0].date != state.current_date:
                return LoadDailyNote(state.current_date)

        case NavBack():
            return go_back(state)

        case NavForward():
            return go_forward(state)

        case OpenSearch():
            open_search(state)

        case ToggleHelp():
            state.overlay = None if isinstance(state.overlay, HelpOverlay) else HelpOverlay()

        case Dismiss():
            state.overlay = None
            state.error = None
            state.pending_key = None

    return None


def _load_older_day(state: AppState) -> Optional[LoadRequest]:
    if state.loading_more:
        return None
    oldest = next(
        (page.date for page in reversed(state.days) if page.date is not None),
        state.current_date,
    )
    state.loading_more = True
    return LoadDailyNote(oldest - timedelta(days=1))


def _cursor_down(state: AppState) -> Optional[LoadRequest]:
    total = state.total_navigable_count()
    if total == 0:
        return None

    request = None
    if state.is_daily and state.days:
        last = len(state.days) - 1
        last_block_row = (
            blocks.page_start(state.days, state.linked_refs, last)
            + blocks.count_visible(state.days[last].blocks)
            - 1
        )
        if state.cursor >= last_block_row:
            request = _load_older_day(state)

    if state.cursor < total - 1:
        state.cursor += 1
    return request


def _set_open(state: AppState, is_open: bool) -> None:
    row = state.selected_cross_ref()
    if row is None:
        info = state.selected_block()
        if info is not None:
            blocks.set_open(state.days, info.uid, is_open)
        return

    refs = state.linked_refs.get(row.owner)
    if refs is None:
        return
    if isinstance(row, blocks.SectionHeader):
        refs.collapsed = not is_open
    elif isinstance(row, blocks.GroupHeader):
        if is_open:
            refs.collapsed_groups.discard(row.title)
        else:
            refs.collapsed_groups.add(row.title)


def _activate(state: AppState) -> Optional[LoadRequest]:
    row = state.selected_cross_ref()
    match row:
        case blocks.SectionHeader(owner=owner):
            refs = state.linked_refs.get(owner)
            if refs is not None:
                refs.collapsed = not refs.collapsed
            return None
        case blocks.GroupHeader(title=title):
            return navigate_to_page(state, title)
        case blocks.RefRow(block=ref):
            return navigate_to_page(state, ref.page_title)

    info = state.selected_block()
    if info is None:
        return None
    links = extract_page_links(info.text)
    if len(links) == 1:
        return navigate_to_page(state, links[0])
    if len(links) > 1:
        state.overlay = LinkPickerState(links=links)
        return None

    block = blocks.find_block(state.days, info.uid)
    if block is not None and block.children:
        block.open = not block.open
    else:
        logger.debug("activate: nothing to toggle on %s", info.uid)
    return None
