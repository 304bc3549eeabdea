"""Key handling per mode, and the edit-session lifecycle.

dispatch_key() routes one key by precedence: error notice, help, link
picker, search, insert mode (autocomplete, then slash menu, then the
buffer), normal mode. Handlers that change blocks record an undo entry and
queue the write that persists the change on ``state.pending_writes``.
"""

from __future__ import annotations

from typing import Optional

from roamline.api.types import (
    Block,
    CreateBlockWrite,
    DeleteBlockWrite,
    MoveBlockWrite,
    UpdateBlockWrite,
    WriteAction,
)
from roamline.tui import blocks, slash
from roamline.tui.edit_buffer import EditBuffer
from roamline.tui.keys import Key, Keymap
from roamline.tui.nav import navigate_to_page
from roamline.tui.search import (
    AUTOCOMPLETE_LIMIT,
    SEARCH_LIMIT,
    detect_block_ref_trigger,
    filter_blocks,
)
from roamline.tui.state import (
    AppState,
    AutocompleteState,
    CreateInfo,
    DeleteSelected,
    EditSession,
    HelpOverlay,
    LinkPickerState,
    LoadRequest,
    NormalMode,
    SearchState,
    SlashMenuState,
)
from roamline.tui.undo import CreateBlock, DeleteBlock, MoveBlock, TextEdit


AUTO_PAIRS = {"(": ")", "[": "]", "{": "}"}


# =============================================================================
# Edit session lifecycle
# =============================================================================

def start_edit(state: AppState) -> None:
    """Open the selected block for editing."""
    if state.edit_session is not None or state.selected_cross_ref() is not None:
        return
    info = state.selected_block()
    if info is None:
        return
    state.mode = EditSession(
        buffer=EditBuffer(info.text),
        block_uid=info.uid,
        original_text=info.text,
    )


def _begin_create(state: AppState, parent_uid: str, order: int) -> None:
    uid = blocks.generate_uid()
    if not blocks.insert_block(state.days, parent_uid, order, Block(uid=uid, order=order)):
        return
    state.move_cursor_to(uid)
    state.mode = EditSession(
        buffer=EditBuffer(),
        block_uid=uid,
        original_text="",
        create_info=CreateInfo(parent_uid=parent_uid, order=order),
    )


def start_create(state: AppState) -> None:
    """Insert an empty block after the selected one and edit it.

    A page without blocks gets its first block instead, parented to the page.
    """
    if state.edit_session is not None or not state.days:
        return

    row = state.selected_cross_ref()
    if row is not None:
        page = blocks.find_page(state.days, row.owner)
        if page is not None and not page.blocks:
            _begin_create(state, page.uid, 0)
        return

    # An emptied page has no rows; its span starts where the cursor sits.
    for i, page in enumerate(state.days):
        if (
            not page.blocks
            and blocks.page_row_count(page, state.linked_refs) == 0
            and blocks.page_start(state.days, state.linked_refs, i) == state.cursor
        ):
            _begin_create(state, page.uid, 0)
            return

    info = state.selected_block()
    if info is not None:
        _begin_create(state, info.parent_uid, info.order + 1)
        return

    page = next((p for p in state.days if not p.blocks), state.days[0])
    _begin_create(state, page.uid, 0)


def finalize_insert(state: AppState) -> Optional[WriteAction]:
    """Leave insert mode, committing the buffer.

    An unchanged edit does nothing. An empty create removes the placeholder.
    """
    session = state.edit_session
    if session is None:
        return None
    state.mode = NormalMode()
    uid = session.block_uid
    text = str(session.buffer)

    if session.create_info is not None:
        if not text:
            blocks.remove_block(state.days, uid)
            state.clamp_cursor()
            return None
        blocks.update_text(state.days, uid, text)
        state.undo_redo.record(CreateBlock(uid))
        return CreateBlockWrite(
            parent_uid=session.create_info.parent_uid,
            order=session.create_info.order,
            text=text,
            uid=uid,
        )

    if text == session.original_text:
        return None
    state.undo_redo.record(TextEdit(uid, session.original_text))
    blocks.update_text(state.days, uid, text)
    return UpdateBlockWrite(uid, text)


def _reparent_current(state: AppState, indent: bool) -> Optional[WriteAction]:
    session = state.edit_session
    if session is None:
        return None
    uid = session.block_uid
    before = blocks.find_parent_info(state.days, uid)
    if before is None:
        return None
    prior_cursor = state.cursor

    moved = blocks.indent_block(state.days, uid) if indent else blocks.dedent_block(state.days, uid)
    if moved is None:
        return None
    new_parent_uid, new_order = moved
    if indent:
        blocks.set_open(state.days, new_parent_uid, True)
    state.move_cursor_to(uid)

    if session.create_info is not None:
        # Not on the server yet; the create write will carry the new location.
        session.create_info = CreateInfo(new_parent_uid, new_order)
        return None

    state.undo_redo.record(MoveBlock(uid, before[0], before[1], prior_cursor))
    return MoveBlockWrite(uid, new_parent_uid, "last" if indent else new_order)


def indent_current(state: AppState) -> Optional[WriteAction]:
    return _reparent_current(state, indent=True)


def dedent_current(state: AppState) -> Optional[WriteAction]:
    return _reparent_current(state, indent=False)


def delete_selected(state: AppState) -> Optional[WriteAction]:
    if state.edit_session is not None or state.selected_cross_ref() is not None:
        return None
    info = state.selected_block()
    if info is None:
        return None
    block = blocks.find_block(state.days, info.uid)
    if block is None:
        return None
    state.undo_redo.record(
        DeleteBlock(blocks.snapshot(block), info.parent_uid, info.order, state.cursor)
    )
    blocks.remove_block(state.days, info.uid)
    state.clamp_cursor()
    return DeleteBlockWrite(info.uid)


# =============================================================================
# Insert mode
# =============================================================================

def _move_selection(popup, count: int, delta: int) -> None:
    if count:
        popup.selected = max(0, min(popup.selected + delta, count - 1))


def _edit_buffer_key(buffer: EditBuffer, key: Key) -> bool:
    """Apply a text-editing key. Returns False if the key means nothing here."""
    match key.name:
        case "ctrl+enter" | "alt+enter":
            buffer.toggle_todo()
        case "shift+enter":
            buffer.insert_char("\n")
        case "backspace":
            buffer.delete_back()
        case "delete":
            buffer.delete_forward()
        case "left":
            buffer.move_left()
        case "right":
            buffer.move_right()
        case "home" | "ctrl+a":
            buffer.move_home()
        case "end" | "ctrl+e":
            buffer.move_end()
        case "up":
            buffer.move_up()
        case "down":
            buffer.move_down()
        case "ctrl+left":
            buffer.move_word_left()
        case "ctrl+right":
            buffer.move_word_right()
        case _:
            if not key.is_printable:
                return False
            ch = key.character
            if ch in AUTO_PAIRS:
                buffer.insert_pair(ch, AUTO_PAIRS[ch])
            else:
                buffer.insert_char(ch)
    return True


def handle_insert_key(state: AppState, key: Key) -> Optional[WriteAction]:
    session = state.edit_session
    if session is None:
        return None
    if isinstance(session.popup, AutocompleteState):
        _handle_autocomplete_key(state, session, key)
        return None
    if isinstance(session.popup, SlashMenuState):
        _handle_slash_key(session, key)
        return None

    if key.name in ("escape", "enter"):
        return finalize_insert(state)
    if key.name == "tab":
        return indent_current(state)
    if key.name == "shift+tab":
        return dedent_current(state)

    buffer = session.buffer
    if not _edit_buffer_key(buffer, key):
        return None

    if detect_block_ref_trigger(buffer):
        session.popup = AutocompleteState(
            results=filter_blocks(state.days, state.block_ref_cache, "", AUTOCOMPLETE_LIMIT)
        )
    elif key.is_printable and (pos := slash.detect_slash_trigger(buffer)) is not None:
        session.popup = SlashMenuState(slash_pos=pos, commands=list(slash.COMMANDS))
    return None


def _handle_autocomplete_key(state: AppState, session: EditSession, key: Key) -> None:
    ac = session.popup
    if not isinstance(ac, AutocompleteState):
        return

    match key.name:
        case "escape":
            session.popup = None
        case "up":
            _move_selection(ac, len(ac.results), -1)
        case "down":
            _move_selection(ac, len(ac.results), 1)
        case "enter":
            session.popup = None
            _confirm_autocomplete(session.buffer, ac)
        case "backspace":
            if not ac.query:
                session.popup = None
                return
            ac.query = ac.query[:-1]
            _refilter_autocomplete(state, ac)
        case _:
            if key.is_printable:
                ac.query += key.character
                _refilter_autocomplete(state, ac)


def _refilter_autocomplete(state: AppState, ac: AutocompleteState) -> None:
    ac.results = filter_blocks(state.days, state.block_ref_cache, ac.query, AUTOCOMPLETE_LIMIT)
    ac.selected = min(ac.selected, max(len(ac.results) - 1, 0))


def _confirm_autocomplete(buffer: EditBuffer, ac: AutocompleteState) -> None:
    """Replace the ``(())`` around the cursor with ``((uid)) ``."""
    if not ac.results:
        return
    uid, _ = ac.results[ac.selected]
    if buffer.before_cursor(2) != "((" or buffer.after_cursor(2) != "))":
        return
    buffer.replace_range(buffer.cursor - 2, buffer.cursor + 2, f"(({uid})) ")


def _handle_slash_key(session: EditSession, key: Key) -> None:
    menu = session.popup
    if not isinstance(menu, SlashMenuState):
        return
    buffer = session.buffer

    match key.name:
        case "escape":
            session.popup = None
        case "up":
            _move_selection(menu, len(menu.commands), -1)
        case "down":
            _move_selection(menu, len(menu.commands), 1)
        case "enter":
            session.popup = None
            if menu.commands:
                command = menu.commands[menu.selected]
                slash.execute(command.action, buffer, menu.slash_pos, len(menu.query))
        case "backspace":
            buffer.delete_back()
            if not menu.query:
                session.popup = None
                return
            menu.query = menu.query[:-1]
            _refilter_slash(menu)
        case _:
            if not key.is_printable:
                return
            buffer.insert_char(key.character)
            if key.character.isspace():
                session.popup = None
                return
            menu.query += key.character
            _refilter_slash(menu)


def _refilter_slash(menu: SlashMenuState) -> None:
    menu.commands = slash.filter_commands(menu.query)
    menu.selected = min(menu.selected, max(len(menu.commands) - 1, 0))


# =============================================================================
# Overlays
# =============================================================================

def open_search(state: AppState) -> None:
    state.overlay = SearchState(
        results=filter_blocks(state.days, state.block_ref_cache, "", SEARCH_LIMIT)
    )


def handle_search_key(state: AppState, key: Key) -> None:
    search = state.overlay
    if not isinstance(search, SearchState):
        return

    match key.name:
        case "escape":
            state.overlay = None
        case "up":
            _move_selection(search, len(search.results), -1)
        case "down":
            _move_selection(search, len(search.results), 1)
        case "enter":
            state.overlay = None
            if search.results:
                uid, _ = search.results[search.selected]
                if not state.move_cursor_to(uid):
                    state.status_message = "Block is inside a collapsed parent"
        case "backspace":
            search.query = search.query[:-1]
            _refilter_search(state, search)
        case _:
            if key.is_printable:
                search.query += key.character
                _refilter_search(state, search)


def _refilter_search(state: AppState, search: SearchState) -> None:
    search.results = filter_blocks(state.days, state.block_ref_cache, search.query, SEARCH_LIMIT)
    search.selected = min(search.selected, max(len(search.results) - 1, 0))


def handle_link_picker_key(state: AppState, key: Key) -> Optional[LoadRequest]:
    picker = state.overlay
    if not isinstance(picker, LinkPickerState):
        return None

    match key.name:
        case "escape":
            state.overlay = None
        case "up":
            _move_selection(picker, len(picker.links), -1)
        case "down":
            _move_selection(picker, len(picker.links), 1)
        case "enter":
            state.overlay = None
            if picker.links:
                return navigate_to_page(state, picker.links[picker.selected])
    return None


# =============================================================================
# Dispatch
# =============================================================================

def handle_normal_key(state: AppState, key: Key, keymap: Keymap) -> Optional[LoadRequest]:
    """Resolve a normal-mode key; ``dd`` deletes the selected block."""
    if state.pending_key == "d":
        state.pending_key = None
        if key.name == "d":
            return state.dispatch(DeleteSelected())
    elif key.name == "d" and keymap.resolve(key) is None:
        state.pending_key = "d"
        return None

    action = keymap.resolve(key)
    if action is None:
        return None
    return state.dispatch(action)


def dispatch_key(state: AppState, key: Key, keymap: Keymap) -> Optional[LoadRequest]:
    if state.error is not None:
        state.error = None
        return None

    match state.overlay:
        case HelpOverlay():
            state.overlay = None
            return None
        case LinkPickerState():
            return handle_link_picker_key(state, key)
        case SearchState():
            handle_search_key(state, key)
            return None

    if state.edit_session is not None:
        state.queue_write(handle_insert_key(state, key))
        return None

    return handle_normal_key(state, key, keymap)
