"""Undo/redo: every structural edit can be reversed and replayed."""

import copy

from roamline.api.types import (
    CreateBlockWrite,
    DeleteBlockWrite,
    MoveBlockWrite,
    UpdateBlockWrite,
)
from roamline.tui import blocks
from roamline.tui.input import delete_selected, finalize_insert, handle_insert_key, start_create, start_edit
from roamline.tui.keys import Key
from roamline.tui.state import Redo, Undo
from roamline.tui.undo import TextEdit, UndoRedo, apply_redo, apply_undo


def _page_uids(state):
    return [b.uid for b in state.days[0].blocks]


class TestUndoRedoStacks:
    def test_record_clears_redo(self):
        history = UndoRedo()
        history.record(TextEdit("a", "1"))
        history.push_redo(TextEdit("a", "2"))
        history.record(TextEdit("a", "3"))
        assert len(history) == 2
        assert history.redo_len() == 0

    def test_empty_stacks(self, sample_state):
        assert apply_undo(sample_state) is None
        assert apply_redo(sample_state) is None

    def test_clear(self):
        history = UndoRedo()
        history.record(TextEdit("a", "1"))
        history.push_redo(TextEdit("a", "2"))
        history.clear()
        assert not history.can_undo()
        assert not history.can_redo()


class TestTextEdit:
    def test_undo_and_redo(self, sample_state):
        sample_state.cursor = 3
        start_edit(sample_state)
        sample_state.edit_session.buffer.insert_char("!")
        finalize_insert(sample_state)

        assert apply_undo(sample_state) == UpdateBlockWrite("b", "b")
        assert blocks.find_block(sample_state.days, "b").text == "b"

        assert apply_redo(sample_state) == UpdateBlockWrite("b", "b!")
        assert blocks.find_block(sample_state.days, "b").text == "b!"

    def test_undo_after_page_was_replaced_by_refresh(self, sample_state):
        sample_state.cursor = 3
        start_edit(sample_state)
        sample_state.edit_session.buffer.insert_char("!")
        finalize_insert(sample_state)

        sample_state.days = copy.deepcopy(sample_state.days)

        assert apply_undo(sample_state) == UpdateBlockWrite("b", "b")
        assert blocks.find_block(sample_state.days, "b").text == "b"

    def test_entry_for_missing_block_is_dropped(self, sample_state):
        sample_state.undo_redo.record(TextEdit("gone", "x"))
        assert apply_undo(sample_state) is None
        assert len(sample_state.undo_redo) == 0
        assert sample_state.undo_redo.redo_len() == 0


class TestCreate:
    def test_undo_removes_and_redo_restores(self, sample_state):
        sample_state.cursor = 3
        start_create(sample_state)
        uid = sample_state.edit_session.block_uid
        for ch in "new":
            handle_insert_key(sample_state, Key.char(ch))
        finalize_insert(sample_state)

        assert apply_undo(sample_state) == DeleteBlockWrite(uid)
        assert _page_uids(sample_state) == ["a", "b", "c"]

        assert apply_redo(sample_state) == CreateBlockWrite("p1", 2, "new", uid=uid)
        assert _page_uids(sample_state) == ["a", "b", uid, "c"]
        assert blocks.find_block(sample_state.days, uid).text == "new"


class TestDelete:
    def test_undo_restores_subtree_and_cursor(self, sample_state):
        delete_selected(sample_state)
        sample_state.cursor = 1

        assert apply_undo(sample_state) == CreateBlockWrite("p1", 0, "a", uid="a")
        assert _page_uids(sample_state) == ["a", "b", "c"]
        assert [c.uid for c in blocks.find_block(sample_state.days, "a").children] == ["a1", "a2"]
        assert sample_state.cursor == 0

        assert apply_redo(sample_state) == DeleteBlockWrite("a")
        assert _page_uids(sample_state) == ["b", "c"]

    def test_redo_captures_subtree_as_it_is_now(self, sample_state):
        delete_selected(sample_state)
        apply_undo(sample_state)
        blocks.update_text(sample_state.days, "a1", "changed")
        apply_redo(sample_state)
        apply_undo(sample_state)
        assert blocks.find_block(sample_state.days, "a1").text == "changed"


class TestMove:
    def test_undo_indent(self, sample_state):
        sample_state.cursor = 3
        start_edit(sample_state)
        handle_insert_key(sample_state, Key("tab"))
        handle_insert_key(sample_state, Key("escape"))
        assert len(sample_state.undo_redo) == 1

        assert apply_undo(sample_state) == MoveBlockWrite("b", "p1", 1)
        assert _page_uids(sample_state) == ["a", "b", "c"]
        assert sample_state.cursor == 3

        assert apply_redo(sample_state) == MoveBlockWrite("b", "a", 2)
        assert [c.uid for c in blocks.find_block(sample_state.days, "a").children] == ["a1", "a2", "b"]

    def test_undo_dedent(self, sample_state):
        sample_state.cursor = 2
        start_edit(sample_state)
        handle_insert_key(sample_state, Key("shift+tab"))
        handle_insert_key(sample_state, Key("escape"))

        assert apply_undo(sample_state) == MoveBlockWrite("a2", "a", 1)
        assert [c.uid for c in blocks.find_block(sample_state.days, "a").children] == ["a1", "a2"]
        assert _page_uids(sample_state) == ["a", "b", "c"]


class TestDispatch:
    def test_undo_and_redo_actions_queue_writes(self, sample_state):
        sample_state.cursor = 3
        start_edit(sample_state)
        sample_state.edit_session.buffer.insert_char("!")
        finalize_insert(sample_state)

        sample_state.dispatch(Undo())
        sample_state.dispatch(Redo())
        assert sample_state.take_writes() == [
            UpdateBlockWrite("b", "b"),
            UpdateBlockWrite("b", "b!"),
        ]
        assert sample_state.pending_writes == []

    def test_several_edits_unwind_in_order(self, sample_state):
        sample_state.cursor = 3
        start_edit(sample_state)
        sample_state.edit_session.buffer.insert_char("1")
        finalize_insert(sample_state)
        delete_selected(sample_state)

        apply_undo(sample_state)
        apply_undo(sample_state)
        assert _page_uids(sample_state) == ["a", "b", "c"]
        assert blocks.find_block(sample_state.days, "b").text == "b"


class TestRedoRestoresCursor:
    """Undo followed by redo puts the cursor back where the edit left it."""

    @staticmethod
    def _undo_redo(state):
        before = state.cursor
        apply_undo(state)
        apply_redo(state)
        assert state.cursor == before

    def test_text_edit(self, sample_state):
        sample_state.cursor = 3
        start_edit(sample_state)
        sample_state.edit_session.buffer.insert_char("!")
        finalize_insert(sample_state)

        self._undo_redo(sample_state)
        assert sample_state.selected_block().uid == "b"
        assert blocks.find_block(sample_state.days, "b").text == "b!"

    def test_create(self, sample_state):
        sample_state.cursor = 3
        start_create(sample_state)
        uid = sample_state.edit_session.block_uid
        handle_insert_key(sample_state, Key.char("x"))
        finalize_insert(sample_state)
        assert sample_state.cursor == 4

        self._undo_redo(sample_state)
        assert sample_state.selected_block().uid == uid

    def test_delete(self, sample_state):
        sample_state.cursor = 3
        delete_selected(sample_state)
        assert sample_state.selected_block().uid == "c"

        self._undo_redo(sample_state)
        assert sample_state.selected_block().uid == "c"
        assert _page_uids(sample_state) == ["a", "c"]

    def test_move(self, sample_state):
        blocks.set_open(sample_state.days, "a", False)
        sample_state.cursor = 1
        start_edit(sample_state)
        handle_insert_key(sample_state, Key("tab"))
        handle_insert_key(sample_state, Key("escape"))
        assert sample_state.cursor == 3

        self._undo_redo(sample_state)
        assert sample_state.selected_block().uid == "b"
        assert [c.uid for c in blocks.find_block(sample_state.days, "a").children] == ["a1", "a2", "b"]
