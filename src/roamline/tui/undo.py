"""Undo/redo for structural and text edits.

Each entry holds what is needed to reverse one mutation without looking at
history: the previous text, the removed subtree, or the previous location.

- record() pushes an undo entry and clears redo history
- apply_undo/apply_redo pop one entry, apply its inverse, push the inverse of
  that onto the other stack, and return the write that persists the result
- Inverses are computed from the tree as it is at undo time, so they stay
  correct after background refreshes as long as the block still exists
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Union

from roamline.api.types import (
    Block,
    CreateBlockWrite,
    DeleteBlockWrite,
    MoveBlockWrite,
    UpdateBlockWrite,
    WriteAction,
)
from roamline.tui import blocks

if TYPE_CHECKING:
    from roamline.tui.state import AppState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextEdit:
    uid: str
    previous_text: str


@dataclass(frozen=True)
class CreateBlock:
    uid: str


@dataclass(frozen=True)
class DeleteBlock:
    block: Block  # deep snapshot, subtree included
    parent_uid: str
    order: int
    prior_cursor: int


@dataclass(frozen=True)
class MoveBlock:
    uid: str
    previous_parent_uid: str
    previous_order: int
    prior_cursor: int


UndoEntry = Union[TextEdit, CreateBlock, DeleteBlock, MoveBlock]


class UndoRedo:
    """Undo and redo stacks of UndoEntry."""

    def __init__(self) -> None:
        self._undo: List[UndoEntry] = []
        self._redo: List[UndoEntry] = []

    def record(self, entry: UndoEntry) -> None:
        """Record a new edit and clear redo history."""
        self._undo.append(entry)
        self._redo.clear()

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def pop_undo(self) -> Optional[UndoEntry]:
        return self._undo.pop() if self._undo else None

    def pop_redo(self) -> Optional[UndoEntry]:
        return self._redo.pop() if self._redo else None

    def push_undo(self, entry: UndoEntry) -> None:
        self._undo.append(entry)

    def push_redo(self, entry: UndoEntry) -> None:
        self._redo.append(entry)

    def peek_undo(self) -> Optional[UndoEntry]:
        return self._undo[-1] if self._undo else None

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    def __len__(self) -> int:
        """Number of undoable edits."""
        return len(self._undo)

    def redo_len(self) -> int:
        """Number of redoable edits."""
        return len(self._redo)


# =============================================================================
# Applying entries
# =============================================================================

def apply_undo(state: "AppState") -> Optional[WriteAction]:
    entry = state.undo_redo.pop_undo()
    if entry is None:
        return None
    result = _invert(state, entry)
    if result is None:
        return None
    inverse, write = result
    state.undo_redo.push_redo(inverse)
    return write


def apply_redo(state: "AppState") -> Optional[WriteAction]:
    entry = state.undo_redo.pop_redo()
    if entry is None:
        return None
    result = _invert(state, entry)
    if result is None:
        return None
    inverse, write = result
    state.undo_redo.push_undo(inverse)
    return write


def _invert(state: "AppState", entry: UndoEntry) -> Optional[tuple[UndoEntry, WriteAction]]:
    """Apply the inverse of ``entry``; None (entry dropped) if its block is gone."""
    match entry:
        case TextEdit(uid=uid, previous_text=previous_text):
            block = blocks.find_block(state.days, uid)
            if block is None:
                logger.debug("undo: block %s no longer loaded", uid)
                return None
            current_text = block.text
            block.text = previous_text
            return TextEdit(uid, current_text), UpdateBlockWrite(uid, previous_text)

        case CreateBlock(uid=uid):
            block = blocks.find_block(state.days, uid)
            location = blocks.find_parent_info(state.days, uid)
            if block is None or location is None:
                logger.debug("undo: block %s no longer loaded", uid)
                return None
            parent_uid, order = location
            prior_cursor = state.cursor
            removed = blocks.snapshot(block)
            blocks.remove_block(state.days, uid)
            state.clamp_cursor()
            return (
                DeleteBlock(removed, parent_uid, order, prior_cursor),
                DeleteBlockWrite(uid),
            )

        case DeleteBlock(block=block, parent_uid=parent_uid, order=order, prior_cursor=prior_cursor):
            restored = blocks.snapshot(block)
            if not blocks.insert_block(state.days, parent_uid, order, restored):
                logger.debug("undo: parent %s no longer loaded", parent_uid)
                return None
            state.cursor = prior_cursor
            state.clamp_cursor()
            return (
                CreateBlock(restored.uid),
                CreateBlockWrite(parent_uid, order, restored.text, uid=restored.uid),
            )

        case MoveBlock(
            uid=uid,
            previous_parent_uid=previous_parent_uid,
            previous_order=previous_order,
            prior_cursor=prior_cursor,
        ):
            location = blocks.find_parent_info(state.days, uid)
            if location is None:
                logger.debug("undo: block %s no longer loaded", uid)
                return None
            current_parent_uid, current_order = location
            current_cursor = state.cursor
            if not blocks.move_block(state.days, uid, previous_parent_uid, previous_order):
                return None
            state.cursor = prior_cursor
            state.clamp_cursor()
            return (
                MoveBlock(uid, current_parent_uid, current_order, current_cursor),
                MoveBlockWrite(uid, previous_parent_uid, previous_order),
            )

    return None
