"""Block-tree operations over the loaded pages.

Everything here works on ``list[Page]`` and looks blocks up by uid. Lookups
return ``None``/``False`` instead of raising; structural operations that cannot
apply (indenting a first sibling, dedenting a top-level block) return ``None``
and leave the tree untouched.

The second half maps between the flat cursor index and tree locations.
Rows are laid out page by page: the page's visible blocks in pre-order
(children only when the parent is open), then the page's linked-reference
rows (section header, then per group a header and its blocks).
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, NamedTuple, Optional, Union

from roamline.api.types import Block, LinkedRefBlock, LinkedRefGroup, Page


MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def generate_uid() -> str:
    return f"tui-{uuid.uuid4().hex[:10]}"


def daily_title(day: date) -> str:
    """Title of a daily page, e.g. ``February 21st, 2026``."""
    if day.day in (1, 21, 31):
        suffix = "st"
    elif day.day in (2, 22):
        suffix = "nd"
    elif day.day in (3, 23):
        suffix = "rd"
    else:
        suffix = "th"
    return f"{MONTHS[day.month - 1]} {day.day}{suffix}, {day.year}"


def snapshot(block: Block) -> Block:
    """Deep copy of a block and its subtree."""
    return copy.deepcopy(block)


# =============================================================================
# Lookup
# =============================================================================

class _Location(NamedTuple):
    siblings: list[Block]
    index: int
    parent_uid: str
    parent: Optional[Block]  # None when the block sits at page level


def _locate_in(
    blocks: list[Block], parent_uid: str, parent: Optional[Block], uid: str
) -> Optional[_Location]:
    for i, block in enumerate(blocks):
        if block.uid == uid:
            return _Location(blocks, i, parent_uid, parent)
        found = _locate_in(block.children, block.uid, block, uid)
        if found is not None:
            return found
    return None


def _locate(pages: list[Page], uid: str) -> Optional[_Location]:
    for page in pages:
        found = _locate_in(page.blocks, page.uid, None, uid)
        if found is not None:
            return found
    return None


def _children_of(pages: list[Page], parent_uid: str) -> Optional[list[Block]]:
    """The child list owned by a page or block uid."""
    for page in pages:
        if page.uid == parent_uid:
            return page.blocks
    block = find_block(pages, parent_uid)
    return block.children if block is not None else None


def _contains(block: Block, uid: str) -> bool:
    if block.uid == uid:
        return True
    return any(_contains(child, uid) for child in block.children)


def find_block(pages: list[Page], uid: str) -> Optional[Block]:
    loc = _locate(pages, uid)
    return loc.siblings[loc.index] if loc is not None else None


def find_parent_info(pages: list[Page], uid: str) -> Optional[tuple[str, int]]:
    """``(parent_uid, order)`` of a block; top-level blocks report the page uid."""
    loc = _locate(pages, uid)
    if loc is None:
        return None
    return loc.parent_uid, loc.siblings[loc.index].order


def find_page(pages: list[Page], title: str) -> Optional[Page]:
    return next((p for p in pages if p.title == title), None)


# =============================================================================
# Mutation
# =============================================================================

def update_text(pages: list[Page], uid: str, text: str) -> bool:
    block = find_block(pages, uid)
    if block is None:
        return False
    block.text = text
    return True


def remove_block(pages: list[Page], uid: str) -> bool:
    """Detach a block with its subtree. Siblings keep their orders."""
    loc = _locate(pages, uid)
    if loc is None:
        return False
    del loc.siblings[loc.index]
    return True


def _sorted_insert(siblings: list[Block], block: Block) -> None:
    pos = next(
        (i for i, sibling in enumerate(siblings) if sibling.order >= block.order),
        len(siblings),
    )
    siblings.insert(pos, block)


def insert_block(pages: list[Page], parent_uid: str, order: int, block: Block) -> bool:
    """Insert before the first sibling whose order is >= ``order``.

    ``parent_uid`` may name a page or a block. The block keeps its children.
    """
    siblings = _children_of(pages, parent_uid)
    if siblings is None:
        return False
    block.order = order
    _sorted_insert(siblings, block)
    return True


def indent_block(pages: list[Page], uid: str) -> Optional[tuple[str, int]]:
    """Make a block the last child of its preceding sibling."""
    loc = _locate(pages, uid)
    if loc is None or loc.index == 0:
        return None
    new_parent = loc.siblings[loc.index - 1]
    block = loc.siblings.pop(loc.index)
    block.order = new_parent.children[-1].order + 1 if new_parent.children else 0
    new_parent.children.append(block)
    return new_parent.uid, block.order


def dedent_block(pages: list[Page], uid: str) -> Optional[tuple[str, int]]:
    """Move a block out of its parent, right after it in the grandparent list."""
    loc = _locate(pages, uid)
    if loc is None or loc.parent is None:
        return None
    parent_loc = _locate(pages, loc.parent.uid)
    if parent_loc is None:
        return None
    block = loc.siblings.pop(loc.index)
    block.order = loc.parent.order + 1
    parent_loc.siblings.insert(parent_loc.index + 1, block)
    return parent_loc.parent_uid, block.order


def move_block(pages: list[Page], uid: str, target_parent_uid: str, target_order: int) -> bool:
    """Reparent a block at ``target_order``.

    Refused, with the tree left as it was, when the target parent is unknown or
    lies inside the moved subtree.
    """
    loc = _locate(pages, uid)
    if loc is None:
        return False
    block = loc.siblings[loc.index]
    if _contains(block, target_parent_uid):
        return False
    target = _children_of(pages, target_parent_uid)
    if target is None:
        return False
    del loc.siblings[loc.index]
    block.order = target_order
    _sorted_insert(target, block)
    return True


def set_open(pages: list[Page], uid: str, is_open: bool) -> bool:
    block = find_block(pages, uid)
    if block is None:
        return False
    block.open = is_open
    return True


# =============================================================================
# Row counting
# =============================================================================

@dataclass
class LinkedRefsState:
    """Linked references shown under one page."""
    groups: list[LinkedRefGroup] = field(default_factory=list)
    collapsed: bool = False
    loading: bool = False
    collapsed_groups: set[str] = field(default_factory=set)


LinkedRefs = dict[str, LinkedRefsState]


def count_visible(blocks: list[Block]) -> int:
    """Rows contributed by a forest; closed blocks count once."""
    return sum(1 + (count_visible(b.children) if b.open else 0) for b in blocks)


def cross_ref_row_count(refs: Optional[LinkedRefsState]) -> int:
    if refs is None or not refs.groups:
        return 0
    if refs.collapsed:
        return 1
    rows = 1
    for group in refs.groups:
        rows += 1
        if group.page_title not in refs.collapsed_groups:
            rows += len(group.blocks)
    return rows


def page_row_count(page: Page, linked_refs: LinkedRefs) -> int:
    return count_visible(page.blocks) + cross_ref_row_count(linked_refs.get(page.title))


def total_rows(pages: list[Page], linked_refs: LinkedRefs) -> int:
    return sum(page_row_count(p, linked_refs) for p in pages)


def page_start(pages: list[Page], linked_refs: LinkedRefs, page_index: int) -> int:
    """Flat index of the first row of ``pages[page_index]``."""
    return sum(page_row_count(p, linked_refs) for p in pages[:page_index])


def page_index_at(pages: list[Page], linked_refs: LinkedRefs, index: int) -> Optional[int]:
    offset = 0
    for i, page in enumerate(pages):
        offset += page_row_count(page, linked_refs)
        if index < offset:
            return i
    return None


# =============================================================================
# Flat index <-> tree
# =============================================================================

@dataclass(frozen=True)
class BlockInfo:
    uid: str
    parent_uid: str
    text: str
    order: int
    depth: int


def visible_blocks(page: Page) -> Iterator[BlockInfo]:
    """Pre-order walk of a page, descending only into open blocks."""

    def walk(blocks: list[Block], parent_uid: str, depth: int) -> Iterator[BlockInfo]:
        for block in blocks:
            yield BlockInfo(block.uid, parent_uid, block.text, block.order, depth)
            if block.open:
                yield from walk(block.children, block.uid, depth + 1)

    return walk(page.blocks, page.uid, 0)


def resolve_index(pages: list[Page], linked_refs: LinkedRefs, index: int) -> Optional[BlockInfo]:
    """The block shown at ``index``; ``None`` outside a page's block rows."""
    if index < 0:
        return None
    offset = 0
    for page in pages:
        visible = count_visible(page.blocks)
        if index < offset + visible:
            for i, info in enumerate(visible_blocks(page)):
                if offset + i == index:
                    return info
        offset += visible + cross_ref_row_count(linked_refs.get(page.title))
        if index < offset:
            return None
    return None


def find_index(pages: list[Page], linked_refs: LinkedRefs, uid: str) -> Optional[int]:
    offset = 0
    for page in pages:
        for i, info in enumerate(visible_blocks(page)):
            if info.uid == uid:
                return offset + i
        offset += page_row_count(page, linked_refs)
    return None


@dataclass(frozen=True)
class SectionHeader:
    owner: str


@dataclass(frozen=True)
class GroupHeader:
    owner: str
    title: str


@dataclass(frozen=True)
class RefRow:
    owner: str
    block: LinkedRefBlock


CrossRefRow = Union[SectionHeader, GroupHeader, RefRow]


def cross_ref_rows(owner: str, refs: Optional[LinkedRefsState]) -> Iterator[CrossRefRow]:
    if refs is None or not refs.groups:
        return
    yield SectionHeader(owner)
    if refs.collapsed:
        return
    for group in refs.groups:
        yield GroupHeader(owner, group.page_title)
        if group.page_title in refs.collapsed_groups:
            continue
        for block in group.blocks:
            yield RefRow(owner, block)


def resolve_cross_ref(
    pages: list[Page], linked_refs: LinkedRefs, index: int
) -> Optional[CrossRefRow]:
    if index < 0:
        return None
    offset = 0
    for page in pages:
        offset += count_visible(page.blocks)
        refs = linked_refs.get(page.title)
        rows = cross_ref_row_count(refs)
        if offset <= index < offset + rows:
            for i, row in enumerate(cross_ref_rows(page.title, refs)):
                if offset + i == index:
                    return row
        offset += rows
    return None


def cross_ref_owner(pages: list[Page], linked_refs: LinkedRefs, index: int) -> Optional[str]:
    """Title of the page whose linked-reference rows include ``index``."""
    row = resolve_cross_ref(pages, linked_refs, index)
    return row.owner if row is not None else None
