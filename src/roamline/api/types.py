"""Data model shared by the API layer and the TUI core.

Blocks and pages are plain mutable dataclasses: the TUI keeps one live tree
and mutates it in place. Write actions are frozen and know how to serialize
themselves to the JSON shape the remote /write endpoint expects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Union


# =============================================================================
# Outline tree
# =============================================================================

@dataclass
class Block:
    uid: str
    text: str = ""
    order: int = 0
    children: list["Block"] = field(default_factory=list)
    open: bool = True
    refs: list[str] = field(default_factory=list)


@dataclass
class Page:
    """A daily note or named page owning a forest of blocks."""
    uid: str
    title: str = ""
    date: Optional[date] = None
    blocks: list[Block] = field(default_factory=list)


@dataclass(frozen=True)
class LinkedRefBlock:
    uid: str
    text: str
    page_title: str


@dataclass(frozen=True)
class LinkedRefGroup:
    """Blocks from one page that reference the page being viewed."""
    page_title: str
    blocks: tuple[LinkedRefBlock, ...] = ()


# =============================================================================
# Pull parsing
# =============================================================================

def parse_block(raw: dict[str, Any]) -> Block:
    children = [parse_block(c) for c in raw.get(":block/children") or []]
    children.sort(key=lambda b: b.order)
    refs = [
        r[":block/uid"]
        for r in raw.get(":block/refs") or []
        if isinstance(r, dict) and ":block/uid" in r
    ]
    return Block(
        uid=str(raw.get(":block/uid", "")),
        text=str(raw.get(":block/string", "")),
        order=int(raw.get(":block/order", 0)),
        children=children,
        open=bool(raw.get(":block/open", True)),
        refs=refs,
    )


def parse_page(raw: Optional[dict[str, Any]], *, uid: str = "", day: Optional[date] = None) -> Page:
    """Build a Page from a pull result.

    A missing page comes back as ``None``/``{}``; it parses to an empty page
    so that callers can synthesize a placeholder block.
    """
    raw = raw or {}
    blocks = [parse_block(b) for b in raw.get(":block/children") or []]
    blocks.sort(key=lambda b: b.order)
    return Page(
        uid=str(raw.get(":block/uid") or uid),
        title=str(raw.get(":node/title") or ""),
        date=day,
        blocks=blocks,
    )


def parse_linked_refs(rows: list[Any], page_title: str) -> list[LinkedRefGroup]:
    """Group query rows ``[uid, string, source-page-title]`` by source page.

    Rows coming from the page itself are skipped. Groups are sorted by title,
    blocks keep query order.
    """
    grouped: dict[str, list[LinkedRefBlock]] = {}
    for row in rows:
        if not isinstance(row, (list, tuple)) or len(row) < 3:
            continue
        uid, text, source = (str(v) for v in row[:3])
        if source == page_title:
            continue
        grouped.setdefault(source, []).append(
            LinkedRefBlock(uid=uid, text=text, page_title=source)
        )
    return [
        LinkedRefGroup(page_title=title, blocks=tuple(grouped[title]))
        for title in sorted(grouped)
    ]


# =============================================================================
# Write actions
# =============================================================================

Order = Union[int, str]  # index or "first" / "last"


def _location(parent_uid: str, order: Order) -> dict[str, Any]:
    return {"parent-uid": parent_uid, "order": order}


@dataclass(frozen=True)
class CreateBlockWrite:
    parent_uid: str
    order: Order
    text: str
    uid: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        block: dict[str, Any] = {"string": self.text}
        if self.uid is not None:
            block["uid"] = self.uid
        return {
            "action": "create-block",
            "location": _location(self.parent_uid, self.order),
            "block": block,
        }


@dataclass(frozen=True)
class UpdateBlockWrite:
    uid: str
    text: str

    def to_payload(self) -> dict[str, Any]:
        return {"action": "update-block", "block": {"uid": self.uid, "string": self.text}}


@dataclass(frozen=True)
class DeleteBlockWrite:
    uid: str

    def to_payload(self) -> dict[str, Any]:
        return {"action": "delete-block", "block": {"uid": self.uid}}


@dataclass(frozen=True)
class MoveBlockWrite:
    uid: str
    parent_uid: str
    order: Order

    def to_payload(self) -> dict[str, Any]:
        return {
            "action": "move-block",
            "block": {"uid": self.uid},
            "location": _location(self.parent_uid, self.order),
        }


WriteAction = Union[CreateBlockWrite, UpdateBlockWrite, DeleteBlockWrite, MoveBlockWrite]
