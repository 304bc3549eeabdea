"""Shared fixtures for TUI tests.

Everything here is in-memory: pages are built directly and AppState is
driven through the same handlers the controller calls. Block text defaults
to the block uid, and sibling orders follow list position.
"""

from datetime import date

import pytest

from roamline.api.types import Block, LinkedRefBlock, LinkedRefGroup, Page
from roamline.tui.blocks import LinkedRefsState
from roamline.tui.state import AppState


TODAY = date(2024, 3, 15)


def _ordered(blocks: list[Block]) -> list[Block]:
    for i, block in enumerate(blocks):
        block.order = i
    return blocks


def build_block(uid: str, *children: Block, text=None, open=True) -> Block:
    return Block(
        uid=uid,
        text=uid if text is None else text,
        children=_ordered(list(children)),
        open=open,
    )


def build_page(uid: str, *blocks: Block, title=None, day=None) -> Page:
    return Page(uid=uid, title=title or uid, date=day, blocks=_ordered(list(blocks)))


def build_refs(*groups: tuple, collapsed=False) -> LinkedRefsState:
    """``build_refs(("Other", ["x", "y"]))``: one group with two blocks."""
    return LinkedRefsState(
        groups=[
            LinkedRefGroup(
                title,
                tuple(LinkedRefBlock(f"{title}-{i}", text, title) for i, text in enumerate(texts)),
            )
            for title, texts in groups
        ],
        collapsed=collapsed,
    )


def build_state(*pages: Page, linked_refs=None, cursor=0, **kwargs) -> AppState:
    kwargs.setdefault("loading", False)
    kwargs.setdefault("current_date", TODAY)
    return AppState(
        days=list(pages),
        linked_refs=dict(linked_refs or {}),
        cursor=cursor,
        **kwargs,
    )


@pytest.fixture
def make_block():
    return build_block


@pytest.fixture
def make_page():
    return build_page


@pytest.fixture
def make_refs():
    return build_refs


@pytest.fixture
def make_state():
    return build_state


@pytest.fixture
def sample_state():
    """One page:

    0  a
    1    a1
    2    a2
    3  b
    4  c
    """
    page = build_page(
        "p1",
        build_block("a", build_block("a1"), build_block("a2")),
        build_block("b"),
        build_block("c"),
        title="Page One",
    )
    return build_state(page)


@pytest.fixture
def today():
    return TODAY
