"""Back/forward navigation between views.

Works like browser history: every jump to another page pushes a snapshot of
the view being left and drops any forward entries. Going back or forward
restores a snapshot without refetching the pages; only their linked
references are requested again.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from roamline.api.types import Page

if TYPE_CHECKING:
    from roamline.tui.state import AppState, LoadRequest, ViewMode


NAV_HISTORY_LIMIT = 50


@dataclass(frozen=True)
class ViewSnapshot:
    view_mode: "ViewMode"
    days: list[Page]
    cursor: int


class NavHistory:
    """Snapshots plus the index of the view currently shown.

    ``index == len(entries)`` means the current view has not been saved yet.
    """

    def __init__(self, limit: int = NAV_HISTORY_LIMIT) -> None:
        self.limit = limit
        self._entries: list[ViewSnapshot] = []
        self._index = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        return self._index

    @property
    def at_tail(self) -> bool:
        return self._index == len(self._entries)

    def can_go_back(self) -> bool:
        if self.at_tail:
            return bool(self._entries)
        return self._index > 0

    def can_go_forward(self) -> bool:
        return self._index + 1 < len(self._entries)

    def push(self, snapshot: ViewSnapshot) -> None:
        """Save the view being left, dropping forward history."""
        del self._entries[self._index :]
        self._entries.append(snapshot)
        self._evict()
        self._index = len(self._entries)

    def back(self, current: ViewSnapshot) -> Optional[ViewSnapshot]:
        if not self.can_go_back():
            return None
        if self.at_tail:
            self._entries.append(current)
            self._index = len(self._entries) - 1
            self._evict()
        else:
            self._entries[self._index] = current
        self._index -= 1
        return self._entries[self._index]

    def forward(self, current: ViewSnapshot) -> Optional[ViewSnapshot]:
        if not self.can_go_forward():
            return None
        self._entries[self._index] = current
        self._index += 1
        return self._entries[self._index]

    def _evict(self) -> None:
        while len(self._entries) > self.limit:
            self._entries.pop(0)
            self._index -= 1


# =============================================================================
# State transitions
# =============================================================================

# Import here to avoid circular import issues
from roamline.tui.blocks import LinkedRefsState  # noqa: E402
from roamline.tui.state import (  # noqa: E402
    DailyNotesView,
    LoadDailyNote,
    LoadLinkedRefs,
    LoadPage,
    PageView,
)


def snapshot_view(state: "AppState") -> ViewSnapshot:
    return ViewSnapshot(
        view_mode=state.view_mode,
        days=copy.deepcopy(state.days),
        cursor=state.cursor,
    )


def _leave_view(state: "AppState", status: str) -> None:
    state.nav.push(snapshot_view(state))
    state.generation += 1
    state.days.clear()
    state.cursor = 0
    state.loading = True
    state.loading_more = False
    state.linked_refs.clear()
    state.status_message = status


def navigate_to_page(state: "AppState", title: str) -> "LoadRequest":
    _leave_view(state, f"Loading {title}...")
    state.view_mode = PageView(title)
    return LoadPage(title)


def navigate_to_daily(state: "AppState") -> "LoadRequest":
    _leave_view(state, "Loading today's notes...")
    state.view_mode = DailyNotesView()
    return LoadDailyNote(state.current_date)


def _restore(state: "AppState", snap: ViewSnapshot) -> Optional["LoadRequest"]:
    state.generation += 1
    state.view_mode = snap.view_mode
    state.days = copy.deepcopy(snap.days)
    state.cursor = snap.cursor
    state.loading = False
    state.loading_more = False
    state.status_message = None
    state.linked_refs.clear()
    titles = state.page_titles
    for title in titles:
        state.linked_refs[title] = LinkedRefsState(loading=True)
    state.clamp_cursor()
    return LoadLinkedRefs(titles) if titles else None


def go_back(state: "AppState") -> Optional["LoadRequest"]:
    snap = state.nav.back(snapshot_view(state))
    if snap is None:
        return None
    return _restore(state, snap)


def go_forward(state: "AppState") -> Optional["LoadRequest"]:
    snap = state.nav.forward(snapshot_view(state))
    if snap is None:
        return None
    return _restore(state, snap)
