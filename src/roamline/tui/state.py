"""
TUI state: modes, overlays, actions, messages and the AppState container.

Architecture:
- Actions are frozen dataclasses naming what the user asked for
- apply_action(state, action) mutates state and may return a LoadRequest
- Messages are what arrives on the controller queue (keys, fetch results, ticks)
- AppState is one mutable object handed to every handler; nothing is global
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Optional, Union

from roamline.api.types import LinkedRefGroup, Page, WriteAction
from roamline.errors import ErrorInfo
from roamline.tui import blocks
from roamline.tui.edit_buffer import EditBuffer
from roamline.tui.slash import SlashCommand

if TYPE_CHECKING:
    from roamline.tui.keys import Key


# =============================================================================
# View modes and load requests
# =============================================================================

@dataclass(frozen=True)
class DailyNotesView:
    """Today's daily note followed by older days, newest first."""
    pass


@dataclass(frozen=True)
class PageView:
    """A single named page."""
    title: str


ViewMode = Union[DailyNotesView, PageView]


@dataclass(frozen=True)
class LoadDailyNote:
    day: date


@dataclass(frozen=True)
class LoadPage:
    title: str


@dataclass(frozen=True)
class LoadLinkedRefs:
    titles: tuple[str, ...]


LoadRequest = Union[LoadDailyNote, LoadPage, LoadLinkedRefs]


# =============================================================================
# Modes
# =============================================================================

@dataclass
class CreateInfo:
    """Where a block that only exists locally will be created remotely."""
    parent_uid: str
    order: int


@dataclass
class AutocompleteState:
    """Block-reference picker opened by typing ``((``."""
    results: list[tuple[str, str]] = field(default_factory=list)
    query: str = ""
    selected: int = 0


@dataclass
class SlashMenuState:
    slash_pos: int
    commands: list[SlashCommand] = field(default_factory=list)
    query: str = ""
    selected: int = 0


Popup = Union[AutocompleteState, SlashMenuState]


@dataclass
class EditSession:
    """Insert mode bound to one block.

    ``create_info`` is None when editing an existing block. When creating,
    the block is a local placeholder until the session commits.
    """
    buffer: EditBuffer
    block_uid: str
    original_text: str
    create_info: Optional[CreateInfo] = None
    popup: Optional[Popup] = None

    @property
    def is_create(self) -> bool:
        return self.create_info is not None


@dataclass(frozen=True)
class NormalMode:
    pass


Mode = Union[NormalMode, EditSession]


# =============================================================================
# Overlays
# =============================================================================

@dataclass(frozen=True)
class HelpOverlay:
    pass


@dataclass
class LinkPickerState:
    """Choice between several page links of one block."""
    links: list[str]
    selected: int = 0


@dataclass
class SearchState:
    query: str = ""
    results: list[tuple[str, str]] = field(default_factory=list)
    selected: int = 0


Overlay = Union[HelpOverlay, LinkPickerState, SearchState]


# =============================================================================
# Actions
# =============================================================================

@dataclass(frozen=True)
class CursorUp:
    pass


@dataclass(frozen=True)
class CursorDown:
    """Move down; in the daily view, stepping off the last block loads an older day."""
    pass


@dataclass(frozen=True)
class StartEdit:
    pass


@dataclass(frozen=True)
class StartCreate:
    """Insert an empty block after the selected one and start editing it."""
    pass


@dataclass(frozen=True)
class DeleteSelected:
    pass


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Redo:
    pass


@dataclass(frozen=True)
class CollapseBlock:
    pass


@dataclass(frozen=True)
class ExpandBlock:
    pass


@dataclass(frozen=True)
class Activate:
    """Enter on the selected row."""
    pass


@dataclass(frozen=True)
class NextDay:
    pass


@dataclass(frozen=True)
class PrevDay:
    pass


@dataclass(frozen=True)
class GotoDaily:
    pass


@dataclass(frozen=True)
class NavBack:
    pass


@dataclass(frozen=True)
class NavForward:
    pass


@dataclass(frozen=True)
class OpenSearch:
    pass


@dataclass(frozen=True)
class ToggleHelp:
    pass


@dataclass(frozen=True)
class Dismiss:
    pass


@dataclass(frozen=True)
class Quit:
    pass


Action = Union[
    CursorUp,
    CursorDown,
    StartEdit,
    StartCreate,
    DeleteSelected,
    Undo,
    Redo,
    CollapseBlock,
    ExpandBlock,
    Activate,
    NextDay,
    PrevDay,
    GotoDaily,
    NavBack,
    NavForward,
    OpenSearch,
    ToggleHelp,
    Dismiss,
    Quit,
]


# =============================================================================
# Messages
# =============================================================================

@dataclass(frozen=True)
class KeyPressed:
    key: "Key"


@dataclass(frozen=True)
class DailyNoteLoaded:
    page: Page
    generation: int


@dataclass(frozen=True)
class PageLoaded:
    page: Page
    generation: int


@dataclass(frozen=True)
class RefreshLoaded:
    page: Page
    generation: int


@dataclass(frozen=True)
class LinkedRefsLoaded:
    title: str
    groups: list[LinkedRefGroup]
    generation: int


@dataclass(frozen=True)
class BlockRefResolved:
    uid: str
    text: str


@dataclass(frozen=True)
class ApiErrorOccurred:
    """A failed request. ``generation`` is None for writes, which never go stale."""
    error: ErrorInfo
    generation: Optional[int] = None


@dataclass(frozen=True)
class Tick:
    pass


Message = Union[
    KeyPressed,
    DailyNoteLoaded,
    PageLoaded,
    RefreshLoaded,
    LinkedRefsLoaded,
    BlockRefResolved,
    ApiErrorOccurred,
    Tick,
]


# =============================================================================
# App State
# =============================================================================

# Import here to avoid circular import issues
from roamline.tui.nav import NavHistory  # noqa: E402
from roamline.tui.undo import UndoRedo  # noqa: E402


@dataclass
class AppState:
    """
    Everything the TUI knows: loaded pages, cursor, modes and caches.

    Mutated in place by the handlers in actions, input, undo, nav and
    reconcile. Views read it and never change it.
    """

    graph_name: str = ""

    # Loaded pages, in display order
    days: list[Page] = field(default_factory=list)

    # Flat row index over all navigable rows
    cursor: int = 0

    # Base mode and at most one overlay on top of it
    mode: Mode = field(default_factory=NormalMode)
    overlay: Optional[Overlay] = None
    error: Optional[ErrorInfo] = None

    view_mode: ViewMode = field(default_factory=DailyNotesView)

    # Bumped on every view change; results for older generations are dropped
    generation: int = 0

    undo_redo: UndoRedo = field(default_factory=UndoRedo)
    nav: NavHistory = field(default_factory=NavHistory)

    # Keyed by page title
    linked_refs: blocks.LinkedRefs = field(default_factory=dict)

    # Text of referenced blocks that are not loaded locally
    block_ref_cache: dict[str, str] = field(default_factory=dict)
    pending_block_refs: set[str] = field(default_factory=set)

    # Writes produced by handlers, drained by the controller
    pending_writes: list[WriteAction] = field(default_factory=list)

    loading: bool = True
    loading_more: bool = False
    current_date: date = field(default_factory=date.today)
    refresh_counter: int = 0
    pending_key: Optional[str] = None
    should_quit: bool = False
    status_message: Optional[str] = None

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def dispatch(self, action: Action) -> Optional[LoadRequest]:
        """Apply an action; returns the load it needs, if any."""
        from roamline.tui.actions import apply_action

        return apply_action(self, action)

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def edit_session(self) -> Optional[EditSession]:
        if isinstance(self.mode, EditSession):
            return self.mode
        return None

    @property
    def is_daily(self) -> bool:
        return isinstance(self.view_mode, DailyNotesView)

    @property
    def page_titles(self) -> tuple[str, ...]:
        return tuple(page.title for page in self.days)

    def total_navigable_count(self) -> int:
        return blocks.total_rows(self.days, self.linked_refs)

    def selected_block(self) -> Optional[blocks.BlockInfo]:
        return blocks.resolve_index(self.days, self.linked_refs, self.cursor)

    def selected_cross_ref(self) -> Optional[blocks.CrossRefRow]:
        return blocks.resolve_cross_ref(self.days, self.linked_refs, self.cursor)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def clamp_cursor(self) -> None:
        total = self.total_navigable_count()
        self.cursor = min(self.cursor, total - 1) if total else 0

    def move_cursor_to(self, uid: str) -> bool:
        index = blocks.find_index(self.days, self.linked_refs, uid)
        if index is None:
            return False
        self.cursor = index
        return True

    def queue_write(self, action: Optional[WriteAction]) -> None:
        if action is not None:
            self.pending_writes.append(action)

    def take_writes(self) -> list[WriteAction]:
        writes, self.pending_writes = self.pending_writes, []
        return writes
