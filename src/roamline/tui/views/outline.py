"""Outline view: loaded pages, cross-reference rows and whatever floats on top.

Rows are built as rich Text rather than Textual markup because block text
is full of square brackets.
"""

from __future__ import annotations

from typing import Optional

from rich.text import Text
from textual.containers import Vertical, VerticalScroll
from textual.widgets import Static

from roamline.api.types import Page
from roamline.tui import blocks
from roamline.tui.keys import Keymap
from roamline.tui.search import expand_block_refs
from roamline.tui.state import (
    AppState,
    AutocompleteState,
    EditSession,
    HelpOverlay,
    LinkPickerState,
    PageView,
    SearchState,
    SlashMenuState,
)
from roamline.tui.views.base import View


CURSOR_STYLE = "reverse"
TITLE_STYLE = "bold underline"
DIM = "dim"

POPUP_ROWS = 8


class OutlineScroll(VerticalScroll):
    # Keys go to the app; the scroll only follows the cursor.
    can_focus = False


def _bullet(block) -> str:
    if block is not None and block.children and not block.open:
        return "▸ "
    return "• "


def _with_cursor(session: EditSession) -> Text:
    text = session.buffer.text
    pos = session.buffer.cursor
    out = Text(text[:pos])
    under = text[pos : pos + 1]
    if not under or under == "\n":
        out.append(" ", style=CURSOR_STYLE)
        out.append(under)
    else:
        out.append(under, style=CURSOR_STYLE)
    out.append(text[pos + 1 :])
    return out


def _popup_lines(popup) -> list[Text]:
    lines: list[Text] = []
    match popup:
        case AutocompleteState(results=results, query=query, selected=selected):
            lines.append(Text(f"(( {query}", style=DIM))
            if not results:
                lines.append(Text("  no matching blocks", style=DIM))
            for i, (_uid, text) in enumerate(results[:POPUP_ROWS]):
                lines.append(Text("  " + text.replace("\n", " "), style=CURSOR_STYLE if i == selected else ""))
        case SlashMenuState(commands=commands, query=query, selected=selected):
            lines.append(Text(f"/{query}", style=DIM))
            if not commands:
                lines.append(Text("  no matching commands", style=DIM))
            for i, cmd in enumerate(commands[:POPUP_ROWS]):
                row = Text(f"  {cmd.name:<16}", style=CURSOR_STYLE if i == selected else "")
                row.append(cmd.description, style=DIM)
                lines.append(row)
    return lines


class OutlineView(View):
    name = "outline"

    def __init__(self, keymap: Optional[Keymap] = None) -> None:
        self.keymap = keymap
        # Screen line of the cursor row in the last rendered body
        self.cursor_line = 0

    # -------------------------------------------------------------------------
    # Text builders
    # -------------------------------------------------------------------------

    def header(self, state: AppState) -> Text:
        header = Text(state.graph_name or "roamline", style="bold")
        if isinstance(state.view_mode, PageView):
            header.append(f"  ›  {state.view_mode.title}")
        else:
            header.append("  ›  Daily Notes")
        if state.status_message:
            header.append(f"   {state.status_message}", style=DIM)
        elif state.loading or state.loading_more:
            header.append("   loading...", style=DIM)
        return header

    def _display_text(self, state: AppState, text: str) -> str:
        def lookup(uid: str) -> Optional[str]:
            block = blocks.find_block(state.days, uid)
            if block is not None:
                return block.text
            return state.block_ref_cache.get(uid)

        return expand_block_refs(text, lookup)

    def _page_lines(
        self, state: AppState, page: Page, row: int
    ) -> tuple[list[Text], int, Optional[int]]:
        lines = [Text(page.title or "(untitled)", style=TITLE_STYLE)]
        session = state.edit_session
        cursor_at: Optional[int] = None

        for info in blocks.visible_blocks(page):
            indent = "  " * (info.depth + 1)
            selected = row == state.cursor
            if selected:
                cursor_at = len(lines)
            line = Text(indent)
            line.append(_bullet(blocks.find_block(state.days, info.uid)))
            if session is not None and session.block_uid == info.uid:
                line.append_text(_with_cursor(session))
                lines.append(line)
                lines.extend(Text(indent + "  ") + p for p in _popup_lines(session.popup))
            else:
                body = self._display_text(state, info.text) or " "
                line.append(body, style=CURSOR_STYLE if selected else "")
                lines.append(line)
            row += 1

        refs = state.linked_refs.get(page.title)
        if refs is not None and refs.loading and not refs.groups:
            lines.append(Text("  Linked references: loading...", style=DIM))
        for ref_row in blocks.cross_ref_rows(page.title, refs):
            style = ""
            if row == state.cursor:
                style = CURSOR_STYLE
                cursor_at = len(lines)
            match ref_row:
                case blocks.SectionHeader():
                    count = sum(len(g.blocks) for g in refs.groups)
                    mark = "▸" if refs.collapsed else "▾"
                    lines.append(Text(f"  {mark} Linked references ({count})", style=style or "bold"))
                case blocks.GroupHeader(title=title):
                    mark = "▸" if title in refs.collapsed_groups else "▾"
                    lines.append(Text(f"    {mark} {title}", style=style or "italic"))
                case blocks.RefRow(block=ref):
                    text = self._display_text(state, ref.text).replace("\n", " ")
                    line = Text("      ")
                    line.append(f"• {text}", style=style)
                    lines.append(line)
            row += 1
        return lines, row, cursor_at

    def body(self, state: AppState) -> Text:
        if not state.days:
            return Text("Loading..." if state.loading else "Nothing loaded.", style=DIM)
        lines: list[Text] = []
        row = 0
        cursor_at = 0
        for page in state.days:
            page_lines, row, page_cursor = self._page_lines(state, page, row)
            if page_cursor is not None:
                cursor_at = len(lines) + page_cursor
            lines.extend(page_lines)
            lines.append(Text(""))
        if state.loading_more:
            lines.append(Text("Loading older notes...", style=DIM))
        self.cursor_line = sum(line.plain.count("\n") + 1 for line in lines[:cursor_at])
        return Text("\n").join(lines)

    def overlay(self, state: AppState) -> Optional[Text]:
        if state.error is not None:
            text = Text(state.error.title, style="bold red")
            text.append(f"\n{state.error.message}")
            if state.error.hint:
                text.append(f"\n{state.error.hint}", style=DIM)
            text.append("\n\nPress any key to dismiss", style=DIM)
            return text

        match state.overlay:
            case HelpOverlay():
                return self.help(state)
            case LinkPickerState(links=links, selected=selected):
                text = Text("Open link", style="bold")
                for i, link in enumerate(links):
                    text.append("\n")
                    text.append(f"  {link}", style=CURSOR_STYLE if i == selected else "")
                return text
            case SearchState(query=query, results=results, selected=selected):
                text = Text(f"Search: {query}", style="bold")
                if query and not results:
                    text.append("\n  no matches", style=DIM)
                for i, (_uid, body) in enumerate(results):
                    text.append("\n")
                    text.append("  " + body.replace("\n", " "), style=CURSOR_STYLE if i == selected else "")
                return text
        return None

    def help(self, state: AppState) -> Text:
        text = Text("Keys", style="bold")
        bindings = self.keymap.bindings() if self.keymap is not None else []
        for key, action_name in bindings:
            text.append(f"\n  {key:<12}{action_name.replace('_', ' ')}")
        text.append("\n\nInsert mode", style="bold")
        text.append("\n  escape/enter  save    shift+enter  newline")
        text.append("\n  tab/shift+tab indent  ((  block ref    /  commands")
        text.append("\n  ctrl+enter    cycle TODO/DONE")
        return text

    def hints(self, state: AppState) -> Text:
        if state.edit_session is not None:
            return Text("INSERT  esc:save  tab:indent  shift+tab:dedent  ((:ref  /:commands", style=DIM)
        if self.keymap is None:
            return Text("")
        return Text("  ".join(f"{k}:{t}" for k, t in self.keymap.hints()), style=DIM)

    # -------------------------------------------------------------------------
    # Widgets
    # -------------------------------------------------------------------------

    def render(self, state: AppState):
        widgets = [
            Static(self.header(state), id="breadcrumb"),
            OutlineScroll(Static(self.body(state), id="outline-body"), id="outline-scroll"),
        ]
        overlay = self.overlay(state)
        if overlay is not None:
            widgets.append(Static(overlay, id="overlay"))
        widgets.append(Static(self.hints(state), id="hint-bar"))
        return [Vertical(*widgets, id="outline-layout")]
