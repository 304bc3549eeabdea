"""Slash commands available while editing a block.

Typing ``/`` at the start of the buffer or after whitespace opens a menu of
these commands; the characters typed after the slash filter it by name.
Executing a command replaces ``/query`` in the buffer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from roamline.tui.blocks import daily_title
from roamline.tui.edit_buffer import EditBuffer


@dataclass(frozen=True)
class PrependText:
    """Replace any TODO/DONE marker with ``prefix`` at the start of the block."""
    prefix: str


@dataclass(frozen=True)
class InsertText:
    text: str


@dataclass(frozen=True)
class InsertPair:
    open: str
    close: str


@dataclass(frozen=True)
class InsertDate:
    """Link to a daily page, ``offset`` days from today."""
    offset: int = 0


@dataclass(frozen=True)
class InsertTime:
    pass


@dataclass(frozen=True)
class InsertCodeBlock:
    pass


SlashAction = Union[PrependText, InsertText, InsertPair, InsertDate, InsertTime, InsertCodeBlock]


@dataclass(frozen=True)
class SlashCommand:
    name: str
    description: str
    action: SlashAction


COMMANDS: tuple[SlashCommand, ...] = (
    SlashCommand("todo", "Add TODO checkbox", PrependText("{{[[TODO]]}} ")),
    SlashCommand("done", "Add DONE checkbox", PrependText("{{[[DONE]]}} ")),
    SlashCommand("date", "Insert today's date", InsertDate(0)),
    SlashCommand("yesterday", "Insert yesterday's date", InsertDate(-1)),
    SlashCommand("tomorrow", "Insert tomorrow's date", InsertDate(1)),
    SlashCommand("time", "Insert current time", InsertTime()),
    SlashCommand("code", "Insert code block", InsertCodeBlock()),
    SlashCommand("hr", "Horizontal rule", InsertText("---")),
    SlashCommand("bold", "Bold text", InsertPair("**", "**")),
    SlashCommand("italic", "Italic text", InsertPair("__", "__")),
    SlashCommand("highlight", "Highlight text", InsertPair("^^", "^^")),
    SlashCommand("strikethrough", "Strikethrough text", InsertPair("~~", "~~")),
    SlashCommand("h1", "Heading 1", PrependText("# ")),
    SlashCommand("h2", "Heading 2", PrependText("## ")),
    SlashCommand("h3", "Heading 3", PrependText("### ")),
    SlashCommand("blockquote", "Quote prefix", PrependText("> ")),
    SlashCommand("embed", "Embed block or page", InsertPair("{{[[embed]]: ", "}}")),
    SlashCommand("latex", "LaTeX formula", InsertPair("$$", "$$")),
)


def filter_commands(query: str) -> list[SlashCommand]:
    q = query.lower()
    return [c for c in COMMANDS if q in c.name]


def detect_slash_trigger(buffer: EditBuffer) -> Optional[int]:
    """Position of a just-typed ``/`` that should open the menu.

    ``http:/`` does not trigger; ``/`` at the start or after whitespace does.
    """
    pos = buffer.cursor - 1
    if pos < 0 or buffer.text[pos] != "/":
        return None
    if pos == 0 or buffer.text[pos - 1].isspace():
        return pos
    return None


def execute(
    action: SlashAction,
    buffer: EditBuffer,
    slash_pos: int,
    query_len: int,
    *,
    now: Optional[datetime] = None,
) -> None:
    now = now or datetime.now()
    end = slash_pos + 1 + query_len

    match action:
        case PrependText(prefix=prefix):
            buffer.replace_range(slash_pos, end, "")
            buffer.strip_marker()
            buffer.text = prefix + buffer.text
            buffer.cursor += len(prefix)

        case InsertText(text=text):
            buffer.replace_range(slash_pos, end, text)

        case InsertPair(open=open_, close=close):
            buffer.replace_range(slash_pos, end, open_ + close)
            buffer.cursor = slash_pos + len(open_)

        case InsertDate(offset=offset):
            day: date = now.date() + timedelta(days=offset)
            buffer.replace_range(slash_pos, end, f"[[{daily_title(day)}]]")

        case InsertTime():
            buffer.replace_range(slash_pos, end, now.strftime("%H:%M"))

        case InsertCodeBlock():
            buffer.replace_range(slash_pos, end, "```\n\n```")
            buffer.cursor = slash_pos + 4
