"""Text buffer with a cursor, used while a block is being edited."""

from __future__ import annotations


TODO_PREFIX = "{{[[TODO]]}} "
DONE_PREFIX = "{{[[DONE]]}} "


class EditBuffer:
    """Mutable text plus a cursor position (0..len)."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.cursor = len(text)

    def __str__(self) -> str:
        return self.text

    def __len__(self) -> int:
        return len(self.text)

    def __repr__(self) -> str:
        return f"EditBuffer({self.text!r}, cursor={self.cursor})"

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def insert_char(self, ch: str) -> None:
        self.text = self.text[: self.cursor] + ch + self.text[self.cursor :]
        self.cursor += len(ch)

    def insert_pair(self, open_ch: str, close_ch: str) -> None:
        """Insert both delimiters and leave the cursor between them."""
        self.text = self.text[: self.cursor] + open_ch + close_ch + self.text[self.cursor :]
        self.cursor += len(open_ch)

    def delete_back(self) -> None:
        if self.cursor > 0:
            self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
            self.cursor -= 1

    def delete_forward(self) -> None:
        if self.cursor < len(self.text):
            self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]

    def replace_range(self, start: int, end: int, replacement: str) -> None:
        self.text = self.text[:start] + replacement + self.text[end:]
        self.cursor = start + len(replacement)

    def toggle_todo(self) -> None:
        """Cycle the block marker: none -> TODO -> DONE -> none."""
        if self.text.startswith(DONE_PREFIX):
            self.text = self.text[len(DONE_PREFIX) :]
            self.cursor = max(0, self.cursor - len(DONE_PREFIX))
        elif self.text.startswith(TODO_PREFIX):
            self.text = DONE_PREFIX + self.text[len(TODO_PREFIX) :]
        else:
            self.text = TODO_PREFIX + self.text
            self.cursor += len(TODO_PREFIX)

    def strip_marker(self) -> None:
        for prefix in (TODO_PREFIX, DONE_PREFIX):
            if self.text.startswith(prefix):
                self.text = self.text[len(prefix) :]
                self.cursor = max(0, self.cursor - len(prefix))
                return

    # -------------------------------------------------------------------------
    # Movement
    # -------------------------------------------------------------------------

    def move_left(self) -> None:
        if self.cursor > 0:
            self.cursor -= 1

    def move_right(self) -> None:
        if self.cursor < len(self.text):
            self.cursor += 1

    def move_home(self) -> None:
        self.cursor = 0

    def move_end(self) -> None:
        self.cursor = len(self.text)

    def move_word_left(self) -> None:
        while self.cursor > 0 and self.text[self.cursor - 1].isspace():
            self.cursor -= 1
        while self.cursor > 0 and not self.text[self.cursor - 1].isspace():
            self.cursor -= 1

    def move_word_right(self) -> None:
        n = len(self.text)
        while self.cursor < n and not self.text[self.cursor].isspace():
            self.cursor += 1
        while self.cursor < n and self.text[self.cursor].isspace():
            self.cursor += 1

    def _line_start(self, pos: int) -> int:
        return self.text.rfind("\n", 0, pos) + 1

    def _line_end(self, pos: int) -> int:
        end = self.text.find("\n", pos)
        return len(self.text) if end == -1 else end

    def move_up(self) -> None:
        """Same column on the previous line, or the buffer start on line one."""
        start = self._line_start(self.cursor)
        if start == 0:
            self.cursor = 0
            return
        col = self.cursor - start
        prev_start = self._line_start(start - 1)
        self.cursor = prev_start + min(col, start - 1 - prev_start)

    def move_down(self) -> None:
        """Same column on the next line, or the buffer end on the last line."""
        end = self._line_end(self.cursor)
        if end >= len(self.text):
            self.cursor = len(self.text)
            return
        col = self.cursor - self._line_start(self.cursor)
        next_start = end + 1
        self.cursor = next_start + min(col, self._line_end(next_start) - next_start)

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def before_cursor(self, n: int) -> str:
        return self.text[max(0, self.cursor - n) : self.cursor]

    def after_cursor(self, n: int) -> str:
        return self.text[self.cursor : self.cursor + n]
