"""Key representation and normal-mode keybindings.

Keys use Textual's names (``"enter"``, ``"ctrl+r"``, ``"shift+tab"``) plus the
printable character when there is one. A binding string matches either.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from roamline.errors import ConfigError
from roamline.tui.state import (
    Action,
    Activate,
    CollapseBlock,
    CursorDown,
    CursorUp,
    DeleteSelected,
    Dismiss,
    ExpandBlock,
    GotoDaily,
    NavBack,
    NavForward,
    NextDay,
    OpenSearch,
    PrevDay,
    Quit,
    Redo,
    StartCreate,
    StartEdit,
    ToggleHelp,
    Undo,
)


@dataclass(frozen=True)
class Key:
    name: str
    character: Optional[str] = None

    @classmethod
    def char(cls, ch: str) -> "Key":
        return cls("space" if ch == " " else ch, ch)

    @property
    def is_printable(self) -> bool:
        return (
            self.character is not None
            and len(self.character) == 1
            and self.character.isprintable()
        )


ACTIONS: dict[str, type] = {
    "move_up": CursorUp,
    "move_down": CursorDown,
    "collapse": CollapseBlock,
    "expand": ExpandBlock,
    "enter": Activate,
    "exit": Dismiss,
    "search": OpenSearch,
    "quit": Quit,
    "help": ToggleHelp,
    "go_daily": GotoDaily,
    "next_day": NextDay,
    "prev_day": PrevDay,
    "edit_block": StartEdit,
    "create_block": StartCreate,
    "delete_block": DeleteSelected,
    "undo": Undo,
    "redo": Redo,
    "nav_back": NavBack,
    "nav_forward": NavForward,
}

HINT_TEXT = {
    "quit": "quit",
    "search": "search",
    "help": "help",
    "move_up": "up",
    "move_down": "down",
}

PRESETS: dict[str, dict[str, str]] = {
    # key -> action name
    "vim": {
        "k": "move_up",
        "up": "move_up",
        "j": "move_down",
        "down": "move_down",
        "h": "collapse",
        "l": "expand",
        "enter": "enter",
        "escape": "exit",
        "/": "search",
        "q": "quit",
        "?": "help",
        "i": "edit_block",
        "o": "create_block",
        "u": "undo",
        "ctrl+r": "redo",
        "N": "next_day",
        "P": "prev_day",
        "G": "go_daily",
        "pagedown": "next_day",
        "pageup": "prev_day",
        "H": "nav_back",
        "L": "nav_forward",
    },
    "emacs": {
        "ctrl+p": "move_up",
        "up": "move_up",
        "ctrl+n": "move_down",
        "down": "move_down",
        "ctrl+b": "collapse",
        "ctrl+f": "expand",
        "enter": "enter",
        "ctrl+g": "exit",
        "ctrl+s": "search",
        "ctrl+q": "quit",
        "ctrl+h": "help",
        "alt+enter": "create_block",
        "ctrl+e": "edit_block",
        "ctrl+underscore": "undo",
        "ctrl+slash": "undo",
        "alt+underscore": "redo",
        "alt+n": "next_day",
        "alt+p": "prev_day",
        "ctrl+d": "go_daily",
        "pagedown": "next_day",
        "pageup": "prev_day",
        "alt+left": "nav_back",
        "alt+right": "nav_forward",
    },
    "vscode": {
        "up": "move_up",
        "down": "move_down",
        "ctrl+left": "collapse",
        "ctrl+right": "expand",
        "enter": "enter",
        "escape": "exit",
        "ctrl+f": "search",
        "ctrl+q": "quit",
        "f1": "help",
        "ctrl+d": "go_daily",
        "f2": "edit_block",
        "ctrl+enter": "create_block",
        "ctrl+z": "undo",
        "ctrl+y": "redo",
        "alt+up": "next_day",
        "alt+down": "prev_day",
        "pagedown": "next_day",
        "pageup": "prev_day",
        "alt+left": "nav_back",
        "alt+right": "nav_forward",
    },
}

# Textual names for punctuation keys
_KEY_ALIASES = {
    "/": "slash",
    "?": "question_mark",
    " ": "space",
}


class Keymap:
    """Resolves normal-mode keys to actions."""

    def __init__(self, bindings: Mapping[str, str]) -> None:
        self._bindings: dict[str, str] = {}
        for key, action_name in bindings.items():
            self.bind(key, action_name)

    @classmethod
    def from_config(
        cls, preset: str = "vim", overrides: Optional[Mapping[str, str]] = None
    ) -> "Keymap":
        """Build from a preset plus ``action name -> key`` overrides.

        Raises ConfigError for an unknown preset or action name.
        """
        base = PRESETS.get(preset.lower())
        if base is None:
            raise ConfigError(f"Unknown keybinding preset: {preset}")
        keymap = cls(base)
        for action_name, key in (overrides or {}).items():
            if action_name.lower() not in ACTIONS:
                raise ConfigError(f"Unknown action: {action_name}")
            keymap.rebind(action_name.lower(), str(key))
        return keymap

    def bind(self, key: str, action_name: str) -> None:
        self._bindings[_KEY_ALIASES.get(key, key)] = action_name

    def rebind(self, action_name: str, key: str) -> None:
        """Replace every existing binding of ``action_name`` with ``key``."""
        self._bindings = {k: a for k, a in self._bindings.items() if a != action_name}
        self.bind(key, action_name)

    def action_name(self, key: Key) -> Optional[str]:
        name = self._bindings.get(key.name)
        if name is None and key.character:
            name = self._bindings.get(_KEY_ALIASES.get(key.character, key.character))
        return name

    def resolve(self, key: Key) -> Optional[Action]:
        name = self.action_name(key)
        return ACTIONS[name]() if name is not None else None

    def key_for(self, action_name: str) -> Optional[str]:
        return next((k for k, a in self._bindings.items() if a == action_name), None)

    def bindings(self) -> list[tuple[str, str]]:
        """(key, action name) pairs, grouped by action."""
        order = list(ACTIONS)
        return sorted(self._bindings.items(), key=lambda kv: (order.index(kv[1]), kv[0]))

    def hints(self) -> list[tuple[str, str]]:
        hints = []
        for action_name, text in HINT_TEXT.items():
            key = self.key_for(action_name)
            if key is not None:
                hints.append((key, text))
        return hints
