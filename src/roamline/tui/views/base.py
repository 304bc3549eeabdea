from abc import ABC, abstractmethod
from typing import Iterable
from textual.widget import Widget
from roamline.tui.state import AppState


class View(ABC):
    name: str

    @abstractmethod
    def render(self, state: AppState) -> Iterable[Widget]: ...
