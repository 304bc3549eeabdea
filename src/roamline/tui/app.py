"""roamline TUI application with Elm-inspired architecture.

- All state lives in one AppState owned by the Controller
- Keys, fetch results and ticks are messages on one queue
- Views are pure functions of state (no network calls)
- Network reads and writes run as background tasks
"""

from __future__ import annotations

import logging
from typing import Optional

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.css.query import NoMatches
from textual.widgets import Footer, Header

from roamline.api.client import RoamClient
from roamline.config import AppConfig
from roamline.errors import ConfigError
from roamline.tui.controller import Controller
from roamline.tui.decorators import safe_action
from roamline.tui.keys import Key, Keymap
from roamline.tui.state import AppState, KeyPressed, Tick
from roamline.tui.views.outline import OutlineView


class RoamlineApp(App):
    CSS_PATH = "tui.css"
    TITLE = "roamline"
    # Tab would otherwise move focus; the outline needs it for indent/dedent.
    BINDINGS = [
        Binding("tab", "forward_key('tab')", show=False, priority=True),
        Binding("shift+tab", "forward_key('shift+tab')", show=False, priority=True),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(self, config: AppConfig, client: Optional[RoamClient] = None, **kwargs):
        super().__init__(**kwargs)
        self.config = config
        self.client = client
        self.state: AppState | None = None
        self.controller: Controller | None = None
        self.views = {}

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(id="main")
        yield Footer()

    def on_mount(self) -> None:
        log_path = self.config.log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            filename=log_path,
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        try:
            keymap = self.config.keymap()
        except ConfigError as e:
            logging.exception("Invalid keybindings, falling back to defaults")
            self.notify(str(e), severity="error")
            keymap = Keymap.from_config()

        if self.client is None:
            self.client = RoamClient(self.config.graph.name, self.config.graph.api_token)

        self.state = AppState(graph_name=self.config.graph.name)
        self.controller = Controller(
            self.state,
            self.client,
            keymap,
            idle_ticks=self.config.refresh.idle_ticks,
        )
        self.views = {"outline": OutlineView(keymap)}

        self.controller.start()
        self.run_worker(self._pump(), group="controller", exit_on_error=False)
        self.set_interval(self.config.refresh.tick_ms / 1000, self._tick)
        self._render_view()

    async def on_unmount(self) -> None:
        if self.client is not None:
            await self.client.close()

    # =====================
    # Input
    # =====================

    @safe_action
    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self.controller.post(KeyPressed(Key(event.key, event.character)))

    @safe_action
    def action_forward_key(self, key: str) -> None:
        self.controller.post(KeyPressed(Key(key)))

    @safe_action
    def _tick(self) -> None:
        self.controller.post(Tick())

    async def _pump(self) -> None:
        """Handle controller messages until the user quits."""
        controller = self.controller
        if controller is None:
            return
        while not controller.state.should_quit:
            message = await controller.queue.get()
            try:
                controller.handle(message)
            except Exception as e:
                logging.exception("Failed to handle %s", type(message).__name__)
                self.notify(f"Error: {e}", severity="error")
            if not isinstance(message, Tick):
                self._render_view()
        self.exit()

    # =====================
    # Rendering
    # =====================

    def _render_view(self) -> None:
        """Schedule a view re-render.

        Textual's `remove_children()` / `mount()` are async. If we call them
        synchronously, removals are deferred and we can briefly have duplicate ids
        in the DOM.
        """

        if self.state is None:
            return

        self.run_worker(
            self._render_view_async(),
            group="render",
            exclusive=True,
            exit_on_error=False,
        )

    async def _render_view_async(self) -> None:
        if self.state is None:
            return

        try:
            container = self.screen.query_one("#main")
        except NoMatches:
            return

        await container.remove_children()

        view = self.views["outline"]
        widgets = view.render(self.state)
        await container.mount_all(widgets)

        try:
            scroll = self.screen.query_one("#outline-scroll")
        except NoMatches:
            return
        top = max(0, view.cursor_line - scroll.size.height // 2)
        scroll.scroll_to(y=top, animate=False)
