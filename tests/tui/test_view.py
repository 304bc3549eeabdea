"""
Outline view text and a full app run.

The text builders return rich Text, so most checks read ``.plain``. The app
test drives RoamlineApp through Textual's pilot against a fake graph.
"""

import asyncio
import json
from datetime import date

import httpx
import pytest

from roamline.api.client import RoamClient
from roamline.config import AppConfig, GraphConfig
from roamline.errors import ErrorInfo
from roamline.tui import blocks
from roamline.tui.app import RoamlineApp
from roamline.tui.input import handle_insert_key, start_create, start_edit
from roamline.tui.keys import Key, Keymap
from roamline.tui.state import HelpOverlay, LinkPickerState, PageView, SearchState
from roamline.tui.views.outline import OutlineView


@pytest.fixture
def view():
    return OutlineView(Keymap.from_config("vim"))


class TestHeader:
    def test_daily(self, view, sample_state):
        sample_state.graph_name = "g"
        assert view.header(sample_state).plain == "g  ›  Daily Notes"

    def test_page_with_status(self, view, sample_state):
        sample_state.graph_name = "g"
        sample_state.view_mode = PageView("Foo")
        sample_state.status_message = "Loading Foo..."
        assert view.header(sample_state).plain == "g  ›  Foo   Loading Foo..."

    def test_loading(self, view, make_state):
        state = make_state(loading=True)
        assert view.header(state).plain == "roamline  ›  Daily Notes   loading..."


class TestBody:
    def test_outline(self, view, sample_state):
        sample_state.cursor = 3
        body = view.body(sample_state).plain
        assert body.splitlines() == [
            "Page One",
            "  • a",
            "    • a1",
            "    • a2",
            "  • b",
            "  • c",
        ]
        assert view.cursor_line == 4

    def test_collapsed_block_marker(self, view, sample_state):
        blocks.set_open(sample_state.days, "a", False)
        assert view.body(sample_state).plain.splitlines()[1] == "  ▸ a"

    def test_block_refs_are_expanded(self, view, sample_state):
        blocks.update_text(sample_state.days, "c", "see ((b)) and ((r))")
        sample_state.block_ref_cache["r"] = "remote"
        assert "  • see b and remote" in view.body(sample_state).plain.splitlines()

    def test_edit_buffer_replaces_block_text(self, view, sample_state):
        sample_state.cursor = 3
        start_edit(sample_state)
        sample_state.edit_session.buffer.insert_char("!")
        assert "  • b! " in view.body(sample_state).plain.splitlines()

    def test_popup_follows_edited_block(self, view, sample_state):
        sample_state.cursor = 4
        start_create(sample_state)
        for ch in "((":
            handle_insert_key(sample_state, Key.char(ch))
        lines = view.body(sample_state).plain.splitlines()
        assert "    (( " in lines
        assert "      a1" in lines

    def test_linked_references(self, view, make_block, make_page, make_refs, make_state):
        state = make_state(
            make_page("p1", make_block("a"), title="Page One"),
            linked_refs={"Page One": make_refs(("X", ["x0", "x1"]))},
            cursor=2,
        )
        assert view.body(state).plain.splitlines() == [
            "Page One",
            "  • a",
            "  ▾ Linked references (2)",
            "    ▾ X",
            "      • x0",
            "      • x1",
        ]
        assert view.cursor_line == 3

    def test_linked_references_loading(self, view, sample_state):
        sample_state.linked_refs["Page One"] = blocks.LinkedRefsState(loading=True)
        assert "  Linked references: loading..." in view.body(sample_state).plain

    def test_nothing_loaded(self, view, make_state):
        assert view.body(make_state(loading=True)).plain == "Loading..."
        assert view.body(make_state()).plain == "Nothing loaded."

    def test_loading_more(self, view, sample_state):
        sample_state.loading_more = True
        assert view.body(sample_state).plain.endswith("Loading older notes...")


class TestOverlay:
    def test_none(self, view, sample_state):
        assert view.overlay(sample_state) is None

    def test_error_wins(self, view, sample_state):
        sample_state.overlay = HelpOverlay()
        sample_state.error = ErrorInfo("Not found", "no graph", "check the name")
        assert view.overlay(sample_state).plain == (
            "Not found\nno graph\ncheck the name\n\nPress any key to dismiss"
        )

    def test_help_lists_bindings(self, view, sample_state):
        sample_state.overlay = HelpOverlay()
        text = view.overlay(sample_state).plain
        assert "  k           move up" in text
        assert "Insert mode" in text

    def test_link_picker(self, view, sample_state):
        sample_state.overlay = LinkPickerState(["Foo", "Bar"], selected=1)
        assert view.overlay(sample_state).plain == "Open link\n  Foo\n  Bar"

    def test_search_without_matches(self, view, sample_state):
        sample_state.overlay = SearchState(query="zz")
        assert view.overlay(sample_state).plain == "Search: zz\n  no matches"


class TestHints:
    def test_normal_mode(self, view, sample_state):
        assert view.hints(sample_state).plain == (
            "q:quit  slash:search  question_mark:help  k:up  j:down"
        )

    def test_insert_mode(self, view, sample_state):
        start_edit(sample_state)
        assert view.hints(sample_state).plain.startswith("INSERT")

    def test_without_keymap(self, sample_state):
        assert OutlineView().hints(sample_state).plain == ""


class TestApp:
    def test_startup_and_edit(self, tmp_path):
        writes = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            if request.url.path.endswith("/write"):
                writes.append(body)
                return httpx.Response(200)
            if request.url.path.endswith("/q"):
                return httpx.Response(200, json={"result": []})
            return httpx.Response(200, json={"result": None})

        config = AppConfig(
            graph=GraphConfig(name="g", api_token="tok"),
            log_file=str(tmp_path / "tui.log"),
        )
        client = RoamClient("g", "tok", transport=httpx.MockTransport(handler))

        async def run():
            app = RoamlineApp(config, client=client)
            async with app.run_test() as pilot:
                for _ in range(50):
                    await pilot.pause()
                    if app.state is not None and not app.state.loading and app.query("#outline-body"):
                        break
                assert app.state.page_titles == (blocks.daily_title(date.today()),)
                assert len(app.query("#outline-layout")) == 1

                # The empty day got a placeholder; editing it updates that uid
                placeholder = app.state.days[0].blocks[0].uid
                await pilot.press("i", "h", "i", "escape")
                for _ in range(50):
                    await pilot.pause()
                    if writes:
                        break
                assert writes == [
                    {"action": "update-block", "block": {"uid": placeholder, "string": "hi"}}
                ]
                assert app.state.edit_session is None

        asyncio.run(run())
