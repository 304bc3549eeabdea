"""Pull parsing, write payloads and query helpers."""

from datetime import date

from roamline.api import queries
from roamline.api.types import (
    CreateBlockWrite,
    DeleteBlockWrite,
    LinkedRefBlock,
    LinkedRefGroup,
    MoveBlockWrite,
    Page,
    UpdateBlockWrite,
    parse_linked_refs,
    parse_page,
)


RAW_PAGE = {
    ":node/title": "Foo",
    ":block/uid": "foo",
    ":block/children": [
        {":block/uid": "b2", ":block/string": "two", ":block/order": 1},
        {
            ":block/uid": "b1",
            ":block/string": "one",
            ":block/order": 0,
            ":block/open": False,
            ":block/refs": [{":block/uid": "r"}, "junk"],
            ":block/children": [
                {":block/uid": "c2", ":block/string": "c2", ":block/order": 1},
                {":block/uid": "c1", ":block/string": "c1", ":block/order": 0},
            ],
        },
    ],
}


class TestParsePage:
    def test_children_sorted_by_order(self):
        page = parse_page(RAW_PAGE)
        assert page.title == "Foo"
        assert page.uid == "foo"
        assert [b.uid for b in page.blocks] == ["b1", "b2"]
        assert [c.uid for c in page.blocks[0].children] == ["c1", "c2"]

    def test_block_fields(self):
        b1 = parse_page(RAW_PAGE).blocks[0]
        assert b1.text == "one"
        assert b1.open is False
        assert b1.refs == ["r"]
        b2 = parse_page(RAW_PAGE).blocks[1]
        assert b2.open is True
        assert b2.children == []

    def test_missing_page(self):
        day = date(2024, 1, 5)
        assert parse_page(None, uid="01-05-2024", day=day) == Page(uid="01-05-2024", date=day)
        assert parse_page({}).blocks == []


class TestParseLinkedRefs:
    def test_grouped_by_source_and_sorted(self):
        rows = [
            ["u1", "t1", "B"],
            ["u2", "t2", "A"],
            ["u3", "t3", "Self"],
            ["bad"],
            "junk",
            ["u4", "t4", "B"],
        ]
        assert parse_linked_refs(rows, "Self") == [
            LinkedRefGroup("A", (LinkedRefBlock("u2", "t2", "A"),)),
            LinkedRefGroup("B", (LinkedRefBlock("u1", "t1", "B"), LinkedRefBlock("u4", "t4", "B"))),
        ]

    def test_no_rows(self):
        assert parse_linked_refs([], "Self") == []


class TestWritePayloads:
    def test_create(self):
        assert CreateBlockWrite("p", 2, "hello").to_payload() == {
            "action": "create-block",
            "location": {"parent-uid": "p", "order": 2},
            "block": {"string": "hello"},
        }
        payload = CreateBlockWrite("p", "last", "hello", uid="tui-1").to_payload()
        assert payload["location"]["order"] == "last"
        assert payload["block"] == {"string": "hello", "uid": "tui-1"}

    def test_update_delete_move(self):
        assert UpdateBlockWrite("b", "x").to_payload() == {
            "action": "update-block",
            "block": {"uid": "b", "string": "x"},
        }
        assert DeleteBlockWrite("b").to_payload() == {
            "action": "delete-block",
            "block": {"uid": "b"},
        }
        assert MoveBlockWrite("b", "p", 0).to_payload() == {
            "action": "move-block",
            "block": {"uid": "b"},
            "location": {"parent-uid": "p", "order": 0},
        }


class TestQueries:
    def test_daily_note_uid(self):
        assert queries.daily_note_uid(date(2024, 1, 5)) == "01-05-2024"

    def test_eids_quote_values(self):
        assert queries.uid_eid("abc") == '[:block/uid "abc"]'
        assert queries.title_eid('say "hi"') == '[:node/title "say \\"hi\\""]'

    def test_pulls(self):
        eid, selector = queries.pull_daily_note(date(2024, 1, 5))
        assert eid == '[:block/uid "01-05-2024"]'
        assert selector == queries.PAGE_SELECTOR
        assert queries.pull_block_text("x")[1] == queries.BLOCK_TEXT_SELECTOR
        assert queries.linked_refs("Foo") == (queries.LINKED_REFS_QUERY, ["Foo"])
