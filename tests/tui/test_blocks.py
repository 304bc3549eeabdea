"""Tree mutations on loaded pages."""

from datetime import date

import pytest

from roamline.api.types import Block
from roamline.tui import blocks


def _orders_consistent(block_list: list[Block]) -> bool:
    orders = [b.order for b in block_list]
    if orders != sorted(orders):
        return False
    return all(_orders_consistent(b.children) for b in block_list)


def _uids(block_list: list[Block]) -> list[str]:
    return [b.uid for b in block_list]


class TestLookup:
    def test_find_nested_block(self, sample_state):
        block = blocks.find_block(sample_state.days, "a2")
        assert block is not None
        assert block.text == "a2"

    def test_find_missing_block(self, sample_state):
        assert blocks.find_block(sample_state.days, "nope") is None

    def test_parent_info(self, sample_state):
        assert blocks.find_parent_info(sample_state.days, "a1") == ("a", 0)
        assert blocks.find_parent_info(sample_state.days, "b") == ("p1", 1)
        assert blocks.find_parent_info(sample_state.days, "nope") is None

    def test_find_page_by_title(self, sample_state):
        assert blocks.find_page(sample_state.days, "Page One").uid == "p1"
        assert blocks.find_page(sample_state.days, "Other") is None


class TestMutation:
    def test_update_text(self, sample_state):
        assert blocks.update_text(sample_state.days, "a1", "changed")
        assert blocks.find_block(sample_state.days, "a1").text == "changed"
        assert not blocks.update_text(sample_state.days, "nope", "x")

    def test_remove_takes_subtree_and_keeps_sibling_orders(self, sample_state):
        assert blocks.remove_block(sample_state.days, "a")
        page = sample_state.days[0]
        assert _uids(page.blocks) == ["b", "c"]
        assert [b.order for b in page.blocks] == [1, 2]
        assert blocks.find_block(sample_state.days, "a1") is None
        assert not blocks.remove_block(sample_state.days, "a")

    def test_insert_before_first_sibling_with_greater_or_equal_order(self, sample_state):
        new = Block(uid="x")
        assert blocks.insert_block(sample_state.days, "p1", 1, new)
        page = sample_state.days[0]
        assert _uids(page.blocks) == ["a", "x", "b", "c"]
        assert new.order == 1
        assert _orders_consistent(page.blocks)

    def test_insert_appends_past_last_order(self, sample_state):
        assert blocks.insert_block(sample_state.days, "a", 99, Block(uid="x"))
        assert _uids(blocks.find_block(sample_state.days, "a").children) == ["a1", "a2", "x"]

    def test_insert_keeps_children(self, sample_state, make_block):
        subtree = make_block("x", make_block("x1"))
        assert blocks.insert_block(sample_state.days, "c", 0, subtree)
        assert blocks.find_parent_info(sample_state.days, "x1") == ("x", 0)

    def test_insert_into_unknown_parent(self, sample_state):
        assert not blocks.insert_block(sample_state.days, "nope", 0, Block(uid="x"))
        assert blocks.find_block(sample_state.days, "x") is None

    def test_indent_appends_to_previous_sibling(self, sample_state):
        assert blocks.indent_block(sample_state.days, "b") == ("a", 2)
        a = blocks.find_block(sample_state.days, "a")
        assert _uids(a.children) == ["a1", "a2", "b"]
        assert _uids(sample_state.days[0].blocks) == ["a", "c"]

    def test_indent_under_childless_sibling(self, sample_state):
        assert blocks.indent_block(sample_state.days, "c") == ("b", 0)
        assert blocks.find_parent_info(sample_state.days, "c") == ("b", 0)

    def test_indent_first_sibling_is_refused(self, sample_state):
        assert blocks.indent_block(sample_state.days, "a") is None
        assert blocks.indent_block(sample_state.days, "a1") is None
        assert _uids(sample_state.days[0].blocks) == ["a", "b", "c"]

    def test_dedent_lands_after_former_parent(self, sample_state):
        assert blocks.dedent_block(sample_state.days, "a1") == ("p1", 1)
        page = sample_state.days[0]
        assert _uids(page.blocks) == ["a", "a1", "b", "c"]
        assert _uids(page.blocks[0].children) == ["a2"]
        assert _orders_consistent(page.blocks)

    def test_dedent_top_level_is_refused(self, sample_state):
        assert blocks.dedent_block(sample_state.days, "b") is None
        assert _uids(sample_state.days[0].blocks) == ["a", "b", "c"]

    def test_move_block(self, sample_state):
        assert blocks.move_block(sample_state.days, "c", "a", 0)
        assert _uids(blocks.find_block(sample_state.days, "a").children) == ["c", "a1", "a2"]
        assert blocks.find_block(sample_state.days, "c").order == 0

    @pytest.mark.parametrize("target", ["a", "a1", "nope"])
    def test_move_into_own_subtree_or_unknown_parent_is_refused(self, sample_state, target):
        assert not blocks.move_block(sample_state.days, "a", target, 0)
        page = sample_state.days[0]
        assert _uids(page.blocks) == ["a", "b", "c"]
        assert _uids(page.blocks[0].children) == ["a1", "a2"]

    def test_set_open(self, sample_state):
        assert blocks.set_open(sample_state.days, "a", False)
        assert blocks.find_block(sample_state.days, "a").open is False
        assert not blocks.set_open(sample_state.days, "nope", False)

    def test_orders_stay_consistent_through_a_sequence(self, sample_state):
        days = sample_state.days
        blocks.indent_block(days, "b")
        blocks.indent_block(days, "c")
        blocks.dedent_block(days, "a1")
        blocks.insert_block(days, "a", 0, Block(uid="x"))
        blocks.move_block(days, "a2", "p1", 0)
        blocks.dedent_block(days, "b")
        assert _orders_consistent(days[0].blocks)

    def test_indent_then_dedent_returns_to_original_parent(self, make_block, make_page):
        days = [make_page("p", make_block("A"), make_block("B"), make_block("C"))]
        assert blocks.indent_block(days, "B") == ("A", 0)
        assert blocks.dedent_block(days, "B") == ("p", 1)

        parent_uid, order = blocks.find_parent_info(days, "B")
        assert parent_uid == "p"
        assert order >= 1
        assert _uids(days[0].blocks) == ["A", "B", "C"]
        assert days[0].blocks[0].children == []
        assert _orders_consistent(days[0].blocks)


class TestHelpers:
    @pytest.mark.parametrize(
        "day, title",
        [
            (date(2024, 3, 1), "March 1st, 2024"),
            (date(2024, 3, 2), "March 2nd, 2024"),
            (date(2024, 3, 3), "March 3rd, 2024"),
            (date(2024, 3, 11), "March 11th, 2024"),
            (date(2024, 3, 12), "March 12th, 2024"),
            (date(2024, 3, 13), "March 13th, 2024"),
            (date(2024, 3, 22), "March 22nd, 2024"),
            (date(2024, 12, 31), "December 31st, 2024"),
        ],
    )
    def test_daily_title(self, day, title):
        assert blocks.daily_title(day) == title

    def test_generated_uids_are_unique(self):
        assert len({blocks.generate_uid() for _ in range(100)}) == 100

    def test_snapshot_is_deep(self, sample_state):
        original = blocks.find_block(sample_state.days, "a")
        copy = blocks.snapshot(original)
        copy.children[0].text = "changed"
        assert original.children[0].text == "a1"
