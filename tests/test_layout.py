"""
Tests for LayoutService — normalization, overlap resolution, reflow.
"""

import random

import pytest

from bentogrid.config import GridSettings
from bentogrid.models.schemas import Block
from bentogrid.services.geometry import find_overlapping_pairs, is_within_bounds
from bentogrid.services.layout_service import LayoutService


def _pos(blocks):
    return {b.id: (b.grid_column, b.grid_row) for b in blocks}


def _random_blocks(seed, count=30, max_row_span=5):
    rng = random.Random(seed)
    blocks = []
    for i in range(count):
        placed = rng.random() < 0.7
        blocks.append(Block(
            id=f"b{i}",
            grid_column=rng.randint(-1, 11) if placed else None,
            grid_row=rng.randint(0, 12) if placed else None,
            col_span=rng.randint(0, 12),
            row_span=rng.randint(1, max_row_span),
        ))
    return blocks


@pytest.fixture
def layout(settings):
    return LayoutService(settings)


class TestNormalize:
    def test_auto_places_in_list_order(self, layout, make_block):
        blocks = [
            make_block("a"),
            make_block("b"),
            make_block("c", col_span=9, row_span=1),
        ]
        result = layout.normalize(blocks)
        # Columns 1-6 are taken down to row 3, so the full-width block starts at row 4
        assert _pos(result) == {"a": (1, 1), "b": (4, 1), "c": (1, 4)}

    def test_positioned_blocks_claim_cells_first(self, layout, make_block):
        blocks = [make_block("free"), make_block("fixed", 1, 1)]
        result = layout.normalize(blocks)
        assert _pos(result) == {"free": (4, 1), "fixed": (1, 1)}
        assert [b.id for b in result] == ["free", "fixed"]

    def test_clamps_out_of_range_geometry(self, layout, make_block):
        result = layout.normalize([
            make_block("far_right", 12, 1),
            make_block("too_wide", 8, 5, col_span=5),
            make_block("too_tall", 1, 10, col_span=1, row_span=80),
            make_block("negative", 0, 0, col_span=0, row_span=0),
        ])
        by_id = {b.id: b for b in result}
        assert (by_id["far_right"].grid_column, by_id["far_right"].col_span) == (9, 1)
        assert by_id["too_wide"].col_span == 2
        assert by_id["too_tall"].row_span == 50
        neg = by_id["negative"]
        assert (neg.grid_column, neg.grid_row, neg.col_span, neg.row_span) == (1, 1, 1, 1)

    def test_valid_block_is_returned_untouched(self, layout, make_block):
        block = make_block("a", 1, 1)
        assert layout.normalize([block])[0] is block

    def test_input_is_not_mutated(self, layout, make_block):
        blocks = [make_block("a"), make_block("b", 12, 1)]
        layout.normalize(blocks)
        assert blocks[0].grid_column is None
        assert blocks[1].grid_column == 12

    @pytest.mark.parametrize("seed", range(5))
    def test_conservation_and_bounds(self, layout, seed):
        blocks = _random_blocks(seed)
        result = layout.normalize(blocks)
        assert [b.id for b in result] == [b.id for b in blocks]
        for b in result:
            assert b.is_placed
            assert b.grid_column >= 1
            assert b.grid_column + min(b.col_span, 9) - 1 <= 9


class TestResolveOverlaps:
    def test_intruder_moves_to_next_free_slot(self, layout, make_block):
        a = make_block("a", 1, 1)
        b = make_block("b", 2, 2)
        result = layout.resolve_overlaps([a, b])
        assert result[0] is a
        assert _pos(result)["b"] == (4, 2)
        assert find_overlapping_pairs(result) == []

    def test_non_conflicting_blocks_keep_coordinates(self, layout, make_block):
        blocks = [
            make_block("a", 1, 1),
            make_block("x", 7, 1),
            make_block("moved", 2, 2),
        ]
        result = layout.resolve_overlaps(blocks)
        assert _pos(result)["a"] == (1, 1)
        assert _pos(result)["x"] == (7, 1)

    def test_relocation_avoids_blocks_not_yet_visited(self, layout, make_block):
        blocks = [
            make_block("a", 1, 1),
            make_block("moved", 2, 2, row_span=4),
            make_block("x", 4, 5),
        ]
        result = layout.resolve_overlaps(blocks)
        assert _pos(result) == {"a": (1, 1), "moved": (7, 2), "x": (4, 5)}

    def test_priority_block_keeps_its_spot(self, layout, make_block):
        blocks = [make_block("a", 1, 1), make_block("dropped", 2, 2)]
        result = layout.resolve_overlaps(blocks, priority_ids=["dropped"])
        assert _pos(result)["dropped"] == (2, 2)
        assert find_overlapping_pairs(result) == []

    def test_places_unplaced_blocks(self, layout, make_block):
        result = layout.resolve_overlaps([make_block("a", 1, 1), make_block("b")])
        assert _pos(result)["b"] == (4, 1)

    def test_keeps_input_order(self, layout, make_block):
        blocks = [make_block("low", 1, 9), make_block("top", 1, 1)]
        assert [b.id for b in layout.resolve_overlaps(blocks)] == ["low", "top"]

    @pytest.mark.parametrize("seed", range(10))
    def test_no_overlap_after_settle(self, layout, seed):
        blocks = _random_blocks(seed)
        result = layout.settle(blocks)
        assert find_overlapping_pairs(result) == []
        assert sorted(b.id for b in result) == sorted(b.id for b in blocks)
        assert all(is_within_bounds(b, 9) for b in result)

    def test_stability_under_unrelated_move(self, layout, make_block):
        before = [
            make_block("a", 1, 1),
            make_block("b", 4, 1),
            make_block("c", 7, 1),
            make_block("d", 1, 4),
        ]
        # "d" is dropped onto "b"; "a" and "c" never overlapped anything
        moved = before[:3] + [before[3].model_copy(update={"grid_column": 4, "grid_row": 2})]
        result = layout.resolve_overlaps(moved)
        assert _pos(result)["a"] == (1, 1)
        assert _pos(result)["c"] == (7, 1)
        assert find_overlapping_pairs(result) == []


class TestReflow:
    def test_removes_gap_left_by_deletion(self, layout, make_block):
        # The block that sat at (1, 2) has already been removed
        result = layout.reflow([make_block("r", 1, 5)])
        assert _pos(result) == {"r": (1, 1)}

    def test_packs_in_reading_order(self, layout, make_block):
        blocks = [make_block("b", 1, 7), make_block("a", 1, 1, row_span=1)]
        result = layout.reflow(blocks)
        assert [b.id for b in result] == ["a", "b"]
        assert _pos(result) == {"a": (1, 1), "b": (4, 1)}

    def test_span_change_pushes_sibling_below(self, layout, make_block):
        blocks = [make_block("s", 4, 1, col_span=6), make_block("x", 1, 1, col_span=9)]
        result = layout.reflow(blocks)
        assert _pos(result) == {"x": (1, 1), "s": (1, 4)}

    def test_idempotent_on_mixed_spans(self, layout, make_block):
        blocks = [
            make_block("a", 1, 1, col_span=3, row_span=1),
            make_block("b", 4, 1, col_span=9, row_span=1),
            make_block("c", 1, 3, col_span=3, row_span=2),
            make_block("d"),
        ]
        once = layout.reflow(blocks)
        assert _pos(layout.reflow(once)) == _pos(once)

    @pytest.mark.parametrize("seed", range(5))
    def test_idempotent_on_random_rows(self, layout, seed):
        once = layout.reflow(_random_blocks(seed, max_row_span=1))
        twice = layout.reflow(once)
        assert _pos(twice) == _pos(once)
        assert [b.id for b in twice] == [b.id for b in once]

    def test_later_block_never_overtakes_earlier(self, layout, make_block):
        blocks = [
            make_block("a", 1, 1, col_span=3, row_span=1),
            make_block("b", 1, 2, col_span=9, row_span=1),
            make_block("c", 1, 3, col_span=3, row_span=1),
        ]
        result = layout.reflow(blocks)
        # "c" fits at (4, 1) but would then read before "b"
        assert _pos(result) == {"a": (1, 1), "b": (1, 2), "c": (1, 3)}

    def test_idempotent_with_tall_blocks(self, layout, make_block):
        blocks = [
            make_block("a", 1, 1, col_span=6, row_span=5),
            make_block("b", 7, 1, col_span=3, row_span=1),
            make_block("c", 7, 2, col_span=2, row_span=4),
            make_block("d", 1, 6, col_span=9, row_span=2),
            make_block("e", 9, 2, col_span=1, row_span=1),
        ]
        once = layout.reflow(blocks)
        twice = layout.reflow(once)
        assert _pos(twice) == _pos(once)
        assert [b.id for b in twice] == [b.id for b in once]

    @pytest.mark.parametrize("seed", range(20))
    def test_idempotent_on_random_spans(self, layout, seed):
        once = layout.reflow(_random_blocks(seed, count=12, max_row_span=5))
        twice = layout.reflow(once)
        assert _pos(twice) == _pos(once)
        assert [b.id for b in twice] == [b.id for b in once]
        assert find_overlapping_pairs(twice) == []

    @pytest.mark.parametrize("seed", range(20))
    def test_keeps_relative_reading_order(self, layout, seed):
        blocks = _random_blocks(seed, count=12, max_row_span=5)
        before = [b.id for b in layout.reading_order(blocks)]
        result = layout.reflow(blocks)
        assert [b.id for b in result] == before
        assert [b.id for b in layout.reading_order(result)] == before

    def test_small_grid(self, make_block):
        layout = LayoutService(GridSettings(columns=3))
        result = layout.reflow([make_block("a", 1, 4, col_span=2, row_span=1),
                                make_block("b", 1, 9, col_span=2, row_span=1)])
        assert _pos(result) == {"a": (1, 1), "b": (1, 2)}


class TestInspection:
    def test_validate_reports_problems(self, layout, make_block):
        report = layout.validate([
            make_block("a", 1, 1),
            make_block("b", 2, 2),
            make_block("c", 8, 1),
            make_block("d"),
        ])
        assert not report.valid
        assert report.overlaps == [("a", "b")]
        assert report.out_of_bounds == ["c"]
        assert report.unplaced == ["d"]

    def test_validate_clean_layout(self, layout, make_block):
        assert layout.validate(layout.settle([make_block("a"), make_block("b")])).valid

    def test_row_count(self, layout, make_block):
        assert layout.row_count([]) == 0
        assert layout.row_count([make_block("a", 1, 2), make_block("b")]) == 4
