"""
Geometry Primitives – rectangle and occupancy math for the page grid.

Cells are ``(column, row)`` tuples, both 1-based. A block's occupied width is
``min(col_span, columns)`` so an oversized span never leaks past the grid.
"""

from __future__ import annotations

from typing import Iterable

from bentogrid.models.schemas import Block

Cell = tuple[int, int]

# Sort key used for blocks without coordinates (they read last)
_UNPLACED = 999


def effective_width(block: Block, columns: int) -> int:
    return min(block.col_span, columns)


def block_cells(block: Block, columns: int) -> frozenset[Cell]:
    """Cells covered by *block*; empty when it has no coordinates."""
    if not block.is_placed:
        return frozenset()
    width = effective_width(block, columns)
    return frozenset(
        (c, r)
        for c in range(block.grid_column, block.grid_column + width)
        for r in range(block.grid_row, block.grid_row + block.row_span)
    )


def span_cells(column: int, row: int, width: int, height: int) -> Iterable[Cell]:
    for c in range(column, column + width):
        for r in range(row, row + height):
            yield c, r


def occupied_cells(
    blocks: Iterable[Block],
    exclude_ids: Iterable[str] = (),
    columns: int = 9,
) -> set[Cell]:
    """Union of the cells of every placed block not listed in *exclude_ids*."""
    excluded = set(exclude_ids)
    cells: set[Cell] = set()
    for block in blocks:
        if block.id in excluded:
            continue
        cells.update(block_cells(block, columns))
    return cells


def overlaps(a: Block, b: Block, columns: int = 9) -> bool:
    """
    True iff both blocks are placed and their rectangles share area.

    Half-open intervals: a block ending at column 4 and one starting at
    column 4 touch but do not overlap.
    """
    if not a.is_placed or not b.is_placed:
        return False

    a_right = a.grid_column + effective_width(a, columns)
    a_bottom = a.grid_row + a.row_span
    b_right = b.grid_column + effective_width(b, columns)
    b_bottom = b.grid_row + b.row_span

    return not (
        a_right <= b.grid_column
        or a.grid_column >= b_right
        or a_bottom <= b.grid_row
        or a.grid_row >= b_bottom
    )


def find_overlapping_pairs(blocks: list[Block], columns: int = 9) -> list[tuple[str, str]]:
    """Every ``(id_a, id_b)`` pair that overlaps, in list order."""
    pairs: list[tuple[str, str]] = []
    for i, a in enumerate(blocks):
        for b in blocks[i + 1:]:
            if overlaps(a, b, columns):
                pairs.append((a.id, b.id))
    return pairs


def is_within_bounds(block: Block, columns: int) -> bool:
    if not block.is_placed:
        return True
    right_edge = block.grid_column + effective_width(block, columns) - 1
    return block.grid_column >= 1 and block.grid_row >= 1 and right_edge <= columns


def reading_order_key(block: Block) -> tuple[int, int]:
    """Row-major sort key: top row first, then left to right."""
    row = block.grid_row if block.grid_row is not None else _UNPLACED
    col = block.grid_column if block.grid_column is not None else _UNPLACED
    return row, col


def lowest_row(cells: Iterable[Cell]) -> int:
    """Largest row index in *cells*, or 0 for an empty grid."""
    return max((r for _, r in cells), default=0)
