"""
Layout Service – Normalizer, Overlap Resolver and Compactor.

Rule-based placement over the page grid: clamp blocks into bounds, give
unplaced blocks the first free slot, relocate intruders after a move, and
repack everything in reading order after a delete or a span change.
Every method is a pure transform: it returns a new list and never mutates
the blocks it was given.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from bentogrid.config import GridSettings
from bentogrid.models.schemas import Block, GridPosition, ValidationReport
from bentogrid.services.geometry import (
    block_cells,
    find_overlapping_pairs,
    is_within_bounds,
    reading_order_key,
)
from bentogrid.services.placement_service import PlacementService

logger = logging.getLogger(__name__)


class LayoutService:
    """
    Computes valid, non-overlapping positions for page blocks.

    Uses a first-fit row-major placement with the grid width from
    ``GridSettings`` and an unbounded number of rows.
    """

    def __init__(
        self,
        settings: Optional[GridSettings] = None,
        placement: Optional[PlacementService] = None,
    ):
        self.settings = settings or GridSettings()
        self.placement = placement or PlacementService(self.settings)
        self.columns = self.settings.columns

    # ------------------------------------------------------------------
    # Normalizer
    # ------------------------------------------------------------------

    def normalize(self, blocks: list[Block]) -> list[Block]:
        """
        Clamp positioned blocks into the grid and place the rest.

        Algorithm:
        - Every block with coordinates is clamped (column into ``[1, C]``,
          span to the right edge, row span to its bound) and its cells are
          marked occupied.
        - Every block without coordinates, in list order, gets the first
          free slot against the occupancy built so far.
        - Overlaps between already positioned blocks are left for
          ``resolve_overlaps``.
        """
        result = list(blocks)
        occupied: set = set()

        for i, block in enumerate(blocks):
            if block.is_placed:
                fixed = self.clamp(block)
                result[i] = fixed
                occupied |= block_cells(fixed, self.columns)

        for i, block in enumerate(blocks):
            if block.is_placed:
                continue
            sized = self.clamp(block)
            pos = self.placement.find_position(sized, occupied)
            placed = sized.model_copy(update={"grid_column": pos.column, "grid_row": pos.row})
            result[i] = placed
            occupied |= block_cells(placed, self.columns)

        return result

    def clamp(self, block: Block) -> Block:
        """Bring a block's column and spans back inside the grid bounds."""
        update: dict = {}
        col_span = min(max(block.col_span, 1), self.columns)
        row_span = min(max(block.row_span, 1), self.settings.max_row_span)

        if block.is_placed:
            column = min(max(block.grid_column, 1), self.columns)
            row = max(block.grid_row, 1)
            col_span = min(col_span, self.columns - column + 1)
            if column != block.grid_column:
                update["grid_column"] = column
            if row != block.grid_row:
                update["grid_row"] = row

        if col_span != block.col_span:
            update["col_span"] = col_span
        if row_span != block.row_span:
            update["row_span"] = row_span

        if not update:
            return block
        return block.model_copy(update=update)

    # ------------------------------------------------------------------
    # Overlap resolver
    # ------------------------------------------------------------------

    def resolve_overlaps(
        self,
        blocks: list[Block],
        priority_ids: Iterable[str] = (),
    ) -> list[Block]:
        """
        Relocate blocks that intersect a block processed before them.

        Blocks are visited in reading order (ids in *priority_ids* first, so
        a freshly dropped block keeps its spot). A block that is unplaced,
        out of bounds or collides with the occupancy so far moves to the
        first free slot at or below its own row that is also clear of the
        blocks not yet visited; every other block keeps its coordinates.
        The returned list keeps the input order.
        """
        priority = set(priority_ids)
        order = sorted(
            range(len(blocks)),
            key=lambda i: (blocks[i].id not in priority, reading_order_key(blocks[i])),
        )

        result = list(blocks)
        occupied: set = set()

        for k, i in enumerate(order):
            block = blocks[i]
            cells = block_cells(block, self.columns)
            in_conflict = (
                not block.is_placed
                or not is_within_bounds(block, self.columns)
                or not cells.isdisjoint(occupied)
            )
            if in_conflict:
                sized = self.clamp(block)
                # Blocks still waiting their turn keep their cells
                reserved = occupied.union(
                    *(block_cells(blocks[j], self.columns) for j in order[k + 1:])
                )
                pos = self.placement.find_position(sized, reserved, start_row=block.grid_row or 1)
                logger.debug(
                    "Relocating block %s from (%s, %s) to (%d, %d)",
                    block.id, block.grid_column, block.grid_row, pos.column, pos.row,
                )
                block = sized.model_copy(update={"grid_column": pos.column, "grid_row": pos.row})
                cells = block_cells(block, self.columns)
                result[i] = block
            occupied |= cells

        return result

    def settle(self, blocks: list[Block], priority_ids: Iterable[str] = ()) -> list[Block]:
        """Normalize, then resolve overlaps: the standard mutation pipeline."""
        return self.resolve_overlaps(self.normalize(blocks), priority_ids)

    # ------------------------------------------------------------------
    # Compactor
    # ------------------------------------------------------------------

    def reflow(self, blocks: list[Block]) -> list[Block]:
        """
        Repack all blocks from the top-left in their current reading order.

        Algorithm:
        - Sort by reading order (unplaced blocks last, in list order) and
          strip coordinates.
        - Place each block at the first free slot at or after the slot of
          the block placed before it, so no block overtakes its
          predecessor.
        - The output list is therefore already in reading order, and a
          second reflow replays the same placements.
        """
        occupied: set = set()
        cursor = GridPosition(column=1, row=1)
        result = []
        for block in sorted(blocks, key=reading_order_key):
            sized = self.clamp(block.model_copy(update={"grid_column": None, "grid_row": None}))
            cursor = self.placement.find_position_after(sized, occupied, cursor)
            placed = sized.model_copy(update={"grid_column": cursor.column, "grid_row": cursor.row})
            occupied |= block_cells(placed, self.columns)
            result.append(placed)
        return result

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def validate(self, blocks: list[Block]) -> ValidationReport:
        """Report overlaps, bound violations and unplaced blocks without fixing them."""
        pairs = find_overlapping_pairs(blocks, self.columns)
        out_of_bounds = [
            b.id for b in blocks
            if not is_within_bounds(b, self.columns) or b.row_span > self.settings.max_row_span
        ]
        unplaced = [b.id for b in blocks if not b.is_placed]
        return ValidationReport(
            valid=not (pairs or out_of_bounds or unplaced),
            overlaps=pairs,
            out_of_bounds=out_of_bounds,
            unplaced=unplaced,
        )

    def row_count(self, blocks: list[Block]) -> int:
        """Number of grid rows the placed blocks reach down to."""
        return max(
            (b.grid_row + b.row_span - 1 for b in blocks if b.is_placed),
            default=0,
        )

    def reading_order(self, blocks: list[Block]) -> list[Block]:
        """Blocks sorted top row first, then left to right (unplaced last)."""
        return sorted(blocks, key=reading_order_key)
