"""
Placement Service – first-fit search for a free rectangle on the grid.

Scans row-major (top row first, then left to right) and returns the first
slot where every cell the block needs is free. The scan is bounded; when the
bound is exhausted the block is appended below the searched area instead of
failing, since the grid has no bottom.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Optional

from bentogrid.config import GridSettings
from bentogrid.models.schemas import Block, GridPosition
from bentogrid.services.geometry import Cell, lowest_row, span_cells

logger = logging.getLogger(__name__)


def append_fallback(
    start_row: int, search_rows: int, occupied: AbstractSet[Cell]
) -> GridPosition:
    """
    Position used when the bounded scan found no room.

    Column 1, on the first row past both the searched window and every
    occupied cell, which is free by construction.
    """
    row = max(start_row + search_rows, lowest_row(occupied) + 1)
    return GridPosition(column=1, row=row)


class PlacementService:
    """Finds the lowest row-major free slot for a block of a given span."""

    def __init__(self, settings: Optional[GridSettings] = None):
        self._settings = settings or GridSettings()

    @property
    def columns(self) -> int:
        return self._settings.columns

    def find_position(
        self,
        block: Block,
        occupied: AbstractSet[Cell],
        start_row: int = 1,
    ) -> GridPosition:
        """
        Return the first free ``(column, row)`` for *block* at or below
        *start_row*, wrapping to the rows above it, then falling back to
        ``append_fallback``. Never reports "no room".
        """
        start_row = max(start_row, 1)
        width = max(1, min(block.col_span, self.columns))
        height = max(1, block.row_span)
        limit = self._settings.search_rows

        found = self._scan(range(start_row, start_row + limit), width, height, occupied)
        if found is None and start_row > 1:
            found = self._scan(range(1, start_row), width, height, occupied)
        if found is not None:
            return found

        fallback = append_fallback(start_row, limit, occupied)
        logger.warning(
            "No free %dx%d slot within %d rows of row %d for block %s; appending at row %d",
            width, height, limit, start_row, block.id, fallback.row,
        )
        return fallback

    def find_position_after(
        self,
        block: Block,
        occupied: AbstractSet[Cell],
        cursor: GridPosition,
    ) -> GridPosition:
        """
        First free slot at or after *cursor* in row-major order.

        The rest of the cursor's row is tried from its column, then the
        rows below it from column 1. Slots before the cursor are never
        considered, so successive calls with the last returned slot as the
        cursor hand out positions in reading order.
        """
        width = max(1, min(block.col_span, self.columns))
        height = max(1, block.row_span)
        limit = self._settings.search_rows
        row = max(cursor.row, 1)

        for column in range(max(cursor.column, 1), self.columns - width + 2):
            if self.fits(column, row, width, height, occupied):
                return GridPosition(column=column, row=row)
        found = self._scan(range(row + 1, row + limit), width, height, occupied)
        if found is not None:
            return found

        fallback = append_fallback(row, limit, occupied)
        logger.warning(
            "No free %dx%d slot within %d rows after row %d for block %s; appending at row %d",
            width, height, limit, row, block.id, fallback.row,
        )
        return fallback

    def fits(
        self,
        column: int,
        row: int,
        width: int,
        height: int,
        occupied: AbstractSet[Cell],
    ) -> bool:
        if column < 1 or row < 1 or column + width - 1 > self.columns:
            return False
        return all(cell not in occupied for cell in span_cells(column, row, width, height))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _scan(
        self,
        rows: range,
        width: int,
        height: int,
        occupied: AbstractSet[Cell],
    ) -> Optional[GridPosition]:
        for row in rows:
            for column in range(1, self.columns - width + 2):
                if self.fits(column, row, width, height, occupied):
                    return GridPosition(column=column, row=row)
        return None
