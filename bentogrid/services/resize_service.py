"""
Resize Service – span changes for a single block, plus the interactive
resize session that drives them from pointer samples.

``resize`` is cheap and never repacks; only committing a session (or
calling ``commit`` directly) runs the full reflow.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from bentogrid.config import GridSettings
from bentogrid.models.schemas import Block
from bentogrid.services.layout_service import LayoutService

logger = logging.getLogger(__name__)


class ResizeSessionError(RuntimeError):
    """Raised when a resize session is driven out of order."""


class ResizeState(str, Enum):
    IDLE = "idle"
    SIZING = "sizing"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


def bring_to_front(blocks: list[Block], index: int, block: Block) -> list[Block]:
    """Move *block* (replacing ``blocks[index]``) to the end of the list, topmost."""
    top = max((b.paint_order or 0 for b in blocks), default=0)
    raised = block.model_copy(update={"paint_order": top + 1})
    return blocks[:index] + blocks[index + 1:] + [raised]


class ResizeService:
    """Applies span changes to one block while keeping it inside the grid."""

    def __init__(
        self,
        settings: Optional[GridSettings] = None,
        layout: Optional[LayoutService] = None,
    ):
        self.settings = settings or GridSettings()
        self.layout = layout or LayoutService(self.settings)

    def resize(
        self,
        blocks: list[Block],
        block_id: str,
        col_span: int,
        row_span: int,
    ) -> list[Block]:
        """
        Set the spans of *block_id*, clamped so it stays inside the grid.

        Unknown ids, unplaced targets and unchanged spans return the list
        as given. A changed block moves to the end of the list so it
        renders above the siblings it now covers.
        """
        index = next((i for i, b in enumerate(blocks) if b.id == block_id), None)
        if index is None:
            return list(blocks)
        target = blocks[index]
        if not target.is_placed:
            return list(blocks)

        max_cols = max(self.settings.columns - target.grid_column + 1, 1)
        new_cols = min(max(col_span, 1), max_cols)
        new_rows = min(max(row_span, 1), self.settings.max_row_span)

        if (new_cols, new_rows) == (target.col_span, target.row_span):
            return list(blocks)

        resized = target.model_copy(update={"col_span": new_cols, "row_span": new_rows})
        return bring_to_front(list(blocks), index, resized)

    def commit(self, blocks: list[Block]) -> list[Block]:
        """Repack around the new footprint once the gesture ends."""
        return self.layout.reflow(blocks)

    @staticmethod
    def span_from_pointer(
        anchor_column: int,
        anchor_row: int,
        pointer_column: int,
        pointer_row: int,
    ) -> tuple[int, int]:
        """Spans reaching from the fixed top-left anchor to the pointer's cell."""
        return (
            max(pointer_column - anchor_column + 1, 1),
            max(pointer_row - anchor_row + 1, 1),
        )


class ResizeSession:
    """
    One interactive resize gesture: idle -> sizing -> committed.

    The committed snapshot is kept apart from the preview so cancelling
    simply hands the original list back.
    """

    def __init__(self, service: ResizeService):
        self._service = service
        self.state = ResizeState.IDLE
        self.block_id: Optional[str] = None
        self._committed: list[Block] = []
        self._preview: list[Block] = []
        self._anchor: tuple[int, int] = (1, 1)

    @property
    def preview(self) -> list[Block]:
        return list(self._preview)

    def begin(self, blocks: list[Block], block_id: str) -> bool:
        if self.state == ResizeState.SIZING:
            raise ResizeSessionError("A resize is already in progress")
        target = next((b for b in blocks if b.id == block_id), None)
        if target is None or not target.is_placed:
            return False

        self.block_id = block_id
        self._committed = list(blocks)
        self._preview = list(blocks)
        self._anchor = (target.grid_column, target.grid_row)
        self.state = ResizeState.SIZING
        return True

    def update(self, pointer_column: int, pointer_row: int) -> list[Block]:
        """Recompute spans from one pointer sample; no repack."""
        self._require_sizing()
        cols, rows = self._service.span_from_pointer(
            *self._anchor, pointer_column, pointer_row
        )
        self._preview = self._service.resize(self._preview, self.block_id, cols, rows)
        return self.preview

    def commit(self) -> list[Block]:
        self._require_sizing()
        result = self._service.commit(self._preview)
        self.state = ResizeState.COMMITTED
        logger.debug("Resize of block %s committed", self.block_id)
        return result

    def cancel(self) -> list[Block]:
        self._require_sizing()
        self.state = ResizeState.CANCELLED
        self._preview = list(self._committed)
        return list(self._committed)

    def _require_sizing(self) -> None:
        if self.state != ResizeState.SIZING:
            raise ResizeSessionError(f"No resize in progress (state: {self.state.value})")
