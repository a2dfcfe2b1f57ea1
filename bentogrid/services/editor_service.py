"""
Editor Service – the mutation pipeline behind every page edit.

Each operation takes the current snapshot and returns the next one:
the requested change is applied, then the Normalizer and Overlap Resolver
run, and size changes or removals are followed by a full reflow. Requests
naming an id that is not on the page return the snapshot unchanged.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from bentogrid.config import GridSettings
from bentogrid.models.schemas import ENGINE_FIELDS, Block, BlockKind, GridPosition, SiteDocument
from bentogrid.services.layout_service import LayoutService
from bentogrid.services.migration_service import MigrationService
from bentogrid.services.resize_service import bring_to_front

logger = logging.getLogger(__name__)


def _new_block_id() -> str:
    return uuid.uuid4().hex[:9]


def _index_of(blocks: list[Block], block_id: str) -> Optional[int]:
    return next((i for i, b in enumerate(blocks) if b.id == block_id), None)


class EditorService:
    """Applies add / move / swap / reorder / update / delete requests."""

    def __init__(
        self,
        settings: Optional[GridSettings] = None,
        layout: Optional[LayoutService] = None,
        migration: Optional[MigrationService] = None,
    ):
        self.settings = settings or GridSettings()
        self.layout = layout or LayoutService(self.settings)
        self.migration = migration or MigrationService(self.settings)

    def default_spans(self, kind: BlockKind) -> tuple[int, int]:
        """``(col_span, row_span)`` a new block of *kind* starts with."""
        if kind == BlockKind.SPACER:
            return self.settings.columns, 1
        if kind == BlockKind.SOCIAL_ICON:
            return 1, 1
        return min(3, self.settings.columns), 3

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_block(
        self,
        blocks: list[Block],
        kind: BlockKind,
        hint: Optional[GridPosition] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> list[Block]:
        """
        Append a new block of *kind*.

        With a *hint* (the empty cell the user clicked) the block claims
        that cell when it is free; otherwise it takes the first free slot.
        Existing blocks never move to make room for it. Payload keys that
        name engine-owned fields (id, kind, coordinates, spans) are dropped.
        """
        payload = payload or {}
        ignored = sorted(ENGINE_FIELDS.intersection(payload))
        if ignored:
            logger.warning("Ignoring engine-owned payload field(s) on new block: %s", ", ".join(ignored))
            payload = {k: v for k, v in payload.items() if k not in ENGINE_FIELDS}

        col_span, row_span = self.default_spans(kind)
        block = Block(
            id=_new_block_id(),
            kind=kind,
            col_span=col_span,
            row_span=row_span,
            grid_column=hint.column if hint else None,
            grid_row=hint.row if hint else None,
            **payload,
        )
        result = self.layout.settle(
            list(blocks) + [block], priority_ids=[b.id for b in blocks]
        )
        logger.debug("Added %s block %s", kind.value, block.id)
        return result

    def move_block(
        self, blocks: list[Block], block_id: str, column: int, row: int
    ) -> list[Block]:
        """Drop *block_id* on ``(column, row)``; blocks it lands on relocate."""
        index = _index_of(blocks, block_id)
        if index is None:
            return list(blocks)
        moved = blocks[index].model_copy(update={"grid_column": column, "grid_row": row})
        result = bring_to_front(list(blocks), index, moved)
        return self.layout.settle(result, priority_ids=[block_id])

    def swap_blocks(
        self, blocks: list[Block], source_id: str, target_id: str
    ) -> list[Block]:
        """Drop one block onto another: the source takes the target's cell."""
        if source_id == target_id:
            return list(blocks)
        target_index = _index_of(blocks, target_id)
        if _index_of(blocks, source_id) is None or target_index is None:
            return list(blocks)
        target = blocks[target_index]
        if not target.is_placed:
            return list(blocks)
        return self.move_block(blocks, source_id, target.grid_column, target.grid_row)

    def reorder_block(
        self, blocks: list[Block], block_id: str, slot_index: int
    ) -> list[Block]:
        """
        Move *block_id* to list position *slot_index* and repack so the
        reading order follows the new list order.
        """
        source_index = _index_of(blocks, block_id)
        if source_index is None:
            return list(blocks)

        ordered = self.layout.reading_order(blocks)
        source_index = _index_of(ordered, block_id)
        moved = ordered.pop(source_index)
        # Slot indices count the moved block's old position
        adjusted = slot_index - 1 if source_index < slot_index else slot_index
        adjusted = min(max(adjusted, 0), len(ordered))
        ordered.insert(adjusted, moved)

        stripped = [b.model_copy(update={"grid_column": None, "grid_row": None}) for b in ordered]
        return self.layout.normalize(stripped)

    def update_block(self, blocks: list[Block], block: Block) -> list[Block]:
        """Replace a block by id; a span change repacks the page."""
        index = _index_of(blocks, block.id)
        if index is None:
            return list(blocks)
        previous = blocks[index]
        result = list(blocks)
        result[index] = block

        if (block.col_span, block.row_span) != (previous.col_span, previous.row_span):
            return self.layout.reflow(result)
        return self.layout.settle(result)

    def delete_block(self, blocks: list[Block], block_id: str) -> list[Block]:
        """Remove *block_id* and close the gap it leaves."""
        remaining = [b for b in blocks if b.id != block_id]
        if len(remaining) == len(blocks):
            return list(blocks)
        return self.layout.reflow(remaining)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def import_document(self, doc: SiteDocument) -> SiteDocument:
        """Migrate a stored document if needed, then normalize and resolve it."""
        migrated = self.migration.migrate_document(doc)
        blocks = self.layout.settle(migrated.blocks)
        logger.info(
            "Imported document %s: %d block(s), grid version %s -> %s",
            doc.id, len(blocks), doc.grid_version, migrated.grid_version,
        )
        return migrated.model_copy(update={"blocks": blocks})
