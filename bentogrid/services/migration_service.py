"""
Migration Service – rescales block coordinates between grid resolutions.

Version-1 page documents were laid out on a 3-column grid; the current
grid has 9 columns. Migrating multiplies spans by the resolution ratio and
maps each legacy cell onto the top-left of its ratio x ratio square.

Documents that carry an explicit ``gridVersion`` are migrated by version.
Older documents without one are detected with a span heuristic: a block
that is not native to the fine grid and whose spans are not multiples of
the ratio can only come from the coarse grid. Scaled blocks always land on
multiples of the ratio, so running the migration twice changes nothing.
A modern block deliberately sized off that lattice (say 2x2) makes an
unversioned document look legacy; versioned documents are not affected.
"""

from __future__ import annotations

import logging
from typing import Optional

from bentogrid.config import GridSettings
from bentogrid.models.schemas import Block, BlockKind, SiteDocument

logger = logging.getLogger(__name__)

# Kinds that only exist on the fine grid and are never rescaled
_NATIVE_KINDS = frozenset({BlockKind.SOCIAL_ICON})


def scale_ratio(from_columns: int, to_columns: int) -> int:
    """Integer ratio between resolutions, or 1 when no clean upscale exists."""
    if from_columns <= 0 or to_columns <= from_columns or to_columns % from_columns:
        return 1
    return to_columns // from_columns


class MigrationService:
    """Moves block geometry from a coarse grid resolution to a finer one."""

    def __init__(self, settings: Optional[GridSettings] = None):
        self.settings = settings or GridSettings()

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    @staticmethod
    def is_native(block: Block, from_columns: int) -> bool:
        """True for blocks that cannot have been laid out on the coarse grid."""
        return block.kind in _NATIVE_KINDS or block.col_span > from_columns

    def needs_migration(
        self, blocks: list[Block], from_columns: int, to_columns: int
    ) -> bool:
        ratio = scale_ratio(from_columns, to_columns)
        if ratio == 1:
            return False
        return any(
            not self.is_native(b, from_columns)
            and (b.col_span % ratio or b.row_span % ratio)
            for b in blocks
        )

    # ------------------------------------------------------------------
    # Migration
    # ------------------------------------------------------------------

    def migrate(
        self,
        blocks: list[Block],
        from_columns: int,
        to_columns: int,
        force: bool = False,
    ) -> list[Block]:
        """
        Rescale every legacy block from *from_columns* to *to_columns*.

        Without *force* the span heuristic decides whether the list is
        legacy at all; native blocks are never touched.
        """
        ratio = scale_ratio(from_columns, to_columns)
        if ratio == 1:
            return list(blocks)
        if not force and not self.needs_migration(blocks, from_columns, to_columns):
            return list(blocks)

        migrated = [
            b if self.is_native(b, from_columns) else self._scale(b, ratio, to_columns)
            for b in blocks
        ]
        logger.info(
            "Migrated %d block(s) from %d to %d columns",
            sum(1 for b in blocks if not self.is_native(b, from_columns)),
            from_columns, to_columns,
        )
        return migrated

    def migrate_document(self, doc: SiteDocument) -> SiteDocument:
        """Bring a stored document to the current grid version."""
        current = self.settings.current_version
        from_cols = self.settings.legacy_columns
        to_cols = self.settings.columns

        if doc.grid_version is None:
            blocks = self.migrate(doc.blocks, from_cols, to_cols)
        elif doc.grid_version < current:
            blocks = self.migrate(doc.blocks, from_cols, to_cols, force=True)
        else:
            blocks = list(doc.blocks)

        return doc.model_copy(update={"blocks": blocks, "grid_version": current})

    def _scale(self, block: Block, ratio: int, to_columns: int) -> Block:
        # Largest multiples of the ratio that still fit the new bounds
        max_row_span = max(self.settings.max_row_span // ratio * ratio, ratio)
        last_column = to_columns - ratio + 1

        col_span = max(block.col_span, 1) * ratio
        row_span = min(max(block.row_span, 1) * ratio, max_row_span)
        update: dict = {"row_span": row_span}

        if block.is_placed:
            column = min((max(block.grid_column, 1) - 1) * ratio + 1, last_column)
            row = (max(block.grid_row, 1) - 1) * ratio + 1
            col_span = min(col_span, to_columns - column + 1)
            update.update(grid_column=column, grid_row=row)
        else:
            col_span = min(col_span, to_columns)

        update["col_span"] = col_span
        return block.model_copy(update=update)
