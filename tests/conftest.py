"""
Shared fixtures: grid settings and a compact block factory.
"""

import pytest

from bentogrid.config import GridSettings
from bentogrid.models.schemas import Block, BlockKind


@pytest.fixture
def settings():
    return GridSettings()


@pytest.fixture
def make_block():
    """
    Build a block from ``(id, col, row, col_span, row_span)``.
    Pass ``None`` for col/row to get an unplaced block.
    """
    def _make(block_id, col=None, row=None, col_span=3, row_span=3, kind=BlockKind.LINK, **extra):
        return Block(
            id=block_id,
            kind=kind,
            grid_column=col,
            grid_row=row,
            col_span=col_span,
            row_span=row_span,
            **extra,
        )
    return _make
