"""
Pydantic schemas shared by the engine services, the repository and the API.

Python attributes are snake_case; the persisted / wire JSON keeps the
camelCase keys of the page document (``gridColumn``, ``colSpan`` ...).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BlockKind(str, Enum):
    LINK = "LINK"
    TEXT = "TEXT"
    MEDIA = "MEDIA"
    SOCIAL = "SOCIAL"
    SOCIAL_ICON = "SOCIAL_ICON"   # icon-only block, exists only on the fine grid
    MAP = "MAP"
    SPACER = "SPACER"


class Block(_CamelModel):
    """
    A rectangle on the page grid.

    ``grid_column`` / ``grid_row`` are 1-based and both ``None`` for a block
    that still needs auto-placement. Kind-specific payload (title, content,
    colours ...) is kept as extra fields and never inspected by the engine.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    id: str
    kind: BlockKind = Field(
        default=BlockKind.LINK,
        validation_alias=AliasChoices("kind", "type"),
    )
    grid_column: Optional[int] = None
    grid_row: Optional[int] = None
    col_span: int = 1
    row_span: int = 1
    paint_order: Optional[int] = None

    @property
    def is_placed(self) -> bool:
        return self.grid_column is not None and self.grid_row is not None


# Block fields (and their JSON aliases) a caller payload may not override
ENGINE_FIELDS = frozenset(
    {name for name in Block.model_fields}
    | {to_camel(name) for name in Block.model_fields}
    | {"type"}
)


class GridPosition(_CamelModel):
    """Top-left cell of a placement."""
    column: int
    row: int


class SiteDocument(_CamelModel):
    """Persisted page document: blocks plus the grid format version."""
    id: Optional[str] = None
    blocks: list[Block] = Field(default_factory=list)
    grid_version: Optional[int] = None
    profile: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / response bodies
# ---------------------------------------------------------------------------

class BlockListRequest(_CamelModel):
    blocks: list[Block]


class LayoutResponse(_CamelModel):
    blocks: list[Block]
    rows: int = 0   # grid rows the placed blocks reach down to


class ResizeRequest(_CamelModel):
    blocks: list[Block]
    block_id: str
    col_span: int
    row_span: int
    commit: bool = True


class MigrateRequest(_CamelModel):
    blocks: list[Block]
    from_columns: int = 3
    to_columns: int = 9


class FindPositionRequest(_CamelModel):
    block: Block
    blocks: list[Block] = Field(default_factory=list)
    start_row: int = 1


class AddBlockRequest(_CamelModel):
    blocks: list[Block]
    kind: BlockKind
    grid_column: Optional[int] = None
    grid_row: Optional[int] = None
    payload: dict[str, Any] = Field(default_factory=dict)


class MoveBlockRequest(_CamelModel):
    blocks: list[Block]
    block_id: str
    grid_column: int
    grid_row: int


class SwapBlocksRequest(_CamelModel):
    blocks: list[Block]
    source_id: str
    target_id: str


class ReorderBlockRequest(_CamelModel):
    blocks: list[Block]
    block_id: str
    slot_index: int


class DeleteBlockRequest(_CamelModel):
    blocks: list[Block]
    block_id: str


class ValidationReport(_CamelModel):
    """Geometry problems found in a block list (nothing is corrected)."""
    valid: bool
    overlaps: list[tuple[str, str]] = Field(default_factory=list)
    out_of_bounds: list[str] = Field(default_factory=list)
    unplaced: list[str] = Field(default_factory=list)
