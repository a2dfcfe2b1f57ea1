"""
Grid Controller – API route definitions.

Thin HTTP wrappers around the layout engine: every route takes the
caller's current block snapshot, runs one pure transform and returns the
next snapshot. Document routes add persistence around the same pipeline.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from bentogrid.config import GridSettings
from bentogrid.models.schemas import (
    AddBlockRequest,
    Block,
    BlockListRequest,
    DeleteBlockRequest,
    FindPositionRequest,
    GridPosition,
    LayoutResponse,
    MigrateRequest,
    MoveBlockRequest,
    ReorderBlockRequest,
    ResizeRequest,
    SiteDocument,
    SwapBlocksRequest,
    ValidationReport,
)
from bentogrid.repository.document_repository import (
    DocumentNotFoundError,
    DocumentRepository,
    InvalidDocumentError,
    InvalidDocumentIdError,
)
from bentogrid.services.editor_service import EditorService
from bentogrid.services.geometry import occupied_cells
from bentogrid.services.layout_service import LayoutService
from bentogrid.services.migration_service import MigrationService
from bentogrid.services.placement_service import PlacementService
from bentogrid.services.resize_service import ResizeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["grid"])


# ---------------------------------------------------------------------------
# Dependency injection helpers
# ---------------------------------------------------------------------------

def _get_settings() -> GridSettings:
    return GridSettings.from_env()


def _get_layout_service(settings: GridSettings = Depends(_get_settings)) -> LayoutService:
    return LayoutService(settings)


def _get_placement_service(settings: GridSettings = Depends(_get_settings)) -> PlacementService:
    return PlacementService(settings)


def _get_resize_service(
    settings: GridSettings = Depends(_get_settings),
    layout: LayoutService = Depends(_get_layout_service),
) -> ResizeService:
    return ResizeService(settings, layout)


def _get_migration_service(settings: GridSettings = Depends(_get_settings)) -> MigrationService:
    return MigrationService(settings)


def _get_editor_service(
    settings: GridSettings = Depends(_get_settings),
    layout: LayoutService = Depends(_get_layout_service),
    migration: MigrationService = Depends(_get_migration_service),
) -> EditorService:
    return EditorService(settings, layout, migration)


def _get_document_repo() -> DocumentRepository:
    return DocumentRepository()


def _respond(layout: LayoutService, blocks: list[Block]) -> LayoutResponse:
    return LayoutResponse(blocks=blocks, rows=layout.row_count(blocks))


# ---------------------------------------------------------------------------
# Endpoints – layout
# ---------------------------------------------------------------------------

@router.get("/health")
async def health(settings: GridSettings = Depends(_get_settings)):
    """Health-check endpoint."""
    return {"status": "ok", "service": "BentoGrid Engine", "columns": settings.columns}


@router.post("/layout/normalize", response_model=LayoutResponse)
async def normalize(
    body: BlockListRequest, layout: LayoutService = Depends(_get_layout_service)
):
    """Clamp positioned blocks into the grid and auto-place the rest."""
    return _respond(layout, layout.normalize(body.blocks))


@router.post("/layout/resolve", response_model=LayoutResponse)
async def resolve(
    body: BlockListRequest, layout: LayoutService = Depends(_get_layout_service)
):
    """Normalize, then relocate every block that overlaps an earlier one."""
    return _respond(layout, layout.settle(body.blocks))


@router.post("/layout/reflow", response_model=LayoutResponse)
async def reflow(
    body: BlockListRequest, layout: LayoutService = Depends(_get_layout_service)
):
    """Repack all blocks from the top-left in reading order."""
    return _respond(layout, layout.reflow(body.blocks))


@router.post("/layout/validate", response_model=ValidationReport)
async def validate(
    body: BlockListRequest, layout: LayoutService = Depends(_get_layout_service)
):
    """Report geometry problems without correcting them."""
    return layout.validate(body.blocks)


@router.post("/layout/resize", response_model=LayoutResponse)
async def resize(
    body: ResizeRequest,
    layout: LayoutService = Depends(_get_layout_service),
    resizer: ResizeService = Depends(_get_resize_service),
):
    """
    Change one block's spans. With ``commit`` (the default) the page is
    reflowed around the new footprint; without it the preview is returned
    as is, for use while the pointer is still moving.
    """
    blocks = resizer.resize(body.blocks, body.block_id, body.col_span, body.row_span)
    if body.commit:
        blocks = resizer.commit(blocks)
    return _respond(layout, blocks)


@router.post("/layout/migrate", response_model=LayoutResponse)
async def migrate(
    body: MigrateRequest,
    layout: LayoutService = Depends(_get_layout_service),
    migration: MigrationService = Depends(_get_migration_service),
):
    """Rescale legacy coordinates, then normalize and resolve the result."""
    blocks = migration.migrate(body.blocks, body.from_columns, body.to_columns)
    return _respond(layout, layout.settle(blocks))


@router.post("/layout/find-position", response_model=GridPosition)
async def find_position(
    body: FindPositionRequest,
    placement: PlacementService = Depends(_get_placement_service),
):
    """First free slot for ``block`` among ``blocks``, at or below ``startRow``."""
    occupied = occupied_cells(body.blocks, exclude_ids=[body.block.id], columns=placement.columns)
    return placement.find_position(body.block, occupied, body.start_row)


# ---------------------------------------------------------------------------
# Endpoints – block mutations
# ---------------------------------------------------------------------------

@router.post("/blocks/add", response_model=LayoutResponse)
async def add_block(
    body: AddBlockRequest,
    layout: LayoutService = Depends(_get_layout_service),
    editor: EditorService = Depends(_get_editor_service),
):
    hint = None
    if body.grid_column is not None and body.grid_row is not None:
        hint = GridPosition(column=body.grid_column, row=body.grid_row)
    blocks = editor.add_block(body.blocks, body.kind, hint, body.payload)
    return _respond(layout, blocks)


@router.post("/blocks/move", response_model=LayoutResponse)
async def move_block(
    body: MoveBlockRequest,
    layout: LayoutService = Depends(_get_layout_service),
    editor: EditorService = Depends(_get_editor_service),
):
    blocks = editor.move_block(body.blocks, body.block_id, body.grid_column, body.grid_row)
    return _respond(layout, blocks)


@router.post("/blocks/swap", response_model=LayoutResponse)
async def swap_blocks(
    body: SwapBlocksRequest,
    layout: LayoutService = Depends(_get_layout_service),
    editor: EditorService = Depends(_get_editor_service),
):
    blocks = editor.swap_blocks(body.blocks, body.source_id, body.target_id)
    return _respond(layout, blocks)


@router.post("/blocks/reorder", response_model=LayoutResponse)
async def reorder_block(
    body: ReorderBlockRequest,
    layout: LayoutService = Depends(_get_layout_service),
    editor: EditorService = Depends(_get_editor_service),
):
    blocks = editor.reorder_block(body.blocks, body.block_id, body.slot_index)
    return _respond(layout, blocks)


@router.post("/blocks/delete", response_model=LayoutResponse)
async def delete_block(
    body: DeleteBlockRequest,
    layout: LayoutService = Depends(_get_layout_service),
    editor: EditorService = Depends(_get_editor_service),
):
    blocks = editor.delete_block(body.blocks, body.block_id)
    return _respond(layout, blocks)


# ---------------------------------------------------------------------------
# Endpoints – documents
# ---------------------------------------------------------------------------

@router.post("/documents/import", response_model=SiteDocument)
async def import_document(
    file: UploadFile = File(...),
    repo: DocumentRepository = Depends(_get_document_repo),
    editor: EditorService = Depends(_get_editor_service),
):
    """
    Upload a page document (.json) → migrated, normalized and stored copy.

    **Pipeline:**
    1. DocumentRepository — parse the uploaded JSON
    2. MigrationService   — rescale legacy coordinates if needed
    3. LayoutService      — normalize and resolve overlaps
    4. DocumentRepository — persist under a new or existing id
    """
    if not file.filename or not file.filename.endswith(".json"):
        raise HTTPException(status_code=400, detail="Please upload a page document (.json)")

    try:
        doc = await repo.read_uploaded_document(file)
    except InvalidDocumentError as e:
        raise HTTPException(status_code=400, detail=f"Unreadable document: {e}")

    try:
        return repo.save(editor.import_document(doc))
    except InvalidDocumentIdError:
        raise HTTPException(status_code=400, detail=f"Invalid document id {doc.id!r}")
    except Exception as e:
        logger.exception("Import failed")
        raise HTTPException(status_code=500, detail=f"Import failed: {str(e)}")


@router.get("/documents/{doc_id}", response_model=SiteDocument)
async def get_document(
    doc_id: str,
    repo: DocumentRepository = Depends(_get_document_repo),
    editor: EditorService = Depends(_get_editor_service),
):
    """Load a stored document, bringing it to the current grid version."""
    try:
        doc = repo.load(doc_id)
    except InvalidDocumentIdError:
        raise HTTPException(status_code=400, detail=f"Invalid document id {doc_id!r}")
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail=f"Document {doc_id} not found")
    except InvalidDocumentError as e:
        raise HTTPException(status_code=500, detail=f"Stored document is corrupt: {e}")
    return editor.import_document(doc)


@router.put("/documents/{doc_id}", response_model=SiteDocument)
async def put_document(
    doc_id: str,
    doc: SiteDocument,
    repo: DocumentRepository = Depends(_get_document_repo),
    editor: EditorService = Depends(_get_editor_service),
):
    """Store the caller's latest snapshot after settling it."""
    try:
        settled = editor.import_document(doc.model_copy(update={"id": doc_id}))
        return repo.save(settled)
    except InvalidDocumentIdError:
        raise HTTPException(status_code=400, detail=f"Invalid document id {doc_id!r}")


@router.delete("/documents/{doc_id}", status_code=204)
async def delete_document(
    doc_id: str, repo: DocumentRepository = Depends(_get_document_repo)
):
    try:
        repo.delete(doc_id)
    except InvalidDocumentIdError:
        raise HTTPException(status_code=400, detail=f"Invalid document id {doc_id!r}")
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail=f"Document {doc_id} not found")
