"""
Document Repository – abstracts page document storage.

Stores each page document as one JSON file under the data directory,
reads uploaded documents, and removes documents on request. The engine
never touches storage; routes call this after a transform has finished.
"""

from __future__ import annotations

import json
import re
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from pydantic import ValidationError

from bentogrid.config import data_dir
from bentogrid.models.schemas import SiteDocument


class DocumentNotFoundError(KeyError):
    """No stored document has the requested id."""


class InvalidDocumentError(ValueError):
    """Uploaded bytes are not a readable page document."""


class InvalidDocumentIdError(ValueError):
    """A document id that cannot be used as a file name."""


_SAFE_ID = re.compile(r"[A-Za-z0-9_-]+")


class DocumentRepository:
    """File-backed store for ``SiteDocument`` JSON files."""

    def __init__(self, root: Optional[Path] = None) -> None:
        self._root = root or data_dir()
        self._root.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @staticmethod
    async def read_uploaded_document(upload: UploadFile) -> SiteDocument:
        """Parse an uploaded JSON page document."""
        return DocumentRepository.parse(await upload.read())

    @staticmethod
    def parse(raw: bytes) -> SiteDocument:
        try:
            return SiteDocument.model_validate_json(raw)
        except ValidationError as e:
            raise InvalidDocumentError(str(e)) from e

    def load(self, doc_id: str) -> SiteDocument:
        path = self._path(doc_id)
        if not path.exists():
            raise DocumentNotFoundError(doc_id)
        return self.parse(path.read_bytes())

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save(self, doc: SiteDocument) -> SiteDocument:
        """Write *doc*, assigning an id when it has none; returns the stored doc."""
        if not doc.id:
            doc = doc.model_copy(update={"id": uuid.uuid4().hex})
        payload = doc.model_dump(mode="json", by_alias=True, exclude_none=True)
        self._path(doc.id).write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return doc

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def delete(self, doc_id: str) -> None:
        path = self._path(doc_id)
        if not path.exists():
            raise DocumentNotFoundError(doc_id)
        path.unlink()

    def _path(self, doc_id: str) -> Path:
        # Ids map one-to-one onto file names inside the store
        if not _SAFE_ID.fullmatch(doc_id):
            raise InvalidDocumentIdError(doc_id)
        return self._root / f"{doc_id}.json"
