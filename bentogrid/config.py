"""
Grid Settings – environment-driven engine configuration.

All engine services take a ``GridSettings`` instance; the HTTP layer builds
one per request from the environment so deployments can change the grid
resolution without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class GridSettings:
    """Geometry and format constants shared by every engine service."""
    columns: int = 9             # current grid resolution
    max_row_span: int = 50       # upper bound on a block's height
    search_rows: int = 200       # bounded first-fit scan depth
    current_version: int = 2     # gridVersion written to persisted documents
    legacy_columns: int = 3      # resolution of version-1 documents

    @classmethod
    def from_env(cls) -> "GridSettings":
        return cls(
            columns=int(os.getenv("BENTOGRID_COLUMNS", "9")),
            max_row_span=int(os.getenv("BENTOGRID_MAX_ROW_SPAN", "50")),
            search_rows=int(os.getenv("BENTOGRID_SEARCH_ROWS", "200")),
            current_version=int(os.getenv("BENTOGRID_GRID_VERSION", "2")),
            legacy_columns=int(os.getenv("BENTOGRID_LEGACY_COLUMNS", "3")),
        )


def data_dir() -> Path:
    """Root directory of the JSON document store."""
    return Path(os.getenv("BENTOGRID_DATA_DIR", "/app/data/documents"))
