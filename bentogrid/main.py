"""
BentoGrid Engine — FastAPI Application Factory.

Registers the grid controller router and configures CORS, logging,
and lifespan events (grid settings reported on startup).
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bentogrid.config import GridSettings
from bentogrid.controllers.grid_controller import router as grid_router

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

log_level = os.getenv("LOG_LEVEL", "info").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger("bentogrid")


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    - **Startup**: Log the active grid resolution so a misconfigured
      deployment is visible before the first document is migrated.
    - **Shutdown**: Nothing to release; the engine holds no state.
    """
    settings = GridSettings.from_env()
    logger.info(
        "BentoGrid Engine starting: %d columns, max row span %d, grid version %d",
        settings.columns,
        settings.max_row_span,
        settings.current_version,
    )
    yield
    logger.info("BentoGrid Engine shutting down")


# ---------------------------------------------------------------------------
# App instance
# ---------------------------------------------------------------------------

app = FastAPI(
    title="BentoGrid Engine",
    description=(
        "Grid placement and collision-resolution engine for bento-style pages. "
        "Send the current block snapshot with a mutation request and receive "
        "the next snapshot: normalized, overlap-free and compacted."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# CORS – allow all origins during development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(grid_router)


# Root redirect to docs
@app.get("/", include_in_schema=False)
async def root():
    return {"message": "BentoGrid Engine v1.0.0", "docs": "/docs"}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run() -> None:
    """Serve the app with uvicorn (``bentogrid-server`` console script)."""
    import uvicorn

    uvicorn.run(
        "bentogrid.main:app",
        host=os.getenv("BENTOGRID_HOST", "0.0.0.0"),
        port=int(os.getenv("BENTOGRID_PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    run()
