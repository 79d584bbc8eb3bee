"""
FastAPI backend for sweep replay.

Minimal server for:
- Serving OHLC bars for chart display
- Stepping the liquidity sweep engine bar by bar
- Inspecting live levels, lifecycle events and engine state
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .schemas import BarResponse, BarsResponse
from .routers import sweeps_router
from .routers.cache import reset_cache
from ..data.ohlc_loader import load_bars
from ..liquidity_sweeps.types import Bar

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@dataclass
class AppState:
    """Application state for sweep replay."""
    source_bars: List[Bar]
    data_file: Optional[str] = None


# Global state
state: Optional[AppState] = None

app = FastAPI(
    title="Sweep Replay Server",
    description="Backend for liquidity sweep replay",
    version=VERSION,
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_state() -> AppState:
    """Get the application state."""
    if state is None:
        raise HTTPException(
            status_code=500,
            detail="Application not initialized. Start server with --data flag."
        )
    return state


# ============================================================================
# Core API Endpoints
# ============================================================================


@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "initialized": state is not None,
        "version": VERSION,
    }


@app.get("/api/bars", response_model=BarsResponse)
async def get_bars(
    start: int = Query(0, ge=0, description="First bar index to return"),
    count: Optional[int] = Query(None, ge=1, description="Maximum number of bars to return"),
):
    """Get source bars for chart display."""
    s = get_state()
    end = len(s.source_bars) if count is None else start + count
    return BarsResponse(
        bars=[BarResponse.from_bar(bar) for bar in s.source_bars[start:end]],
        total_bars=len(s.source_bars),
    )


# ============================================================================
# Initialization
# ============================================================================


def init_app(data_file: str) -> AppState:
    """
    Initialize the application with a data file.

    Loads every bar up front and clears any previous replay.

    Args:
        data_file: Path to OHLC CSV data file
    """
    global state

    logger.info(f"Loading data from {data_file}")
    bars = load_bars(data_file)
    state = AppState(source_bars=bars, data_file=data_file)
    reset_cache()
    logger.info(f"Loaded {len(bars)} bars")
    return state


app.include_router(sweeps_router)
