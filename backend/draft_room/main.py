"""FastAPI entry point for the draft room."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import room_config
from .routers import catalog, draft, export

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    from .services.catalog import get_entities, load_sample_catalog
    from .services.draft_session import restore_session
    from .services.state_store import JsonFileStateStore
    if not get_entities():
        loaded = load_sample_catalog()
        if loaded:
            logger.info(f"Auto-loaded {loaded} players from the sample catalog")
    session = restore_session(JsonFileStateStore(room_config.snapshot_path))
    logger.info(f"Room '{room_config.room_id}' ready with {session.state.participant_count} teams")
    yield


app = FastAPI(
    title=room_config.league_name,
    description="Auction-then-snake fantasy football draft",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=room_config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog.router, prefix="/api/catalog", tags=["catalog"])
app.include_router(draft.router, prefix="/api/draft", tags=["draft"])
app.include_router(export.router, prefix="/api/export", tags=["export"])

# WebSocket route for real-time draft updates
from .routers.draft import websocket_endpoint
app.add_api_websocket_route("/ws/draft", websocket_endpoint)


@app.get("/api/health")
def health():
    return {"status": "ok"}
