from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from onenight.api.deps import get_game_manager
from onenight.api.rest import router as rest_router
from onenight.core.errors import RosterCorruptedError
from onenight.room.game_manager import GameManager

logger = logging.getLogger(__name__)

app = FastAPI(
    title="One Night Backend",
    version="0.1.0",
    description="Moderator backend for One Night Ultimate Werewolf: deal, night and day resolution.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rest_router)


@app.exception_handler(RosterCorruptedError)
async def roster_corrupted(request: Request, exc: RosterCorruptedError) -> JSONResponse:
    logger.exception("stored game data is inconsistent: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "stored game data is inconsistent"})


@app.get("/health")
def health(manager: GameManager = Depends(get_game_manager)) -> dict:
    return {
        "status": "ok",
        "service": "onenight-backend",
        "summary": manager.health_summary(),
    }
