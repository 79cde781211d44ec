from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException

from onenight.api.deps import get_game_manager
from onenight.core.errors import GameError
from onenight.room.game_manager import GameManager
from onenight.schemas import (
    ActionRequest,
    ActionResponse,
    CreateGameRequest,
    CreateGameResponse,
    DealRequest,
    DealResponse,
    GameStateResponse,
    JoinGameRequest,
    JoinGameResponse,
    KickPlayerResponse,
    PhaseRequest,
    PhaseResponse,
    PlayerViewResponse,
    PresetView,
)

router = APIRouter(prefix="/api", tags=["onenight"])


def _http_error(exc: GameError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


@router.post("/games", response_model=CreateGameResponse)
def create_game(
    req: CreateGameRequest,
    manager: GameManager = Depends(get_game_manager),
) -> CreateGameResponse:
    try:
        return CreateGameResponse(**manager.create_game(req.host_name))
    except GameError as exc:
        raise _http_error(exc) from exc


@router.post("/games/join", response_model=JoinGameResponse)
def join_game(
    req: JoinGameRequest,
    manager: GameManager = Depends(get_game_manager),
) -> JoinGameResponse:
    try:
        return JoinGameResponse(**manager.join_game(req.short_code, req.name))
    except GameError as exc:
        raise _http_error(exc) from exc


@router.get("/games/{game_id}", response_model=GameStateResponse)
def game_state(game_id: str, manager: GameManager = Depends(get_game_manager)) -> GameStateResponse:
    try:
        return GameStateResponse(**manager.state(game_id))
    except GameError as exc:
        raise _http_error(exc) from exc


@router.post("/games/{game_id}/deal", response_model=DealResponse)
def deal_roles(
    game_id: str,
    req: DealRequest,
    manager: GameManager = Depends(get_game_manager),
) -> DealResponse:
    try:
        return DealResponse(**manager.deal_roles(game_id, role_config=req.role_config, preset=req.preset))
    except GameError as exc:
        raise _http_error(exc) from exc


@router.post("/games/{game_id}/phase", response_model=PhaseResponse)
def advance_phase(
    game_id: str,
    req: PhaseRequest,
    manager: GameManager = Depends(get_game_manager),
) -> PhaseResponse:
    try:
        return PhaseResponse(**manager.advance_phase(game_id, req.next_phase))
    except GameError as exc:
        raise _http_error(exc) from exc


@router.post("/games/{game_id}/reset", response_model=GameStateResponse)
def reset_game(game_id: str, manager: GameManager = Depends(get_game_manager)) -> GameStateResponse:
    try:
        return GameStateResponse(**manager.reset_game(game_id))
    except GameError as exc:
        raise _http_error(exc) from exc


@router.delete("/games/{game_id}/players/{player_id}", response_model=KickPlayerResponse)
def kick_player(
    game_id: str,
    player_id: str,
    manager: GameManager = Depends(get_game_manager),
) -> KickPlayerResponse:
    try:
        return KickPlayerResponse(**manager.kick_player(game_id, player_id))
    except GameError as exc:
        raise _http_error(exc) from exc


@router.post("/actions", response_model=ActionResponse)
def record_action(req: ActionRequest, manager: GameManager = Depends(get_game_manager)) -> ActionResponse:
    try:
        return ActionResponse(**manager.record_action(req.player_id, req.target_id, req.target_id2))
    except GameError as exc:
        raise _http_error(exc) from exc


@router.get("/players/{player_id}", response_model=PlayerViewResponse)
def player_view(player_id: str, manager: GameManager = Depends(get_game_manager)) -> PlayerViewResponse:
    try:
        return PlayerViewResponse(**manager.player_view(player_id))
    except GameError as exc:
        raise _http_error(exc) from exc


@router.get("/presets", response_model=Dict[str, PresetView])
def list_presets(manager: GameManager = Depends(get_game_manager)) -> Dict[str, PresetView]:
    return {name: PresetView(**node) for name, node in manager.list_presets().items()}
