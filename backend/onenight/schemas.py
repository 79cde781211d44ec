from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CreateGameRequest(BaseModel):
    host_name: Optional[str] = Field(default=None, min_length=1, max_length=30)


class CreateGameResponse(BaseModel):
    game_id: str
    short_code: str
    host_player_id: Optional[str] = None


class JoinGameRequest(BaseModel):
    short_code: str = Field(min_length=1, max_length=12)
    name: str = Field(min_length=1, max_length=30)


class JoinGameResponse(BaseModel):
    game_id: str
    player_id: str


class KickPlayerResponse(BaseModel):
    game_id: str
    player_id: str
    removed: bool


class DealRequest(BaseModel):
    role_config: Optional[Dict[str, Any]] = None
    preset: Optional[str] = None


class DealResponse(BaseModel):
    game_id: str
    player_count: int
    center_card_count: int
    distribution: Dict[str, int]
    warnings: List[str] = Field(default_factory=list)
    wake_order: List[str] = Field(default_factory=list)


class ActionRequest(BaseModel):
    player_id: str
    target_id: Optional[str] = None
    target_id2: Optional[str] = None


class ActionResponse(BaseModel):
    game_id: str
    player_id: str
    phase: str
    revealed: Optional[Dict[str, str]] = None


class PhaseRequest(BaseModel):
    next_phase: str = Field(min_length=1, max_length=16)


class PhaseResponse(BaseModel):
    game_id: str
    applied: bool
    status: str
    phase: str
    state: str
    eliminated_player_id: Optional[str] = None
    winner: Optional[str] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)


class GamePlayerView(BaseModel):
    player_id: str
    name: str
    is_host: bool
    alive: bool
    has_acted: bool
    role: Optional[str] = None
    initial_role: Optional[str] = None
    team: Optional[str] = None


class GameStateResponse(BaseModel):
    game_id: str
    short_code: str
    status: str
    phase: str
    state: str
    winner: Optional[str] = None
    phase_started_at: Optional[str] = None
    phase_deadline: Optional[str] = None
    created_at: Optional[str] = None
    center_card_count: int
    wake_order: List[str] = Field(default_factory=list)
    players: List[GamePlayerView]
    center_cards: Optional[Dict[str, str]] = None


class PlayerViewResponse(BaseModel):
    player_id: str
    game_id: str
    name: str
    is_host: bool
    alive: bool
    initial_role: Optional[str] = None
    revealed_role: Optional[str] = None
    role: Optional[str] = None
    action_target: Optional[str] = None
    action_target_secondary: Optional[str] = None
    phase: str
    state: str


class PresetView(BaseModel):
    description: str
    roles: Dict[str, int]
