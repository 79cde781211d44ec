from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    VILLAGER = "villager"
    WEREWOLF = "werewolf"
    SEER = "seer"
    ROBBER = "robber"
    TROUBLEMAKER = "troublemaker"
    MINION = "minion"
    TANNER = "tanner"
    DRUNK = "drunk"
    INSOMNIAC = "insomniac"


class Team(str, Enum):
    VILLAGE = "village"
    WEREWOLF = "werewolf"
    INDEPENDENT = "independent"


class ActionKind(str, Enum):
    NONE = "none"
    PLAYER = "targets_player"
    PLAYER_OR_CENTER = "targets_player_or_center"
    CENTER = "targets_center"
    TWO_PLAYERS = "targets_two_players"
    SELF = "self_only"


class GameStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class Phase(str, Enum):
    LOBBY = "lobby"
    NIGHT = "night"
    MORNING = "morning"
    DAY = "day"


class Winner(str, Enum):
    VILLAGE = "village"
    WEREWOLF = "werewolf"
    TANNER = "tanner"


CENTER_PREFIX = "center_"


def center_position(index: int) -> str:
    return f"{CENTER_PREFIX}{index}"


def is_center_position(target_id: Optional[str]) -> bool:
    return bool(target_id) and str(target_id).startswith(CENTER_PREFIX)


@dataclass(slots=True)
class PlayerState:
    player_id: str
    name: str
    role: Optional[Role] = None
    initial_role: Optional[Role] = None
    is_host: bool = False
    alive: bool = True
    action_target: Optional[str] = None
    action_target_secondary: Optional[str] = None
    revealed_role: Optional[Role] = None
    joined_at: Optional[datetime] = None

    def clear_targets(self) -> None:
        self.action_target = None
        self.action_target_secondary = None


@dataclass(slots=True)
class CenterCard:
    position: str
    role: Role


@dataclass(slots=True)
class GameSnapshot:
    game_id: str
    short_code: str
    status: GameStatus = GameStatus.WAITING
    phase: Phase = Phase.LOBBY
    winner: Optional[Winner] = None
    phase_version: int = 0
    phase_started_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    # insertion order is join order
    players: Dict[str, PlayerState] = field(default_factory=dict)
    center_cards: Dict[str, CenterCard] = field(default_factory=dict)
    action_audit_log: List[Dict[str, Any]] = field(default_factory=list)

    def alive_players(self) -> List[PlayerState]:
        return [p for p in self.players.values() if p.alive]

    def clear_all_targets(self) -> None:
        for player in self.players.values():
            player.clear_targets()
