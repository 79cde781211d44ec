from __future__ import annotations

from abc import ABC
from enum import Enum
from typing import Dict, Optional

from onenight.core.models import GameStatus, Phase


class MachineState(str, Enum):
    LOBBY = "lobby"
    NIGHT = "night"
    MORNING = "morning"
    DAY = "day"
    FINISHED = "finished"


class Resolution(str, Enum):
    DEAL = "deal"
    NIGHT = "night"
    DAY = "day"
    NONE = "none"


class BasePhaseState(ABC):
    state: MachineState
    transitions: Dict[MachineState, Resolution] = {}

    def resolution_for(self, target: MachineState) -> Optional[Resolution]:
        return self.transitions.get(target)


class LobbyState(BasePhaseState):
    state = MachineState.LOBBY
    transitions = {MachineState.NIGHT: Resolution.DEAL}


class NightState(BasePhaseState):
    state = MachineState.NIGHT
    transitions = {
        MachineState.MORNING: Resolution.NIGHT,
        MachineState.DAY: Resolution.NIGHT,
    }


class MorningState(BasePhaseState):
    state = MachineState.MORNING
    transitions = {MachineState.DAY: Resolution.NONE}


class DayState(BasePhaseState):
    state = MachineState.DAY
    transitions = {MachineState.NIGHT: Resolution.DAY}


class FinishedState(BasePhaseState):
    state = MachineState.FINISHED
    transitions = {}


STATE_REGISTRY: Dict[MachineState, BasePhaseState] = {
    MachineState.LOBBY: LobbyState(),
    MachineState.NIGHT: NightState(),
    MachineState.MORNING: MorningState(),
    MachineState.DAY: DayState(),
    MachineState.FINISHED: FinishedState(),
}

# which stored row (status, phase) a machine state corresponds to
STORED_FORM: Dict[MachineState, tuple[GameStatus, Optional[Phase]]] = {
    MachineState.LOBBY: (GameStatus.WAITING, Phase.LOBBY),
    MachineState.NIGHT: (GameStatus.PLAYING, Phase.NIGHT),
    MachineState.MORNING: (GameStatus.PLAYING, Phase.MORNING),
    MachineState.DAY: (GameStatus.PLAYING, Phase.DAY),
    MachineState.FINISHED: (GameStatus.FINISHED, None),
}


def machine_state(status: GameStatus, phase: Phase) -> MachineState:
    if status == GameStatus.FINISHED:
        return MachineState.FINISHED
    if status == GameStatus.WAITING:
        return MachineState.LOBBY
    return MachineState(phase.value)


def parse_requested_state(value: str) -> Optional[MachineState]:
    try:
        return MachineState(str(value).strip().lower())
    except ValueError:
        return None


def transition_for(current: MachineState, requested: MachineState) -> Optional[Resolution]:
    return STATE_REGISTRY[current].resolution_for(requested)
