from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from onenight.config.config_loader import load_role_deck
from onenight.core.errors import (
    InvalidTargetError,
    MissingTargetError,
    NoPlayersError,
    PlayerDeadError,
    PlayerNotFoundError,
    RosterCorruptedError,
)
from onenight.core.game_config import GameConfig
from onenight.core.models import (
    ActionKind,
    GameSnapshot,
    GameStatus,
    Phase,
    PlayerState,
    Role,
    Winner,
    is_center_position,
)
from onenight.engine.night_order import NightOrder
from onenight.engine.roster import DealResult, RosterBuilder
from onenight.engine.states import MachineState, machine_state
from onenight.roles.base import Reveal
from onenight.roles.catalog import role_spec
from onenight.roles.skills import SKILL_REGISTRY, validate_day_vote


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class DealSummary:
    result: DealResult
    distribution: Dict[Role, int]
    warnings: List[str] = field(default_factory=list)

    @property
    def center_card_count(self) -> int:
        return len(self.result.center_cards)


@dataclass(slots=True)
class NightOutcome:
    victim_id: Optional[str] = None
    swaps: List[dict] = field(default_factory=list)
    insomniac_reveals: Dict[str, Role] = field(default_factory=dict)


@dataclass(slots=True)
class DayOutcome:
    victim_id: Optional[str] = None
    victim_role: Optional[Role] = None
    winner: Optional[Winner] = None


class GameEngine:
    """Rules for one game, applied to an in-memory snapshot.

    The engine never talks to the store; callers load a snapshot, run one operation
    and persist the result. Phase edges must only be driven through the transition
    guard so each resolution is applied exactly once.
    """

    def __init__(
        self,
        snapshot: GameSnapshot,
        config: Optional[GameConfig] = None,
        roster: Optional[RosterBuilder] = None,
    ) -> None:
        self.snapshot = snapshot
        self.config = config or GameConfig()
        self.roster = roster or RosterBuilder()

    @property
    def state(self) -> MachineState:
        return machine_state(self.snapshot.status, self.snapshot.phase)

    def deal(
        self,
        role_config: Optional[Mapping[str, Any]] = None,
        preset: Optional[str] = None,
    ) -> DealSummary:
        player_ids = list(self.snapshot.players.keys())
        if not player_ids:
            raise NoPlayersError()

        deck = load_role_deck(
            player_count=len(player_ids),
            role_config=role_config,
            preset=preset,
            surplus=self.config.center_card_surplus,
        )
        result = self.roster.deal(player_ids, deck.distribution)

        for player_id, role in result.assignments.items():
            player = self.snapshot.players[player_id]
            player.role = role
            player.initial_role = role
            player.alive = True
            player.revealed_role = None
            player.clear_targets()
        self.snapshot.center_cards = {card.position: card for card in result.center_cards}

        self.snapshot.status = GameStatus.PLAYING
        self.snapshot.winner = None
        self._goto_phase(Phase.NIGHT)
        self._audit(
            "deal",
            "system",
            {
                "players": len(player_ids),
                "center_cards": len(result.center_cards),
                "deck_size": deck.total,
                "distribution": {role.value: count for role, count in deck.distribution.items()},
            },
        )
        return DealSummary(result=result, distribution=deck.distribution, warnings=deck.warnings)

    def submit_action(
        self,
        player_id: str,
        target_id: Optional[str] = None,
        target_id2: Optional[str] = None,
    ) -> Optional[Reveal]:
        actor = self._must_get_player(player_id)
        state = self.state

        if state not in {MachineState.NIGHT, MachineState.DAY}:
            # nothing acts here; keep the write harmless
            actor.action_target = target_id
            actor.action_target_secondary = target_id2
            return None

        if not actor.alive:
            raise PlayerDeadError()

        if state == MachineState.DAY:
            validate_day_vote(self.snapshot, actor, target_id)
            actor.action_target = target_id
            actor.action_target_secondary = target_id2
            self._audit("vote", actor.player_id, {"target": target_id})
            return None

        role = self._role_of(actor)
        self._check_target_kind(role, target_id)
        skill = SKILL_REGISTRY[role]
        skill.validate(self.snapshot, actor, target_id, target_id2)
        revealed = skill.reveal(self.snapshot, actor, target_id, target_id2)
        actor.action_target, actor.action_target_secondary = skill.stored_targets(actor, target_id, target_id2)
        self._audit(
            "night_action",
            actor.player_id,
            {"role": role.value, "target": actor.action_target, "target2": actor.action_target_secondary},
        )
        return revealed

    def resolve_night(self, next_phase: Phase) -> NightOutcome:
        self._assert_roster()
        outcome = NightOutcome()
        # actors are whoever held the role when they submitted, before any swap lands
        night_roles = {pid: p.role for pid, p in self.snapshot.players.items()}

        for player in self.snapshot.players.values():
            player.revealed_role = None

        distribution: Dict[Role, int] = {}
        for role in night_roles.values():
            distribution[role] = distribution.get(role, 0) + 1

        for role in NightOrder(role_distribution=distribution).swap_order():
            skill = SKILL_REGISTRY[role]
            for player in self.snapshot.players.values():
                if night_roles[player.player_id] != role or not player.alive or not player.action_target:
                    continue
                applied = skill.resolve(self.snapshot, player)
                if applied:
                    outcome.swaps.append(applied)
                    self._audit("swap", player.player_id, applied)

        for player in self.snapshot.players.values():
            if role_spec(night_roles[player.player_id]).action != ActionKind.SELF:
                continue
            if not player.alive or not player.action_target:
                continue
            player.revealed_role = player.role
            outcome.insomniac_reveals[player.player_id] = player.role

        outcome.victim_id = self._resolve_werewolf_kill()
        if outcome.victim_id:
            self._kill_player(outcome.victim_id, "werewolf")

        self.snapshot.clear_all_targets()
        self._goto_phase(next_phase)
        return outcome

    def resolve_day(self) -> DayOutcome:
        self._assert_roster()
        outcome = DayOutcome()

        counter: Dict[str, int] = {}
        for voter in self.snapshot.alive_players():
            target_id = voter.action_target
            if not target_id or is_center_position(target_id):
                continue
            target = self.snapshot.players.get(target_id)
            if not target or not target.alive:
                continue
            counter[target_id] = counter.get(target_id, 0) + 1

        outcome.victim_id = self._pick_victim(counter, "day_vote")
        if outcome.victim_id:
            victim = self.snapshot.players[outcome.victim_id]
            outcome.victim_role = victim.role
            self._kill_player(victim.player_id, "vote")

        outcome.winner = self._evaluate_winner(outcome.victim_role)
        self.snapshot.clear_all_targets()
        if outcome.winner:
            self.snapshot.status = GameStatus.FINISHED
            self.snapshot.winner = outcome.winner
            self._audit("game_over", "system", {"winner": outcome.winner.value})
            return outcome

        self._goto_phase(Phase.NIGHT)
        return outcome

    def enter_phase(self, phase: Phase) -> None:
        self._goto_phase(phase)

    def reset(self) -> None:
        for player in self.snapshot.players.values():
            player.role = None
            player.initial_role = None
            player.alive = True
            player.revealed_role = None
            player.clear_targets()
        self.snapshot.center_cards = {}
        self.snapshot.status = GameStatus.WAITING
        self.snapshot.winner = None
        self._goto_phase(Phase.LOBBY)

    def _resolve_werewolf_kill(self) -> Optional[str]:
        counter: Dict[str, int] = {}
        for wolf in self.snapshot.alive_players():
            if wolf.role != Role.WEREWOLF:
                continue
            target_id = wolf.action_target
            # a card swapped in mid-night keeps its holder's old target; never a vote for oneself
            if not target_id or is_center_position(target_id) or target_id == wolf.player_id:
                continue
            target = self.snapshot.players.get(target_id)
            if not target or not target.alive:
                continue
            counter[target_id] = counter.get(target_id, 0) + 1
        return self._pick_victim(counter, "werewolf_kill")

    def _pick_victim(self, counter: Dict[str, int], tally: str) -> Optional[str]:
        if not counter:
            return None
        max_votes = max(counter.values())
        # dict order is the order targets first received a vote
        tied = [pid for pid, cnt in counter.items() if cnt == max_votes]
        if len(tied) > 1 and self.config.rules.vote_tie_no_elimination:
            self._audit(tally, "system", {"result": "tie_no_elimination", "tied": tied})
            return None
        self._audit(tally, "system", {"result": "eliminate", "target": tied[0], "votes": dict(counter)})
        return tied[0]

    def _evaluate_winner(self, eliminated_role: Optional[Role]) -> Optional[Winner]:
        if eliminated_role == Role.TANNER:
            return Winner.TANNER

        alive = self.snapshot.alive_players()
        alive_wolves = sum(1 for p in alive if p.role == Role.WEREWOLF)
        alive_others = len(alive) - alive_wolves
        if alive_wolves == 0:
            return Winner.VILLAGE
        if alive_wolves >= alive_others:
            return Winner.WEREWOLF
        return None

    def _kill_player(self, player_id: str, cause: str) -> None:
        player = self._must_get_player(player_id)
        if not player.alive:
            return
        player.alive = False
        self._audit("death", "system", {"player_id": player_id, "cause": cause})

    def _assert_roster(self) -> None:
        for player in self.snapshot.players.values():
            self._role_of(player)
        for card in self.snapshot.center_cards.values():
            role_spec(card.role)

    @staticmethod
    def _check_target_kind(role: Role, target_id: Optional[str]) -> None:
        spec = role_spec(role)
        if not spec.requires_target:
            return
        if not target_id:
            raise MissingTargetError(f"{role.value} must pick a target")
        if is_center_position(target_id):
            if not spec.targets_center:
                raise InvalidTargetError(f"{role.value} cannot target a center card")
        elif not spec.targets_players:
            raise InvalidTargetError(f"{role.value} must target a center card")

    def _role_of(self, player: PlayerState) -> Role:
        if player.role is None:
            raise RosterCorruptedError(f"player {player.player_id} has no role in a running game")
        role_spec(player.role)
        return player.role

    def _goto_phase(self, phase: Phase) -> None:
        self.snapshot.phase = phase
        self.snapshot.phase_started_at = utcnow()
        self._audit("phase_change", "system", {"phase": phase.value})

    def _audit(self, event_type: str, actor_id: str, payload: dict) -> None:
        self.snapshot.action_audit_log.append(
            {
                "ts": utcnow().isoformat(),
                "event_type": event_type,
                "actor_id": actor_id,
                "payload": payload,
            }
        )

    def _must_get_player(self, player_id: str) -> PlayerState:
        player = self.snapshot.players.get(player_id)
        if not player:
            raise PlayerNotFoundError(player_id)
        return player

    def phase_deadline(self) -> Optional[datetime]:
        if self.state in {MachineState.LOBBY, MachineState.FINISHED}:
            return None
        seconds = self.config.timeout.seconds_for(self.snapshot.phase)
        if seconds is None or self.snapshot.phase_started_at is None:
            return None
        return self.snapshot.phase_started_at + timedelta(seconds=seconds)

    def wake_order(self) -> List[str]:
        distribution: Dict[Role, int] = {}
        for player in self.snapshot.players.values():
            if player.initial_role:
                distribution[player.initial_role] = distribution.get(player.initial_role, 0) + 1
        for card in self.snapshot.center_cards.values():
            distribution[card.role] = distribution.get(card.role, 0) + 1
        return [role.value for role in NightOrder(role_distribution=distribution).wake_order()]

    def public_state(self) -> dict:
        finished = self.snapshot.status == GameStatus.FINISHED
        deadline = self.phase_deadline()
        return {
            "game_id": self.snapshot.game_id,
            "short_code": self.snapshot.short_code,
            "status": self.snapshot.status.value,
            "phase": self.snapshot.phase.value,
            "state": self.state.value,
            "winner": self.snapshot.winner.value if self.snapshot.winner else None,
            "phase_started_at": _iso(self.snapshot.phase_started_at),
            "phase_deadline": _iso(deadline),
            "created_at": _iso(self.snapshot.created_at),
            "center_card_count": len(self.snapshot.center_cards),
            "wake_order": self.wake_order(),
            "players": [
                {
                    "player_id": p.player_id,
                    "name": p.name,
                    "is_host": p.is_host,
                    "alive": p.alive,
                    "has_acted": bool(p.action_target),
                    "role": p.role.value if finished and p.role else None,
                    "initial_role": p.initial_role.value if finished and p.initial_role else None,
                    "team": role_spec(p.role).team.value if finished and p.role else None,
                }
                for p in self.snapshot.players.values()
            ],
            "center_cards": (
                {pos: card.role.value for pos, card in self.snapshot.center_cards.items()}
                if finished
                else None
            ),
        }

    def player_view(self, player_id: str) -> dict:
        player = self._must_get_player(player_id)
        finished = self.snapshot.status == GameStatus.FINISHED
        return {
            "player_id": player.player_id,
            "game_id": self.snapshot.game_id,
            "name": player.name,
            "is_host": player.is_host,
            "alive": player.alive,
            "initial_role": player.initial_role.value if player.initial_role else None,
            "revealed_role": player.revealed_role.value if player.revealed_role else None,
            "role": player.role.value if finished and player.role else None,
            "action_target": player.action_target,
            "action_target_secondary": player.action_target_secondary,
            "phase": self.snapshot.phase.value,
            "state": self.state.value,
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
