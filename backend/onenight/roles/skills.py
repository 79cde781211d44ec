from __future__ import annotations

from typing import Dict, Optional, Tuple

from onenight.core.errors import InvalidTargetError, MissingTargetError, TargetNotFoundError
from onenight.core.models import (
    CenterCard,
    GameSnapshot,
    PlayerState,
    Role,
    is_center_position,
)
from onenight.roles.base import Reveal, RoleSkill


def _must_get_target_player(snapshot: GameSnapshot, target_id: Optional[str]) -> PlayerState:
    if not target_id:
        raise MissingTargetError("target_id is required")
    if is_center_position(target_id):
        raise InvalidTargetError("this role must target a player, not a center card")
    target = snapshot.players.get(target_id)
    if not target:
        raise TargetNotFoundError(target_id)
    if not target.alive:
        raise InvalidTargetError("target is not alive")
    return target


def _must_get_center(snapshot: GameSnapshot, position: Optional[str]) -> CenterCard:
    if not position:
        raise MissingTargetError("center position is required")
    if not is_center_position(position):
        raise InvalidTargetError("this role must target a center card")
    card = snapshot.center_cards.get(position)
    if not card:
        raise TargetNotFoundError(position)
    return card


def _assert_not_self(actor: PlayerState, target: PlayerState) -> None:
    if actor.player_id == target.player_id:
        raise InvalidTargetError("cannot target yourself")


class PassiveSkill(RoleSkill):
    """Roles without a night ability. Submissions are stored as-is."""

    def __init__(self, role: Role) -> None:
        self.role = role

    def validate(self, snapshot, actor, target_id, target_id2) -> None:
        return None


class WerewolfSkill(RoleSkill):
    role = Role.WEREWOLF

    def validate(self, snapshot, actor, target_id, target_id2) -> None:
        target = _must_get_target_player(snapshot, target_id)
        _assert_not_self(actor, target)


class SeerSkill(RoleSkill):
    role = Role.SEER

    def validate(self, snapshot, actor, target_id, target_id2) -> None:
        if not target_id:
            raise MissingTargetError("seer must pick a player or a center card")
        if is_center_position(target_id):
            _must_get_center(snapshot, target_id)
            if is_center_position(target_id2):
                _must_get_center(snapshot, target_id2)
                if target_id2 == target_id:
                    raise InvalidTargetError("seer must pick two different center cards")
            return
        target = _must_get_target_player(snapshot, target_id)
        _assert_not_self(actor, target)

    def reveal(self, snapshot, actor, target_id, target_id2) -> Optional[Reveal]:
        if is_center_position(target_id):
            positions = [target_id]
            if is_center_position(target_id2):
                positions.append(target_id2)
            return {pos: snapshot.center_cards[pos].role.value for pos in positions}

        target = snapshot.players[target_id]
        return {target.player_id: target.role.value} if target.role else None


class RobberSkill(RoleSkill):
    role = Role.ROBBER

    def validate(self, snapshot, actor, target_id, target_id2) -> None:
        target = _must_get_target_player(snapshot, target_id)
        _assert_not_self(actor, target)

    def reveal(self, snapshot, actor, target_id, target_id2) -> Optional[Reveal]:
        # what the robber is about to become; the exchange itself waits for the night resolution
        target = snapshot.players[target_id]
        return {target.player_id: target.role.value} if target.role else None

    def resolve(self, snapshot: GameSnapshot, actor: PlayerState) -> Optional[dict]:
        target = snapshot.players.get(actor.action_target or "")
        if not target or target.player_id == actor.player_id:
            return None
        actor.role, target.role = target.role, actor.role
        return {"swap": "robber", "actor": actor.player_id, "target": target.player_id}


class DrunkSkill(RoleSkill):
    role = Role.DRUNK

    def validate(self, snapshot, actor, target_id, target_id2) -> None:
        _must_get_center(snapshot, target_id)

    def resolve(self, snapshot: GameSnapshot, actor: PlayerState) -> Optional[dict]:
        if not is_center_position(actor.action_target):
            return None
        card = snapshot.center_cards.get(actor.action_target)
        if not card:
            return None
        actor.role, card.role = card.role, actor.role
        return {"swap": "drunk", "actor": actor.player_id, "target": card.position}


class TroublemakerSkill(RoleSkill):
    role = Role.TROUBLEMAKER

    def validate(self, snapshot, actor, target_id, target_id2) -> None:
        if not target_id or not target_id2:
            raise MissingTargetError("troublemaker must pick two players")
        first = _must_get_target_player(snapshot, target_id)
        second = _must_get_target_player(snapshot, target_id2)
        _assert_not_self(actor, first)
        _assert_not_self(actor, second)
        if first.player_id == second.player_id:
            raise InvalidTargetError("troublemaker must pick two different players")

    def resolve(self, snapshot: GameSnapshot, actor: PlayerState) -> Optional[dict]:
        first = snapshot.players.get(actor.action_target or "")
        second = snapshot.players.get(actor.action_target_secondary or "")
        if not first or not second or first.player_id == second.player_id:
            return None
        first.role, second.role = second.role, first.role
        return {
            "swap": "troublemaker",
            "actor": actor.player_id,
            "target": first.player_id,
            "target2": second.player_id,
        }


class InsomniacSkill(RoleSkill):
    role = Role.INSOMNIAC

    def validate(self, snapshot, actor, target_id, target_id2) -> None:
        return None

    def stored_targets(self, actor, target_id, target_id2) -> Tuple[Optional[str], Optional[str]]:
        # the submission itself is the signal; default the target to the insomniac's own seat
        return target_id or actor.player_id, target_id2


SKILL_REGISTRY: Dict[Role, RoleSkill] = {
    Role.VILLAGER: PassiveSkill(Role.VILLAGER),
    Role.MINION: PassiveSkill(Role.MINION),
    Role.TANNER: PassiveSkill(Role.TANNER),
    Role.WEREWOLF: WerewolfSkill(),
    Role.SEER: SeerSkill(),
    Role.ROBBER: RobberSkill(),
    Role.DRUNK: DrunkSkill(),
    Role.TROUBLEMAKER: TroublemakerSkill(),
    Role.INSOMNIAC: InsomniacSkill(),
}


def validate_day_vote(snapshot: GameSnapshot, voter: PlayerState, target_id: Optional[str]) -> None:
    if not target_id:
        raise MissingTargetError("vote target is required")
    _must_get_target_player(snapshot, target_id)
