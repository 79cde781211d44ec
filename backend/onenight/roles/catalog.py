from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from onenight.core.errors import RosterCorruptedError
from onenight.core.models import ActionKind, Role, Team


@dataclass(frozen=True, slots=True)
class RoleSpec:
    role: Role
    action: ActionKind
    team: Team

    @property
    def targets_players(self) -> bool:
        return self.action in {ActionKind.PLAYER, ActionKind.PLAYER_OR_CENTER, ActionKind.TWO_PLAYERS}

    @property
    def targets_center(self) -> bool:
        return self.action in {ActionKind.CENTER, ActionKind.PLAYER_OR_CENTER}

    @property
    def requires_target(self) -> bool:
        return self.action not in {ActionKind.NONE, ActionKind.SELF}


ROLE_CATALOG: Dict[Role, RoleSpec] = {
    Role.VILLAGER: RoleSpec(Role.VILLAGER, ActionKind.NONE, Team.VILLAGE),
    Role.WEREWOLF: RoleSpec(Role.WEREWOLF, ActionKind.PLAYER, Team.WEREWOLF),
    Role.SEER: RoleSpec(Role.SEER, ActionKind.PLAYER_OR_CENTER, Team.VILLAGE),
    Role.ROBBER: RoleSpec(Role.ROBBER, ActionKind.PLAYER, Team.VILLAGE),
    Role.TROUBLEMAKER: RoleSpec(Role.TROUBLEMAKER, ActionKind.TWO_PLAYERS, Team.VILLAGE),
    Role.MINION: RoleSpec(Role.MINION, ActionKind.NONE, Team.WEREWOLF),
    Role.TANNER: RoleSpec(Role.TANNER, ActionKind.NONE, Team.INDEPENDENT),
    Role.DRUNK: RoleSpec(Role.DRUNK, ActionKind.CENTER, Team.VILLAGE),
    Role.INSOMNIAC: RoleSpec(Role.INSOMNIAC, ActionKind.SELF, Team.VILLAGE),
}


def role_spec(role: Role) -> RoleSpec:
    spec = ROLE_CATALOG.get(role)
    if spec is None:
        raise RosterCorruptedError(f"role missing from catalog: {role!r}")
    return spec


def parse_role(value: Optional[str]) -> Optional[Role]:
    """Decode a stored role value; anything outside the catalog means a corrupted roster."""
    if value is None:
        return None
    try:
        return Role(value)
    except ValueError as exc:
        raise RosterCorruptedError(f"unknown role identifier in stored data: {value!r}") from exc
