from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from onenight.core.models import GameSnapshot, PlayerState, Role

Reveal = Dict[str, str]


class RoleSkill(ABC):
    """Night ability of one role, split into a read-only projection and a deferred mutation.

    ``validate`` and ``reveal`` run when the action is submitted and must not touch
    game state. ``resolve`` runs once, inside the night resolution, in the fixed
    swap order.
    """

    role: Role

    @abstractmethod
    def validate(
        self,
        snapshot: GameSnapshot,
        actor: PlayerState,
        target_id: Optional[str],
        target_id2: Optional[str],
    ) -> None:
        pass

    def stored_targets(
        self,
        actor: PlayerState,
        target_id: Optional[str],
        target_id2: Optional[str],
    ) -> Tuple[Optional[str], Optional[str]]:
        return target_id, target_id2

    def reveal(
        self,
        snapshot: GameSnapshot,
        actor: PlayerState,
        target_id: Optional[str],
        target_id2: Optional[str],
    ) -> Optional[Reveal]:
        return None

    def resolve(self, snapshot: GameSnapshot, actor: PlayerState) -> Optional[dict]:
        return None
