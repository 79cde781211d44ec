from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from onenight.core.models import Role

# Canonical wake order. Only the swapping roles mutate state; the rest are listed
# so the moderator screen can call them in the right sequence.
WAKE_ORDER: Tuple[Role, ...] = (
    Role.WEREWOLF,
    Role.MINION,
    Role.SEER,
    Role.ROBBER,
    Role.DRUNK,
    Role.TROUBLEMAKER,
    Role.INSOMNIAC,
)

# Resolution order for swaps. Swaps compose, so this order is part of the rules.
SWAP_ORDER: Tuple[Role, ...] = (Role.ROBBER, Role.DRUNK, Role.TROUBLEMAKER)


@dataclass(slots=True)
class NightOrder:
    role_distribution: Dict[Role, int] = field(default_factory=dict)

    def wake_order(self) -> List[Role]:
        return [role for role in WAKE_ORDER if self.role_distribution.get(role, 0) > 0]

    def swap_order(self) -> List[Role]:
        return [role for role in SWAP_ORDER if self.role_distribution.get(role, 0) > 0]
