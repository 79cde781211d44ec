from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, MutableSequence, Optional, Sequence, TypeVar

from onenight.core.errors import InvalidRoleConfigError, NoPlayersError
from onenight.core.models import CenterCard, Role, center_position

T = TypeVar("T")

Shuffle = Callable[[MutableSequence[Role]], None]


def fisher_yates_shuffle(items: MutableSequence[T], rng: Optional[random.Random] = None) -> None:
    """Uniform in-place shuffle: walk i down from the end, swap i with a random index in [0, i]."""
    rng = rng or random.SystemRandom()
    for i in range(len(items) - 1, 0, -1):
        j = rng.randrange(i + 1)
        items[i], items[j] = items[j], items[i]


@dataclass(slots=True)
class DealResult:
    assignments: Dict[str, Role] = field(default_factory=dict)
    center_cards: List[CenterCard] = field(default_factory=list)


class RosterBuilder:
    def __init__(self, shuffle: Optional[Shuffle] = None, rng: Optional[random.Random] = None) -> None:
        self._rng = rng
        self._shuffle = shuffle

    def build_pool(self, distribution: Dict[Role, int]) -> List[Role]:
        pool: List[Role] = []
        for role, count in distribution.items():
            pool.extend([role] * int(count))
        return pool

    def shuffle(self, pool: MutableSequence[Role]) -> None:
        if self._shuffle is not None:
            self._shuffle(pool)
            return
        fisher_yates_shuffle(pool, self._rng)

    def deal(self, player_ids: Sequence[str], distribution: Dict[Role, int]) -> DealResult:
        if not player_ids:
            raise NoPlayersError()

        pool = self.build_pool(distribution)
        if len(pool) < len(player_ids):
            raise InvalidRoleConfigError(f"deck has {len(pool)} cards for {len(player_ids)} players")
        self.shuffle(pool)

        assignments = {player_id: pool[i] for i, player_id in enumerate(player_ids)}
        leftovers = pool[len(player_ids):]
        center_cards = [CenterCard(position=center_position(i), role=role) for i, role in enumerate(leftovers)]
        return DealResult(assignments=assignments, center_cards=center_cards)
