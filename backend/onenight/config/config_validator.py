from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from onenight.core.errors import ConfigRequiredError, InvalidRoleConfigError
from onenight.core.models import Role

STANDARD_CENTER_CARDS = 3
# a deck may hold at most this many cards beyond the players (or the surplus, if larger)
MAX_EXTRA_CARDS = 10


@dataclass(slots=True)
class ValidationResult:
    distribution: Dict[Role, int]
    warnings: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return int(sum(self.distribution.values()))


class ConfigValidator:
    ALIASES = {
        "wolf": "werewolf",
        "werewolves": "werewolf",
        "wolves": "werewolf",
        "villagers": "villager",
    }

    @classmethod
    def normalize_distribution(cls, role_config: Optional[Mapping[str, object]]) -> Dict[Role, int]:
        if not role_config:
            raise ConfigRequiredError()

        distribution: Dict[Role, int] = {}
        for raw_name, raw_count in role_config.items():
            name = str(raw_name).strip().lower()
            name = cls.ALIASES.get(name, name)
            try:
                role = Role(name)
            except ValueError as exc:
                raise InvalidRoleConfigError(f"unknown role in config: {raw_name}") from exc
            if isinstance(raw_count, bool) or (isinstance(raw_count, float) and not raw_count.is_integer()):
                raise InvalidRoleConfigError(f"role count must be an integer: {raw_name}={raw_count!r}")
            try:
                count = int(raw_count)
            except (TypeError, ValueError) as exc:
                raise InvalidRoleConfigError(f"role count must be an integer: {raw_name}={raw_count!r}") from exc
            if count < 0:
                raise InvalidRoleConfigError(f"role count must be >= 0: {raw_name}={count}")
            distribution[role] = distribution.get(role, 0) + count

        if sum(distribution.values()) == 0:
            raise ConfigRequiredError()
        return distribution

    @staticmethod
    def pad_with_villagers(distribution: Dict[Role, int], player_count: int, surplus: int) -> Dict[Role, int]:
        """Top a short configuration up with villagers to ``player_count + surplus`` cards.

        Configurations that already cover every player are returned unchanged, so a
        host can still pick fewer (or more) center cards than ``surplus`` by listing
        the exact deck.
        """
        padded = dict(distribution)
        total = sum(padded.values())
        if total >= player_count:
            return padded
        padded[Role.VILLAGER] = padded.get(Role.VILLAGER, 0) + (player_count + surplus - total)
        return padded

    @classmethod
    def validate_deck(
        cls,
        role_config: Optional[Mapping[str, object]],
        player_count: int,
        surplus: int = STANDARD_CENTER_CARDS,
    ) -> ValidationResult:
        distribution = cls.normalize_distribution(role_config)
        limit = player_count + max(surplus, MAX_EXTRA_CARDS)
        if sum(distribution.values()) > limit:
            raise InvalidRoleConfigError(f"deck has more than {limit} cards for {player_count} players")
        distribution = cls.pad_with_villagers(distribution, player_count=player_count, surplus=surplus)

        warnings: List[str] = []
        if distribution.get(Role.WEREWOLF, 0) < 1:
            warnings.append("no werewolf in the deck; village wins the first vote unless the tanner is lynched")
        center_count = max(0, sum(distribution.values()) - player_count)
        if center_count != STANDARD_CENTER_CARDS:
            warnings.append(f"deck leaves {center_count} center cards (standard is {STANDARD_CENTER_CARDS})")
        if distribution.get(Role.DRUNK, 0) > 0 and center_count == 0:
            warnings.append("drunk has no center card to swap with")

        return ValidationResult(distribution=distribution, warnings=warnings)
