import random
from collections import Counter

import pytest

from onenight.core.errors import InvalidRoleConfigError, NoPlayersError
from onenight.core.models import Role
from onenight.engine.roster import RosterBuilder, fisher_yates_shuffle


def _make_distribution() -> dict[Role, int]:
    return {
        Role.WEREWOLF: 2,
        Role.SEER: 1,
        Role.ROBBER: 1,
        Role.TROUBLEMAKER: 1,
        Role.VILLAGER: 3,
    }


def test_deal_is_deterministic_under_fixed_rng() -> None:
    players = ["p1", "p2", "p3", "p4", "p5"]
    first = RosterBuilder(rng=random.Random(42)).deal(players, _make_distribution())
    second = RosterBuilder(rng=random.Random(42)).deal(players, _make_distribution())

    assert first.assignments == second.assignments
    assert [(c.position, c.role) for c in first.center_cards] == [(c.position, c.role) for c in second.center_cards]


def test_deal_conserves_every_card() -> None:
    players = ["p1", "p2", "p3", "p4", "p5"]
    result = RosterBuilder(rng=random.Random(7)).deal(players, _make_distribution())

    dealt = Counter(result.assignments.values())
    dealt.update(card.role for card in result.center_cards)
    assert dealt == Counter(_make_distribution())
    assert set(result.assignments) == set(players)
    assert [c.position for c in result.center_cards] == ["center_0", "center_1", "center_2"]


def test_injected_shuffle_decides_the_deal() -> None:
    def reverse(pool) -> None:
        pool.reverse()

    result = RosterBuilder(shuffle=reverse).deal(
        ["p1", "p2"],
        {Role.WEREWOLF: 1, Role.SEER: 1, Role.TANNER: 1},
    )
    assert result.assignments == {"p1": Role.TANNER, "p2": Role.SEER}
    assert [c.role for c in result.center_cards] == [Role.WEREWOLF]


def test_deal_without_players_fails() -> None:
    with pytest.raises(NoPlayersError):
        RosterBuilder().deal([], _make_distribution())


def test_deal_with_short_deck_fails() -> None:
    with pytest.raises(InvalidRoleConfigError):
        RosterBuilder().deal(["p1", "p2", "p3"], {Role.WEREWOLF: 1})


def test_fisher_yates_reaches_every_permutation() -> None:
    rng = random.Random(0)
    seen = set()
    for _ in range(600):
        items = ["a", "b", "c"]
        fisher_yates_shuffle(items, rng)
        seen.add(tuple(items))
    assert len(seen) == 6


def test_fisher_yates_keeps_items() -> None:
    items = list(range(20))
    fisher_yates_shuffle(items, random.Random(3))
    assert sorted(items) == list(range(20))
