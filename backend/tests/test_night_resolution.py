from __future__ import annotations

from onenight.core.game_config import GameConfig, RuleConfig
from onenight.core.models import CenterCard, GameSnapshot, GameStatus, Phase, PlayerState, Role, center_position
from onenight.engine.game_engine import GameEngine
from onenight.engine.night_order import NightOrder


def _make_night(
    roles: list[Role],
    center: tuple[Role, ...] = (Role.VILLAGER, Role.VILLAGER, Role.VILLAGER),
    config: GameConfig | None = None,
) -> GameEngine:
    snapshot = GameSnapshot(game_id="g1", short_code="ABC123", status=GameStatus.PLAYING, phase=Phase.NIGHT)
    for i, role in enumerate(roles, start=1):
        pid = f"p{i}"
        snapshot.players[pid] = PlayerState(player_id=pid, name=f"P{i}", role=role, initial_role=role)
    for i, role in enumerate(center):
        position = center_position(i)
        snapshot.center_cards[position] = CenterCard(position=position, role=role)
    return GameEngine(snapshot, config=config)


def _roles(engine: GameEngine) -> dict[str, Role]:
    return {pid: p.role for pid, p in engine.snapshot.players.items()}


def test_drunk_swaps_with_center_card() -> None:
    engine = _make_night([Role.DRUNK, Role.WEREWOLF, Role.VILLAGER], center=(Role.SEER, Role.VILLAGER, Role.TANNER))
    engine.submit_action("p1", "center_2")

    outcome = engine.resolve_night(Phase.DAY)

    assert engine.snapshot.players["p1"].role == Role.TANNER
    assert engine.snapshot.center_cards["center_2"].role == Role.DRUNK
    assert engine.snapshot.players["p1"].initial_role == Role.DRUNK
    assert outcome.swaps == [{"swap": "drunk", "actor": "p1", "target": "center_2"}]


def test_robber_resolves_before_troublemaker() -> None:
    engine = _make_night([Role.ROBBER, Role.WEREWOLF, Role.TROUBLEMAKER, Role.VILLAGER])
    engine.submit_action("p1", "p2")
    engine.submit_action("p3", "p1", "p4")

    engine.resolve_night(Phase.DAY)

    # robber takes the werewolf card, then the troublemaker hands it to p4
    assert _roles(engine) == {
        "p1": Role.VILLAGER,
        "p2": Role.ROBBER,
        "p3": Role.TROUBLEMAKER,
        "p4": Role.WEREWOLF,
    }


def test_kill_follows_werewolf_card_after_swaps() -> None:
    engine = _make_night([Role.WEREWOLF, Role.ROBBER, Role.VILLAGER, Role.VILLAGER])
    engine.submit_action("p1", "p3")
    engine.submit_action("p2", "p1")

    outcome = engine.resolve_night(Phase.DAY)

    # p2 now holds the werewolf card and its stored target is the robbed player
    assert engine.snapshot.players["p2"].role == Role.WEREWOLF
    assert outcome.victim_id == "p1"
    assert engine.snapshot.players["p3"].alive


def test_werewolf_kill_majority() -> None:
    engine = _make_night([Role.WEREWOLF, Role.WEREWOLF, Role.WEREWOLF, Role.VILLAGER, Role.SEER])
    engine.submit_action("p1", "p4")
    engine.submit_action("p2", "p5")
    engine.submit_action("p3", "p5")

    outcome = engine.resolve_night(Phase.MORNING)

    assert outcome.victim_id == "p5"
    assert not engine.snapshot.players["p5"].alive
    # a night kill never ends the game
    assert engine.snapshot.status == GameStatus.PLAYING
    assert engine.snapshot.phase == Phase.MORNING


def test_werewolf_kill_tie_takes_first_target() -> None:
    engine = _make_night([Role.WEREWOLF, Role.WEREWOLF, Role.VILLAGER, Role.SEER])
    engine.submit_action("p1", "p4")
    engine.submit_action("p2", "p3")

    outcome = engine.resolve_night(Phase.DAY)

    assert outcome.victim_id == "p4"


def test_werewolf_kill_tie_without_elimination() -> None:
    config = GameConfig(rules=RuleConfig(vote_tie_no_elimination=True))
    engine = _make_night([Role.WEREWOLF, Role.WEREWOLF, Role.VILLAGER, Role.SEER], config=config)
    engine.submit_action("p1", "p4")
    engine.submit_action("p2", "p3")

    outcome = engine.resolve_night(Phase.DAY)

    assert outcome.victim_id is None
    assert all(p.alive for p in engine.snapshot.players.values())


def test_center_and_missing_kill_targets_are_ignored() -> None:
    engine = _make_night([Role.WEREWOLF, Role.WEREWOLF, Role.VILLAGER])
    engine.snapshot.players["p1"].action_target = "center_0"
    engine.snapshot.players["p2"].action_target = "ghost"

    outcome = engine.resolve_night(Phase.DAY)

    assert outcome.victim_id is None


def test_insomniac_sees_final_role() -> None:
    engine = _make_night([Role.INSOMNIAC, Role.TROUBLEMAKER, Role.WEREWOLF])
    engine.submit_action("p1")
    engine.submit_action("p2", "p1", "p3")

    outcome = engine.resolve_night(Phase.DAY)

    assert engine.snapshot.players["p1"].revealed_role == Role.WEREWOLF
    assert outcome.insomniac_reveals == {"p1": Role.WEREWOLF}


def test_insomniac_without_submission_learns_nothing() -> None:
    engine = _make_night([Role.INSOMNIAC, Role.VILLAGER, Role.WEREWOLF])

    engine.resolve_night(Phase.DAY)

    assert engine.snapshot.players["p1"].revealed_role is None


def test_swapped_into_role_does_not_act_twice() -> None:
    engine = _make_night([Role.ROBBER, Role.TROUBLEMAKER, Role.VILLAGER, Role.VILLAGER])
    engine.submit_action("p1", "p2")
    engine.submit_action("p2", "p3", "p4")

    outcome = engine.resolve_night(Phase.DAY)

    # p2 starts the night as troublemaker and still swaps, even though the robber took the card
    assert [s["swap"] for s in outcome.swaps] == ["robber", "troublemaker"]
    assert engine.snapshot.players["p1"].role == Role.TROUBLEMAKER
    assert engine.snapshot.players["p2"].role == Role.ROBBER


def test_targets_cleared_and_phase_entered() -> None:
    engine = _make_night([Role.SEER, Role.WEREWOLF, Role.VILLAGER])
    engine.submit_action("p1", "p2")
    engine.submit_action("p2", "p3")

    engine.resolve_night(Phase.DAY)

    assert all(p.action_target is None for p in engine.snapshot.players.values())
    assert engine.snapshot.phase == Phase.DAY
    assert engine.snapshot.phase_started_at is not None
    assert any(e["event_type"] == "death" for e in engine.snapshot.action_audit_log)


def test_insomniac_swapped_into_werewolf_survives() -> None:
    engine = _make_night([Role.INSOMNIAC, Role.TROUBLEMAKER, Role.WEREWOLF, Role.VILLAGER])
    engine.submit_action("p1")
    engine.submit_action("p2", "p1", "p3")

    outcome = engine.resolve_night(Phase.DAY)

    assert outcome.victim_id is None
    assert engine.snapshot.players["p1"].alive


def test_drunk_resolves_before_troublemaker() -> None:
    engine = _make_night(
        [Role.DRUNK, Role.TROUBLEMAKER, Role.VILLAGER],
        center=(Role.WEREWOLF, Role.VILLAGER, Role.VILLAGER),
    )
    engine.submit_action("p1", "center_0")
    engine.submit_action("p2", "p1", "p3")

    outcome = engine.resolve_night(Phase.DAY)

    # the drunk picks up the werewolf card first, then the troublemaker passes it to p3
    assert [s["swap"] for s in outcome.swaps] == ["drunk", "troublemaker"]
    assert _roles(engine) == {"p1": Role.VILLAGER, "p2": Role.TROUBLEMAKER, "p3": Role.WEREWOLF}
    assert engine.snapshot.center_cards["center_0"].role == Role.DRUNK


def test_robber_resolves_before_drunk() -> None:
    engine = _make_night(
        [Role.ROBBER, Role.DRUNK, Role.VILLAGER],
        center=(Role.TANNER, Role.VILLAGER, Role.VILLAGER),
    )
    engine.submit_action("p1", "p2")
    engine.submit_action("p2", "center_0")

    outcome = engine.resolve_night(Phase.DAY)

    # p2 still acts as the drunk and sends the robber card to the center
    assert [s["swap"] for s in outcome.swaps] == ["robber", "drunk"]
    assert _roles(engine) == {"p1": Role.DRUNK, "p2": Role.TANNER, "p3": Role.VILLAGER}
    assert engine.snapshot.center_cards["center_0"].role == Role.ROBBER


def test_self_kill_target_is_ignored() -> None:
    engine = _make_night([Role.WEREWOLF, Role.VILLAGER, Role.VILLAGER])
    engine.snapshot.players["p1"].action_target = "p1"

    outcome = engine.resolve_night(Phase.DAY)

    assert outcome.victim_id is None
    assert engine.snapshot.players["p1"].alive


def test_swap_order_lists_only_dealt_swappers() -> None:
    order = NightOrder(role_distribution={Role.TROUBLEMAKER: 1, Role.ROBBER: 1, Role.WEREWOLF: 2, Role.DRUNK: 0})
    assert order.swap_order() == [Role.ROBBER, Role.TROUBLEMAKER]
    assert order.wake_order() == [Role.WEREWOLF, Role.ROBBER, Role.TROUBLEMAKER]
