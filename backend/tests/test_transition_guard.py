from __future__ import annotations

import gc
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from onenight.core.errors import ActionNotAllowedError, PhaseChangedError
from onenight.core.models import GameStatus, Phase, Role
from onenight.engine.states import MachineState
from onenight.room.game_manager import GameManager


def _make_dealt_game(manager: GameManager, role_config: dict, player_count: int) -> tuple[str, list[str]]:
    created = manager.create_game("P1")
    player_ids = [created["host_player_id"]]
    for i in range(2, player_count + 1):
        player_ids.append(manager.join_game(created["short_code"], f"P{i}")["player_id"])
    manager.deal_roles(created["game_id"], role_config=role_config)
    return created["game_id"], player_ids


def test_concurrent_advance_resolves_night_once(manager: GameManager) -> None:
    game_id, players = _make_dealt_game(manager, {"robber": 1, "werewolf": 1, "villager": 5}, player_count=4)
    robber, wolf = players[0], players[1]
    manager.record_action(robber, wolf)

    barrier = threading.Barrier(2)

    def advance() -> dict:
        barrier.wait()
        return manager.advance_phase(game_id, "day")

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda _: advance(), range(2)))

    assert sorted(r["applied"] for r in results) == [False, True]
    snapshot = manager.repository.get_snapshot(game_id)
    assert snapshot.phase == Phase.DAY
    assert snapshot.players[robber].role == Role.WEREWOLF
    assert snapshot.players[wolf].role == Role.ROBBER
    swaps = [e for r in results for e in r["events"] if e["event_type"] == "swap"]
    assert len(swaps) == 1


def test_stale_source_state_is_a_noop(manager: GameManager) -> None:
    game_id, _ = _make_dealt_game(manager, {"werewolf": 1, "villager": 5}, player_count=3)
    calls = []

    def apply(snapshot) -> dict:
        calls.append(snapshot.game_id)
        return {}

    # the game already left the lobby; a caller still holding that view loses
    assert manager.guard.run(game_id, MachineState.LOBBY, apply) is None
    assert calls == []

    assert manager.guard.run(game_id, MachineState.NIGHT, apply) == {}
    assert calls == [game_id]


def test_failed_transition_rolls_back(manager: GameManager) -> None:
    game_id, _ = _make_dealt_game(manager, {"werewolf": 1, "villager": 5}, player_count=3)
    before = manager.repository.get_snapshot(game_id)

    def apply(snapshot) -> dict:
        snapshot.phase = Phase.DAY
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        manager.guard.run(game_id, MachineState.NIGHT, apply)

    after = manager.repository.get_snapshot(game_id)
    assert after.phase == Phase.NIGHT
    assert after.phase_version == before.phase_version


def test_illegal_transitions_are_ignored(manager: GameManager) -> None:
    created = manager.create_game("P1")
    game_id = created["game_id"]

    for requested in ("night", "day", "morning", "dusk"):
        result = manager.advance_phase(game_id, requested)
        assert result["applied"] is False
        assert result["state"] == "lobby"

    manager.join_game(created["short_code"], "P2")
    manager.deal_roles(game_id, role_config={"werewolf": 1, "villager": 4})
    assert manager.advance_phase(game_id, "night")["applied"] is False
    assert manager.advance_phase(game_id, "lobby")["applied"] is False


def test_morning_sits_between_night_and_day(manager: GameManager) -> None:
    game_id, _ = _make_dealt_game(manager, {"werewolf": 1, "villager": 5}, player_count=3)

    morning = manager.advance_phase(game_id, "morning")
    assert morning["applied"] is True
    assert morning["phase"] == "morning"

    assert manager.advance_phase(game_id, "night")["applied"] is False
    day = manager.advance_phase(game_id, "day")
    assert day["applied"] is True
    assert day["state"] == "day"
    assert manager.advance_phase(game_id, "day")["applied"] is False


def test_finished_game_is_terminal(manager: GameManager) -> None:
    game_id, players = _make_dealt_game(manager, {"werewolf": 1, "villager": 5}, player_count=3)
    manager.advance_phase(game_id, "day")
    for voter in players:
        manager.record_action(voter, players[0])

    ended = manager.advance_phase(game_id, "night")
    assert ended["applied"] is True
    assert ended["winner"] == "village"
    assert ended["state"] == "finished"

    for requested in ("night", "day", "morning", "lobby"):
        assert manager.advance_phase(game_id, requested)["applied"] is False
    with pytest.raises(ActionNotAllowedError):
        manager.record_action(players[1], players[2])


def test_actions_refused_outside_night_and_day(manager: GameManager) -> None:
    created = manager.create_game("P1")
    with pytest.raises(ActionNotAllowedError):
        manager.record_action(created["host_player_id"], "anyone")

    manager.join_game(created["short_code"], "P2")
    manager.deal_roles(created["game_id"], role_config={"werewolf": 1, "villager": 4})
    manager.advance_phase(created["game_id"], "morning")
    with pytest.raises(ActionNotAllowedError):
        manager.record_action(created["host_player_id"], "anyone")


def test_action_write_against_old_phase_is_rejected(manager: GameManager) -> None:
    game_id, players = _make_dealt_game(manager, {"werewolf": 1, "villager": 5}, player_count=3)
    old_version = manager.repository.get_snapshot(game_id).phase_version
    manager.advance_phase(game_id, "day")

    repository = manager.repository
    with repository.transaction() as session:
        stored = repository.store_player_action(session, game_id, players[0], players[1], None, old_version)
    assert stored is False

    snapshot = repository.get_snapshot(game_id)
    assert snapshot.status == GameStatus.PLAYING
    assert snapshot.players[players[0]].action_target is None


def test_phase_changed_error_is_a_conflict() -> None:
    assert PhaseChangedError.status_code == 409


def test_game_locks_are_dropped_when_idle(manager: GameManager) -> None:
    game_id, _ = _make_dealt_game(manager, {"werewolf": 1, "villager": 5}, player_count=3)

    with manager.guard.exclusive(game_id):
        assert game_id in manager.guard._locks
    manager.advance_phase(game_id, "day")
    manager.reset_game(game_id)
    gc.collect()

    assert game_id not in manager.guard._locks
