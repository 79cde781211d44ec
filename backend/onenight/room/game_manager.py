from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from onenight.config.config_loader import list_presets
from onenight.core.errors import (
    ActionNotAllowedError,
    GameAlreadyStartedError,
    GameNotFoundError,
    PhaseChangedError,
)
from onenight.core.game_config import GameConfig, default_game_config
from onenight.core.models import GameSnapshot, Phase
from onenight.engine.game_engine import GameEngine
from onenight.engine.roster import RosterBuilder
from onenight.engine.states import MachineState, Resolution, machine_state, parse_requested_state, transition_for
from onenight.engine.transition_guard import TransitionGuard
from onenight.storage.repository import SQLRepository

logger = logging.getLogger("uvicorn.error")

_SHORT_CODE_ATTEMPTS = 5


class GameManager:
    """Service boundary: every caller-facing game operation goes through here."""

    def __init__(
        self,
        repository: Optional[SQLRepository] = None,
        config: Optional[GameConfig] = None,
        roster: Optional[RosterBuilder] = None,
    ) -> None:
        self.config = config or default_game_config()
        self.repository = repository or SQLRepository(self.config.database_url)
        self.guard = TransitionGuard(self.repository)
        self.roster = roster or RosterBuilder()

    def _engine(self, snapshot: GameSnapshot) -> GameEngine:
        return GameEngine(snapshot, config=self.config, roster=self.roster)

    def create_game(self, host_name: Optional[str] = None) -> dict:
        game_id: Optional[str] = None
        short_code = ""
        for _ in range(_SHORT_CODE_ATTEMPTS):
            short_code = uuid.uuid4().hex[:6].upper()
            try:
                game_id = self.repository.create_game(short_code)
                break
            except IntegrityError:
                logger.info("[Create] short code collision code=%s, retrying", short_code)
        if game_id is None:
            raise RuntimeError("could not allocate a unique short code")

        host_player_id = None
        if host_name:
            host_player_id = self._add_player(game_id, host_name, is_host=True)

        logger.info("[Create] game_id=%s code=%s host=%s", game_id, short_code, host_player_id)
        return {"game_id": game_id, "short_code": short_code, "host_player_id": host_player_id}

    def join_game(self, short_code: str, name: str) -> dict:
        game_id = self.repository.find_game_id_by_code(short_code.strip().upper())
        if not game_id:
            raise GameNotFoundError(short_code)
        player_id = self._add_player(game_id, name, is_host=False)
        logger.info("[Join] game_id=%s player_id=%s name=%s", game_id, player_id, name)
        return {"game_id": game_id, "player_id": player_id}

    def _add_player(self, game_id: str, name: str, is_host: bool) -> str:
        with self.guard.exclusive(game_id):
            with self.repository.transaction() as session:
                # the claim locks the game row so a concurrent deal sees this player or refuses the join
                if not self.repository.claim_transition(session, game_id, MachineState.LOBBY):
                    # unknown game raises not-found here
                    self.repository.load_snapshot(session, game_id)
                    raise GameAlreadyStartedError()
                return self.repository.add_player(session, game_id, name, is_host=is_host)

    def kick_player(self, game_id: str, player_id: str) -> dict:
        with self.guard.exclusive(game_id):
            with self.repository.transaction() as session:
                claimed = self.repository.claim_transition(session, game_id, MachineState.LOBBY)
                if not claimed:
                    claimed = self.repository.claim_transition(session, game_id, MachineState.FINISHED)
                if not claimed:
                    self.repository.load_snapshot(session, game_id)
                    raise ActionNotAllowedError("players cannot be removed while a game is running")
                self.repository.remove_player(session, game_id, player_id)
        logger.info("[Kick] game_id=%s player_id=%s", game_id, player_id)
        return {"game_id": game_id, "player_id": player_id, "removed": True}

    def deal_roles(
        self,
        game_id: str,
        role_config: Optional[Mapping[str, Any]] = None,
        preset: Optional[str] = None,
    ) -> dict:
        self.repository.get_snapshot(game_id)

        def apply(snapshot: GameSnapshot) -> dict:
            engine = self._engine(snapshot)
            summary = engine.deal(role_config=role_config, preset=preset)
            return {
                "game_id": snapshot.game_id,
                "player_count": len(snapshot.players),
                "center_card_count": summary.center_card_count,
                "distribution": {role.value: count for role, count in summary.distribution.items()},
                "warnings": list(summary.warnings),
                "wake_order": engine.wake_order(),
            }

        result = self.guard.run(game_id, MachineState.LOBBY, apply)
        if result is None:
            raise GameAlreadyStartedError()
        for warning in result["warnings"]:
            logger.warning("[Deal] game_id=%s %s", game_id, warning)
        logger.info(
            "[Deal] game_id=%s players=%s center_cards=%s",
            game_id,
            result["player_count"],
            result["center_card_count"],
        )
        return result

    def record_action(
        self,
        player_id: str,
        target_id: Optional[str] = None,
        target_id2: Optional[str] = None,
    ) -> dict:
        with self.repository.transaction() as session:
            game_id = self.repository.game_id_for_player(session, player_id)
            snapshot = self.repository.load_snapshot(session, game_id)
            engine = self._engine(snapshot)
            state = engine.state
            if state not in {MachineState.NIGHT, MachineState.DAY}:
                raise ActionNotAllowedError(f"no actions are accepted while the game is in {state.value}")

            revealed = engine.submit_action(player_id, target_id, target_id2)
            player = snapshot.players[player_id]
            stored = self.repository.store_player_action(
                session,
                game_id,
                player_id,
                player.action_target,
                player.action_target_secondary,
                snapshot.phase_version,
            )
            if not stored:
                raise PhaseChangedError()

        logger.info("[Action] game_id=%s player_id=%s state=%s", game_id, player_id, state.value)
        return {
            "game_id": game_id,
            "player_id": player_id,
            "phase": state.value,
            "revealed": revealed,
        }

    def advance_phase(self, game_id: str, requested_next_phase: str) -> dict:
        snapshot = self.repository.get_snapshot(game_id)
        current = machine_state(snapshot.status, snapshot.phase)
        requested = parse_requested_state(requested_next_phase)
        resolution = transition_for(current, requested) if requested else None

        if resolution is None or resolution == Resolution.DEAL:
            # lobby -> night only happens through deal_roles
            logger.info(
                "[Phase] ignored game_id=%s current=%s requested=%s",
                game_id,
                current.value,
                requested_next_phase,
            )
            return self._phase_result(game_id, applied=False)

        def apply(snapshot: GameSnapshot) -> dict:
            engine = self._engine(snapshot)
            outcome: Dict[str, Any] = {"eliminated_player_id": None, "winner": None}
            if resolution == Resolution.NIGHT:
                night = engine.resolve_night(Phase(requested.value))
                outcome["eliminated_player_id"] = night.victim_id
            elif resolution == Resolution.DAY:
                day = engine.resolve_day()
                outcome["eliminated_player_id"] = day.victim_id
                outcome["winner"] = day.winner.value if day.winner else None
            else:
                engine.enter_phase(Phase(requested.value))
            outcome["events"] = list(snapshot.action_audit_log)
            return outcome

        outcome = self.guard.run(game_id, current, apply)
        if outcome is None:
            logger.info("[Phase] lost race game_id=%s from=%s to=%s", game_id, current.value, requested.value)
            return self._phase_result(game_id, applied=False)

        logger.info(
            "[Phase] game_id=%s %s -> %s eliminated=%s winner=%s",
            game_id,
            current.value,
            requested.value,
            outcome["eliminated_player_id"],
            outcome["winner"],
        )
        return self._phase_result(game_id, applied=True, **outcome)

    def _phase_result(self, game_id: str, applied: bool, **outcome: Any) -> dict:
        snapshot = self.repository.get_snapshot(game_id)
        return {
            "game_id": game_id,
            "applied": applied,
            "status": snapshot.status.value,
            "phase": snapshot.phase.value,
            "state": machine_state(snapshot.status, snapshot.phase).value,
            "eliminated_player_id": outcome.get("eliminated_player_id"),
            "winner": outcome.get("winner") or (snapshot.winner.value if snapshot.winner else None),
            "events": outcome.get("events", []),
        }

    def reset_game(self, game_id: str) -> dict:
        with self.guard.exclusive(game_id):
            with self.repository.transaction() as session:
                self.repository.bump_version(session, game_id)
                snapshot = self.repository.load_snapshot(session, game_id)
                self._engine(snapshot).reset()
                self.repository.store_snapshot(session, snapshot)
        logger.info("[Reset] game_id=%s", game_id)
        return self.state(game_id)

    def state(self, game_id: str) -> dict:
        snapshot = self.repository.get_snapshot(game_id)
        return self._engine(snapshot).public_state()

    def player_view(self, player_id: str) -> dict:
        with self.repository.session_factory() as session:
            game_id = self.repository.game_id_for_player(session, player_id)
            snapshot = self.repository.load_snapshot(session, game_id)
        return self._engine(snapshot).player_view(player_id)

    def list_presets(self) -> dict:
        return list_presets()

    def health_summary(self) -> dict:
        counts = self.repository.count_games_by_status()
        return {
            "games": sum(counts.values()),
            "by_status": counts,
        }
