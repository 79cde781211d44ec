from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, Optional, Type, TypeVar

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, create_engine, func, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from onenight.core.errors import GameNotFoundError, PlayerNotFoundError, RosterCorruptedError
from onenight.core.game_config import DEFAULT_DATABASE_URL
from onenight.core.models import CenterCard, GameSnapshot, GameStatus, Phase, PlayerState, Winner
from onenight.engine.states import STORED_FORM, MachineState
from onenight.roles.catalog import parse_role

E = TypeVar("E", bound=Enum)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class GameRow(Base):
    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    short_code: Mapped[str] = mapped_column(String(12), unique=True, index=True)
    status: Mapped[str] = mapped_column(String(16), default=GameStatus.WAITING.value)
    phase: Mapped[str] = mapped_column(String(16), default=Phase.LOBBY.value)
    winner: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    phase_version: Mapped[int] = mapped_column(Integer, default=0)
    phase_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=_utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class PlayerRow(Base):
    __tablename__ = "players"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    game_id: Mapped[str] = mapped_column(ForeignKey("games.id"), index=True)
    seat: Mapped[int] = mapped_column(Integer, default=0)
    name: Mapped[str] = mapped_column(String(64))
    role: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    initial_role: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    is_host: Mapped[bool] = mapped_column(Boolean, default=False)
    is_alive: Mapped[bool] = mapped_column(Boolean, default=True)
    action_target: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    action_target_secondary: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    revealed_role: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class CenterCardRow(Base):
    __tablename__ = "center_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[str] = mapped_column(ForeignKey("games.id"), index=True)
    role: Mapped[str] = mapped_column(String(16))
    position: Mapped[str] = mapped_column(String(16))


def _parse_enum(enum_cls: Type[E], value: Optional[str]) -> Optional[E]:
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise RosterCorruptedError(f"invalid {enum_cls.__name__} in stored data: {value!r}") from exc


def _center_index(position: str) -> int:
    try:
        return int(position.rsplit("_", 1)[1])
    except (IndexError, ValueError) as exc:
        raise RosterCorruptedError(f"invalid center position in stored data: {position!r}") from exc


class SQLRepository:
    """Row store for games, players and center cards.

    Every method that takes a ``session`` runs inside the caller's transaction;
    the rest open and commit their own.
    """

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL) -> None:
        url = make_url(database_url)
        engine_kwargs: dict = {"future": True}
        if url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in {None, "", ":memory:"}:
                engine_kwargs["poolclass"] = StaticPool
            else:
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(database_url, **engine_kwargs)
        self.session_factory = sessionmaker(bind=self.engine, class_=Session, expire_on_commit=False)
        Base.metadata.create_all(self.engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        with self.session_factory.begin() as session:
            yield session

    def create_game(self, short_code: str) -> str:
        with self.transaction() as session:
            row = GameRow(short_code=short_code)
            session.add(row)
            session.flush()
            return row.id

    def find_game_id_by_code(self, short_code: str) -> Optional[str]:
        with self.session_factory() as session:
            return session.scalar(select(GameRow.id).where(GameRow.short_code == short_code))

    def add_player(self, session: Session, game_id: str, name: str, is_host: bool = False) -> str:
        last_seat = session.scalar(select(func.max(PlayerRow.seat)).where(PlayerRow.game_id == game_id))
        row = PlayerRow(
            game_id=game_id,
            name=name,
            is_host=is_host,
            seat=(last_seat or 0) + 1,
        )
        session.add(row)
        session.flush()
        return row.id

    def remove_player(self, session: Session, game_id: str, player_id: str) -> None:
        row = session.get(PlayerRow, player_id)
        if not row or row.game_id != game_id:
            raise PlayerNotFoundError(player_id)
        session.delete(row)

    def game_id_for_player(self, session: Session, player_id: str) -> str:
        game_id = session.scalar(select(PlayerRow.game_id).where(PlayerRow.id == player_id))
        if not game_id:
            raise PlayerNotFoundError(player_id)
        return game_id

    def claim_transition(self, session: Session, game_id: str, source: MachineState) -> bool:
        """Compare-and-set on the game row: bump ``phase_version`` only if the game is still in ``source``.

        Must be the first statement of the transaction so the row (or, on SQLite,
        the database) is write-locked before anything is read.
        """
        status, phase = STORED_FORM[source]
        stmt = update(GameRow).where(GameRow.id == game_id, GameRow.status == status.value)
        if phase is not None:
            stmt = stmt.where(GameRow.phase == phase.value)
        stmt = stmt.values(phase_version=GameRow.phase_version + 1).execution_options(synchronize_session=False)
        return session.execute(stmt).rowcount == 1

    def bump_version(self, session: Session, game_id: str) -> None:
        stmt = (
            update(GameRow)
            .where(GameRow.id == game_id)
            .values(phase_version=GameRow.phase_version + 1)
            .execution_options(synchronize_session=False)
        )
        if session.execute(stmt).rowcount != 1:
            raise GameNotFoundError(game_id)

    def store_player_action(
        self,
        session: Session,
        game_id: str,
        player_id: str,
        target_id: Optional[str],
        target_id2: Optional[str],
        expected_version: int,
    ) -> bool:
        current_version = select(GameRow.phase_version).where(GameRow.id == game_id).scalar_subquery()
        stmt = (
            update(PlayerRow)
            .where(PlayerRow.id == player_id, current_version == expected_version)
            .values(action_target=target_id, action_target_secondary=target_id2)
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1

    def get_snapshot(self, game_id: str) -> GameSnapshot:
        with self.session_factory() as session:
            return self.load_snapshot(session, game_id)

    def load_snapshot(self, session: Session, game_id: str) -> GameSnapshot:
        game = session.get(GameRow, game_id, populate_existing=True)
        if not game:
            raise GameNotFoundError(game_id)

        snapshot = GameSnapshot(
            game_id=game.id,
            short_code=game.short_code,
            status=_parse_enum(GameStatus, game.status),
            phase=_parse_enum(Phase, game.phase),
            winner=_parse_enum(Winner, game.winner),
            phase_version=game.phase_version,
            phase_started_at=game.phase_started_at,
            created_at=game.created_at,
        )

        players = session.scalars(
            select(PlayerRow)
            .where(PlayerRow.game_id == game_id)
            .order_by(PlayerRow.seat, PlayerRow.joined_at, PlayerRow.id)
            .execution_options(populate_existing=True)
        )
        for row in players:
            snapshot.players[row.id] = PlayerState(
                player_id=row.id,
                name=row.name,
                role=parse_role(row.role),
                initial_role=parse_role(row.initial_role),
                is_host=bool(row.is_host),
                alive=bool(row.is_alive),
                action_target=row.action_target,
                action_target_secondary=row.action_target_secondary,
                revealed_role=parse_role(row.revealed_role),
                joined_at=row.joined_at,
            )

        cards = session.scalars(
            select(CenterCardRow)
            .where(CenterCardRow.game_id == game_id)
            .execution_options(populate_existing=True)
        )
        for row in sorted(cards, key=lambda c: _center_index(c.position)):
            role = parse_role(row.role)
            if role is None:
                raise RosterCorruptedError(f"center card {row.position} has no role")
            snapshot.center_cards[row.position] = CenterCard(position=row.position, role=role)

        return snapshot

    def store_snapshot(self, session: Session, snapshot: GameSnapshot) -> None:
        game = session.get(GameRow, snapshot.game_id)
        if not game:
            raise GameNotFoundError(snapshot.game_id)
        game.status = snapshot.status.value
        game.phase = snapshot.phase.value
        game.winner = snapshot.winner.value if snapshot.winner else None
        game.phase_started_at = snapshot.phase_started_at

        rows = {
            row.id: row
            for row in session.scalars(select(PlayerRow).where(PlayerRow.game_id == snapshot.game_id))
        }
        for player in snapshot.players.values():
            row = rows.get(player.player_id)
            if row is None:
                continue
            row.role = player.role.value if player.role else None
            row.initial_role = player.initial_role.value if player.initial_role else None
            row.is_alive = player.alive
            row.action_target = player.action_target
            row.action_target_secondary = player.action_target_secondary
            row.revealed_role = player.revealed_role.value if player.revealed_role else None

        cards = {
            row.position: row
            for row in session.scalars(select(CenterCardRow).where(CenterCardRow.game_id == snapshot.game_id))
        }
        for position, row in cards.items():
            if position not in snapshot.center_cards:
                session.delete(row)
        for position, card in snapshot.center_cards.items():
            row = cards.get(position)
            if row is None:
                session.add(CenterCardRow(game_id=snapshot.game_id, position=position, role=card.role.value))
            else:
                row.role = card.role.value

    def count_games_by_status(self) -> Dict[str, int]:
        with self.session_factory() as session:
            rows = session.execute(select(GameRow.status, func.count()).group_by(GameRow.status))
            return {str(status): int(count) for status, count in rows}
