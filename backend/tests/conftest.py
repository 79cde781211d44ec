from __future__ import annotations

from typing import List

import pytest

from onenight.core.game_config import GameConfig
from onenight.core.models import Role
from onenight.engine.roster import RosterBuilder
from onenight.room.game_manager import GameManager
from onenight.storage.repository import SQLRepository


def _keep_deck_order(pool: List[Role]) -> None:
    # deals the deck exactly as configured: players first, then the center
    return None


@pytest.fixture
def repository(tmp_path) -> SQLRepository:
    return SQLRepository(f"sqlite:///{tmp_path / 'onenight.db'}")


@pytest.fixture
def manager(repository: SQLRepository) -> GameManager:
    return GameManager(
        repository=repository,
        config=GameConfig(),
        roster=RosterBuilder(shuffle=_keep_deck_order),
    )
