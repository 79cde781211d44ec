from __future__ import annotations

from contextlib import contextmanager
from threading import RLock
from typing import Callable, Iterator, Optional, TypeVar
from weakref import WeakValueDictionary

from onenight.core.models import GameSnapshot
from onenight.engine.states import MachineState
from onenight.storage.repository import SQLRepository

T = TypeVar("T")


class TransitionGuard:
    """Runs a phase edge at most once per game.

    Two layers: a per-game lock serializes callers inside this process, and the
    compare-and-set claim on the game row (``phase_version``) rejects a transition
    whose source state is gone by the time it commits, which also covers several
    processes sharing one database. The whole edge commits or rolls back as one
    transaction.
    """

    def __init__(self, repository: SQLRepository) -> None:
        self.repository = repository
        # entries drop out once no caller holds the lock
        self._locks: WeakValueDictionary[str, RLock] = WeakValueDictionary()
        self._lock = RLock()

    def _game_lock(self, game_id: str) -> RLock:
        with self._lock:
            lock = self._locks.get(game_id)
            if lock is None:
                lock = RLock()
                self._locks[game_id] = lock
            return lock

    @contextmanager
    def exclusive(self, game_id: str) -> Iterator[None]:
        with self._game_lock(game_id):
            yield

    def run(
        self,
        game_id: str,
        source: MachineState,
        apply: Callable[[GameSnapshot], T],
    ) -> Optional[T]:
        """Apply ``apply`` to the game if it is still in ``source``; ``None`` means the race was lost."""
        with self.exclusive(game_id):
            with self.repository.transaction() as session:
                if not self.repository.claim_transition(session, game_id, source):
                    return None
                snapshot = self.repository.load_snapshot(session, game_id)
                result = apply(snapshot)
                self.repository.store_snapshot(session, snapshot)
                return result
