from functools import lru_cache

from onenight.room.game_manager import GameManager


@lru_cache(maxsize=1)
def get_game_manager() -> GameManager:
    return GameManager()
