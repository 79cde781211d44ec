import os
from dataclasses import dataclass, field
from typing import Optional

from onenight.core.models import Phase

DEFAULT_DATABASE_URL = "sqlite:///./data/onenight.db"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    return int(raw)


@dataclass(slots=True)
class TimeoutConfig:
    night_seconds: int = 120
    morning_seconds: int = 15
    day_seconds: int = 300

    def seconds_for(self, phase: Phase) -> Optional[int]:
        if phase == Phase.NIGHT:
            return self.night_seconds
        if phase == Phase.MORNING:
            return self.morning_seconds
        if phase == Phase.DAY:
            return self.day_seconds
        return None


@dataclass(slots=True)
class RuleConfig:
    vote_tie_no_elimination: bool = False


@dataclass(slots=True)
class GameConfig:
    database_url: str = DEFAULT_DATABASE_URL
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    center_card_surplus: int = 3
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    rules: RuleConfig = field(default_factory=RuleConfig)


def default_game_config() -> GameConfig:
    surplus = _env_int("ONENIGHT_CENTER_CARD_SURPLUS", 3)
    if surplus < 0:
        raise ValueError("ONENIGHT_CENTER_CARD_SURPLUS must be >= 0")
    return GameConfig(
        database_url=os.getenv("ONENIGHT_DATABASE_URL") or DEFAULT_DATABASE_URL,
        host=os.getenv("ONENIGHT_HOST") or "0.0.0.0",
        port=_env_int("ONENIGHT_PORT", 8000),
        reload=_env_flag("ONENIGHT_BACKEND_RELOAD", False),
        center_card_surplus=surplus,
        timeout=TimeoutConfig(
            night_seconds=_env_int("ONENIGHT_NIGHT_SECONDS", 120),
            morning_seconds=_env_int("ONENIGHT_MORNING_SECONDS", 15),
            day_seconds=_env_int("ONENIGHT_DAY_SECONDS", 300),
        ),
        rules=RuleConfig(
            vote_tie_no_elimination=_env_flag("ONENIGHT_VOTE_TIE_NO_ELIMINATION", False),
        ),
    )
