from __future__ import annotations


class GameError(ValueError):
    """Caller-facing validation error. Nothing has been mutated when it is raised."""

    status_code = 400


class GameNotFoundError(GameError):
    status_code = 404

    def __init__(self, game_id: str) -> None:
        super().__init__(f"game not found: {game_id}")


class PlayerNotFoundError(GameError):
    status_code = 404

    def __init__(self, player_id: str) -> None:
        super().__init__(f"player not found: {player_id}")


class TargetNotFoundError(GameError):
    def __init__(self, target_id: str) -> None:
        super().__init__(f"target not found: {target_id}")


class NoPlayersError(GameError):
    def __init__(self) -> None:
        super().__init__("no players in game")


class ConfigRequiredError(GameError):
    def __init__(self) -> None:
        super().__init__("role config or preset is required")


class InvalidRoleConfigError(GameError):
    pass


class MissingTargetError(GameError):
    pass


class InvalidTargetError(GameError):
    pass


class PlayerDeadError(GameError):
    def __init__(self) -> None:
        super().__init__("dead player cannot act")


class ActionNotAllowedError(GameError):
    status_code = 409


class GameAlreadyStartedError(GameError):
    status_code = 409

    def __init__(self) -> None:
        super().__init__("game already started; reset it to the lobby first")


class PhaseChangedError(GameError):
    status_code = 409

    def __init__(self) -> None:
        super().__init__("phase changed before the action was stored")


class RosterCorruptedError(RuntimeError):
    """Stored game data violates an engine invariant. Never caught by the engine."""
