from onenight.config.config_loader import list_presets, load_preset, load_role_deck
from onenight.config.config_validator import ConfigValidator, ValidationResult

__all__ = ["list_presets", "load_preset", "load_role_deck", "ConfigValidator", "ValidationResult"]
