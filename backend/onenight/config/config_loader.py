from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from onenight.config.config_validator import ConfigValidator, ValidationResult
from onenight.core.errors import ConfigRequiredError, InvalidRoleConfigError

PRESETS_PATH = Path(__file__).resolve().parent / "role_presets.yaml"


def load_role_deck(
    player_count: int,
    role_config: Optional[Mapping[str, Any]] = None,
    preset: Optional[str] = None,
    surplus: int = 3,
) -> ValidationResult:
    if role_config:
        source: Mapping[str, Any] = role_config
    elif preset:
        source = load_preset(preset)["roles"]
    else:
        raise ConfigRequiredError()
    return ConfigValidator.validate_deck(source, player_count=player_count, surplus=surplus)


def load_preset(name: str) -> Dict[str, Any]:
    presets = _load_presets()
    node = presets.get(name)
    if not node:
        raise InvalidRoleConfigError(f"role preset not found: {name}")
    return node


def list_presets() -> Dict[str, Dict[str, Any]]:
    return {name: dict(node) for name, node in _load_presets().items()}


@lru_cache(maxsize=1)
def _load_presets() -> Dict[str, Dict[str, Any]]:
    raw = yaml.safe_load(PRESETS_PATH.read_text(encoding="utf-8")) or {}
    presets = raw.get("role_presets", {})
    result: Dict[str, Dict[str, Any]] = {}
    for name, node in presets.items():
        result[str(name)] = {
            "description": str(node.get("description", "")),
            "roles": {str(k): int(v) for k, v in dict(node.get("roles", {})).items()},
        }
    return result
