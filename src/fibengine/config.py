"""Engine configuration loaded from YAML."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from fibengine.errors import ConfigError

# Highest index the device boundary accepts. Native results are only valid
# up to index 92; the bound is left at 100 so overflow stays observable.
MAX_LENGTH = 100


@dataclass(frozen=True)
class EngineConfig:
    """Settings shared by the dispatcher and the device boundary.

    Attributes:
        max_length: Upper clamp for device positions (Fibonacci indices).
        max_limbs: Ceiling on limbs per big integer, ``None`` for unbounded.
    """

    max_length: int = MAX_LENGTH
    max_limbs: int | None = None


def load_engine_config(config_path: Path | str) -> EngineConfig:
    """Load engine settings from a YAML file.

    Missing keys fall back to the ``EngineConfig`` defaults.

    Args:
        config_path: Path to a YAML mapping.

    Returns:
        EngineConfig with the file's values applied.

    Raises:
        ConfigError: If the file is unreadable or holds invalid values.
    """
    path = Path(config_path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot load {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")

    # Engine settings may live at top level or under an "engine" key
    section = data.get("engine", data)
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: 'engine' must be a mapping")

    max_length = section.get("max_length", MAX_LENGTH)
    max_limbs = section.get("max_limbs")

    if not isinstance(max_length, int) or max_length < 0:
        raise ConfigError(f"max_length must be a non-negative integer, got {max_length!r}")
    if max_limbs is not None and (not isinstance(max_limbs, int) or max_limbs < 1):
        raise ConfigError(f"max_limbs must be a positive integer, got {max_limbs!r}")

    return EngineConfig(max_length=max_length, max_limbs=max_limbs)
