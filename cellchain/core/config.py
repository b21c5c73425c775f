"""
Configuration system for the Cell Chain Simulator.

Provides a hierarchical dataclass-based config with JSON serialization,
validation, and sensible defaults for all simulation parameters.
"""

from __future__ import annotations

import json
import warnings
from copy import deepcopy
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Sub-config dataclasses (grouped by domain)
# ---------------------------------------------------------------------------

@dataclass
class GridConfig:
    """Grid size and initial population."""
    width: int = 20
    height: int = 20
    food_count: int = 150
    cell_count: int = 20
    max_value: int = 9
    seed: Optional[int] = None  # None = seeded from OS entropy

    def validate(self) -> list[str]:
        errors = []
        if not (1 <= self.width <= 100):
            errors.append(f"grid.width must be in [1, 100], got {self.width}")
        if not (1 <= self.height <= 100):
            errors.append(f"grid.height must be in [1, 100], got {self.height}")
        if not (1 <= self.max_value <= 99):
            errors.append(f"grid.max_value must be in [1, 99], got {self.max_value}")
        if self.food_count < 0:
            errors.append(f"grid.food_count must be >= 0, got {self.food_count}")
        if self.cell_count < 0:
            errors.append(f"grid.cell_count must be >= 0, got {self.cell_count}")
        if self.food_count + self.cell_count > self.width * self.height:
            errors.append(
                f"grid: food_count + cell_count ({self.food_count + self.cell_count}) "
                f"exceeds grid area ({self.width * self.height})"
            )
        return errors


@dataclass
class RulesConfig:
    """Tick rules applied by the engine."""
    cells_die: bool = False
    initial_energy: int = 3
    allow_random_move: bool = False
    cannibal_mode: bool = False

    def validate(self) -> list[str]:
        errors = []
        if not (1 <= self.initial_energy <= 100):
            errors.append(f"rules.initial_energy must be in [1, 100], got {self.initial_energy}")
        return errors


@dataclass
class RunConfig:
    """Continuous-run and output settings."""
    delay_ms: int = 200
    max_ticks: int = 1000
    output_dir: str = "runs"
    log_level: str = "INFO"

    def validate(self) -> list[str]:
        errors = []
        if self.delay_ms < 10:
            errors.append(f"run.delay_ms must be >= 10, got {self.delay_ms}")
        if self.max_ticks < 1:
            errors.append(f"run.max_ticks must be >= 1, got {self.max_ticks}")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            errors.append(f"run.log_level must be DEBUG, INFO, WARNING or ERROR, got '{self.log_level}'")
        return errors


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass
class SimConfig:
    """
    Top-level simulation configuration.

    Load from JSON with `load_config()`, validate with `validate()`.
    """
    grid: GridConfig = field(default_factory=GridConfig)
    rules: RulesConfig = field(default_factory=RulesConfig)
    run: RunConfig = field(default_factory=RunConfig)

    def validate(self) -> list[str]:
        """Validate all config sections. Returns list of error messages (empty = valid)."""
        errors = []
        for f in fields(self):
            sub = getattr(self, f.name)
            if hasattr(sub, "validate"):
                errors.extend(sub.validate())
        return errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to nested dict for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimConfig:
        """Create SimConfig from nested dict, merging with defaults."""
        config = cls()
        _merge_into_dataclass(config, data)
        return config

    def copy(self) -> SimConfig:
        """Deep copy of this config."""
        return deepcopy(self)


# ---------------------------------------------------------------------------
# JSON I/O helpers
# ---------------------------------------------------------------------------

def _merge_into_dataclass(target: Any, source: dict[str, Any]) -> None:
    """
    Recursively merge a dict into a dataclass instance.
    Unknown keys emit a warning but don't raise.
    """
    if not isinstance(source, dict):
        return

    known_fields = {f.name for f in fields(target)}
    for key, value in source.items():
        if key not in known_fields:
            warnings.warn(
                f"Unknown config key '{key}' in section {type(target).__name__}, ignored.",
                UserWarning,
                stacklevel=3,
            )
            continue

        current = getattr(target, key)

        if hasattr(current, "__dataclass_fields__") and isinstance(value, dict):
            _merge_into_dataclass(current, value)
        else:
            setattr(target, key, value)


def load_config(path: str | Path) -> SimConfig:
    """
    Load config from a JSON file. Missing fields use defaults.

    Args:
        path: Path to JSON config file.

    Returns:
        Validated SimConfig instance.

    Raises:
        FileNotFoundError: If path doesn't exist.
        json.JSONDecodeError: If JSON is malformed.
        ValueError: If config values are invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    config = SimConfig.from_dict(data)

    errors = config.validate()
    if errors:
        msg = "Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(msg)

    return config


def save_config(config: SimConfig, path: str | Path) -> None:
    """Save config to JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)


def get_default_config() -> SimConfig:
    """Return a fresh default config (all defaults, validated)."""
    config = SimConfig()
    errors = config.validate()
    assert not errors, f"Default config is invalid: {errors}"
    return config


def apply_param_override(config: SimConfig, dotted_key: str, value: Any) -> None:
    """
    Apply a single parameter override using dot notation.

    Example:
        apply_param_override(config, "grid.cell_count", 40)
        apply_param_override(config, "rules.cannibal_mode", True)

    Args:
        config: SimConfig to modify in-place.
        dotted_key: Dot-separated path like "grid.width".
        value: New value to set.

    Raises:
        KeyError: If the path doesn't exist.
    """
    parts = dotted_key.split(".")
    obj = config
    for part in parts[:-1]:
        if not hasattr(obj, part):
            raise KeyError(f"Config path '{dotted_key}' invalid: '{part}' not found in {type(obj).__name__}")
        obj = getattr(obj, part)

    final_key = parts[-1]
    if not hasattr(obj, final_key):
        raise KeyError(f"Config path '{dotted_key}' invalid: '{final_key}' not found in {type(obj).__name__}")

    setattr(obj, final_key, value)
