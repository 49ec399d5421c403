from __future__ import annotations

import math
from dataclasses import MISSING, Field, dataclass, field, fields
from pathlib import Path
from typing import Any, List

import yaml

OBSTACLE_SHAPES = ("rectangle", "circle")


class ConfigError(ValueError):
    """Raised when a configuration mapping or value is invalid."""


@dataclass
class WorldConfig:
    width: float = 800.0
    depth: float = 800.0


@dataclass
class FoodConfig:
    initial_count: int = 150
    energy: float = 25.0
    # Spawn one food item every floor(100 / regen_rate) ticks.
    regen_rate: float = 20.0


@dataclass
class SpeciesConfig:
    initial_count: int = 25
    color: int = 0xA0A0A0
    initial_energy: float = 100.0
    reproduce_energy: float = 200.0
    energy_decay: float = 0.15
    size: float = 2.5
    initial_speed: float = 1.5
    initial_sense: float = 70.0
    field_of_view: float = math.pi / 2
    wander_jitter: float = 0.2
    min_speed: float = 0.5
    min_sense: float = 10.0


@dataclass
class FlockerConfig(SpeciesConfig):
    initial_count: int = 15
    color: int = 0xE0E0E0
    initial_energy: float = 120.0
    reproduce_energy: float = 250.0
    energy_decay: float = 0.2
    size: float = 3.5
    initial_speed: float = 1.2
    initial_sense: float = 60.0
    flock_radius: float = 50.0
    separation_weight: float = 0.05
    alignment_weight: float = 0.03
    cohesion_weight: float = 0.01
    food_steer_weight: float = 0.05


@dataclass
class PredatorConfig(SpeciesConfig):
    initial_count: int = 4
    color: int = 0xD46A34
    initial_energy: float = 120.0
    reproduce_energy: float = 250.0
    energy_decay: float = 0.25
    size: float = 4.0
    initial_speed: float = 1.8
    initial_sense: float = 100.0
    field_of_view: float = math.pi / 1.5
    prey_energy_bonus: float = 80.0
    # Aerial creatures below this altitude can be caught from the ground.
    prey_altitude_limit: float = 5.0


@dataclass
class AerialConfig(SpeciesConfig):
    initial_count: int = 6
    color: int = 0x57C4E5
    initial_energy: float = 100.0
    reproduce_energy: float = 180.0
    energy_decay: float = 0.2
    size: float = 3.0
    initial_speed: float = 2.0
    initial_sense: float = 120.0
    field_of_view: float = math.pi
    prey_energy_bonus: float = 60.0
    cruise_altitude: float = 50.0
    climb_gain: float = 0.05
    dive_gain: float = 0.1
    landing_altitude: float = 1.0


@dataclass
class MutationConfig:
    rate: float = 0.1
    max_factor: float = 0.2


@dataclass
class WaterConfig:
    enabled: bool = True
    count: int = 3
    shape_types: List[str] = field(default_factory=lambda: list(OBSTACLE_SHAPES))
    min_width: float = 60.0
    max_width: float = 160.0
    min_depth: float = 60.0
    max_depth: float = 160.0
    min_radius: float = 30.0
    max_radius: float = 80.0
    color: int = 0x3A7BD5


@dataclass
class SimulationConfig:
    tick_duration_ms: float = 33.0
    frame_interval_ms: float = 16.0
    seed: int = 42
    config_version: str = "v1"
    world: WorldConfig = field(default_factory=WorldConfig)
    food: FoodConfig = field(default_factory=FoodConfig)
    grazer: SpeciesConfig = field(default_factory=SpeciesConfig)
    flocker: FlockerConfig = field(default_factory=FlockerConfig)
    predator: PredatorConfig = field(default_factory=PredatorConfig)
    aerial: AerialConfig = field(default_factory=AerialConfig)
    mutation: MutationConfig = field(default_factory=MutationConfig)
    water: WaterConfig = field(default_factory=WaterConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)

    def food_regen_interval(self) -> int:
        """Ticks between food spawns, or 0 when regeneration is off."""
        if self.food.regen_rate <= 0:
            return 0
        return max(1, int(100 // self.food.regen_rate))


_SECTIONS = {
    "world": WorldConfig,
    "food": FoodConfig,
    "grazer": SpeciesConfig,
    "flocker": FlockerConfig,
    "predator": PredatorConfig,
    "aerial": AerialConfig,
    "mutation": MutationConfig,
    "water": WaterConfig,
}


def _build_section(name: str, cls: type, raw: Any) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"unknown keys in '{name}': {', '.join(unknown)}")
    return cls(**raw)


def load_config(raw: dict) -> SimulationConfig:
    if not isinstance(raw, dict):
        raise ConfigError("configuration root must be a mapping")
    sections = {name: _build_section(name, cls, raw.get(name)) for name, cls in _SECTIONS.items()}
    top_level = {f.name for f in fields(SimulationConfig)} - set(_SECTIONS)
    unknown = sorted(set(raw) - top_level - set(_SECTIONS))
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
    sim_values = {k: v for k, v in raw.items() if k in top_level}
    config = SimulationConfig(**sections, **sim_values)
    validate_config(config)
    return config


def update_section(config: SimulationConfig, section: str, values: dict) -> None:
    """Apply a partial update in place, e.g. from the control API."""
    target = config if section == "simulation" else getattr(config, section, None)
    if target is None or section not in {"simulation", *_SECTIONS}:
        raise ConfigError(f"unknown configuration section '{section}'")
    known = {f.name for f in fields(target)} - set(_SECTIONS)
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"unknown keys in '{section}': {', '.join(unknown)}")
    previous = {key: getattr(target, key) for key in values}
    for key, value in values.items():
        setattr(target, key, value)
    try:
        validate_config(config)
    except Exception:
        for key, value in previous.items():
            setattr(target, key, value)
        raise


def _field_default(f: Field) -> Any:
    return f.default_factory() if f.default is MISSING else f.default


def _check_types(name: str, section: Any) -> None:
    for f in fields(section):
        if f.name in _SECTIONS:
            continue
        value = getattr(section, f.name)
        expected = _field_default(f)
        if isinstance(expected, bool):
            ok = isinstance(value, bool)
        elif isinstance(expected, int):
            ok = isinstance(value, int) and not isinstance(value, bool)
        elif isinstance(expected, float):
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        elif isinstance(expected, list):
            ok = isinstance(value, list) and all(isinstance(item, str) for item in value)
        else:
            ok = isinstance(value, type(expected))
        if not ok:
            raise ConfigError(f"{name}.{f.name} must be {type(expected).__name__}, got {type(value).__name__}")


def validate_config(config: SimulationConfig) -> None:
    _check_types("simulation", config)
    for name in _SECTIONS:
        _check_types(name, getattr(config, name))
    if config.tick_duration_ms <= 0:
        raise ConfigError("tick_duration_ms must be positive")
    if config.frame_interval_ms <= 0:
        raise ConfigError("frame_interval_ms must be positive")
    if config.world.width <= 0 or config.world.depth <= 0:
        raise ConfigError("world width and depth must be positive")
    if config.food.initial_count < 0:
        raise ConfigError("food.initial_count must not be negative")
    for name in ("grazer", "flocker", "predator", "aerial"):
        species = getattr(config, name)
        if species.initial_count < 0:
            raise ConfigError(f"{name}.initial_count must not be negative")
        if species.size <= 0:
            raise ConfigError(f"{name}.size must be positive")
        if species.field_of_view <= 0:
            raise ConfigError(f"{name}.field_of_view must be positive")
    if not 0.0 <= config.mutation.rate <= 1.0:
        raise ConfigError("mutation.rate must be within [0, 1]")
    if config.mutation.max_factor < 0:
        raise ConfigError("mutation.max_factor must not be negative")
    water = config.water
    if water.count < 0:
        raise ConfigError("water.count must not be negative")
    unknown_shapes = [shape for shape in water.shape_types if shape not in OBSTACLE_SHAPES]
    if unknown_shapes:
        raise ConfigError(f"unknown water shapes: {', '.join(unknown_shapes)}")
    if not water.enabled or water.count == 0:
        return
    if not water.shape_types:
        raise ConfigError("water.shape_types must not be empty")
    for low, high, label in (
        (water.min_width, water.max_width, "width"),
        (water.min_depth, water.max_depth, "depth"),
        (water.min_radius, water.max_radius, "radius"),
    ):
        if low <= 0 or low > high:
            raise ConfigError(f"water {label} range must satisfy 0 < min <= max")
    if water.max_width > config.world.width or water.max_depth > config.world.depth:
        raise ConfigError("water rectangles must fit inside the world")
    if 2 * water.max_radius > min(config.world.width, config.world.depth):
        raise ConfigError("water circles must fit inside the world")
