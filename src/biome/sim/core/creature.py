from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pygame.math import Vector3

from ...config import SimulationConfig, SpeciesConfig


class Species(str, Enum):
    GRAZER = "grazer"
    FLOCKER = "flocker"
    PREDATOR = "predator"
    AERIAL = "aerial"


class BirdState(str, Enum):
    CRUISING = "cruising"
    DIVING = "diving"
    EATING = "eating"


class TargetKind(str, Enum):
    FOOD = "food"
    CREATURE = "creature"


@dataclass(slots=True)
class Food:
    id: int
    position: Vector3

    @property
    def x(self) -> float:
        return self.position.x

    @property
    def z(self) -> float:
        return self.position.z


@dataclass(slots=True)
class Creature:
    id: int
    species: Species
    position: Vector3
    velocity: Vector3
    energy: float
    size: float
    speed: float
    sense: float
    field_of_view: float
    heading: Vector3 = field(default_factory=lambda: Vector3(0.0, 0.0, 1.0))
    generation: int = 0
    state: Optional[BirdState] = None
    target_id: Optional[int] = None
    target_kind: Optional[TargetKind] = None

    @property
    def terrestrial(self) -> bool:
        return self.species is not Species.AERIAL

    @property
    def alive(self) -> bool:
        return self.energy > 0

    def clear_target(self) -> None:
        self.state = BirdState.CRUISING
        self.target_id = None
        self.target_kind = None


@dataclass(frozen=True, slots=True)
class VisionCone:
    """Perception cone dimensions for the debug overlay."""

    radius: float
    length: float
    field_of_view: float

    @classmethod
    def for_creature(cls, creature: Creature) -> "VisionCone":
        return cls(radius=creature.sense * 0.4, length=creature.sense, field_of_view=creature.field_of_view)


def species_config(config: SimulationConfig, species: Species) -> SpeciesConfig:
    return getattr(config, species.value)
