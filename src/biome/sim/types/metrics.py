from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(slots=True)
class SpeciesStats:
    count: int = 0
    mean_speed: Optional[float] = None
    mean_sense: Optional[float] = None


@dataclass(slots=True)
class TickStats:
    tick: int
    creatures: int
    food: int
    births: int = 0
    deaths: int = 0
    hunted: int = 0
    food_eaten: int = 0
    species: Dict[str, SpeciesStats] = field(default_factory=dict)
