from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from ...config import SimulationConfig
from ...rng import DeterministicRng
from .creature import Creature, Food
from .geometry import Obstacle, WorldBounds


@dataclass(frozen=True)
class TickView:
    """Read-only picture of the world that creature updates work against.

    The tuples are taken once at the start of a tick, so additions and
    removals made by the simulation afterwards are never observed mid-pass.
    ``energy_at_start`` keeps each creature's energy from before any update
    ran, since the creatures themselves are mutated in place during the pass.
    """

    tick: int
    config: SimulationConfig
    world: WorldBounds
    obstacles: Tuple[Obstacle, ...]
    food: Tuple[Food, ...]
    creatures: Tuple[Creature, ...]
    food_by_id: Dict[int, Food]
    creature_by_id: Dict[int, Creature]
    energy_at_start: Dict[int, float]
    rng: DeterministicRng
    allocate_id: Callable[[], int]

    @classmethod
    def capture(
        cls,
        tick: int,
        config: SimulationConfig,
        world: WorldBounds,
        obstacles: Tuple[Obstacle, ...],
        food: Tuple[Food, ...],
        creatures: Tuple[Creature, ...],
        rng: DeterministicRng,
        allocate_id: Callable[[], int],
    ) -> "TickView":
        return cls(
            tick=tick,
            config=config,
            world=world,
            obstacles=obstacles,
            food=food,
            creatures=creatures,
            food_by_id={item.id: item for item in food},
            creature_by_id={creature.id: creature for creature in creatures},
            energy_at_start={creature.id: creature.energy for creature in creatures},
            rng=rng,
            allocate_id=allocate_id,
        )
