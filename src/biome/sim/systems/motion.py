from __future__ import annotations

import logging
from typing import Sequence

from ..core.creature import Creature
from ..core.geometry import Obstacle, WorldBounds, clamp_to_bounds
from ..utils.math3d import _heading_from_velocity, _normalize_horizontal

logger = logging.getLogger(__name__)


def move(creature: Creature, energy_decay: float, world: WorldBounds, obstacles: Sequence[Obstacle]) -> None:
    """Integrate one tick of ground motion.

    Pays the per-tick energy cost, steps ``speed`` units along the horizontal
    heading, bounces off the world edge, and for ground species bounces out of
    any water body the step ended in. Vertical velocity is left to the caller.
    """
    creature.energy -= energy_decay
    velocity = creature.velocity
    if not _normalize_horizontal(velocity):
        logger.debug("Creature %d has no horizontal heading; skipping normalisation", creature.id)
    position = creature.position
    position.x += velocity.x * creature.speed
    position.z += velocity.z * creature.speed
    clamp_to_bounds(position, velocity, world)
    if creature.terrestrial:
        bounce_off_water(creature, obstacles)
    creature.heading = _heading_from_velocity(velocity, creature.heading)


def bounce_off_water(creature: Creature, obstacles: Sequence[Obstacle]) -> bool:
    position = creature.position
    for obstacle in obstacles:
        if not obstacle.contains(position.x, position.z):
            continue
        creature.velocity.x = -creature.velocity.x
        creature.velocity.z = -creature.velocity.z
        position.x, position.z, _axis = obstacle.nearest_exit(position.x, position.z)
        return True
    return False
