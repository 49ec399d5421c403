from __future__ import annotations

import logging
from typing import Optional, Tuple

from pygame.math import Vector3

from ...config import MutationConfig, SpeciesConfig
from ...rng import DeterministicRng
from ..core.creature import BirdState, Creature, Species, species_config
from ..core.geometry import contains_point
from ..core.view import TickView
from ..utils.math3d import _heading_from_velocity

logger = logging.getLogger(__name__)

_OFFSET_DIRECTIONS: Tuple[Tuple[int, int], ...] = (
    (1, 0),
    (-1, 0),
    (0, 1),
    (0, -1),
    (1, 1),
    (1, -1),
    (-1, 1),
    (-1, -1),
)


def reproduce(creature: Creature, view: TickView) -> Optional[Creature]:
    """Split off one offspring once energy reaches the species threshold.

    The parent keeps half its energy and the offspring receives the other
    half. Ground species standing in water look for a dry spot one body size
    away; when none of the eight offsets is dry the birth is abandoned and the
    energy is returned to the parent.
    """
    config = species_config(view.config, creature.species)
    if creature.energy < config.reproduce_energy:
        return None
    energy_before = creature.energy
    creature.energy = energy_before / 2

    birth_position = _birth_position(creature, view)
    if birth_position is None:
        creature.energy = energy_before
        logger.debug("Reproduction aborted for creature %d: no dry spot nearby", creature.id)
        return None

    velocity = view.rng.next_ground_direction()
    offspring = Creature(
        id=view.allocate_id(),
        species=creature.species,
        position=birth_position,
        velocity=velocity,
        energy=energy_before - creature.energy,
        size=creature.size,
        speed=creature.speed,
        sense=creature.sense,
        field_of_view=creature.field_of_view,
        heading=_heading_from_velocity(velocity, creature.heading),
        generation=creature.generation + 1,
    )
    if offspring.species is Species.AERIAL:
        offspring.state = BirdState.CRUISING
    mutate(offspring, config, view.config.mutation, view.rng)
    return offspring


def mutate(offspring: Creature, config: SpeciesConfig, mutation: MutationConfig, rng: DeterministicRng) -> None:
    if rng.chance(mutation.rate):
        offspring.speed *= 1 + rng.next_range(-mutation.max_factor, mutation.max_factor)
        offspring.speed = max(config.min_speed, offspring.speed)
    if rng.chance(mutation.rate):
        offspring.sense *= 1 + rng.next_range(-mutation.max_factor, mutation.max_factor)
        offspring.sense = max(config.min_sense, offspring.sense)


def _birth_position(creature: Creature, view: TickView) -> Optional[Vector3]:
    position = creature.position
    if not creature.terrestrial or not contains_point(position.x, position.z, view.obstacles):
        return Vector3(position)
    step = creature.size
    for dx, dz in _OFFSET_DIRECTIONS:
        x = position.x + dx * step
        z = position.z + dz * step
        if view.world.contains(x, z) and not contains_point(x, z, view.obstacles):
            return Vector3(x, position.y, z)
    return None
