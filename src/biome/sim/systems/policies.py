"""Per-species decision functions.

Every policy takes a creature and the tick's read-only view, steers and moves
the creature, and reports what it ate or caught plus any offspring. Nothing
here adds to or removes from the live collections.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Union

from pygame.math import Vector3

from ...config import AerialConfig, FlockerConfig, PredatorConfig
from ..core.creature import BirdState, Creature, Food, Species, TargetKind, species_config
from ..core.view import TickView
from ..types.outcome import Outcome
from ..utils.math3d import _horizontal_distance
from .motion import move
from .perception import nearest_in_sight
from .reproduction import reproduce

logger = logging.getLogger(__name__)

Policy = Callable[[Creature, TickView], Outcome]


class UnknownSpeciesError(KeyError):
    """Raised when a creature's species has no registered policy."""


def _food_position(item: Food) -> Vector3:
    return item.position


def _creature_position(creature: Creature) -> Vector3:
    return creature.position


def steer_towards(creature: Creature, target: Vector3) -> None:
    creature.velocity.x = target.x - creature.position.x
    creature.velocity.z = target.z - creature.position.z


def wander(creature: Creature, jitter: float, view: TickView) -> None:
    creature.velocity.x += view.rng.next_range(-jitter, jitter)
    creature.velocity.z += view.rng.next_range(-jitter, jitter)


def within_reach(creature: Creature, target: Vector3) -> bool:
    return _horizontal_distance(creature.position, target) < creature.size * 2


def _hunt_reward(config: PredatorConfig | AerialConfig, prey: Creature, view: TickView) -> float:
    """Bonus plus half the prey's energy as it stood before this tick."""
    return config.prey_energy_bonus + view.energy_at_start.get(prey.id, prey.energy) * 0.5


def update_grazer(creature: Creature, view: TickView) -> Outcome:
    config = species_config(view.config, creature.species)
    food, _ = nearest_in_sight(creature, view.food, _food_position)
    if food is not None:
        steer_towards(creature, food.position)
    else:
        wander(creature, config.wander_jitter, view)
    move(creature, config.energy_decay, view.world, view.obstacles)

    outcome = Outcome()
    if food is not None and within_reach(creature, food.position):
        creature.energy += view.config.food.energy
        outcome.consumed_food_id = food.id
    outcome.offspring = reproduce(creature, view)
    return outcome


def flock_forces(creature: Creature, view: TickView, radius: float) -> tuple[Vector3, Vector3, Vector3]:
    """Separation, alignment and cohesion over same-species neighbours."""
    separation = Vector3()
    alignment = Vector3()
    cohesion = Vector3()
    neighbors = 0
    position = creature.position
    for other in view.creatures:
        if other is creature or other.species is not creature.species:
            continue
        dist = _horizontal_distance(position, other.position)
        if dist <= 0 or dist >= radius:
            continue
        away = Vector3(position.x - other.position.x, 0.0, position.z - other.position.z)
        separation += away / (dist * dist)
        alignment += Vector3(other.velocity.x, 0.0, other.velocity.z)
        cohesion += Vector3(other.position.x, 0.0, other.position.z)
        neighbors += 1
    if neighbors:
        alignment /= neighbors
        cohesion /= neighbors
        cohesion -= Vector3(position.x, 0.0, position.z)
    return separation, alignment, cohesion


def update_flocker(creature: Creature, view: TickView) -> Outcome:
    config: FlockerConfig = species_config(view.config, creature.species)
    food, _ = nearest_in_sight(creature, view.food, _food_position)
    separation, alignment, cohesion = flock_forces(creature, view, config.flock_radius)
    steering = (
        separation * config.separation_weight
        + alignment * config.alignment_weight
        + cohesion * config.cohesion_weight
    )
    creature.velocity.x += steering.x
    creature.velocity.z += steering.z
    if food is not None:
        creature.velocity.x += (food.position.x - creature.position.x) * config.food_steer_weight
        creature.velocity.z += (food.position.z - creature.position.z) * config.food_steer_weight
    else:
        wander(creature, config.wander_jitter, view)
    move(creature, config.energy_decay, view.world, view.obstacles)

    outcome = Outcome()
    if food is not None and within_reach(creature, food.position):
        creature.energy += view.config.food.energy
        outcome.consumed_food_id = food.id
    outcome.offspring = reproduce(creature, view)
    return outcome


def update_predator(creature: Creature, view: TickView) -> Outcome:
    config: PredatorConfig = species_config(view.config, creature.species)

    def is_prey(other: Creature) -> bool:
        if other.id == creature.id:
            return False
        if other.species is Species.AERIAL:
            return other.position.y < config.prey_altitude_limit
        return other.species in (Species.GRAZER, Species.FLOCKER)

    prey, _ = nearest_in_sight(creature, view.creatures, _creature_position, accept=is_prey)
    if prey is not None:
        steer_towards(creature, prey.position)
    else:
        wander(creature, config.wander_jitter, view)
    move(creature, config.energy_decay, view.world, view.obstacles)

    outcome = Outcome()
    if prey is not None and within_reach(creature, prey.position):
        creature.energy += _hunt_reward(config, prey, view)
        outcome.hunted_creature_id = prey.id
    outcome.offspring = reproduce(creature, view)
    return outcome


def _resolve_target(creature: Creature, view: TickView) -> Optional[Union[Food, Creature]]:
    """The locked target if it is still alive, otherwise None."""
    if creature.target_id is None:
        return None
    if creature.target_kind is TargetKind.FOOD:
        return view.food_by_id.get(creature.target_id)
    target = view.creature_by_id.get(creature.target_id)
    if target is None or not target.alive:
        return None
    return target


def update_aerial(creature: Creature, view: TickView) -> Outcome:
    config: AerialConfig = species_config(view.config, creature.species)
    outcome = Outcome()
    if creature.state is None:
        creature.state = BirdState.CRUISING

    if creature.state is BirdState.CRUISING:
        prey, prey_dist = nearest_in_sight(
            creature,
            view.creatures,
            _creature_position,
            accept=lambda other: other.id != creature.id and other.alive,
        )
        food, food_dist = nearest_in_sight(creature, view.food, _food_position)
        if food is not None and food_dist < prey_dist:
            creature.state = BirdState.DIVING
            creature.target_id = food.id
            creature.target_kind = TargetKind.FOOD
        elif prey is not None:
            creature.state = BirdState.DIVING
            creature.target_id = prey.id
            creature.target_kind = TargetKind.CREATURE
        creature.velocity.y = (config.cruise_altitude - creature.position.y) * config.climb_gain
    elif creature.state is BirdState.DIVING:
        if _resolve_target(creature, view) is None:
            logger.debug("Creature %d lost its dive target %s", creature.id, creature.target_id)
            creature.clear_target()
        else:
            creature.velocity.y = -creature.position.y * config.dive_gain
            if creature.position.y < config.landing_altitude:
                creature.position.y = 0.0
                creature.state = BirdState.EATING
    elif creature.state is BirdState.EATING:
        target = _resolve_target(creature, view)
        if target is not None and within_reach(creature, target.position):
            if isinstance(target, Food):
                creature.energy += view.config.food.energy
                outcome.consumed_food_id = target.id
            else:
                creature.energy += _hunt_reward(config, target, view)
                outcome.hunted_creature_id = target.id
        creature.clear_target()

    creature.position.y = max(0.0, creature.position.y + creature.velocity.y)

    target = _resolve_target(creature, view) if creature.state is BirdState.DIVING else None
    if target is not None:
        steer_towards(creature, target.position)
    else:
        wander(creature, config.wander_jitter, view)
    move(creature, config.energy_decay, view.world, view.obstacles)
    outcome.offspring = reproduce(creature, view)
    return outcome


POLICIES: Dict[Species, Policy] = {
    Species.GRAZER: update_grazer,
    Species.FLOCKER: update_flocker,
    Species.PREDATOR: update_predator,
    Species.AERIAL: update_aerial,
}


def update(creature: Creature, view: TickView) -> Outcome:
    try:
        policy = POLICIES[creature.species]
    except KeyError:
        raise UnknownSpeciesError(creature.species) from None
    return policy(creature, view)
