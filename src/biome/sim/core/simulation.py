from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Optional, Set, Tuple

from pygame.math import Vector3

from ...config import SimulationConfig
from ...rng import DeterministicRng
from ..hooks import NoopSceneHooks, SceneHooks
from ..systems import metrics as metrics_system
from ..systems import policies
from ..types.metrics import TickStats
from ..types.snapshot import Snapshot, SnapshotMetadata
from .creature import BirdState, Creature, Food, Species, VisionCone, species_config
from .geometry import Obstacle, WorldBounds, contains_point, generate_obstacles, random_open_position
from .view import TickView

logger = logging.getLogger(__name__)


class Simulation:
    """Owns the live creatures, food and water bodies of one run.

    Only this class adds or removes entities. Creature updates receive a
    :class:`TickView` and report their effects as outcomes, which ``step``
    applies after every creature has had its turn.
    """

    def __init__(self, config: SimulationConfig, hooks: Optional[SceneHooks] = None):
        self._config = config
        self._hooks: SceneHooks = hooks if hooks is not None else NoopSceneHooks()
        self._rng = DeterministicRng(config.seed)
        self._world = WorldBounds(config.world.width, config.world.depth)
        self._obstacles: Tuple[Obstacle, ...] = ()
        self._creatures: List[Creature] = []
        self._food: List[Food] = []
        self._next_id = 0
        self._tick = 0
        self._stats: TickStats | None = None
        self._last_tick_ms = 0.0
        self._vision_cones_visible = False
        self.reset()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def world(self) -> WorldBounds:
        return self._world

    @property
    def obstacles(self) -> Tuple[Obstacle, ...]:
        return self._obstacles

    @property
    def creatures(self) -> Tuple[Creature, ...]:
        return tuple(self._creatures)

    @property
    def food(self) -> Tuple[Food, ...]:
        return tuple(self._food)

    @property
    def stats(self) -> TickStats:
        if self._stats is None:
            self._stats = metrics_system.create_stats(self._tick, self._creatures, len(self._food))
        return self._stats

    @property
    def last_tick_ms(self) -> float:
        return self._last_tick_ms

    @property
    def vision_cones_visible(self) -> bool:
        return self._vision_cones_visible

    def set_vision_cones_visible(self, visible: bool) -> None:
        if visible == self._vision_cones_visible:
            return
        self._vision_cones_visible = visible
        self._hooks.overlay_changed(visible)

    def reset(self) -> None:
        """Tear down every entity and rebuild the world from the current config."""
        for creature in self._creatures:
            self._hooks.creature_removed(creature)
        for item in self._food:
            self._hooks.food_removed(item)
        self._creatures = []
        self._food = []
        self._rng.reset(self._config.seed)
        self._next_id = 0
        self._tick = 0
        self._stats = None
        self._world = WorldBounds(self._config.world.width, self._config.world.depth)
        self._obstacles = tuple(
            generate_obstacles(self._config.water.count, self._world, self._config.water, self._rng)
        )
        self._hooks.obstacles_changed(self._obstacles)
        self._bootstrap_population()
        logger.info(
            "Simulation reset: %d creatures, %d food, %d water bodies",
            len(self._creatures),
            len(self._food),
            len(self._obstacles),
        )

    def is_position_in_water(self, x: float, z: float) -> bool:
        return contains_point(x, z, self._obstacles)

    def spawn_food(self, x: float | None = None, z: float | None = None) -> Food:
        if x is None or z is None:
            x, z = random_open_position(self._world, self._obstacles, self._rng)
        elif self.is_position_in_water(x, z) or not self._world.contains(x, z):
            raise ValueError(f"food cannot be placed at ({x:.2f}, {z:.2f})")
        item = Food(id=self._allocate_id(), position=Vector3(x, 0.0, z))
        self._food.append(item)
        self._hooks.food_added(item)
        return item

    def spawn_creature(
        self,
        species: Species,
        x: float | None = None,
        z: float | None = None,
        *,
        y: float | None = None,
        energy: float | None = None,
        velocity: Vector3 | None = None,
    ) -> Creature:
        config = species_config(self._config, species)
        if x is None or z is None:
            if species is Species.AERIAL:
                x = self._rng.next_range(-self._world.half_width, self._world.half_width)
                z = self._rng.next_range(-self._world.half_depth, self._world.half_depth)
            else:
                x, z = random_open_position(self._world, self._obstacles, self._rng)
        if y is None:
            y = self._config.aerial.cruise_altitude if species is Species.AERIAL else 0.0
        if velocity is None:
            velocity = self._rng.next_ground_direction()
        creature = Creature(
            id=self._allocate_id(),
            species=species,
            position=Vector3(x, y, z),
            velocity=Vector3(velocity),
            energy=config.initial_energy if energy is None else energy,
            size=config.size,
            speed=config.initial_speed,
            sense=config.initial_sense,
            field_of_view=config.field_of_view,
        )
        if velocity.length_squared() > 0:
            creature.heading = velocity.normalize()
        if species is Species.AERIAL:
            creature.state = BirdState.CRUISING
        self._creatures.append(creature)
        self._hooks.creature_added(creature, VisionCone.for_creature(creature))
        return creature

    def step(self) -> TickStats:
        """Advance one tick and apply every deferred outcome at the end."""
        start = perf_counter()
        self._tick += 1
        regen_interval = self._config.food_regen_interval()
        if regen_interval and self._tick % regen_interval == 0:
            self.spawn_food()

        view = TickView.capture(
            tick=self._tick,
            config=self._config,
            world=self._world,
            obstacles=self._obstacles,
            food=tuple(self._food),
            creatures=tuple(self._creatures),
            rng=self._rng,
            allocate_id=self._allocate_id,
        )
        consumed_ids: Set[int] = set()
        hunted_ids: Set[int] = set()
        offspring: List[Creature] = []
        for creature in view.creatures:
            if not creature.alive:
                continue
            outcome = policies.update(creature, view)
            if outcome.consumed_food_id is not None:
                consumed_ids.add(outcome.consumed_food_id)
            if outcome.hunted_creature_id is not None:
                hunted_ids.add(outcome.hunted_creature_id)
            if outcome.offspring is not None:
                offspring.append(outcome.offspring)

        food_eaten = self._remove_food(consumed_ids)
        deaths = self._remove_creatures(hunted_ids)
        for child in offspring:
            self._creatures.append(child)
            self._hooks.creature_added(child, VisionCone.for_creature(child))

        self._stats = metrics_system.create_stats(
            self._tick,
            self._creatures,
            len(self._food),
            births=len(offspring),
            deaths=deaths,
            hunted=len(hunted_ids),
            food_eaten=food_eaten,
        )
        self._last_tick_ms = (perf_counter() - start) * 1000.0
        logger.debug(
            "Tick %d: %d creatures, %d food, %d births, %d deaths",
            self._tick,
            len(self._creatures),
            len(self._food),
            len(offspring),
            deaths,
        )
        return self._stats

    def snapshot(self, running: bool = False) -> Snapshot:
        return Snapshot(
            tick=self._tick,
            stats=self.stats,
            creatures=[self._creature_snapshot(creature) for creature in self._creatures],
            food=[{"id": item.id, "x": item.x, "z": item.z} for item in self._food],
            obstacles=[self._obstacle_snapshot(obstacle) for obstacle in self._obstacles],
            metadata=SnapshotMetadata(
                world_width=self._world.width,
                world_depth=self._world.depth,
                tick_duration_ms=self._config.tick_duration_ms,
                seed=self._config.seed,
                config_version=self._config.config_version,
                running=running,
                vision_cones_visible=self._vision_cones_visible,
            ),
        )

    def _bootstrap_population(self) -> None:
        for _ in range(self._config.food.initial_count):
            self.spawn_food()
        for species in Species:
            for _ in range(species_config(self._config, species).initial_count):
                self.spawn_creature(species)

    def _allocate_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _remove_food(self, consumed_ids: Set[int]) -> int:
        if not consumed_ids:
            return 0
        remaining: List[Food] = []
        removed = 0
        for item in self._food:
            if item.id in consumed_ids:
                self._hooks.food_removed(item)
                removed += 1
            else:
                remaining.append(item)
        self._food = remaining
        return removed

    def _remove_creatures(self, hunted_ids: Set[int]) -> int:
        survivors: List[Creature] = []
        removed = 0
        for creature in self._creatures:
            if creature.alive and creature.id not in hunted_ids:
                survivors.append(creature)
            else:
                self._hooks.creature_removed(creature)
                removed += 1
        self._creatures = survivors
        return removed

    def _creature_snapshot(self, creature: Creature) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": creature.id,
            "species": creature.species.value,
            "color": species_config(self._config, creature.species).color,
            "x": creature.position.x,
            "y": creature.position.y,
            "z": creature.position.z,
            "vx": creature.velocity.x,
            "vy": creature.velocity.y,
            "vz": creature.velocity.z,
            "energy": creature.energy,
            "size": creature.size,
            "speed": creature.speed,
            "sense": creature.sense,
            "generation": creature.generation,
        }
        if creature.state is not None:
            payload["state"] = creature.state.value
        if self._vision_cones_visible:
            cone = VisionCone.for_creature(creature)
            payload["cone"] = {"radius": cone.radius, "length": cone.length, "fov": cone.field_of_view}
        return payload

    def _obstacle_snapshot(self, obstacle: Obstacle) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "shape": obstacle.shape,
            "color": self._config.water.color,
            "x": obstacle.x,
            "z": obstacle.z,
            "width": obstacle.width,
            "depth": obstacle.depth,
        }
        if obstacle.radius is not None:
            payload["radius"] = obstacle.radius
        return payload
