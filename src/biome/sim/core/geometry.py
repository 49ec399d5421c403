"""World bounds and water obstacles.

Obstacles are generated once per run, then merged pairwise until no two
bounding boxes overlap. A merged obstacle is always the smallest axis-aligned
rectangle covering both inputs, so circles lose their shape once merged.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from pygame.math import Vector3

from ...config import WaterConfig
from ...rng import DeterministicRng

logger = logging.getLogger(__name__)

RECTANGLE = "rectangle"
CIRCLE = "circle"

# Keeps pushed-out points off the circle boundary after rounding.
_EXIT_MARGIN = 1e-9


@dataclass(frozen=True)
class WorldBounds:
    width: float
    depth: float

    @property
    def half_width(self) -> float:
        return self.width / 2

    @property
    def half_depth(self) -> float:
        return self.depth / 2

    def contains(self, x: float, z: float) -> bool:
        return -self.half_width <= x <= self.half_width and -self.half_depth <= z <= self.half_depth


@dataclass(frozen=True)
class Obstacle:
    shape: str
    x: float
    z: float
    width: float
    depth: float
    radius: Optional[float] = None

    @classmethod
    def rectangle(cls, x: float, z: float, width: float, depth: float) -> "Obstacle":
        return cls(RECTANGLE, x, z, width, depth)

    @classmethod
    def circle(cls, x: float, z: float, radius: float) -> "Obstacle":
        return cls(CIRCLE, x, z, radius * 2, radius * 2, radius)

    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_x, max_x, min_z, max_z) of the bounding box."""
        half_w = self.width / 2
        half_d = self.depth / 2
        return (self.x - half_w, self.x + half_w, self.z - half_d, self.z + half_d)

    def contains(self, x: float, z: float) -> bool:
        if self.shape == CIRCLE and self.radius is not None:
            return math.hypot(x - self.x, z - self.z) < self.radius
        min_x, max_x, min_z, max_z = self.bounds()
        return min_x < x < max_x and min_z < z < max_z

    def nearest_exit(self, x: float, z: float) -> Tuple[float, float, str]:
        """Closest point on the boundary and the axis it was reached along.

        The axis is ``"x"``, ``"z"`` or ``"radial"``.
        """
        if self.shape == CIRCLE and self.radius is not None:
            dx = x - self.x
            dz = z - self.z
            dist = math.hypot(dx, dz)
            if dist < 1e-12:
                dx, dz, dist = 1.0, 0.0, 1.0
            scale = (self.radius + _EXIT_MARGIN) / dist
            return (self.x + dx * scale, self.z + dz * scale, "radial")
        min_x, max_x, min_z, max_z = self.bounds()
        candidates = (
            (x - min_x, min_x, z, "x"),
            (max_x - x, max_x, z, "x"),
            (z - min_z, x, min_z, "z"),
            (max_z - z, x, max_z, "z"),
        )
        _, exit_x, exit_z, axis = min(candidates, key=lambda item: item[0])
        return (exit_x, exit_z, axis)


def is_overlapping(a: Obstacle, b: Obstacle) -> bool:
    a_min_x, a_max_x, a_min_z, a_max_z = a.bounds()
    b_min_x, b_max_x, b_min_z, b_max_z = b.bounds()
    return a_min_x < b_max_x and a_max_x > b_min_x and a_min_z < b_max_z and a_max_z > b_min_z


def merge(a: Obstacle, b: Obstacle) -> Obstacle:
    a_min_x, a_max_x, a_min_z, a_max_z = a.bounds()
    b_min_x, b_max_x, b_min_z, b_max_z = b.bounds()
    min_x = min(a_min_x, b_min_x)
    max_x = max(a_max_x, b_max_x)
    min_z = min(a_min_z, b_min_z)
    max_z = max(a_max_z, b_max_z)
    return Obstacle.rectangle(
        x=(min_x + max_x) / 2,
        z=(min_z + max_z) / 2,
        width=max_x - min_x,
        depth=max_z - min_z,
    )


def merge_overlapping(obstacles: Iterable[Obstacle]) -> List[Obstacle]:
    """Merge the first overlapping pair (lowest indices) until none remain."""
    merged = list(obstacles)
    while True:
        pair = _first_overlapping_pair(merged)
        if pair is None:
            return merged
        i, j = pair
        logger.debug("Merging water bodies %d and %d", i, j)
        merged[i] = merge(merged[i], merged[j])
        del merged[j]


def _first_overlapping_pair(obstacles: Sequence[Obstacle]) -> Optional[Tuple[int, int]]:
    for i in range(len(obstacles)):
        for j in range(i + 1, len(obstacles)):
            if is_overlapping(obstacles[i], obstacles[j]):
                return i, j
    return None


def generate_obstacles(
    count: int, world: WorldBounds, water: WaterConfig, rng: DeterministicRng
) -> List[Obstacle]:
    if not water.enabled or count <= 0:
        return []
    candidates: List[Obstacle] = []
    for _ in range(count):
        shape = rng.sample_choice(water.shape_types)
        if shape == CIRCLE:
            radius = rng.next_range(water.min_radius, water.max_radius)
            x = rng.next_range(-world.half_width + radius, world.half_width - radius)
            z = rng.next_range(-world.half_depth + radius, world.half_depth - radius)
            candidates.append(Obstacle.circle(x, z, radius))
        else:
            width = rng.next_range(water.min_width, water.max_width)
            depth = rng.next_range(water.min_depth, water.max_depth)
            x = rng.next_range(-world.half_width + width / 2, world.half_width - width / 2)
            z = rng.next_range(-world.half_depth + depth / 2, world.half_depth - depth / 2)
            candidates.append(Obstacle.rectangle(x, z, width, depth))
    obstacles = merge_overlapping(candidates)
    logger.debug("Generated %d water bodies from %d candidates", len(obstacles), count)
    return obstacles


def contains_point(x: float, z: float, obstacles: Iterable[Obstacle]) -> bool:
    return any(obstacle.contains(x, z) for obstacle in obstacles)


def clamp_to_bounds(position: Vector3, velocity: Vector3, world: WorldBounds) -> bool:
    """Reflect and clamp in place when ``position`` left the world; True on bounce."""
    bounced = False
    if position.x < -world.half_width or position.x > world.half_width:
        velocity.x = -velocity.x
        position.x = max(-world.half_width, min(position.x, world.half_width))
        bounced = True
    if position.z < -world.half_depth or position.z > world.half_depth:
        velocity.z = -velocity.z
        position.z = max(-world.half_depth, min(position.z, world.half_depth))
        bounced = True
    return bounced


def random_open_position(
    world: WorldBounds, obstacles: Sequence[Obstacle], rng: DeterministicRng
) -> Tuple[float, float]:
    """Sample uniformly until the point lies outside every obstacle."""
    attempts = 0
    while True:
        attempts += 1
        x = rng.next_range(-world.half_width, world.half_width)
        z = rng.next_range(-world.half_depth, world.half_depth)
        if not contains_point(x, z, obstacles):
            if attempts > 1:
                logger.debug("Spawn position found after %d attempts", attempts)
            return x, z
