from __future__ import annotations

import math
from typing import Callable, Iterable, Optional, Tuple, TypeVar

from pygame.math import Vector3

from ..core.creature import Creature
from ..utils.math3d import _clamp_value, _horizontal_distance

T = TypeVar("T")


def is_in_sight(observer: Creature, target: Vector3) -> bool:
    """Within ``sense`` (3D distance) and inside the field-of-view cone."""
    offset = target - observer.position
    dist_sq = offset.length_squared()
    if dist_sq == 0.0 or dist_sq > observer.sense * observer.sense:
        return False
    heading = observer.heading
    heading_len = heading.length()
    if heading_len < 1e-12:
        return False
    cos_angle = heading.dot(offset) / (heading_len * math.sqrt(dist_sq))
    angle = math.acos(_clamp_value(cos_angle, -1.0, 1.0))
    return angle < observer.field_of_view / 2


def nearest_in_sight(
    observer: Creature,
    candidates: Iterable[T],
    position_of: Callable[[T], Vector3],
    accept: Callable[[T], bool] | None = None,
) -> Tuple[Optional[T], float]:
    """Closest visible candidate by ground distance.

    Only a strictly smaller distance replaces the current best, so ties keep
    the first candidate encountered.
    """
    best: Optional[T] = None
    best_dist = math.inf
    for candidate in candidates:
        if accept is not None and not accept(candidate):
            continue
        position = position_of(candidate)
        if not is_in_sight(observer, position):
            continue
        dist = _horizontal_distance(observer.position, position)
        if dist < best_dist:
            best = candidate
            best_dist = dist
    return best, best_dist
