from __future__ import annotations

import math

from pygame.math import Vector3

_EPSILON_SQ = 1e-12


def _safe_normalize(vector: Vector3) -> Vector3:
    magnitude_sq = vector.length_squared()
    if magnitude_sq < _EPSILON_SQ:
        return Vector3()
    return vector / math.sqrt(magnitude_sq)


def _normalize_horizontal(vector: Vector3) -> bool:
    """Scale x/z to unit length in place; returns False for a zero vector."""
    magnitude_sq = vector.x * vector.x + vector.z * vector.z
    if magnitude_sq < _EPSILON_SQ:
        return False
    inv = 1.0 / math.sqrt(magnitude_sq)
    vector.x *= inv
    vector.z *= inv
    return True


def _horizontal_distance(a: Vector3, b: Vector3) -> float:
    return math.hypot(a.x - b.x, a.z - b.z)


def _heading_from_velocity(velocity: Vector3, fallback: Vector3) -> Vector3:
    if velocity.length_squared() < _EPSILON_SQ:
        return Vector3(fallback)
    return _safe_normalize(velocity)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
