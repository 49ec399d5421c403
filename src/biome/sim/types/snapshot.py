from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickStats


@dataclass(slots=True)
class Snapshot:
    tick: int
    stats: TickStats
    creatures: List[Dict[str, Any]]
    food: List[Dict[str, float]]
    obstacles: List[Dict[str, Any]]
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotMetadata:
    world_width: float
    world_depth: float
    tick_duration_ms: float
    seed: int
    config_version: str
    running: bool
    vision_cones_visible: bool
