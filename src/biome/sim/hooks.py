"""Lifecycle hooks for whatever draws the simulation.

The simulation never renders anything itself. A front end that keeps meshes,
sprites or DOM nodes in sync implements :class:`SceneHooks` and receives a
call whenever an entity enters or leaves the world.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from .core.creature import Creature, Food, VisionCone
from .core.geometry import Obstacle


class SceneHooks(Protocol):
    def creature_added(self, creature: Creature, cone: VisionCone) -> None:
        """A creature was placed in the world (setup or birth)."""
        ...

    def creature_removed(self, creature: Creature) -> None:
        """A creature died or was eaten; release anything attached to it."""
        ...

    def food_added(self, food: Food) -> None:
        ...

    def food_removed(self, food: Food) -> None:
        ...

    def obstacles_changed(self, obstacles: Sequence[Obstacle]) -> None:
        """Water bodies were regenerated by a reset."""
        ...

    def overlay_changed(self, visible: bool) -> None:
        """Vision cones should be shown or hidden."""
        ...


class NoopSceneHooks:
    def creature_added(self, creature: Creature, cone: VisionCone) -> None:
        pass

    def creature_removed(self, creature: Creature) -> None:
        pass

    def food_added(self, food: Food) -> None:
        pass

    def food_removed(self, food: Food) -> None:
        pass

    def obstacles_changed(self, obstacles: Sequence[Obstacle]) -> None:
        pass

    def overlay_changed(self, visible: bool) -> None:
        pass
