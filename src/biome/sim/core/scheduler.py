from __future__ import annotations

import logging
from typing import Optional

from ..types.metrics import TickStats
from .simulation import Simulation

logger = logging.getLogger(__name__)


class TickScheduler:
    """Turns frame-to-frame wall-clock time into whole simulation ticks.

    Elapsed milliseconds accumulate between frames. Once the total exceeds
    the configured tick duration, every whole tick it covers is run in one
    batch and the remainder carries over to the next frame. Ticks never run
    while the scheduler is stopped, and state is kept across stop/start.
    """

    def __init__(self, simulation: Simulation):
        self._simulation = simulation
        self._running = False
        self._accumulator_ms = 0.0

    @property
    def simulation(self) -> Simulation:
        return self._simulation

    @property
    def running(self) -> bool:
        return self._running

    @property
    def accumulated_ms(self) -> float:
        return self._accumulator_ms

    @property
    def stats(self) -> TickStats:
        return self._simulation.stats

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        # Time spent paused must not turn into a burst of catch-up ticks.
        self._accumulator_ms = 0.0
        logger.info("Simulation started at tick %d", self._simulation.tick)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        logger.info("Simulation stopped at tick %d", self._simulation.tick)

    def reset(self) -> None:
        self._running = False
        self._accumulator_ms = 0.0
        self._simulation.reset()

    def advance(self, elapsed_ms: float, overlay_visible: Optional[bool] = None) -> int:
        """Feed one frame's elapsed time; returns how many ticks ran."""
        if not self._running:
            return 0
        self._accumulator_ms += max(0.0, elapsed_ms)
        duration = self._simulation.config.tick_duration_ms
        if self._accumulator_ms <= duration:
            return 0
        if overlay_visible is not None:
            self._simulation.set_vision_cones_visible(overlay_visible)
        due = int(self._accumulator_ms // duration)
        ran = 0
        for _ in range(due):
            if not self._running:
                break
            self._simulation.step()
            ran += 1
        self._accumulator_ms %= duration
        if ran > 1:
            logger.debug("Ran %d catch-up ticks in one frame", ran)
        return ran
