from __future__ import annotations

from typing import Dict, Iterable

from ..core.creature import Creature, Species
from ..types.metrics import SpeciesStats, TickStats


def species_breakdown(creatures: Iterable[Creature]) -> Dict[str, SpeciesStats]:
    counts = {species: 0 for species in Species}
    speed_sums = {species: 0.0 for species in Species}
    sense_sums = {species: 0.0 for species in Species}
    for creature in creatures:
        counts[creature.species] += 1
        speed_sums[creature.species] += creature.speed
        sense_sums[creature.species] += creature.sense
    breakdown: Dict[str, SpeciesStats] = {}
    for species in Species:
        count = counts[species]
        if count == 0:
            breakdown[species.value] = SpeciesStats()
            continue
        breakdown[species.value] = SpeciesStats(
            count=count,
            mean_speed=speed_sums[species] / count,
            mean_sense=sense_sums[species] / count,
        )
    return breakdown


def create_stats(
    tick: int,
    creatures: list[Creature],
    food_count: int,
    births: int = 0,
    deaths: int = 0,
    hunted: int = 0,
    food_eaten: int = 0,
) -> TickStats:
    return TickStats(
        tick=tick,
        creatures=len(creatures),
        food=food_count,
        births=births,
        deaths=deaths,
        hunted=hunted,
        food_eaten=food_eaten,
        species=species_breakdown(creatures),
    )
