import itertools
import math

import pytest
from pygame.math import Vector3

from biome.rng import DeterministicRng
from biome.sim.core.creature import BirdState, Creature, Food, Species, TargetKind
from biome.sim.core.geometry import WorldBounds
from biome.sim.core.simulation import Simulation
from biome.sim.core.view import TickView
from biome.sim.systems import policies
from biome.sim.systems.policies import UnknownSpeciesError, flock_forces, update


def _view(config, creatures=(), food=()):
    return TickView.capture(
        tick=1,
        config=config,
        world=WorldBounds(config.world.width, config.world.depth),
        obstacles=(),
        food=tuple(food),
        creatures=tuple(creatures),
        rng=DeterministicRng(1),
        allocate_id=itertools.count(1000).__next__,
    )


def _make(species, config, creature_id, x, z, *, y=0.0, velocity=(1.0, 0.0, 0.0), energy=None):
    species_config = getattr(config, species.value)
    heading = Vector3(velocity)
    return Creature(
        id=creature_id,
        species=species,
        position=Vector3(x, y, z),
        velocity=Vector3(velocity),
        energy=species_config.initial_energy if energy is None else energy,
        size=species_config.size,
        speed=species_config.initial_speed,
        sense=species_config.initial_sense,
        field_of_view=species_config.field_of_view,
        heading=heading.normalize() if heading.length_squared() else Vector3(0.0, 0.0, 1.0),
        state=BirdState.CRUISING if species is Species.AERIAL else None,
    )


def test_grazer_steers_towards_food_at_edge_of_sight(quiet_config):
    sim = Simulation(quiet_config)
    sim.spawn_food(0.0, 0.0)
    grazer = sim.spawn_creature(Species.GRAZER, -69.99, 0.0, velocity=Vector3(1.0, 0.0, 0.0))

    sim.step()

    assert grazer.velocity.x == pytest.approx(1.0)
    assert grazer.velocity.z == 0.0


def test_grazer_wanders_when_food_is_out_of_sight(quiet_config):
    sim = Simulation(quiet_config)
    sim.spawn_food(0.0, 0.0)
    grazer = sim.spawn_creature(Species.GRAZER, -70.01, 0.0, velocity=Vector3(1.0, 0.0, 0.0))

    sim.step()

    assert grazer.velocity.z != 0.0
    assert len(sim.food) == 1


def test_grazer_eats_food_within_reach(quiet_config):
    config = quiet_config
    grazer = _make(Species.GRAZER, config, 1, 0.0, 0.0)
    item = Food(id=7, position=Vector3(1.0, 0.0, 0.0))

    outcome = update(grazer, _view(config, [grazer], [item]))

    assert outcome.consumed_food_id == 7
    assert grazer.energy == pytest.approx(100.0 - 0.15 + 25.0)


def test_predator_catch_awards_bonus_and_half_prey_energy(quiet_config):
    quiet_config.predator.energy_decay = 0.0
    sim = Simulation(quiet_config)
    fox = sim.spawn_creature(Species.PREDATOR, 0.0, 0.0, velocity=Vector3(1.0, 0.0, 0.0))
    rabbit = sim.spawn_creature(Species.GRAZER, 3.0, 0.0, energy=50.0)

    stats = sim.step()

    assert fox.energy == pytest.approx(120.0 + 80.0 + 25.0)
    assert rabbit not in sim.creatures
    assert stats.hunted == 1
    assert stats.deaths == 1
    assert stats.species["grazer"].count == 0


def test_predator_only_takes_low_flying_birds(quiet_config):
    config = quiet_config
    fox = _make(Species.PREDATOR, config, 1, 0.0, 0.0)
    high = _make(Species.AERIAL, config, 2, 3.0, 0.0, y=10.0)

    outcome = update(fox, _view(config, [fox, high]))
    assert outcome.hunted_creature_id is None

    fox = _make(Species.PREDATOR, config, 1, 0.0, 0.0)
    low = _make(Species.AERIAL, config, 3, 3.0, 0.0, y=4.0)

    outcome = update(fox, _view(config, [fox, low]))
    assert outcome.hunted_creature_id == 3


def test_predator_ignores_other_predators(quiet_config):
    config = quiet_config
    fox = _make(Species.PREDATOR, config, 1, 0.0, 0.0)
    rival = _make(Species.PREDATOR, config, 2, 3.0, 0.0)

    outcome = update(fox, _view(config, [fox, rival]))

    assert outcome.hunted_creature_id is None


def test_flock_forces_sum_same_species_neighbours(quiet_config):
    config = quiet_config
    sheep = _make(Species.FLOCKER, config, 1, 0.0, 0.0)
    neighbour = _make(Species.FLOCKER, config, 2, 10.0, 0.0, velocity=(0.0, 0.0, 1.0))
    far = _make(Species.FLOCKER, config, 3, 60.0, 0.0)
    rabbit = _make(Species.GRAZER, config, 4, 5.0, 0.0)

    separation, alignment, cohesion = flock_forces(sheep, _view(config, [sheep, neighbour, far, rabbit]), 50.0)

    assert separation.x == pytest.approx(-0.1)
    assert separation.z == pytest.approx(0.0)
    assert alignment == Vector3(0.0, 0.0, 1.0)
    assert cohesion == Vector3(10.0, 0.0, 0.0)


def test_lonely_flocker_has_no_flock_forces(quiet_config):
    sheep = _make(Species.FLOCKER, quiet_config, 1, 0.0, 0.0)

    forces = flock_forces(sheep, _view(quiet_config, [sheep]), 50.0)

    assert forces == (Vector3(), Vector3(), Vector3())


def test_bird_dives_and_eats_food(quiet_config):
    sim = Simulation(quiet_config)
    item = sim.spawn_food(30.0, 0.0)
    bird = sim.spawn_creature(Species.AERIAL, 0.0, 0.0, velocity=Vector3(1.0, 0.0, 0.0))
    assert bird.position.y == 50.0

    seen = []
    for _ in range(60):
        sim.step()
        seen.append(bird.state)
        if bird.state is BirdState.EATING:
            break

    assert seen[0] is BirdState.DIVING
    assert seen[-1] is BirdState.EATING
    assert bird.position.y == 0.0
    assert bird.target_id == item.id

    stats = sim.step()

    assert stats.food_eaten == 1
    assert sim.food == ()
    assert bird.state is BirdState.CRUISING
    assert bird.target_id is None


def test_bird_prefers_creature_unless_food_is_strictly_closer(quiet_config):
    config = quiet_config
    bird = _make(Species.AERIAL, config, 1, 0.0, 0.0, y=50.0)
    rabbit = _make(Species.GRAZER, config, 2, 20.0, 0.0)
    item = Food(id=3, position=Vector3(20.0, 0.0, 0.0))

    update(bird, _view(config, [bird, rabbit], [item]))

    assert bird.state is BirdState.DIVING
    assert bird.target_kind is TargetKind.CREATURE
    assert bird.target_id == 2

    bird = _make(Species.AERIAL, config, 1, 0.0, 0.0, y=50.0)
    closer = Food(id=4, position=Vector3(15.0, 0.0, 0.0))

    update(bird, _view(config, [bird, rabbit], [item, closer]))

    assert bird.target_kind is TargetKind.FOOD
    assert bird.target_id == 4


def test_bird_returns_to_cruising_when_target_vanishes(quiet_config):
    config = quiet_config
    bird = _make(Species.AERIAL, config, 1, 0.0, 0.0, y=20.0)
    bird.state = BirdState.DIVING
    bird.target_id = 99
    bird.target_kind = TargetKind.FOOD

    outcome = update(bird, _view(config, [bird]))

    assert bird.state is BirdState.CRUISING
    assert bird.target_id is None
    assert outcome.consumed_food_id is None


def test_bird_misses_target_out_of_reach(quiet_config):
    config = quiet_config
    bird = _make(Species.AERIAL, config, 1, 0.0, 0.0, y=0.0)
    bird.state = BirdState.EATING
    bird.target_id = 5
    bird.target_kind = TargetKind.FOOD
    item = Food(id=5, position=Vector3(100.0, 0.0, 0.0))

    outcome = update(bird, _view(config, [bird], [item]))

    assert outcome.consumed_food_id is None
    assert bird.state is BirdState.CRUISING
    assert bird.energy == pytest.approx(100.0 - 0.2)


def test_bird_climbs_back_towards_cruise_altitude(quiet_config):
    config = quiet_config
    bird = _make(Species.AERIAL, config, 1, 0.0, 0.0, y=10.0)

    update(bird, _view(config, [bird]))

    assert bird.velocity.y == pytest.approx((50.0 - 10.0) * 0.05)
    assert bird.position.y == pytest.approx(12.0)


def test_unregistered_species_raises(quiet_config, monkeypatch):
    grazer = _make(Species.GRAZER, quiet_config, 1, 0.0, 0.0)
    monkeypatch.delitem(policies.POLICIES, Species.GRAZER)

    with pytest.raises(UnknownSpeciesError):
        update(grazer, _view(quiet_config, [grazer]))
    assert issubclass(UnknownSpeciesError, KeyError)
    assert math.isclose(grazer.energy, 100.0)


def test_catch_reward_uses_prey_energy_from_start_of_tick(quiet_config):
    quiet_config.predator.energy_decay = 0.0
    sim = Simulation(quiet_config)
    rabbit = sim.spawn_creature(Species.GRAZER, 3.0, 0.0, energy=50.0)
    fox = sim.spawn_creature(Species.PREDATOR, 0.0, 0.0, velocity=Vector3(1.0, 0.0, 0.0))

    stats = sim.step()

    assert fox.energy == pytest.approx(120.0 + 80.0 + 25.0)
    assert rabbit not in sim.creatures
    assert stats.hunted == 1


def test_catch_reward_ignores_prey_changes_made_during_the_pass(quiet_config):
    config = quiet_config
    config.predator.energy_decay = 0.0
    config.predator.reproduce_energy = 1000.0
    rabbit = _make(Species.GRAZER, config, 1, 3.0, 0.0, energy=210.0)
    fox = _make(Species.PREDATOR, config, 2, 0.0, 0.0)
    view = _view(config, [rabbit, fox])

    # The rabbit splits its energy on reproduction before the fox moves.
    update(rabbit, view)
    assert rabbit.energy < 150.0
    outcome = update(fox, view)

    assert outcome.hunted_creature_id == 1
    assert fox.energy == pytest.approx(120.0 + 80.0 + 105.0)


def test_bird_catch_reward_uses_prey_energy_from_start_of_tick(quiet_config):
    config = quiet_config
    config.aerial.reproduce_energy = 1000.0
    bird = _make(Species.AERIAL, config, 1, 0.0, 0.0, y=0.0)
    bird.state = BirdState.EATING
    bird.target_id = 2
    bird.target_kind = TargetKind.CREATURE
    rabbit = _make(Species.GRAZER, config, 2, 1.0, 0.0, energy=60.0)
    view = _view(config, [rabbit, bird])
    rabbit.energy = 10.0

    outcome = update(bird, view)

    assert outcome.hunted_creature_id == 2
    assert bird.energy == pytest.approx(100.0 + 60.0 + 30.0 - 0.2)
