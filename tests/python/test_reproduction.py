import itertools
import math

import pytest
from pygame.math import Vector3

from biome.config import MutationConfig, SpeciesConfig
from biome.rng import DeterministicRng
from biome.sim.core.creature import BirdState, Creature, Species
from biome.sim.core.geometry import Obstacle, WorldBounds
from biome.sim.core.view import TickView
from biome.sim.systems.reproduction import mutate, reproduce


def _view(config, obstacles=(), seed=1):
    return TickView.capture(
        tick=1,
        config=config,
        world=WorldBounds(config.world.width, config.world.depth),
        obstacles=tuple(obstacles),
        food=(),
        creatures=(),
        rng=DeterministicRng(seed),
        allocate_id=itertools.count(1000).__next__,
    )


def _parent(species=Species.GRAZER, x=0.0, z=0.0, energy=200.0):
    return Creature(
        id=1,
        species=species,
        position=Vector3(x, 0.0, z),
        velocity=Vector3(1.0, 0.0, 0.0),
        energy=energy,
        size=2.5,
        speed=1.7,
        sense=64.0,
        field_of_view=math.pi / 2,
        generation=3,
    )


def test_split_conserves_energy_and_inherits_traits(quiet_config):
    parent = _parent(energy=230.0)

    child = reproduce(parent, _view(quiet_config))

    assert child is not None
    assert child.id == 1000
    assert parent.energy == pytest.approx(115.0)
    assert parent.energy + child.energy == 230.0
    assert child.species is Species.GRAZER
    assert child.generation == 4
    assert child.speed == 1.7
    assert child.sense == 64.0
    assert child.position == parent.position
    assert child.position is not parent.position


def test_below_threshold_does_nothing(quiet_config):
    parent = _parent(energy=199.9)

    assert reproduce(parent, _view(quiet_config)) is None
    assert parent.energy == 199.9


def test_mutation_respects_floors():
    config = SpeciesConfig(min_speed=0.5, min_sense=10.0)
    child = _parent()
    child.speed = 0.4
    child.sense = 5.0

    mutate(child, config, MutationConfig(rate=1.0, max_factor=0.0), DeterministicRng(4))

    assert child.speed == 0.5
    assert child.sense == 10.0


def test_mutation_stays_within_factor():
    config = SpeciesConfig()
    mutation = MutationConfig(rate=1.0, max_factor=0.2)
    rng = DeterministicRng(9)
    for _ in range(50):
        child = _parent()
        mutate(child, config, mutation, rng)
        assert 1.7 * 0.8 <= child.speed <= 1.7 * 1.2
        assert 64.0 * 0.8 <= child.sense <= 64.0 * 1.2


def test_zero_mutation_rate_keeps_traits():
    child = _parent()

    mutate(child, SpeciesConfig(), MutationConfig(rate=0.0, max_factor=0.5), DeterministicRng(2))

    assert (child.speed, child.sense) == (1.7, 64.0)


def test_birth_in_water_moves_to_dry_offset(quiet_config):
    pond = Obstacle.rectangle(0.0, 0.0, 10.0, 10.0)
    parent = _parent(x=-3.0)

    child = reproduce(parent, _view(quiet_config, [pond]))

    # +x lands at -0.5, still wet; -x lands at -5.5 on dry ground.
    assert child is not None
    assert child.position == Vector3(-5.5, 0.0, 0.0)
    assert not pond.contains(child.position.x, child.position.z)


def test_birth_aborts_and_refunds_when_surrounded_by_water(quiet_config):
    lake = Obstacle.rectangle(0.0, 0.0, 100.0, 100.0)
    parent = _parent(energy=240.0)

    assert reproduce(parent, _view(quiet_config, [lake])) is None
    assert parent.energy == 240.0


def test_aerial_offspring_cruises_from_parent_position(quiet_config):
    lake = Obstacle.rectangle(0.0, 0.0, 100.0, 100.0)
    parent = _parent(species=Species.AERIAL, energy=180.0)
    parent.position.y = 40.0

    child = reproduce(parent, _view(quiet_config, [lake]))

    assert child is not None
    assert child.state is BirdState.CRUISING
    assert child.position == Vector3(0.0, 40.0, 0.0)
    assert child.energy == pytest.approx(90.0)


def test_offspring_faces_along_its_own_velocity(quiet_config):
    parent = _parent(energy=220.0)
    parent.heading = Vector3(0.0, 0.0, -1.0)

    child = reproduce(parent, _view(quiet_config))

    expected = Vector3(child.velocity).normalize()
    assert child.heading.x == pytest.approx(expected.x)
    assert child.heading.z == pytest.approx(expected.z)
    assert child.heading is not parent.heading
