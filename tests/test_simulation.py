import math
import random

import pytest

from planetsim.data_models import AttractorState, Constants, SpawnRequest, radius_from_mass
from planetsim.physics import total_mass, total_momentum
from planetsim.simulation import SimulationState, default_scene, step
from planetsim.vector_utils import vec_add, vec_len, vec_scale


def test_head_on_equal_masses_leave_one_body_at_rest():
    state = SimulationState()
    state.add_body(10.0, position=(-5.0, 0.0, 0.0), velocity=(1.0, 0.0, 0.0))
    state.add_body(10.0, position=(5.0, 0.0, 0.0), velocity=(-1.0, 0.0, 0.0))

    snapshots = step(state, 0.01)

    assert len(snapshots) == 1
    (survivor,) = snapshots
    assert survivor.id == 1
    assert survivor.mass == 20.0
    assert survivor.radius == pytest.approx(radius_from_mass(20.0))
    assert survivor.velocity == pytest.approx((0.0, 0.0, 0.0))
    assert survivor.position == pytest.approx((0.0, 0.0, 0.0))


def test_distant_pair_creates_no_collision():
    state = SimulationState(Constants(min_attraction_dist=0.0))
    state.add_body(1.0, position=(0.0, 0.0, 0.0))
    state.add_body(1.0, position=(1000.0, 0.0, 0.0))
    step(state, 0.01)
    assert len(state) == 2
    assert state.last_merges == []
    assert state.get(1).net_force[0] == pytest.approx(20.0 / 1000.0 ** 2)


@pytest.mark.parametrize("transitive", [True, False])
@pytest.mark.parametrize("far_body_first", [True, False])
def test_merge_keeps_forces_from_third_bodies_balanced(transitive, far_body_first):
    state = SimulationState(Constants(transitive_merge=transitive))
    if far_body_first:
        far = state.add_body(5.0, position=(40.0, 0.0, 0.0))
    heavy = state.add_body(10.0, position=(0.0, 0.0, 0.0))
    state.add_body(1.0, position=(1.0, 0.0, 0.0))
    if not far_body_first:
        far = state.add_body(5.0, position=(40.0, 0.0, 0.0))

    step(state, 0.1)
    assert len(state) == 2
    survivor = state.get(heavy.id)
    assert survivor.mass == 11.0
    assert vec_add(survivor.net_force, state.get(far.id).net_force) == pytest.approx((0.0, 0.0, 0.0), abs=1e-12)

    step(state, 0.1)
    assert total_momentum(state.bodies.values()) == pytest.approx((0.0, 0.0, 0.0), abs=1e-12)


def test_mass_and_momentum_conserved_across_many_merging_steps():
    rng = random.Random(7)
    state = SimulationState(rng=rng)
    for _ in range(30):
        state.add_body(
            rng.uniform(1.0, 20.0),
            position=(rng.uniform(-60.0, 60.0), rng.uniform(-5.0, 5.0), rng.uniform(-60.0, 60.0)),
            velocity=(rng.uniform(-3.0, 3.0), 0.0, rng.uniform(-3.0, 3.0)),
        )
    bodies = list(state.bodies.values())
    m0 = total_mass(bodies)
    p0 = total_momentum(bodies)

    for _ in range(100):
        step(state, 0.01)
        bodies = list(state.bodies.values())
        assert total_mass(bodies) == pytest.approx(m0)
        assert total_momentum(bodies) == pytest.approx(p0, abs=1e-6)
        for body in bodies:
            assert body.radius == pytest.approx(radius_from_mass(body.mass))
            assert body.mass > 0.0

    assert len(state) < 30


def test_step_order_integrates_previous_forces_then_accumulates_new_ones():
    state = SimulationState(Constants(min_attraction_dist=0.0))
    a = state.add_body(1.0, position=(0.0, 0.0, 0.0))
    state.add_body(1.0, position=(100.0, 0.0, 0.0))

    step(state, 1.0)
    # First step: nothing accumulated yet, so nothing moved.
    assert a.velocity == (0.0, 0.0, 0.0)
    assert a.net_force[0] == pytest.approx(20.0 / 100.0 ** 2)

    step(state, 1.0)
    assert a.velocity[0] == pytest.approx(20.0 / 100.0 ** 2)


def test_spawn_requests_are_admitted_at_the_next_step():
    state = SimulationState(rng=random.Random(3))
    state.add_sun()
    state.spawn(SpawnRequest(position=(200.0, 0.0, 0.0), mass=4.0))
    assert len(state) == 1
    assert state.pending_spawns == 1

    snapshots = step(state, 0.0, spawn_requests=[SpawnRequest(position=(-300.0, 0.0, 0.0))])

    assert len(snapshots) == 3
    assert state.pending_spawns == 0
    assert [s.id for s in snapshots] == [1, 2, 3]
    assert state.get(2).mass == 4.0


def test_ids_are_never_reused():
    state = SimulationState()
    first = state.add_body(1.0)
    assert state.remove_body(first.id)
    assert not state.remove_body(first.id)
    second = state.add_body(1.0)
    assert second.id != first.id
    assert first.id not in state


def test_spawn_with_bad_mass_is_rejected():
    state = SimulationState()
    with pytest.raises(ValueError):
        state.add_body(0.0)
    with pytest.raises(ValueError):
        step(state, 0.01, spawn_requests=[SpawnRequest(mass=-1.0)])


def test_bad_request_in_a_batch_admits_nothing_and_keeps_the_valid_ones_queued():
    state = SimulationState()
    state.add_sun()
    for mass in (1.0, -1.0, 2.0):
        state.spawn(SpawnRequest(position=(100.0 * mass + 300.0, 0.0, 0.0), mass=mass))

    with pytest.raises(ValueError):
        step(state, 0.01)
    assert len(state) == 1
    assert state.pending_spawns == 2
    assert state.step_count == 0

    step(state, 0.01)
    assert sorted(b.mass for b in state.bodies.values() if not b.is_sun) == [1.0, 2.0]
    assert state.pending_spawns == 0


@pytest.mark.parametrize("dt", [-0.1, math.nan, math.inf])
def test_invalid_time_step_is_rejected(dt):
    state = SimulationState()
    with pytest.raises(ValueError):
        step(state, dt)


def test_attractor_adds_force_only_while_active():
    state = SimulationState(Constants(attractor_mass=50.0, min_attraction_dist=0.0))
    body = state.add_body(2.0, position=(10.0, 0.0, 0.0))

    step(state, 0.0, attractor=AttractorState(active=True, position=(0.0, 0.0, 0.0)))
    assert body.net_force[0] == pytest.approx(-20.0 * 2.0 * 50.0 / 100.0)

    step(state, 0.0, attractor=AttractorState(active=False, position=(0.0, 0.0, 0.0)))
    assert body.net_force == (0.0, 0.0, 0.0)

    step(state, 0.0, attractor=AttractorState(active=True, position=None))
    assert body.net_force == (0.0, 0.0, 0.0)


def test_constants_are_read_fresh_every_step():
    state = SimulationState(Constants(min_attraction_dist=0.0))
    a = state.add_body(1.0, position=(0.0, 0.0, 0.0))
    state.add_body(1.0, position=(100.0, 0.0, 0.0))
    step(state, 0.0)
    before = a.net_force[0]
    state.set_constant("gravitational_const", 40.0)
    step(state, 0.0)
    assert a.net_force[0] == pytest.approx(2.0 * before)


def test_set_constant_validates_and_rejects_unknown_names():
    state = SimulationState()
    state.set_constant("gravitational_const", -5.0)
    assert state.get_constant("gravitational_const") == 0.0
    with pytest.raises(KeyError):
        state.set_constant("speed_of_light", 1.0)
    with pytest.raises(KeyError):
        state.get_constant("speed_of_light")

    state.set_constant("transitive_merge", False)
    assert state.collision_groups.transitive is False
    state.reset_constants()
    assert state.constants == Constants()
    assert state.collision_groups.transitive is True


def test_default_scene_queues_planets_around_the_sun():
    state = SimulationState(rng=random.Random(11))
    default_scene(state, count=10)
    assert len(state) == 1
    assert state.sun is not None and state.sun.mass == 1000.0
    assert state.pending_spawns == 10

    admitted = state.admit_pending()
    assert len(admitted) == 10
    assert len(state) == 11
    for body in admitted:
        assert 2.0 <= body.mass < 52.0


def test_orbiting_planet_keeps_total_momentum():
    state = SimulationState(rng=random.Random(5))
    state.add_sun()
    state.spawn(SpawnRequest(position=(150.0, 0.0, 0.0), mass=5.0))
    step(state, 0.0)
    planet = state.get(2)
    sun = state.sun
    sun.velocity = vec_scale(planet.velocity, -planet.mass / sun.mass)
    p0 = total_momentum(state.bodies.values())

    for _ in range(300):
        step(state, 0.01)

    assert len(state) == 2
    assert vec_len(vec_add(total_momentum(state.bodies.values()), vec_scale(p0, -1.0))) == pytest.approx(0.0, abs=1e-9)
