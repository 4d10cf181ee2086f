import pytest

from planetsim.collisions import (
    CollisionGroup,
    CollisionGroups,
    PlanetInfo,
    merge_group,
    outranks,
    resolve_collisions,
)
from planetsim.data_models import Body, Constants, radius_from_mass
from planetsim.physics import NBodyPhysics


def make_body(body_id, mass, position, velocity=(0.0, 0.0, 0.0)):
    return Body(id=body_id, name=f"b{body_id}", mass=mass, position=position, velocity=velocity)


def arena(*bodies):
    return {b.id: b for b in bodies}


def run_force_and_merge(bodies, transitive):
    groups = CollisionGroups(transitive=transitive)
    NBodyPhysics(Constants(transitive_merge=transitive)).accumulate_forces(list(bodies.values()), groups)
    return resolve_collisions(bodies, groups), groups


def test_heavier_body_survives():
    heavy = make_body(2, 9.0, (0.0, 0.0, 0.0))
    light = make_body(1, 1.0, (1.0, 0.0, 0.0))
    groups = CollisionGroups(transitive=False)
    groups.record(light, heavy)
    (group,) = groups.groups()
    assert group.largest.id == 2
    assert [m.id for m in group.members] == [1]


@pytest.mark.parametrize("transitive", [True, False])
def test_equal_mass_tie_goes_to_lower_id(transitive):
    a = make_body(1, 5.0, (0.0, 0.0, 0.0))
    b = make_body(2, 5.0, (1.0, 0.0, 0.0))
    for first, second in ((a, b), (b, a)):
        groups = CollisionGroups(transitive=transitive)
        groups.record(first, second)
        (group,) = groups.groups()
        assert group.largest.id == 1
        assert [m.id for m in group.members] == [2]


def test_outranks_is_a_strict_order():
    a = PlanetInfo(1, 5.0, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))
    b = PlanetInfo(2, 5.0, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))
    assert outranks(a, b)
    assert not outranks(b, a)
    assert not outranks(a, a)


def test_merge_conserves_mass_exactly_and_momentum():
    group = CollisionGroup(
        largest=PlanetInfo(1, 3.0, (1.0, 0.0, 0.0), (0.0, 0.0, 0.0)),
        members=[
            PlanetInfo(2, 1.5, (0.0, -2.0, 0.0), (1.0, 0.0, 0.0)),
            PlanetInfo(3, 2.25, (4.0, 1.0, -1.0), (0.0, 1.0, 0.0)),
        ],
    )
    total_mass, velocity, com = merge_group(group)
    assert total_mass.value == 6.75

    expected_p = [
        sum(p.mass * p.velocity[k] for p in group.all_planets()) for k in range(3)
    ]
    assert [c * total_mass.value for c in velocity.vec] == pytest.approx(expected_p)

    expected_com = [
        sum(p.mass * p.position[k] for p in group.all_planets()) / 6.75 for k in range(3)
    ]
    assert list(com) == pytest.approx(expected_com)


def test_head_on_equal_masses_merge_at_rest():
    a = make_body(1, 10.0, (-5.0, 0.0, 0.0), velocity=(1.0, 0.0, 0.0))
    b = make_body(2, 10.0, (5.0, 0.0, 0.0), velocity=(-1.0, 0.0, 0.0))
    bodies = arena(a, b)
    events, groups = run_force_and_merge(bodies, transitive=True)

    assert list(bodies) == [1]
    survivor = bodies[1]
    assert survivor.mass == 20.0
    assert survivor.radius == pytest.approx(radius_from_mass(20.0))
    assert survivor.velocity == pytest.approx((0.0, 0.0, 0.0))
    assert survivor.position == pytest.approx((0.0, 0.0, 0.0))
    assert events[0].absorbed_ids == (2,)
    assert not groups


def test_resolution_uses_pre_collision_snapshots():
    a = make_body(1, 4.0, (0.0, 0.0, 0.0), velocity=(1.0, 0.0, 0.0))
    b = make_body(2, 4.0, (1.0, 0.0, 0.0), velocity=(-1.0, 0.0, 0.0))
    groups = CollisionGroups()
    groups.record(a, b)
    a.velocity = (100.0, 0.0, 0.0)
    a.position = (50.0, 0.0, 0.0)
    resolve_collisions(arena(a, b), groups)
    assert a.velocity == pytest.approx((0.0, 0.0, 0.0))
    assert a.position == pytest.approx((0.5, 0.0, 0.0))


def test_survivor_takes_over_the_net_force_of_absorbed_bodies():
    a = make_body(1, 4.0, (0.0, 0.0, 0.0))
    b = make_body(2, 1.0, (1.0, 0.0, 0.0))
    a.net_force = (2.0, 0.0, 0.0)
    b.net_force = (0.5, -1.0, 0.0)
    groups = CollisionGroups()
    groups.record(a, b)
    resolve_collisions(arena(a, b), groups)
    assert a.net_force == pytest.approx((2.5, -1.0, 0.0))


def test_disjoint_groups_resolve_in_the_same_step():
    bodies = arena(
        make_body(1, 8.0, (0.0, 0.0, 0.0)),
        make_body(2, 1.0, (2.0, 0.0, 0.0)),
        make_body(3, 8.0, (500.0, 0.0, 0.0)),
        make_body(4, 1.0, (502.0, 0.0, 0.0)),
    )
    events, _ = run_force_and_merge(bodies, transitive=False)
    assert sorted(bodies) == [1, 3]
    assert bodies[1].mass == 9.0
    assert bodies[3].mass == 9.0
    assert len(events) == 2


def chain(first_id_order):
    # A overlaps B, B overlaps C, A and C are apart.
    specs = {
        "A": (10.0, (0.0, 0.0, 0.0)),
        "B": (5.0, (10.0, 0.0, 0.0)),
        "C": (3.0, (19.0, 0.0, 0.0)),
    }
    bodies = {}
    ids = {}
    for body_id, key in enumerate(first_id_order, start=1):
        mass, pos = specs[key]
        bodies[body_id] = make_body(body_id, mass, pos)
        ids[key] = body_id
    return bodies, ids


def test_chain_overlap_merges_into_one_body_when_transitive():
    bodies, ids = chain("ABC")
    run_force_and_merge(bodies, transitive=True)
    assert list(bodies) == [ids["A"]]
    assert bodies[ids["A"]].mass == 18.0


def test_chain_overlap_without_transitive_merging_leaves_a_remainder():
    bodies, ids = chain("ABC")
    run_force_and_merge(bodies, transitive=False)
    assert sorted(bodies) == sorted([ids["A"], ids["C"]])
    assert bodies[ids["A"]].mass == 15.0
    assert bodies[ids["C"]].mass == 3.0


def test_non_transitive_mode_defers_absorbing_a_group_leader():
    # B meets C first and leads that group, so A may not swallow B this step.
    bodies, ids = chain("BCA")
    run_force_and_merge(bodies, transitive=False)
    assert sorted(bodies) == sorted([ids["A"], ids["B"]])
    assert bodies[ids["B"]].mass == 8.0
    assert bodies[ids["A"]].mass == 10.0
    assert sum(b.mass for b in bodies.values()) == 18.0


def test_absorbed_body_appears_in_one_group_only():
    hub = make_body(3, 1.0, (0.0, 0.0, 0.0))
    left = make_body(1, 5.0, (-4.0, 0.0, 0.0))
    right = make_body(2, 5.0, (4.0, 0.0, 0.0))
    groups = CollisionGroups(transitive=False)
    assert groups.record(left, hub)
    assert not groups.record(right, hub)
    members = [m.id for g in groups.groups() for m in g.members]
    assert members == [3]


def test_mutual_triple_overlap_with_transitive_merge():
    bodies = arena(
        make_body(1, 2.0, (0.0, 0.0, 0.0), velocity=(1.0, 0.0, 0.0)),
        make_body(2, 2.0, (1.0, 0.0, 0.0), velocity=(0.0, 1.0, 0.0)),
        make_body(3, 4.0, (0.0, 1.0, 0.0), velocity=(0.0, 0.0, 1.0)),
    )
    events, _ = run_force_and_merge(bodies, transitive=True)
    assert list(bodies) == [3]
    merged = bodies[3]
    assert merged.mass == 8.0
    assert merged.velocity == pytest.approx((0.25, 0.25, 0.5))
    assert merged.position == pytest.approx((0.25, 0.5, 0.0))
    assert events[0].absorbed_ids == (1, 2)


def test_groups_are_cleared_after_resolution():
    a = make_body(1, 4.0, (0.0, 0.0, 0.0))
    b = make_body(2, 1.0, (1.0, 0.0, 0.0))
    groups = CollisionGroups(transitive=False)
    groups.record(a, b)
    assert len(groups) == 1
    resolve_collisions(arena(a, b), groups)
    assert len(groups) == 0
    assert not groups.is_absorbed(2)
