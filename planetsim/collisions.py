#!/usr/bin/env python3
"""
Collision grouping and merge resolution for the planet simulator.

Overlapping pairs are found by the pairwise force pass (see physics.py) and
recorded here instead of receiving a gravitational force. Nothing is merged
while the pass is running: every pair is recorded against a pre-collision
snapshot of both bodies, and only once all pairs have been visited does
resolve_collisions() fold each group into its surviving body.

Merging is perfectly inelastic: mass and momentum are conserved, kinetic energy
is not. The survivor keeps its identity (id, name, color) and is moved to the
group's center of mass. It also inherits the net force its members picked up
from third bodies during the pass, so the pairwise forces still cancel when the
next step integrates them.

Survivor choice
- The heavier body of a pair survives. On an exact mass tie the body with the
  lower id (the one spawned first) survives, so results never depend on the
  order in which pairs are visited.

Grouping modes
- transitive=True: every overlapping pair is linked with a union-find and each
  connected cluster becomes one group, so three mutually overlapping bodies
  always end up as a single body.
- transitive=False: one group per survivor, as in the original engine. A body
  already absorbed into a group is not compared again this step, and a body
  that already leads its own group is not absorbed into another one; such
  chains finish merging over the following steps.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .data_models import Body, radius_from_mass
from .quantities import Force, Mass, Moment, Momentum, Velocity
from .vector_utils import Vec3

logger = logging.getLogger("planet_sim")


@dataclass(frozen=True)
class PlanetInfo:
    """Pre-collision state of one body taken when its pair was recorded."""
    id: int
    mass: float
    velocity: Vec3
    position: Vec3

    @classmethod
    def from_body(cls, body: Body) -> "PlanetInfo":
        return cls(id=body.id, mass=body.mass, velocity=body.velocity, position=body.position)


def outranks(a: PlanetInfo, b: PlanetInfo) -> bool:
    """True if a should survive a merge with b."""
    if a.mass != b.mass:
        return a.mass > b.mass
    return a.id < b.id


@dataclass
class CollisionGroup:
    largest: PlanetInfo
    members: List[PlanetInfo] = field(default_factory=list)

    def all_planets(self) -> Iterator[PlanetInfo]:
        yield self.largest
        yield from self.members


@dataclass(frozen=True)
class MergeEvent:
    """Outcome of resolving one group, used for status text and logging."""
    survivor_id: int
    absorbed_ids: tuple
    mass: float
    velocity: Vec3
    position: Vec3


class CollisionGroups:
    """Per-step table of pending merges. Rebuilt from empty every step."""

    def __init__(self, transitive: bool = True):
        self.transitive = transitive
        self.map: Dict[int, CollisionGroup] = {}
        self._absorbed: Dict[int, int] = {}
        self._infos: Dict[int, PlanetInfo] = {}
        self._parent: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self.groups())

    def __bool__(self) -> bool:
        return bool(self.map) or bool(self._parent)

    def clear(self) -> None:
        self.map.clear()
        self._absorbed.clear()
        self._infos.clear()
        self._parent.clear()

    def is_absorbed(self, body_id: int) -> bool:
        """True if the body is already scheduled for removal this step."""
        return body_id in self._absorbed

    def record(self, a: Body, b: Body) -> bool:
        """
        Register an overlap between a and b.

        Returns False when the pair was deferred to a later step, which only
        happens without transitive grouping.
        """
        pa, pb = PlanetInfo.from_body(a), PlanetInfo.from_body(b)
        if self.transitive:
            self._infos.setdefault(pa.id, pa)
            self._infos.setdefault(pb.id, pb)
            self._union(pa.id, pb.id)
            return True

        if pa.id in self._absorbed or pb.id in self._absorbed:
            return False
        larger, smaller = (pa, pb) if outranks(pa, pb) else (pb, pa)
        if smaller.id in self.map:
            return False
        group = self.map.get(larger.id)
        if group is None:
            group = self.map[larger.id] = CollisionGroup(largest=larger)
        group.members.append(smaller)
        self._absorbed[smaller.id] = larger.id
        return True

    def groups(self) -> List[CollisionGroup]:
        if not self.transitive:
            return list(self.map.values())

        clusters: Dict[int, List[PlanetInfo]] = {}
        for body_id, info in self._infos.items():
            clusters.setdefault(self._find(body_id), []).append(info)
        result = []
        for infos in clusters.values():
            largest = infos[0]
            for info in infos[1:]:
                if outranks(info, largest):
                    largest = info
            members = sorted((p for p in infos if p.id != largest.id), key=lambda p: p.id)
            result.append(CollisionGroup(largest=largest, members=members))
        return result

    def _find(self, x: int) -> int:
        root = x
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[x] != root:
            self._parent[x], x = root, self._parent[x]
        return root

    def _union(self, a: int, b: int) -> None:
        self._parent.setdefault(a, a)
        self._parent.setdefault(b, b)
        ra, rb = self._find(a), self._find(b)
        if ra != rb:
            self._parent[max(ra, rb)] = min(ra, rb)


def merge_group(group: CollisionGroup):
    """
    Combine a group into (total_mass, new_velocity, center_of_mass).

    Pure function of the snapshots; conserves mass and momentum exactly up to
    floating-point rounding.
    """
    planets = list(group.all_planets())
    total_mass = Mass.sum(Mass(p.mass) for p in planets)
    assert total_mass.value > 0, "merged mass must stay positive"
    total_momentum = Momentum.sum(Mass(p.mass) * Velocity(p.velocity) for p in planets)
    center_of_mass = Moment.sum(Mass(p.mass) * p.position for p in planets) / total_mass
    new_velocity = total_momentum / total_mass
    return total_mass, new_velocity, center_of_mass


def resolve_collisions(bodies: Dict[int, Body], groups: CollisionGroups) -> List[MergeEvent]:
    """
    Apply every pending merge, then clear the table.

    All group results are computed before any body is changed or removed, so no
    group ever reads state written by another one.
    """
    pending = groups.groups()
    if not pending:
        groups.clear()
        return []

    results = []
    for group in pending:
        total_mass, new_velocity, center_of_mass = merge_group(group)
        results.append((group, total_mass, new_velocity, center_of_mass))

    events: List[MergeEvent] = []
    doomed: List[int] = []
    for group, total_mass, new_velocity, center_of_mass in results:
        survivor: Optional[Body] = bodies.get(group.largest.id)
        if survivor is None:
            continue
        survivor.mass = total_mass.value
        survivor.velocity = new_velocity.vec
        survivor.position = center_of_mass
        survivor.trail.clear()
        absorbed = tuple(p.id for p in group.members)
        # Members are still in the arena here; removal happens after every group is applied.
        survivor.net_force = Force.sum(
            [survivor.force_q] + [bodies[i].force_q for i in absorbed if i in bodies]
        ).vec
        doomed.extend(absorbed)
        events.append(MergeEvent(
            survivor_id=survivor.id,
            absorbed_ids=absorbed,
            mass=survivor.mass,
            velocity=survivor.velocity,
            position=survivor.position,
        ))
        logger.info(
            f"Merged {len(absorbed)} bodies into {survivor.name} (id={survivor.id}): "
            f"mass={survivor.mass:.3f} radius={radius_from_mass(survivor.mass):.3f}"
        )

    for body_id in doomed:
        bodies.pop(body_id, None)

    groups.clear()
    return events
