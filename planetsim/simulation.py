#!/usr/bin/env python3
"""
Simulation state and the per-step driver.

SimulationState owns the body arena, the live Constants and the per-step
collision table. step() advances it by one tick in a fixed order:

1. admit pending spawn requests (bodies are only ever added between steps)
2. integrate using the forces accumulated during the previous step
3. pairwise force pass, recording overlapping pairs, then the attractor pull
4. resolve collision groups, removing absorbed bodies

and returns snapshots of every live body for the render layer.
"""
import logging
import math
import random
from collections import deque
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .collisions import CollisionGroups, MergeEvent, resolve_collisions
from .constants import DEFAULT_PLANET_COUNT, SUN_COLOR, SUN_MASS, SUN_NAME, TRAIL_LENGTH
from .data_models import AttractorState, Body, BodySnapshot, Constants, SpawnRequest
from .physics import NBodyPhysics
from .spawning import fill_spawn_request
from .vector_utils import Vec3, ZERO3, as_vec3

logger = logging.getLogger("planet_sim")


class SimulationState:
    """
    Body arena plus everything a step needs.

    Body ids are handed out in increasing order and never reused, so an id held by
    the render layer either names the same body or names nothing.
    """

    def __init__(self, constants: Optional[Constants] = None, rng: Optional[random.Random] = None):
        self.constants = constants if constants is not None else Constants()
        self.bodies: Dict[int, Body] = {}
        self.collision_groups = CollisionGroups(transitive=self.constants.transitive_merge)
        self.physics = NBodyPhysics(self.constants)
        self.rng = rng if rng is not None else random.Random()
        self.time = 0.0
        self.step_count = 0
        self.last_merges: List[MergeEvent] = []
        self._pending: List[SpawnRequest] = []
        self._next_id = 1
        self._in_step = False

    # -----------------------
    # Body set
    # -----------------------

    def __len__(self) -> int:
        return len(self.bodies)

    def __contains__(self, body_id: int) -> bool:
        return body_id in self.bodies

    def get(self, body_id: int) -> Optional[Body]:
        return self.bodies.get(body_id)

    @property
    def sun(self) -> Optional[Body]:
        for body in self.bodies.values():
            if body.is_sun:
                return body
        return None

    def add_body(self, mass: float, position: Vec3 = ZERO3, velocity: Vec3 = ZERO3,
                 name: Optional[str] = None, color=(200, 200, 255), is_sun: bool = False) -> Body:
        """Admit a fully specified body immediately. Not allowed while a step is running."""
        if self._in_step:
            raise RuntimeError("bodies can only be added between steps")
        if not mass > 0.0 or not math.isfinite(mass):
            raise ValueError(f"body mass must be positive, got {mass!r}")
        body_id = self._next_id
        self._next_id += 1
        body = Body(
            id=body_id,
            name=name or f"Body {body_id}",
            mass=float(mass),
            position=as_vec3(position),
            velocity=as_vec3(velocity),
            color=color,
            is_sun=is_sun,
            trail=deque(maxlen=TRAIL_LENGTH),
        )
        self.bodies[body_id] = body
        return body

    def add_sun(self, mass: float = SUN_MASS) -> Body:
        return self.add_body(mass, name=SUN_NAME, color=SUN_COLOR, is_sun=True)

    def spawn(self, request: SpawnRequest) -> int:
        """Queue a spawn request; it is admitted at the start of the next step. Returns the queue length."""
        self._pending.append(request)
        return len(self._pending)

    @property
    def pending_spawns(self) -> int:
        return len(self._pending)

    def admit_pending(self, extra: Iterable[SpawnRequest] = ()) -> List[Body]:
        """
        Admit every queued request plus extra ones, all or nothing.

        Every request is filled and checked before any body is added. If some are
        invalid, nothing is admitted, the valid ones (already filled) stay queued
        for the next call, and ValueError is raised naming the rejected ones.
        """
        requests = self._pending + list(extra)
        sun = self.sun
        filled_requests = []
        rejected = []
        for request in requests:
            try:
                filled_requests.append(fill_spawn_request(
                    request,
                    self.constants.gravitational_const,
                    self.rng,
                    sun_position=sun.position if sun else ZERO3,
                    sun_mass=sun.mass if sun else SUN_MASS,
                ))
            except ValueError as exc:
                rejected.append(str(exc))

        if rejected:
            self._pending = filled_requests
            logger.warning(f"Rejected {len(rejected)} spawn requests, {len(filled_requests)} kept queued")
            raise ValueError("; ".join(rejected))

        self._pending = []
        admitted = []
        for filled in filled_requests:
            admitted.append(self.add_body(
                filled.mass,
                position=filled.position,
                velocity=filled.velocity,
                name=filled.name,
                color=filled.color,
            ))
        if admitted:
            logger.debug(f"Admitted {len(admitted)} spawned bodies")
        return admitted

    def remove_body(self, body_id: int) -> bool:
        if self._in_step:
            raise RuntimeError("bodies can only be removed between steps")
        return self.bodies.pop(body_id, None) is not None

    def clear(self) -> None:
        self.bodies.clear()
        self._pending.clear()
        self.collision_groups.clear()

    def snapshots(self) -> List[BodySnapshot]:
        return [body.snapshot() for body in self.bodies.values()]

    # -----------------------
    # Constants (inspector-style access)
    # -----------------------

    def get_constant(self, name: str):
        if name not in Constants.names():
            raise KeyError(name)
        return getattr(self.constants, name)

    def set_constant(self, name: str, value) -> None:
        """Update one constant in place. Takes effect from the next step."""
        if name not in Constants.names():
            logger.warning(f"Ignoring unknown constant {name!r}")
            raise KeyError(name)
        validated = replace(self.constants, **{name: value}).validated()
        setattr(self.constants, name, getattr(validated, name))
        if name == "transitive_merge":
            self.collision_groups.transitive = self.constants.transitive_merge

    def reset_constants(self) -> None:
        defaults = Constants()
        for name in Constants.names():
            setattr(self.constants, name, getattr(defaults, name))
        self.collision_groups.transitive = self.constants.transitive_merge


def step(state: SimulationState, dt: float, attractor: Optional[AttractorState] = None,
         spawn_requests: Iterable[SpawnRequest] = ()) -> List[BodySnapshot]:
    """
    Advance the simulation by one tick of length dt.

    Args:
        state: Simulation state, mutated in place.
        dt: Time step (>= 0, finite).
        attractor: Pointer attractor for this step; None or inactive means no pull.
        spawn_requests: Extra requests admitted before the step, after any queued ones.

    Returns:
        Snapshots of all bodies alive after the step.

    Raises:
        ValueError: if dt is negative or not finite, or a spawn request has a bad mass.
    """
    if not math.isfinite(dt) or dt < 0.0:
        raise ValueError(f"time step must be a finite non-negative number, got {dt!r}")

    state.admit_pending(spawn_requests)

    constants = state.constants
    groups = state.collision_groups
    groups.transitive = constants.transitive_merge
    bodies = list(state.bodies.values())

    state._in_step = True
    try:
        state.physics.integrate(bodies, dt, constants.velocity_damping)
        collisions = state.physics.accumulate_forces(bodies, groups, constants)
        state.physics.apply_attractor(bodies, attractor, constants)
        state.last_merges = resolve_collisions(state.bodies, groups)
    finally:
        state._in_step = False
        groups.clear()

    state.time += dt
    state.step_count += 1
    if collisions:
        logger.debug(
            f"Step {state.step_count}: {collisions} overlapping pairs, "
            f"{len(state.last_merges)} merges, {len(state.bodies)} bodies left"
        )
    return state.snapshots()


def default_scene(state: SimulationState, count: int = DEFAULT_PLANET_COUNT) -> None:
    """Replace the scene with the Sun plus count randomly placed planets (admitted on the next step)."""
    state.clear()
    state.add_sun()
    for _ in range(max(0, int(count))):
        state.spawn(SpawnRequest())
    logger.info(f"Created default scene: Sun + {count} planets")
