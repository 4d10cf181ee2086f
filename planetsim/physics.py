#!/usr/bin/env python3
"""
Core Physics Engine for the planet simulator

Responsibilities
- Accumulate pairwise gravitational forces with softening, flagging overlapping pairs as collisions.
- Add the optional pull of the pointer attractor.
- Advance body states with an explicit (forward) Euler integrator.
- Provide small diagnostics (momentum, center of mass, energies) used by tests and the HUD.

Conventions
- Positions, velocities and forces are (x, y, z) tuples; the tagged types in quantities.py
  are used wherever units meet, so a force can only become a velocity through a mass and a time.
- The gravitational constant G and the softening term are read from a Constants object on
  every call; nothing is cached between steps.

Numerical notes
- Softening: the force denominator is r^2 + eps, which keeps the force finite as r -> 0.
  Combined with normalize-or-zero directions, coincident bodies exert no force on each other.
- Complexity: the force pass is O(N^2) per step (direct summation over unordered pairs).
  Body counts stay in the tens to low hundreds, so no spatial structure is used.
- Energy: forward Euler is not symplectic; total energy drifts over long runs, worst at large
  dt or during close encounters. That is an accepted trade-off for an interactive toy.
- Collisions are detected only as overlap at discrete steps; fast bodies can tunnel through
  each other.

Threading
- Everything here runs on a single thread. The controller serialises steps with a lock.
"""

import math
from typing import Iterable, Optional

from .collisions import CollisionGroups
from .data_models import AttractorState, Body, Constants, mass_from_radius, radius_from_mass
from .quantities import Force, Mass, Moment, Momentum, Time
from .vector_utils import Vec3, UP, ZERO3, vec_add, vec_cross, vec_len, vec_len_sq, vec_norm, vec_scale, vec_sub

__all__ = [
    "NBodyPhysics",
    "gravitational_force",
    "radius_from_mass",
    "mass_from_radius",
    "circular_orbit_velocity",
    "orbital_velocity_around",
    "total_mass",
    "total_momentum",
    "center_of_mass",
    "kinetic_energy",
    "potential_energy",
]


def gravitational_force(pos_a: Vec3, mass_a: float, pos_b: Vec3, mass_b: float,
                        grav_const: float, min_dist: float) -> Force:
    """
    Softened gravitational force exerted on A by B.

        F = G * m_a * m_b * dir(a -> b) / (|b - a|^2 + eps)

    The direction falls back to the zero vector when the positions coincide.
    """
    delta = vec_sub(pos_b, pos_a)
    toward_b = vec_norm(delta)
    denom = vec_len_sq(delta) + min_dist
    if denom <= 0.0:
        return Force.ZERO
    magnitude = grav_const * mass_a * mass_b / denom
    return Force(vec_scale(toward_b, magnitude))


class NBodyPhysics:
    """
    Pairwise N-body engine: force accumulation, attractor coupling and Euler integration.

    The force on each unordered pair is computed once and applied with opposite signs,
    so the internal forces sum to exactly zero (Newton's third law).
    """

    def __init__(self, constants: Optional[Constants] = None):
        self.constants = constants if constants is not None else Constants()
        self.pair_visits = 0

    def accumulate_forces(self, bodies: Iterable[Body], groups: CollisionGroups,
                          constants: Optional[Constants] = None) -> int:
        """
        Visit every unordered pair once, adding gravity to net_force or recording a collision.

        Args:
            bodies: Live bodies; only net_force is written.
            groups: Per-step collision table receiving overlapping pairs.
            constants: Overrides the engine's constants for this call.

        Returns:
            Number of overlapping pairs found.
        """
        c = constants if constants is not None else self.constants
        grav_const = c.gravitational_const
        min_dist = c.min_attraction_dist
        items = list(bodies)
        n = len(items)
        collisions = 0
        visits = 0

        for i in range(n):
            a = items[i]
            for j in range(i + 1, n):
                if groups.is_absorbed(a.id):
                    break
                b = items[j]
                if groups.is_absorbed(b.id):
                    continue
                visits += 1

                delta = vec_sub(b.position, a.position)
                radii_sum = a.radius + b.radius
                # Collision detection
                if vec_len_sq(delta) < radii_sum * radii_sum:
                    groups.record(a, b)
                    collisions += 1
                    continue

                force = gravitational_force(a.position, a.mass, b.position, b.mass, grav_const, min_dist)
                a.net_force = (a.force_q + force).vec
                b.net_force = (b.force_q - force).vec

        self.pair_visits = visits
        return collisions

    def apply_attractor(self, bodies: Iterable[Body], attractor: Optional[AttractorState],
                        constants: Optional[Constants] = None) -> bool:
        """
        Pull every body toward the attractor point. Inactive or position-less attractors are skipped.

        Returns True if any force was applied.
        """
        if attractor is None or not attractor.usable:
            return False
        c = constants if constants is not None else self.constants
        if c.attractor_mass <= 0.0:
            return False
        target = attractor.position
        for body in bodies:
            force = gravitational_force(body.position, body.mass, target, c.attractor_mass,
                                        c.gravitational_const, c.min_attraction_dist)
            body.net_force = (body.force_q + force).vec
        return True

    def integrate(self, bodies: Iterable[Body], dt: float, damping: float = 0.0) -> None:
        """
        Explicit Euler step: v += (F/m) dt, x += v dt, then reset the force accumulator.

        Args:
            bodies: Bodies to advance in place.
            dt: Time step (>= 0).
            damping: Fraction of velocity removed per unit time; 0 disables it.
        """
        step = Time(dt)
        keep = max(0.0, 1.0 - damping * dt) if damping > 0.0 else 1.0
        for body in bodies:
            acceleration = body.force_q / body.mass_q
            velocity = body.velocity_q + acceleration * step
            if keep != 1.0:
                velocity = velocity * keep
            body.velocity = velocity.vec
            body.position = vec_add(body.position, velocity * step)
            body.net_force = ZERO3


def circular_orbit_velocity(grav_const: float, central_mass: float, orbital_radius: float) -> float:
    """
    Speed for a circular orbit: G * M / r = v^2 / r, so v = sqrt(G * M / r).
    """
    if orbital_radius <= 0:
        return 0.0
    return math.sqrt(grav_const * central_mass / orbital_radius)


def orbital_velocity_around(position: Vec3, center: Vec3, grav_const: float, central_mass: float) -> Vec3:
    """Circular orbit velocity in the ecliptic plane, counter-clockwise seen from +Y."""
    offset = vec_sub(position, center)
    speed = circular_orbit_velocity(grav_const, central_mass, vec_len(offset))
    return vec_scale(vec_norm(vec_cross(offset, UP)), -speed)


def total_mass(bodies: Iterable[Body]) -> float:
    return Mass.sum(b.mass_q for b in bodies).value


def total_momentum(bodies: Iterable[Body]) -> Vec3:
    return Momentum.sum(b.momentum for b in bodies).vec


def center_of_mass(bodies: Iterable[Body]) -> Vec3:
    items = list(bodies)
    if not items:
        return ZERO3
    mass = Mass.sum(b.mass_q for b in items)
    return Moment.sum(b.mass_q * b.position for b in items) / mass


def kinetic_energy(bodies: Iterable[Body]) -> float:
    return sum(0.5 * b.mass * vec_len_sq(b.velocity) for b in bodies)


def potential_energy(bodies: Iterable[Body], constants: Constants) -> float:
    """Softened pairwise potential, matching the force law only in the unsoftened limit."""
    items = list(bodies)
    g = constants.gravitational_const
    eps = constants.min_attraction_dist
    energy = 0.0
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            r = math.sqrt(vec_len_sq(vec_sub(items[j].position, items[i].position)) + eps)
            if r > 0:
                energy -= g * items[i].mass * items[j].mass / r
    return energy
