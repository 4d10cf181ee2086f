#!/usr/bin/env python3
"""
Default spawn policy: fills in whatever a SpawnRequest leaves unset.

- position: random orbit radius in [50, 500) on the ecliptic, small vertical jitter
- mass: 50 * U[0, 1) + 2
- velocity: circular orbit around the Sun at the current gravitational constant
- color: random hue at fixed saturation and lightness
"""
import colorsys
import math
import random
from typing import Optional

from .constants import (
    RANDOMIZE_MAX_DIST,
    RANDOMIZE_MIN_DIST,
    SPAWN_INCLINATION,
    SPAWN_MASS_SPREAD,
    SPAWN_MAX_ORBIT,
    SPAWN_MIN_MASS,
    SPAWN_MIN_ORBIT,
    SUN_MASS,
)
from .data_models import RGB, SpawnRequest
from .physics import orbital_velocity_around
from .vector_utils import Vec3, ZERO3, as_vec3, vec_norm, vec_scale


def random_orbit_position(rng: random.Random) -> Vec3:
    dist = rng.uniform(SPAWN_MIN_ORBIT, SPAWN_MAX_ORBIT)
    angle = rng.uniform(0.0, 2.0 * math.pi)
    # Rotate +X about +Y, then lift slightly out of the ecliptic.
    x, z = math.cos(angle), -math.sin(angle)
    y = rng.uniform(-SPAWN_INCLINATION, SPAWN_INCLINATION)
    return (dist * x, dist * y, dist * z)


def random_ecliptic_position(rng: random.Random) -> Vec3:
    """Random point for the UI's Randomize button."""
    dist = rng.uniform(RANDOMIZE_MIN_DIST, RANDOMIZE_MAX_DIST)
    direction = vec_norm((rng.uniform(-1.0, 1.0), rng.uniform(-1.0, 1.0), rng.uniform(-1.0, 1.0)))
    return vec_scale(direction, dist)


def random_mass(rng: random.Random) -> float:
    return SPAWN_MASS_SPREAD * rng.random() + SPAWN_MIN_MASS


def random_color(rng: random.Random) -> RGB:
    r, g, b = colorsys.hls_to_rgb(rng.random(), 0.5, 0.5)
    return (int(r * 255), int(g * 255), int(b * 255))


def fill_spawn_request(request: SpawnRequest, grav_const: float,
                       rng: Optional[random.Random] = None,
                       sun_position: Vec3 = ZERO3, sun_mass: float = SUN_MASS) -> SpawnRequest:
    """
    Return a copy of request with every field set.

    Raises:
        ValueError: if an explicit mass is not strictly positive.
    """
    rng = rng or random.Random()
    position = as_vec3(request.position) if request.position is not None else random_orbit_position(rng)
    mass = float(request.mass) if request.mass is not None else random_mass(rng)
    if not mass > 0.0 or not math.isfinite(mass):
        raise ValueError(f"planet mass must be positive, got {request.mass!r}")
    if request.velocity is not None:
        velocity = as_vec3(request.velocity)
    else:
        velocity = orbital_velocity_around(position, sun_position, grav_const, sun_mass)
    name = request.name or f"Planet (m={mass:.1f})"
    color = request.color or random_color(rng)
    return SpawnRequest(position=position, velocity=velocity, mass=mass, name=name, color=color)
