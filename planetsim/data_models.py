#!/usr/bin/env python3
"""
Data models for the planet simulator.

This module defines the Body dataclass shared between physics, rendering, and UI,
along with the small value types that cross the engine boundary.

Units and usage
- Simulation units throughout; the world is 3D with +Y up and the ecliptic in the XZ plane.
- A body's radius is never stored: it is derived from its mass on every read, so the
  two can not drift apart.
- trail stores past positions to render motion paths; it is appended by the controller.
"""
from collections import deque
from dataclasses import dataclass, field, fields, replace
from typing import Deque, Optional, Tuple

from .constants import (
    DEFAULT_ATTRACTOR_MASS,
    DEFAULT_GRAVITATIONAL_CONST,
    DEFAULT_MIN_ATTRACTION_DIST,
    DEFAULT_VELOCITY_DAMPING,
    RADIUS_MASS_FACTOR,
    TRAIL_LENGTH,
)
from .quantities import Force, Mass, Momentum, Velocity
from .vector_utils import Vec3, ZERO3

RGB = Tuple[int, int, int]


def radius_from_mass(mass: float) -> float:
    """radius = k * mass^(1/3)"""
    return RADIUS_MASS_FACTOR * mass ** (1.0 / 3.0)


def mass_from_radius(radius: float) -> float:
    """Inverse of radius_from_mass."""
    return (radius / RADIUS_MASS_FACTOR) ** 3


@dataclass(eq=False)
class Body:
    """
    A planet (or the Sun) in the simulation.

    Fields:
    - id: Stable handle, unique for the lifetime of the simulation state
    - name: Display name
    - mass: Strictly positive mass
    - position: 3D position
    - velocity: 3D velocity
    - net_force: Force accumulated during the current step; zero after integration
    - color: RGB tuple used for rendering
    - is_sun: Marks the distinguished central body
    - trail: Deque of past positions for drawing motion trails
    """
    id: int
    name: str
    mass: float
    position: Vec3
    velocity: Vec3 = ZERO3
    net_force: Vec3 = ZERO3
    color: RGB = (200, 200, 255)
    is_sun: bool = False
    trail: Deque[Vec3] = field(default_factory=lambda: deque(maxlen=TRAIL_LENGTH))

    def __post_init__(self):
        assert self.mass > 0, f"body {self.id} created with non-positive mass {self.mass}"

    @property
    def radius(self) -> float:
        return radius_from_mass(self.mass)

    @property
    def mass_q(self) -> Mass:
        return Mass(self.mass)

    @property
    def velocity_q(self) -> Velocity:
        return Velocity(self.velocity)

    @property
    def force_q(self) -> Force:
        return Force(self.net_force)

    @property
    def momentum(self) -> Momentum:
        return self.mass_q * self.velocity_q

    def add_trail_point(self) -> None:
        """Append the current position to the trail."""
        self.trail.append(self.position)

    def snapshot(self) -> "BodySnapshot":
        return BodySnapshot(
            id=self.id,
            name=self.name,
            position=self.position,
            velocity=self.velocity,
            mass=self.mass,
            radius=self.radius,
            color=self.color,
            is_sun=self.is_sun,
        )


@dataclass(frozen=True)
class BodySnapshot:
    """Read-only view of a live body handed to the render layer after each step."""
    id: int
    name: str
    position: Vec3
    velocity: Vec3
    mass: float
    radius: float
    color: RGB
    is_sun: bool = False


@dataclass(frozen=True)
class SpawnRequest:
    """A request to add a planet; unset fields are filled by the spawn policy."""
    position: Optional[Vec3] = None
    velocity: Optional[Vec3] = None
    mass: Optional[float] = None
    name: Optional[str] = None
    color: Optional[RGB] = None


@dataclass(frozen=True)
class AttractorState:
    """Pointer attractor fed to the engine once per step."""
    active: bool = False
    position: Optional[Vec3] = None

    @property
    def usable(self) -> bool:
        return self.active and self.position is not None


@dataclass
class Constants:
    """
    Process-wide tunables. Mutated only between steps by user-facing configuration;
    the physics core reads the current values every step and never writes them.
    """
    gravitational_const: float = DEFAULT_GRAVITATIONAL_CONST
    min_attraction_dist: float = DEFAULT_MIN_ATTRACTION_DIST
    attractor_mass: float = DEFAULT_ATTRACTOR_MASS
    velocity_damping: float = DEFAULT_VELOCITY_DAMPING
    transitive_merge: bool = True

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def validated(self) -> "Constants":
        """Return a copy with negative numeric values clamped to zero."""
        return replace(
            self,
            gravitational_const=max(0.0, float(self.gravitational_const)),
            min_attraction_dist=max(0.0, float(self.min_attraction_dist)),
            attractor_mass=max(0.0, float(self.attractor_mass)),
            velocity_damping=max(0.0, float(self.velocity_damping)),
            transitive_merge=bool(self.transitive_merge),
        )
