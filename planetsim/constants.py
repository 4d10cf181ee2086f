#!/usr/bin/env python3
"""
Shared constants for the planet simulator (simulation units, not SI).

Keeping constants in one place helps ensure values are consistent across the
codebase and makes tuning easier. Values that the user may edit at runtime are
only defaults here; the live values sit on the Constants object owned by the
simulation state.
"""

# Physics defaults (editable at runtime)
DEFAULT_GRAVITATIONAL_CONST = 20.0
DEFAULT_MIN_ATTRACTION_DIST = 0.001  # softening term added to r^2
DEFAULT_ATTRACTOR_MASS = 200.0  # effective point mass of the pointer attractor
DEFAULT_VELOCITY_DAMPING = 0.0  # fraction of velocity removed per second

# radius = RADIUS_MASS_FACTOR * mass^(1/3)
RADIUS_MASS_FACTOR = 3.0

# Sun and spawn policy
SUN_MASS = 1000.0
SUN_NAME = "Sun"
DEFAULT_PLANET_COUNT = 25
SPAWN_MIN_ORBIT = 50.0
SPAWN_MAX_ORBIT = 500.0
SPAWN_INCLINATION = 0.1  # max |y| offset as a fraction of orbit radius
SPAWN_MIN_MASS = 2.0
SPAWN_MASS_SPREAD = 50.0
RANDOMIZE_MIN_DIST = 50.0
RANDOMIZE_MAX_DIST = 600.0

# Time stepping
BASE_DT = 1 / 120.0  # seconds of simulation time per physics substep
MAX_SUBSTEPS = 16  # cap per frame so a stalled frame does not explode

# Rendering (viewport)
VIEW_WIDTH = 1100
VIEW_HEIGHT = 800
BACKGROUND_COLOR = (9, 1, 17)
SUN_COLOR = (255, 165, 0)
ATTRACTOR_COLOR = (0, 255, 0)
DEBUG_LINE_COLOR = (60, 60, 70)
SPAWN_GUIDE_COLOR = (255, 215, 0)
TRAIL_LENGTH = 200

# Camera zoom bounds (world units per pixel)
DEFAULT_UNITS_PER_PIXEL = 1.0
MIN_UNITS_PER_PIXEL = 0.05
MAX_UNITS_PER_PIXEL = 50.0

# Safety: avoid drawing outside reasonable integer pixel ranges
SAFE_COORD_LIMIT = 30000
