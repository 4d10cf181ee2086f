#!/usr/bin/env python3
"""
Two-click planet placement for the viewport.

The first click picks a point on the ecliptic (y = 0). The second click picks the
height above or below it: the view looks straight down, so height is read from
how far the cursor moved up (positive) or down (negative) the screen since the
first click, at the camera's current scale.
"""
from typing import Optional, Tuple

from .vector_utils import Vec3

NOTHING = "nothing"
ECLIPTIC_POS_SELECT = "ecliptic_pos_select"
HEIGHT_SELECT = "height_select"


class PlanetSpawnMode:
    def __init__(self):
        self.stage = NOTHING
        self.ecliptic_pos: Optional[Vec3] = None
        self.anchor_screen: Optional[Tuple[int, int]] = None

    @property
    def active(self) -> bool:
        return self.stage != NOTHING

    def start(self) -> None:
        self.stage = ECLIPTIC_POS_SELECT
        self.ecliptic_pos = None
        self.anchor_screen = None

    def go_back(self) -> None:
        """Undo one stage: height selection returns to ecliptic selection, which returns to nothing."""
        if self.stage == HEIGHT_SELECT:
            self.start()
        else:
            self.stage = NOTHING

    def height_at(self, mouse_screen: Tuple[int, int], units_per_pixel: float) -> float:
        if self.anchor_screen is None:
            return 0.0
        return (self.anchor_screen[1] - mouse_screen[1]) * units_per_pixel

    def preview(self, mouse_screen: Tuple[int, int], units_per_pixel: float) -> Optional[Vec3]:
        """Position the next click would spawn at, once the ecliptic point is chosen."""
        if self.stage != HEIGHT_SELECT or self.ecliptic_pos is None:
            return None
        x, _, z = self.ecliptic_pos
        return (x, self.height_at(mouse_screen, units_per_pixel), z)

    def click(self, world: Vec3, mouse_screen: Tuple[int, int], units_per_pixel: float) -> Optional[Vec3]:
        """
        Advance on a left click. Returns the spawn position when placement is complete.
        """
        if self.stage == ECLIPTIC_POS_SELECT:
            self.ecliptic_pos = (world[0], 0.0, world[2])
            self.anchor_screen = (int(mouse_screen[0]), int(mouse_screen[1]))
            self.stage = HEIGHT_SELECT
            return None
        if self.stage == HEIGHT_SELECT:
            position = self.preview(mouse_screen, units_per_pixel)
            self.stage = NOTHING
            self.ecliptic_pos = None
            self.anchor_screen = None
            return position
        return None
