#!/usr/bin/env python3
"""
Planet Simulator application entry point and UI/renderer coordination.

What this module does
- Starts two event loops: a Pygame rendering thread (top-down viewport) and the Dear PyGui
  control panel (running on the main thread).
- Maintains a shared SimulationController that owns the simulation state; all access is
  guarded by a re-entrant lock for thread-safety.

Threading model
- PygameRenderer runs in a background thread and performs: input handling (for the viewport),
  stepping physics, and drawing. It locks the SimulationController around short critical
  sections to read/update shared state.
- The UI class runs in the main thread via Dear PyGui. Its callbacks only touch the simulation
  through SimulationController methods, which take the lock, so constants and spawn requests
  are always applied between steps.

Viewport controls
- Hold right mouse button: pull every planet toward the cursor
- N, then left click: pick a point on the ecliptic; a second left click sets the height
  from the vertical cursor offset and spawns the planet (Esc steps back)
- Left click: select a planet | Middle drag: pan | Wheel: zoom | Arrows: pan
- Space: pause/play | `: toggle attractor debug lines | P: show/hide the control panel

Running
1) Install dependencies: `pip install -e .`
2) Run this module: `python planet_sim.py [--planets N] [--seed S] [--log-level LEVEL]`
"""

import argparse
import logging
import random
import threading
import time
from typing import List, Optional, Tuple

import pygame
from pygame import gfxdraw
import dearpygui.dearpygui as dpg

from planetsim.camera import Camera2D
from planetsim.collisions import MergeEvent
from planetsim.constants import (
    ATTRACTOR_COLOR,
    BACKGROUND_COLOR,
    BASE_DT,
    DEBUG_LINE_COLOR,
    DEFAULT_PLANET_COUNT,
    MAX_SUBSTEPS,
    SAFE_COORD_LIMIT,
    SPAWN_GUIDE_COLOR,
    VIEW_HEIGHT,
    VIEW_WIDTH,
)
from planetsim.data_models import AttractorState, BodySnapshot, Constants, SpawnRequest
from planetsim.physics import kinetic_energy, potential_energy, total_momentum
from planetsim.simulation import SimulationState, default_scene, step
from planetsim.spawn_mode import HEIGHT_SELECT, PlanetSpawnMode
from planetsim.spawning import random_ecliptic_position
from planetsim.vector_utils import Vec3, clamp, vec_len, vec_sub

logger = logging.getLogger("planet_sim")

# ============================================================
# Simulation Controller (Shared State)
# ============================================================

class SimulationController:
    """
    Shared state between UI thread (DearPyGui) and rendering thread (Pygame).
    Includes thread-safe operations guarded by a lock.
    """
    def __init__(self, planets: int = DEFAULT_PLANET_COUNT, seed: Optional[int] = None):
        self.lock = threading.RLock()
        self.state = SimulationState(rng=random.Random(seed))
        self.ui_rng = random.Random(seed)
        self.planet_count = planets
        self.running = True  # app running
        self.playing = True  # simulation running
        self.show_trails = True
        self.debug_mode = False
        self.spawn_mode = PlanetSpawnMode()
        self.attractor = AttractorState()
        self.selected_id: Optional[int] = None
        self.last_message: Optional[str] = None
        self.snapshots: List[BodySnapshot] = []

        # Internal accumulators
        self._accumulator = 0.0
        self._trail_step_counter = 0

        self.reset_scene()

    def reset_scene(self, planets: Optional[int] = None):
        with self.lock:
            if planets is not None:
                self.planet_count = int(planets)
            default_scene(self.state, self.planet_count)
            self.selected_id = None
            self._accumulator = 0.0
            # Admit the queued planets right away so the first frame has something to draw.
            self.snapshots = step(self.state, 0.0)

    def set_constant(self, name: str, value):
        with self.lock:
            try:
                self.state.set_constant(name, value)
            except (KeyError, TypeError, ValueError) as exc:
                self.last_message = f"Invalid value for {name}: {exc}"
                return
            logger.info(f"Constant {name} set to {self.state.get_constant(name)}")

    def reset_constant(self, name: str):
        self.set_constant(name, getattr(Constants(), name))

    def get_constants(self) -> Constants:
        with self.lock:
            return Constants(**{n: self.state.get_constant(n) for n in Constants.names()})

    def spawn_planet(self, position: Optional[Vec3] = None, mass: Optional[float] = None):
        with self.lock:
            self.state.spawn(SpawnRequest(position=position, mass=mass))

    def random_spawn_position(self) -> Vec3:
        return random_ecliptic_position(self.ui_rng)

    def set_attractor(self, active: bool, position: Optional[Vec3]):
        with self.lock:
            self.attractor = AttractorState(active=active, position=position)

    def select_body_at(self, world_pos: Vec3, pick_radius: float) -> Optional[int]:
        with self.lock:
            best = None
            min_d = float("inf")
            for b in self.state.bodies.values():
                d = vec_len(vec_sub((b.position[0], 0.0, b.position[2]), (world_pos[0], 0.0, world_pos[2])))
                pr = max(b.radius * 1.5, pick_radius)
                if d < pr and d < min_d:
                    min_d = d
                    best = b.id
            self.selected_id = best
            return best

    def step_physics(self, dt_real_seconds: float):
        """
        Advance physics in fixed BASE_DT substeps, carrying leftover time to the next frame.
        """
        with self.lock:
            self._accumulator += max(0.0, dt_real_seconds)
            steps = int(self._accumulator / BASE_DT)
            if steps <= 0:
                return
            if steps > MAX_SUBSTEPS:
                steps = MAX_SUBSTEPS
                self._accumulator = 0.0
            else:
                self._accumulator -= steps * BASE_DT

            for _ in range(steps):
                try:
                    self.snapshots = step(self.state, BASE_DT, self.attractor)
                except ValueError as exc:
                    # Bad spawn requests are dropped; the valid ones stay queued for the next substep.
                    self.last_message = f"Spawn rejected: {exc}"
                    continue
                if self.state.last_merges:
                    self._report_merges(self.state.last_merges)
                # Throttle trail sampling to reduce draw cost
                self._trail_step_counter = (self._trail_step_counter + 1) % 3
                if self.show_trails and self._trail_step_counter == 0:
                    for b in self.state.bodies.values():
                        b.add_trail_point()

            if self.selected_id is not None and self.selected_id not in self.state:
                self.selected_id = None

    def _report_merges(self, merges: List[MergeEvent]):
        last = merges[-1]
        survivor = self.state.get(last.survivor_id)
        name = survivor.name if survivor else f"#{last.survivor_id}"
        self.last_message = f"{name} absorbed {len(last.absorbed_ids)} (m={last.mass:.1f})"

    def clear_trails(self):
        with self.lock:
            for b in self.state.bodies.values():
                b.trail.clear()

    def diagnostics(self) -> Tuple[float, float, Vec3]:
        with self.lock:
            bodies = list(self.state.bodies.values())
            return (kinetic_energy(bodies),
                    potential_energy(bodies, self.state.constants),
                    total_momentum(bodies))

# ============================================================
# Pygame Renderer Thread
# ============================================================

class PygameRenderer(threading.Thread):
    """
    Pygame loop: draws planets, trails, the attractor and debug lines.
    Handles attractor input, click-to-spawn, selection, camera panning and zoom.
    """
    def __init__(self, sim: SimulationController):
        super().__init__(daemon=True)
        self.sim = sim
        self.camera = Camera2D(center=(0.0, 0.0))
        self.surface = None
        self.clock = None
        self.dragging_background = False
        self.drag_start_screen = (0, 0)
        self.pan_speed_keys = 600  # pixels per second
        self.running = True
        self.toggle_panel = None  # set by the UI

    def run(self):
        pygame.init()
        pygame.display.set_caption("Planet Simulator - Viewport")
        self.surface = pygame.display.set_mode((VIEW_WIDTH, VIEW_HEIGHT), pygame.RESIZABLE)
        self.camera.set_viewport_size(VIEW_WIDTH, VIEW_HEIGHT)
        self.clock = pygame.time.Clock()

        last_time = time.perf_counter()
        while self.running and self.sim.running:
            now = time.perf_counter()
            real_dt = now - last_time
            last_time = now

            self.handle_events(real_dt)

            with self.sim.lock:
                playing = self.sim.playing
            if playing:
                self.sim.step_physics(real_dt)

            self.draw()
            self.clock.tick(60)

        pygame.quit()

    def handle_events(self, real_dt):
        keys = pygame.key.get_pressed()
        if keys[pygame.K_LEFT]:
            self.camera.pan_pixels(self.pan_speed_keys * real_dt, 0)
        if keys[pygame.K_RIGHT]:
            self.camera.pan_pixels(-self.pan_speed_keys * real_dt, 0)
        if keys[pygame.K_UP]:
            self.camera.pan_pixels(0, self.pan_speed_keys * real_dt)
        if keys[pygame.K_DOWN]:
            self.camera.pan_pixels(0, -self.pan_speed_keys * real_dt)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.sim.running = False
                self.running = False

            elif event.type == pygame.VIDEORESIZE:
                self.surface = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
                self.camera.set_viewport_size(event.w, event.h)

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_SPACE:
                    with self.sim.lock:
                        self.sim.playing = not self.sim.playing
                elif event.key == pygame.K_BACKQUOTE:
                    with self.sim.lock:
                        self.sim.debug_mode = not self.sim.debug_mode
                elif event.key == pygame.K_n:
                    with self.sim.lock:
                        self.sim.spawn_mode.start()
                elif event.key == pygame.K_ESCAPE:
                    with self.sim.lock:
                        self.sim.spawn_mode.go_back()
                elif event.key == pygame.K_p and self.toggle_panel is not None:
                    self.toggle_panel()

            elif event.type == pygame.MOUSEWHEEL:
                factor = 1.1 if event.y > 0 else 1.0 / 1.1
                self.camera.zoom(factor, pygame.mouse.get_pos())

            elif event.type == pygame.MOUSEBUTTONDOWN:
                mouse = pygame.mouse.get_pos()
                world = self.camera.screen_to_world(mouse)
                if event.button == 1:
                    with self.sim.lock:
                        spawning = self.sim.spawn_mode.active
                        chosen = self.sim.spawn_mode.click(world, mouse, self.camera.upp)
                    if chosen is not None:
                        self.sim.spawn_planet(position=chosen)
                    elif not spawning:
                        self.sim.select_body_at(world, pick_radius=self.camera.upp * 10)
                elif event.button == 2:
                    self.dragging_background = True
                    self.drag_start_screen = mouse

            elif event.type == pygame.MOUSEBUTTONUP:
                if event.button == 2:
                    self.dragging_background = False

            elif event.type == pygame.MOUSEMOTION and self.dragging_background:
                mouse = pygame.mouse.get_pos()
                dx = mouse[0] - self.drag_start_screen[0]
                dy = mouse[1] - self.drag_start_screen[1]
                self.camera.pan_pixels(dx, dy)
                self.drag_start_screen = mouse

        # The attractor follows the cursor only while the right button is held.
        held = pygame.mouse.get_pressed()[2]
        cursor = self.camera.screen_to_world(pygame.mouse.get_pos())
        self.sim.set_attractor(held, cursor)

    def draw(self):
        surf = self.surface
        surf.fill(BACKGROUND_COLOR)

        with self.sim.lock:
            bodies = list(self.sim.state.bodies.values())
            trails = {b.id: list(b.trail) for b in bodies} if self.sim.show_trails else {}
            snapshots = [b.snapshot() for b in bodies]
            selected_id = self.sim.selected_id
            attractor = self.sim.attractor
            debug_mode = self.sim.debug_mode
            spawn_active = self.sim.spawn_mode.active
            spawn_stage = self.sim.spawn_mode.stage
            spawn_ecliptic = self.sim.spawn_mode.ecliptic_pos
            spawn_height = self.sim.spawn_mode.height_at(pygame.mouse.get_pos(), self.camera.upp)
            playing = self.sim.playing

        for b in snapshots:
            pts = [p for p in (_safe_point(self.camera.world_to_screen(t)) for t in trails.get(b.id, ())) if p]
            if len(pts) > 1:
                pygame.draw.aalines(surf, b.color, False, pts)

        if debug_mode and attractor.position is not None:
            tip = _safe_point(self.camera.world_to_screen(attractor.position))
            if tip:
                for b in snapshots:
                    p = _safe_point(self.camera.world_to_screen(b.position))
                    if p:
                        pygame.draw.aaline(surf, DEBUG_LINE_COLOR, p, tip)

        for b in snapshots:
            pos = _safe_point(self.camera.world_to_screen(b.position))
            if not pos:
                continue
            vis_r = int(clamp(self.camera.length_to_pixels(b.radius), 2, 200))
            gfxdraw.filled_circle(surf, pos[0], pos[1], vis_r, b.color)
            gfxdraw.aacircle(surf, pos[0], pos[1], vis_r, b.color)
            if b.id == selected_id:
                gfxdraw.aacircle(surf, pos[0], pos[1], vis_r + 4, (255, 255, 0))

        if attractor.usable:
            tip = _safe_point(self.camera.world_to_screen(attractor.position))
            if tip:
                gfxdraw.filled_circle(surf, tip[0], tip[1], 4, ATTRACTOR_COLOR)

        if spawn_active:
            sun = next((b for b in snapshots if b.is_sun), None)
            mouse = pygame.mouse.get_pos()
            origin = _safe_point(self.camera.world_to_screen(sun.position)) if sun is not None else None
            if spawn_stage == HEIGHT_SELECT and spawn_ecliptic is not None:
                anchor = _safe_point(self.camera.world_to_screen(spawn_ecliptic))
                if anchor:
                    if origin:
                        pygame.draw.aaline(surf, SPAWN_GUIDE_COLOR, origin, anchor)
                    pygame.draw.aaline(surf, SPAWN_GUIDE_COLOR, anchor, (anchor[0], mouse[1]))
                    draw_text(surf, f"height {spawn_height:+.1f}", anchor[0] + 8, mouse[1] - 8, SPAWN_GUIDE_COLOR)
            elif origin:
                pygame.draw.aaline(surf, SPAWN_GUIDE_COLOR, origin, mouse)

        draw_text(surf, "RMB hold: attract | N+2 clicks: spawn | `: debug lines | Space: pause | P: panel", 10, 10, (200, 200, 200))
        draw_text(surf, f"Planets: {len(snapshots)}  [{'Playing' if playing else 'Paused'}]", 10, 30, (200, 200, 200))

        pygame.display.flip()

_cached_font = None

def draw_text(surface, text, x, y, color):
    global _cached_font
    if not pygame.font.get_init():
        pygame.font.init()
    if _cached_font is None:
        _cached_font = pygame.font.SysFont("consolas", 16)
    img = _cached_font.render(text, True, color)
    surface.blit(img, (x, y))

def _safe_point(pt):
    x, y = int(pt[0]), int(pt[1])
    if -SAFE_COORD_LIMIT <= x <= SAFE_COORD_LIMIT and -SAFE_COORD_LIMIT <= y <= SAFE_COORD_LIMIT:
        return (x, y)
    return None

# ============================================================
# Dear PyGui UI
# ============================================================

CONSTANT_FIELDS = [
    ("gravitational_const", "Gravitational Const."),
    ("min_attraction_dist", "Min. Attraction Dist."),
    ("attractor_mass", "Mouse Interaction Strength"),
    ("velocity_damping", "Velocity Damping"),
]


class UI:
    """
    Dear PyGui interface: spawn panel, constants editor, simulation controls, body list.
    """
    def __init__(self, sim: SimulationController, renderer: PygameRenderer):
        self.sim = sim
        self.renderer = renderer
        self.status_msg_id = None
        self.body_list_id = None
        self.diag_id = None
        self.spawn_pos_ids = []
        self.constant_ids = {}
        self.panel_visible = True

        self._build_ui()
        renderer.toggle_panel = self.toggle_panel
        self._schedule_sync()

    def _schedule_sync(self):
        """Reschedule the periodic sync callback using frame callbacks (approx ~10Hz)."""
        dpg.set_frame_callback(dpg.get_frame_count() + 6, self._sync_ui_with_sim)

    def _build_ui(self):
        dpg.create_context()
        dpg.create_viewport(title='Planet Simulator - Dev Menu', width=460, height=640)

        with dpg.window(label="Dev Menu", width=440, height=620, pos=(10, 10), tag="main_window"):
            with dpg.collapsing_header(label="Spawn Planet", default_open=True):
                with dpg.group(horizontal=True):
                    for axis in ("x", "y", "z"):
                        self.spawn_pos_ids.append(dpg.add_input_float(label=axis, default_value=0.0, width=100, step=0.1))
                with dpg.group(horizontal=True):
                    dpg.add_button(label="Randomize", callback=self._on_randomize)
                    dpg.add_button(label="Spawn Planet", callback=self._on_spawn)
                    dpg.add_button(label="Spawn Random", callback=lambda: self._spawn(None))

            with dpg.collapsing_header(label="Constants", default_open=True):
                constants = self.sim.get_constants()
                for name, label in CONSTANT_FIELDS:
                    with dpg.group(horizontal=True):
                        self.constant_ids[name] = dpg.add_input_float(
                            label=label, default_value=getattr(constants, name), width=160, step=0.1,
                            min_value=0.0, min_clamped=True,
                            callback=lambda s, a, u: self.sim.set_constant(u, a), user_data=name)
                        dpg.add_button(label="Reset", callback=lambda s, a, u: self._reset_constant(u), user_data=name)
                dpg.add_checkbox(label="Merge touching clusters in one step", default_value=constants.transitive_merge,
                                 callback=lambda s, a, u: self.sim.set_constant("transitive_merge", bool(a)))

            dpg.add_separator()
            dpg.add_text("Simulation Controls")
            with dpg.group(horizontal=True):
                dpg.add_button(label="Play/Pause", callback=self._toggle_play)
                dpg.add_button(label="Step", callback=self._step_once)
                dpg.add_checkbox(label="Trails", default_value=True, callback=self._toggle_trails)
            with dpg.group(horizontal=True):
                dpg.add_input_int(label="Planets", default_value=self.sim.planet_count, width=100,
                                  min_value=0, min_clamped=True, tag="planet_count_input")
                dpg.add_button(label="Reset Scene",
                               callback=lambda: self._reset_scene(dpg.get_value("planet_count_input")))
            self.diag_id = dpg.add_text("")
            self.status_msg_id = dpg.add_text("")

            dpg.add_separator()
            dpg.add_text("Planets")
            self.body_list_id = dpg.add_listbox(items=[], width=420, num_items=8, callback=self._on_select_body)

        dpg.setup_dearpygui()
        dpg.show_viewport()
        dpg.set_primary_window("main_window", True)

    # -----------------------
    # UI Callbacks
    # -----------------------

    def _set_status(self, msg: str, color=(180, 220, 180)):
        dpg.set_value(self.status_msg_id, msg)
        dpg.configure_item(self.status_msg_id, color=color)

    def toggle_panel(self):
        self.panel_visible = not self.panel_visible
        dpg.configure_item("main_window", show=self.panel_visible)

    def _on_randomize(self):
        for item, value in zip(self.spawn_pos_ids, self.sim.random_spawn_position()):
            dpg.set_value(item, value)

    def _on_spawn(self):
        self._spawn(tuple(float(dpg.get_value(item)) for item in self.spawn_pos_ids))

    def _spawn(self, position: Optional[Vec3]):
        self.sim.spawn_planet(position=position)
        self._set_status("Planet queued for spawn.")

    def _reset_constant(self, name: str):
        self.sim.reset_constant(name)
        if name in self.constant_ids:
            dpg.set_value(self.constant_ids[name], getattr(Constants(), name))
        self._set_status(f"Reset {name}.")

    def _reset_scene(self, count):
        self.sim.reset_scene(max(0, int(count)))
        self._set_status(f"Scene reset with {self.sim.planet_count} planets.")

    def _toggle_play(self):
        with self.sim.lock:
            self.sim.playing = not self.sim.playing
            state = "Playing" if self.sim.playing else "Paused"
        self._set_status(f"Simulation {state}.")

    def _step_once(self):
        with self.sim.lock:
            was_playing = self.sim.playing
            self.sim.playing = False
        self.sim.step_physics(BASE_DT)
        with self.sim.lock:
            self.sim.playing = was_playing
        self._set_status("Stepped once.")

    def _toggle_trails(self, sender, value, user_data=None):
        with self.sim.lock:
            self.sim.show_trails = bool(value)
        if not value:
            self.sim.clear_trails()

    def _on_select_body(self, sender, app_data, user_data):
        with self.sim.lock:
            for b in self.sim.state.bodies.values():
                if _body_label(b) == app_data:
                    self.sim.selected_id = b.id
                    break

    def _sync_ui_with_sim(self):
        """
        Periodic UI update: body list, diagnostics and the latest merge message.
        """
        with self.sim.lock:
            items = [_body_label(b) for b in self.sim.state.bodies.values()]
            selected = self.sim.state.get(self.sim.selected_id) if self.sim.selected_id is not None else None
            msg = self.sim.last_message
            self.sim.last_message = None
        dpg.configure_item(self.body_list_id, items=items)
        if selected is not None:
            dpg.set_value(self.body_list_id, _body_label(selected))
        ke, pe, p = self.sim.diagnostics()
        dpg.set_value(self.diag_id, f"KE {ke:.3e}  PE {pe:.3e}  |p| {vec_len(p):.3e}")
        if msg:
            self._set_status(msg)
        self._schedule_sync()


def _body_label(b) -> str:
    return f"#{b.id} {b.name}  m={b.mass:.1f} r={b.radius:.1f}"

# ============================================================
# Application Entry
# ============================================================

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Interactive gravitational N-body planet simulator")
    parser.add_argument("--planets", type=int, default=DEFAULT_PLANET_COUNT, help="planets spawned around the Sun")
    parser.add_argument("--seed", type=int, default=None, help="seed for the spawn randomizer")
    parser.add_argument("--log-level", default="INFO", help="logging level (DEBUG, INFO, WARNING, ...)")
    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    sim = SimulationController(planets=args.planets, seed=args.seed)
    renderer = PygameRenderer(sim)
    renderer.start()

    UI(sim, renderer)

    try:
        dpg.start_dearpygui()
    finally:
        sim.running = False
        renderer.running = False
        renderer.join(timeout=2.0)
        dpg.destroy_context()

if __name__ == "__main__":
    main()
