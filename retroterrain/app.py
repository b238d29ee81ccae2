from __future__ import annotations

import logging
import time
import numpy as np
import pygame
import moderngl

from retroterrain.config import (
    APP_VERSION, WINDOW_WIDTH, WINDOW_HEIGHT, FPS_CAP,
    FOG_START, FOG_END, LIGHT_DIR,
    ORBIT_PITCH, ORBIT_YAW_RATE, ORBIT_ZOOM_RATE, ORBIT_SMOOTH_K,
)
from retroterrain.render.camera import OrbitCamera
from retroterrain.render.renderer import Renderer
from retroterrain.world.world import WorldGenerator, WorldParams
from retroterrain.util.math import normalize

log = logging.getLogger(__name__)

def _init_pygame_gl() -> None:
    pygame.init()
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MAJOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MINOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_PROFILE_MASK, pygame.GL_CONTEXT_PROFILE_CORE)
    pygame.display.gl_set_attribute(pygame.GL_DEPTH_SIZE, 24)
    pygame.display.gl_set_attribute(pygame.GL_DOUBLEBUFFER, 1)

def run_app(params: WorldParams, *, wireframe: bool = False, workers: int = 0) -> None:
    """Open a window and grow the world one chunk per frame."""
    _init_pygame_gl()

    flags = pygame.OPENGL | pygame.DOUBLEBUF | pygame.RESIZABLE
    pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT), flags)
    pygame.display.set_caption(f"retroterrain v{APP_VERSION} (seed={params.seed})")

    try:
        ctx = moderngl.create_context()
    except Exception as e:
        pygame.quit()
        raise RuntimeError("Failed to create ModernGL context (need OpenGL 3.2+)") from e

    log.debug("moderngl ctx version_code=%s vendor=%s renderer=%s", ctx.version_code, ctx.info.get("GL_VENDOR"), ctx.info.get("GL_RENDERER"))

    ctx.viewport = (0, 0, WINDOW_WIDTH, WINDOW_HEIGHT)
    if wireframe:
        ctx.wireframe = True

    renderer = Renderer(ctx, WINDOW_WIDTH, WINDOW_HEIGHT)
    gen = WorldGenerator(params, renderer, workers=workers)
    gen.start()

    extent = float(params.tiles_per_axis)
    cam = OrbitCamera(
        np.array([extent * 0.5, params.height_scale * 0.5, extent * 0.5], dtype=np.float32),
        extent * 1.1 + 4.0,
        pitch=ORBIT_PITCH,
        yaw_rate=ORBIT_YAW_RATE,
        zoom_rate=ORBIT_ZOOM_RATE,
        smooth_k=ORBIT_SMOOTH_K,
    )
    light_dir = normalize(np.array(LIGHT_DIR, dtype=np.float32))
    fog_start = FOG_START + extent
    fog_end = FOG_END + extent * 2.0

    clock = pygame.time.Clock()
    running = True
    last_t = time.perf_counter()

    try:
        while running:
            now = time.perf_counter()
            dt = min(now - last_t, 0.05)
            last_t = now

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    running = False
                elif event.type == pygame.VIDEORESIZE:
                    w, h = max(64, event.w), max(64, event.h)
                    pygame.display.set_mode((w, h), flags)
                    renderer.resize(w, h)

            keys = pygame.key.get_pressed()
            turn = float(keys[pygame.K_RIGHT]) - float(keys[pygame.K_LEFT])
            zoom = float(keys[pygame.K_UP]) - float(keys[pygame.K_DOWN])
            tilt = float(keys[pygame.K_q]) - float(keys[pygame.K_a])
            cam.update(dt, turn=turn, zoom=zoom, tilt=tilt)

            # One chunk per frame: the frame loop is the generator's scheduler
            if not gen.finished:
                gen.step()
                pygame.display.set_caption(
                    f"retroterrain v{APP_VERSION} (seed={params.seed}) {gen.progress * 100.0:.0f}%"
                )

            renderer.begin_frame()
            renderer.set_common_uniforms(
                view=cam.view_matrix(),
                cam_pos=cam.eye(),
                light_dir=light_dir,
                fog_start=fog_start,
                fog_end=fog_end,
                height_scale=params.height_scale,
            )
            renderer.draw_chunks()

            pygame.display.flip()

            if FPS_CAP and FPS_CAP > 0:
                clock.tick(FPS_CAP)
            else:
                clock.tick()
    finally:
        if not gen.finished:
            gen.cancel()
            gen.step()
        renderer.release()
        pygame.quit()
