from __future__ import annotations

import argparse
import logging
import random

import numpy as np

from retroterrain.config import (
    APP_VERSION,
    DEFAULT_WORLD_SIZE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_HEIGHT_SCALE,
    DEFAULT_SEED,
    DEFAULT_NOISE_SCALE,
    DEFAULT_NOISE,
    DEFAULT_OCTAVES,
    DEFAULT_TERRACE,
    DEFAULT_MAX_EDGE_DELTA,
    DEFAULT_WORKERS,
)
from retroterrain.world.noise import NOISE_MODES
from retroterrain.world.renderable import RecordingFactory
from retroterrain.world.world import WorldGenerator, WorldParams

log = logging.getLogger("retroterrain")

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="retroterrain", description=f"Chunked tile terrain with cliff clamping v{APP_VERSION}")
    p.add_argument("--world-size", type=int, default=DEFAULT_WORLD_SIZE, help="chunks per axis (clamped to >= 1)")
    p.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE, help="tiles per chunk per axis (clamped to >= 1)")
    p.add_argument("--height-scale", type=float, default=DEFAULT_HEIGHT_SCALE, help="vertical scale of raw samples")
    p.add_argument("--seed", default=str(DEFAULT_SEED), help="int seed or 'random' (default: 0)")
    p.add_argument("--noise-scale", type=float, default=DEFAULT_NOISE_SCALE, help="spatial frequency of noise sampling")
    p.add_argument("--noise", choices=list(NOISE_MODES), default=DEFAULT_NOISE, help="height noise mode (fast or simplex)")
    p.add_argument("--octaves", type=int, default=DEFAULT_OCTAVES, help="noise octaves (1 = plain noise)")
    p.add_argument("--debug-random-heights", action="store_true", help="uniform random heights instead of noise (testing only)")
    p.add_argument("--terrace", type=float, default=DEFAULT_TERRACE, help="snap heights to this step (0 disables)")
    p.add_argument("--max-edge-delta", type=float, default=DEFAULT_MAX_EDGE_DELTA, help="cliff threshold and edge clamp (0 disables)")
    p.add_argument("--workers", type=int, default=DEFAULT_WORKERS, help="background chunk builder threads (0 = caller thread)")
    p.add_argument("--headless", action="store_true", help="generate without a window and print a summary")
    p.add_argument("--save-heights", metavar="PATH", help="save the height field as a .npy file")
    p.add_argument("--wireframe", action="store_true", help="render wireframe")
    p.add_argument("--debug", action="store_true", help="verbose logs")
    return p.parse_args(argv)

def _params_from_args(args: argparse.Namespace) -> WorldParams:
    if isinstance(args.seed, str) and args.seed.lower() == "random":
        seed = random.randint(0, 2**31 - 1)
    else:
        seed = int(args.seed)

    return WorldParams(
        world_size=int(args.world_size),
        chunk_size=int(args.chunk_size),
        height_scale=float(args.height_scale),
        seed=seed,
        noise_scale=float(args.noise_scale),
        debug_random_heights=bool(args.debug_random_heights),
        terrace=float(args.terrace),
        max_edge_delta=float(args.max_edge_delta),
        noise_mode=str(args.noise),
        octaves=int(args.octaves),
    )

def run_headless(params: WorldParams, *, workers: int = 0, save_heights: str | None = None) -> WorldGenerator:
    gen = WorldGenerator(params, RecordingFactory(), workers=workers)
    gen.run()

    field = gen.height_field
    log.info(
        "heights: min=%.3f max=%.3f mean=%.3f",
        float(field.heights.min()), float(field.heights.max()), float(field.heights.mean()),
    )
    for handle in gen.chunks:
        log.info("%s origin=%s verts=%d indices=%d (%s)", handle.name, handle.origin, handle.vertex_count, handle.index_count, handle.index_format)

    if save_heights:
        np.save(save_heights, field.heights)
        log.info("saved height field to %s", save_heights)
    return gen

def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="[retroterrain] %(message)s",
    )
    params = _params_from_args(args)

    if args.headless:
        run_headless(params, workers=int(args.workers), save_heights=args.save_heights)
        return

    # GL stack is only needed for the window
    from retroterrain.app import run_app

    run_app(params, wireframe=bool(args.wireframe), workers=int(args.workers))
    if args.save_heights:
        log.warning("--save-heights is only supported with --headless")

if __name__ == "__main__":
    main()
