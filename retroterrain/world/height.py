from __future__ import annotations

import logging
import time
from typing import NamedTuple

import numpy as np

from retroterrain.world.noise import NoiseConfig, make_noise

log = logging.getLogger(__name__)


def terrace_snap(value, terrace: float):
    """Snap heights to the nearest multiple of `terrace`.

    Ties round half to even (numpy.round), so 0.125 with terrace 0.25 snaps
    to 0.0 and 0.375 snaps to 0.5. A terrace <= 0 leaves values untouched.
    Works on floats and arrays alike.
    """
    if terrace <= 0.0:
        return value
    snapped = np.round(np.asarray(value, dtype=np.float64) / terrace) * terrace
    if snapped.ndim == 0:
        return float(snapped)
    return snapped


class Neighbourhood(NamedTuple):
    """Heights of a tile and its 8 neighbours (N = +z, E = +x)."""

    c: np.ndarray | float
    n: np.ndarray | float
    s: np.ndarray | float
    e: np.ndarray | float
    w: np.ndarray | float
    ne: np.ndarray | float
    nw: np.ndarray | float
    se: np.ndarray | float
    sw: np.ndarray | float


class HeightSampler:
    """Maps a grid coordinate to an elevation.

    Normal mode evaluates coherent noise at ((x+seed)*noise_scale,
    (z+seed)*noise_scale) scaled by height_scale. Debug mode draws uniformly
    from [0, height_scale] instead (not reproducible unless an rng is given).

    Samples are float64. A HeightField stores them as float32, so
    field.get(x, z) equals float(np.float32(sample(x, z))), not sample(x, z).
    """

    def __init__(
        self,
        *,
        height_scale: float,
        seed: int = 0,
        noise_scale: float = 0.1,
        terrace: float = 0.0,
        debug_random: bool = False,
        noise_mode: str = "fast",
        octaves: int = 1,
        noise=None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.height_scale = float(height_scale)
        self.seed = int(seed)
        self.noise_scale = float(noise_scale)
        self.terrace = max(0.0, float(terrace))
        self.debug_random = bool(debug_random)
        self.noise = noise if noise is not None else make_noise(noise_mode, NoiseConfig(octaves=int(octaves)))
        self.rng = rng if rng is not None else np.random.default_rng()

    @classmethod
    def from_params(cls, params, **kwargs) -> "HeightSampler":
        return cls(
            height_scale=params.height_scale,
            seed=params.seed,
            noise_scale=params.noise_scale,
            terrace=params.terrace,
            debug_random=params.debug_random_heights,
            noise_mode=params.noise_mode,
            octaves=params.octaves,
            **kwargs,
        )

    def sample(self, x: int, z: int) -> float:
        if self.debug_random:
            h = float(self.rng.uniform(0.0, self.height_scale))
        else:
            h = self.noise.value((x + self.seed) * self.noise_scale, (z + self.seed) * self.noise_scale) * self.height_scale
        return terrace_snap(h, self.terrace)

    def sample_grid(self, size: int) -> np.ndarray:
        """Sample every coordinate of a size x size grid, indexed [x, z]."""
        size = max(1, int(size))
        if self.debug_random:
            h = self.rng.uniform(0.0, self.height_scale, size=(size, size))
        else:
            axis = (np.arange(size, dtype=np.float64) + self.seed) * self.noise_scale
            h = self.noise.lattice(axis, axis) * self.height_scale
        return terrace_snap(h, self.terrace)


class HeightField:
    """Dense, read-only elevation grid for the whole world, indexed [x, z].

    Lookups outside the grid are clamped to the nearest edge, so the world
    border extends flat instead of dropping off.

    Heights are stored as float32 (vertex precision); terraced values with a
    step that is not a power of two are the nearest float32 to the snapped
    float64 value.
    """

    def __init__(self, heights: np.ndarray) -> None:
        a = np.array(heights, dtype=np.float32)
        if a.ndim != 2 or a.shape[0] != a.shape[1] or a.size == 0:
            raise ValueError(f"height field must be a non-empty square grid, got shape {a.shape}")
        a.setflags(write=False)
        self._h = a

    @classmethod
    def build(cls, sampler: HeightSampler, tiles_per_axis: int) -> "HeightField":
        size = max(1, int(tiles_per_axis))
        t0 = time.perf_counter()
        field = cls(sampler.sample_grid(size))
        log.debug("height field %dx%d built in %.1f ms", size, size, (time.perf_counter() - t0) * 1000.0)
        return field

    @classmethod
    def from_array(cls, heights) -> "HeightField":
        return cls(np.asarray(heights))

    @property
    def heights(self) -> np.ndarray:
        return self._h

    @property
    def size(self) -> int:
        return int(self._h.shape[0])

    def get(self, xi: int, zi: int) -> float:
        last = self.size - 1
        xi = min(max(int(xi), 0), last)
        zi = min(max(int(zi), 0), last)
        return float(self._h[xi, zi])

    def gather(self, xs, zs) -> np.ndarray:
        last = self.size - 1
        xs = np.clip(np.asarray(xs, dtype=np.int64), 0, last)
        zs = np.clip(np.asarray(zs, dtype=np.int64), 0, last)
        return self._h[xs, zs].astype(np.float64)

    def neighbourhood(self, x, z) -> Neighbourhood:
        """Clamped 3x3 neighbourhood around (x, z); scalars or arrays."""
        x = np.asarray(x, dtype=np.int64)
        z = np.asarray(z, dtype=np.int64)
        g = self.gather
        return Neighbourhood(
            c=g(x, z),
            n=g(x, z + 1),
            s=g(x, z - 1),
            e=g(x + 1, z),
            w=g(x - 1, z),
            ne=g(x + 1, z + 1),
            nw=g(x - 1, z + 1),
            se=g(x + 1, z - 1),
            sw=g(x - 1, z - 1),
        )
