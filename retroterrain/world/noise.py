from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from opensimplex import OpenSimplex

NOISE_MODES = ("fast", "simplex")


@dataclass(frozen=True)
class NoiseConfig:
    octaves: int = 1
    lacunarity: float = 2.0
    gain: float = 0.5


class FastValueNoise2D:
    """Fast 2D value noise with fully vectorized numpy implementation.

    Uses an integer hash on lattice points and smooth interpolation.
    Deterministic for a given seed, output in [0,1).
    """

    def __init__(self, seed: int = 0) -> None:
        self.seed = int(seed)

    @staticmethod
    def _fade(t: np.ndarray) -> np.ndarray:
        # smootherstep
        return t * t * t * (t * (t * 6 - 15) + 10)

    def _hash(self, xi: np.ndarray, zi: np.ndarray) -> np.ndarray:
        # int64 -> uint32 wraps negative lattice coordinates
        xu = (xi.astype(np.int64) & 0xFFFFFFFF).astype(np.uint32)
        zu = (zi.astype(np.int64) & 0xFFFFFFFF).astype(np.uint32)
        x = (xu * np.uint32(374761393)) ^ (zu * np.uint32(668265263)) ^ np.uint32(self.seed & 0xFFFFFFFF)
        x ^= (x >> np.uint32(13))
        x *= np.uint32(1274126177)
        x ^= (x >> np.uint32(16))
        return x.astype(np.float64) / float(2**32)

    def grid(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        xi0 = np.floor(x).astype(np.int64)
        zi0 = np.floor(z).astype(np.int64)

        u = self._fade(x - xi0)
        v = self._fade(z - zi0)

        a = self._hash(xi0, zi0)
        b = self._hash(xi0 + 1, zi0)
        c = self._hash(xi0, zi0 + 1)
        d = self._hash(xi0 + 1, zi0 + 1)

        ab = a + (b - a) * u
        cd = c + (d - c) * u
        return ab + (cd - ab) * v

    def lattice(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        gx, gz = np.meshgrid(np.asarray(xs, dtype=np.float64), np.asarray(zs, dtype=np.float64), indexing="ij")
        return self.grid(gx, gz)


class SimplexNoise2D:
    """OpenSimplex noise remapped from [-1,1] to [0,1]."""

    def __init__(self, seed: int = 0) -> None:
        self.seed = int(seed)
        self._simp = OpenSimplex(self.seed)

    def grid(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        out = np.empty(x.shape, dtype=np.float64)
        for i, (px, pz) in enumerate(zip(x.ravel(), z.ravel())):
            out.flat[i] = self._simp.noise2(float(px), float(pz))
        return (out + 1.0) * 0.5

    def lattice(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        # noise2array returns [len(zs), len(xs)]
        arr = self._simp.noise2array(np.asarray(xs, dtype=np.float64), np.asarray(zs, dtype=np.float64))
        return (arr.T + 1.0) * 0.5


class FBMNoise:
    """Octave sum normalized by total amplitude, so the range stays [0,1]."""

    def __init__(self, base, cfg: NoiseConfig | None = None) -> None:
        self.base = base
        self.cfg = cfg or NoiseConfig()

    def _octaves(self):
        freq = 1.0
        amp = 1.0
        for _ in range(max(1, int(self.cfg.octaves))):
            yield freq, amp
            freq *= self.cfg.lacunarity
            amp *= self.cfg.gain

    def grid(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        total = np.zeros(np.broadcast(x, z).shape, dtype=np.float64)
        norm = 0.0
        for freq, amp in self._octaves():
            total += self.base.grid(x * freq, z * freq) * amp
            norm += amp
        return total / max(norm, 1e-9)

    def lattice(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        xs = np.asarray(xs, dtype=np.float64)
        zs = np.asarray(zs, dtype=np.float64)
        total = np.zeros((xs.size, zs.size), dtype=np.float64)
        norm = 0.0
        for freq, amp in self._octaves():
            total += self.base.lattice(xs * freq, zs * freq) * amp
            norm += amp
        return total / max(norm, 1e-9)

    def value(self, x: float, z: float) -> float:
        xv = np.array([x], dtype=np.float64)
        zv = np.array([z], dtype=np.float64)
        return float(self.grid(xv, zv)[0])


def make_noise(mode: str = "fast", cfg: NoiseConfig | None = None, *, seed: int = 0) -> FBMNoise:
    if mode == "fast":
        return FBMNoise(FastValueNoise2D(seed), cfg)
    if mode == "simplex":
        return FBMNoise(SimplexNoise2D(seed), cfg)
    raise ValueError(f"unknown noise mode {mode!r} (expected one of {', '.join(NOISE_MODES)})")
