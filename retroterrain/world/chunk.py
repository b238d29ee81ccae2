from __future__ import annotations

from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class Bounds:
    min: np.ndarray  # (3,)
    max: np.ndarray  # (3,)

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) * 0.5

    @property
    def size(self) -> np.ndarray:
        return self.max - self.min


def chunk_name(cx: int, cz: int) -> str:
    return f"Chunk_{cx}_{cz}"


@dataclass
class ChunkMesh:
    cx: int
    cz: int
    positions: np.ndarray  # float32 (N,3), chunk-local
    uvs: np.ndarray  # float32 (N,2)
    indices: np.ndarray  # uint16 or uint32 (M,)
    normals: np.ndarray  # float32 (N,3)
    bounds: Bounds
    origin: tuple[float, float, float]

    @property
    def name(self) -> str:
        return chunk_name(self.cx, self.cz)

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.size // 3)

    @property
    def index_format(self) -> str:
        return str(self.indices.dtype)
