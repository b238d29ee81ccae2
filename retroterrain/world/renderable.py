from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Protocol, Tuple

import numpy as np

from retroterrain.world.chunk import Bounds


class RenderableFactory(Protocol):
    """Turns finished chunk buffers into a drawable object and returns its handle."""

    def create_renderable(
        self,
        vertices: np.ndarray,
        uvs: np.ndarray,
        indices: np.ndarray,
        origin: Tuple[float, float, float],
        name: str,
        *,
        normals: np.ndarray | None = None,
        bounds: Bounds | None = None,
    ) -> Any: ...


@dataclass(frozen=True)
class ChunkHandle:
    name: str
    origin: Tuple[float, float, float]
    vertex_count: int
    index_count: int
    index_format: str


@dataclass
class RecordedMesh:
    vertices: np.ndarray
    uvs: np.ndarray
    indices: np.ndarray
    normals: np.ndarray | None
    bounds: Bounds | None


class RecordingFactory:
    """Headless factory: keeps every mesh it is given, keyed by chunk name."""

    def __init__(self) -> None:
        self.meshes: Dict[str, RecordedMesh] = {}

    def create_renderable(
        self,
        vertices: np.ndarray,
        uvs: np.ndarray,
        indices: np.ndarray,
        origin: Tuple[float, float, float],
        name: str,
        *,
        normals: np.ndarray | None = None,
        bounds: Bounds | None = None,
    ) -> ChunkHandle:
        self.meshes[name] = RecordedMesh(vertices=vertices, uvs=uvs, indices=indices, normals=normals, bounds=bounds)
        return ChunkHandle(
            name=name,
            origin=tuple(float(c) for c in origin),
            vertex_count=int(vertices.shape[0]),
            index_count=int(indices.size),
            index_format=str(indices.dtype),
        )
