from __future__ import annotations

import numpy as np

from retroterrain.config import MAX_UINT16_VERTICES
from retroterrain.world.chunk import Bounds, ChunkMesh
from retroterrain.world.clamp import clamp_heights
from retroterrain.world.height import HeightField

VERTS_PER_TILE = 9

# (u, v) of the 9 tile vertices: SW, S, SE, W, C, E, NW, N, NE
TILE_UV = np.array(
    [
        (0.0, 0.0), (0.5, 0.0), (1.0, 0.0),
        (0.0, 0.5), (0.5, 0.5), (1.0, 0.5),
        (0.0, 1.0), (0.5, 1.0), (1.0, 1.0),
    ],
    dtype=np.float32,
)

# Two triangles per quadrant, all meeting at the centre vertex (4).
# Winding gives +y face normals with cross(b - a, c - a).
TILE_TRIANGLES = np.array(
    [
        0, 3, 1, 1, 3, 4,
        1, 5, 2, 1, 4, 5,
        3, 6, 7, 3, 7, 4,
        5, 7, 8, 5, 4, 7,
    ],
    dtype=np.int64,
)


def index_dtype(vertex_count: int) -> np.dtype:
    """16-bit indices up to MAX_UINT16_VERTICES vertices, 32-bit above."""
    return np.dtype(np.uint16) if int(vertex_count) <= MAX_UINT16_VERTICES else np.dtype(np.uint32)


def build_tile(heights, tx, tz, vertex_offset=0) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (positions (9T,3), uvs (9T,2), indices (24T,)) for T tiles.

    `heights` is (9,) for a single tile or (T,9) for a batch; `tx`, `tz`
    and `vertex_offset` are scalars or one value per tile. Indices only
    point into each tile's own 9-vertex block.
    """
    h = np.asarray(heights, dtype=np.float32).reshape(-1, VERTS_PER_TILE)
    tiles = h.shape[0]
    tx = np.broadcast_to(np.asarray(tx, dtype=np.float32).reshape(-1), (tiles,))
    tz = np.broadcast_to(np.asarray(tz, dtype=np.float32).reshape(-1), (tiles,))
    offsets = np.broadcast_to(np.asarray(vertex_offset, dtype=np.int64).reshape(-1), (tiles,))

    pos = np.empty((tiles, VERTS_PER_TILE, 3), dtype=np.float32)
    pos[..., 0] = tx[:, None] + TILE_UV[None, :, 0]
    pos[..., 1] = h
    pos[..., 2] = tz[:, None] + TILE_UV[None, :, 1]

    uvs = np.tile(TILE_UV, (tiles, 1))
    idx = (offsets[:, None] + TILE_TRIANGLES[None, :]).reshape(-1)
    return pos.reshape(-1, 3), uvs, idx


def compute_normals(pos: np.ndarray, idx: np.ndarray) -> np.ndarray:
    """Smooth vertex normals: area-weighted face normals summed per vertex."""
    tri = np.asarray(idx, dtype=np.int64).reshape(-1, 3)
    p = np.asarray(pos, dtype=np.float64)
    a, b, c = p[tri[:, 0]], p[tri[:, 1]], p[tri[:, 2]]
    face = np.cross(b - a, c - a)

    acc = np.zeros_like(p)
    for k in range(3):
        np.add.at(acc, tri[:, k], face)

    length = np.linalg.norm(acc, axis=1, keepdims=True)
    up = np.broadcast_to(np.array([0.0, 1.0, 0.0]), acc.shape)
    n = np.where(length > 1e-12, acc / np.maximum(length, 1e-12), up)
    return n.astype(np.float32)


def compute_bounds(pos: np.ndarray) -> Bounds:
    p = np.asarray(pos, dtype=np.float32)
    if p.size == 0:
        zero = np.zeros(3, dtype=np.float32)
        return Bounds(min=zero, max=zero.copy())
    return Bounds(min=p.min(axis=0), max=p.max(axis=0))


def build_chunk_mesh(field: HeightField, cx: int, cz: int, chunk_size: int, max_edge_delta: float) -> ChunkMesh:
    """Build the mesh for one chunk.

    Tiles are visited row-major (tz outer, tx inner). Every tile emits its
    own 9 vertices, so vertex k of tile t lives at index 9*t + k.
    """
    n = max(1, int(chunk_size))
    base_x = cx * n
    base_z = cz * n

    tz, tx = np.meshgrid(np.arange(n), np.arange(n), indexing="ij")
    tx = tx.ravel()
    tz = tz.ravel()

    nb = field.neighbourhood(base_x + tx, base_z + tz)
    heights = clamp_heights(nb, max_edge_delta)  # (T,9)

    offsets = np.arange(tx.size, dtype=np.int64) * VERTS_PER_TILE
    pos, uvs, idx = build_tile(heights, tx, tz, offsets)
    idx = idx.astype(index_dtype(pos.shape[0]))

    return ChunkMesh(
        cx=int(cx),
        cz=int(cz),
        positions=pos,
        uvs=uvs,
        indices=idx,
        normals=compute_normals(pos, idx),
        bounds=compute_bounds(pos),
        origin=(float(base_x), 0.0, float(base_z)),
    )
