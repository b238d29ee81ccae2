"""Per-tile vertex heights with edge-delta clamping.

A tile has 9 vertices laid out row-major over a 3x3 grid (v outer):

    6 NW   7 N   8 NE
    3 W    4 C   5 E
    0 SW   1 S   2 SE

Natural heights average the centre with its neighbours. When a cardinal
neighbour differs from the centre by more than ``max_edge_delta`` the edge
is a cliff: its midpoint is pulled to exactly ``max_edge_delta`` from the
centre and the two adjacent corners are clamped so they cannot drag the
tile towards the far side of the cliff. Tiles never share vertices, so
this reshaping stays local to the tile.

Every function accepts scalars or arrays of neighbourhoods; array inputs
return one row of 9 heights per tile.
"""
from __future__ import annotations

import numpy as np

from retroterrain.world.height import Neighbourhood

SW, S, SE, W, C, E, NW, N, NE = range(9)

# corner -> (first adjacent edge, second adjacent edge)
CORNER_EDGES = {
    SW: (S, W),
    SE: (S, E),
    NW: (N, W),
    NE: (N, E),
}


def _f(v) -> np.ndarray:
    return np.asarray(v, dtype=np.float64)


def natural_heights(nb: Neighbourhood) -> np.ndarray:
    c, n, s, e, w = _f(nb.c), _f(nb.n), _f(nb.s), _f(nb.e), _f(nb.w)
    ne, nw, se, sw = _f(nb.ne), _f(nb.nw), _f(nb.se), _f(nb.sw)
    return np.stack(
        [
            (c + w + s + sw) / 4.0,
            (c + s) / 2.0,
            (c + e + s + se) / 4.0,
            (c + w) / 2.0,
            c,
            (c + e) / 2.0,
            (c + w + n + nw) / 4.0,
            (c + n) / 2.0,
            (c + e + n + ne) / 4.0,
        ],
        axis=-1,
    )


def _clip(v: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    # bounds in either order
    return np.minimum(np.maximum(v, np.minimum(a, b)), np.maximum(a, b))


def clamp_corner(
    corner: np.ndarray,
    center: np.ndarray,
    mid_a: np.ndarray,
    mid_b: np.ndarray,
    cliff_a: np.ndarray,
    cliff_b: np.ndarray,
    max_edge_delta: float,
) -> np.ndarray:
    """Clamp one corner given its two adjacent (already clamped) edge midpoints."""
    corner, center, mid_a, mid_b = _f(corner), _f(center), _f(mid_a), _f(mid_b)
    cliff_a = np.asarray(cliff_a, dtype=bool)
    cliff_b = np.asarray(cliff_b, dtype=bool)

    dir_a = np.sign(mid_a - center)
    dir_b = np.sign(mid_b - center)
    same = (dir_a == dir_b) & (dir_a != 0.0)

    # Both cliffs, same direction: up to twice the single-edge cap
    reach = center + dir_a * 2.0 * max_edge_delta
    both_same = _clip(corner, center, reach)
    # Both cliffs, opposite or zero direction: between the two midpoints
    both_mixed = _clip(corner, mid_a, mid_b)
    # Exactly one cliff: between the centre and that cliff's midpoint
    single = _clip(corner, center, np.where(cliff_a, mid_a, mid_b))

    return np.where(
        cliff_a & cliff_b,
        np.where(same, both_same, both_mixed),
        np.where(cliff_a | cliff_b, single, corner),
    )


def clamp_heights(nb: Neighbourhood, max_edge_delta: float) -> np.ndarray:
    """Final 9 vertex heights for the tile(s) in `nb`."""
    v = natural_heights(nb)
    if max_edge_delta <= 0.0:
        return v

    c = _f(nb.c)
    cliff = {}
    for edge, neighbour in ((S, nb.s), (N, nb.n), (E, nb.e), (W, nb.w)):
        diff = _f(neighbour) - c
        is_cliff = np.abs(diff) > max_edge_delta
        v[..., edge] = np.where(is_cliff, c + np.sign(diff) * max_edge_delta, v[..., edge])
        cliff[edge] = is_cliff

    for corner, (a, b) in CORNER_EDGES.items():
        v[..., corner] = clamp_corner(v[..., corner], c, v[..., a], v[..., b], cliff[a], cliff[b], max_edge_delta)
    return v
